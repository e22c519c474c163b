"""Filter specification rendering.

Converts filter descriptions into the textual form ffmpeg expects in
-filter:a, -filter:v and -filter_complex arguments:

    [in1][in2]name=opt1=val1:opt2=val2[out1][out2]

Escaping is intentionally minimal and matches what ffmpeg's filtergraph
parser expects from callers: only string option values containing a comma
are single-quoted. Everything else is passed through verbatim.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ffdrive.exceptions import ConfigurationError

# Option values matching this pattern are quoted in list/mapping options
_FILTER_ESCAPE_RE = re.compile(r"[,]")

# Strips optional surrounding brackets from a stream label
STREAM_LABEL_RE = re.compile(r"^\[?(.*?)\]?$")

# "<file index>[:<stream specifier>][?]", optionally negated
_STREAM_SPECIFIER_RE = re.compile(r"^-?\d+(:\S*)?\??$")

FilterOptions = str | int | float | Sequence[Any] | Mapping[str, Any] | None


@dataclass(frozen=True)
class FilterSpec:
    """Description of a single filter.

    Attributes:
        filter: Filter name (e.g. "scale", "overlay").
        options: Verbatim option string, ordered option list, or named
            option mapping (insertion order is preserved).
        inputs: Input stream labels, with or without brackets.
        outputs: Output stream labels, with or without brackets.
    """

    filter: str
    options: FilterOptions = None
    inputs: tuple[str, ...] = field(default_factory=tuple)
    outputs: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.filter:
            raise ConfigurationError("Filter name is required")
        object.__setattr__(self, "inputs", _as_labels(self.inputs))
        object.__setattr__(self, "outputs", _as_labels(self.outputs))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FilterSpec:
        """Build a FilterSpec from a {"filter": ..., "options": ...} mapping."""
        if "filter" not in data:
            raise ConfigurationError(f"Filter specification has no name: {data!r}")
        return cls(
            filter=data["filter"],
            options=data.get("options"),
            inputs=data.get("inputs") or (),
            outputs=data.get("outputs") or (),
        )

    def render(self) -> str:
        """Render this filter to its canonical text form."""
        return render_filter(self)


FilterLike = str | FilterSpec | Mapping[str, Any]


def _as_labels(labels: str | Iterable[str] | None) -> tuple[str, ...]:
    if not labels:
        return ()
    if isinstance(labels, str):
        return (labels,)
    return tuple(labels)


def _bracket(label: str) -> str:
    return label if label.startswith("[") else f"[{label}]"


def _option_value(value: Any) -> str:
    text = str(value)
    if isinstance(value, str) and _FILTER_ESCAPE_RE.search(value):
        return f"'{text}'"
    return text


def _render_options(options: FilterOptions) -> str:
    if options is None:
        return ""
    if isinstance(options, (str, int, float)):
        text = str(options)
        return f"={text}" if text else ""
    if isinstance(options, Mapping):
        if not options:
            return ""
        return "=" + ":".join(
            f"{key}={_option_value(value)}" for key, value in options.items()
        )
    items = list(options)
    if not items:
        return ""
    return "=" + ":".join(_option_value(item) for item in items)


def render_filter(spec: FilterSpec) -> str:
    """Render a filter specification.

    Args:
        spec: Filter to render.

    Returns:
        Filter text, e.g. "[0:v][1:v]overlay[out]" or "pad=w=iw*3:h=ih".
    """
    return (
        "".join(_bracket(label) for label in spec.inputs)
        + spec.filter
        + _render_options(spec.options)
        + "".join(_bracket(label) for label in spec.outputs)
    )


def to_filter_spec(value: FilterSpec | Mapping[str, Any]) -> FilterSpec:
    """Coerce a mapping into a FilterSpec."""
    if isinstance(value, FilterSpec):
        return value
    if isinstance(value, Mapping):
        return FilterSpec.from_dict(value)
    raise ConfigurationError(f"Invalid filter specification: {value!r}")


def make_filter_strings(filters: Iterable[FilterLike]) -> list[str]:
    """Render a sequence of filters.

    Plain strings are assumed to be already rendered and pass through.

    Args:
        filters: Filter strings, FilterSpec objects or filter mappings.

    Returns:
        Rendered filter strings, in input order.
    """
    rendered: list[str] = []
    for item in filters:
        if isinstance(item, str):
            rendered.append(item)
        else:
            rendered.append(render_filter(to_filter_spec(item)))
    return rendered


def flatten_filters(filters: tuple[Any, ...]) -> list[FilterLike]:
    """Accept filters passed either as varargs or as a single list."""
    if len(filters) == 1 and isinstance(filters[0], (list, tuple)):
        return list(filters[0])
    return list(filters)


def join_filter_chain(filters: Iterable[str]) -> str:
    """Join filters of one chain with commas."""
    return ",".join(filters)


def join_filter_graph(chains: Iterable[str]) -> str:
    """Join distinct filtergraph blocks with semicolons."""
    return ";".join(chains)


def normalize_stream_label(spec: str) -> str:
    """Wrap a filtergraph label in brackets, as used by -map.

    Input stream specifiers ("0:v", "1:a:0", "-0:s") are left alone since
    ffmpeg would otherwise look them up as filter output labels.

    >>> normalize_stream_label("out")
    '[out]'
    >>> normalize_stream_label("[out]")
    '[out]'
    >>> normalize_stream_label("0:a")
    '0:a'
    """
    if _STREAM_SPECIFIER_RE.match(spec):
        return spec
    return STREAM_LABEL_RE.sub(r"[\1]", spec, count=1)
