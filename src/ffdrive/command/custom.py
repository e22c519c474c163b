"""Custom options and complex filtergraphs."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from ffdrive.core.arguments import ArgumentList
from ffdrive.core.filters import (
    FilterLike,
    FilterSpec,
    join_filter_graph,
    make_filter_strings,
    normalize_stream_label,
)
from ffdrive.exceptions import ConfigurationError


def add_custom_options(target: ArgumentList, options: tuple[object, ...]) -> None:
    """Add caller-supplied options to an option group.

    A single string, or each string of a single list, made of two words is
    split into flag and value ("-ss 10"). Several arguments are added
    verbatim, one token each.

    Args:
        target: Option group to extend.
        options: The positional arguments given to input_options() or
            output_options().
    """
    if not options:
        raise ConfigurationError("At least one option is required")
    if len(options) == 1:
        (single,) = options
        items = single if isinstance(single, (list, tuple)) else [single]
        for item in items:
            target.add(str(item))
        return
    target.add(*options)


def complex_filter_tokens(
    spec: FilterLike | Sequence[FilterLike], map_: str | Sequence[str] | None = None
) -> list[str]:
    """Build -filter_complex and -map tokens for a filtergraph.

    Args:
        spec: Complete filtergraph string, or a list of filters rendered
            and joined with ";". A single FilterSpec or mapping is
            treated as a one-filter list.
        map_: Graph output label(s) to map into the output.

    Returns:
        Token list starting with -filter_complex.
    """
    if isinstance(spec, str):
        graph = spec
    elif isinstance(spec, (FilterSpec, Mapping)):
        graph = make_filter_strings([spec])[0]
    else:
        graph = join_filter_graph(make_filter_strings(spec))
    if not graph:
        raise ConfigurationError("Complex filtergraph must not be empty")

    tokens = ["-filter_complex", graph]
    if map_ is not None:
        labels = [map_] if isinstance(map_, str) else list(map_)
        for label in labels:
            tokens.extend(["-map", normalize_stream_label(label)])
    return tokens
