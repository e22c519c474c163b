"""Generic output option setters."""

from ffdrive.command.models import Output
from ffdrive.core.filters import normalize_stream_label
from ffdrive.core.timemark import format_seek_value
from ffdrive.exceptions import ConfigurationError


def set_seek(output: Output, seek: str | float) -> None:
    """Seek the output (-ss after the inputs): decode, then discard."""
    output.options.replace("-ss", format_seek_value(seek))


def set_duration(output: Output, duration: str | float) -> None:
    """Limit the output duration (-t)."""
    output.options.replace("-t", format_seek_value(duration))


def set_format(output: Output, fmt: str) -> None:
    """Force the output container format (-f)."""
    if not fmt:
        raise ConfigurationError("Output format must not be empty")
    output.options.replace("-f", fmt)


def add_map(output: Output, spec: str) -> None:
    """Add a stream to the output (-map).

    Filtergraph labels are bracketed ("out" becomes "[out]"); input
    stream specifiers such as "0:a" are passed as-is.
    """
    if not spec:
        raise ConfigurationError("Map specifier must not be empty")
    output.maps.add("-map", normalize_stream_label(spec))


def enable_flvmeta(output: Output) -> None:
    """Update FLV metadata with flvmeta/flvtool2 once the run succeeds."""
    output.flags["flvmeta"] = True
