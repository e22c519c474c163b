"""Core building blocks.

This package contains the dependency-free pieces the command builder and
process driver are made of: argument lists, filter rendering, timemark
conversion, bounded line retention and a one-shot subprocess runner.
"""

from ffdrive.core.arguments import ArgumentList
from ffdrive.core.filters import (
    FilterSpec,
    make_filter_strings,
    normalize_stream_label,
    render_filter,
)
from ffdrive.core.ring import LineSplitter, LinesRing
from ffdrive.core.subprocess_utils import run_command
from ffdrive.core.timemark import (
    format_seek_value,
    seconds_to_timemark,
    timemark_to_seconds,
)

__all__ = [
    "ArgumentList",
    "FilterSpec",
    "LineSplitter",
    "LinesRing",
    "format_seek_value",
    "make_filter_strings",
    "normalize_stream_label",
    "render_filter",
    "run_command",
    "seconds_to_timemark",
    "timemark_to_seconds",
]
