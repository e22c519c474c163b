"""External tool location, capability enumeration and output parsing.

This module groups everything ffdrive knows about the ffmpeg binary
itself: where to find it, what it supports, and how to read the
diagnostic text it prints while running.
"""

from ffdrive.tools.capabilities import (
    available_codecs,
    available_encoders,
    available_filters,
    available_formats,
    check_capabilities,
    clear_capabilities_cache,
    get_capabilities,
)
from ffdrive.tools.detection import (
    clear_tool_paths,
    find_flvtool,
    find_tool,
    require_tool,
    set_tool_path,
)
from ffdrive.tools.diagnostics import (
    CodecData,
    DiagnosticsParser,
    InputCodecInfo,
    extract_error,
)

# FFmpeg progress parsing
from ffdrive.tools.ffmpeg_metrics import FFmpegMetricsAggregator, FFmpegMetricsSummary
from ffdrive.tools.ffmpeg_progress import ProgressEvent, parse_stderr_progress
from ffdrive.tools.models import (
    CodecInfo,
    EncoderInfo,
    FFmpegCapabilities,
    FilterInfo,
    FormatInfo,
    StreamType,
)

__all__ = [
    # Detection
    "clear_tool_paths",
    "find_flvtool",
    "find_tool",
    "require_tool",
    "set_tool_path",
    # Capabilities
    "CodecInfo",
    "EncoderInfo",
    "FFmpegCapabilities",
    "FilterInfo",
    "FormatInfo",
    "StreamType",
    "available_codecs",
    "available_encoders",
    "available_filters",
    "available_formats",
    "check_capabilities",
    "clear_capabilities_cache",
    "get_capabilities",
    # Diagnostics
    "CodecData",
    "DiagnosticsParser",
    "FFmpegMetricsAggregator",
    "FFmpegMetricsSummary",
    "InputCodecInfo",
    "ProgressEvent",
    "extract_error",
    "parse_stderr_progress",
]
