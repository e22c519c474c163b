"""ffdrive: build ffmpeg command lines, run them and follow their progress."""

from ffdrive.command import FfmpegCommand
from ffdrive.core import (
    ArgumentList,
    FilterSpec,
    seconds_to_timemark,
    timemark_to_seconds,
)
from ffdrive.exceptions import (
    CapabilityError,
    ConfigurationError,
    FfdriveError,
    PresetError,
    ProcessError,
    ProcessTimeoutError,
    RunCancelledError,
    SpawnError,
    StreamError,
    TimemarkError,
)
from ffdrive.executor import RunCallbacks, RunResult, RunState
from ffdrive.tools import CodecData, ProgressEvent

__version__ = "0.1.0"

__all__ = [
    "ArgumentList",
    "CapabilityError",
    "CodecData",
    "ConfigurationError",
    "FfdriveError",
    "FfmpegCommand",
    "FilterSpec",
    "PresetError",
    "ProcessError",
    "ProcessTimeoutError",
    "ProgressEvent",
    "RunCallbacks",
    "RunCancelledError",
    "RunResult",
    "RunState",
    "SpawnError",
    "StreamError",
    "TimemarkError",
    "__version__",
    "seconds_to_timemark",
    "timemark_to_seconds",
]
