"""Process execution for ffmpeg runs.

ProcessDriver owns one child process from spawn to a terminal RunState and
reports what happened through RunCallbacks and a RunResult.
"""

from ffdrive.executor.interface import (
    TERMINAL_STATES,
    RunCallbacks,
    RunResult,
    RunState,
)
from ffdrive.executor.process import DEFAULT_KILL_SIGNAL, ProcessDriver

__all__ = [
    "DEFAULT_KILL_SIGNAL",
    "TERMINAL_STATES",
    "ProcessDriver",
    "RunCallbacks",
    "RunResult",
    "RunState",
]
