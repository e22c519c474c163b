"""Run states, callbacks and results for the process driver."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from ffdrive.exceptions import FfdriveError, RunCancelledError
from ffdrive.tools.diagnostics import CodecData
from ffdrive.tools.ffmpeg_metrics import FFmpegMetricsSummary
from ffdrive.tools.ffmpeg_progress import ProgressEvent


class RunState(Enum):
    """Lifecycle of one ffmpeg run."""

    IDLE = "idle"
    SPAWNING = "spawning"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset(
    {RunState.SUCCEEDED, RunState.FAILED, RunState.TIMED_OUT, RunState.CANCELLED}
)


@dataclass
class RunCallbacks:
    """Caller hooks invoked synchronously while a run is driven.

    Every hook is optional. on_error, on_end and on_cancel are terminal:
    exactly one of them fires per run, and nothing fires after it.
    Exceptions raised by hooks are logged and do not abort the run.
    """

    on_start: Callable[[list[str]], None] | None = None
    """Called with the full argv once the child has been spawned."""

    on_codec_data: Callable[[CodecData], None] | None = None
    """Called at most once, before the first progress event."""

    on_progress: Callable[[ProgressEvent], None] | None = None
    """Called for every recognized stats line."""

    on_stderr: Callable[[str], None] | None = None
    """Called for every diagnostic line, recognized or not."""

    on_error: Callable[[FfdriveError, str, str], None] | None = None
    """Called with (error, stdout tail, stderr tail) on failure or timeout."""

    on_end: Callable[[str, str], None] | None = None
    """Called with (stdout tail, stderr tail) on success."""

    on_cancel: Callable[[RunCancelledError], None] | None = None
    """Called with the cancellation notice when the run is cancelled."""


@dataclass(frozen=True)
class RunResult:
    """Outcome of a finished run.

    This is a frozen dataclass; callbacks have already fired by the time
    it is returned.
    """

    state: RunState
    """Terminal state of the run."""

    argv: tuple[str, ...] = ()
    """Command line that was (or would have been) executed."""

    returncode: int | None = None
    """Exit status, negative when killed by a signal on POSIX.

    None when the child never started or the run was cancelled or timed out.
    """

    stdout: str = ""
    """Retained stdout lines."""

    stderr: str = ""
    """Retained diagnostic lines."""

    error: FfdriveError | None = None
    """Terminal error (including the cancellation notice), if any."""

    codec_data: CodecData | None = None
    """Codec information detected during the run."""

    metrics: FFmpegMetricsSummary | None = None
    """Aggregated progress metrics."""

    elapsed: float = 0.0
    """Wall-clock seconds between spawn and termination."""

    @property
    def succeeded(self) -> bool:
        return self.state is RunState.SUCCEEDED
