"""Exception hierarchy for ffdrive.

All errors raised by the package derive from FfdriveError so callers can
catch everything with a single except clause. Configuration problems are
raised synchronously by builder calls; process outcomes are reported
through run callbacks and the RunResult.
"""

from __future__ import annotations


class FfdriveError(Exception):
    """Base exception for all ffdrive errors."""


class ConfigurationError(FfdriveError, ValueError):
    """Raised when a builder call receives an invalid argument.

    Examples are a malformed size string, a second input stream or an
    option targeting an input that was never added.
    """


class TimemarkError(ConfigurationError):
    """Raised when a timemark string cannot be converted to seconds.

    Attributes:
        timemark: The offending value.
    """

    def __init__(self, timemark: object, reason: str = "malformed timemark") -> None:
        self.timemark = timemark
        super().__init__(f"Invalid timemark {timemark!r}: {reason}")


class PresetError(ConfigurationError):
    """Raised when a preset cannot be found, parsed or validated."""


class CapabilityError(ConfigurationError):
    """Raised when a requested codec or format is not supported by ffmpeg.

    Attributes:
        kind: Capability kind ("format", "audio codec", ...).
        name: The unavailable name.
    """

    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"{kind.capitalize()} {name} is not available")


class SpawnError(FfdriveError):
    """Raised when the ffmpeg binary cannot be located or launched.

    Attributes:
        tool: Name or path of the tool that failed to start.
    """

    def __init__(self, tool: str, message: str | None = None) -> None:
        self.tool = tool
        super().__init__(message or f"Cannot find or launch {tool}")


class ProcessError(FfdriveError):
    """Raised when ffmpeg exits with a non-zero status or is killed.

    Attributes:
        exit_code: Process return code, or None when killed by a signal.
        signal: Signal number that terminated the process, if any.
        stderr_tail: Most recent diagnostic lines retained by the ring.
    """

    def __init__(
        self,
        exit_code: int | None,
        signal: int | None = None,
        banner: str = "",
        stderr_tail: str = "",
        tool: str = "ffmpeg",
    ) -> None:
        self.exit_code = exit_code
        self.signal = signal
        self.banner = banner
        self.stderr_tail = stderr_tail
        if signal is not None:
            message = f"{tool} was killed with signal {signal}"
        else:
            message = f"{tool} exited with code {exit_code}"
        detail = banner or stderr_tail
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ProcessTimeoutError(FfdriveError, TimeoutError):
    """Raised when a run exceeds its configured timeout.

    Attributes:
        timeout: Configured timeout in seconds.
        elapsed: Seconds elapsed when the process was killed.
    """

    def __init__(self, timeout: float, elapsed: float) -> None:
        self.timeout = timeout
        self.elapsed = elapsed
        super().__init__(
            f"Process ran into a timeout ({timeout:g}s, killed after {elapsed:.1f}s)"
        )


class StreamError(FfdriveError):
    """Raised when the caller's output stream rejects ffmpeg's output.

    The child is killed and the run ends FAILED with this error.
    """


class RunCancelledError(FfdriveError):
    """Notice passed to on_cancel when a run is cancelled by the caller.

    This is never delivered to on_error.
    """

    def __init__(self, signal_name: str = "SIGKILL") -> None:
        self.signal_name = signal_name
        super().__init__(f"ffmpeg was cancelled with {signal_name}")
