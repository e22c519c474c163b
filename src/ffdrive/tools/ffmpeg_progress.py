"""FFmpeg progress parsing utilities.

This module parses the live stats lines ffmpeg writes to stderr:

    frame= 1234 fps= 30 q=28.0 size=  2048kB time=00:01:23.45 bitrate=5000.0kbits/s speed=2.0x

Every key is optional. Audio-only encodes, for example, report no frame or
fps values. Values that cannot be parsed are logged at debug level and
left unset rather than failing the run.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from ffdrive.core.timemark import timemark_to_seconds
from ffdrive.exceptions import TimemarkError

logger = logging.getLogger(__name__)


@dataclass
class ProgressEvent:
    """Parsed FFmpeg progress line.

    Attributes:
        frames: Frames processed so far.
        current_fps: Current processing rate in frames per second.
        target_size: Output size so far in kilobytes.
        timemark: Output position as reported by ffmpeg ("00:01:23.45").
        out_time_seconds: Output position in seconds.
        current_kbps: Current output bitrate in kbit/s.
        speed: Processing speed as a multiple of realtime.
        percent: Completion percentage when the input duration is known.
    """

    frames: int | None = None
    current_fps: float | None = None
    target_size: int | None = None
    timemark: str | None = None
    out_time_seconds: float | None = None
    current_kbps: float | None = None
    speed: float | None = None
    percent: float | None = None

    def get_percent(self, duration_seconds: float | None) -> float | None:
        """Calculate progress percentage based on duration.

        Args:
            duration_seconds: Total duration of the input in seconds.

        Returns:
            Progress percentage (0.0 to 100.0), or None if unknown.
        """
        if duration_seconds is None or duration_seconds <= 0:
            return None
        if self.out_time_seconds is None:
            return None
        return min(100.0, (self.out_time_seconds / duration_seconds) * 100)


# Keys whose presence marks a line as a stats line
_PROGRESS_MARKERS = ("frame=", "time=")

# Collapses "frame=  120" into "frame=120" before splitting on whitespace
_EQUALS_SPACING_RE = re.compile(r"=\s+")

_SIZE_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*(kB|KiB|MB|MiB|B)?$")
_BITRATE_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*([kM])bits/s$")
_SPEED_RE = re.compile(r"^(\d+(?:\.\d+)?(?:e[+-]?\d+)?)x$")

_SIZE_FACTORS = {None: 1, "kB": 1, "KiB": 1, "MB": 1024, "MiB": 1024, "B": 1 / 1024}


def split_progress_pairs(line: str) -> dict[str, str]:
    """Split a stats line into its key=value pairs.

    Args:
        line: A line from FFmpeg stderr.

    Returns:
        Mapping of keys to raw string values, in line order.
    """
    pairs: dict[str, str] = {}
    for item in _EQUALS_SPACING_RE.sub("=", line).strip().split():
        key, sep, value = item.partition("=")
        if sep and key:
            pairs[key] = value
    return pairs


def _parse_size(value: str) -> int | None:
    match = _SIZE_RE.match(value)
    if not match:
        return None
    return int(float(match.group(1)) * _SIZE_FACTORS[match.group(2)])


def _parse_bitrate(value: str) -> float | None:
    match = _BITRATE_RE.match(value)
    if not match:
        return None
    kbps = float(match.group(1))
    return kbps * 1000 if match.group(2) == "M" else kbps


def _parse_speed(value: str) -> float | None:
    match = _SPEED_RE.match(value)
    return float(match.group(1)) if match else None


def _debug_unparsed(key: str, value: str) -> None:
    if value != "N/A":
        logger.debug("Ignoring unparseable progress value %s=%s", key, value)


def parse_stderr_progress(line: str) -> ProgressEvent | None:
    """Parse an FFmpeg stderr stats line.

    Args:
        line: A line from FFmpeg stderr.

    Returns:
        Parsed ProgressEvent, or None if the line is not a stats line.
    """
    if not any(marker in line for marker in _PROGRESS_MARKERS):
        return None

    pairs = split_progress_pairs(line)
    if "frame" not in pairs and "time" not in pairs:
        return None

    result = ProgressEvent()

    if "frame" in pairs:
        try:
            result.frames = int(pairs["frame"])
        except ValueError:
            _debug_unparsed("frame", pairs["frame"])

    if "fps" in pairs:
        try:
            result.current_fps = float(pairs["fps"])
        except ValueError:
            _debug_unparsed("fps", pairs["fps"])

    size = pairs.get("size", pairs.get("Lsize"))
    if size is not None:
        result.target_size = _parse_size(size)
        if result.target_size is None:
            _debug_unparsed("size", size)

    if "time" in pairs:
        try:
            result.out_time_seconds = timemark_to_seconds(pairs["time"])
            result.timemark = pairs["time"]
        except TimemarkError as e:
            logger.debug("No progress time update: %s", e)

    if "bitrate" in pairs:
        result.current_kbps = _parse_bitrate(pairs["bitrate"])
        if result.current_kbps is None:
            _debug_unparsed("bitrate", pairs["bitrate"])

    if "speed" in pairs:
        result.speed = _parse_speed(pairs["speed"])
        if result.speed is None:
            _debug_unparsed("speed", pairs["speed"])

    return result
