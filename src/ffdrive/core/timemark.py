"""Timemark conversion utilities.

ffmpeg reports progress and accepts seek positions as timemarks, either in
the canonical [hh:]mm:ss[.fraction] form or as a bare number of seconds.
"""

from __future__ import annotations

import re

from ffdrive.exceptions import TimemarkError

# [hh:]mm:ss[.fraction]; hours are unbounded (no wrapping to days)
_CANONICAL_RE = re.compile(r"^(?:(\d+):)?(\d+):(\d+(?:\.\d*)?)$")

# 123, 123.45, 123.45s
_SECONDS_RE = re.compile(r"^(\d+(?:\.\d*)?|\.\d+)s?$")


def timemark_to_seconds(timemark: str | int | float) -> float:
    """Convert a timemark to seconds.

    Args:
        timemark: "[hh:]mm:ss[.fraction]", "123.45", "123.45s" or a number.

    Returns:
        Number of seconds as a float.

    Raises:
        TimemarkError: If the value is negative or malformed.

    Examples:
        >>> timemark_to_seconds("01:02:03.450")
        3723.45
        >>> timemark_to_seconds("90.5s")
        90.5
    """
    if isinstance(timemark, bool):
        raise TimemarkError(timemark, "not a duration")
    if isinstance(timemark, (int, float)):
        if timemark < 0:
            raise TimemarkError(timemark, "negative duration")
        return float(timemark)

    text = str(timemark).strip()
    if text.startswith("-"):
        raise TimemarkError(timemark, "negative duration")

    match = _SECONDS_RE.match(text)
    if match:
        return float(match.group(1))

    match = _CANONICAL_RE.match(text)
    if not match:
        raise TimemarkError(timemark)

    hours = int(match.group(1)) if match.group(1) is not None else 0
    minutes = int(match.group(2))
    seconds = float(match.group(3))
    if seconds >= 60:
        raise TimemarkError(timemark, "seconds out of range")
    if match.group(1) is not None and minutes >= 60:
        raise TimemarkError(timemark, "minutes out of range")

    return hours * 3600 + minutes * 60 + seconds


def seconds_to_timemark(seconds: float) -> str:
    """Format seconds as a zero-padded hh:mm:ss.mmm timemark.

    Hours are not wrapped, so 432000 seconds renders as "120:00:00.000".

    Raises:
        TimemarkError: If seconds is negative.
    """
    if seconds < 0:
        raise TimemarkError(seconds, "negative duration")
    total_ms = round(seconds * 1000)
    hours, remainder = divmod(total_ms, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    secs, millis = divmod(remainder, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"


def format_seek_value(value: str | int | float) -> str:
    """Validate a seek/duration value and return it as an argument token.

    Numbers are passed as seconds; strings are kept verbatim once they are
    known to parse, so the exact text the caller wrote reaches ffmpeg.
    """
    timemark_to_seconds(value)
    return value if isinstance(value, str) else str(value)
