"""Audio option setters.

Functions here write to an Output's audio and audio_filters groups. Every
single-valued setter replaces the previous value for its flag.
"""

import re

from ffdrive.command.models import Output
from ffdrive.command.validation import format_positive
from ffdrive.core.filters import FilterLike, make_filter_strings
from ffdrive.exceptions import ConfigurationError

# "128", "128k", "96.5k"
_BITRATE_RE = re.compile(r"^(\d+(?:\.\d+)?)k?$", re.IGNORECASE)


def normalize_bitrate(bitrate: str | int | float) -> str:
    """Return a bitrate in kbps with the "k" suffix ffmpeg expects.

    Raises:
        ConfigurationError: If the value is not a positive kbps amount.
    """
    if isinstance(bitrate, bool):
        raise ConfigurationError(f"Invalid bitrate: {bitrate!r}")
    match = _BITRATE_RE.match(str(bitrate).strip())
    if not match or float(match.group(1)) <= 0:
        raise ConfigurationError(f"Invalid bitrate: {bitrate!r}")
    return f"{match.group(1)}k"


def disable_audio(output: Output) -> None:
    """Drop audio from the output (-an), discarding audio settings."""
    output.audio.clear()
    output.audio_filters.clear()
    output.audio.add("-an")


def set_audio_codec(output: Output, codec: str) -> None:
    """Set the audio codec (-acodec)."""
    if not codec:
        raise ConfigurationError("Audio codec must not be empty")
    output.audio.replace("-acodec", codec)


def set_audio_bitrate(output: Output, bitrate: str | int | float) -> None:
    """Set the audio bitrate in kbps (-b:a)."""
    output.audio.replace("-b:a", normalize_bitrate(bitrate))


def set_audio_channels(output: Output, channels: int) -> None:
    """Set the number of audio channels (-ac)."""
    output.audio.replace(
        "-ac", format_positive(channels, "Audio channels", integer=True)
    )


def set_audio_frequency(output: Output, frequency: int) -> None:
    """Set the audio sample rate in Hz (-ar)."""
    output.audio.replace(
        "-ar", format_positive(frequency, "Audio frequency", integer=True)
    )


def set_audio_quality(output: Output, quality: float) -> None:
    """Set the codec-specific audio quality factor (-aq)."""
    if isinstance(quality, bool):
        raise ConfigurationError(f"Invalid audio quality: {quality!r}")
    try:
        float(quality)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid audio quality: {quality!r}") from e
    output.audio.replace("-aq", str(quality))


def add_audio_filters(output: Output, filters: list[FilterLike]) -> None:
    """Append filters to the output's audio chain."""
    if not filters:
        raise ConfigurationError("At least one audio filter is required")
    output.audio_filters.add(make_filter_strings(filters))
