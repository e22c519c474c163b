"""Video option setters."""

from ffdrive.command.audio import normalize_bitrate
from ffdrive.command.models import Output
from ffdrive.command.validation import format_positive
from ffdrive.core.filters import FilterLike, make_filter_strings
from ffdrive.exceptions import ConfigurationError

# Rate-control buffer used for constant bitrate encodes
CONSTANT_BITRATE_BUFSIZE = "3M"


def disable_video(output: Output) -> None:
    """Drop video from the output (-vn), discarding video settings."""
    output.video.clear()
    output.video_filters.clear()
    output.video.add("-vn")


def set_video_codec(output: Output, codec: str) -> None:
    """Set the video codec (-vcodec)."""
    if not codec:
        raise ConfigurationError("Video codec must not be empty")
    output.video.replace("-vcodec", codec)


def set_video_bitrate(
    output: Output, bitrate: str | int | float, constant: bool = False
) -> None:
    """Set the video bitrate in kbps (-b:v).

    With constant=True, -maxrate and -minrate are pinned to the same value
    and a rate-control buffer is set, forcing a constant bitrate.
    """
    value = normalize_bitrate(bitrate)
    output.video.replace("-b:v", value)
    output.video.remove("-maxrate", 1)
    output.video.remove("-minrate", 1)
    output.video.remove("-bufsize", 1)
    if constant:
        output.video.add(
            "-maxrate", value, "-minrate", value, "-bufsize", CONSTANT_BITRATE_BUFSIZE
        )


def set_fps(output: Output, fps: float) -> None:
    """Set the output frame rate (-r)."""
    output.video.replace("-r", format_positive(fps, "Output FPS"))


def set_frames(output: Output, frames: int) -> None:
    """Only encode this many video frames (-vframes)."""
    output.video.replace(
        "-vframes", format_positive(frames, "Frame count", integer=True)
    )


def add_video_filters(output: Output, filters: list[FilterLike]) -> None:
    """Append filters to the output's video chain."""
    if not filters:
        raise ConfigurationError("At least one video filter is required")
    output.video_filters.add(make_filter_strings(filters))
