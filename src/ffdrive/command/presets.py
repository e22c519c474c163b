"""Presets: named bundles of output settings.

A preset is a callable that configures a command through its public
setters. Three presets are built in (divx, flashvideo, podcast). Further
presets are YAML files named <preset>.yaml in the presets directory; a
file with the same name as a built-in preset takes precedence.

Example YAML preset:

    format: mp4
    video:
      codec: libx264
      bitrate: 1000k
      size: 1280x?
    audio:
      codec: aac
      bitrate: 128k
    output_options:
      - -movflags +faststart
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ffdrive.command.audio import normalize_bitrate
from ffdrive.command.videosize import parse_aspect, validate_size
from ffdrive.exceptions import PresetError

if TYPE_CHECKING:
    from ffdrive.command.builder import FfmpegCommand

logger = logging.getLogger(__name__)

PresetFunc = Callable[["FfmpegCommand"], Any]

_PRESET_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")
PRESET_SUFFIXES = (".yaml", ".yml")


# =============================================================================
# Built-in presets
# =============================================================================


def divx(command: FfmpegCommand) -> None:
    """DivX-compatible AVI."""
    (
        command.format("avi")
        .video_bitrate("1024k")
        .video_codec("mpeg4")
        .size("720x?")
        .audio_bitrate("128k")
        .audio_channels(2)
        .audio_codec("libmp3lame")
        .output_options(["-vtag DIVX"])
    )


def flashvideo(command: FfmpegCommand) -> None:
    """FLV with H.264 video and metadata injection."""
    (
        command.format("flv")
        .flvmeta()
        .size("320x?")
        .video_bitrate("512k")
        .video_codec("libx264")
        .fps(24)
        .audio_bitrate("96k")
        .audio_codec("aac")
        .audio_frequency(22050)
        .audio_channels(2)
    )


def podcast(command: FfmpegCommand) -> None:
    """Small iPod-compatible M4V."""
    (
        command.format("m4v")
        .video_bitrate("512k")
        .video_codec("libx264")
        .size("320x176")
        .audio_bitrate("128k")
        .audio_codec("aac")
        .audio_channels(1)
        .output_options(
            [
                "-flags",
                "+loop",
                "-cmp",
                "+chroma",
                "-partitions",
                "+parti4x4+partp8x8+partb8x8",
                "-flags2",
                "+mixed_refs",
                "-me_method umh",
                "-subq 5",
                "-bufsize 2M",
                "-rc_eq 'blurCplx^(1-qComp)'",
                "-qcomp 0.6",
                "-qmin 10",
                "-qmax 51",
                "-qdiff 4",
                "-level 13",
            ]
        )
    )


BUILTIN_PRESETS: dict[str, PresetFunc] = {
    "divx": divx,
    "flashvideo": flashvideo,
    "podcast": podcast,
}


# =============================================================================
# YAML presets
# =============================================================================


class AudioPresetModel(BaseModel):
    """Pydantic model for the audio section of a preset."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    disabled: bool = False
    codec: str | None = None
    bitrate: str | int | None = None
    channels: int | None = Field(default=None, gt=0)
    frequency: int | None = Field(default=None, gt=0)
    quality: float | None = None
    filters: list[str] = Field(default_factory=list)

    @field_validator("bitrate")
    @classmethod
    def validate_bitrate(cls, v: str | int | None) -> str | int | None:
        """Reject bitrates the bitrate setters would refuse."""
        if v is not None:
            normalize_bitrate(v)
        return v


class VideoPresetModel(BaseModel):
    """Pydantic model for the video section of a preset."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    disabled: bool = False
    codec: str | None = None
    bitrate: str | int | None = None
    constant_bitrate: bool = False
    fps: float | None = Field(default=None, gt=0)
    frames: int | None = Field(default=None, gt=0)
    filters: list[str] = Field(default_factory=list)
    size: str | None = None
    aspect: str | float | None = None
    autopad: bool | str = False
    keep_pixel_aspect: bool = False

    @field_validator("bitrate")
    @classmethod
    def validate_bitrate(cls, v: str | int | None) -> str | int | None:
        """Reject bitrates the bitrate setters would refuse."""
        if v is not None:
            normalize_bitrate(v)
        return v

    @field_validator("size")
    @classmethod
    def validate_size_string(cls, v: str | None) -> str | None:
        """Reject size strings the size setter would refuse."""
        return validate_size(v) if v is not None else None

    @field_validator("aspect")
    @classmethod
    def validate_aspect(cls, v: str | float | None) -> str | float | None:
        """Reject malformed aspect ratios."""
        if v is not None:
            parse_aspect(v)
        return v


class PresetModel(BaseModel):
    """Pydantic model for a YAML preset file."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    description: str | None = None
    format: str | None = None
    audio: AudioPresetModel | None = None
    video: VideoPresetModel | None = None
    flvmeta: bool = False
    output_options: list[str] = Field(default_factory=list)

    def apply(self, command: FfmpegCommand) -> None:
        """Configure the command's current output with this preset."""
        if self.format:
            command.format(self.format)
        if self.audio is not None:
            _apply_audio(command, self.audio)
        if self.video is not None:
            _apply_video(command, self.video)
        if self.flvmeta:
            command.flvmeta()
        if self.output_options:
            command.output_options(self.output_options)


def _apply_audio(command: FfmpegCommand, audio: AudioPresetModel) -> None:
    if audio.disabled:
        command.no_audio()
        return
    if audio.codec:
        command.audio_codec(audio.codec)
    if audio.bitrate is not None:
        command.audio_bitrate(audio.bitrate)
    if audio.channels is not None:
        command.audio_channels(audio.channels)
    if audio.frequency is not None:
        command.audio_frequency(audio.frequency)
    if audio.quality is not None:
        command.audio_quality(audio.quality)
    if audio.filters:
        command.audio_filters(audio.filters)


def _apply_video(command: FfmpegCommand, video: VideoPresetModel) -> None:
    if video.disabled:
        command.no_video()
        return
    if video.codec:
        command.video_codec(video.codec)
    if video.bitrate is not None:
        command.video_bitrate(video.bitrate, constant=video.constant_bitrate)
    if video.fps is not None:
        command.fps(video.fps)
    if video.frames is not None:
        command.frames(video.frames)
    if video.keep_pixel_aspect:
        command.keep_pixel_aspect()
    if video.filters:
        command.video_filters(video.filters)
    if video.size:
        command.size(video.size)
    if video.aspect is not None:
        command.aspect(video.aspect)
    if video.autopad:
        command.autopad(video.autopad)


def _format_validation_error(error: ValidationError) -> str:
    """Format a Pydantic validation error into a user-friendly message."""
    errors = error.errors()
    if errors:
        first_error = errors[0]
        loc = ".".join(str(x) for x in first_error.get("loc", []))
        msg = first_error.get("msg", str(error))
        if loc:
            return f"{loc}: {msg}"
        return msg
    return str(error)


def load_preset_file(path: Path) -> PresetModel:
    """Load and validate a YAML preset.

    Raises:
        PresetError: If the file cannot be read, is not valid YAML or does
            not match the preset schema.
    """
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise PresetError(f"Cannot read preset {path}: {e}") from e
    except yaml.YAMLError as e:
        raise PresetError(f"Invalid YAML syntax in preset {path}: {e}") from e

    if data is None:
        raise PresetError(f"Preset file is empty: {path}")
    if not isinstance(data, dict):
        raise PresetError(f"Preset file must be a YAML mapping: {path}")

    try:
        return PresetModel.model_validate(data)
    except ValidationError as e:
        raise PresetError(
            f"Invalid preset {path}: {_format_validation_error(e)}"
        ) from e


def find_preset_file(name: str, directory: Path | None) -> Path | None:
    if directory is None:
        return None
    for suffix in PRESET_SUFFIXES:
        candidate = directory / f"{name}{suffix}"
        if candidate.is_file():
            return candidate
    return None


def resolve_preset(name: str, directory: Path | None = None) -> PresetFunc:
    """Look up a preset by name.

    Args:
        name: Preset name, without extension.
        directory: Directory holding YAML presets, if any.

    Returns:
        Callable applying the preset to a command.

    Raises:
        PresetError: If no preset with this name exists or it is invalid.
    """
    if not _PRESET_NAME_RE.match(name):
        raise PresetError(f"Invalid preset name: {name!r}")

    path = find_preset_file(name, directory)
    if path is not None:
        logger.debug("Loading preset %s from %s", name, path)
        return load_preset_file(path).apply

    builtin = BUILTIN_PRESETS.get(name)
    if builtin is not None:
        return builtin

    raise PresetError(f"Preset {name} could not be loaded")
