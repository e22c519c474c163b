"""Input and output entities owned by an FfmpegCommand.

Each entity holds the ArgumentLists its option setters write to. The
command assembler reads them back in a fixed order when building argv.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any

from ffdrive.core.arguments import ArgumentList
from ffdrive.exceptions import ConfigurationError

INPUT_PIPE = "pipe:0"
OUTPUT_PIPE = "pipe:1"

Source = str | Path | IO[bytes]


def is_readable_stream(value: object) -> bool:
    return callable(getattr(value, "read", None))


def is_writable_stream(value: object) -> bool:
    return callable(getattr(value, "write", None))


def validate_source(source: object) -> Source:
    """Check that a value can be used as an input.

    Raises:
        ConfigurationError: If it is neither a path nor a readable stream.
    """
    if isinstance(source, (str, os.PathLike)):
        if not str(source):
            raise ConfigurationError("Input path must not be empty")
        return source  # type: ignore[return-value]
    if is_readable_stream(source):
        return source  # type: ignore[return-value]
    raise ConfigurationError(f"Invalid input: {source!r}")


def validate_target(target: object) -> Source:
    """Check that a value can be used as an output.

    Raises:
        ConfigurationError: If it is neither a path nor a writable stream.
    """
    if isinstance(target, (str, os.PathLike)):
        if not str(target):
            raise ConfigurationError("Output path must not be empty")
        return target  # type: ignore[return-value]
    if is_writable_stream(target):
        return target  # type: ignore[return-value]
    raise ConfigurationError(f"Invalid output: {target!r}")


@dataclass
class Input:
    """One ffmpeg input: a file path or a readable stream plus its options."""

    source: Source
    options: ArgumentList = field(default_factory=ArgumentList)

    @property
    def is_stream(self) -> bool:
        return not isinstance(self.source, (str, os.PathLike))

    @property
    def origin(self) -> str:
        """Token following -i."""
        return INPUT_PIPE if self.is_stream else os.fspath(self.source)

    def clone(self) -> Input:
        """Copy this input. Stream sources are shared, not duplicated."""
        return Input(source=self.source, options=self.options.clone())


@dataclass
class SizeData:
    """Requested output geometry, combined into size filters."""

    size: str | None = None
    aspect: float | None = None
    pad_color: str | None = None
    """Pad color when auto-padding is enabled, else None."""


@dataclass
class Output:
    """One ffmpeg output and its option groups.

    Attributes:
        target: File path, writable stream, or None for the default
            target-less output.
        pipe_options: Stream output options; {"end": True} closes the
            stream once the run is over.
        audio: Audio codec/bitrate/channel options.
        audio_filters: Rendered audio filters, joined into -filter:a.
        video: Video codec/bitrate/rate options.
        video_filters: Rendered video filters, joined into -filter:v.
        size_filters: Rendered scale/pad filters, appended after
            video_filters.
        options: Generic output options (format, seek, duration, custom).
        maps: -map options.
        size_data: Geometry state the size filters are derived from.
        flags: Post-processing toggles ("flvmeta").
    """

    target: Source | None = None
    pipe_options: dict[str, Any] = field(default_factory=dict)
    audio: ArgumentList = field(default_factory=ArgumentList)
    audio_filters: ArgumentList = field(default_factory=ArgumentList)
    video: ArgumentList = field(default_factory=ArgumentList)
    video_filters: ArgumentList = field(default_factory=ArgumentList)
    size_filters: ArgumentList = field(default_factory=ArgumentList)
    options: ArgumentList = field(default_factory=ArgumentList)
    maps: ArgumentList = field(default_factory=ArgumentList)
    size_data: SizeData = field(default_factory=SizeData)
    flags: dict[str, bool] = field(default_factory=lambda: {"flvmeta": False})

    @property
    def is_stream(self) -> bool:
        return self.target is not None and not isinstance(
            self.target, (str, os.PathLike)
        )

    @property
    def is_file(self) -> bool:
        return self.target is not None and not self.is_stream

    @property
    def target_token(self) -> str | None:
        """Final argv token for this output, or None when target-less."""
        if self.target is None:
            return None
        return OUTPUT_PIPE if self.is_stream else os.fspath(self.target)

    def clone(self) -> Output:
        """Copy this output. Stream targets are shared, not duplicated."""
        return Output(
            target=self.target,
            pipe_options=dict(self.pipe_options),
            audio=self.audio.clone(),
            audio_filters=self.audio_filters.clone(),
            video=self.video.clone(),
            video_filters=self.video_filters.clone(),
            size_filters=self.size_filters.clone(),
            options=self.options.clone(),
            maps=self.maps.clone(),
            size_data=SizeData(
                size=self.size_data.size,
                aspect=self.size_data.aspect,
                pad_color=self.size_data.pad_color,
            ),
            flags=dict(self.flags),
        )
