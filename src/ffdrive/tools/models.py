"""Data models for ffmpeg capability enumeration.

Each model mirrors one of ffmpeg's listing commands (-filters, -codecs,
-formats, -encoders).
"""

from dataclasses import dataclass, field
from enum import Enum


class StreamType(Enum):
    """Kind of stream a codec, encoder or filter pad handles."""

    AUDIO = "audio"
    VIDEO = "video"
    SUBTITLE = "subtitle"
    DATA = "data"
    ATTACHMENT = "attachment"
    DYNAMIC = "dynamic"
    NONE = "none"


# Type letters used in ffmpeg listings
STREAM_TYPE_CODES: dict[str, StreamType] = {
    "A": StreamType.AUDIO,
    "V": StreamType.VIDEO,
    "S": StreamType.SUBTITLE,
    "D": StreamType.DATA,
    "T": StreamType.ATTACHMENT,
    "N": StreamType.DYNAMIC,
    "|": StreamType.NONE,
}


@dataclass
class FilterInfo:
    """A filter listed by ffmpeg -filters."""

    description: str
    input: StreamType
    multiple_inputs: bool
    output: StreamType
    multiple_outputs: bool


@dataclass
class CodecInfo:
    """A codec listed by ffmpeg -codecs."""

    type: StreamType
    description: str
    can_decode: bool = False
    can_encode: bool = False
    intra_frame_only: bool = False
    is_lossy: bool = False
    is_lossless: bool = False


@dataclass
class FormatInfo:
    """A container format listed by ffmpeg -formats."""

    description: str
    can_demux: bool
    can_mux: bool


@dataclass
class EncoderInfo:
    """An encoder listed by ffmpeg -encoders."""

    type: StreamType
    description: str
    frame_mt: bool = False
    slice_mt: bool = False
    experimental: bool = False
    draw_horiz_band: bool = False
    direct_rendering: bool = False


@dataclass
class FFmpegCapabilities:
    """Everything one ffmpeg binary reports it can do."""

    filters: dict[str, FilterInfo] = field(default_factory=dict)
    codecs: dict[str, CodecInfo] = field(default_factory=dict)
    formats: dict[str, FormatInfo] = field(default_factory=dict)
    encoders: dict[str, EncoderInfo] = field(default_factory=dict)

    def can_mux(self, name: str) -> bool:
        """Check if an output format is available."""
        return any(info.can_mux for info in self._formats(name))

    def can_demux(self, name: str) -> bool:
        """Check if an input format is available."""
        return any(info.can_demux for info in self._formats(name))

    def can_encode(self, name: str, stream_type: StreamType) -> bool:
        """Check if a codec or encoder can produce the given stream type."""
        codec = self.codecs.get(name)
        if codec is not None and codec.type == stream_type and codec.can_encode:
            return True
        encoder = self.encoders.get(name)
        return encoder is not None and encoder.type == stream_type

    def _formats(self, name: str) -> list[FormatInfo]:
        # Demuxers are listed with aliases, e.g. "mov,mp4,m4a,3gp,3g2,mj2"
        return [
            info for key, info in self.formats.items() if name in key.split(",")
        ]
