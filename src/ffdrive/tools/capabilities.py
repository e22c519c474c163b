"""FFmpeg capability enumeration.

Runs ffmpeg's listing commands (-filters, -codecs, -formats, -encoders)
once per binary, parses their output and caches the result in memory.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Iterable
from pathlib import Path

from ffdrive.core.subprocess_utils import run_command
from ffdrive.exceptions import CapabilityError, ProcessError
from ffdrive.tools.detection import require_tool
from ffdrive.tools.models import (
    STREAM_TYPE_CODES,
    CodecInfo,
    EncoderInfo,
    FFmpegCapabilities,
    FilterInfo,
    FormatInfo,
    StreamType,
)

logger = logging.getLogger(__name__)

# Timeout for listing commands (seconds)
ENUMERATION_TIMEOUT = 30

# " TSC abench            A->A       Benchmark part of a filtergraph."
FILTER_RE = re.compile(r"^(?: [T.][S.][C.] )?(\S+) +([AVN|]{1,2})->([AVN|]{1,2}) +(.*)$")

# " DEV.LS h264                 H.264 / AVC / MPEG-4 AVC ..."
CODEC_RE = re.compile(r"^\s*([D.])([E.])([VASDT])([I.])([L.])([S.]) (\S+) +(.*)$")
CODEC_ENCODERS_RE = re.compile(r"\(encoders:([^)]+)\)")
CODEC_DECODERS_RE = re.compile(r"\(decoders:([^)]+)\)")

# " DE mp4             MP4 (MPEG-4 Part 14)"
FORMAT_RE = re.compile(r"^\s*([D ])([E ])([d ])?\s+(\S+)\s+(.*)$")

# " V....D libx264              libx264 H.264 / AVC ..."
ENCODER_RE = re.compile(r"^\s*([VAS.])([F.])([S.])([X.])([B.])([D.]) ([^ =]+)\s+(.*)$")

_cache: dict[Path, FFmpegCapabilities] = {}
_cache_lock = threading.Lock()


def _list(ffmpeg_path: Path, flag: str) -> str:
    stdout, stderr, rc = run_command(
        [ffmpeg_path, flag, "-hide_banner"], timeout=ENUMERATION_TIMEOUT
    )
    if rc != 0:
        raise ProcessError(rc, stderr_tail=stderr.strip())
    return stdout


def _body_lines(output: str) -> list[str]:
    """Return listing lines after the legend separator, if there is one."""
    lines = output.splitlines()
    for index, line in enumerate(lines):
        if line.strip().startswith("--"):
            return lines[index + 1 :]
    return lines


def parse_filters(output: str) -> dict[str, FilterInfo]:
    """Parse ffmpeg -filters output."""
    data: dict[str, FilterInfo] = {}
    for line in output.splitlines():
        match = FILTER_RE.match(line)
        if not match:
            continue
        name, inputs, outputs, description = match.groups()
        data[name] = FilterInfo(
            description=description,
            input=STREAM_TYPE_CODES[inputs[0]],
            multiple_inputs=len(inputs) > 1,
            output=STREAM_TYPE_CODES[outputs[0]],
            multiple_outputs=len(outputs) > 1,
        )
    return data


def parse_codecs(output: str) -> dict[str, CodecInfo]:
    """Parse ffmpeg -codecs output.

    Codecs whose description lists specific encoders or decoders
    ("(encoders: libx264 h264_nvenc)") also get one entry per coder name.
    """
    data: dict[str, CodecInfo] = {}
    for line in _body_lines(output):
        match = CODEC_RE.match(line)
        if not match:
            continue
        decode, encode, kind, intra, lossy, lossless, name, description = (
            match.groups()
        )
        codec = CodecInfo(
            type=STREAM_TYPE_CODES[kind],
            description=description,
            can_decode=decode == "D",
            can_encode=encode == "E",
            intra_frame_only=intra == "I",
            is_lossy=lossy == "L",
            is_lossless=lossless == "S",
        )
        data[name] = codec

        encoders = CODEC_ENCODERS_RE.search(description)
        decoders = CODEC_DECODERS_RE.search(description)
        for coder in encoders.group(1).split() if encoders else ():
            data[coder] = _coder_entry(codec, can_encode=True)
        for coder in decoders.group(1).split() if decoders else ():
            if coder in data:
                data[coder].can_decode = True
            else:
                data[coder] = _coder_entry(codec, can_decode=True)
    return data


def _coder_entry(
    codec: CodecInfo, can_encode: bool = False, can_decode: bool = False
) -> CodecInfo:
    return CodecInfo(
        type=codec.type,
        description=codec.description,
        can_decode=can_decode,
        can_encode=can_encode,
        intra_frame_only=codec.intra_frame_only,
        is_lossy=codec.is_lossy,
        is_lossless=codec.is_lossless,
    )


def parse_formats(output: str) -> dict[str, FormatInfo]:
    """Parse ffmpeg -formats output."""
    data: dict[str, FormatInfo] = {}
    for line in _body_lines(output):
        match = FORMAT_RE.match(line)
        if not match:
            continue
        demux, mux, _device, name, description = match.groups()
        if demux == " " and mux == " ":
            continue
        info = data.get(name)
        if info is None:
            data[name] = FormatInfo(
                description=description,
                can_demux=demux == "D",
                can_mux=mux == "E",
            )
        else:
            # Some formats are listed twice (once per direction)
            info.can_demux = info.can_demux or demux == "D"
            info.can_mux = info.can_mux or mux == "E"
    return data


def parse_encoders(output: str) -> dict[str, EncoderInfo]:
    """Parse ffmpeg -encoders output."""
    data: dict[str, EncoderInfo] = {}
    for line in _body_lines(output):
        match = ENCODER_RE.match(line)
        if not match:
            continue
        kind, frame_mt, slice_mt, experimental, horiz, direct, name, description = (
            match.groups()
        )
        if kind == ".":
            continue
        data[name] = EncoderInfo(
            type=STREAM_TYPE_CODES[kind],
            description=description,
            frame_mt=frame_mt == "F",
            slice_mt=slice_mt == "S",
            experimental=experimental == "X",
            draw_horiz_band=horiz == "B",
            direct_rendering=direct == "D",
        )
    return data


def available_filters(ffmpeg_path: Path | None = None) -> dict[str, FilterInfo]:
    """Return the filters supported by ffmpeg."""
    return get_capabilities(ffmpeg_path).filters


def available_codecs(ffmpeg_path: Path | None = None) -> dict[str, CodecInfo]:
    """Return the codecs supported by ffmpeg."""
    return get_capabilities(ffmpeg_path).codecs


def available_formats(ffmpeg_path: Path | None = None) -> dict[str, FormatInfo]:
    """Return the container formats supported by ffmpeg."""
    return get_capabilities(ffmpeg_path).formats


def available_encoders(ffmpeg_path: Path | None = None) -> dict[str, EncoderInfo]:
    """Return the encoders supported by ffmpeg."""
    return get_capabilities(ffmpeg_path).encoders


def get_capabilities(ffmpeg_path: Path | None = None) -> FFmpegCapabilities:
    """Enumerate (or return cached) capabilities of an ffmpeg binary.

    Args:
        ffmpeg_path: ffmpeg executable. None resolves it via require_tool().

    Raises:
        SpawnError: If ffmpeg cannot be found or launched.
        ProcessError: If a listing command fails.
    """
    path = ffmpeg_path if ffmpeg_path is not None else require_tool("ffmpeg")

    # Fast path: if already enumerated, return without lock
    cached = _cache.get(path)
    if cached is not None:
        return cached

    with _cache_lock:
        cached = _cache.get(path)
        if cached is not None:
            return cached

        logger.debug("Enumerating capabilities of %s", path)
        caps = FFmpegCapabilities(
            filters=parse_filters(_list(path, "-filters")),
            codecs=parse_codecs(_list(path, "-codecs")),
            formats=parse_formats(_list(path, "-formats")),
            encoders=parse_encoders(_list(path, "-encoders")),
        )
        _cache[path] = caps
        return caps


def clear_capabilities_cache() -> None:
    """Forget all enumerated capabilities."""
    with _cache_lock:
        _cache.clear()


def check_capabilities(
    requirements: Iterable[tuple[str, str]],
    capabilities: FFmpegCapabilities,
) -> None:
    """Verify that requested formats and codecs are available.

    Args:
        requirements: (kind, name) pairs, where kind is one of
            "input format", "output format", "audio codec", "video codec".
        capabilities: Capabilities of the ffmpeg binary that will run.

    Raises:
        CapabilityError: For the first unavailable requirement.
    """
    for kind, name in requirements:
        if kind == "input format":
            available = capabilities.can_demux(name)
        elif kind == "output format":
            available = capabilities.can_mux(name)
        elif kind == "audio codec":
            available = name == "copy" or capabilities.can_encode(
                name, StreamType.AUDIO
            )
        elif kind == "video codec":
            available = name == "copy" or capabilities.can_encode(
                name, StreamType.VIDEO
            )
        else:
            raise ValueError(f"Unknown capability kind: {kind}")
        if not available:
            raise CapabilityError(kind, name)
