"""Incremental parser for ffmpeg's diagnostic output.

ffmpeg writes human-oriented text to stderr. Three families of lines are
recognized, in priority order:

1. Input banners describing each input's container and streams:

       Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'in.mp4':
         Duration: 00:00:10.00, start: 0.000000, bitrate: 1205 kb/s
           Stream #0:0(und): Video: h264 (High), yuv420p, 1280x720, 25 fps
           Stream #0:1(und): Audio: aac (LC), 44100 Hz, stereo, fltp

2. Stats lines ("frame=  120 fps= 30 ... time=00:00:04.00 ...").

3. Error banners, i.e. the trailing non-indented lines ffmpeg prints
   before exiting with an error.

This is best-effort scraping of a text format that changes between ffmpeg
versions: unrecognized lines are ignored and malformed values never abort
the run.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from dataclasses import dataclass, field

from ffdrive.core.timemark import timemark_to_seconds
from ffdrive.exceptions import TimemarkError
from ffdrive.tools.ffmpeg_progress import ProgressEvent, parse_stderr_progress

logger = logging.getLogger(__name__)

INPUT_RE = re.compile(r"Input #([0-9]+), ([^ ]+),")
DURATION_RE = re.compile(r"Duration: ([^,]+)")
AUDIO_RE = re.compile(r"Audio: (.*)")
VIDEO_RE = re.compile(r"Video: (.*)")
OUTPUT_RE = re.compile(r"Output #\d+")
CODEC_SECTION_END_RE = re.compile(r"Stream mapping:|Press (\[q\]|ctrl-c) to stop")

NO_CODEC = "none"

# Upper bound on lines kept for the error banner
MAX_ERROR_BANNER_LINES = 50


@dataclass
class InputCodecInfo:
    """Codec information for one input, as declared by ffmpeg."""

    format: str
    duration: str = ""
    audio: str = ""
    audio_details: list[str] = field(default_factory=list)
    video: str = ""
    video_details: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CodecData:
    """Codec information detected at the start of a run.

    Attributes:
        format: Container format of the first input.
        audio: First audio codec declared by any input, or "none".
        video: First video codec declared by any input, or "none".
        duration: Duration of the first input as printed by ffmpeg.
        duration_seconds: The same duration in seconds, when parseable.
        audio_details: Comma-separated details of the audio stream.
        video_details: Comma-separated details of the video stream.
        inputs: Per-input codec information, in input order.
    """

    format: str
    audio: str = NO_CODEC
    video: str = NO_CODEC
    duration: str | None = None
    duration_seconds: float | None = None
    audio_details: tuple[str, ...] = ()
    video_details: tuple[str, ...] = ()
    inputs: tuple[InputCodecInfo, ...] = ()


def extract_error(stderr: str) -> str:
    """Extract the error banner from complete ffmpeg stderr text.

    Returns the trailing lines that do not start with a space or a square
    bracket, which is where ffmpeg prints its fatal error summary.
    """
    messages: list[str] = []
    for line in re.split(r"\r\n|\r|\n", stderr):
        if line.startswith((" ", "[")):
            messages = []
        else:
            messages.append(line)
    return "\n".join(messages)


class DiagnosticsParser:
    """Stateful, line-driven parser for ffmpeg stderr.

    feed() returns the events recognized on a line; CodecData is returned
    at most once per parser instance and always before the first
    ProgressEvent.

    Args:
        duration_seconds: Known input duration used to compute progress
            percentages. When None, the duration from the input banner is
            used if available.
    """

    def __init__(self, duration_seconds: float | None = None) -> None:
        self.duration_seconds = duration_seconds
        self._inputs: list[InputCodecInfo] = []
        self._in_input = False
        self._codec_latched = False
        self._codec_data: CodecData | None = None
        self._error_lines: deque[str] = deque(maxlen=MAX_ERROR_BANNER_LINES)

    @property
    def codec_data(self) -> CodecData | None:
        """CodecData emitted so far, if any."""
        return self._codec_data

    @property
    def error_banner(self) -> str:
        """Trailing error lines seen so far."""
        return "\n".join(self._error_lines)

    def feed(self, line: str) -> list[CodecData | ProgressEvent]:
        """Process one complete line.

        Args:
            line: A diagnostic line without its terminator.

        Returns:
            Events recognized on this line, in emission order.
        """
        events: list[CodecData | ProgressEvent] = []

        if not self._codec_latched and self._scan_codec_line(line):
            if CODEC_SECTION_END_RE.search(line):
                self._latch_codec_data(events)
            return events

        progress = parse_stderr_progress(line)
        if progress is not None:
            self._latch_codec_data(events)
            self._apply_percent(progress)
            events.append(progress)
            return events

        self._track_error_line(line)
        return events

    def finish(self) -> list[CodecData | ProgressEvent]:
        """Flush pending state at end of stream."""
        events: list[CodecData | ProgressEvent] = []
        self._latch_codec_data(events)
        return events

    def _scan_codec_line(self, line: str) -> bool:
        """Update input codec state; return True if the line was consumed."""
        match = INPUT_RE.search(line)
        if match:
            self._in_input = True
            self._inputs.append(InputCodecInfo(format=match.group(2)))
            return True

        if self._in_input and self._inputs:
            current = self._inputs[-1]
            match = DURATION_RE.search(line)
            if match:
                current.duration = match.group(1)
                return True
            # The first stream of each kind wins
            match = AUDIO_RE.search(line)
            if match:
                if current.audio:
                    return True
                details = match.group(1).split(", ")
                current.audio = details[0]
                current.audio_details = details
                return True
            match = VIDEO_RE.search(line)
            if match:
                if current.video:
                    return True
                details = match.group(1).split(", ")
                current.video = details[0]
                current.video_details = details
                return True

        if OUTPUT_RE.search(line):
            self._in_input = False
            return True

        return bool(CODEC_SECTION_END_RE.search(line))

    def _latch_codec_data(self, events: list[CodecData | ProgressEvent]) -> None:
        if self._codec_latched:
            return
        self._codec_latched = True
        self._in_input = False
        if not self._inputs:
            return
        self._codec_data = self._build_codec_data()
        if self.duration_seconds is None:
            self.duration_seconds = self._codec_data.duration_seconds
        logger.debug(
            "Detected codecs: format=%s audio=%s video=%s",
            self._codec_data.format,
            self._codec_data.audio,
            self._codec_data.video,
        )
        events.append(self._codec_data)

    def _build_codec_data(self) -> CodecData:
        first = self._inputs[0]
        audio = next((i for i in self._inputs if i.audio), None)
        video = next((i for i in self._inputs if i.video), None)

        duration_seconds: float | None = None
        if first.duration:
            try:
                duration_seconds = timemark_to_seconds(first.duration)
            except TimemarkError as e:
                logger.debug("Input duration not usable: %s", e)

        return CodecData(
            format=first.format,
            audio=audio.audio if audio else NO_CODEC,
            video=video.video if video else NO_CODEC,
            duration=first.duration or None,
            duration_seconds=duration_seconds,
            audio_details=tuple(audio.audio_details) if audio else (),
            video_details=tuple(video.video_details) if video else (),
            inputs=tuple(self._inputs),
        )

    def _apply_percent(self, progress: ProgressEvent) -> None:
        progress.percent = progress.get_percent(self.duration_seconds)

    def _track_error_line(self, line: str) -> None:
        if line.startswith((" ", "[")):
            self._error_lines.clear()
        else:
            self._error_lines.append(line)
