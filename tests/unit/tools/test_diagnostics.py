"""Unit tests for the ffmpeg diagnostics parser."""

import pytest

from ffdrive.tools.diagnostics import (
    NO_CODEC,
    CodecData,
    DiagnosticsParser,
    extract_error,
)
from ffdrive.tools.ffmpeg_progress import ProgressEvent

BANNER = [
    "ffmpeg version 6.1 Copyright (c) 2000-2023 the FFmpeg developers",
    "  built with gcc 12",
    "Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'in.mp4':",
    "  Metadata:",
    "    major_brand     : isom",
    "  Duration: 00:00:10.00, start: 0.000000, bitrate: 1205 kb/s",
    "    Stream #0:0(und): Video: h264 (High), yuv420p, 1280x720, 25 fps",
    "    Stream #0:1(und): Audio: aac (LC), 44100 Hz, stereo, fltp",
    "Stream mapping:",
    "  Stream #0:0 -> #0:0 (h264 (native) -> mpeg4 (native))",
    "Press [q] to stop, [?] for help",
    "Output #0, avi, to 'out.avi':",
    "    Stream #0:0: Video: mpeg4, yuv420p, 1280x720",
]


def feed_all(parser: DiagnosticsParser, lines: list[str]) -> list:
    events = []
    for line in lines:
        events.extend(parser.feed(line))
    return events


class TestCodecData:
    """Tests for input banner recognition."""

    def test_codec_data_from_banner(self) -> None:
        parser = DiagnosticsParser()
        events = feed_all(parser, BANNER)

        assert len(events) == 1
        codec_data = events[0]
        assert isinstance(codec_data, CodecData)
        assert codec_data.format == "mov,mp4,m4a,3gp,3g2,mj2"
        assert codec_data.video == "h264 (High)"
        assert codec_data.audio == "aac (LC)"
        assert codec_data.duration == "00:00:10.00"
        assert codec_data.duration_seconds == pytest.approx(10.0)
        assert codec_data.video_details[1] == "yuv420p"
        assert parser.codec_data is codec_data

    def test_output_streams_are_ignored(self) -> None:
        parser = DiagnosticsParser()
        codec_data = feed_all(parser, BANNER)[0]
        assert "mpeg4" not in codec_data.video

    def test_missing_audio_is_none(self) -> None:
        parser = DiagnosticsParser()
        events = feed_all(
            parser,
            [
                "Input #0, image2, from 'frame.png':",
                "    Stream #0:0: Video: png, rgb24, 640x480",
                "Stream mapping:",
            ],
        )
        assert events[0].audio == NO_CODEC
        assert events[0].video == "png"

    def test_first_audio_of_any_input(self) -> None:
        parser = DiagnosticsParser()
        events = feed_all(
            parser,
            [
                "Input #0, image2, from 'frame.png':",
                "    Stream #0:0: Video: png, rgb24, 640x480",
                "Input #1, mp3, from 'music.mp3':",
                "    Stream #1:0: Audio: mp3, 44100 Hz, stereo",
                "Stream mapping:",
            ],
        )
        assert events[0].format == "image2"
        assert events[0].audio == "mp3"
        assert len(events[0].inputs) == 2

    def test_first_stream_of_each_kind_wins(self) -> None:
        parser = DiagnosticsParser()
        events = feed_all(
            parser,
            [
                "Input #0, matroska,webm, from 'movie.mkv':",
                "    Stream #0:0: Video: h264 (High), yuv420p, 1920x1080",
                "    Stream #0:1(eng): Audio: aac (LC), 48000 Hz, stereo",
                "    Stream #0:2(jpn): Audio: ac3, 48000 Hz, 5.1(side)",
                "    Stream #0:3: Video: mjpeg, yuvj420p, 600x800",
                "Stream mapping:",
            ],
        )
        codec_data = events[0]
        assert codec_data.audio == "aac (LC)"
        assert codec_data.audio_details[1] == "48000 Hz"
        assert codec_data.audio_details[2] == "stereo"
        assert codec_data.video == "h264 (High)"

    def test_emitted_before_first_progress(self) -> None:
        """A progress line closes the banner section if nothing else did."""
        parser = DiagnosticsParser()
        events = feed_all(
            parser,
            [
                "Input #0, wav, from 'in.wav':",
                "  Duration: 00:00:20.00, bitrate: 1411 kb/s",
                "    Stream #0:0: Audio: pcm_s16le, 44100 Hz, stereo",
                "size=     256kB time=00:00:05.00 bitrate= 128.0kbits/s",
            ],
        )
        assert [type(e) for e in events] == [CodecData, ProgressEvent]
        assert events[1].percent == pytest.approx(25.0)

    def test_emitted_once(self) -> None:
        parser = DiagnosticsParser()
        events = feed_all(parser, BANNER + BANNER)
        assert sum(isinstance(e, CodecData) for e in events) == 1

    def test_finish_flushes_pending_banner(self) -> None:
        parser = DiagnosticsParser()
        feed_all(parser, BANNER[2:8])
        events = parser.finish()
        assert len(events) == 1
        assert parser.finish() == []

    def test_no_inputs_means_no_codec_data(self) -> None:
        parser = DiagnosticsParser()
        assert parser.finish() == []
        assert parser.codec_data is None


class TestProgress:
    """Tests for progress events and percentages."""

    def test_percent_from_banner_duration(self) -> None:
        parser = DiagnosticsParser()
        events = feed_all(
            parser,
            BANNER + ["frame=  125 fps= 25 size=  512kB time=00:00:05.00 speed=1x"],
        )
        progress = events[-1]
        assert isinstance(progress, ProgressEvent)
        assert progress.percent == pytest.approx(50.0)

    def test_explicit_duration_wins(self) -> None:
        parser = DiagnosticsParser(duration_seconds=20.0)
        events = feed_all(parser, BANNER + ["frame=1 time=00:00:05.00"])
        assert events[-1].percent == pytest.approx(25.0)


class TestErrorBanner:
    """Tests for error banner tracking."""

    def test_trailing_unindented_lines(self) -> None:
        parser = DiagnosticsParser()
        feed_all(
            parser,
            BANNER
            + [
                "[mp4 @ 0x55] moov atom not found",
                "in.mp4: Invalid data found when processing input",
            ],
        )
        assert parser.error_banner == "in.mp4: Invalid data found when processing input"

    def test_extract_error(self) -> None:
        stderr = (
            "ffmpeg version 6.1\n"
            "  built with gcc\n"
            "[mp4 @ 0x55] bad header\n"
            "Conversion failed!\n"
            "Exiting normally"
        )
        assert extract_error(stderr) == "Conversion failed!\nExiting normally"
