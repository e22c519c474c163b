"""Unit tests for FfmpegCommand assembly."""

import io
import os
from pathlib import Path

import pytest

from ffdrive.command import FfmpegCommand
from ffdrive.core.filters import FilterSpec
from ffdrive.exceptions import ConfigurationError
from ffdrive.tools.detection import set_tool_path


class TestGetArgs:
    """Tests for argument linearization."""

    def test_simple_transcode(self) -> None:
        command = (
            FfmpegCommand("in.avi")
            .audio_codec("aac")
            .video_codec("libx264")
            .output("out.mp4")
        )

        assert command.get_args() == [
            "-y",
            "-i",
            "in.avi",
            "-acodec",
            "aac",
            "-vcodec",
            "libx264",
            "out.mp4",
        ]

    def test_full_ordering(self) -> None:
        command = (
            FfmpegCommand()
            .global_options("-hide_banner")
            .input("video.mp4")
            .input_format("mp4")
            .seek_input(10)
            .input("logo.png")
            .loop()
            .complex_filter(
                FilterSpec(
                    "overlay",
                    options="x=10:y=10",
                    inputs=["0:v", "1:v"],
                    outputs="out",
                )
            )
            .audio_bitrate(128)
            .audio_filters("volume=0.5")
            .video_bitrate("1000k")
            .video_filters("hflip")
            .size("640x?")
            .output_options("-movflags +faststart")
            .map("0:a")
            .output("out.mp4")
        )

        assert command.get_args() == [
            "-hide_banner",
            "-y",
            "-f",
            "mp4",
            "-ss",
            "10",
            "-i",
            "video.mp4",
            "-loop",
            "1",
            "-i",
            "logo.png",
            "-filter_complex",
            "[0:v][1:v]overlay=x=10:y=10[out]",
            "-b:a",
            "128k",
            "-filter:a",
            "volume=0.5",
            "-b:v",
            "1000k",
            "-filter:v",
            "hflip,scale=w=640:h=trunc(ow/a/2)*2",
            "-movflags",
            "+faststart",
            "-map",
            "0:a",
            "out.mp4",
        ]

    def test_no_overwrite_flag_without_file_output(self) -> None:
        command = FfmpegCommand("in.avi").format("mp3")
        assert "-y" not in command.get_args()

    def test_target_less_default_output(self) -> None:
        """Options set before output() still appear in the arguments."""
        command = FfmpegCommand("in.avi").no_video()
        assert command.get_args() == ["-i", "in.avi", "-vn"]

    def test_streams_use_pipes(self) -> None:
        command = FfmpegCommand(io.BytesIO(b"data")).format("mp3").output(io.BytesIO())
        assert command.get_args() == ["-i", "pipe:0", "-f", "mp3", "pipe:1"]

    def test_path_objects_are_accepted(self, tmp_path: Path) -> None:
        command = FfmpegCommand(tmp_path / "in.avi").output(tmp_path / "out.mp4")
        assert command.get_args()[-1] == str(tmp_path / "out.mp4")

    def test_last_call_wins(self) -> None:
        command = FfmpegCommand("in.avi").audio_codec("mp3").audio_codec("aac")
        assert command.get_args().count("-acodec") == 1
        assert "aac" in command.get_args()


class TestOutputs:
    """Tests for output handling."""

    def test_first_output_fills_default(self) -> None:
        command = FfmpegCommand("in.avi").audio_codec("aac").output("a.mp4")
        assert len(command.outputs) == 1
        assert command.outputs[0].target == "a.mp4"

    def test_settings_follow_current_output(self) -> None:
        command = (
            FfmpegCommand("in.avi")
            .output("small.mp4")
            .size("320x240")
            .output("large.mp4")
            .size("1280x720")
        )

        args = command.get_args()
        assert args.index("scale=w=320:h=240") < args.index("small.mp4")
        assert args.index("small.mp4") < args.index("scale=w=1280:h=720")
        assert args[-1] == "large.mp4"

    def test_second_stream_output_rejected(self) -> None:
        command = FfmpegCommand("in.avi").output(io.BytesIO())
        with pytest.raises(ConfigurationError, match="Only one output stream"):
            command.output(io.BytesIO())

    def test_invalid_output_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid output"):
            FfmpegCommand("in.avi").output(42)  # type: ignore[arg-type]


class TestInputs:
    """Tests for input handling."""

    def test_input_options_need_an_input(self) -> None:
        with pytest.raises(ConfigurationError, match="No input specified"):
            FfmpegCommand().native()

    def test_second_stream_input_rejected(self) -> None:
        command = FfmpegCommand(io.BytesIO())
        with pytest.raises(ConfigurationError, match="Only one input stream"):
            command.input(io.BytesIO())

    def test_options_follow_current_input(self) -> None:
        command = FfmpegCommand("a.mp4").input("b.mp4").native()
        assert command.get_args() == ["-i", "a.mp4", "-re", "-i", "b.mp4"]

    def test_loop_with_duration(self) -> None:
        command = FfmpegCommand("still.png").loop(5).output("out.mp4")
        assert command.get_args() == [
            "-y",
            "-loop",
            "1",
            "-i",
            "still.png",
            "-t",
            "5",
            "out.mp4",
        ]

    def test_empty_path_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            FfmpegCommand("")


class TestClone:
    """Tests for FfmpegCommand.clone."""

    def test_clone_is_independent(self) -> None:
        command = FfmpegCommand("in.avi").audio_codec("aac")
        clone = command.clone()
        clone.audio_codec("mp3").size("50%").output("clone.mp3")

        assert "mp3" not in command.get_args()
        assert command.outputs[0].target is None
        assert clone.get_args()[-1] == "clone.mp3"

    def test_clone_shares_options_and_logger(self) -> None:
        command = FfmpegCommand("in.avi", niceness=3)
        clone = command.clone()

        assert clone.options is command.options
        assert clone.logger is command.logger

    def test_clone_shares_stream_sources(self) -> None:
        stream = io.BytesIO(b"x")
        clone = FfmpegCommand(stream).clone()
        assert clone.inputs[0].source is stream


class TestOptions:
    """Tests for constructor options and configuration defaults."""

    def test_defaults_from_configuration(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FFDRIVE_STDOUT_LINES", "7")
        monkeypatch.setenv("FFDRIVE_TIMEOUT", "30")

        command = FfmpegCommand()

        assert command.options.stdout_lines == 7
        assert command.options.timeout == 30.0

    def test_arguments_override_configuration(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("FFDRIVE_STDOUT_LINES", "7")
        assert FfmpegCommand(stdout_lines=0).options.stdout_lines == 0

    @pytest.mark.parametrize("kwargs", [{"stdout_lines": -1}, {"timeout": 0}])
    def test_invalid_options(self, kwargs: dict) -> None:
        with pytest.raises(ConfigurationError):
            FfmpegCommand(**kwargs)

    def test_renice_updates_niceness(self) -> None:
        command = FfmpegCommand().renice(5)
        assert command.options.niceness == 5

    def test_renice_rejects_out_of_range(self) -> None:
        with pytest.raises(ConfigurationError):
            FfmpegCommand().renice(42)

    def test_kill_without_run(self) -> None:
        assert FfmpegCommand().kill() is False


class TestBuildCommandLine:
    """Tests for build_command_line."""

    def test_prepends_ffmpeg(self, make_script) -> None:
        ffmpeg = make_script("ffmpeg", "exit 0\n")
        set_tool_path("ffmpeg", ffmpeg)

        argv = FfmpegCommand("in.avi").output("out.mp4").build_command_line()

        assert argv == [str(ffmpeg), "-y", "-i", "in.avi", "out.mp4"]

    @pytest.mark.skipif(os.name == "nt", reason="nice is POSIX only")
    def test_niceness_uses_nice(self, make_script) -> None:
        ffmpeg = make_script("ffmpeg", "exit 0\n")

        command = FfmpegCommand("in.avi", niceness=10, ffmpeg_path=ffmpeg)
        argv = command.build_command_line()

        assert argv[:4] == ["nice", "-n", "10", str(ffmpeg)]


class TestRequirements:
    """Tests for capability requirements."""

    def test_collects_formats_and_codecs(self) -> None:
        command = (
            FfmpegCommand("in.raw")
            .input_format("rawvideo")
            .format("mp4")
            .audio_codec("aac")
            .video_codec("libx264")
            .output("out.mp4")
        )

        assert command.requirements() == [
            ("input format", "rawvideo"),
            ("output format", "mp4"),
            ("audio codec", "aac"),
            ("video codec", "libx264"),
        ]

    def test_empty_when_nothing_forced(self) -> None:
        assert FfmpegCommand("in.avi").output("out.mp4").requirements() == []


class TestRunValidation:
    """Tests for checks done before spawning."""

    def test_run_requires_output(self) -> None:
        with pytest.raises(ConfigurationError, match="No output specified"):
            FfmpegCommand("in.avi").run()

    def test_merge_output_with_stream_output(self) -> None:
        command = FfmpegCommand("in.avi", merge_output=True).output(io.BytesIO())
        with pytest.raises(ConfigurationError, match="merge_output"):
            command.run()
