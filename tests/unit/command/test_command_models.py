"""Unit tests for Input and Output entities."""

import io
from pathlib import Path

import pytest

from ffdrive.command.models import (
    INPUT_PIPE,
    OUTPUT_PIPE,
    Input,
    Output,
    validate_source,
    validate_target,
)
from ffdrive.exceptions import ConfigurationError


class TestInput:
    """Tests for Input."""

    def test_file_origin(self) -> None:
        assert Input(Path("/media/in.mp4")).origin == "/media/in.mp4"

    def test_stream_origin(self) -> None:
        input_ = Input(io.BytesIO())
        assert input_.is_stream
        assert input_.origin == INPUT_PIPE


class TestOutput:
    """Tests for Output."""

    def test_target_less(self) -> None:
        output = Output()
        assert output.target_token is None
        assert not output.is_file
        assert not output.is_stream

    def test_stream_target(self) -> None:
        output = Output(target=io.BytesIO())
        assert output.is_stream
        assert output.target_token == OUTPUT_PIPE

    def test_clone_copies_option_groups(self) -> None:
        output = Output(target="out.mp4")
        output.audio.add("-an")
        output.size_data.size = "50%"

        clone = output.clone()
        clone.audio.add("-ac", "2")
        clone.size_data.size = "640x480"
        clone.flags["flvmeta"] = True

        assert output.audio.get() == ["-an"]
        assert output.size_data.size == "50%"
        assert output.flags["flvmeta"] is False


class TestValidation:
    """Tests for source and target validation."""

    def test_read_only_stream_is_not_a_target(self) -> None:
        class Reader:
            def read(self, size: int = -1) -> bytes:
                return b""

        assert validate_source(Reader()) is not None
        with pytest.raises(ConfigurationError, match="Invalid output"):
            validate_target(Reader())

    def test_none_is_not_a_source(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid input"):
            validate_source(None)
