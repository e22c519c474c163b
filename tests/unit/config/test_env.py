"""Tests for EnvReader class."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from ffdrive.config.env import EnvReader


class TestEnvReaderGetStr:
    """Tests for EnvReader.get_str method."""

    def test_returns_value_when_set(self) -> None:
        reader = EnvReader(env={"FFDRIVE_LOG_LEVEL": "debug"})
        assert reader.get_str("FFDRIVE_LOG_LEVEL") == "debug"

    def test_returns_default_when_not_set(self) -> None:
        reader = EnvReader(env={})
        assert reader.get_str("FFDRIVE_LOG_LEVEL", "info") == "info"

    def test_empty_string_is_a_value(self) -> None:
        reader = EnvReader(env={"FFDRIVE_LOG_LEVEL": ""})
        assert reader.get_str("FFDRIVE_LOG_LEVEL", "info") == ""


class TestEnvReaderNumbers:
    """Tests for get_int and get_float."""

    def test_parses_integer(self) -> None:
        reader = EnvReader(env={"FFDRIVE_NICENESS": "-5"})
        assert reader.get_int("FFDRIVE_NICENESS") == -5

    def test_invalid_integer_warns_and_defaults(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        reader = EnvReader(env={"FFDRIVE_NICENESS": "high"})
        with caplog.at_level(logging.WARNING):
            assert reader.get_int("FFDRIVE_NICENESS", 0) == 0
        assert "Invalid integer value for FFDRIVE_NICENESS" in caplog.text

    def test_parses_float(self) -> None:
        reader = EnvReader(env={"FFDRIVE_TIMEOUT": "2.5"})
        assert reader.get_float("FFDRIVE_TIMEOUT") == 2.5

    def test_invalid_float_warns_and_defaults(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        reader = EnvReader(env={"FFDRIVE_TIMEOUT": "soon"})
        with caplog.at_level(logging.WARNING):
            assert reader.get_float("FFDRIVE_TIMEOUT") is None
        assert "Invalid float value" in caplog.text


class TestEnvReaderGetBool:
    """Tests for EnvReader.get_bool method."""

    @pytest.mark.parametrize("value", ["true", "TRUE", "1", "yes", "on"])
    def test_truthy_values(self, value: str) -> None:
        assert EnvReader(env={"X": value}).get_bool("X") is True

    @pytest.mark.parametrize("value", ["false", "0", "no", "off", "maybe"])
    def test_other_values_are_false(self, value: str) -> None:
        assert EnvReader(env={"X": value}).get_bool("X") is False

    def test_default_when_not_set(self) -> None:
        assert EnvReader(env={}).get_bool("X", True) is True


class TestEnvReaderGetPath:
    """Tests for EnvReader.get_path method."""

    def test_existing_path(self, tmp_path: Path) -> None:
        reader = EnvReader(env={"FFDRIVE_PRESETS_DIR": str(tmp_path)})
        assert reader.get_path("FFDRIVE_PRESETS_DIR") == tmp_path

    def test_missing_path_warns_when_must_exist(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        reader = EnvReader(env={"FFDRIVE_PRESETS_DIR": str(tmp_path / "nope")})
        with caplog.at_level(logging.WARNING):
            assert reader.get_path("FFDRIVE_PRESETS_DIR") is None
        assert "non-existent path" in caplog.text

    def test_missing_path_allowed(self, tmp_path: Path) -> None:
        missing = tmp_path / "ffmpeg"
        reader = EnvReader(env={"FFDRIVE_FFMPEG_PATH": str(missing)})
        assert reader.get_path("FFDRIVE_FFMPEG_PATH", must_exist=False) == missing
