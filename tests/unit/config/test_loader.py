"""Tests for configuration loading and precedence."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from ffdrive.config.env import EnvReader
from ffdrive.config.loader import (
    DEFAULT_CONFIG_FILE,
    clear_config_cache,
    get_config,
    get_default_config_path,
    load_config_file,
)
from ffdrive.exceptions import ConfigurationError

CONFIG_TOML = """
[tools]
ffmpeg = "/opt/ffmpeg/bin/ffmpeg"

[process]
niceness = 5
stdout_lines = 20
timeout = 60
merge_output = true
env = { AV_LOG_FORCE_NOCOLOR = "1" }

[logging]
level = "debug"
format = "json"
"""


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(CONFIG_TOML)
    return path


class TestDefaultConfigPath:
    """Tests for get_default_config_path."""

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FFDRIVE_CONFIG_PATH", "/etc/ffdrive.toml")
        assert get_default_config_path() == Path("/etc/ffdrive.toml")

    def test_home_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("FFDRIVE_CONFIG_PATH")
        assert get_default_config_path() == DEFAULT_CONFIG_FILE


class TestLoadConfigFile:
    """Tests for load_config_file caching."""

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert load_config_file(tmp_path / "missing.toml") == {}

    def test_parses_file(self, config_file: Path) -> None:
        assert load_config_file(config_file)["process"]["niceness"] == 5

    def test_cached_until_mtime_changes(self, config_file: Path) -> None:
        first = load_config_file(config_file)
        assert load_config_file(config_file) is first

        config_file.write_text("[process]\nniceness = 7\n")
        stat = config_file.stat()
        os.utime(config_file, (stat.st_atime, stat.st_mtime + 10))

        assert load_config_file(config_file)["process"]["niceness"] == 7

    def test_clear_cache_forces_reload(self, config_file: Path) -> None:
        first = load_config_file(config_file)
        clear_config_cache()
        assert load_config_file(config_file) is not first

    def test_invalid_toml_falls_back_to_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.toml"
        path.write_text("[process\n")
        assert load_config_file(path) == {}

    def test_invalid_toml_strict_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.toml"
        path.write_text("[process\n")
        with pytest.raises(ConfigurationError, match="Cannot load config file"):
            load_config_file(path, strict=True)


class TestGetConfig:
    """Tests for get_config precedence."""

    def test_defaults(self, tmp_path: Path) -> None:
        config = get_config(tmp_path / "none.toml", env_reader=EnvReader(env={}))

        assert config.process.niceness == 0
        assert config.process.stdout_lines == 100
        assert config.process.timeout is None
        assert config.process.merge_output is False
        assert config.tools.ffmpeg is None
        assert config.logging.level == "info"
        assert config.presets.directory is None

    def test_file_values(self, config_file: Path) -> None:
        config = get_config(config_file, env_reader=EnvReader(env={}))

        assert config.tools.ffmpeg == Path("/opt/ffmpeg/bin/ffmpeg")
        assert config.process.niceness == 5
        assert config.process.stdout_lines == 20
        assert config.process.timeout == 60
        assert config.process.merge_output is True
        assert config.process.env == {"AV_LOG_FORCE_NOCOLOR": "1"}
        assert config.logging.format == "json"

    def test_environment_overrides_file(self, config_file: Path) -> None:
        reader = EnvReader(
            env={
                "FFDRIVE_NICENESS": "10",
                "FFDRIVE_FFMPEG_PATH": "/usr/local/bin/ffmpeg",
                "FFDRIVE_MERGE_OUTPUT": "false",
            }
        )
        config = get_config(config_file, env_reader=reader)

        assert config.process.niceness == 10
        assert config.tools.ffmpeg == Path("/usr/local/bin/ffmpeg")
        assert config.process.merge_output is False

    def test_arguments_override_environment(self, config_file: Path) -> None:
        reader = EnvReader(env={"FFDRIVE_NICENESS": "10", "FFDRIVE_TIMEOUT": "5"})
        config = get_config(
            config_file,
            niceness=-3,
            timeout=1.5,
            ffmpeg_path=Path("/bin/ffmpeg"),
            env_reader=reader,
        )

        assert config.process.niceness == -3
        assert config.process.timeout == 1.5
        assert config.tools.ffmpeg == Path("/bin/ffmpeg")

    def test_presets_dir_from_environment(self, tmp_path: Path) -> None:
        reader = EnvReader(env={"FFDRIVE_PRESETS_DIR": str(tmp_path)})
        config = get_config(tmp_path / "none.toml", env_reader=reader)
        assert config.presets.directory == tmp_path

    @pytest.mark.parametrize(
        "content",
        [
            "[process]\nniceness = 40\n",
            "[process]\nstdout_lines = -1\n",
            "[process]\ntimeout = 0\n",
            "[logging]\nlevel = \"chatty\"\n",
            "[logging]\nformat = \"xml\"\n",
        ],
    )
    def test_invalid_values_raise(self, tmp_path: Path, content: str) -> None:
        path = tmp_path / "config.toml"
        path.write_text(content)

        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            get_config(path, env_reader=EnvReader(env={}))

    def test_invalid_environment_value_raises(self, tmp_path: Path) -> None:
        reader = EnvReader(env={"FFDRIVE_STDOUT_LINES": "-4"})
        with pytest.raises(ConfigurationError):
            get_config(tmp_path / "none.toml", env_reader=reader)
