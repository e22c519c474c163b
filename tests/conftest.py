"""Shared test fixtures for ffdrive."""

import os
import stat
from pathlib import Path

import pytest

from ffdrive.config import clear_config_cache
from ffdrive.tools import clear_capabilities_cache, clear_tool_paths

TOOL_ENV_VARS_TO_CLEAR = ("FFMPEG_PATH", "FLVMETA_PATH", "FLVTOOL2_PATH")


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Keep tests independent of the user's ffdrive configuration."""
    for var in list(os.environ):
        if var.startswith("FFDRIVE_"):
            monkeypatch.delenv(var, raising=False)
    for var in TOOL_ENV_VARS_TO_CLEAR:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("FFDRIVE_CONFIG_PATH", str(tmp_path / "no-config.toml"))
    clear_config_cache()
    clear_capabilities_cache()
    clear_tool_paths()
    yield
    clear_config_cache()
    clear_capabilities_cache()
    clear_tool_paths()


@pytest.fixture
def make_script(tmp_path: Path):
    """Create an executable POSIX shell script standing in for a tool."""

    def _make(name: str, body: str) -> Path:
        path = tmp_path / name
        path.write_text("#!/bin/sh\n" + body)
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _make
