"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. Arguments passed directly to get_config()
2. Environment variables (FFDRIVE_*)
3. Config file (~/.ffdrive/config.toml)
4. Default values

Environment variables:
- FFDRIVE_CONFIG_PATH: Path to config file (overrides default location)
- FFDRIVE_FFMPEG_PATH, FFDRIVE_FLVMETA_PATH, FFDRIVE_FLVTOOL2_PATH:
  Paths to external tools
- FFDRIVE_NICENESS: Default process niceness
- FFDRIVE_STDOUT_LINES: Diagnostic lines kept for error reports
- FFDRIVE_TIMEOUT: Default run timeout in seconds
- FFDRIVE_MERGE_OUTPUT: Redirect ffmpeg stderr into stdout
- FFDRIVE_CHECK_CAPABILITIES: Validate formats and codecs before spawning
- FFDRIVE_LOG_LEVEL, FFDRIVE_LOG_FORMAT, FFDRIVE_LOG_FILE: Logging setup
- FFDRIVE_PRESETS_DIR: Directory holding YAML presets
"""

from __future__ import annotations

import logging
import os
import threading
import tomllib
from pathlib import Path
from typing import Any

from ffdrive.config.env import EnvReader
from ffdrive.config.models import (
    FfdriveConfig,
    LoggingConfig,
    PresetsConfig,
    ProcessConfig,
    ToolPathsConfig,
)
from ffdrive.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Default config location
DEFAULT_CONFIG_DIR = Path.home() / ".ffdrive"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

# Cache for loaded config files (path -> (parsed dict, mtime))
_config_cache: dict[Path, tuple[dict[str, Any], float]] = {}
_config_cache_lock = threading.Lock()

_TOOL_NAMES = ("ffmpeg", "flvmeta", "flvtool2")


def get_default_config_path() -> Path:
    """Get the default config file path.

    Can be overridden by the FFDRIVE_CONFIG_PATH environment variable.
    """
    env_path = os.environ.get("FFDRIVE_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_FILE


def load_toml_file(path: Path, *, strict: bool = False) -> dict[str, Any]:
    """Load and parse a TOML file.

    Args:
        path: Path to the TOML file.
        strict: If True, raise ConfigurationError on parse failures.

    Returns:
        Parsed dictionary. Empty dict if the file doesn't exist, or cannot
        be parsed and strict is False.
    """
    if not path.exists():
        logger.debug("Config file not found: %s", path)
        return {}

    try:
        with path.open("rb") as f:
            config = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        if strict:
            raise ConfigurationError(f"Cannot load config file {path}: {e}") from e
        logger.warning("Failed to load config file %s: %s", path, e)
        return {}

    logger.debug("Loaded config from %s", path)
    return config


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Load configuration from TOML file.

    Results are cached with mtime-based invalidation. Use
    clear_config_cache() to force a reload regardless of mtime.

    Thread-safe: uses a lock to protect concurrent access to the cache.
    """
    if path is None:
        path = get_default_config_path()

    try:
        current_mtime = path.stat().st_mtime
    except FileNotFoundError:
        current_mtime = 0.0

    # Fast path: check cache without lock (dict reads are atomic in CPython)
    cached = _config_cache.get(path)
    if cached is not None and cached[1] == current_mtime:
        return cached[0]

    with _config_cache_lock:
        cached = _config_cache.get(path)
        if cached is not None and cached[1] == current_mtime:
            return cached[0]

        result = load_toml_file(path, strict=strict)
        _config_cache[path] = (result, current_mtime)
        return result


def clear_config_cache() -> None:
    """Clear the config file cache. Primarily useful for testing."""
    with _config_cache_lock:
        _config_cache.clear()


def _file_path(section: dict[str, Any], key: str) -> Path | None:
    value = section.get(key)
    return Path(value).expanduser() if value else None


def _first(*values: Any) -> Any:
    """Return the first value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


def get_config(
    config_path: Path | None = None,
    *,
    ffmpeg_path: Path | None = None,
    niceness: int | None = None,
    stdout_lines: int | None = None,
    timeout: float | None = None,
    presets_dir: Path | None = None,
    env_reader: EnvReader | None = None,
    strict: bool = False,
) -> FfdriveConfig:
    """Get ffdrive configuration with full precedence handling.

    Args:
        config_path: Path to config file (overrides FFDRIVE_CONFIG_PATH).
        ffmpeg_path: Override for the ffmpeg path.
        niceness: Override for the default process niceness.
        stdout_lines: Override for the retained diagnostic line count.
        timeout: Override for the default run timeout.
        presets_dir: Override for the YAML presets directory.
        env_reader: Optional EnvReader for testing (uses os.environ if None).
        strict: If True, raise ConfigurationError on config file parse
            failures instead of falling back to defaults.

    Returns:
        FfdriveConfig with merged configuration.

    Raises:
        ConfigurationError: If a merged value is invalid.
    """
    reader = env_reader or EnvReader()
    file_config = load_config_file(config_path, strict=strict)

    tools_file = file_config.get("tools", {})
    process_file = file_config.get("process", {})
    logging_file = file_config.get("logging", {})
    presets_file = file_config.get("presets", {})

    tool_paths = {
        name: _first(
            ffmpeg_path if name == "ffmpeg" else None,
            reader.get_path(f"FFDRIVE_{name.upper()}_PATH", must_exist=False),
            _file_path(tools_file, name),
        )
        for name in _TOOL_NAMES
    }

    try:
        return FfdriveConfig(
            tools=ToolPathsConfig(**tool_paths),
            process=ProcessConfig(
                niceness=_first(
                    niceness,
                    reader.get_int("FFDRIVE_NICENESS"),
                    process_file.get("niceness"),
                    0,
                ),
                stdout_lines=_first(
                    stdout_lines,
                    reader.get_int("FFDRIVE_STDOUT_LINES"),
                    process_file.get("stdout_lines"),
                    100,
                ),
                timeout=_first(
                    timeout,
                    reader.get_float("FFDRIVE_TIMEOUT"),
                    process_file.get("timeout"),
                ),
                merge_output=_first(
                    reader.get_bool("FFDRIVE_MERGE_OUTPUT"),
                    process_file.get("merge_output"),
                    False,
                ),
                cwd=_file_path(process_file, "cwd"),
                env=dict(process_file.get("env", {})),
                check_capabilities=_first(
                    reader.get_bool("FFDRIVE_CHECK_CAPABILITIES"),
                    process_file.get("check_capabilities"),
                    False,
                ),
            ),
            logging=LoggingConfig(
                level=_first(
                    reader.get_str("FFDRIVE_LOG_LEVEL"),
                    logging_file.get("level"),
                    "info",
                ),
                file=_first(
                    reader.get_path("FFDRIVE_LOG_FILE", must_exist=False),
                    _file_path(logging_file, "file"),
                ),
                format=_first(
                    reader.get_str("FFDRIVE_LOG_FORMAT"),
                    logging_file.get("format"),
                    "text",
                ),
                include_stderr=logging_file.get("include_stderr", False),
                max_bytes=logging_file.get("max_bytes", 10_485_760),
                backup_count=logging_file.get("backup_count", 5),
            ),
            presets=PresetsConfig(
                directory=_first(
                    presets_dir,
                    reader.get_path("FFDRIVE_PRESETS_DIR"),
                    _file_path(presets_file, "directory"),
                ),
            ),
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
