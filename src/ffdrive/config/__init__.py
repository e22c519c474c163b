"""Configuration for ffdrive.

Settings come from keyword arguments, FFDRIVE_* environment variables and
an optional TOML file, in that order of precedence.
"""

from ffdrive.config.env import EnvReader
from ffdrive.config.loader import (
    DEFAULT_CONFIG_DIR,
    DEFAULT_CONFIG_FILE,
    clear_config_cache,
    get_config,
    get_default_config_path,
    load_config_file,
)
from ffdrive.config.models import (
    FfdriveConfig,
    LoggingConfig,
    PresetsConfig,
    ProcessConfig,
    ToolPathsConfig,
)

__all__ = [
    "DEFAULT_CONFIG_DIR",
    "DEFAULT_CONFIG_FILE",
    "EnvReader",
    "FfdriveConfig",
    "LoggingConfig",
    "PresetsConfig",
    "ProcessConfig",
    "ToolPathsConfig",
    "clear_config_cache",
    "get_config",
    "get_default_config_path",
    "load_config_file",
]
