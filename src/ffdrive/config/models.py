"""Configuration data models.

This module defines dataclasses for ffdrive configuration options.
"""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class ToolPathsConfig:
    """Configuration for external tool paths.

    All paths are optional. If not specified, tools are looked up in PATH.
    """

    ffmpeg: Path | None = None
    flvmeta: Path | None = None
    flvtool2: Path | None = None


@dataclass
class ProcessConfig:
    """Defaults applied to every ffmpeg run."""

    # Process niceness (ignored on Windows)
    niceness: int = 0

    # Diagnostic lines retained for error reports (0 = unlimited)
    stdout_lines: int = 100

    # Wall-clock timeout in seconds (None = no limit)
    timeout: float | None = None

    # Redirect stderr into stdout
    merge_output: bool = False

    # Working directory for the child (None = inherit)
    cwd: Path | None = None

    # Extra environment variables for the child
    env: dict[str, str] = field(default_factory=dict)

    # Verify formats and codecs against ffmpeg before spawning
    check_capabilities: bool = False

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.stdout_lines < 0:
            raise ValueError(f"stdout_lines must be >= 0, got {self.stdout_lines}")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if not -20 <= self.niceness <= 20:
            raise ValueError(
                f"niceness must be between -20 and 20, got {self.niceness}"
            )


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    # Log level: debug, info, warning, error
    level: str = "info"

    # Log file path (None = stderr only)
    file: Path | None = None

    # Log format: text or json
    format: str = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = {"debug", "info", "warning", "error"}
        if self.level.lower() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}, got {self.level}")
        valid_formats = {"text", "json"}
        if self.format.lower() not in valid_formats:
            raise ValueError(
                f"format must be one of {valid_formats}, got {self.format}"
            )


@dataclass
class PresetsConfig:
    """Configuration for preset lookup."""

    # Directory searched for <name>.yaml presets (None = built-ins only)
    directory: Path | None = None


@dataclass
class FfdriveConfig:
    """Main configuration container."""

    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    process: ProcessConfig = field(default_factory=ProcessConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    presets: PresetsConfig = field(default_factory=PresetsConfig)
