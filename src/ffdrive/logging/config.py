"""Logging configuration for ffdrive.

Provides configure_logging() to set up logging based on LoggingConfig.
ffdrive itself never calls it: applications embedding the library decide
whether to use it or their own handlers.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from ffdrive.logging.context import RunContextFilter
from ffdrive.logging.handlers import JSONFormatter

if TYPE_CHECKING:
    from ffdrive.config.models import LoggingConfig

# Map of lowercase level names to logging module constants.
_LEVEL_MAP: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

TEXT_FORMAT = "%(asctime)s - %(run_tag)s%(name)s - %(levelname)s - %(message)s"


def configure_logging(
    config: LoggingConfig, logger_name: str | None = None
) -> logging.Logger:
    """Configure logging based on LoggingConfig.

    Sets up handlers for file and/or stderr output with appropriate formatters.

    Args:
        config: Logging configuration.
        logger_name: Logger to configure. None configures the root logger.

    Returns:
        The configured logger.
    """
    level = _LEVEL_MAP.get(config.level.casefold(), logging.INFO)

    target_logger = logging.getLogger(logger_name)
    target_logger.setLevel(level)

    # Clear existing handlers
    for handler in list(target_logger.handlers):
        target_logger.removeHandler(handler)
        handler.close()

    if config.format.casefold() == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        # run_tag is "[run 3f9a1c2e] " during a run, empty string otherwise
        formatter = logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")

    context_filter = RunContextFilter()

    file_handler_added = False
    if config.file:
        try:
            file_path = Path(config.file).expanduser()
            file_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = RotatingFileHandler(
                file_path,
                maxBytes=config.max_bytes,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            file_handler.addFilter(context_filter)
            target_logger.addHandler(file_handler)
            file_handler_added = True
        except OSError as e:
            # Log file unavailable - fall back to stderr
            sys.stderr.write(f"Warning: Could not open log file {config.file}: {e}\n")

    if config.include_stderr or not file_handler_added:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(level)
        stderr_handler.setFormatter(formatter)
        stderr_handler.addFilter(context_filter)
        target_logger.addHandler(stderr_handler)

    return target_logger
