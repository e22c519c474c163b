"""Structured logging module for ffdrive.

Provides configurable logging with JSON format support and file rotation.
Includes run context support so records emitted during a run carry its id.
"""

from ffdrive.logging.config import configure_logging
from ffdrive.logging.context import (
    RunContextFilter,
    clear_run_context,
    get_run_context,
    run_context,
    set_run_context,
)
from ffdrive.logging.handlers import JSONFormatter

__all__ = [
    "JSONFormatter",
    "RunContextFilter",
    "clear_run_context",
    "configure_logging",
    "get_run_context",
    "run_context",
    "set_run_context",
]
