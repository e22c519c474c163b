"""Run context for structured logging.

Tags every log record emitted while an ffmpeg run is being driven with the
run's identifier, using contextvars so concurrent runs on different
threads keep their own context.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_run_target: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_target", default=None
)


def set_run_context(run_id: str, target: str | None = None) -> None:
    """Set the current run context.

    Args:
        run_id: Run identifier (e.g., "3f9a1c2e").
        target: Description of the run's first output, if any.
    """
    _run_id.set(run_id)
    _run_target.set(target)


def clear_run_context() -> None:
    """Clear the current run context."""
    _run_id.set(None)
    _run_target.set(None)


@contextmanager
def run_context(
    run_id: str, target: str | None = None
) -> Generator[None, None, None]:
    """Set run context on entry and restore the previous one on exit.

    Example:
        with run_context("3f9a1c2e", "out.mp4"):
            logger.info("Spawning ffmpeg")  # Record carries run_id
    """
    old_run_id = _run_id.get()
    old_target = _run_target.get()
    try:
        set_run_context(run_id, target)
        yield
    finally:
        _run_id.set(old_run_id)
        _run_target.set(old_target)


def get_run_context() -> tuple[str | None, str | None]:
    """Get current run context as (run_id, target); either may be None."""
    return _run_id.get(), _run_target.get()


class RunContextFilter(logging.Filter):
    """Logging filter that injects run context into log records.

    Adds run_id and run_target attributes for JSON output and a compact
    run_tag ("[run 3f9a1c2e] ") for text output.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        run_id, target = get_run_context()
        record.run_id = run_id
        record.run_target = target
        record.run_tag = f"[run {run_id}] " if run_id else ""
        return True  # Never filter out records
