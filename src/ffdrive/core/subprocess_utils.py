"""Blocking runner for short helper commands.

Capability listings (``ffmpeg -codecs`` and friends), flv metadata updates
and renice run to completion here. Transcodes, which stream diagnostics
while they run, go through ffdrive.executor.process instead.
"""

from __future__ import annotations

import logging
import subprocess  # nosec B404 - subprocess is required for FFmpeg invocation
import time
from collections.abc import Sequence
from pathlib import Path

from ffdrive.exceptions import SpawnError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120


def run_command(
    args: Sequence[str | Path],
    timeout: float = DEFAULT_TIMEOUT,
    *,
    cwd: str | Path | None = None,
) -> tuple[str, str, int]:
    """Run a helper command and collect its decoded output.

    Args:
        args: Executable followed by its arguments.
        timeout: Seconds before the child is killed.
        cwd: Working directory for the child.

    Returns:
        Tuple of (stdout, stderr, returncode). Undecodable bytes are
        replaced rather than raising.

    Raises:
        SpawnError: If the executable cannot be launched.
        subprocess.TimeoutExpired: If the command outlives timeout.
    """
    argv = [str(arg) for arg in args]
    tool = Path(argv[0]).name

    logger.debug("Running %s", " ".join(argv), extra={"tool": tool})
    started = time.monotonic()
    try:
        completed = subprocess.run(  # nosec B603 - argv assembled by ffdrive
            argv,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
            cwd=cwd,
        )
    except OSError as e:
        raise SpawnError(tool, f"Cannot launch {tool}: {e}") from e
    except subprocess.TimeoutExpired:
        logger.warning("%s did not finish within %ss", tool, timeout)
        raise

    logger.debug(
        "%s exited with %d after %.2fs",
        tool,
        completed.returncode,
        time.monotonic() - started,
    )
    return completed.stdout or "", completed.stderr or "", completed.returncode
