"""External tool location.

Resolves the executables ffdrive drives (ffmpeg and the optional flv
metadata tools) to absolute paths. Lookup order for each tool:

1. A path registered with set_tool_path()
2. The configured path from ffdrive configuration ([tools] section)
3. Tool-specific environment variables (FFMPEG_PATH, FLVMETA_PATH, ...)
4. The system PATH
"""

from __future__ import annotations

import logging
import os
import shutil
import threading
from pathlib import Path

from ffdrive.exceptions import SpawnError

logger = logging.getLogger(__name__)

# Environment variables consulted for each tool, highest priority first
TOOL_ENV_VARS: dict[str, tuple[str, ...]] = {
    "ffmpeg": ("FFDRIVE_FFMPEG_PATH", "FFMPEG_PATH"),
    "flvmeta": ("FFDRIVE_FLVMETA_PATH", "FLVMETA_PATH"),
    "flvtool2": ("FFDRIVE_FLVTOOL2_PATH", "FLVTOOL2_PATH"),
}

# Paths registered at runtime, shared by every command
_tool_paths: dict[str, Path] = {}
_tool_paths_lock = threading.Lock()


def set_tool_path(name: str, path: str | Path | None) -> None:
    """Register an explicit path for a tool, or clear it with None."""
    with _tool_paths_lock:
        if path is None:
            _tool_paths.pop(name, None)
        else:
            _tool_paths[name] = Path(path)


def clear_tool_paths() -> None:
    """Forget all registered tool paths. Primarily useful for testing."""
    with _tool_paths_lock:
        _tool_paths.clear()


def _configured_path(name: str) -> Path | None:
    from ffdrive.config import get_config

    return getattr(get_config().tools, name, None)


def find_tool(name: str, configured_path: Path | None = None) -> Path | None:
    """Find a tool executable.

    Args:
        name: Tool name (e.g., "ffmpeg").
        configured_path: Optional path override that takes precedence over
            configuration and environment.

    Returns:
        Path to the executable, or None if not found.
    """
    with _tool_paths_lock:
        registered = _tool_paths.get(name)

    candidates: list[tuple[str, Path]] = []
    if registered is not None:
        candidates.append(("registered", registered))
    if configured_path is not None:
        candidates.append(("configured", configured_path))
    else:
        from_config = _configured_path(name)
        if from_config is not None:
            candidates.append(("configured", from_config))
    for var in TOOL_ENV_VARS.get(name, ()):
        value = os.environ.get(var)
        if value:
            candidates.append((var, Path(value).expanduser()))

    for source, path in candidates:
        if path.is_file():
            return path
        logger.warning("%s path for %s is not a file: %s", source, name, path)

    which_result = shutil.which(name)
    if which_result:
        return Path(which_result)

    return None


def require_tool(name: str, configured_path: Path | None = None) -> Path:
    """Get the path to a required tool.

    Raises:
        SpawnError: If the tool cannot be found.
    """
    path = find_tool(name, configured_path)
    if path is None:
        raise SpawnError(
            name,
            f"Cannot find {name}. Install it, add it to PATH or set "
            f"{TOOL_ENV_VARS.get(name, ('its path',))[0]}.",
        )
    return path


def find_flvtool() -> Path | None:
    """Find a tool able to update FLV metadata (flvmeta, then flvtool2)."""
    return find_tool("flvmeta") or find_tool("flvtool2")
