"""Shared file I/O helpers.

Pipeline and marker files are only ever replaced whole: content goes to a
temp file next to the target and is renamed over it, so a crash mid-write
never leaves a truncated file behind.
"""

import contextlib
import logging
import os
from pathlib import Path

__all__ = [
    "atomic_write",
    "read_text_if_exists",
]

logger = logging.getLogger(__name__)

# Permissions for files that did not exist before the write
DEFAULT_FILE_MODE = 0o644


def atomic_write(path: Path, content: str) -> None:
    """Write content to path atomically using temp file + os.replace.

    Uses PID in temp filename to prevent collisions when multiple
    processes write simultaneously. Permissions of an existing target
    are carried over to the new file.

    Args:
        path: Target file path.
        content: Content to write (UTF-8).

    Raises:
        OSError: If write fails. The target is left untouched.

    """
    path.parent.mkdir(parents=True, exist_ok=True)

    orig_mode = path.stat().st_mode & 0o777 if path.exists() else DEFAULT_FILE_MODE

    temp_path = path.parent / f".{path.name}.{os.getpid()}.tmp"
    try:
        with open(temp_path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.chmod(temp_path, orig_mode)
        os.replace(temp_path, path)
    except OSError:
        with contextlib.suppress(OSError):
            if temp_path.exists():
                temp_path.unlink()
        raise

    logger.debug("Wrote %d bytes to %s", len(content), path)


def read_text_if_exists(path: Path) -> str | None:
    """Read a UTF-8 text file, returning None when it does not exist.

    Args:
        path: File to read.

    Returns:
        File content, or None if the file is missing.

    Raises:
        OSError: If the file exists but cannot be read.
        UnicodeDecodeError: If the file is not valid UTF-8.

    """
    if not path.exists():
        return None
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()
