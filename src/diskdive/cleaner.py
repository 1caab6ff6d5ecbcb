"""Deletion with safety checks for diskdive."""

import logging
import os
import re
import shutil
from pathlib import Path

from diskdive.config import expand_path
from diskdive.errors import UnsafePathError

log = logging.getLogger(__name__)

# Paths that may never be deleted themselves (their contents may be)
BLOCKED_PATHS = [
    "/",
    "~",
    "~/Documents",
    "~/Desktop",
    "~/Pictures",
    "~/Music",
    "~/Movies",
    "~/Library",
    "/Applications",
    "/Library",
    "/Users",
    "/home",
    "/opt",
    "/private",
    "/var",
    "/tmp",
]

# Trees that may not be touched at any depth
PROTECTED_TREES = [
    "/bin",
    "/sbin",
    "/usr",
    "/etc",
    "/boot",
    "/dev",
    "/proc",
    "/sys",
    "/System",
    "/private/etc",
    "/var/db",
    "/private/var/db",
]

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def _within(path: str, tree: str) -> bool:
    return path == tree or path.startswith(tree.rstrip("/") + "/")


def validate_path_for_deletion(path: Path | str) -> Path:
    """
    Check that a path may be deleted.

    Args:
        path: Path the user asked to delete

    Returns:
        The path as a Path object

    Raises:
        UnsafePathError: If the path is relative, contains a '..' component or
            control characters, or is a blocked or protected location
    """
    raw = os.fspath(path)
    if not raw:
        raise UnsafePathError(raw, "empty path")
    if not os.path.isabs(raw):
        raise UnsafePathError(raw, "path must be absolute")
    if ".." in Path(raw).parts:
        raise UnsafePathError(raw, "path traversal is not allowed")
    if _CONTROL_CHARS.search(raw):
        raise UnsafePathError(raw, "path contains control characters")

    normalized = os.path.normpath(raw)
    for blocked in BLOCKED_PATHS:
        if normalized == os.path.normpath(str(expand_path(blocked))):
            raise UnsafePathError(raw, "protected location")
    for tree in PROTECTED_TREES:
        if _within(normalized, tree):
            raise UnsafePathError(raw, "critical system directory")

    # A symlink is removed as a link, but not if it points into a system tree
    if os.path.islink(normalized):
        target = os.path.realpath(normalized)
        for tree in PROTECTED_TREES:
            if _within(target, tree):
                raise UnsafePathError(raw, f"symlink points into {tree}")

    return Path(normalized)


def is_path_safe(path: Path | str) -> bool:
    """Return True if path passes validate_path_for_deletion()."""
    try:
        validate_path_for_deletion(path)
    except UnsafePathError:
        return False
    return True


def remove_path(path: Path | str) -> None:
    """
    Delete a file, symlink or directory tree.

    Raises:
        UnsafePathError: If the path fails the safety checks
        OSError: If the filesystem refuses the deletion
    """
    target = validate_path_for_deletion(path)
    if target.is_symlink() or not target.is_dir():
        target.unlink()
    else:
        shutil.rmtree(target)
    log.info("Deleted %s", target)
