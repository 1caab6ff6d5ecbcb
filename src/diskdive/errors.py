"""Exception types for diskdive."""

from pathlib import Path


class DiskDiveError(Exception):
    """Base class for diskdive errors."""


class ScanError(DiskDiveError):
    """Raised when the children of a directory cannot be listed."""

    def __init__(self, path: Path | str, cause: OSError):
        self.path = str(path)
        self.cause = cause
        reason = cause.strerror or str(cause)
        super().__init__(f"Cannot read {self.path}: {reason}")


class UnsafePathError(DiskDiveError):
    """Raised when a path is refused by the deletion safety checks."""

    def __init__(self, path: Path | str, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Refusing to delete {self.path}: {reason}")
