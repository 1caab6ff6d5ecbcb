"""Bounded directory size estimation.

The walk stops as soon as any bound is hit (depth, number of files counted,
or the wall-clock budget) and returns what it has accumulated so far. The
sizes returned here are therefore lower bounds, never exact totals: they
trade accuracy for a hard ceiling on latency.
"""

import logging
import os
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from diskdive.patterns import is_skipped

log = logging.getLogger(__name__)


class CancelToken:
    """Cancellation signal checked at every step of a size walk.

    A token is cancelled explicitly with cancel() or implicitly once its
    deadline passes. Each directory estimate gets its own token, so running
    out of time aborts that one walk and nothing else.
    """

    def __init__(self, deadline: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = deadline

    @classmethod
    def after(cls, seconds: float) -> "CancelToken":
        """Create a token that cancels itself `seconds` from now."""
        return cls(time.monotonic() + seconds)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._event.set()
            return True
        return False


@dataclass(frozen=True)
class ScanLimits:
    """Bounds applied to one directory size estimate."""

    timeout: float = 0.5
    max_depth: int = 3
    max_files: int = 10_000

    @classmethod
    def from_settings(cls, settings) -> "ScanLimits":
        return cls(
            timeout=settings.size_timeout,
            max_depth=settings.max_depth,
            max_files=settings.max_files,
        )


def shallow_dir_size(
    path: Path | str,
    limits: ScanLimits | None = None,
    token: CancelToken | None = None,
) -> tuple[int, int]:
    """
    Estimate the size of a directory with a bounded depth-first walk.

    Hidden directories below the root and directories in the skip set are
    not descended into. Unreadable or vanished entries count as zero.

    Args:
        path: Directory to measure
        limits: Depth, file-count and time bounds (default: ScanLimits())
        token: Cancellation token (default: one expiring after limits.timeout)

    Returns:
        Tuple of (total_bytes, file_count), a lower bound of the real values
    """
    limits = limits or ScanLimits()
    token = token or CancelToken.after(limits.timeout)

    total_size = 0
    file_count = 0

    def _exhausted() -> bool:
        return file_count >= limits.max_files or token.cancelled

    def _scan(current: str, depth: int) -> bool:
        # Returns False once a bound is hit so every caller unwinds at once
        nonlocal total_size, file_count
        if depth > limits.max_depth:
            return True
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    if _exhausted():
                        return False
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            name = entry.name
                            if is_skipped(name) or name.startswith("."):
                                continue
                            if not _scan(entry.path, depth + 1):
                                return False
                        else:
                            total_size += entry.stat(follow_symlinks=False).st_size
                            file_count += 1
                    except OSError as e:
                        log.debug("Skipping %s: %s", entry.path, e)
                        continue
        except OSError as e:
            log.debug("Cannot read %s: %s", current, e)
        return True

    if not _scan(os.fspath(path), 0):
        log.debug(
            "Estimate of %s stopped early at %d files (%d bytes)", path, file_count, total_size
        )
    return total_size, file_count


def estimate_size(path: Path | str, limits: ScanLimits | None = None) -> int:
    """
    Estimate the size of a directory in bytes.

    The result is a lower bound: see shallow_dir_size().
    """
    size, _ = shallow_dir_size(path, limits)
    return size
