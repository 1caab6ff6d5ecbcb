"""Directory scanning for diskdive."""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from diskdive.config import Settings, absolute_path
from diskdive.errors import ScanError
from diskdive.estimator import ScanLimits, shallow_dir_size
from diskdive.models import DirectoryEntry, LargeFileEntry, ScanResult
from diskdive.patterns import is_cleanable, is_skipped

log = logging.getLogger(__name__)

# Hard ceiling on worker threads, whatever the CPU count
MAX_WORKERS = 32


def worker_count(cap: int = MAX_WORKERS) -> int:
    """Return the scan pool size: twice the CPU count, capped."""
    return max(1, min(2 * (os.cpu_count() or 1), cap, MAX_WORKERS))


class ScanProgress:
    """
    Counters shared between scan workers and a progress display.

    Workers increment under a private lock; readers read the plain integers
    without locking, so polling from the UI never contends with the scan.
    """

    def __init__(self, expected_files: Optional[int] = None):
        self.processed = 0
        self.total = 0
        self.files = 0
        self.expected_files = expected_files
        self._lock = threading.Lock()

    def start(self, total: int) -> None:
        with self._lock:
            self.processed = 0
            self.files = 0
            self.total = total

    def advance(self, files: int = 0) -> None:
        """Record one finished child and the files it accounted for."""
        with self._lock:
            self.processed += 1
            self.files += files

    @property
    def fraction(self) -> float:
        """Completed share of the children, 0.0 when nothing is known yet."""
        return self.processed / self.total if self.total else 0.0


@dataclass(frozen=True)
class _Child:
    index: int
    name: str
    path: str
    is_dir: bool


@dataclass(frozen=True)
class _Measured:
    entry: DirectoryEntry
    large_file: Optional[LargeFileEntry]
    files: int


class _Accumulator:
    """Lock-protected buffer that scan workers write into."""

    def __init__(self):
        self._lock = threading.Lock()
        self.entries: list[tuple[int, DirectoryEntry]] = []
        self.large_files: list[tuple[int, LargeFileEntry]] = []
        self.total_size = 0
        self.total_files = 0

    def add(self, index: int, measured: _Measured) -> None:
        with self._lock:
            self.entries.append((index, measured.entry))
            self.total_size += measured.entry.size
            self.total_files += measured.files
            if measured.large_file is not None:
                self.large_files.append((index, measured.large_file))

    def to_result(self) -> ScanResult:
        # Size-descending, ties keep listing order
        entries = sorted(self.entries, key=lambda item: (-item[1].size, item[0]))
        large_files = sorted(self.large_files, key=lambda item: (-item[1].size, item[0]))
        return ScanResult(
            entries=[entry for _, entry in entries],
            large_files=[large for _, large in large_files],
            total_size=self.total_size,
            total_files=self.total_files,
        )


def _access_time(st: os.stat_result) -> datetime:
    return datetime.fromtimestamp(st.st_atime)


def _measure_child(child: _Child, limits: ScanLimits, large_threshold: int) -> _Measured:
    """Size one child. Filesystem errors give a zero-size entry."""
    size = 0
    files = 0
    last_access = None

    if child.is_dir:
        size, files = shallow_dir_size(child.path, limits)
        try:
            last_access = _access_time(os.lstat(child.path))
        except OSError:
            pass
    else:
        try:
            st = os.lstat(child.path)
            size = st.st_size
            files = 1
            last_access = _access_time(st)
        except OSError as e:
            log.debug("Cannot stat %s: %s", child.path, e)

    entry = DirectoryEntry(
        name=child.name,
        path=child.path,
        size=size,
        is_dir=child.is_dir,
        last_access=last_access,
        is_cleanable=child.is_dir and is_cleanable(child.name),
    )
    large_file = None
    if not child.is_dir and size >= large_threshold:
        large_file = LargeFileEntry(name=child.name, path=child.path, size=size)
    return _Measured(entry=entry, large_file=large_file, files=files)


def list_children(path: str) -> list[_Child]:
    """
    List the immediate children of a directory, minus skipped names.

    Raises:
        ScanError: If the directory itself cannot be read
    """
    children: list[_Child] = []
    try:
        with os.scandir(path) as entries:
            for entry in entries:
                if is_skipped(entry.name):
                    continue
                try:
                    is_dir = entry.is_dir(follow_symlinks=False)
                except OSError:
                    is_dir = False
                children.append(_Child(len(children), entry.name, entry.path, is_dir))
    except OSError as e:
        raise ScanError(path, e) from e
    return children


def scan_directory(
    path: Path | str,
    settings: Settings | None = None,
    progress: ScanProgress | None = None,
) -> ScanResult:
    """
    Scan the immediate children of a directory in parallel.

    Directory children are sized with a bounded estimate, so their sizes
    are lower bounds. File children are stat'ed directly.

    Args:
        path: Directory to scan
        settings: Limits and thresholds (default: Settings())
        progress: Optional counters updated as children complete

    Returns:
        ScanResult with entries and large files sorted by size, descending

    Raises:
        ScanError: If the directory cannot be listed
    """
    settings = settings or Settings()
    root = absolute_path(path)
    children = list_children(root)

    limits = ScanLimits.from_settings(settings)
    threshold = settings.large_file_threshold
    accumulator = _Accumulator()
    if progress is not None:
        progress.start(len(children))

    def _work(child: _Child) -> None:
        measured = _measure_child(child, limits, threshold)
        accumulator.add(child.index, measured)
        if progress is not None:
            progress.advance(measured.files)

    if children:
        workers = min(worker_count(settings.max_workers), len(children))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="diskdive-scan") as pool:
            futures = [pool.submit(_work, child) for child in children]
        # Leaving the pool joined every worker; surface unexpected bugs
        for future in futures:
            future.result()

    result = accumulator.to_result()
    log.info(
        "Scanned %s: %d entries, %d large files, %d bytes",
        root,
        len(result.entries),
        len(result.large_files),
        result.total_size,
    )
    return result
