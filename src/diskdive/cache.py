"""Persistent scan cache for diskdive.

Two stores share one cache directory:

* full records, one ``<hash>.cache`` file per scanned directory, holding the
  complete ScanResult plus the directory mtime and scan time;
* overview snapshots, a single ``overview_sizes.json`` map of path to total
  size, for cheap dashboards and background prefetch.

Both stores are written atomically (temp file + rename). A file that fails to
decode is renamed aside with a ``.corrupt`` suffix and treated as a miss.
"""

import hashlib
import logging
import os
import tempfile
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

from pydantic import TypeAdapter, ValidationError

from diskdive.config import Settings, absolute_path
from diskdive.models import CacheRecord, OverviewSnapshot, ScanResult

log = logging.getLogger(__name__)

RECORD_SUFFIX = ".cache"
CORRUPT_SUFFIX = ".corrupt"
OVERVIEW_FILE = "overview_sizes.json"

_SNAPSHOT_MAP = TypeAdapter(dict[str, OverviewSnapshot])


def _write_atomic(target: Path, data: bytes) -> None:
    """Write data to target through a temp file in the same directory."""
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=target.parent, prefix=target.name, suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp, target)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


def _quarantine(file: Path, reason: object) -> None:
    """Move an undecodable cache file aside so it is never read again."""
    backup = file.with_name(file.name + CORRUPT_SUFFIX)
    try:
        os.replace(file, backup)
        log.warning("Corrupt cache file %s moved to %s: %s", file, backup, reason)
    except OSError as e:
        log.warning("Corrupt cache file %s could not be moved aside: %s", file, e)


class OverviewStore:
    """In-memory map of path -> OverviewSnapshot mirrored to one JSON file."""

    def __init__(self, store_path: Path, ttl: float, clock: Callable[[], float] = time.time):
        self.store_path = store_path
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._snapshots: Optional[dict[str, OverviewSnapshot]] = None

    def _loaded(self) -> dict[str, OverviewSnapshot]:
        """Return the map, loading it on first use. Caller holds the lock."""
        if self._snapshots is not None:
            return self._snapshots

        snapshots: dict[str, OverviewSnapshot] = {}
        try:
            data = self.store_path.read_bytes()
        except FileNotFoundError:
            data = b""
        except OSError as e:
            log.warning("Cannot read overview store %s: %s", self.store_path, e)
            data = b""

        if data.strip():
            try:
                snapshots = _SNAPSHOT_MAP.validate_json(data)
            except ValidationError as e:
                _quarantine(self.store_path, e)

        self._snapshots = snapshots
        return snapshots

    def _persist(self) -> bool:
        """Mirror the map to disk. Caller holds the lock."""
        try:
            _write_atomic(self.store_path, _SNAPSHOT_MAP.dump_json(self._loaded(), indent=2))
            return True
        except (OSError, ValueError) as e:
            log.warning("Cannot write overview store %s: %s", self.store_path, e)
            return False

    def get(self, path: Path | str) -> Optional[int]:
        """Return the stored size for path, or None if missing or expired."""
        key = absolute_path(path)
        with self._lock:
            snapshot = self._loaded().get(key)
        if snapshot is None or snapshot.size <= 0:
            return None
        if self._clock() - snapshot.updated.timestamp() >= self.ttl:
            return None
        return snapshot.size

    def put(self, path: Path | str, size: int) -> bool:
        """Store a size for path. Empty paths and non-positive sizes are rejected."""
        if not path or size <= 0:
            return False
        key = absolute_path(path)
        snapshot = OverviewSnapshot(size=size, updated=datetime.fromtimestamp(self._clock()))
        with self._lock:
            self._loaded()[key] = snapshot
            return self._persist()

    def remove(self, path: Path | str) -> None:
        if not path:
            return
        key = absolute_path(path)
        with self._lock:
            snapshots = self._loaded()
            if key in snapshots:
                del snapshots[key]
                self._persist()

    def reset(self) -> None:
        """Forget the in-memory map; the next access reloads from disk."""
        with self._lock:
            self._snapshots = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._loaded())


class ScanCache:
    """
    Handle to the on-disk scan cache.

    One instance is created per process and passed to whoever needs it.
    Expiry of full records is governed by the Settings TTLs and windows.
    """

    def __init__(
        self,
        cache_dir: Path | str,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.cache_dir = Path(cache_dir)
        self.settings = settings or Settings()
        self._clock = clock
        self.overview = OverviewStore(
            self.cache_dir / OVERVIEW_FILE, self.settings.overview_ttl, clock
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScanCache":
        return cls(settings.resolved_cache_dir(), settings)

    def record_path(self, path: Path | str) -> Path:
        """Return the record file for a directory (stable hash of its absolute path)."""
        key = absolute_path(path).encode("utf-8", "surrogateescape")
        digest = hashlib.blake2b(key, digest_size=8).hexdigest()
        return self.cache_dir / f"{digest}{RECORD_SUFFIX}"

    def _read_record(self, key: str) -> Optional[CacheRecord]:
        file = self.record_path(key)
        try:
            data = file.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            log.debug("Cannot read cache file %s: %s", file, e)
            return None

        try:
            record = CacheRecord.model_validate_json(data)
        except ValidationError as e:
            _quarantine(file, e)
            return None

        if record.path != key:
            log.debug("Cache file %s belongs to %s, not %s", file, record.path, key)
            return None
        return record

    def load(self, path: Path | str) -> Optional[CacheRecord]:
        """
        Load a record that is still valid for path.

        A record is rejected when older than cache_ttl, whatever the mtime.
        Otherwise it is rejected when the directory mtime moved past the
        recorded one by more than mtime_grace, unless the record is younger
        than reuse_window.

        Returns:
            The CacheRecord, or None on a miss (absent, corrupt or expired)
        """
        key = absolute_path(path)
        record = self._read_record(key)
        if record is None:
            return None

        try:
            st = os.stat(key)
        except OSError:
            return None

        settings = self.settings
        age = self._clock() - record.scanned_at
        if age > settings.cache_ttl:
            log.debug("Cache for %s expired: %.0fs old", key, age)
            return None

        if st.st_mtime > record.dir_mtime:
            drift = st.st_mtime - record.dir_mtime
            if settings.mtime_grace <= 0 or drift > settings.mtime_grace:
                # Busy directories touch their mtime constantly; only recent
                # records survive a real change
                if settings.reuse_window <= 0 or age > settings.reuse_window:
                    log.debug("Cache for %s expired: directory modified", key)
                    return None

        return record

    def load_stale(self, path: Path | str) -> Optional[CacheRecord]:
        """
        Load a record for display only, ignoring directory mtime.

        Only stale_ttl is enforced. The result must not be trusted for
        anything but painting the screen while a real scan runs.
        """
        key = absolute_path(path)
        record = self._read_record(key)
        if record is None:
            return None
        if not os.path.isdir(key):
            return None
        if self._clock() - record.scanned_at > self.settings.stale_ttl:
            return None
        return record

    def save(self, path: Path | str, result: ScanResult) -> bool:
        """Write the record for path, replacing any previous one."""
        key = absolute_path(path)
        try:
            st = os.stat(key)
        except OSError as e:
            log.warning("Not caching %s: %s", key, e)
            return False

        record = CacheRecord(
            path=key,
            result=result,
            dir_mtime=st.st_mtime,
            scanned_at=self._clock(),
        )
        file = self.record_path(key)
        try:
            _write_atomic(file, record.model_dump_json().encode("utf-8"))
        except (OSError, ValueError) as e:
            log.warning("Cannot write cache file %s: %s", file, e)
            return False
        return True

    def invalidate(self, path: Path | str) -> None:
        """Drop both the full record and the overview snapshot for path."""
        key = absolute_path(path)
        try:
            self.record_path(key).unlink(missing_ok=True)
        except OSError as e:
            log.warning("Cannot remove cache for %s: %s", key, e)
        self.overview.remove(key)

    def peek_total_files(self, path: Path | str) -> Optional[int]:
        """Return the file count of the last scan of path, ignoring expiry."""
        record = self._read_record(absolute_path(path))
        return record.result.total_files if record else None

    def overview_size(self, path: Path | str) -> Optional[int]:
        """
        Return a cached total size for path.

        Falls back to a valid full record and backfills the snapshot.
        """
        size = self.overview.get(path)
        if size is not None:
            return size
        record = self.load(path)
        if record is None:
            return None
        self.overview.put(path, record.result.total_size)
        return record.result.total_size

    def prefetch_overview(
        self,
        paths: Iterable[Path | str],
        measure: Callable[[str], int],
        stop: threading.Event | None = None,
    ) -> dict[str, int]:
        """
        Measure and store sizes for paths that lack a fresh snapshot.

        Args:
            paths: Paths to warm
            measure: Callable returning the total size of a path
            stop: Optional event; prefetch returns early once it is set

        Returns:
            Dict of path -> size for every path measured
        """
        measured: dict[str, int] = {}
        for path in paths:
            if stop is not None and stop.is_set():
                break
            key = absolute_path(path)
            if self.overview.get(key) is not None:
                continue
            size = measure(key)
            if size > 0:
                self.overview.put(key, size)
                measured[key] = size
        return measured

    def clear(self) -> int:
        """Delete every cache file. Returns the number of files removed."""
        removed = 0
        if not self.cache_dir.is_dir():
            return 0
        for file in self.cache_dir.iterdir():
            name = file.name
            if not (
                name.endswith((RECORD_SUFFIX, CORRUPT_SUFFIX, ".tmp"))
                or name == OVERVIEW_FILE
            ):
                continue
            try:
                file.unlink()
                removed += 1
            except OSError as e:
                log.warning("Cannot remove %s: %s", file, e)
        self.overview.reset()
        return removed

    def info(self) -> dict:
        """Summarise the cache directory contents."""
        records = 0
        total_bytes = 0
        if self.cache_dir.is_dir():
            for file in self.cache_dir.glob(f"*{RECORD_SUFFIX}"):
                try:
                    total_bytes += file.stat().st_size
                    records += 1
                except OSError:
                    continue
        return {
            "cache_dir": str(self.cache_dir),
            "records": records,
            "record_bytes": total_bytes,
            "overview_entries": len(self.overview),
        }
