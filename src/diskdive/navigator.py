"""Navigation state machine for the interactive browser.

The Navigator owns the current view, the back-navigation history, the
multi-selection and the delete confirmation. It never blocks: a command that
needs I/O returns a task. The host runs ``execute(task)`` off the UI thread
and hands the returned message to ``apply(message)`` on the UI thread, which
may return a follow-up task::

    task = nav.enter()
    while task is not None:
        task = nav.apply(nav.execute(task))
"""

import logging
import os
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from diskdive.cache import ScanCache
from diskdive.cleaner import remove_path
from diskdive.config import Settings, absolute_path
from diskdive.errors import ScanError, UnsafePathError
from diskdive.models import DirectoryEntry, HistoryFrame, LargeFileEntry, ScanResult
from diskdive.scanner import ScanProgress, scan_directory

log = logging.getLogger(__name__)

Scanner = Callable[[str, Settings, Optional[ScanProgress]], ScanResult]
Remover = Callable[[str], None]

# Path of the synthetic overview view
OVERVIEW_PATH = ""


class ViewState(str, Enum):
    """Top-level state of the browser."""

    SCANNING = "scanning"
    BROWSING = "browsing"
    CONFIRMING_DELETE = "confirming_delete"
    ERROR = "error"


@dataclass(frozen=True)
class ScanTask:
    """Scan (or strict cache read) of one directory."""

    path: str
    force: bool = False
    progress: ScanProgress = field(default_factory=ScanProgress, compare=False)


@dataclass(frozen=True)
class DeleteTask:
    paths: tuple[str, ...]


@dataclass(frozen=True)
class PrefetchTask:
    """Measure overview roots that have no fresh snapshot."""

    paths: tuple[str, ...]


@dataclass(frozen=True)
class ScanDone:
    path: str
    result: ScanResult
    from_cache: bool = False


@dataclass(frozen=True)
class ScanFailed:
    path: str
    error: str


@dataclass(frozen=True)
class DeleteDone:
    deleted: tuple[str, ...]
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class PrefetchDone:
    sizes: dict[str, int]
    paths: tuple[str, ...] = ()


Task = Union[ScanTask, DeleteTask, PrefetchTask]
Message = Union[ScanDone, ScanFailed, DeleteDone, PrefetchDone]


def display_name(path: str) -> str:
    home = str(Path.home())
    if path == home:
        return "~"
    if path.startswith(home + os.sep):
        return "~" + path[len(home):]
    return path


class Navigator:
    """Interactive browsing state for one session."""

    def __init__(
        self,
        start_path: Path | str,
        cache: ScanCache,
        settings: Settings | None = None,
        scanner: Scanner = scan_directory,
        remover: Remover = remove_path,
    ):
        self.cache = cache
        self.settings = settings or cache.settings
        self._scanner = scanner
        self._remover = remover

        self.state = ViewState.SCANNING
        self.path = absolute_path(start_path)
        self.entries: list[DirectoryEntry] = []
        self.large_files: list[LargeFileEntry] = []
        self.total_size = 0
        self.total_files = 0
        self.selected = 0
        self.entry_offset = 0
        self.large_selected = 0
        self.large_offset = 0
        self.is_overview = False
        self.show_large_files = False
        self.viewport = 20

        self.history: list[HistoryFrame] = []
        self.multi_selected: set[str] = set()
        self.delete_targets: list[str] = []
        self.deleting = False
        self.refreshing = False
        self.error: Optional[str] = None
        self.message: Optional[str] = None
        self.progress = ScanProgress()

        self.overview_roots: list[str] = []
        self.scan_count = 0

        self._session: dict[str, HistoryFrame] = {}
        self._in_flight: set[str] = set()
        self._rescan_pending: set[str] = set()
        self._count_lock = threading.Lock()
        self._stop = threading.Event()

    # ------------------------------------------------------------------
    # Read-only view helpers

    @property
    def current_entry(self) -> Optional[DirectoryEntry]:
        if 0 <= self.selected < len(self.entries):
            return self.entries[self.selected]
        return None

    @property
    def current_large_file(self) -> Optional[LargeFileEntry]:
        if 0 <= self.large_selected < len(self.large_files):
            return self.large_files[self.large_selected]
        return None

    @property
    def selection_size(self) -> int:
        """Total size of the multi-selected entries."""
        return sum(e.size for e in self.entries if e.path in self.multi_selected)

    @property
    def title(self) -> str:
        return "Overview" if self.is_overview else display_name(self.path)

    def visible_entries(self) -> list[tuple[int, DirectoryEntry]]:
        """Entries inside the viewport, with their indices."""
        end = self.entry_offset + max(1, self.viewport)
        return list(enumerate(self.entries))[self.entry_offset:end]

    def visible_large_files(self) -> list[tuple[int, LargeFileEntry]]:
        end = self.large_offset + max(1, self.viewport)
        return list(enumerate(self.large_files))[self.large_offset:end]

    def snapshot(self) -> HistoryFrame:
        """Capture the current view, cursor and scroll positions."""
        return HistoryFrame(
            path=self.path,
            entries=list(self.entries),
            large_files=list(self.large_files),
            total_size=self.total_size,
            total_files=self.total_files,
            selected=self.selected,
            entry_offset=self.entry_offset,
            large_selected=self.large_selected,
            large_offset=self.large_offset,
            is_overview=self.is_overview,
        )

    # ------------------------------------------------------------------
    # Entry points

    def start(self) -> Optional[Task]:
        """Open the start path. Returns the initial task, if any."""
        return self._open(self.path)

    def start_overview(self, roots: list[Path | str]) -> Optional[Task]:
        """Open the overview of several roots instead of a single directory."""
        self.overview_roots = [absolute_path(r) for r in roots]
        self.path = OVERVIEW_PATH
        self.is_overview = True
        self.selected = self.entry_offset = 0
        self.large_selected = self.large_offset = 0
        return self._show_overview()

    def shutdown(self) -> None:
        """Ask background prefetch to stop early."""
        self._stop.set()

    # ------------------------------------------------------------------
    # Commands

    def enter(self) -> Optional[Task]:
        """Descend into the directory under the cursor."""
        if self.state is not ViewState.BROWSING or self.show_large_files:
            return None
        entry = self.current_entry
        if entry is None or not entry.is_dir:
            return None

        self.history.append(self.snapshot())
        self.multi_selected.clear()
        self.message = None
        return self._open(entry.path)

    def back(self) -> Optional[Task]:
        """
        Return to the previous directory, restoring its cursor and scroll.

        Allowed while a scan is running; its result is dropped when it lands.
        """
        if not self.history or self.deleting:
            return None
        if self.state is ViewState.CONFIRMING_DELETE:
            return None

        frame = self.history.pop()
        self.multi_selected.clear()
        self.message = None
        self.error = None
        self.refreshing = False
        self.state = ViewState.BROWSING
        self._restore(frame)

        if frame.is_overview:
            return self._show_overview(keep_cursor=True)
        if frame.dirty:
            return self._background_rescan(frame.path)
        return None

    def toggle_select(self) -> None:
        if self.state is not ViewState.BROWSING or self.is_overview:
            return
        entry = self.current_entry
        if entry is None:
            return
        if entry.path in self.multi_selected:
            self.multi_selected.discard(entry.path)
        else:
            self.multi_selected.add(entry.path)

    def delete(self) -> None:
        """Ask to delete the entry (or large file) under the cursor."""
        if self.state is not ViewState.BROWSING:
            return
        if self.is_overview:
            self.message = "Overview roots cannot be deleted"
            return
        target = self.current_large_file if self.show_large_files else self.current_entry
        if target is None:
            return
        self._confirm([target.path])

    def delete_selected(self) -> None:
        """Ask to delete every multi-selected entry."""
        if self.state is not ViewState.BROWSING or not self.multi_selected:
            return
        targets = [e.path for e in self.entries if e.path in self.multi_selected]
        if targets:
            self._confirm(targets)

    def confirm(self) -> Optional[Task]:
        if self.state is not ViewState.CONFIRMING_DELETE:
            return None
        task = DeleteTask(tuple(self.delete_targets))
        self.state = ViewState.SCANNING
        self.deleting = True
        return task

    def cancel(self) -> None:
        if self.state is not ViewState.CONFIRMING_DELETE:
            return
        self.delete_targets = []
        self.state = ViewState.BROWSING

    def refresh(self) -> Optional[Task]:
        """Drop cached data for the current view and rescan it."""
        if self.state not in (ViewState.BROWSING, ViewState.ERROR):
            return None
        self.error = None
        self.message = None

        if self.is_overview:
            for root in self.overview_roots:
                self.cache.invalidate(root)
                if root in self._in_flight:
                    self._rescan_pending.add(root)
            self.state = ViewState.BROWSING
            return self._show_overview(keep_cursor=True)

        self.cache.invalidate(self.path)
        self._session.pop(self.path, None)
        self.state = ViewState.SCANNING
        return self._request_rescan(self.path)

    def toggle_large_files(self) -> None:
        self.show_large_files = not self.show_large_files

    def move(self, delta: int) -> None:
        if self.state not in (ViewState.BROWSING, ViewState.ERROR):
            return
        if self.show_large_files:
            self.large_selected = self._clamp(self.large_selected + delta, len(self.large_files))
        else:
            self.selected = self._clamp(self.selected + delta, len(self.entries))
        self._follow_cursor()

    def home(self) -> None:
        self.move(-len(self.large_files if self.show_large_files else self.entries))

    def end(self) -> None:
        self.move(len(self.large_files if self.show_large_files else self.entries))

    def set_viewport(self, rows: int) -> None:
        self.viewport = max(1, rows)
        self._follow_cursor()

    # ------------------------------------------------------------------
    # Background work (called off the UI thread)

    def execute(self, task: Task) -> Message:
        """Run a task. Safe to call from a worker thread."""
        if isinstance(task, ScanTask):
            return self._run_scan(task)
        if isinstance(task, DeleteTask):
            return self._run_delete(task)
        if isinstance(task, PrefetchTask):
            return self._run_prefetch(task)
        raise TypeError(f"Unknown task: {task!r}")

    def _run_scan(self, task: ScanTask) -> Message:
        if not task.force:
            record = self.cache.load(task.path)
            if record is not None:
                log.debug("Cache hit for %s", task.path)
                return ScanDone(task.path, record.result, from_cache=True)

        try:
            result = self._scanner(task.path, self.settings, task.progress)
        except ScanError as e:
            log.info("Scan failed: %s", e)
            return ScanFailed(task.path, str(e))

        with self._count_lock:
            self.scan_count += 1
        self.cache.save(task.path, result)
        return ScanDone(task.path, result)

    def _run_delete(self, task: DeleteTask) -> Message:
        deleted: list[str] = []
        errors: list[str] = []
        for path in task.paths:
            try:
                self._remover(path)
            except (OSError, UnsafePathError) as e:
                log.warning("Delete failed for %s: %s", path, e)
                errors.append(f"{os.path.basename(path) or path}: {e}")
            else:
                deleted.append(path)
        return DeleteDone(tuple(deleted), tuple(errors))

    def _run_prefetch(self, task: PrefetchTask) -> Message:
        def measure(path: str) -> int:
            try:
                result = self._scanner(path, self.settings, None)
            except ScanError as e:
                log.info("Overview prefetch skipped %s: %s", path, e)
                return 0
            with self._count_lock:
                self.scan_count += 1
            self.cache.save(path, result)
            return result.total_size

        sizes = self.cache.prefetch_overview(task.paths, measure, stop=self._stop)
        return PrefetchDone(sizes, task.paths)

    # ------------------------------------------------------------------
    # Completion messages (called on the UI thread)

    def apply(self, message: Message) -> Optional[Task]:
        """Fold a completion message into the state. May return a follow-up task."""
        if isinstance(message, ScanDone):
            return self._scan_done(message)
        if isinstance(message, ScanFailed):
            return self._scan_failed(message)
        if isinstance(message, DeleteDone):
            return self._delete_done(message)
        if isinstance(message, PrefetchDone):
            return self._prefetch_done(message)
        raise TypeError(f"Unknown message: {message!r}")

    def _scan_done(self, message: ScanDone) -> Optional[Task]:
        path = message.path
        self._in_flight.discard(path)

        if path in self._rescan_pending:
            # Started before the last invalidation: its data is outdated
            self._rescan_pending.discard(path)
            self.cache.invalidate(path)
            if path == self.path and not self.is_overview:
                return self._scan_task(path, force=True)
            if self.is_overview and path in self.overview_roots:
                return self._show_overview(keep_cursor=True)
            return None

        if path != self.path or self.is_overview:
            log.debug("Discarding scan of %s; view is now %s", path, self.path or "overview")
            if self.is_overview and path in self.overview_roots:
                self._build_overview(keep_cursor=True, measured={path: message.result.total_size})
                self.refreshing = self._overview_busy()
            return None

        frame = HistoryFrame.from_result(path, message.result)
        self._session[path] = frame
        self._set_view(frame, keep_cursor=self.refreshing or self.deleting)
        self.refreshing = False
        if self.state is not ViewState.CONFIRMING_DELETE and not self.deleting:
            self.state = ViewState.BROWSING
        return None

    def _scan_failed(self, message: ScanFailed) -> Optional[Task]:
        path = message.path
        self._in_flight.discard(path)

        if path in self._rescan_pending:
            self._rescan_pending.discard(path)
            if path == self.path and not self.is_overview:
                return self._scan_task(path, force=True)
            return None

        if path != self.path or self.is_overview:
            return None

        self.refreshing = False
        self.error = message.error
        if not self.deleting:
            self.delete_targets = []
            self.state = ViewState.ERROR
        return None

    def _delete_done(self, message: DeleteDone) -> Optional[Task]:
        self.delete_targets = []
        self.deleting = False
        self.error = "; ".join(message.errors) if message.errors else None

        if not message.deleted:
            self.state = ViewState.BROWSING
            return None

        self.multi_selected.difference_update(message.deleted)
        count = len(message.deleted)
        self.message = f"Deleted {count} item{'s' if count != 1 else ''}"
        self._invalidate_after_delete()
        self.state = ViewState.SCANNING
        return self._request_rescan(self.path)

    def _prefetch_done(self, message: PrefetchDone) -> Optional[Task]:
        outdated = [p for p in message.paths if p in self._rescan_pending]
        for path in message.paths:
            self._in_flight.discard(path)
            self._rescan_pending.discard(path)
        for path in outdated:
            self.cache.invalidate(path)

        if self.is_overview:
            if outdated:
                return self._show_overview(keep_cursor=True)
            self._build_overview(keep_cursor=True, measured=message.sizes)
            self.refreshing = self._overview_busy()
            return None

        # A root opened while it was being measured: read the fresh record
        if self.path in message.paths and self.path not in self._session:
            return self._scan_task(self.path, force=self.path in outdated)
        return None

    # ------------------------------------------------------------------
    # Internals

    def _open(self, path: str) -> Optional[Task]:
        """Show path from session memory, stale cache, or a fresh scan."""
        self.path = path
        self.is_overview = False
        self.refreshing = False
        self.error = None

        frame = self._session.get(path)
        if frame is not None:
            self._set_view(frame)
            self.state = ViewState.BROWSING
            return None

        stale = self.cache.load_stale(path)
        if stale is not None:
            # Paint now, confirm with a strict read or scan in the background
            self._set_view(HistoryFrame.from_result(path, stale.result))
            self.state = ViewState.BROWSING
            return self._background_rescan(path, force=False)

        self._set_view(HistoryFrame(path=path))
        self.state = ViewState.SCANNING
        return self._scan_task(path)

    def _background_rescan(self, path: str, force: bool = True) -> Optional[Task]:
        task = self._request_rescan(path) if force else self._scan_task(path)
        self.refreshing = path in self._in_flight
        return task

    def _scan_task(self, path: str, force: bool = False) -> Optional[ScanTask]:
        """Create a scan task unless one is already running for path."""
        if path in self._in_flight:
            return None
        self._in_flight.add(path)
        self.progress = ScanProgress(expected_files=self.cache.peek_total_files(path))
        return ScanTask(path, force=force, progress=self.progress)

    def _request_rescan(self, path: str) -> Optional[ScanTask]:
        """Force a rescan, deferring it if a scan of path is still running."""
        if path in self._in_flight:
            self._rescan_pending.add(path)
            return None
        return self._scan_task(path, force=True)

    def _invalidate_after_delete(self) -> None:
        """Forget every cached size that included the deleted items."""
        current = Path(self.path)
        for ancestor in [current, *current.parents]:
            key = str(ancestor)
            self.cache.invalidate(key)
            self._session.pop(key, None)
        for frame in self.history:
            if not frame.is_overview:
                frame.dirty = True

    def _confirm(self, targets: list[str]) -> None:
        self.delete_targets = targets
        self.message = None
        self.state = ViewState.CONFIRMING_DELETE

    def _set_data(self, frame: HistoryFrame) -> None:
        self.entries = list(frame.entries)
        self.large_files = list(frame.large_files)
        self.total_size = frame.total_size
        self.total_files = frame.total_files

    def _set_view(self, frame: HistoryFrame, keep_cursor: bool = False) -> None:
        """Show frame's data; the cursor is either reset or kept in range."""
        self._set_data(frame)
        if keep_cursor:
            self.selected = self._clamp(self.selected, len(self.entries))
            self.large_selected = self._clamp(self.large_selected, len(self.large_files))
        else:
            self.selected = self.entry_offset = 0
            self.large_selected = self.large_offset = 0
        self._follow_cursor()

    def _restore(self, frame: HistoryFrame) -> None:
        """Show a history frame exactly as it was captured."""
        self._set_data(frame)
        self.path = frame.path
        self.is_overview = frame.is_overview
        self.selected = frame.selected
        self.entry_offset = frame.entry_offset
        self.large_selected = frame.large_selected
        self.large_offset = frame.large_offset

    def _show_overview(self, keep_cursor: bool = False) -> Optional[Task]:
        missing = self._build_overview(keep_cursor=keep_cursor)
        self.state = ViewState.BROWSING
        # Roots already being scanned are picked up when that scan lands
        pending = tuple(root for root in missing if root not in self._in_flight)
        self._in_flight.update(pending)
        self.refreshing = self._overview_busy()
        if not pending:
            return None
        return PrefetchTask(pending)

    def _overview_busy(self) -> bool:
        return any(root in self._in_flight for root in self.overview_roots)

    def _build_overview(
        self, keep_cursor: bool = False, measured: Optional[dict[str, int]] = None
    ) -> list[str]:
        """Fill the view from overview snapshots. Returns roots without a size."""
        measured = measured or {}
        entries: list[DirectoryEntry] = []
        missing: list[str] = []
        for root in self.overview_roots:
            size = self.cache.overview_size(root)
            if size is None:
                size = measured.get(root)
            if size is None:
                missing.append(root)
            entries.append(
                DirectoryEntry(name=display_name(root), path=root, size=size or 0, is_dir=True)
            )
        ordered = sorted(enumerate(entries), key=lambda item: (-item[1].size, item[0]))
        entries = [entry for _, entry in ordered]
        frame = HistoryFrame(
            path=OVERVIEW_PATH,
            entries=entries,
            total_size=sum(e.size for e in entries),
            is_overview=True,
        )
        self._set_view(frame, keep_cursor=keep_cursor)
        return missing

    @staticmethod
    def _clamp(index: int, count: int) -> int:
        if count <= 0:
            return 0
        return max(0, min(index, count - 1))

    def _follow_cursor(self) -> None:
        """Scroll so the cursor stays inside the viewport."""
        self.entry_offset = self._scroll(self.selected, self.entry_offset, len(self.entries))
        self.large_offset = self._scroll(self.large_selected, self.large_offset, len(self.large_files))

    def _scroll(self, selected: int, offset: int, count: int) -> int:
        rows = max(1, self.viewport)
        if selected < offset:
            offset = selected
        elif selected >= offset + rows:
            offset = selected - rows + 1
        return max(0, min(offset, max(0, count - rows)))
