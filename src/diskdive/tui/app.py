"""Main TUI application for diskdive."""

import logging
from functools import partial
from pathlib import Path
from typing import Optional

from textual.app import App
from textual.binding import Binding

from diskdive.cache import ScanCache
from diskdive.config import Settings
from diskdive.navigator import Message, Navigator, Task, ViewState
from diskdive.tui.screens import BrowserScreen

log = logging.getLogger(__name__)

# Seconds between progress repaints while work is running
POLL_INTERVAL = 0.2


class DiskDiveApp(App):
    """Interactive disk usage browser."""

    TITLE = "diskdive"
    SUB_TITLE = "Disk Usage Browser"

    CSS = """
    #status {
        height: 2;
        padding: 0 1;
    }

    #entries {
        height: 1fr;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("?", "help", "Help"),
    ]

    def __init__(self, navigator: Navigator, overview_roots: Optional[list[Path]] = None):
        super().__init__()
        self.navigator = navigator
        self.overview_roots = overview_roots
        self.browser = BrowserScreen(navigator)

    def on_mount(self) -> None:
        """Called when the app is mounted."""
        self.push_screen(self.browser)
        if self.overview_roots is not None:
            task = self.navigator.start_overview(self.overview_roots)
        else:
            task = self.navigator.start()
        self.submit(task)
        self.set_interval(POLL_INTERVAL, self._poll)

    def on_unmount(self) -> None:
        self.navigator.shutdown()

    def submit(self, task: Optional[Task]) -> None:
        """Run a navigator task on a worker thread, then repaint."""
        if task is not None:
            log.debug("Dispatching %s", type(task).__name__)
            self.run_worker(partial(self._execute, task), thread=True, group="navigator")
        self.browser.refresh_view()

    def _execute(self, task: Task) -> None:
        """Run a task in background."""
        message = self.navigator.execute(task)
        self.call_from_thread(self._complete, message)

    def _complete(self, message: Message) -> None:
        self.submit(self.navigator.apply(message))

    def _poll(self) -> None:
        nav = self.navigator
        if nav.state is ViewState.SCANNING or nav.refreshing:
            self.browser.refresh_view()

    def action_help(self) -> None:
        """Show help information."""
        self.notify(
            "Arrows or j/k to move, Enter to open, Backspace to go back, "
            "Space to select, d/D to delete, r to rescan, f for large files",
            title="Help",
            timeout=5,
        )


def run_tui(
    path: Path | str,
    settings: Settings | None = None,
    overview: bool = False,
) -> None:
    """Run the interactive TUI.

    Args:
        path: Directory to open
        settings: Loaded settings (default: Settings())
        overview: If True, start on the overview of the configured roots
    """
    settings = settings or Settings()
    cache = ScanCache.from_settings(settings)
    navigator = Navigator(path, cache, settings)
    roots = settings.existing_overview_roots() if overview else None
    app = DiskDiveApp(navigator, overview_roots=roots)
    app.run()
