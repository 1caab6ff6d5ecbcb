"""Custom widgets for the diskdive TUI."""

from rich.text import Text
from textual.widgets import Static

from diskdive.display import percent, usage_bar
from diskdive.models import format_size
from diskdive.navigator import Navigator, ViewState

BAR_WIDTH = 16


class StatusBar(Static):
    """Current location, totals and scan state."""

    def __init__(self, navigator: Navigator, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.navigator = navigator

    def render(self) -> Text:
        nav = self.navigator
        text = Text()
        text.append(nav.title, style="bold")
        text.append(f"  {format_size(nav.total_size)}", style="yellow")
        if not nav.is_overview:
            text.append(f"  {nav.total_files} files", style="dim")
        if nav.show_large_files:
            text.append(f"  large files ({len(nav.large_files)})", style="bold cyan")

        if nav.state is ViewState.SCANNING:
            label = "Deleting..." if nav.deleting else "Scanning..."
            progress = nav.progress
            text.append(f"\n{label} ", style="cyan")
            if progress.total:
                text.append(f"{progress.processed}/{progress.total} items", style="dim")
            if progress.expected_files:
                text.append(f"  ~{progress.expected_files} files last time", style="dim")
        elif nav.refreshing:
            text.append("\nRefreshing in background...", style="dim cyan")
        elif nav.error:
            text.append(f"\n{nav.error}", style="red")
        elif nav.message:
            text.append(f"\n{nav.message}", style="green")
        elif nav.multi_selected:
            text.append(
                f"\n{len(nav.multi_selected)} selected: {format_size(nav.selection_size)}",
                style="bold cyan",
            )
        else:
            text.append("\n")
        return text


class EntryList(Static):
    """Size-sorted rows of the current directory, or its large files."""

    def __init__(self, navigator: Navigator, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.navigator = navigator

    def on_resize(self) -> None:
        self.navigator.set_viewport(self.size.height)

    def render(self) -> Text:
        nav = self.navigator
        if nav.state is ViewState.ERROR:
            return Text(f"Cannot show this directory.\n{nav.error or ''}", style="red")
        if nav.show_large_files:
            return self._render_large_files()
        if not nav.entries:
            if nav.state is ViewState.SCANNING:
                return Text("Scanning...", style="dim")
            return Text("Empty directory", style="dim")

        text = Text()
        for index, entry in nav.visible_entries():
            cursor = index == nav.selected
            mark = "[x]" if entry.path in nav.multi_selected else "[ ]"
            row_style = "reverse" if cursor else ""
            text.append(f"{mark} ", style=row_style)
            text.append(f"{format_size(entry.size):>9} ", style=f"yellow {row_style}".strip())
            text.append(usage_bar(entry.size, nav.total_size, BAR_WIDTH), style="cyan")
            text.append(f" {percent(entry.size, nav.total_size):>6} ", style="dim")
            name = entry.name + ("/" if entry.is_dir else "")
            text.append(name, style=f"bold {row_style}".strip() if entry.is_dir else row_style)
            if entry.is_cleanable:
                text.append("  cleanable", style="green")
            text.append("\n")
        return text

    def _render_large_files(self) -> Text:
        nav = self.navigator
        if not nav.large_files:
            return Text("No large files in this directory", style="dim")

        text = Text()
        for index, item in nav.visible_large_files():
            row_style = "reverse" if index == nav.large_selected else ""
            text.append(f"{format_size(item.size):>9} ", style=f"yellow {row_style}".strip())
            text.append(item.name, style=row_style)
            text.append("\n")
        return text
