"""TUI screens for diskdive."""

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen, Screen
from textual.widgets import Button, Footer, Header, Static

from diskdive.models import format_size
from diskdive.navigator import Navigator, ViewState
from diskdive.tui.widgets import EntryList, StatusBar


class BrowserScreen(Screen):
    """Directory browser driven by a Navigator."""

    BINDINGS = [
        Binding("up,k", "move(-1)", "Up", show=False),
        Binding("down,j", "move(1)", "Down", show=False),
        Binding("pageup", "page(-1)", "Page Up", show=False),
        Binding("pagedown", "page(1)", "Page Down", show=False),
        Binding("g,home", "home", "Top", show=False),
        Binding("G,end", "end", "Bottom", show=False),
        Binding("enter,right,l", "enter", "Open"),
        Binding("backspace,left,h,escape", "back", "Back"),
        Binding("space", "toggle_select", "Select"),
        Binding("d", "delete", "Delete"),
        Binding("D", "delete_selected", "Delete Selected"),
        Binding("r", "refresh", "Refresh"),
        Binding("f", "toggle_large_files", "Large Files"),
    ]

    def __init__(self, navigator: Navigator, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.navigator = navigator

    def compose(self) -> ComposeResult:
        yield Header()
        yield StatusBar(self.navigator, id="status")
        yield EntryList(self.navigator, id="entries")
        yield Footer()

    def refresh_view(self) -> None:
        """Repaint from the navigator state."""
        if not self.is_mounted:
            return
        self.query_one("#status", StatusBar).refresh()
        self.query_one("#entries", EntryList).refresh()

    def action_move(self, delta: int) -> None:
        self.navigator.move(delta)
        self.refresh_view()

    def action_page(self, direction: int) -> None:
        self.navigator.move(direction * self.navigator.viewport)
        self.refresh_view()

    def action_home(self) -> None:
        self.navigator.home()
        self.refresh_view()

    def action_end(self) -> None:
        self.navigator.end()
        self.refresh_view()

    def action_enter(self) -> None:
        self.app.submit(self.navigator.enter())

    def action_back(self) -> None:
        self.app.submit(self.navigator.back())

    def action_toggle_select(self) -> None:
        self.navigator.toggle_select()
        self.refresh_view()

    def action_delete(self) -> None:
        self.navigator.delete()
        self._maybe_confirm()

    def action_delete_selected(self) -> None:
        self.navigator.delete_selected()
        self._maybe_confirm()

    def action_refresh(self) -> None:
        self.app.submit(self.navigator.refresh())

    def action_toggle_large_files(self) -> None:
        self.navigator.toggle_large_files()
        self.refresh_view()

    def _maybe_confirm(self) -> None:
        nav = self.navigator
        self.refresh_view()
        if nav.state is ViewState.CONFIRMING_DELETE:
            self.app.push_screen(ConfirmDeleteScreen(nav), self._on_confirm)

    def _on_confirm(self, confirmed: bool | None) -> None:
        if confirmed:
            self.app.submit(self.navigator.confirm())
        else:
            self.navigator.cancel()
            self.refresh_view()


class ConfirmDeleteScreen(ModalScreen[bool]):
    """Delete confirmation listing every target."""

    DEFAULT_CSS = """
    ConfirmDeleteScreen {
        align: center middle;
    }

    #confirm-container {
        width: 70;
        height: auto;
        border: thick $error;
        background: $surface;
        padding: 1 2;
    }

    #confirm-buttons {
        height: auto;
        margin-top: 1;
    }
    """

    BINDINGS = [
        Binding("y", "confirm", "Yes, Delete"),
        Binding("n", "cancel", "Cancel"),
        Binding("escape", "cancel", "Cancel"),
    ]

    def __init__(self, navigator: Navigator, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.navigator = navigator

    def compose(self) -> ComposeResult:
        with Container(id="confirm-container"):
            yield Static(self._summary(), id="confirm-summary")
            with Horizontal(id="confirm-buttons"):
                yield Button("Delete", variant="error", id="btn-delete")
                yield Button("Cancel", variant="default", id="btn-cancel")

    def _summary(self) -> str:
        nav = self.navigator
        sizes = {e.path: e.size for e in nav.entries}
        sizes.update({f.path: f.size for f in nav.large_files})
        targets = nav.delete_targets
        total = sum(sizes.get(path, 0) for path in targets)

        lines = [f"[bold red]Delete {len(targets)} item{'s' if len(targets) != 1 else ''}?[/bold red]", ""]
        for path in targets[:10]:
            lines.append(f"  [yellow]{format_size(sizes.get(path, 0)):>9}[/yellow] {path}")
        if len(targets) > 10:
            lines.append(f"  [dim]...and {len(targets) - 10} more[/dim]")
        lines.append("")
        lines.append(f"[bold]Total: {format_size(total)}[/bold]  [dim]This cannot be undone.[/dim]")
        return "\n".join(lines)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button presses."""
        if event.button.id == "btn-delete":
            self.action_confirm()
        elif event.button.id == "btn-cancel":
            self.action_cancel()

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)
