"""Rich terminal display for diskdive."""

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from diskdive.models import DirectoryEntry, ScanResult, format_size

console = Console()

BAR_WIDTH = 20


def usage_bar(size: int, total: int, width: int = BAR_WIDTH) -> str:
    """Return a block bar showing size as a share of total."""
    pct = size / total * 100 if total > 0 else 0
    filled = int(pct / 100 * width)
    return "█" * filled + "░" * (width - filled)


def percent(size: int, total: int) -> str:
    return f"{size / total * 100:.1f}%" if total > 0 else "0.0%"


def entry_icon(entry: DirectoryEntry) -> str:
    """Get icon for a directory entry."""
    if entry.is_cleanable:
        return "🧹"
    return "📁" if entry.is_dir else "📄"


def truncate_path(path: str, max_len: int = 60) -> str:
    """Shorten a path from the left to fit max_len characters."""
    if len(path) <= max_len:
        return path
    return "..." + path[len(path) - max_len + 3:]


def show_scan_result(path: str, result: ScanResult, limit: int = 25) -> None:
    """Display the entries of a scanned directory."""
    table = Table(title=path, show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Size", justify="right", style="yellow")
    table.add_column("Usage")
    table.add_column("%", justify="right", style="dim")
    table.add_column("Name")

    for entry in result.entries[:limit]:
        name = f"[bold]{entry.name}/[/bold]" if entry.is_dir else entry.name
        if entry.is_cleanable:
            name += " [green](cleanable)[/green]"
        table.add_row(
            entry_icon(entry),
            format_size(entry.size),
            f"[cyan]{usage_bar(entry.size, result.total_size)}[/cyan]",
            percent(entry.size, result.total_size),
            name,
        )

    console.print(table)
    hidden = len(result.entries) - limit
    if hidden > 0:
        console.print(f"[dim]... and {hidden} more entries[/dim]")

    console.print(
        f"\n[bold]Total:[/bold] [yellow]{format_size(result.total_size)}[/yellow] "
        f"[dim]({result.total_files} files counted, directory sizes are estimates)[/dim]"
    )


def show_large_files(result: ScanResult, limit: int = 10) -> None:
    """Display large files found directly in the scanned directory."""
    if not result.large_files:
        return

    console.print()
    console.print("[bold cyan]📄 Large Files (>100MB)[/bold cyan]")
    for item in result.large_files[:limit]:
        console.print(f"  [yellow]{format_size(item.size):>9}[/yellow] {truncate_path(item.path)}")
    if len(result.large_files) > limit:
        console.print(f"  [dim]... and {len(result.large_files) - limit} more[/dim]")


def show_overview(sizes: dict[str, int | None]) -> None:
    """Display overview sizes for several roots."""
    known = [s for s in sizes.values() if s]
    total = sum(known)

    table = Table(title="Overview", show_header=True, header_style="bold")
    table.add_column("Size", justify="right", style="yellow")
    table.add_column("Usage")
    table.add_column("Path")

    ordered = sorted(sizes.items(), key=lambda item: item[1] or 0, reverse=True)
    for path, size in ordered:
        if size:
            table.add_row(format_size(size), f"[cyan]{usage_bar(size, total)}[/cyan]", path)
        else:
            table.add_row("[dim]?[/dim]", "", f"[dim]{path}[/dim]")

    console.print(table)


def show_cache_info(info: dict) -> None:
    """Display cache directory statistics."""
    console.print(
        Panel(
            f"[bold]Location:[/bold] {info['cache_dir']}\n"
            f"[bold]Scan records:[/bold] {info['records']} "
            f"({format_size(info['record_bytes'])})\n"
            f"[bold]Overview entries:[/bold] {info['overview_entries']}",
            title="Cache",
            border_style="blue",
        )
    )


def show_scanning_progress() -> Progress:
    """Create and return a progress display for a scan."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


def confirm_action(message: str) -> bool:
    """Ask for confirmation."""
    from rich.prompt import Confirm

    return Confirm.ask(message)
