"""CLI interface for diskdive."""

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

import typer

from diskdive import __version__
from diskdive.cache import ScanCache
from diskdive.config import Settings, absolute_path, load_settings
from diskdive.display import (
    confirm_action,
    console,
    show_cache_info,
    show_large_files,
    show_overview,
    show_scan_result,
    show_scanning_progress,
)
from diskdive.errors import ScanError
from diskdive.navigator import display_name
from diskdive.scanner import ScanProgress, scan_directory

LOG_FILE_NAME = "diskdive.log"

# Create Typer app
app = typer.Typer(
    name="diskdive",
    help="Interactive disk usage browser with a persistent scan cache",
    add_completion=False,
)
cache_app = typer.Typer(help="Inspect or clear the scan cache.")
app.add_typer(cache_app, name="cache")


def _setup_logging(verbosity: int, log_file: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logging.basicConfig(
            level=level,
            filename=log_file,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            force=True,
        )
    else:
        logging.basicConfig(level=level, format="%(levelname)s: %(message)s", force=True)


def _settings(ctx: typer.Context) -> Settings:
    return ctx.obj["settings"]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"diskdive version {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        None,
        "--version",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Increase verbosity (-v info, -vv debug)"
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", help="Read settings from this JSON file."
    ),
) -> None:
    """diskdive - find out where your disk space went."""
    _setup_logging(verbose)
    ctx.obj = {"settings": load_settings(config), "verbose": verbose}

    # If no command specified, open the browser
    if ctx.invoked_subcommand is None:
        ctx.invoke(browse, ctx=ctx, path=None, overview=False)


@app.command()
def browse(
    ctx: typer.Context,
    path: Optional[Path] = typer.Argument(
        None, help="Directory to open (default: $DISKDIVE_PATH, else home)."
    ),
    overview: bool = typer.Option(
        False, "--overview", "-o", help="Start on the overview of common roots."
    ),
) -> None:
    """Browse disk usage interactively."""
    settings = _settings(ctx)
    if path is None and os.environ.get("DISKDIVE_PATH"):
        path = Path(os.environ["DISKDIVE_PATH"])
    target = Path(absolute_path(path)) if path is not None else Path.home()
    if not target.is_dir():
        console.print(f"[red]Not a directory: {target}[/red]")
        raise typer.Exit(1)

    # The TUI owns the terminal; keep log records out of it
    _setup_logging(ctx.obj["verbose"], settings.resolved_cache_dir() / LOG_FILE_NAME)

    from diskdive.tui import run_tui

    run_tui(target, settings=settings, overview=overview)


@app.command()
def scan(
    ctx: typer.Context,
    path: Path = typer.Argument(
        ..., exists=True, file_okay=False, resolve_path=True, help="Directory to scan."
    ),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
    no_cache: bool = typer.Option(False, "--no-cache", help="Ignore and do not update the cache."),
    limit: int = typer.Option(25, "--limit", "-n", help="Number of entries to show."),
) -> None:
    """Scan one directory and print its largest entries."""
    settings = _settings(ctx)
    cache = ScanCache.from_settings(settings)
    target = str(path)

    record = None if no_cache else cache.load(target)
    if record is not None:
        result = record.result
    else:
        progress = ScanProgress()
        try:
            with show_scanning_progress() as bar, ThreadPoolExecutor(max_workers=1) as pool:
                name = display_name(target)
                job = bar.add_task(f"Scanning {name}...", total=None)
                future = pool.submit(scan_directory, target, settings, progress)
                while not future.done():
                    bar.update(
                        job,
                        description=f"Scanning {name}... {progress.processed}/{progress.total} items",
                    )
                    time.sleep(0.1)
                result = future.result()
        except ScanError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
        if not no_cache:
            cache.save(target, result)

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
        return

    if record is not None:
        console.print("[dim]Using cached scan. Run with --no-cache to rescan.[/dim]")
    show_scan_result(display_name(target), result, limit=limit)
    show_large_files(result)


@app.command()
def overview(
    ctx: typer.Context,
    refresh: bool = typer.Option(False, "--refresh", help="Re-measure every root."),
) -> None:
    """Print the total size of common top-level locations."""
    settings = _settings(ctx)
    cache = ScanCache.from_settings(settings)
    roots = settings.existing_overview_roots()
    if not roots:
        console.print("[yellow]None of the overview roots exist.[/yellow]")
        raise typer.Exit(0)

    if refresh:
        for root in roots:
            cache.overview.remove(root)

    def measure(path: str) -> int:
        try:
            result = scan_directory(path, settings)
        except ScanError as e:
            console.print(f"[dim]Skipping {path}: {e.cause.strerror or e.cause}[/dim]")
            return 0
        cache.save(path, result)
        return result.total_size

    with console.status("[bold blue]Measuring overview roots...[/bold blue]"):
        cache.prefetch_overview(roots, measure)

    sizes = {display_name(str(root)): cache.overview_size(root) for root in roots}
    show_overview(sizes)


@cache_app.command("info")
def cache_info(ctx: typer.Context) -> None:
    """Show where the cache lives and how big it is."""
    cache = ScanCache.from_settings(_settings(ctx))
    show_cache_info(cache.info())


@cache_app.command("clear")
def cache_clear(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompt"),
) -> None:
    """Delete every cached scan."""
    cache = ScanCache.from_settings(_settings(ctx))
    if not yes and not confirm_action(f"Delete all cached scans in {cache.cache_dir}?"):
        console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(0)

    removed = cache.clear()
    console.print(f"[green]Removed {removed} cache file{'s' if removed != 1 else ''}[/green]")


if __name__ == "__main__":
    app()
