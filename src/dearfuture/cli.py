"""
CLI entry point for Dear Future.

This module provides the Typer-based command-line interface. Every command
builds on one CapsuleStore per invocation, created in the app callback and
closed when the command finishes.

Commands:
    create      Write a new capsule
    list        List active, locked, archived or trashed capsules
    show        Show a single capsule
    open        Open a capsule whose unlock date has passed
    delete      Move a capsule to the trash
    restore     Take a capsule out of the trash
    purge       Permanently delete a capsule
    cleanup     Purge capsules that have been in the trash too long
    sort        List capsules in a chosen order
    stats       Show statistics about your capsules
    export      Export capsules to JSON or CSV
    import      Import capsules from JSON or CSV

Architecture Note:
    The CLI is intentionally thin - it parses arguments and delegates to
    CapsuleService. No lifecycle rules live here.
"""

import logging
import traceback
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Annotated, Generator, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from dearfuture import __version__
from dearfuture.config import DATA_FILE_ENV, load_settings
from dearfuture.errors import DearFutureError
from dearfuture.report import (
    generate_capsules_json,
    generate_statistics_json,
    render_capsule,
    render_capsule_table,
    render_statistics,
)
from dearfuture.schema import CapsuleColor, SortKey, parse_datetime
from dearfuture.service import NOT_FOUND_MESSAGE, STILL_LOCKED_MESSAGE, CapsuleService
from dearfuture.store import TRASH_RETENTION_DAYS, CapsuleStore

# Initialize Typer app with metadata
app = typer.Typer(
    name="dearfuture",
    help="Write time capsules for your future self.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console()


class ListView(str, Enum):
    """Which capsules `list` shows."""

    ACTIVE = "active"
    LOCKED = "locked"
    ARCHIVED = "archived"
    TRASH = "trash"


@dataclass
class AppState:
    """Per-invocation objects shared with commands through ctx.obj."""

    service: CapsuleService
    debug: bool = False


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]dearfuture[/bold] version {__version__}")
        raise typer.Exit()


def _configure_logging(level: str) -> None:
    """Route log records to stderr through Rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@contextmanager
def _handle_errors(state: AppState) -> Generator[None, None, None]:
    """Turn DearFutureError into a red one-liner and exit code 1."""
    try:
        yield
    except DearFutureError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        if state.debug:
            console.print(f"[dim]{escape(traceback.format_exc())}[/dim]")
        raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    data_file: Annotated[
        Optional[Path],
        typer.Option(
            "--data-file",
            "-f",
            help="JSON file holding your capsules.",
            envvar=DATA_FILE_ENV,
        ),
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            help="YAML settings file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Log what the store is doing.",
        ),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option(
            "--debug",
            help="Enable debug logging and full error tracebacks.",
        ),
    ] = False,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    Dear Future - time capsules that stay sealed until their unlock date.
    """
    try:
        settings = load_settings(config)
    except DearFutureError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    if data_file is not None:
        settings = settings.model_copy(update={"data_file": data_file})

    level = "DEBUG" if debug else ("INFO" if verbose else settings.log_level)
    _configure_logging(level)

    store = CapsuleStore(settings.data_file)
    ctx.call_on_close(store.close)
    if store.load_error is not None:
        console.print(f"[yellow]Warning: {escape(str(store.load_error))}[/yellow]")

    ctx.obj = AppState(service=CapsuleService(store), debug=debug)


@app.command()
def create(
    ctx: typer.Context,
    title: Annotated[
        str,
        typer.Option("--title", "-t", prompt="Capsule title", help="Capsule title."),
    ],
    message: Annotated[
        str,
        typer.Option("--message", "-m", prompt="Capsule message", help="Message for your future self."),
    ],
    unlock: Annotated[
        str,
        typer.Option(
            "--unlock",
            "-u",
            prompt="Unlock date (YYYY-MM-DD HH:MM)",
            help="When the capsule may be opened (YYYY-MM-DD HH:MM).",
        ),
    ],
    category: Annotated[
        str,
        typer.Option("--category", "-c", help="Category, e.g. Event, Reminder, Reflection."),
    ] = "",
    color: Annotated[
        str,
        typer.Option(
            "--color",
            help="red, blue, green, yellow, purple, orange or white.",
        ),
    ] = "white",
) -> None:
    """
    Write a new capsule.

    Example:
        $ dearfuture create -t "Hello" -m "Remember today" -u "2030-01-01 09:00"
    """
    state: AppState = ctx.obj
    with _handle_errors(state):
        unlock_at = parse_datetime(unlock)
        capsule_color = CapsuleColor.parse(color)
        capsule = state.service.create_capsule(
            title=title.strip(),
            message=message.strip(),
            unlock_at=unlock_at,
            category=category.strip(),
            color=capsule_color,
        )

    if capsule is None:
        console.print("[red]Failed to create capsule. Ensure fields are not empty.[/red]")
        raise typer.Exit(code=1)

    console.print(
        f"[green]✓[/green] Capsule [bold]{capsule.id}[/bold] created, "
        f"unlocks {capsule.unlock_at:%Y-%m-%d %H:%M}"
    )


@app.command("list")
def list_capsules(
    ctx: typer.Context,
    view: Annotated[
        ListView,
        typer.Option("--view", help="Which capsules to show."),
    ] = ListView.ACTIVE,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results in JSON format."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--long", "-l", help="Show full messages and creation dates."),
    ] = False,
) -> None:
    """List capsules."""
    service = ctx.obj.service
    if view == ListView.LOCKED:
        capsules, title = service.locked_capsules(), "Locked Capsules"
    elif view == ListView.ARCHIVED:
        capsules, title = service.archived_capsules(), "Archived Capsules"
    elif view == ListView.TRASH:
        capsules, title = service.deleted_capsules(), "Trash"
    else:
        capsules, title = service.all_capsules(), "Capsules"

    if json_output:
        print(generate_capsules_json(capsules, view.value))
        return
    render_capsule_table(capsules, console, title=title, verbose=verbose)


@app.command()
def show(
    ctx: typer.Context,
    capsule_id: Annotated[int, typer.Argument(help="Capsule ID.")],
) -> None:
    """Show a single capsule."""
    state: AppState = ctx.obj
    with _handle_errors(state):
        capsule = state.service.require_capsule(capsule_id)
    render_capsule(capsule, console)


@app.command("open")
def open_capsule(
    ctx: typer.Context,
    capsule_id: Annotated[int, typer.Argument(help="Capsule ID.")],
) -> None:
    """Open a capsule whose unlock date has passed."""
    state: AppState = ctx.obj
    with _handle_errors(state):
        result = state.service.open_capsule(capsule_id)

    if result == NOT_FOUND_MESSAGE:
        console.print(f"[red]{result}[/red]")
        raise typer.Exit(code=1)
    if result == STILL_LOCKED_MESSAGE:
        console.print(f"[yellow]{result}[/yellow]")
        raise typer.Exit(code=1)

    console.print(f"[green]✓[/green] Capsule [bold]{capsule_id}[/bold] opened")
    console.print(result, markup=False)


@app.command()
def delete(
    ctx: typer.Context,
    capsule_id: Annotated[int, typer.Argument(help="Capsule ID.")],
) -> None:
    """Move a capsule to the trash."""
    state: AppState = ctx.obj
    with _handle_errors(state):
        state.service.delete_capsule(capsule_id)
    console.print("[yellow]Capsule moved to Trash.[/yellow]")


@app.command()
def restore(
    ctx: typer.Context,
    capsule_id: Annotated[int, typer.Argument(help="Capsule ID.")],
) -> None:
    """Take a capsule out of the trash."""
    state: AppState = ctx.obj
    with _handle_errors(state):
        state.service.restore_capsule(capsule_id)
    console.print("[green]Capsule restored.[/green]")


@app.command()
def purge(
    ctx: typer.Context,
    capsule_id: Annotated[int, typer.Argument(help="Capsule ID.")],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Don't ask for confirmation."),
    ] = False,
) -> None:
    """Permanently delete a capsule."""
    state: AppState = ctx.obj
    if not yes:
        typer.confirm(f"Permanently delete capsule {capsule_id}?", abort=True)
    with _handle_errors(state):
        state.service.permanently_delete_capsule(capsule_id)
    console.print("[red]Capsule permanently deleted.[/red]")


@app.command()
def cleanup(ctx: typer.Context) -> None:
    """Purge capsules that have been in the trash too long."""
    state: AppState = ctx.obj
    with _handle_errors(state):
        removed = state.service.cleanup_old_deleted_capsules()
    console.print(
        f"Removed {removed} capsule(s) older than {TRASH_RETENTION_DAYS} days from the trash."
    )


@app.command()
def sort(
    ctx: typer.Context,
    key: Annotated[
        str,
        typer.Argument(
            help="Order: " + ", ".join(k.name.lower() for k in SortKey if k != SortKey.UNORDERED),
        ),
    ],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results in JSON format."),
    ] = False,
) -> None:
    """List capsules in a chosen order."""
    state: AppState = ctx.obj
    sort_key = SortKey.parse(key)
    if sort_key == SortKey.UNORDERED and key.strip().lower() != "unordered":
        console.print(f"[yellow]Unknown sort order {escape(repr(key))}; keeping stored order.[/yellow]")

    with _handle_errors(state):
        capsules = state.service.sort_capsules(sort_key)

    if json_output:
        print(generate_capsules_json(capsules, sort_key.value))
        return
    render_capsule_table(capsules, console, title=f"Capsules ({sort_key.value})")


@app.command()
def stats(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results in JSON format."),
    ] = False,
) -> None:
    """Show statistics about your capsules."""
    statistics = ctx.obj.service.statistics()
    if json_output:
        print(generate_statistics_json(statistics))
        return
    render_statistics(statistics, console)


@app.command("export")
def export_capsules(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Destination file.")],
    fmt: Annotated[
        Optional[str],
        typer.Option("--format", "-F", help="json or csv (default: from file extension)."),
    ] = None,
) -> None:
    """Export active capsules to JSON or CSV."""
    state: AppState = ctx.obj
    with _handle_errors(state):
        count = state.service.export_capsules(path, fmt or _format_from_suffix(path))
    console.print(f"[green]Capsules successfully exported to {escape(str(path))}[/green] ({count})")


@app.command("import")
def import_capsules(
    ctx: typer.Context,
    path: Annotated[
        Path,
        typer.Argument(help="File to import.", exists=True, readable=True),
    ],
    fmt: Annotated[
        Optional[str],
        typer.Option("--format", "-F", help="json or csv (default: from file extension)."),
    ] = None,
) -> None:
    """Import capsules from JSON or CSV."""
    state: AppState = ctx.obj
    with _handle_errors(state):
        count = state.service.import_capsules(path, fmt or _format_from_suffix(path))
    console.print(f"[green]Capsules successfully imported from {escape(str(path))}[/green] ({count})")


def _format_from_suffix(path: Path) -> str:
    return path.suffix.lstrip(".").lower() or "json"


if __name__ == "__main__":
    app()
