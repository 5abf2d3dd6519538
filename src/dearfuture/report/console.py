"""
Console rendering for Dear Future.

Prints capsule listings, single capsules and statistics with Rich.
Messages always go through Capsule.visible_message(), so locked capsules
show the placeholder.
"""

from datetime import datetime

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from dearfuture.schema import Capsule, CapsuleStatistics, CapsuleStatus


DATE_FORMAT = "%Y-%m-%d %H:%M"

STATUS_STYLES = {
    CapsuleStatus.LOCKED: "yellow",
    CapsuleStatus.OPENED: "green",
    CapsuleStatus.DELETED: "red",
}


def render_capsule_table(
    capsules: list[Capsule],
    console: Console,
    title: str = "Capsules",
    verbose: bool = False,
) -> None:
    """Print capsules as a table, one row each."""
    if not capsules:
        console.print("[yellow]No capsules found in this category.[/yellow]")
        return

    table = Table(title=title, show_header=True, header_style="bold", show_lines=verbose)
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Title")
    table.add_column("Status", width=8)
    table.add_column("Unlocks")
    table.add_column("Category", style="cyan")
    if verbose:
        table.add_column("Created", style="dim")
    table.add_column("Message", overflow="fold")

    for capsule in capsules:
        row = [
            str(capsule.id),
            Text(capsule.title, style=f"bold {capsule.color.value}"),
            _status_text(capsule),
            _format_date(capsule.unlock_at),
            Text(capsule.category, style="cyan"),
        ]
        if verbose:
            row.append(_format_date(capsule.created_at))
        message = capsule.visible_message()
        row.append(Text(message if verbose else _truncate(message, 50)))
        table.add_row(*row)

    console.print(table)


def render_capsule(capsule: Capsule, console: Console) -> None:
    """Print one capsule in a panel."""
    style = STATUS_STYLES[capsule.status]

    header = Text()
    header.append(f" #{capsule.id} ", style="bold")
    header.append(capsule.title, style=f"bold {capsule.color.value}")
    header.append(" │ ", style="dim")
    header.append(capsule.status.value.upper(), style=f"bold {style}")

    body = Text()
    body.append(capsule.visible_message(), style="green" if capsule.is_opened else "yellow")
    body.append("\n\n")
    body.append(f"Color:    {capsule.color.name.title()} ({capsule.color.value})\n", style="dim")
    body.append(f"Unlocks:  {_format_date(capsule.unlock_at)}\n", style="dim")
    body.append(f"Category: {capsule.category or '-'}\n", style="dim")
    body.append(f"Created:  {_format_date(capsule.created_at)}", style="dim")
    if capsule.deleted_at is not None:
        body.append(f"\nDeleted:  {_format_date(capsule.deleted_at)}", style="red")

    console.print(Panel(body, title=header, title_align="left", expand=False))


def render_statistics(stats: CapsuleStatistics, console: Console) -> None:
    """Print the statistics report."""
    console.print("[bold]Capsule Statistics & Insights[/bold]")
    console.print()

    counts = Table(show_header=False, box=None, padding=(0, 2))
    counts.add_column("Metric", style="dim")
    counts.add_column("Value")
    counts.add_row("Total Capsules", str(stats.total))
    counts.add_row("Locked", f"[yellow]{stats.locked}[/yellow]" if stats.locked else "0")
    counts.add_row("Opened", f"[green]{stats.opened}[/green]" if stats.opened else "0")
    counts.add_row("In Trash", f"[red]{stats.trashed}[/red]" if stats.trashed else "0")
    counts.add_row("Most Common Category", Text(stats.most_common_category or "None"))
    counts.add_row(
        "Most Used Color",
        stats.most_used_color.name.title() if stats.most_used_color else "None",
    )
    console.print(counts)
    console.print()

    if stats.categories:
        console.print("[bold]Categories[/bold]")
        for category, count in sorted(stats.categories.items(), key=lambda kv: (-kv[1], kv[0])):
            console.print(f"  • {escape(category) if category else '[dim](none)[/dim]'}: {count}")
        console.print()

    trends = stats.unlock_trends
    table = Table(title="Unlock Trends", show_header=True, header_style="bold")
    table.add_column("Window")
    table.add_column("Unlocked", justify="right")
    table.add_column("Upcoming", justify="right")
    table.add_row("7 days", str(trends.last_7_days), str(trends.next_7_days))
    table.add_row("30 days", str(trends.last_30_days), str(trends.next_30_days))
    table.add_row("1 year", str(trends.last_365_days), str(trends.next_365_days))
    console.print(table)


def _status_text(capsule: Capsule) -> str:
    style = STATUS_STYLES[capsule.status]
    return f"[{style}]{capsule.status.value}[/{style}]"


def _format_date(value: datetime) -> str:
    return value.strftime(DATE_FORMAT)


def _truncate(s: str, max_len: int) -> str:
    """Truncate string with ellipsis."""
    if len(s) <= max_len:
        return s
    return s[: max_len - 3] + "..."
