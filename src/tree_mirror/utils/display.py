"""
Rich Terminal Display Components.

Console output for the CLI:
- Cycle summary
- Recent members and mirror status tables
- Status messages
"""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.table import Table


console = Console()


def print_summary(stats: dict[str, Any]) -> None:
    """Print a summary table after a sync cycle."""
    table = Table(title="Sync Summary", border_style="green")

    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Mode", stats.get("mode", "N/A"))
    table.add_row("Duration", f"{stats.get('duration', 0):.1f}s")
    table.add_row("New Pages", f"{stats.get('pages_discovered', 0):,}")
    table.add_row(
        "Pages Mirrored",
        f"{stats.get('pages_mirrored', 0):,} ({stats.get('pages_failed', 0):,} failed)",
    )
    table.add_row("Members Mirrored", f"{stats.get('members_mirrored', 0):,}")
    table.add_row("Average Speed", f"{stats.get('members_per_second', 0):,.0f} members/s")
    table.add_row("Relations Added", f"{stats.get('relations_added', 0):,}")
    table.add_row("Cursor", format_time(stats.get("cursor")))
    table.add_row("Cursor Committed", "yes" if stats.get("cursor_committed") else "no")

    console.print(table)


def print_members(members: list[Any], title: str = "Recent Members") -> None:
    """Print members newest first."""
    table = Table(title=title, border_style="blue")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Created", style="cyan")
    table.add_column("Member")

    for i, member in enumerate(members, start=1):
        table.add_row(str(i), format_time(member.timestamp), member.member_id)

    console.print(table)


def print_status(status: dict[str, Any]) -> None:
    """Print cursor and relations of a mirror."""
    table = Table(title="Mirror Status", border_style="blue")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Root", status["root"])
    table.add_row("Cursor", format_time(status["cursor"]))
    table.add_row("Relations", str(status["relations"]))
    table.add_row("Open Page", status["open_page"] or "[dim]none[/dim]")
    console.print(table)

    if status["pages"]:
        console.print()
        pages = Table(title="Pages", border_style="green")
        pages.add_column("Boundary", style="cyan")
        pages.add_column("Fragment")
        for page in status["pages"]:
            pages.add_row(format_time(page["value"]), page["node"])
        console.print(pages)


def format_time(value: Any) -> str:
    """Format a datetime for display."""
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3] + " UTC"


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red bold]Error:[/red bold] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green bold]✓[/green bold] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow bold]⚠[/yellow bold] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]ℹ[/blue] {message}")
