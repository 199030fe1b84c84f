"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from modinfo_plus.core.session import DiscoveryPage
from modinfo_plus.models.mods import ModStats, Notification, WatchEntry
from modinfo_plus.utils.formatting import (
    format_date,
    format_number,
    format_timestamp,
)


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigurationError": [
            "• Check the values in your configuration file.",
            "• Run `modinfo-plus --show-config` to see what was loaded.",
            "• Delete the file to fall back to defaults.",
        ],
        "StoreError": [
            "• The data directory may be read-only or full.",
            "• Changes are kept in memory until the store is writable again.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def format_stats_cell(stats: ModStats | None) -> str:
    """One-line summary used in list views."""
    if stats is None:
        return "[yellow]Loading...[/yellow]"
    if stats.error:
        return "[red]Failed / No releases[/red]"
    return f"{format_number(stats.downloads)} DL | {stats.releases} releases"


def print_discovery_page(
    console: Console,
    page: DiscoveryPage,
    stats: dict[str, ModStats],
    watched: set[str],
) -> None:
    """Prints one page of discovered mods with their stats."""
    if page.total_items == 0:
        if page.query:
            console.print(f"[yellow]No mods match '{page.query}'.[/yellow]")
        else:
            console.print("[red]Failed to load mods[/red]")
            console.print("[dim]Check your internet connection[/dim]")
        return

    source = "cached" if page.from_cache else "fresh"
    table = Table(
        title=f"Mods ({page.total_items}, {source})",
        box=box.ROUNDED,
        show_lines=True,
    )
    table.add_column("", width=1)
    table.add_column("Mod", style="bold")
    table.add_column("Stars", justify="right", style="yellow")
    table.add_column("Stats")
    table.add_column("Description", style="dim", overflow="fold")

    for item in page.items:
        table.add_row(
            "[cyan]●[/cyan]" if item.key in watched else "",
            f"{item.display_name}\n[dim]{item.key}[/dim]",
            format_number(item.stars),
            format_stats_cell(stats.get(item.key)),
            item.description,
        )

    console.print(table)
    console.print(f"[dim]Page {page.page + 1}/{page.total_pages}[/dim]")


def print_mod_details(
    console: Console, key: str, name: str, stats: ModStats, watched: bool
) -> None:
    """Prints the detail view for one mod."""
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style="cyan")
    grid.add_column()
    grid.add_row("Repository", key)
    grid.add_row("Watching", "[green]yes[/green]" if watched else "no")

    if stats.error:
        grid.add_row("Statistics", "[red]Failed to load statistics[/red]")
    else:
        grid.add_row("Downloads", format_number(stats.downloads))
        grid.add_row("Releases", str(stats.releases))
        grid.add_row("Latest release", format_date(stats.latest_release))
        grid.add_row("First release", format_date(stats.first_release))

    console.print(Panel(grid, title=f"[bold]{name}[/bold]", expand=False))


def print_watchlist(console: Console, entries: list[WatchEntry]) -> None:
    if not entries:
        console.print("[dim]Your watchlist is empty.[/dim]")
        return

    table = Table(title="Watchlist", box=box.SIMPLE_HEAVY)
    table.add_column("Mod", style="bold")
    table.add_column("Repository", style="dim")
    table.add_column("Stars", justify="right", style="yellow")
    table.add_column("Added")
    for entry in entries:
        table.add_row(
            entry.item.display_name,
            entry.key,
            format_number(entry.item.stars),
            format_timestamp(entry.added_time),
        )
    console.print(table)


def print_notifications(console: Console, notifications: list[Notification]) -> None:
    """Prints notifications in the order given (callers pass newest first)."""
    if not notifications:
        console.print("[dim]No notifications yet[/dim]")
        console.print("[dim]Watch mods to get notifications![/dim]")
        return

    table = Table(title="Inbox", box=box.SIMPLE_HEAVY)
    table.add_column("", width=1)
    table.add_column("Mod", style="bold")
    table.add_column("Message")
    table.add_column("When", style="dim")
    for notification in notifications:
        table.add_row(
            "" if notification.read else "[cyan]●[/cyan]",
            notification.mod_name or notification.key,
            notification.message,
            format_timestamp(notification.time),
        )
    console.print(table)


def print_config(config_file: Path, config_data: dict[str, Any]) -> None:
    """Prints the current configuration in a formatted table."""
    console = Console()
    table = Table(
        title=f"Configuration from [cyan]{config_file}[/cyan]",
        box=box.ROUNDED,
        show_header=False,
    )
    table.add_column("Key", style="bold cyan")
    table.add_column("Value")

    for key, value in sorted(config_data.items()):
        if key == "token" and value:
            value = "[dim]<hidden>[/dim]"
        table.add_row(key, str(value))

    console.print(table)
