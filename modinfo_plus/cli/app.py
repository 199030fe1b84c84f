"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from modinfo_plus import __version__
from modinfo_plus.core.session import ModInfoSession
from modinfo_plus.exceptions import ModInfoError
from modinfo_plus.models.config import PluginConfig
from modinfo_plus.models.mods import ModItem
from modinfo_plus.storage.config_manager import ConfigManager
from modinfo_plus.utils.formatting import format_cooldown

from .formatters import (
    print_config,
    print_discovery_page,
    print_mod_details,
    print_notifications,
    print_watchlist,
)

console = Console()

logging.basicConfig(
    level="WARNING",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("modinfo_plus")

app = typer.Typer(
    name="modinfo-plus",
    help="Discover mods on GitHub, track their downloads and watch for new releases.",
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "modinfo-plus"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _load_config() -> PluginConfig:
    try:
        return ConfigManager(CONFIG_FILE).load_config()
    except ModInfoError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e


def _parse_key(key: str) -> tuple[str, str]:
    owner, sep, repo = key.strip().strip("/").partition("/")
    if not sep or not owner or not repo or "/" in repo:
        console.print(f"[red]✗ Expected OWNER/REPO, got '{key}'.[/red]")
        raise typer.Exit(code=1)
    return owner, repo


def _resolve_item(session: ModInfoSession, key: str) -> ModItem:
    """Finds a known mod by key, or builds a bare record for an unknown one."""
    owner, repo = _parse_key(key)
    return session.find_item(f"{owner}/{repo}") or ModItem(
        owner=owner, repo=repo, name=repo
    )


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """ModInfo+ command-line host."""
    if version:
        console.print(f"[bold]modinfo-plus[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "WARNING"
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("modinfo_plus").setLevel(log_level)

    if show_config:
        config = _load_config()
        print_config(CONFIG_FILE, config.model_dump(exclude={"config_path"}))
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration file."
    ),
):
    """Write a configuration file with default settings."""
    if CONFIG_FILE.exists() and not force:
        if not typer.confirm("Configuration file already exists. Overwrite it?"):
            raise typer.Abort()

    try:
        ConfigManager(CONFIG_FILE).save_new_config({})
    except ModInfoError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print(
        "[dim]Set MODINFO_GITHUB_TOKEN in your environment to raise the API rate limit."
        "[/dim]"
    )


@app.command()
def discover(
    query: str = typer.Option(
        "", "--search", "-s", help="Filter by name, owner or description."
    ),
    page: int = typer.Option(1, "--page", "-p", min=1, help="Page to show (1-based)."),
    no_stats: bool = typer.Option(False, "--no-stats", help="Skip release statistics."),
):
    """List mods discovered on GitHub."""

    async def _discover():
        async with ModInfoSession(_load_config()) as session:
            result = await session.discover(query=query, page=page - 1)
            stats = {} if no_stats else await session.stats_many(result.items)
            watched = {
                item.key
                for item in result.items
                if session.watchlist.is_watched(item)
            }
            print_discovery_page(console, result, stats, watched)

            unread = session.notifications.unread_count()
            if unread:
                console.print(f"[cyan]Inbox ({unread})[/cyan]")

    asyncio.run(_discover())


@app.command()
def stats(key: str = typer.Argument(..., metavar="OWNER/REPO")):
    """Show download and release statistics for one mod."""

    async def _stats():
        async with ModInfoSession(_load_config()) as session:
            item = _resolve_item(session, key)
            mod_stats = await session.stats(item)
            print_mod_details(
                console,
                item.key,
                item.display_name,
                mod_stats,
                session.watchlist.is_watched(item),
            )

    asyncio.run(_stats())


@app.command()
def watch(key: str = typer.Argument(..., metavar="OWNER/REPO")):
    """Add a mod to the watchlist, or remove it if already watched."""

    async def _watch():
        async with ModInfoSession(_load_config()) as session:
            item = _resolve_item(session, key)
            if session.toggle_watch(item):
                console.print(f"[green]✓ Added {item.key} to watchlist[/green]")
            else:
                console.print(f"[yellow]Removed {item.key} from watchlist[/yellow]")

    asyncio.run(_watch())


@app.command()
def watchlist(
    check: bool = typer.Option(
        False, "--check", help="Fetch current stats for every watched mod."
    ),
):
    """Show the watchlist."""

    async def _watchlist():
        async with ModInfoSession(_load_config()) as session:
            entries = session.watchlist.entries()
            print_watchlist(console, entries)
            if check and entries:
                results = await session.stats_many(e.item for e in entries)
                for entry in entries:
                    print_mod_details(
                        console,
                        entry.key,
                        entry.item.display_name,
                        results[entry.key],
                        True,
                    )

    asyncio.run(_watchlist())


@app.command()
def inbox(
    mark_read: bool = typer.Option(
        False, "--mark-read", help="Mark all notifications as read after showing them."
    ),
):
    """Show notifications, newest first."""

    async def _inbox():
        async with ModInfoSession(_load_config()) as session:
            print_notifications(console, session.notifications.newest_first())
            if mark_read:
                count = session.notifications.mark_all_read()
                console.print(f"[dim]Marked {count} notifications as read.[/dim]")

    asyncio.run(_inbox())


@app.command()
def refresh():
    """Clear all cached GitHub data (limited to once per cooldown period)."""

    async def _refresh():
        async with ModInfoSession(_load_config()) as session:
            decision = session.request_refresh()
            if decision.allowed:
                console.print("[green]✓ Caches cleared.[/green]")
            else:
                hint = format_cooldown(decision.seconds_remaining)
                console.print(f"[yellow]{hint}[/yellow]")
                raise typer.Exit(code=1)

    asyncio.run(_refresh())
