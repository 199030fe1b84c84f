"""
Console entry point for modinfo-plus.

Runs the Typer app and turns anything that escapes a command into a readable
error panel and an exit code: 2 for configuration problems, 1 for everything
else, 130 when interrupted.
"""

import asyncio
import logging
import os
import sys

import typer
from rich.console import Console

from modinfo_plus.cli.app import app
from modinfo_plus.cli.formatters import format_error_with_suggestions
from modinfo_plus.exceptions import ConfigurationError, ModInfoError

log = logging.getLogger("modinfo_plus")

EXIT_FAILURE = 1
EXIT_BAD_CONFIG = 2
EXIT_INTERRUPTED = 130


def _use_utf8_console() -> None:
    """Switches Windows consoles to UTF-8."""
    if os.name != "nt":
        return
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.reconfigure(encoding="utf-8")
        except (TypeError, AttributeError):
            pass


def exit_code_for(error: BaseException) -> int:
    if isinstance(error, (KeyboardInterrupt, asyncio.CancelledError)):
        return EXIT_INTERRUPTED
    if isinstance(error, ConfigurationError):
        return EXIT_BAD_CONFIG
    return EXIT_FAILURE


def main() -> None:
    _use_utf8_console()
    console = Console(stderr=True)

    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError) as e:
        console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(exit_code_for(e))
    except ModInfoError as e:
        console.print(format_error_with_suggestions(e))
        sys.exit(exit_code_for(e))
    except Exception as e:
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        log.debug("Full traceback:", exc_info=True)
        sys.exit(exit_code_for(e))


if __name__ == "__main__":
    main()
