"""
Main entry point for the ipsdl application.

Runs the Typer app and turns errors escaping a command into a suggestion
panel and an exit code: 0 on success or cancellation, 1 for board and
download errors, 2 for usage and configuration errors and 3 for network
failures.
"""

import asyncio
import io
import logging
import os
import sys
from typing import Optional

import aiohttp
import click
from rich.console import Console

from ipsdl.cli.app import app
from ipsdl.cli.formatters import format_error_with_suggestions
from ipsdl.exceptions import ConfigurationError, IpsdlError

log = logging.getLogger("ipsdl")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2
EXIT_NETWORK = 3


def _use_utf8_console() -> None:
    for stream in (sys.stdout, sys.stderr):
        if isinstance(stream, io.TextIOWrapper):
            stream.reconfigure(encoding="utf-8")


def run(args: Optional[list[str]] = None) -> int:
    """Invokes the CLI with `args` and returns the process exit code."""
    console = Console(stderr=True)
    try:
        # Commands that raise typer.Exit hand back its code here
        exit_code = app(args=args, standalone_mode=False)
    except (click.Abort, KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]⚠️  Operation cancelled by user.[/yellow]")
        return EXIT_OK
    except click.ClickException as e:
        e.show()
        return e.exit_code
    except ConfigurationError as e:
        console.print(f"\n{format_error_with_suggestions(e)}")
        return EXIT_USAGE
    except IpsdlError as e:
        console.print(f"\n{format_error_with_suggestions(e)}")
        return EXIT_ERROR
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        console.print(f"\n{format_error_with_suggestions(e, {'type': 'Network'})}")
        log.debug("Full traceback:", exc_info=True)
        return EXIT_NETWORK
    except Exception as e:
        console.print(f"\n{format_error_with_suggestions(e, {'type': 'Unexpected'})}")
        log.debug("Full traceback:", exc_info=True)
        return EXIT_ERROR
    return exit_code if isinstance(exit_code, int) else EXIT_OK


def main() -> None:
    """Console script entry point."""
    if os.name == "nt":
        _use_utf8_console()
    sys.exit(run())


if __name__ == "__main__":
    main()
