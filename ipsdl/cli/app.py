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
from rich.markup import escape

from ipsdl import __version__
from ipsdl.core import Downloads, DownloadOptions, FetchOptions
from ipsdl.exceptions import InvalidArgumentError
from ipsdl.models.catalog import CategoryRef
from ipsdl.models.config import BoardConfig, BoardVersion
from ipsdl.storage.config_manager import ConfigManager

from .formatters import (
    print_board_config,
    print_categories_table,
    print_records_table,
    print_summary_panel,
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
log = logging.getLogger("ipsdl")

app = typer.Typer(
    name="ipsdl",
    help=(
        "Browse and download files from the download section of Invision Power"
        " boards. Use 'ipsdl <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "ipsdl"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def load_board(name: str) -> BoardConfig:
    return ConfigManager(CONFIG_FILE).load_board(name)


def parse_category_arg(value: str) -> int | None:
    """Returns the ID of a numeric category argument, or None for a label query."""
    value = value.strip()
    return int(value) if value.isdigit() else None


async def resolve_category_arg(
    downloads: Downloads, value: str, force_refresh: bool = False
) -> CategoryRef:
    """Turns a CLI category argument into a category reference."""
    category_id = parse_category_arg(value)
    if category_id is not None:
        return category_id
    category = await downloads.find_category(value, force_refresh=force_refresh)
    if category is None:
        raise InvalidArgumentError(f"No category matches '{value}'.")
    log.info(f"Using category [bold]{escape(category.label)}[/bold] ({category.id}).")
    return category


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-v for info, -vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
):
    """IPS Board Downloader CLI"""
    if version:
        console.print(f"[bold]ipsdl[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "WARNING"
    if verbose >= 2:
        log_level = "DEBUG"
    elif verbose == 1:
        log_level = "INFO"
    logging.getLogger("ipsdl").setLevel(log_level)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    name: str = typer.Argument(..., help="A name for the board, e.g. 'MyBoard'."),
    url: str = typer.Argument(..., help="The base URL of the board."),
    board_version: BoardVersion = typer.Option(
        BoardVersion.IPS4, "--version", help="The IPS version of the board."
    ),
    username: str = typer.Option("", "--username", "-u", help="Board user name."),
    password: str | None = typer.Option(
        None, "--password", "-p", help="Board password. Prompted for when omitted."
    ),
    min_delay: int = typer.Option(500, help="Minimum delay between requests (ms)."),
    max_delay: int = typer.Option(2000, help="Maximum delay between requests (ms)."),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing board without asking."
    ),
):
    """Add or update a board in the configuration file."""
    config_manager = ConfigManager(CONFIG_FILE)
    if (
        name in config_manager.board_names()
        and not force
        and not typer.confirm(f"Board '{name}' already exists. Overwrite it?")
    ):
        raise typer.Abort()

    if username and password is None:
        password = typer.prompt("Password", hide_input=True)

    board = config_manager.save_board(
        name,
        {
            "url": url,
            "version": board_version,
            "username": username,
            "password": password or "",
            "min_delay": min_delay,
            "max_delay": max_delay,
        },
    )
    console.print(
        f"\n[bold green]✓ Board '{escape(board.name)}' saved to '{CONFIG_FILE}'[/bold green]"
    )
    console.print(
        f"Try: [cyan]ipsdl categories {escape(board.name)}[/cyan]"
    )


@app.command()
def show(name: str = typer.Argument(..., help="The configured board name.")):
    """Display the configuration of a board."""
    print_board_config(CONFIG_FILE, load_board(name))


@app.command()
def categories(
    name: str = typer.Argument(..., help="The configured board name."),
    refresh: bool = typer.Option(
        False, "--refresh", "-r", help="Fetch the categories again instead of using the cache."
    ),
):
    """List the download categories of a board."""
    config = load_board(name)

    async def _categories_async():
        async with Downloads(config) as downloads:
            return await downloads.get_categories(force_refresh=refresh)

    print_categories_table(asyncio.run(_categories_async()))


@app.command()
def files(
    name: str = typer.Argument(..., help="The configured board name."),
    category: str = typer.Argument(..., help="A category ID or a label to search for."),
    refresh: bool = typer.Option(
        False,
        "--refresh",
        "-r",
        help="Fetch the categories and files again and merge them into the cache.",
    ),
    first_page: bool = typer.Option(
        False, "--first-page", help="Only fetch the first listing page."
    ),
    query: str | None = typer.Option(
        None, "--query", "-q", help="Only show files whose title or description match."
    ),
):
    """List the files of a category."""
    config = load_board(name)
    options = FetchOptions(force_refresh=refresh, first_page_only=first_page)

    async def _files_async():
        async with Downloads(config) as downloads:
            ref = await resolve_category_arg(downloads, category, force_refresh=refresh)
            if query:
                return await downloads.find_files(query, ref, options)
            return await downloads.get_files(ref, options)

    print_records_table(asyncio.run(_files_async()), title=f"Files in {category}")


@app.command(name="download")
def download_command(
    name: str = typer.Argument(..., help="The configured board name."),
    category: str = typer.Argument(..., help="A category ID or a label to search for."),
    query: str = typer.Argument(..., help="Words matching the title or description."),
    dest: Path = typer.Argument(  # noqa: B008
        ..., help="The destination folder.", file_okay=False, resolve_path=True
    ),
    all_matches: bool = typer.Option(
        False, "--all", "-a", help="Download every matching file, not just the first."
    ),
    all_files: bool = typer.Option(
        False, "--all-files", help="Download every file of multi-file records."
    ),
    filename: str | None = typer.Option(
        None, "--filename", help="The file to pick from a multi-file record."
    ),
    refresh: bool = typer.Option(
        False, "--refresh", "-r", help="Fetch the categories and files again before searching."
    ),
):
    """Download files matching a query from a category."""
    config = load_board(name)
    fetch_options = FetchOptions(force_refresh=refresh)
    download_options = DownloadOptions(filename=filename, all_files=all_files)

    async def _download_async():
        async with Downloads(config) as downloads:
            ref = await resolve_category_arg(downloads, category, force_refresh=refresh)
            if all_matches:
                records = await downloads.find_files(query, ref, fetch_options)
            else:
                record = await downloads.find_file(query, ref, fetch_options)
                records = [record] if record else []

            if not records:
                console.print(f"[yellow]⚠️  No files match '{escape(query)}'.[/yellow]")
                raise typer.Exit(code=1)

            console.print(
                f"[bold cyan]Starting download of {len(records)} file(s)...[/bold cyan]"
            )
            try:
                await downloads.download_all(records, dest, download_options)
            finally:
                print_summary_panel(downloads.stats, downloads.stats.elapsed_seconds)

    asyncio.run(_download_async())


@app.command()
def login(name: str = typer.Argument(..., help="The configured board name.")):
    """Log in to a board and keep the session cookies."""
    config = load_board(name)

    async def _login_async():
        async with Downloads(config) as downloads:
            return await downloads.login()

    if asyncio.run(_login_async()):
        console.print("[green]✓ Logged in.[/green]")
    else:
        console.print("[dim]Already logged in.[/dim]")


@app.command()
def logout(name: str = typer.Argument(..., help="The configured board name.")):
    """Close the board session. Sessions otherwise stay open across runs."""
    config = load_board(name)

    async def _logout_async():
        async with Downloads(config) as downloads:
            return await downloads.logout()

    if asyncio.run(_logout_async()):
        console.print("[green]✓ Logged out.[/green]")
    else:
        console.print("[dim]Nobody was logged in.[/dim]")
