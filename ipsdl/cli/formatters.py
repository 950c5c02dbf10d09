"""
Functions for formatting and displaying data in the console using Rich.
"""

from collections.abc import Iterable
from pathlib import Path

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ipsdl.models.catalog import CatalogRecord, Category
from ipsdl.models.config import BoardConfig
from ipsdl.models.stats import DownloadStats
from ipsdl.utils.formatting import format_duration, format_size

SUGGESTIONS_MAP = {
    "AuthenticationError": [
        "• Verify the username and password of the board in the configuration file.",
        "• Run `ipsdl init` again to update the credentials.",
        "• Run `ipsdl logout` and retry if the session looks stale.",
    ],
    "QuotaExceededError": [
        "• The board limits the number of downloads per day.",
        "• Try again tomorrow.",
    ],
    "ConcurrencyLimitError": [
        "• Another download from this account is still running.",
        "• Wait for it to complete, then try again.",
    ],
    "ThrottledError": [
        "• The board keeps asking to wait between downloads.",
        "• Increase `min_delay` and `max_delay` for the board.",
    ],
    "ExtractionError": [
        "• The page layout does not match the configured board version.",
        "• Check the `version` setting of the board (ips3 or ips4).",
    ],
    "UnknownResponseError": [
        "• The board answered with a page that could not be understood.",
        "• Inspect the dumped page for a message from the board.",
    ],
    "FileNotAvailableError": [
        "• Pick one of the listed file names with --filename.",
        "• Use --all-files to download every file of the record.",
    ],
    "ConfigurationError": [
        "• Run `ipsdl init NAME URL` to configure a board.",
    ],
    "ClientConnectorError": [
        "• A network connection issue occurred.",
        "• The board might be temporarily unavailable.",
        "• Please try again in a few minutes.",
    ],
    "TimeoutError": [
        "• A request timed out, which may indicate a slow board.",
        "• Check your internet connection.",
    ],
}


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions = SUGGESTIONS_MAP.get(
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

    dump_path = getattr(error, "dump_path", None)
    if dump_path:
        content.add_row(Text(f"Response saved to {dump_path}", style="dim"))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_board_config(config_path: Path, board: BoardConfig):
    """Displays a board's configuration, hiding the password."""
    console = Console()
    content = ""
    for key in sorted(BoardConfig.get_ini_keys()):
        value = getattr(board, key)
        if key == "password" and value:
            value = "[hidden]"
        elif key == "version":
            value = value.value
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            escape(content.strip()),
            title=f"{escape(board.name)} ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_categories_table(categories: Iterable[Category]):
    console = Console()
    table = Table(title="Categories", box=box.SIMPLE_HEAVY)
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Label", style="bold")
    table.add_column("URL", style="dim", overflow="fold")
    for category in categories:
        table.add_row(str(category.id), escape(category.label), category.url)
    console.print(table)


def print_records_table(records: Iterable[CatalogRecord], title: str = "Files"):
    console = Console()
    table = Table(title=escape(title), box=box.SIMPLE_HEAVY)
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Author")
    table.add_column("Date", style="dim")
    table.add_column("Downloads", justify="right", style="green")
    table.add_column("Views", justify="right")
    count = 0
    for record in records:
        count += 1
        title_cell = escape(record.title)
        if record.broken:
            title_cell += " [red](broken)[/red]"
        table.add_row(
            str(record.id),
            title_cell,
            escape(record.author),
            record.date.strftime("%Y-%m-%d") if record.date else "",
            str(record.downloads) if record.downloads is not None else "",
            str(record.views) if record.views is not None else "",
        )
    console.print(table)
    console.print(f"[dim]{count} file(s).[/dim]")


def print_summary_panel(stats: DownloadStats, duration_s: float):
    """Displays the final summary of a download session."""
    console = Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row(
        "✓ Downloaded:", f"[bold green]{stats.files_downloaded}[/bold green]"
    )
    if stats.files_skipped_exists > 0:
        stats_table.add_row(
            "○ Skipped:", f"[yellow]{stats.files_skipped_exists} (exists)[/yellow]"
        )
    if stats.records_broken > 0:
        stats_table.add_row(
            "⚠ Not Available:", f"[yellow]{stats.records_broken}[/yellow]"
        )
    if stats.records_failed > 0:
        stats_table.add_row("✗ Failed:", f"[bold red]{stats.records_failed}[/bold red]")

    stats_table.add_row("", "")
    stats_table.add_row(
        "Total Size:", f"[cyan]{format_size(stats.total_size_downloaded)}[/cyan]"
    )
    avg_speed = stats.total_size_downloaded / duration_s if duration_s > 0 else 0
    stats_table.add_row(
        "Avg. Speed:", f"[magenta]{format_size(int(avg_speed))}/s[/magenta]"
    )
    stats_table.add_row("Time Elapsed:", f"[blue]{format_duration(duration_s)}[/blue]")

    if stats.records_failed:
        title = "[bold]Download Finished With Errors[/bold]"
        border_color = "yellow"
    else:
        title = "[bold]Download Complete![/bold]"
        border_color = "green"

    console.print()
    console.print(
        Panel(
            stats_table,
            title=title,
            border_style=border_color,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    console.print()
