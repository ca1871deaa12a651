"""CLI command for detect-format."""

from typing import List

import typer
from rich.console import Console
from rich.table import Table

from gif_fix.detect_format.main import main
from gif_fix.utils.cli import cli_error_handler

console = Console()


@cli_error_handler
def detect_format(
    files: List[str] = typer.Argument(..., help="Files to classify"),
) -> None:
    """
    Show the container format detected for each file.

    Only the first 12 bytes of each file are inspected. Unreadable files
    are reported as 'other'.
    """
    table = Table()
    table.add_column("File", overflow="fold")
    table.add_column("Format", no_wrap=True)
    for path, file_format in main(files).items():
        table.add_row(path, file_format.value)
    console.print(table)
