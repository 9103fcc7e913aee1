"""CLI command for validate."""

import typer
from rich.console import Console

from livephoto_suite.models.metadata import ValidationInvalid
from livephoto_suite.utils.cli import EXIT_FAILURE, cli_error_handler, stderr_console
from livephoto_suite.validate_live_photo.main import main

console = Console()


@cli_error_handler
def validate_live_photo(
    input_file: str = typer.Argument(..., help="Path to the live photo file to check"),
) -> None:
    """
    Check that a file starts with a live photo ftyp box and a recognized brand.
    """
    result = main(input_file)
    if isinstance(result, ValidationInvalid):
        stderr_console.print(f"[bold red]Invalid:[/bold red] {result.reason}")
        raise typer.Exit(code=EXIT_FAILURE)

    console.print(f"[bold green]Valid[/bold green] brand={result.brand} size={result.file_size:,} bytes")
