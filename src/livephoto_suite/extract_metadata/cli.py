"""CLI command for extract-metadata."""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from livephoto_suite.extract_metadata.main import main
from livephoto_suite.utils.cli import EXIT_FAILURE, cli_error_handler, stderr_console
from livephoto_suite.utils.dependencies import check_ffmpeg_tool

console = Console(stderr=True)


@cli_error_handler
def extract_metadata(
    input_file: str = typer.Argument(..., help="Path to the live photo file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """
    Recover live photo metadata and print it as JSON on stdout.

    Video geometry and duration come from the embedded clip, photo size from
    the still image header, and the asset identifier from the XMP block.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_time=True)],
    )

    ffprobe_version = check_ffmpeg_tool("ffprobe")
    if verbose:
        console.print(f"[dim]ffprobe version: {ffprobe_version}[/dim]")

    input_path = Path(input_file)
    if not input_path.exists():
        raise FileNotFoundError(f"Input file does not exist: {input_file}")

    metadata = main(input_file)
    if metadata is None:
        stderr_console.print(f"[bold red]Failed:[/bold red] No readable video region in {input_file}")
        raise typer.Exit(code=EXIT_FAILURE)

    typer.echo(metadata.model_dump_json(indent=2))
