"""CLI command for encode."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from livephoto_suite.encode_live_photo.main import main
from livephoto_suite.models.metadata import EncodingFailure, StillImageFormat
from livephoto_suite.utils.cli import EXIT_FAILURE, cli_error_handler, stderr_console
from livephoto_suite.utils.dependencies import check_ffmpeg

console = Console(stderr=True)


@cli_error_handler
def encode_live_photo(
    image_file: str = typer.Argument(..., help="Path to the still image (JPEG, PNG, HEIC, ...)"),
    video_file: str = typer.Argument(..., help="Path to the paired video clip"),
    output: str = typer.Option(..., "--output", "-o", help="Path to the output live photo file"),
    asset_id: str = typer.Option("", "--asset-id", help="Asset identifier linking still and video (generated if omitted)"),
    main_frame_index: int = typer.Option(0, "--main-frame-index", min=0, help="Index of the video frame matching the still"),
    quality: int = typer.Option(95, "--quality", "-q", min=1, max=100, help="Still image quality (1-100, default: 95)"),
    image_format: StillImageFormat = typer.Option(StillImageFormat.HEIF, "--format", "-f", help="Still image codec: 'heif', 'jpeg' or 'webp'"),
    no_metadata: bool = typer.Option(False, "--no-metadata", help="Do not embed the XMP block linking still and video"),
    strip_exif: bool = typer.Option(False, "--strip-exif", help="Drop EXIF from the still image"),
    lut_name: Optional[str] = typer.Option(None, "--lut", help="Name of the grading LUT applied at capture"),
    overwrite: bool = typer.Option(False, "--overwrite", help="Overwrite output file if it exists"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """
    Package a still image and a video clip into a live photo container.

    The video is stream-copied with every track intact and tagged with the
    asset identifier; the still is re-encoded at the requested quality.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_time=True)],
    )

    ffmpeg_version = check_ffmpeg()
    if verbose:
        console.print(f"[dim]ffmpeg version: {ffmpeg_version}[/dim]")

    # Validate inputs
    for label, path in (("Image", image_file), ("Video", video_file)):
        if not Path(path).exists():
            raise FileNotFoundError(f"{label} file does not exist: {path}")
        if not Path(path).is_file():
            raise ValueError(f"{label} path is not a file: {path}")

    result = main(
        image_file=image_file,
        video_file=video_file,
        output_file=output,
        asset_identifier=asset_id,
        main_frame_index=main_frame_index,
        quality=quality,
        image_format=image_format.value,
        embed_metadata=not no_metadata,
        preserve_exif=not strip_exif,
        lut_name=lut_name,
        overwrite=overwrite,
    )

    if isinstance(result, EncodingFailure):
        stderr_console.print(f"[bold red]Failed:[/bold red] {result.reason}")
        raise typer.Exit(code=EXIT_FAILURE)

    console.print(f"\n[bold green]Success![/bold green] Live photo saved to: {result.output_file}")
