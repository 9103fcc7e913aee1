"""Console script for livephoto_suite."""

import typer

from livephoto_suite.encode_live_photo.cli import encode_live_photo
from livephoto_suite.extract_metadata.cli import extract_metadata
from livephoto_suite.validate_live_photo.cli import validate_live_photo

app = typer.Typer()


@app.command()
def version():
    """Display version information."""
    typer.echo("Live Photo Suite v0.1.0")
    raise typer.Exit()


app.command("encode")(encode_live_photo)
app.command("validate")(validate_live_photo)
app.command("extract-metadata")(extract_metadata)


if __name__ == "__main__":
    app()
