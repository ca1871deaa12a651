"""Console script for gif_fix."""

import typer

from gif_fix.convert_to_gif.cli import convert_to_gif
from gif_fix.detect_format.cli import detect_format

app = typer.Typer()

app.command("convert-to-gif")(convert_to_gif)
app.command("detect-format")(detect_format)


@app.command()
def version():
    """Display version information."""
    typer.echo("GIF Fix v0.1.0")
    raise typer.Exit()


if __name__ == "__main__":
    app()
