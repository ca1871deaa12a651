"""CLI command for convert-to-gif."""

import logging
from typing import List

import typer

from gif_fix.convert_to_gif.main import main
from gif_fix.models.settings import ConvertSettings
from gif_fix.utils.cli import (
    EXIT_CONVERSION_FAILED,
    EXIT_INTERRUPT,
    cli_error_handler,
    setup_logging,
    stderr_console,
)


@cli_error_handler
def convert_to_gif(
    input_files: List[str] = typer.Argument(..., help="Animated images to convert (GIF, WebP, HEIF, or anything ffmpeg reads)"),
    output_dir: str = typer.Option(".", "--output-dir", "-o", help="Folder that receives the converted GIFs"),
    fps: float = typer.Option(10.0, "--fps", envvar="GIF_FIX_DEFAULT_FPS", help="Fallback frame rate when none can be detected"),
    timeout: float = typer.Option(30.0, "--timeout", envvar="GIF_FIX_TIMEOUT", help="Seconds to wait for ffmpeg per file"),
    heif_timeout: float = typer.Option(60.0, "--heif-timeout", envvar="GIF_FIX_HEIF_TIMEOUT", help="Seconds to wait for ffmpeg per HEIF file"),
    sample_interval: int = typer.Option(33, "--sample-interval", envvar="GIF_FIX_SAMPLE_INTERVAL", help="Milliseconds between sampled frames of animated WebP"),
    max_samples: int = typer.Option(1000, "--max-samples", envvar="GIF_FIX_MAX_SAMPLES", help="Maximum number of sampled frames per animated WebP"),
    no_collapse: bool = typer.Option(False, "--no-collapse", help="Keep consecutive identical samples as separate frames"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """
    Convert animated images to standard GIF files.

    Standard GIFs are copied unchanged. Animated WebP files are sampled frame
    by frame and re-encoded with transparency; other formats are converted
    by ffmpeg directly. A file that fails does not stop the batch.
    """
    setup_logging(verbose)
    logger = logging.getLogger(__name__)

    settings = ConvertSettings(
        default_fps=fps,
        timeout_seconds=timeout,
        heif_timeout_seconds=heif_timeout,
        sample_interval_ms=sample_interval,
        max_samples=max_samples,
        collapse_duplicate_frames=not no_collapse,
    )

    logger.info(f"Converting {len(input_files)} file(s) into: {output_dir}")
    state = main(input_files, output_dir, settings)

    if state.cancelled:
        stderr_console.print("\n[bold yellow]Cancelled[/bold yellow]")
        raise typer.Exit(code=EXIT_INTERRUPT)

    stderr_console.print(
        f"\n[bold]Done:[/bold] [green]{state.success_count} converted[/green], "
        f"[red]{state.fail_count} failed[/red]"
    )
    if state.fail_count > 0:
        raise typer.Exit(code=EXIT_CONVERSION_FAILED)
