"""Progress and summary reporting for a batch."""

from typing import Optional, Protocol

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from gif_fix.utils.cli import stderr_console


def progress_percent(current: int, total: int) -> int:
    """Percentage shown while item ``current`` is running; 100 is reserved for completion."""
    if total <= 0:
        return 0
    return max(0, min(99, current * 100 // total))


class ProgressSink(Protocol):
    def on_progress(self, current: int, total: int, percent: int) -> None: ...

    def on_summary(self, had_success: bool, had_failure: bool) -> None: ...


class RichProgressSink:
    """Renders batch progress with a rich progress bar."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or stderr_console
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )
        self.task = self.progress.add_task("Preparing...", total=100)

    def __enter__(self) -> "RichProgressSink":
        self.progress.start()
        return self

    def __exit__(self, *exc) -> None:
        self.progress.stop()

    def on_progress(self, current: int, total: int, percent: int) -> None:
        description = f"Processing file {current} of {total}" if percent < 100 else "Fixing GIF format"
        self.progress.update(self.task, completed=percent, description=description)

    def on_summary(self, had_success: bool, had_failure: bool) -> None:
        if had_success:
            self.console.print("[bold green]GIF format fixed[/bold green]")
        if had_failure:
            self.console.print("[bold red]Some files could not be converted to GIF[/bold red]")
