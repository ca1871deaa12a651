"""Tests for progress percentages and the rich progress sink."""

from rich.console import Console

from gif_fix.convert_to_gif.progress import RichProgressSink, progress_percent
from gif_fix.utils.cli import stderr_console


def test_progress_percent_is_clamped():
    assert progress_percent(1, 4) == 25
    assert progress_percent(4, 4) == 99
    assert progress_percent(0, 4) == 0
    assert progress_percent(1, 0) == 0


def test_sink_shares_the_logging_console():
    assert RichProgressSink().console is stderr_console


def test_summary_lines():
    console = Console(record=True, width=80)
    sink = RichProgressSink(console=console)
    sink.on_summary(had_success=True, had_failure=True)
    text = console.export_text()
    assert "GIF format fixed" in text
    assert "Some files could not be converted to GIF" in text
