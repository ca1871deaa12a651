"""Exceptions raised by the conversion pipeline.

Every per-item error carries the pipeline stage it was raised from so the
orchestrator can log it with context before turning it into a failure.
"""


class GifFixError(Exception):
    """Base class for pipeline errors."""

    stage = "unknown"


class InputMissing(GifFixError, FileNotFoundError):
    stage = "preflight"


class InputUnreadable(GifFixError, PermissionError):
    stage = "preflight"


class InputEmpty(GifFixError, ValueError):
    stage = "preflight"


class ProbeFailure(GifFixError, RuntimeError):
    stage = "probe"


class ExtractionFailure(GifFixError, RuntimeError):
    stage = "extract"


class SynthesisFailure(GifFixError, RuntimeError):
    stage = "synthesize"


class EngineFailure(GifFixError, RuntimeError):
    stage = "execute"


class OutputMissingOrEmpty(GifFixError, RuntimeError):
    stage = "execute"


class EngineTimeout(GifFixError, RuntimeError):
    stage = "execute"


class Cancelled(GifFixError):
    """The batch was aborted; never counted as a per-item failure."""
    stage = "cancelled"
