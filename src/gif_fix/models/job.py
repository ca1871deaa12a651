"""Models for transcoding jobs and their execution outcomes."""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class FilterSpec(BaseModel):
    """One filter in the processing chain, e.g. scale=iw:ih:flags=lanczos."""
    name: str
    args: List[Any] = Field(default_factory=list)
    kwargs: Dict[str, Any] = Field(default_factory=dict)

    def __str__(self) -> str:
        params = [str(a) for a in self.args] + [f"{k}={v}" for k, v in self.kwargs.items()]
        return f"{self.name}={':'.join(params)}" if params else self.name


class TranscodeJob(BaseModel):
    """Fully resolved description of one backend invocation."""
    source: str = Field(..., description="Input file path or image2 sequence pattern")
    source_kind: Literal["file", "sequence"] = "file"
    fps: float = Field(..., gt=0, description="Frame rate used for the sequence input or fps filter")
    filters: List[FilterSpec] = Field(default_factory=list)
    palette: bool = Field(False, description="Append palettegen/paletteuse with a reserved transparent entry")
    output_path: str
    codec: str = "gif"

    def describe(self) -> str:
        """Human readable filter chain, used in log messages."""
        chain = [str(f) for f in self.filters]
        if self.palette:
            chain.append("split[s0][s1];[s0]palettegen=reserve_transparent=1[p];[s1][p]paletteuse")
        return ",".join(chain) or "(none)"


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    TIMED_OUT_SALVAGED = "timed_out_salvaged"
    TIMED_OUT_FAILED = "timed_out_failed"


class ExecutionOutcome(BaseModel):
    """Result of running one job through the backend."""
    kind: OutcomeKind
    return_code: Optional[int] = None
    log: str = ""
    output_exists: bool = False
    output_size: int = 0

    @property
    def succeeded(self) -> bool:
        return self.kind in (OutcomeKind.SUCCESS, OutcomeKind.TIMED_OUT_SALVAGED)
