"""Batch bookkeeping: input items, per-item outcomes and running counters."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from gif_fix.models.media import FileFormat


@dataclass(frozen=True)
class InputItem:
    """A file in the batch together with its 1-based position."""
    path: Path
    index: int
    total: int

    @property
    def tag(self) -> str:
        return f"File {self.index}/{self.total}"


class ItemStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    DISCARDED = "discarded"  # finished after cancellation, never counted


@dataclass
class ItemOutcome:
    item: InputItem
    status: ItemStatus
    file_format: Optional[FileFormat] = None
    stage: Optional[str] = None
    error: Optional[str] = None
    destination: Optional[Path] = None


class BatchPhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class BatchState:
    """Counters owned by the orchestrator's worker thread."""
    total: int
    success_count: int = 0
    fail_count: int = 0
    current_index: int = 0
    cancelled: bool = False
    phase: BatchPhase = BatchPhase.IDLE
    outcomes: list[ItemOutcome] = field(default_factory=list)
