"""Models describing input files and their probed stream metadata."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class FileFormat(str, Enum):
    """Container format detected from a file's leading bytes."""
    STANDARD_GIF = "standard_gif"
    HEIF = "heif"
    WEBP = "webp"
    OTHER = "other"


class StreamInfo(BaseModel):
    """A single stream descriptor as reported by ffprobe."""
    codec_type: Optional[str] = Field(None, description="Stream type tag (e.g. video, audio)")
    avg_frame_rate: Optional[str] = Field(None, description="Average frame rate as an N/D string")


class ProbeResult(BaseModel):
    """Stream metadata for one input file."""
    streams: List[StreamInfo] = Field(default_factory=list)

    def first_video_stream(self) -> Optional[StreamInfo]:
        return next((s for s in self.streams if s.codec_type == "video"), None)
