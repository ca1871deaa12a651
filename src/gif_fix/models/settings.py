"""Tunable settings for a conversion batch."""

from pydantic import BaseModel, Field

from gif_fix.models.media import FileFormat


class ConvertSettings(BaseModel):
    """Timeouts, sampling parameters and fallbacks used by the pipeline."""

    default_fps: float = Field(10.0, gt=0, description="Fallback frame rate when probing gives nothing usable")
    timeout_seconds: float = Field(30.0, gt=0, description="Backend timeout for non-HEIF inputs")
    heif_timeout_seconds: float = Field(60.0, gt=0, description="Backend timeout for HEIF inputs")
    sample_interval_ms: int = Field(33, gt=0, description="Frame sampling cadence in milliseconds")
    max_samples: int = Field(1000, gt=0, description="Hard cap on sampled frames per file")
    setup_timeout: float = Field(2.0, gt=0, description="Seconds allowed for playback setup on the decoder thread")
    sampling_timeout: float = Field(10.0, gt=0, description="Seconds allowed for sampling an animation")
    cleanup_timeout: float = Field(1.0, gt=0, description="Seconds allowed for playback teardown")
    collapse_duplicate_frames: bool = Field(True, description="Merge consecutive identical samples")
    poll_interval: float = Field(0.05, gt=0, description="Granularity of cancellable waits in seconds")

    def timeout_for(self, file_format: FileFormat) -> float:
        """HEIF sequences get the longer timeout."""
        if file_format == FileFormat.HEIF:
            return self.heif_timeout_seconds
        return self.timeout_seconds
