"""Build the ffmpeg job for each input format."""

import logging
from pathlib import Path
from typing import Callable, Optional, Union

from gif_fix.errors import ExtractionFailure
from gif_fix.extract_frames.main import FrameSequence
from gif_fix.models.job import FilterSpec, TranscodeJob
from gif_fix.models.media import FileFormat

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _lanczos_scale() -> FilterSpec:
    return FilterSpec(name="scale", args=["iw", "ih"], kwargs={"flags": "lanczos"})


def direct_pass_job(input_path: PathLike, output_path: PathLike, fps: float, palette: bool = False) -> TranscodeJob:
    """Let ffmpeg decode the original file: resample to ``fps``, Lanczos scale."""
    return TranscodeJob(
        source=str(input_path),
        source_kind="file",
        fps=fps,
        filters=[FilterSpec(name="fps", kwargs={"fps": fps}), _lanczos_scale()],
        palette=palette,
        output_path=str(output_path),
    )


def frame_sequence_job(frames: FrameSequence, output_path: PathLike) -> TranscodeJob:
    """Encode extracted PNGs at their measured rate, keeping transparency through quantisation."""
    return TranscodeJob(
        source=frames.source,
        source_kind="sequence",
        fps=frames.fps,
        palette=True,
        output_path=str(output_path),
    )


def synthesize_job(
    file_format: FileFormat,
    input_path: PathLike,
    output_path: PathLike,
    probed_fps: float,
    frames: Optional[FrameSequence] = None,
) -> Optional[TranscodeJob]:
    """
    Pick the job for a detected format.

    Returns None for standard GIFs, which are copied as-is instead.
    Extracted frames take precedence over the probed frame rate.
    """
    if file_format == FileFormat.STANDARD_GIF:
        return None
    if file_format == FileFormat.WEBP and frames is not None:
        return frame_sequence_job(frames, output_path)
    if file_format == FileFormat.HEIF:
        # HEIF sequences may carry alpha
        return direct_pass_job(input_path, output_path, probed_fps, palette=True)
    return direct_pass_job(input_path, output_path, probed_fps)


def plan_job(
    file_format: FileFormat,
    input_path: PathLike,
    output_path: PathLike,
    probed_fps: float,
    extract: Optional[Callable[[], FrameSequence]] = None,
    tag: str = "",
) -> Optional[TranscodeJob]:
    """Run ``extract`` when given, falling back to the direct-pass job if it fails."""
    frames = None
    if extract is not None:
        try:
            frames = extract()
        except ExtractionFailure as e:
            logger.warning(f"{tag}: Failed to extract frames ({e}), falling back to direct ffmpeg conversion")

    job = synthesize_job(file_format, input_path, output_path, probed_fps, frames)
    if job is not None:
        logger.debug(f"{tag}: Job source={job.source} fps={job.fps:.3f} filters={job.describe()}")
    return job
