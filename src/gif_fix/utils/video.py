import logging
from pathlib import Path
from typing import Optional, Union

import ffmpeg
from pydantic import ValidationError

from gif_fix.models.media import ProbeResult

DEFAULT_FPS = 10.0
DEFAULT_FRAME_RATE = "10/1"

logger: logging.Logger = logging.getLogger(__name__)


def probe_media(filename: Union[str, Path]) -> Optional[ProbeResult]:
    """Ask ffprobe for the streams of ``filename``.

    Returns None when ffprobe cannot analyze the file.
    """
    try:
        probe = ffmpeg.probe(str(filename))
    except ffmpeg.Error as e:
        stderr = e.stderr.decode(errors="ignore").strip() if e.stderr else "no output"
        logger.error(f"ffprobe failed for {filename}: {stderr}")
        return None
    except FileNotFoundError as e:
        logger.error(f"ffprobe is not available: {e}")
        return None

    try:
        result = ProbeResult.model_validate({"streams": probe.get("streams", [])})
    except ValidationError as e:
        logger.error(f"Unexpected ffprobe output for {filename}: {e}")
        return None

    logger.debug(f"Probed {filename}: {len(result.streams)} stream(s)")
    return result


def parse_frame_rate(fps_str: Optional[str], default: float = DEFAULT_FPS) -> float:
    """Turn an 'N/D' frame rate string into a float.

    Anything that is not two numbers with a nonzero denominator yields ``default``.
    """
    parts = (fps_str or DEFAULT_FRAME_RATE).split("/")
    if len(parts) != 2:
        return default
    try:
        num, denom = float(parts[0]), float(parts[1])
    except ValueError:
        return default
    if denom == 0:
        return default
    fps = num / denom
    # 0/0 style rates from ffprobe mean "unknown"
    return fps if fps > 0 else default


def resolve_fps(probe: Optional[ProbeResult], default: float = DEFAULT_FPS) -> float:
    """Frame rate of the first video stream, or ``default``."""
    if probe is None:
        return default
    stream = probe.first_video_stream()
    if stream is None:
        return default
    return parse_frame_rate(stream.avg_frame_rate, default)
