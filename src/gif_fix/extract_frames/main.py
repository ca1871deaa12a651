#!/usr/bin/env python3
"""
Sample an animated image in real time into a numbered PNG sequence.

ffmpeg's native WebP decoder cannot read animation chunks, so animated WebP
files are played back through the drawable decoder on its looper thread and
rasterised at a fixed cadence. The worker thread drives the protocol through
three bounded hand-offs: setup, sampling, cleanup.
"""

import logging
import tempfile
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Tuple, Union

import numpy as np
from PIL import Image

from gif_fix.detect_format.main import detect_format
from gif_fix.errors import Cancelled, ExtractionFailure
from gif_fix.models.media import FileFormat
from gif_fix.models.settings import ConvertSettings
from gif_fix.utils.cancellation import CancellationToken, wait_for
from gif_fix.utils.decoder import (
    ALLOCATOR_SOFTWARE,
    AnimatedImageDrawable,
    AnimationCallback,
    DecodeError,
    Drawable,
    decode_drawable,
)
from gif_fix.utils.looper import Looper

FRAME_PATTERN = "%06d.png"

logger = logging.getLogger(__name__)


@dataclass
class ExtractedFrame:
    """A rasterised sample and the time since the previous sample."""
    image: Image.Image
    duration_ms: float


@dataclass(frozen=True)
class FrameSequence:
    """Frames persisted on disk as 000001.png, 000002.png, ..."""
    directory: Path
    count: int
    fps: float

    @property
    def source(self) -> str:
        return str(self.directory / FRAME_PATTERN)


class AnimationCapableBackend(Protocol):
    decodes_animated_webp: bool


def needs_frame_extraction(file_format: FileFormat, path: Union[str, Path], backend: AnimationCapableBackend) -> bool:
    """WebP goes through the sampler unless the backend can read animation chunks.

    The header is checked again so a file that stopped looking like WebP goes
    straight to the backend.
    """
    if file_format != FileFormat.WEBP or backend.decodes_animated_webp:
        return False
    actual = detect_format(path)
    if actual != FileFormat.WEBP:
        logger.warning(f"{path} no longer reads as WebP ({actual.value}), skipping frame extraction")
        return False
    return True


def rasterize(drawable: Drawable) -> Image.Image:
    """Draw the drawable's current state onto a transparent RGBA canvas."""
    size = (drawable.intrinsic_width, drawable.intrinsic_height)
    canvas = Image.new("RGBA", size, (0, 0, 0, 0))
    drawable.set_bounds(*size)
    drawable.draw(canvas)
    return canvas


class _SamplingSession(AnimationCallback):
    """State shared between the looper callbacks and the waiting worker."""

    def __init__(self, drawable: AnimatedImageDrawable, looper: Looper, settings: ConvertSettings, tag: str) -> None:
        self.drawable = drawable
        self.looper = looper
        self.settings = settings
        self.tag = tag
        self.done = threading.Event()
        self.registered = False
        self.ended = False
        self._frames: List[ExtractedFrame] = []
        self._lock = threading.Lock()
        self._last_sample = time.monotonic()

    def on_animation_start(self, drawable) -> None:
        logger.debug(f"{self.tag}: Animation started")

    def on_animation_end(self, drawable) -> None:
        logger.debug(f"{self.tag}: Animation ended after {len(self._frames)} samples")
        self.ended = True
        self.done.set()

    def setup(self) -> None:
        self.drawable.register_animation_callback(self)
        self.registered = True
        self.drawable.repeat_count = 0
        self.drawable.start()
        self.looper.post(self._tick)

    def _tick(self) -> None:
        if len(self._frames) < self.settings.max_samples and not self.ended:
            try:
                now = time.monotonic()
                duration_ms = (now - self._last_sample) * 1000.0
                self._last_sample = now
                image = rasterize(self.drawable)
                with self._lock:
                    self._frames.append(ExtractedFrame(image, duration_ms))
                self.looper.post_delayed(self._tick, self.settings.sample_interval_ms)
            except Exception as e:
                logger.warning(f"{self.tag}: Error sampling frame: {e}")
                self.ended = True
                self.done.set()
        else:
            if not self.ended:
                self.drawable.stop()
            self.done.set()

    def cleanup(self) -> None:
        self.looper.remove_callbacks(self._tick)
        if self.registered:
            self.drawable.unregister_animation_callback(self)
        if not self.ended:
            self.drawable.stop()

    def frames(self) -> List[ExtractedFrame]:
        with self._lock:
            return list(self._frames)


def sample_animation(
    drawable: AnimatedImageDrawable,
    looper: Looper,
    settings: ConvertSettings,
    token: Optional[CancellationToken] = None,
    tag: str = "",
) -> List[ExtractedFrame]:
    """Play ``drawable`` once on ``looper`` and collect timed samples."""
    session = _SamplingSession(drawable, looper, settings, tag)

    try:
        looper.call(session.setup, timeout=settings.setup_timeout)
    except TimeoutError:
        logger.error(f"{tag}: Animation setup did not finish within {settings.setup_timeout}s")
    except Exception as e:
        logger.error(f"{tag}: Failed to set up animation: {e}")

    try:
        if not session.registered:
            raise ExtractionFailure("Failed to register animation callback")

        finished = wait_for(session.done, settings.sampling_timeout, token, settings.poll_interval)
        if not finished:
            logger.warning(f"{tag}: Animation timeout after {settings.sampling_timeout}s, using extracted frames")
    finally:
        try:
            looper.call(session.cleanup, timeout=settings.cleanup_timeout)
        except Exception as e:
            logger.warning(f"{tag}: Error during cleanup: {e}")

    return session.frames()


def collapse_duplicates(frames: List[ExtractedFrame]) -> List[ExtractedFrame]:
    """Merge runs of pixel-identical samples, summing their durations."""
    collapsed: List[ExtractedFrame] = []
    previous: Optional[np.ndarray] = None
    for frame in frames:
        pixels = np.asarray(frame.image)
        if previous is not None and np.array_equal(pixels, previous):
            last = collapsed[-1]
            collapsed[-1] = ExtractedFrame(last.image, last.duration_ms + frame.duration_ms)
        else:
            collapsed.append(frame)
            previous = pixels
    return collapsed


def retime(frames: List[ExtractedFrame], fallback_fps: float) -> Tuple[List[ExtractedFrame], float]:
    """
    Map variable frame durations onto one constant frame rate.

    The base interval is the median measured duration. Each frame is repeated
    ``round(duration / base)`` times (at least once), so a frame held ten times
    longer than its neighbours stays on screen ten times longer at the
    returned fps. Without any positive duration the frames are kept as they
    are at ``fallback_fps``.
    """
    durations = [f.duration_ms for f in frames if f.duration_ms > 0]
    if not durations:
        return list(frames), fallback_fps
    base = float(np.median(durations))

    timed: List[ExtractedFrame] = []
    for frame in frames:
        repeats = max(1, int(round(frame.duration_ms / base)))
        timed.extend([ExtractedFrame(frame.image, base)] * repeats)
    return timed, 1000.0 / base


def write_frames(frames: List[ExtractedFrame], directory: Path) -> None:
    for index, frame in enumerate(frames, start=1):
        frame.image.save(directory / (FRAME_PATTERN % index), format="PNG")


def extract_frames(
    path: Union[str, Path],
    scratch_dir: Union[str, Path],
    fallback_fps: float,
    looper: Looper,
    settings: Optional[ConvertSettings] = None,
    token: Optional[CancellationToken] = None,
    tag: str = "",
) -> FrameSequence:
    """
    Turn an animated (or still) image into a PNG sequence plus a frame rate.

    Args:
        path: Image to decode
        scratch_dir: Directory in which a fresh frames folder is created
        fallback_fps: Frame rate used when no timing could be measured
        looper: Thread the decoder's playback is bound to
        settings: Sampling cadence, caps and timeouts
        token: Aborts the sampling wait when set

    Raises:
        ExtractionFailure: If decoding failed or no frame was collected
        Cancelled: If the token was set while waiting
    """
    settings = settings or ConvertSettings()
    try:
        drawable = decode_drawable(path, looper, allocator=ALLOCATOR_SOFTWARE)

        if isinstance(drawable, AnimatedImageDrawable):
            logger.info(f"{tag}: Extracting frames from animated image ({drawable.frame_count} frames)")
            frames = sample_animation(drawable, looper, settings, token, tag)
        else:
            logger.info(f"{tag}: Image is not animated, converting as single frame")
            frames = [ExtractedFrame(rasterize(drawable), 0.0)]

        logger.info(f"{tag}: Extracted {len(frames)} frames")
        if not frames:
            raise ExtractionFailure("No frames extracted")

        if settings.collapse_duplicate_frames:
            frames = collapse_duplicates(frames)

        directory = Path(tempfile.mkdtemp(prefix="webp_frames_", dir=scratch_dir))
        frames, fps = retime(frames, fallback_fps)
        write_frames(frames, directory)
    except (Cancelled, ExtractionFailure):
        raise
    except DecodeError as e:
        raise ExtractionFailure(str(e)) from e
    except Exception as e:
        raise ExtractionFailure(f"Frame extraction failed: {e}") from e

    logger.info(f"{tag}: Saved {len(frames)} frames to {directory}, calculated fps: {fps:.3f}")
    return FrameSequence(directory=directory, count=len(frames), fps=fps)
