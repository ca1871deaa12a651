"""Pillow-backed animated image decoder with playback bound to a Looper.

The decoder only exposes what is needed to sample an animation in real time:
a drawable that reports whether it is animated, can be started and stopped,
notifies registered callbacks when playback starts and ends, and can draw its
current state onto an RGBA canvas. Everything except decoding must happen on
the looper thread the drawable was created for.
"""

import bisect
import itertools
import logging
import time
from pathlib import Path
from typing import List, Optional, Sequence, Union

from PIL import Image, ImageSequence, UnidentifiedImageError

from gif_fix.utils.looper import Looper

ALLOCATOR_SOFTWARE = "software"
ALLOCATOR_LAZY = "lazy"
REPEAT_INFINITE = -1
DEFAULT_FRAME_DURATION_MS = 100

logger = logging.getLogger(__name__)


class DecodeError(RuntimeError):
    """The file could not be decoded into a drawable."""


class AnimationCallback:
    """Override the hooks you care about."""

    def on_animation_start(self, drawable: "Drawable") -> None:
        pass

    def on_animation_end(self, drawable: "Drawable") -> None:
        pass


class Drawable:
    is_animated = False

    def __init__(self, size: tuple[int, int]) -> None:
        self.intrinsic_width = max(size[0], 1)
        self.intrinsic_height = max(size[1], 1)
        self._bounds = (self.intrinsic_width, self.intrinsic_height)

    def set_bounds(self, width: int, height: int) -> None:
        self._bounds = (max(width, 1), max(height, 1))

    def draw(self, canvas: Image.Image) -> None:
        """Composite the current state onto ``canvas``, keeping alpha."""
        frame = self._current_frame()
        if frame.size != self._bounds:
            frame = frame.resize(self._bounds, Image.Resampling.LANCZOS)
        canvas.alpha_composite(frame)

    def _current_frame(self) -> Image.Image:
        raise NotImplementedError


class BitmapDrawable(Drawable):
    """A still image."""

    def __init__(self, image: Image.Image) -> None:
        super().__init__(image.size)
        self._image = image

    def _current_frame(self) -> Image.Image:
        return self._image


class _LazyFrames(Sequence):
    """Frames decoded on demand from an open image."""

    def __init__(self, image: Image.Image, count: int) -> None:
        self._image = image
        self._count = count

    def __len__(self) -> int:
        return self._count

    def __getitem__(self, index):
        self._image.seek(index)
        return self._image.convert("RGBA")


class AnimatedImageDrawable(Drawable):
    """Plays a decoded frame list in real time on a looper."""

    is_animated = True

    def __init__(
        self,
        frames: Sequence[Image.Image],
        durations: List[int],
        size: tuple[int, int],
        looper: Looper,
        repeat_count: int = REPEAT_INFINITE,
    ) -> None:
        super().__init__(size)
        self._frames = frames
        self._durations = durations
        self._ends = list(itertools.accumulate(durations))
        self._looper = looper
        self._callbacks: List[AnimationCallback] = []
        self.repeat_count = repeat_count
        self._running = False
        self._finished = False
        self._started_at: Optional[float] = None
        self._stopped_at: Optional[float] = None

    @property
    def frame_count(self) -> int:
        return len(self._durations)

    @property
    def total_duration_ms(self) -> int:
        return self._ends[-1]

    def is_running(self) -> bool:
        return self._running

    def register_animation_callback(self, callback: AnimationCallback) -> None:
        self._check_thread()
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister_animation_callback(self, callback: AnimationCallback) -> bool:
        self._check_thread()
        if callback in self._callbacks:
            self._callbacks.remove(callback)
            return True
        return False

    def start(self) -> None:
        self._check_thread()
        if self._running:
            return
        self._running = True
        self._finished = False
        self._started_at = time.monotonic()
        self._stopped_at = None
        for callback in list(self._callbacks):
            self._looper.post(lambda cb=callback: cb.on_animation_start(self))
        if self.repeat_count != REPEAT_INFINITE:
            self._looper.post_delayed(self._finish, self.total_duration_ms * (self.repeat_count + 1))

    def stop(self) -> None:
        self._check_thread()
        if not self._running:
            return
        self._running = False
        self._stopped_at = time.monotonic()
        self._looper.remove_callbacks(self._finish)
        self._dispatch_end()

    def _finish(self) -> None:
        if not self._running:
            return
        self._running = False
        self._finished = True
        self._stopped_at = time.monotonic()
        self._dispatch_end()

    def _dispatch_end(self) -> None:
        for callback in list(self._callbacks):
            callback.on_animation_end(self)

    def current_frame_index(self) -> int:
        if self._started_at is None:
            return 0
        if self._finished:
            return self.frame_count - 1
        now = self._stopped_at if self._stopped_at is not None else time.monotonic()
        elapsed_ms = (now - self._started_at) * 1000.0
        if self.repeat_count != REPEAT_INFINITE and elapsed_ms >= self.total_duration_ms * (self.repeat_count + 1):
            return self.frame_count - 1
        position = elapsed_ms % self.total_duration_ms
        return min(bisect.bisect_right(self._ends, position), self.frame_count - 1)

    def draw(self, canvas: Image.Image) -> None:
        self._check_thread()
        super().draw(canvas)

    def _current_frame(self) -> Image.Image:
        return self._frames[self.current_frame_index()]

    def _check_thread(self) -> None:
        if not self._looper.is_current_thread():
            raise RuntimeError("Animated drawables must be used on their looper thread")


def decode_drawable(
    path: Union[str, Path],
    looper: Looper,
    allocator: str = ALLOCATOR_SOFTWARE,
) -> Drawable:
    """Decode ``path`` into a still or animated drawable.

    With the software allocator every frame is decoded up front into an owned
    RGBA image; the lazy allocator keeps the file open and decodes on draw.
    """
    try:
        image = Image.open(path)
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as e:
        raise DecodeError(f"Cannot decode {path}: {e}") from e

    try:
        if getattr(image, "n_frames", 1) <= 1:
            drawable: Drawable = BitmapDrawable(image.convert("RGBA"))
            image.close()
            return drawable

        frames: List[Image.Image] = []
        durations: List[int] = []
        for frame in ImageSequence.Iterator(image):
            rgba = frame.convert("RGBA")
            duration = frame.info.get("duration") or 0
            durations.append(int(duration) if duration > 0 else DEFAULT_FRAME_DURATION_MS)
            if allocator == ALLOCATOR_SOFTWARE:
                frames.append(rgba)
        loop = image.info.get("loop", 0)
        repeat_count = REPEAT_INFINITE if loop == 0 else max(int(loop) - 1, 0)
        logger.debug(f"Decoded {path}: {len(durations)} frames, {sum(durations)} ms, loop={loop}")

        if allocator == ALLOCATOR_SOFTWARE:
            size = image.size
            image.close()
            return AnimatedImageDrawable(frames, durations, size, looper, repeat_count)
        return AnimatedImageDrawable(_LazyFrames(image, len(durations)), durations, image.size, looper, repeat_count)
    except (OSError, SyntaxError, ValueError, EOFError) as e:
        image.close()
        raise DecodeError(f"Cannot decode {path}: {e}") from e
