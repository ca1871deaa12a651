"""Image builders shared by the test modules."""

from pathlib import Path
from typing import List, Tuple, Union

from PIL import Image

PALETTE: List[Tuple[int, int, int, int]] = [
    (255, 0, 0, 255),
    (0, 255, 0, 255),
    (0, 0, 255, 255),
    (255, 255, 0, 255),
    (0, 255, 255, 255),
    (255, 0, 255, 128),
]


def solid_frames(count: int, size: Tuple[int, int] = (16, 12)) -> List[Image.Image]:
    """Frames of distinct solid colours, cycling through PALETTE."""
    frames = []
    for i in range(count):
        r, g, b, a = PALETTE[i % len(PALETTE)]
        # keep frames distinct even when the palette wraps around
        frames.append(Image.new("RGBA", size, (r, g, (b + i * 7) % 256, a)))
    return frames


def write_animated_webp(path: Path, count: int, duration_ms: Union[int, List[int]] = 100, loop: int = 0) -> Path:
    frames = solid_frames(count)
    frames[0].save(
        path,
        format="WEBP",
        save_all=True,
        append_images=frames[1:],
        duration=duration_ms,
        loop=loop,
        lossless=True,
    )
    return path


def write_static_webp(path: Path, size: Tuple[int, int] = (16, 12)) -> Path:
    Image.new("RGBA", size, (10, 20, 30, 200)).save(path, format="WEBP", lossless=True)
    return path


