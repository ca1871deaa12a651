"""Classify an input file by its leading bytes."""

import logging
from pathlib import Path
from typing import Union

from gif_fix.models.media import FileFormat

HEADER_SIZE = 12
GIF_SIGNATURES = ("GIF87a", "GIF89a")
HEIF_BRANDS = ("ftypmsf1", "ftypheic")

logger = logging.getLogger(__name__)


def classify_header(header: bytes) -> FileFormat:
    """Classify up to 12 leading bytes. GIF wins over WebP, WebP over HEIF."""
    if len(header) < 6:
        return FileFormat.OTHER

    if header[:6].decode("ascii", errors="replace") in GIF_SIGNATURES:
        return FileFormat.STANDARD_GIF

    if len(header) < HEADER_SIZE:
        return FileFormat.OTHER

    if header[:4] == b"RIFF" and header[8:12] == b"WEBP":
        return FileFormat.WEBP

    header_str = header[:HEADER_SIZE].decode("ascii", errors="replace")
    if any(brand in header_str for brand in HEIF_BRANDS):
        return FileFormat.HEIF

    return FileFormat.OTHER


def detect_format(path: Union[str, Path]) -> FileFormat:
    """Detect the format of ``path``. Never raises; unreadable files are OTHER."""
    try:
        with open(path, "rb") as f:
            header = f.read(HEADER_SIZE)
    except OSError as e:
        logger.warning(f"Could not read header of {path}: {e}")
        return FileFormat.OTHER

    return classify_header(header)


def main(files: list[str]) -> dict[str, FileFormat]:
    return {f: detect_format(f) for f in files}
