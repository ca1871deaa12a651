"""Pre-flight checks, output naming and copying."""

import logging
import os
import shutil
from pathlib import Path
from typing import Union

from gif_fix.errors import InputEmpty, InputMissing, InputUnreadable

logger = logging.getLogger(__name__)


def check_input_file(path: Union[str, Path]) -> int:
    """Make sure ``path`` is an existing, readable, non-empty file. Returns its size."""
    p = Path(path)
    if not p.exists():
        raise InputMissing(f"Input file does not exist: {path}")
    if not p.is_file() or not os.access(p, os.R_OK):
        raise InputUnreadable(f"Cannot read input file: {path}")
    size = p.stat().st_size
    if size == 0:
        raise InputEmpty(f"Input file is empty: {path}")
    return size


def create_output_path(output_dir: Union[str, Path], stem: str, extension: str) -> Path:
    """First free ``stem.ext`` / ``stem (n).ext`` in ``output_dir``."""
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    candidate = directory / f"{stem}.{extension}"
    counter = 1
    while candidate.exists():
        candidate = directory / f"{stem} ({counter}).{extension}"
        counter += 1
    return candidate


def copy_file(source: Union[str, Path], destination: Union[str, Path], delete_source: bool = False) -> Path:
    """Copy bytes to ``destination``, optionally removing ``source`` afterwards."""
    shutil.copyfile(source, destination)
    if delete_source:
        Path(source).unlink(missing_ok=True)
    logger.debug(f"Copied {source} -> {destination}")
    return Path(destination)
