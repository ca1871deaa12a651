"""Tests for input checks and output file handling."""

import os
import sys
from pathlib import Path

import pytest

from gif_fix.errors import InputEmpty, InputMissing, InputUnreadable
from gif_fix.utils.files import check_input_file, copy_file, create_output_path


def test_check_input_file_ok(tmp_path: Path):
    f = tmp_path / "a.gif"
    f.write_bytes(b"GIF89a")
    assert check_input_file(f) == 6


def test_check_input_file_missing(tmp_path: Path):
    with pytest.raises(InputMissing):
        check_input_file(tmp_path / "missing.gif")


def test_check_input_file_empty(tmp_path: Path):
    f = tmp_path / "empty.gif"
    f.touch()
    with pytest.raises(InputEmpty):
        check_input_file(f)


def test_check_input_file_directory(tmp_path: Path):
    with pytest.raises(InputUnreadable):
        check_input_file(tmp_path)


@pytest.mark.skipif(sys.platform == "win32" or os.geteuid() == 0, reason="root can read anything")
def test_check_input_file_unreadable(tmp_path: Path):
    f = tmp_path / "secret.gif"
    f.write_bytes(b"GIF89a")
    f.chmod(0)
    try:
        with pytest.raises(InputUnreadable):
            check_input_file(f)
    finally:
        f.chmod(0o644)


def test_create_output_path_never_overwrites(tmp_path: Path):
    first = create_output_path(tmp_path / "out", "cat", "gif")
    assert first == tmp_path / "out" / "cat.gif"
    first.write_bytes(b"x")
    second = create_output_path(tmp_path / "out", "cat", "gif")
    assert second.name == "cat (1).gif"


def test_copy_file(tmp_path: Path):
    src = tmp_path / "src.gif"
    src.write_bytes(b"GIF89a-data")
    dest = copy_file(src, tmp_path / "dest.gif")
    assert dest.read_bytes() == b"GIF89a-data"
    assert src.exists()


def test_move_file(tmp_path: Path):
    src = tmp_path / "src.gif"
    src.write_bytes(b"GIF89a-data")
    copy_file(src, tmp_path / "dest.gif", delete_source=True)
    assert not src.exists()
