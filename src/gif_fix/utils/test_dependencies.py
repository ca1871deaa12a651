"""Tests for external tool checks; subprocess is mocked."""

import subprocess
from unittest.mock import patch

import pytest

from gif_fix.utils.dependencies import check_ffmpeg, parse_ffmpeg_version


def _completed(stdout: str) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=["ffmpeg"], returncode=0, stdout=stdout, stderr="")


@pytest.mark.parametrize("output, expected", [
    ("ffmpeg version 6.1.1-3ubuntu5 Copyright (c) 2000-2023", "6.1.1"),
    ("ffmpeg version n7.0 Copyright (c) 2000-2024", "7.0"),
    ("ffmpeg version N-113176-gdeadbeef Copyright", None),
])
def test_parse_ffmpeg_version(output, expected):
    assert parse_ffmpeg_version(output) == expected


def test_check_ffmpeg_ok():
    with patch("gif_fix.utils.dependencies.subprocess.run", return_value=_completed("ffmpeg version 6.0 x")):
        assert check_ffmpeg() == "6.0"


def test_check_ffmpeg_too_old():
    with patch("gif_fix.utils.dependencies.subprocess.run", return_value=_completed("ffmpeg version 3.4.8 x")):
        with pytest.raises(RuntimeError, match="not supported"):
            check_ffmpeg()


def test_check_ffmpeg_missing():
    with patch("gif_fix.utils.dependencies.subprocess.run", side_effect=FileNotFoundError):
        with pytest.raises(RuntimeError, match="not found"):
            check_ffmpeg()


def test_check_ffmpeg_git_build():
    with patch("gif_fix.utils.dependencies.subprocess.run", return_value=_completed("ffmpeg version N-1-gabc x")):
        assert check_ffmpeg() == "unknown"
