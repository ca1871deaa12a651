"""Tests for ffprobe wrapping and frame rate parsing; ffprobe is mocked."""

from unittest.mock import patch

import ffmpeg
import pytest

from gif_fix.models.media import ProbeResult, StreamInfo
from gif_fix.utils.video import parse_frame_rate, probe_media, resolve_fps


@pytest.mark.parametrize("value, expected", [
    ("30/1", 30.0),
    ("24000/1001", 24000 / 1001),
    ("10/0", 10.0),
    ("abc", 10.0),
    ("a/b", 10.0),
    ("1/2/3", 10.0),
    ("0/0", 10.0),
    (None, 10.0),
])
def test_parse_frame_rate(value, expected):
    assert parse_frame_rate(value) == pytest.approx(expected)


def test_parse_frame_rate_ntsc_is_close_to_23_976():
    assert parse_frame_rate("24000/1001") == pytest.approx(23.976, abs=1e-3)


def test_resolve_fps_uses_first_video_stream():
    probe = ProbeResult(streams=[
        StreamInfo(codec_type="audio", avg_frame_rate="0/0"),
        StreamInfo(codec_type="video", avg_frame_rate="25/1"),
        StreamInfo(codec_type="video", avg_frame_rate="50/1"),
    ])
    assert resolve_fps(probe) == 25.0


def test_resolve_fps_missing_stream():
    assert resolve_fps(ProbeResult(streams=[StreamInfo(codec_type="audio")])) == 10.0
    assert resolve_fps(None) == 10.0


def test_resolve_fps_missing_rate_defaults():
    assert resolve_fps(ProbeResult(streams=[StreamInfo(codec_type="video")])) == 10.0


def test_probe_media_parses_streams():
    fake = {"streams": [{"codec_type": "video", "avg_frame_rate": "15/1", "width": 10}], "format": {}}
    with patch("gif_fix.utils.video.ffmpeg.probe", return_value=fake):
        result = probe_media("x.webp")
    assert result is not None
    assert resolve_fps(result) == 15.0


def test_probe_media_returns_none_on_ffprobe_error():
    error = ffmpeg.Error("ffprobe", b"", b"Invalid data found when processing input")
    with patch("gif_fix.utils.video.ffmpeg.probe", side_effect=error):
        assert probe_media("broken.bin") is None


def test_probe_media_returns_none_without_ffprobe():
    with patch("gif_fix.utils.video.ffmpeg.probe", side_effect=FileNotFoundError("ffprobe")):
        assert probe_media("x.gif") is None
