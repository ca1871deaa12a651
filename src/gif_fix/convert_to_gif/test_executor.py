"""Tests for timeout handling, outcome resolution and the ffmpeg session runner."""

import stat
import sys
import threading
import time
from pathlib import Path

import pytest

from gif_fix.convert_to_gif.backend import FFmpegBackend
from gif_fix.convert_to_gif.command import direct_pass_job
from gif_fix.convert_to_gif.executor import TranscodeExecutor, check_outcome
from gif_fix.errors import Cancelled, EngineFailure, EngineTimeout, OutputMissingOrEmpty, SynthesisFailure
from gif_fix.models.job import OutcomeKind
from gif_fix.models.media import FileFormat
from gif_fix.models.settings import ConvertSettings
from gif_fix.utils.cancellation import CancellationToken


class _Session:
    def __init__(self, return_code):
        self.return_code = return_code

    def all_logs_as_string(self):
        return "log"


class _Backend:
    decodes_animated_webp = False

    def __init__(self, return_code=0, write=True, delay=0.0, never=False):
        self.return_code = return_code
        self.write = write
        self.delay = delay
        self.never = never
        self.cancelled = []

    def execute_async(self, job, on_complete, on_log=None):
        if self.write:
            Path(job.output_path).write_bytes(b"GIF89a....")
        session = _Session(self.return_code)
        if not self.never:
            threading.Timer(self.delay, on_complete, args=(session,)).start()
        return session

    def cancel(self, session=None):
        self.cancelled.append(session)

    def clear_sessions(self):
        pass


def _job(tmp_path: Path):
    return direct_pass_job(tmp_path / "in.png", tmp_path / "out.gif", 10.0)


def test_empty_job_is_a_synthesis_failure():
    with pytest.raises(SynthesisFailure):
        TranscodeExecutor(_Backend()).run(None, timeout=1.0)


def test_success(tmp_path: Path):
    outcome = TranscodeExecutor(_Backend()).run(_job(tmp_path), timeout=2.0)
    assert outcome.kind == OutcomeKind.SUCCESS
    assert outcome.output_size == 10
    check_outcome(outcome)


def test_success_status_is_not_trusted_alone(tmp_path: Path):
    outcome = TranscodeExecutor(_Backend(write=False)).run(_job(tmp_path), timeout=2.0)
    assert outcome.kind == OutcomeKind.FAILURE
    with pytest.raises(OutputMissingOrEmpty):
        check_outcome(outcome)


def test_failure_status(tmp_path: Path):
    outcome = TranscodeExecutor(_Backend(return_code=1)).run(_job(tmp_path), timeout=2.0)
    assert outcome.kind == OutcomeKind.FAILURE
    assert outcome.return_code == 1
    with pytest.raises(EngineFailure):
        check_outcome(outcome)


def test_late_completion_is_salvaged(tmp_path: Path):
    backend = _Backend(delay=1.0)
    outcome = TranscodeExecutor(backend, poll_interval=0.01).run(_job(tmp_path), timeout=0.1)
    assert outcome.kind == OutcomeKind.TIMED_OUT_SALVAGED
    assert outcome.succeeded
    assert len(backend.cancelled) == 1


def test_timeout_without_output(tmp_path: Path):
    backend = _Backend(write=False, never=True)
    outcome = TranscodeExecutor(backend, poll_interval=0.01).run(_job(tmp_path), timeout=0.1)
    assert outcome.kind == OutcomeKind.TIMED_OUT_FAILED
    with pytest.raises(EngineTimeout):
        check_outcome(outcome)


def test_cancellation_aborts_the_wait(tmp_path: Path):
    token = CancellationToken()
    backend = _Backend(never=True)
    threading.Timer(0.05, token.set).start()
    start = time.monotonic()
    with pytest.raises(Cancelled):
        TranscodeExecutor(backend, token, poll_interval=0.01).run(_job(tmp_path), timeout=10.0)
    assert time.monotonic() - start < 2.0
    assert len(backend.cancelled) == 1


def test_backend_that_cannot_start(tmp_path: Path):
    class _Missing(_Backend):
        def execute_async(self, job, on_complete, on_log=None):
            raise FileNotFoundError("ffmpeg")

    with pytest.raises(EngineFailure):
        TranscodeExecutor(_Missing()).run(_job(tmp_path), timeout=1.0)


@pytest.mark.parametrize("file_format, expected", [
    (FileFormat.HEIF, 60.0),
    (FileFormat.WEBP, 30.0),
    (FileFormat.OTHER, 30.0),
])
def test_timeout_policy(file_format, expected):
    assert ConvertSettings().timeout_for(file_format) == expected


def _script(tmp_path: Path, body: str) -> str:
    path = tmp_path / "fake-ffmpeg"
    path.write_text(f"#!/bin/sh\n{body}\n")
    path.chmod(path.stat().st_mode | stat.S_IEXEC)
    return str(path)


@pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")
def test_session_collects_logs_and_return_code(tmp_path: Path):
    backend = FFmpegBackend(cmd=_script(tmp_path, 'echo "frame=1" >&2\necho "done" >&2\nexit 3'))
    lines = []
    done = threading.Event()
    session = backend.execute_async(_job(tmp_path), lambda s: done.set(), lines.append)
    assert done.wait(5.0)
    assert session.return_code == 3
    assert not session.succeeded
    assert lines == ["frame=1", "done"]
    assert session.all_logs_as_string() == "frame=1\ndone"


@pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")
def test_cancel_terminates_running_sessions(tmp_path: Path):
    backend = FFmpegBackend(cmd=_script(tmp_path, "exec sleep 30"))
    done = threading.Event()
    session = backend.execute_async(_job(tmp_path), lambda s: done.set())
    assert backend.sessions() == [session]

    backend.cancel()
    assert done.wait(5.0)
    assert session.cancelled
    assert not session.succeeded

    backend.clear_sessions()
    assert backend.sessions() == []


@pytest.mark.skipif(not Path("/proc/self/fd").is_dir(), reason="needs /proc to count descriptors")
def test_finished_sessions_release_their_pipes(tmp_path: Path):
    backend = FFmpegBackend(cmd=_script(tmp_path, 'echo "frame=1" >&2'))
    fd_dir = Path("/proc/self/fd")

    def run_once():
        done = threading.Event()
        backend.execute_async(_job(tmp_path), lambda s: done.set())
        assert done.wait(5.0)

    run_once()
    before = len(list(fd_dir.iterdir()))
    for _ in range(30):
        run_once()
    after = len(list(fd_dir.iterdir()))

    assert backend.sessions() == []
    assert after - before < 5
