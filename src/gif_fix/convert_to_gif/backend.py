"""Asynchronous ffmpeg sessions built with ffmpeg-python."""

import itertools
import logging
import threading
from typing import Callable, Dict, List, Optional

import ffmpeg

from gif_fix.models.job import TranscodeJob

logger = logging.getLogger(__name__)

CompleteCallback = Callable[["Session"], None]
LogCallback = Callable[[str], None]


def build_stream(job: TranscodeJob):
    """Translate a job into an ffmpeg-python output stream."""
    input_kwargs = {}
    if job.source_kind == "sequence":
        input_kwargs = {"f": "image2", "framerate": job.fps}
    stream = ffmpeg.input(job.source, **input_kwargs)

    for spec in job.filters:
        stream = stream.filter(spec.name, *spec.args, **spec.kwargs)

    if job.palette:
        split = stream.filter_multi_output("split")
        palette = split.stream(0).filter("palettegen", reserve_transparent=1)
        stream = ffmpeg.filter([split.stream(1), palette], "paletteuse")

    return (
        ffmpeg.output(stream, job.output_path, vcodec=job.codec, an=None)
        .global_args("-hide_banner", "-nostdin")
        .overwrite_output()
    )


class Session:
    """One ffmpeg run: its command line, process, log lines and return code."""

    _ids = itertools.count(1)

    def __init__(self, job: TranscodeJob, args: List[str]) -> None:
        self.session_id = next(Session._ids)
        self.job = job
        self.args = args
        self.process = None
        self.return_code: Optional[int] = None
        self.logs: List[str] = []
        self.cancelled = False

    @property
    def succeeded(self) -> bool:
        return self.return_code == 0 and not self.cancelled

    def all_logs_as_string(self) -> str:
        return "\n".join(self.logs)


class FFmpegBackend:
    """Runs jobs in ffmpeg subprocesses and reports back through callbacks."""

    # ffmpeg's webp decoder ignores ANIM/ANMF chunks
    decodes_animated_webp = False

    def __init__(self, cmd: str = "ffmpeg") -> None:
        self.cmd = cmd
        self._sessions: Dict[int, Session] = {}
        self._lock = threading.Lock()

    def compile(self, job: TranscodeJob) -> List[str]:
        return build_stream(job).compile(cmd=self.cmd)

    def execute_async(
        self,
        job: TranscodeJob,
        on_complete: CompleteCallback,
        on_log: Optional[LogCallback] = None,
    ) -> Session:
        """Start ffmpeg and return immediately.

        ``on_complete`` fires once from a watcher thread after ffmpeg exits.
        """
        stream = build_stream(job)
        session = Session(job, stream.compile(cmd=self.cmd))
        logger.debug(f"Session {session.session_id}: {' '.join(session.args)}")
        session.process = stream.run_async(cmd=self.cmd, pipe_stderr=True)
        with self._lock:
            self._sessions[session.session_id] = session

        watcher = threading.Thread(
            target=self._watch,
            args=(session, on_complete, on_log),
            name=f"ffmpeg-session-{session.session_id}",
            daemon=True,
        )
        watcher.start()
        return session

    def _watch(self, session: Session, on_complete: CompleteCallback, on_log: Optional[LogCallback]) -> None:
        try:
            for lineb in iter(session.process.stderr.readline, b""):
                line = lineb.decode("utf-8", errors="ignore").rstrip()
                session.logs.append(line)
                if on_log is not None:
                    on_log(line)
        finally:
            session.process.stderr.close()
        session.return_code = session.process.wait()
        with self._lock:
            self._sessions.pop(session.session_id, None)
        try:
            on_complete(session)
        except Exception:
            logger.exception(f"Session {session.session_id}: completion callback failed")

    def cancel(self, session: Optional[Session] = None) -> None:
        """Stop one session, or every running session when none is given."""
        with self._lock:
            targets = [session] if session is not None else list(self._sessions.values())
        for target in targets:
            if target.process is not None and target.process.poll() is None:
                logger.debug(f"Session {target.session_id}: cancelling")
                target.cancelled = True
                target.process.terminate()

    def clear_sessions(self) -> None:
        with self._lock:
            self._sessions.clear()

    def sessions(self) -> List[Session]:
        """Sessions whose ffmpeg process has not finished yet."""
        with self._lock:
            return list(self._sessions.values())
