"""Run a job with a deadline, salvaging output that lands after it."""

import logging
import threading
from pathlib import Path
from typing import Optional, Protocol

from gif_fix.errors import Cancelled, EngineFailure, EngineTimeout, OutputMissingOrEmpty, SynthesisFailure
from gif_fix.models.job import ExecutionOutcome, OutcomeKind, TranscodeJob
from gif_fix.utils.cancellation import CancellationToken, wait_for

logger = logging.getLogger(__name__)


class TranscodeBackend(Protocol):
    decodes_animated_webp: bool

    def execute_async(self, job, on_complete, on_log=None): ...

    def cancel(self, session=None) -> None: ...

    def clear_sessions(self) -> None: ...


def output_facts(path: str) -> tuple[bool, int]:
    p = Path(path)
    if not p.is_file():
        return False, 0
    return True, p.stat().st_size


class TranscodeExecutor:
    def __init__(
        self,
        backend: TranscodeBackend,
        token: Optional[CancellationToken] = None,
        poll_interval: float = 0.05,
    ) -> None:
        self.backend = backend
        self.token = token
        self.poll_interval = poll_interval

    def run(self, job: Optional[TranscodeJob], timeout: float, tag: str = "") -> ExecutionOutcome:
        """
        Submit ``job`` and wait up to ``timeout`` seconds for it to finish.

        A success status only counts when the output file exists and is not
        empty. If the deadline passes, the session is cancelled and the output
        is checked once more: a complete file written late is still accepted.

        Raises:
            SynthesisFailure: If there is no job to run
            EngineFailure: If the backend could not be started
            Cancelled: If the token is set while waiting
        """
        if job is None or not job.source or not job.output_path:
            raise SynthesisFailure(f"{tag}: Transcode job is empty")

        completed = threading.Event()

        def on_complete(session) -> None:
            completed.set()

        def on_log(line: str) -> None:
            logger.debug(f"{tag}: ffmpeg: {line}")

        try:
            session = self.backend.execute_async(job, on_complete, on_log)
        except OSError as e:
            raise EngineFailure(f"Could not start ffmpeg: {e}") from e

        logger.debug(f"{tag}: Waiting for ffmpeg (timeout: {timeout}s)")
        try:
            signalled = wait_for(completed, timeout, self.token, self.poll_interval)
        except Cancelled:
            self.backend.cancel(session)
            raise

        if signalled:
            return self._resolve(session, job, tag)

        logger.warning(f"{tag}: Conversion timeout after {timeout}s")
        self.backend.cancel(session)
        exists, size = output_facts(job.output_path)
        log = session.all_logs_as_string()
        if exists and size > 0:
            logger.info(f"{tag}: Output file exists despite timeout ({size} bytes), using it")
            return ExecutionOutcome(kind=OutcomeKind.TIMED_OUT_SALVAGED, log=log, output_exists=True, output_size=size)
        return ExecutionOutcome(kind=OutcomeKind.TIMED_OUT_FAILED, log=log, output_exists=exists, output_size=size)

    def _resolve(self, session, job: TranscodeJob, tag: str) -> ExecutionOutcome:
        exists, size = output_facts(job.output_path)
        outcome = ExecutionOutcome(
            kind=OutcomeKind.FAILURE,
            return_code=session.return_code,
            log=session.all_logs_as_string(),
            output_exists=exists,
            output_size=size,
        )
        if session.return_code == 0 and exists and size > 0:
            outcome.kind = OutcomeKind.SUCCESS
        elif session.return_code == 0:
            logger.error(f"{tag}: ffmpeg reported success but output is missing or empty: {job.output_path}")
        else:
            logger.error(f"{tag}: ffmpeg failed with return code {session.return_code}\n{outcome.log}")
        return outcome


def check_outcome(outcome: ExecutionOutcome) -> None:
    """Raise the matching pipeline error for an unsuccessful outcome."""
    if outcome.succeeded:
        return
    if outcome.kind == OutcomeKind.TIMED_OUT_FAILED:
        raise EngineTimeout("No completion signal before the deadline and no usable output")
    if outcome.return_code == 0:
        raise OutputMissingOrEmpty("ffmpeg reported success but produced no output")
    raise EngineFailure(f"ffmpeg exited with return code {outcome.return_code}")
