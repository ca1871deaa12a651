#!/usr/bin/env python3
"""
Convert a batch of animated images (GIF, WebP, HEIF, anything ffmpeg reads) to standard GIF
"""

import functools
import logging
import tempfile
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from gif_fix.convert_to_gif.backend import FFmpegBackend
from gif_fix.convert_to_gif.command import plan_job
from gif_fix.convert_to_gif.executor import TranscodeBackend, TranscodeExecutor, check_outcome
from gif_fix.convert_to_gif.progress import ProgressSink, RichProgressSink, progress_percent
from gif_fix.detect_format.main import detect_format
from gif_fix.errors import Cancelled, GifFixError, ProbeFailure
from gif_fix.extract_frames.main import extract_frames, needs_frame_extraction
from gif_fix.models.batch import BatchPhase, BatchState, InputItem, ItemOutcome, ItemStatus
from gif_fix.models.media import FileFormat
from gif_fix.models.settings import ConvertSettings
from gif_fix.utils.cancellation import CancellationController, CancellationToken
from gif_fix.utils.dependencies import check_ffmpeg
from gif_fix.utils.files import check_input_file, copy_file, create_output_path
from gif_fix.utils.looper import Looper
from gif_fix.utils.video import probe_media, resolve_fps

logger = logging.getLogger(__name__)


def tally(outcomes: Iterable[ItemOutcome]) -> Tuple[int, int]:
    """(successes, failures); discarded items count towards neither."""
    success = fail = 0
    for outcome in outcomes:
        if outcome.status == ItemStatus.SUCCEEDED:
            success += 1
        elif outcome.status == ItemStatus.FAILED:
            fail += 1
    return success, fail


class BatchOrchestrator:
    """
    Runs every item through the pipeline, one at a time, on the calling thread.

    Per-item errors are turned into failures and never stop the batch. Setting
    the controller's token stops the batch before the next item starts; the
    item that was running is discarded and no summary is published.
    Instances are single-use.
    """

    def __init__(
        self,
        input_files: List[Union[str, Path]],
        output_dir: Union[str, Path],
        scratch_dir: Union[str, Path],
        *,
        backend: TranscodeBackend,
        looper: Looper,
        sink: ProgressSink,
        controller: Optional[CancellationController] = None,
        settings: Optional[ConvertSettings] = None,
    ) -> None:
        if not input_files:
            raise ValueError("No input files given")
        total = len(input_files)
        self.items = [InputItem(Path(p), index, total) for index, p in enumerate(input_files, start=1)]
        self.output_dir = Path(output_dir)
        self.scratch_dir = Path(scratch_dir)
        self.backend = backend
        self.looper = looper
        self.sink = sink
        self.controller = controller or CancellationController(CancellationToken(), backend)
        self.token = self.controller.token
        self.settings = settings or ConvertSettings()
        self.executor = TranscodeExecutor(backend, self.token, self.settings.poll_interval)
        self.state = BatchState(total=total)

    def run(self) -> BatchState:
        if self.state.phase != BatchPhase.IDLE:
            raise RuntimeError("A BatchOrchestrator can only run once")
        self.state.phase = BatchPhase.RUNNING

        try:
            for item in self.items:
                if self.token.is_set():
                    break
                self.state.current_index = item.index
                self.sink.on_progress(item.index, item.total, progress_percent(item.index, item.total))

                outcome = self.process_item(item)
                if self.token.is_set():
                    outcome.status = ItemStatus.DISCARDED
                self.state.outcomes.append(outcome)
                self.state.success_count, self.state.fail_count = tally(self.state.outcomes)
        finally:
            self.controller.close()

        if self.token.is_set():
            self.state.cancelled = True
            self.state.phase = BatchPhase.CANCELLED
            logger.info(f"Batch cancelled at file {self.state.current_index}/{self.state.total}")
            return self.state

        self.state.phase = BatchPhase.COMPLETED
        logger.info(
            f"Batch finished: {self.state.success_count} converted, {self.state.fail_count} failed "
            f"out of {self.state.total}"
        )
        self.sink.on_progress(self.state.total, self.state.total, 100)
        self.sink.on_summary(self.state.success_count > 0, self.state.fail_count > 0)
        return self.state

    def process_item(self, item: InputItem) -> ItemOutcome:
        """Run one item; errors end up in the returned outcome, never raised."""
        outcome = ItemOutcome(item=item, status=ItemStatus.FAILED)
        start = time.monotonic()
        try:
            self._convert(item, outcome)
        except Cancelled:
            logger.info(f"{item.tag}: Cancelled")
            outcome.status = ItemStatus.DISCARDED
            outcome.stage = Cancelled.stage
            return outcome
        except GifFixError as e:
            outcome.stage = e.stage
            outcome.error = str(e)
            fmt = outcome.file_format.value if outcome.file_format else "unknown"
            logger.error(f"{item.tag}: {type(e).__name__} at {e.stage} ({fmt}): {e}")
            return outcome
        except Exception as e:
            outcome.stage = outcome.stage or "unknown"
            outcome.error = str(e)
            logger.exception(f"{item.tag}: Unexpected error at {outcome.stage}: {e}")
            return outcome

        outcome.status = ItemStatus.SUCCEEDED
        logger.info(f"{item.tag}: Saved {outcome.destination} in {time.monotonic() - start:.1f}s")
        return outcome

    def _convert(self, item: InputItem, outcome: ItemOutcome) -> None:
        tag = item.tag
        logger.info(f"{tag}: Processing {item.path}")

        outcome.stage = "preflight"
        size = check_input_file(item.path)

        outcome.stage = "detect"
        file_format = detect_format(item.path)
        outcome.file_format = file_format
        logger.info(f"{tag}: Detected format: {file_format.value}, size: {size} bytes")

        if file_format == FileFormat.STANDARD_GIF:
            outcome.stage = "copy"
            outcome.destination = copy_file(item.path, create_output_path(self.output_dir, item.path.stem, "gif"))
            logger.info(f"{tag}: Already standard GIF, copied")
            return

        outcome.stage = "probe"
        probe = probe_media(item.path)
        if probe is None:
            raise ProbeFailure("Failed to get media information")
        fps = resolve_fps(probe, self.settings.default_fps)
        logger.info(f"{tag}: Detected fps: {fps:.3f}")

        outcome.stage = "extract"
        extract = None
        if needs_frame_extraction(file_format, item.path, self.backend):
            extract = functools.partial(
                extract_frames,
                item.path,
                self.scratch_dir,
                fps,
                self.looper,
                self.settings,
                self.token,
                tag,
            )
        intermediate = self.scratch_dir / f"gif_fix_output_{item.index}.gif"
        job = plan_job(file_format, item.path, intermediate, fps, extract, tag)

        outcome.stage = "execute"
        result = self.executor.run(job, self.settings.timeout_for(file_format), tag)
        check_outcome(result)

        self.token.raise_if_set()
        outcome.stage = "copy"
        destination = create_output_path(self.output_dir, item.path.stem, "gif")
        outcome.destination = copy_file(intermediate, destination, delete_source=True)
        logger.info(f"{tag}: Converted from {file_format.value} ({result.kind.value})")


def convert_batch(
    input_files: List[Union[str, Path]],
    output_dir: Union[str, Path],
    settings: Optional[ConvertSettings] = None,
    backend: Optional[TranscodeBackend] = None,
    sink: Optional[ProgressSink] = None,
) -> BatchState:
    """
    Run a batch on a dedicated worker thread.

    The calling thread only waits; Ctrl-C there cancels the batch.
    """
    if not input_files:
        raise ValueError("No input files given")
    backend = backend or FFmpegBackend()
    controller = CancellationController(CancellationToken(), backend)

    with Looper() as looper, tempfile.TemporaryDirectory(prefix="gif_fix_") as scratch_dir:
        orchestrator = BatchOrchestrator(
            input_files,
            output_dir,
            scratch_dir,
            backend=backend,
            looper=looper,
            sink=sink or RichProgressSink(),
            controller=controller,
            settings=settings,
        )
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="gif-fix-worker") as worker:
            future = worker.submit(orchestrator.run)
            while True:
                try:
                    return future.result(timeout=0.1)
                except FutureTimeoutError:
                    continue
                except KeyboardInterrupt:
                    controller.request_cancel()
                    return future.result()


def main(
    input_files: List[str],
    output_dir: str,
    settings: ConvertSettings,
) -> BatchState:
    """Entry point called from cli.py."""
    version = check_ffmpeg()
    logger.debug(f"ffmpeg version: {version}")

    with RichProgressSink() as sink:
        return convert_batch(input_files, output_dir, settings, sink=sink)
