"""A single thread that runs posted callbacks in order, optionally delayed.

Objects bound to a Looper (see ``utils.decoder``) may only be touched from its
thread. Other threads hand work over with ``post``/``post_delayed`` or block
on a bounded request with ``call``.
"""

import heapq
import itertools
import logging
import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, List, Tuple

logger = logging.getLogger(__name__)


class Looper:
    def __init__(self, name: str = "decoder-looper") -> None:
        self._queue: List[Tuple[float, int, Callable[[], Any]]] = []
        self._counter = itertools.count()
        self._cond = threading.Condition()
        self._running = False
        self._thread = threading.Thread(target=self._loop, name=name, daemon=True)

    def __enter__(self) -> "Looper":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.quit()

    def start(self) -> None:
        with self._cond:
            self._running = True
        self._thread.start()

    def quit(self, timeout: float = 1.0) -> None:
        """Stop the loop. Callbacks still queued are dropped."""
        with self._cond:
            self._running = False
            self._queue.clear()
            self._cond.notify_all()
        if self._thread.is_alive() and not self.is_current_thread():
            self._thread.join(timeout)

    def is_current_thread(self) -> bool:
        return threading.current_thread() is self._thread

    def post(self, callback: Callable[[], Any]) -> None:
        self.post_delayed(callback, 0)

    def post_delayed(self, callback: Callable[[], Any], delay_ms: float) -> None:
        when = time.monotonic() + delay_ms / 1000.0
        with self._cond:
            if not self._running:
                raise RuntimeError("Looper is not running")
            heapq.heappush(self._queue, (when, next(self._counter), callback))
            self._cond.notify_all()

    def remove_callbacks(self, callback: Callable[[], Any]) -> int:
        """Drop every pending occurrence of ``callback``. Returns how many were removed."""
        with self._cond:
            before = len(self._queue)
            self._queue = [entry for entry in self._queue if entry[2] != callback]
            heapq.heapify(self._queue)
            return before - len(self._queue)

    def call(self, fn: Callable[[], Any], timeout: float) -> Any:
        """Run ``fn`` on the looper thread and wait for its result.

        Raises TimeoutError if it does not finish within ``timeout`` seconds,
        and re-raises whatever ``fn`` raised.
        """
        if self.is_current_thread():
            return fn()

        future: Future = Future()

        def runner() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(fn())
            except BaseException as e:
                future.set_exception(e)

        self.post(runner)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            future.cancel()
            raise TimeoutError(f"Looper call did not complete within {timeout}s")

    def _loop(self) -> None:
        while True:
            with self._cond:
                while self._running and (not self._queue or self._queue[0][0] > time.monotonic()):
                    wait = None if not self._queue else self._queue[0][0] - time.monotonic()
                    self._cond.wait(wait)
                if not self._running:
                    return
                _, _, callback = heapq.heappop(self._queue)
            try:
                callback()
            except Exception:
                logger.exception("Uncaught error in looper callback")
