"""Cooperative cancellation shared between the CLI, the worker and the backend."""

import logging
import threading
import time
from typing import Callable, Optional, Protocol

from gif_fix.errors import Cancelled

logger = logging.getLogger(__name__)


class CancellationToken:
    """A flag that can be set once from any thread and never cleared."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def is_set(self) -> bool:
        return self._event.is_set()

    def set(self) -> None:
        self._event.set()

    def raise_if_set(self) -> None:
        if self._event.is_set():
            raise Cancelled("Batch was cancelled")


class Waitable(Protocol):
    def wait(self, timeout: Optional[float] = None) -> bool: ...


def wait_for(
    event: Waitable,
    timeout: float,
    token: Optional[CancellationToken] = None,
    poll_interval: float = 0.05,
) -> bool:
    """Wait up to ``timeout`` seconds for ``event``.

    Returns True if the event fired, False on timeout. Raises Cancelled as soon
    as the token is set, so a cancel request never waits out the full timeout.
    """
    deadline = time.monotonic() + timeout
    while True:
        if token is not None:
            token.raise_if_set()
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return event.wait(0)
        if event.wait(min(poll_interval, remaining)):
            return True


class CancellableBackend(Protocol):
    def cancel(self, session=None) -> None: ...

    def clear_sessions(self) -> None: ...


class CancellationController:
    """Turns a user's close/abort action into a batch-wide cancel.

    ``request_cancel`` is idempotent and becomes a no-op once the batch has
    finished.
    """

    def __init__(
        self,
        token: CancellationToken,
        backend: Optional[CancellableBackend] = None,
        interrupt: Optional[Callable[[], None]] = None,
    ) -> None:
        self.token = token
        self._backend = backend
        self._interrupt = interrupt
        self._lock = threading.Lock()
        self._closed = False

    def close(self) -> None:
        """Called by the orchestrator when the batch reaches a terminal state."""
        with self._lock:
            self._closed = True

    def request_cancel(self) -> bool:
        """Cancel the running batch. Returns True only for the call that did it."""
        with self._lock:
            if self._closed or self.token.is_set():
                return False
            self.token.set()

        logger.info("Cancellation requested")
        if self._backend is not None:
            try:
                self._backend.cancel()
                self._backend.clear_sessions()
            except Exception as e:
                logger.warning(f"Backend did not cancel cleanly: {e}")
        if self._interrupt is not None:
            self._interrupt()
        return True
