"""
GRACEFULSHUTDOWN - Heartbeat Ticker

Periodically invokes a liveness action while a shutdown is in progress.
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class HeartbeatTicker:
    """
    Runs an action immediately and then once per interval on a worker thread.

    A single worker runs the action serially, so invocations never overlap.
    After stop() no new invocation begins; one already running finishes.
    """

    def __init__(
        self,
        action: Callable[[], None],
        interval: float,
        on_error: Optional[Callable[[Exception], None]] = None,
        name: str = "heartbeat",
    ):
        """
        Initialize heartbeat ticker.

        Args:
            action: Zero-argument liveness action
            interval: Seconds between invocations
            on_error: Receives exceptions raised by action
            name: Worker thread name
        """
        if interval <= 0:
            raise ValueError("interval must be positive")

        self._action = action
        self._interval = interval
        self._on_error = on_error
        self._name = name

        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._invocations = 0

    @property
    def invocations(self) -> int:
        """Number of completed invocations."""
        with self._lock:
            return self._invocations

    def start(self) -> None:
        """Start the worker thread."""
        if self._thread is not None:
            return

        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        logger.debug(f"Heartbeat ticker '{self._name}' started ({self._interval}s interval)")

    def stop(self) -> None:
        """Request cancellation. Does not wait for an in-flight invocation."""
        self._stopped.set()
        logger.debug(f"Heartbeat ticker '{self._name}' stopped")

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the worker thread to exit."""
        if self._thread is not None:
            self._thread.join(timeout)

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        if self._stopped.is_set():
            return

        while True:
            try:
                self._action()
            except Exception as e:
                if self._on_error is not None:
                    self._on_error(e)
                else:
                    logger.error(f"Heartbeat '{self._name}' failed: {e}", exc_info=True)

            with self._lock:
                self._invocations += 1

            if self._stopped.wait(self._interval):
                break
