"""
GRACEFULSHUTDOWN - Shutdown Orchestrator

Runs all shutdown callbacks when a shutdown manager requests shutdown,
while the manager keeps its trigger source informed that cleanup is
still in progress.
"""

import logging
import threading
from typing import Callable, List, Optional, Union

from gracefulshutdown.core.heartbeat import HeartbeatTicker
from gracefulshutdown.core.types import (
    ErrorFunc,
    ErrorHandler,
    ShutdownCallback,
    ShutdownFunc,
    ShutdownManager,
)

logger = logging.getLogger(__name__)

DEFAULT_PING_INTERVAL = 15 * 60.0  # seconds


class GracefulShutdown:
    """
    Coordinates shutdown callbacks and shutdown managers.

    Callbacks run concurrently, each on its own thread, and shutdown is
    finished only after every one of them has returned. Errors in one
    callback never prevent the others from running.

    Only one shutdown episode runs per instance: once start_shutdown has
    been called, further calls are ignored.
    """

    def __init__(self, ping_interval: float = DEFAULT_PING_INTERVAL):
        """
        Initialize graceful shutdown.

        Args:
            ping_interval: Seconds between manager pings during shutdown
        """
        self._ping_interval = ping_interval
        self._callbacks: List[ShutdownCallback] = []
        self._managers: List[ShutdownManager] = []
        self._error_handler: Optional[ErrorHandler] = None

        self._lock = threading.Lock()
        self._shutdown_started = False
        self._shutdown_finished = threading.Event()

    def add_shutdown_manager(self, manager: ShutdownManager) -> None:
        """
        Add a manager that will listen for shutdown requests.

        Args:
            manager: Shutdown manager, started in registration order
        """
        if manager is None:
            raise ValueError("manager must not be None")

        with self._lock:
            self._managers.append(manager)
        logger.debug(f"Registered shutdown manager: {manager.name}")

    def add_shutdown_callback(
        self, callback: Union[ShutdownCallback, Callable[[str], None]]
    ) -> None:
        """
        Add a callback that will be called when shutdown is requested.

        Args:
            callback: Object with on_shutdown(manager_name), or a plain
                function taking the manager name
        """
        if callback is None:
            raise ValueError("callback must not be None")

        if not hasattr(callback, "on_shutdown"):
            callback = ShutdownFunc(callback)

        with self._lock:
            self._callbacks.append(callback)
        logger.debug(f"Registered shutdown callback: {callback!r}")

    def set_error_handler(
        self, handler: Union[ErrorHandler, Callable[[Exception], None], None]
    ) -> None:
        """
        Set handler for errors from callbacks and managers.

        Args:
            handler: Object with on_error(error), a plain function, or None
        """
        if handler is not None and not hasattr(handler, "on_error"):
            handler = ErrorFunc(handler)
        self._error_handler = handler

    def start(self) -> None:
        """
        Start all managers in registration order.

        Raises:
            Exception: The first error raised by a manager. Managers after
                it are not started; managers before it stay started.
        """
        for manager in list(self._managers):
            manager.start(self)
            logger.info(f"Shutdown manager started: {manager.name}")

    def start_shutdown(self, manager: ShutdownManager) -> None:
        """
        Run a shutdown episode on behalf of a manager.

        Calls manager.shutdown_start(), pings the manager periodically while
        all callbacks run concurrently (if it overrides ping), and calls
        manager.shutdown_finish() once every callback has returned. Blocks
        until that is done.

        Args:
            manager: Manager that requested shutdown
        """
        with self._lock:
            if self._shutdown_started:
                logger.warning(f"Shutdown already in progress, ignoring request from {manager.name}")
                return
            self._shutdown_started = True
            callbacks = list(self._callbacks)

        logger.info(f"Shutdown requested by {manager.name}, running {len(callbacks)} callback(s)")

        self._call_manager(manager.shutdown_start)

        ticker = None
        if type(manager).ping is not ShutdownManager.ping:
            ticker = HeartbeatTicker(
                manager.ping,
                self._ping_interval,
                on_error=self.report_error,
                name=f"{manager.name}-ping",
            )
            ticker.start()

        try:
            self._run_callbacks(callbacks, manager.name)
        finally:
            if ticker is not None:
                ticker.stop()

        self._call_manager(manager.shutdown_finish)

        logger.info("Shutdown sequence complete")
        self._shutdown_finished.set()

    def report_error(self, error: Optional[Exception]) -> None:
        """
        Report an error to the error handler.

        Args:
            error: Error to report; None is ignored
        """
        if error is None:
            return

        logger.error(f"Shutdown error: {error}")

        handler = self._error_handler
        if handler is None:
            return

        try:
            handler.on_error(error)
        except Exception as e:
            logger.error(f"Error in error handler: {e}", exc_info=True)

    def is_shutdown_started(self) -> bool:
        """
        Check if a shutdown episode has started.

        Returns:
            True if start_shutdown was called
        """
        with self._lock:
            return self._shutdown_started

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the shutdown episode to finish.

        Args:
            timeout: Maximum time to wait in seconds (None = wait forever)

        Returns:
            True if shutdown finished, False if timeout occurred
        """
        return self._shutdown_finished.wait(timeout)

    def _call_manager(self, hook: Callable[[], None]) -> None:
        try:
            hook()
        except Exception as e:
            self.report_error(e)

    def _run_callbacks(self, callbacks: List[ShutdownCallback], manager_name: str) -> None:
        """Run every callback on its own thread and wait for all of them."""
        threads = []
        for index, callback in enumerate(callbacks):
            thread = threading.Thread(
                target=self._run_callback,
                args=(callback, manager_name),
                name=f"shutdown-callback-{index}",
                daemon=True,
            )
            threads.append(thread)
            thread.start()

        for thread in threads:
            thread.join()

    def _run_callback(self, callback: ShutdownCallback, manager_name: str) -> None:
        try:
            logger.debug(f"Running shutdown callback {callback!r}")
            callback.on_shutdown(manager_name)
        except Exception as e:
            self.report_error(e)
