"""
GRACEFULSHUTDOWN - POSIX Signal Manager

Starts shutdown when the process receives SIGINT or SIGTERM and exits the
process once all shutdown callbacks have returned.
"""

import logging
import os
import signal
import threading
from typing import Callable, Dict, Optional

from gracefulshutdown.core.types import ShutdownManager, ShutdownTrigger

logger = logging.getLogger(__name__)

NAME = "PosixSignalManager"


class PosixSignalManager(ShutdownManager):
    """Shutdown manager triggered by POSIX signals."""

    name = NAME

    def __init__(
        self,
        *signals: signal.Signals,
        exit_code: Optional[int] = 0,
        exit_func: Callable[[int], None] = os._exit,
    ):
        """
        Initialize signal manager.

        Args:
            *signals: Signals to listen for (default SIGINT, SIGTERM)
            exit_code: Exit status after shutdown finishes (None = don't exit)
            exit_func: Function used to exit the process
        """
        self._signals = signals or (signal.SIGINT, signal.SIGTERM)
        self._exit_code = exit_code
        self._exit_func = exit_func
        self._trigger: Optional[ShutdownTrigger] = None
        self._previous_handlers: Dict[int, object] = {}

    def start(self, trigger: ShutdownTrigger) -> None:
        """
        Install signal handlers.

        Must be called from the main thread.
        """
        self._trigger = trigger
        for sig in self._signals:
            self._previous_handlers[sig] = signal.signal(sig, self._handle_signal)
        logger.debug(f"Listening for signals: {[signal.Signals(s).name for s in self._signals]}")

    def restore(self) -> None:
        """Restore the signal handlers that were installed before start()."""
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()

    def shutdown_start(self) -> None:
        pass

    def shutdown_finish(self) -> None:
        """Exit the process with the configured exit code."""
        if self._exit_code is None:
            return

        logger.info(f"Exiting with status {self._exit_code}")
        for handler in logging.getLogger().handlers:
            handler.flush()
        self._exit_func(self._exit_code)

    def _handle_signal(self, signum: int, frame) -> None:
        logger.info(f"Received {signal.Signals(signum).name}, initiating graceful shutdown...")
        # Signal handlers run on the main thread; don't block it for the whole shutdown
        threading.Thread(
            target=self._trigger.start_shutdown,
            args=(self,),
            name="signal-shutdown",
            daemon=True,
        ).start()
