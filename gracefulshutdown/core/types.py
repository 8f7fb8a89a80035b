"""
GRACEFULSHUTDOWN - Core Types

Interfaces shared by the orchestrator, shutdown managers and callbacks.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional, Protocol, Union


class ShutdownCallback(Protocol):
    """Protocol for cleanup work run when shutdown is requested."""

    def on_shutdown(self, manager_name: str) -> None:
        """
        Run cleanup work.

        Args:
            manager_name: Name of the shutdown manager that requested shutdown

        Raises:
            Exception: Any error is reported to the error handler
        """
        ...


class ShutdownFunc:
    """Adapts a plain function to the ShutdownCallback protocol."""

    def __init__(self, func: Callable[[str], None]):
        self._func = func

    def on_shutdown(self, manager_name: str) -> None:
        self._func(manager_name)

    def __repr__(self) -> str:
        return f"ShutdownFunc({getattr(self._func, '__name__', self._func)!r})"


class ErrorHandler(Protocol):
    """Protocol for receiving asynchronous errors."""

    def on_error(self, error: Exception) -> None:
        ...


class ErrorFunc:
    """Adapts a plain function to the ErrorHandler protocol."""

    def __init__(self, func: Callable[[Exception], None]):
        self._func = func

    def on_error(self, error: Exception) -> None:
        self._func(error)


class ShutdownTrigger(Protocol):
    """
    Interface handed to shutdown managers in start().

    Managers call start_shutdown when they detect a termination request.
    """

    def start_shutdown(self, manager: "ShutdownManager") -> None:
        ...

    def report_error(self, error: Optional[Exception]) -> None:
        ...

    def add_shutdown_callback(
        self, callback: Union[ShutdownCallback, Callable[[str], None]]
    ) -> None:
        ...


class ShutdownManager(ABC):
    """
    Base class for shutdown trigger sources.

    Managers start listening for shutdown requests in start(). When they
    call start_shutdown on the trigger, shutdown_start() is called first,
    then all callbacks run, and once they return shutdown_finish() is called.
    """

    name: str = "ShutdownManager"

    @abstractmethod
    def start(self, trigger: ShutdownTrigger) -> None:
        """Start listening for shutdown requests."""
        pass

    @abstractmethod
    def shutdown_start(self) -> None:
        """Called before shutdown callbacks are run."""
        pass

    @abstractmethod
    def shutdown_finish(self) -> None:
        """Called after all shutdown callbacks have returned."""
        pass

    def ping(self) -> None:
        """
        Liveness signal sent periodically while callbacks run.

        Override to keep the trigger source informed. Managers that keep
        the default are not pinged.
        """
        pass
