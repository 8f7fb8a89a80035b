"""
GRACEFULSHUTDOWN - Backoff Policy

Jittered, linearly growing delays for retrying network operations.
"""

import random
import time
from typing import Callable

DEFAULT_BACKOFF = 0.5  # seconds


class BackoffPolicy:
    """
    Computes retry delays as base * (attempt + 1) * uniform(0.5, 1.5).

    The jitter keeps instances that retry at the same moment from
    hammering a peer in lockstep.
    """

    def __init__(
        self,
        base_delay: float = DEFAULT_BACKOFF,
        rand: Callable[[float, float], float] = random.uniform,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize backoff policy.

        Args:
            base_delay: Base delay in seconds
            rand: Uniform random source, injectable for tests
            sleep: Sleep function, injectable for tests
        """
        self.base_delay = base_delay
        self._rand = rand
        self._sleep = sleep

    def duration(self, attempt: int) -> float:
        """
        Delay to wait after the given (zero-based) failed attempt.

        Args:
            attempt: Zero-based attempt number

        Returns:
            Delay in seconds
        """
        return self.base_delay * (attempt + 1) * self._rand(0.5, 1.5)

    def wait(self, attempt: int) -> None:
        """Sleep for duration(attempt)."""
        self._sleep(self.duration(attempt))

    @staticmethod
    def attempts(max_retries: int) -> int:
        """Total number of attempts for a retry ceiling (never less than one)."""
        return max(max_retries, 0) + 1
