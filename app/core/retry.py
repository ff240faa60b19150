"""
Bounded retry with exponential backoff.

Used where the backend is expected to catch up shortly, e.g. a profile row
created by the sign-up trigger that is not visible yet at first login.
"""

import logging
import random
import time
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """Exponential backoff with a delay ceiling and a fixed number of attempts."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        max_delay: float = 4.0,
        exponential_base: float = 2.0,
        jitter: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self._sleep = sleep

    def calculate_delay(self, attempt: int) -> float:
        """Delay before the attempt following ``attempt`` (0-based)."""
        delay = min(self.base_delay * (self.exponential_base ** attempt), self.max_delay)
        if self.jitter:
            delay += random.uniform(-delay * 0.25, delay * 0.25)
        return max(0.0, delay)

    def run_until(
        self,
        operation: Callable[[], Optional[T]],
        description: str = "operation",
    ) -> Optional[T]:
        """Call ``operation`` until it returns a non-None value or attempts run out.

        Exceptions propagate immediately; only an empty (None) result is retried.
        """
        for attempt in range(self.max_attempts):
            result = operation()
            if result is not None:
                return result
            if attempt + 1 < self.max_attempts:
                delay = self.calculate_delay(attempt)
                logger.debug(f"{description}: attempt {attempt + 1}/{self.max_attempts} empty, retrying in {delay:.2f}s")
                self._sleep(delay)
        logger.info(f"{description}: no result after {self.max_attempts} attempts")
        return None
