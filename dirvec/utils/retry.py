"""
Retry logic with exponential backoff and jitter.

Used for whole-request retries against the embedding provider.
"""

import random
import time
from typing import Callable, Tuple, Type

from .logger import get_logger

logger = get_logger("dirvec.utils.retry")


class RetryStrategy:
    """
    Configurable retry strategy for programmatic use.

    Usage:
        strategy = RetryStrategy(max_retries=5, base_delay=2.0)
        result = strategy.execute(risky_function, arg1, arg2)
    """

    def __init__(
        self,
        max_retries: int = 5,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
        exceptions: Tuple[Type[Exception], ...] = (Exception,),
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize retry strategy."""
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.exceptions = exceptions
        self._sleep = sleep

    def execute(self, func: Callable, *args, **kwargs):
        """
        Execute function with retry logic.

        Args:
            func: Function to execute.
            *args: Positional arguments.
            **kwargs: Keyword arguments.

        Returns:
            Function result.

        Raises:
            Last exception if all retries fail.
        """
        name = getattr(func, "__name__", repr(func))

        for attempt in range(self.max_retries + 1):
            try:
                return func(*args, **kwargs)
            except self.exceptions as e:
                if attempt == self.max_retries:
                    if self.max_retries:
                        logger.error(f"{name} failed after {self.max_retries} retries")
                    raise

                delay = self._calculate_delay(attempt)

                logger.warning(
                    f"{name} attempt {attempt + 1}/{self.max_retries} "
                    f"failed: {e}. Retrying in {delay:.2f}s"
                )
                self._sleep(delay)

        raise RuntimeError("Retry logic failed unexpectedly")

    def _calculate_delay(self, attempt: int) -> float:
        """Calculate delay for current attempt."""
        delay = min(
            self.base_delay * (self.exponential_base ** attempt),
            self.max_delay
        )

        if self.jitter:
            # delay * (0.5 to 1.5)
            delay = delay * (0.5 + random.random())

        return delay
