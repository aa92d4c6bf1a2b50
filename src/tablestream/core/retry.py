"""Retry utilities with exponential backoff."""

from __future__ import annotations

import random
import time
from typing import Callable, TypeVar

import structlog

from tablestream.core.exceptions import RetryExhaustedError

logger = structlog.get_logger()

T = TypeVar("T")


def retry_with_backoff(
    func: Callable[[], T],
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    max_delay: float = 60.0,
    jitter: bool = True,
    exception_types: tuple[type[Exception], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Execute function with exponential backoff retry logic.

    Args:
        func: Function to execute
        max_attempts: Maximum attempts, including the first one
        initial_delay: Initial delay in seconds
        backoff_factor: Multiplier for delay after each attempt
        max_delay: Maximum delay between retries
        jitter: Whether to add random jitter to delay
        exception_types: Exception types to catch and retry
        sleep: Function used to wait between attempts

    Returns:
        Function result

    Raises:
        RetryExhaustedError: If all retry attempts exhausted
    """
    last_error: Exception | None = None
    delay = initial_delay

    for attempt in range(1, max_attempts + 1):
        try:
            return func()

        except exception_types as e:
            last_error = e
            logger.warning(
                "Attempt failed",
                attempt=attempt,
                max_attempts=max_attempts,
                error=str(e),
                error_class=type(e).__name__,
            )

            if attempt == max_attempts:
                break

            actual_delay = delay * (1 + random.random()) if jitter else delay
            actual_delay = min(actual_delay, max_delay)

            logger.debug(
                "Waiting before retry",
                delay_seconds=round(actual_delay, 3),
                attempt=attempt,
            )
            sleep(actual_delay)
            delay = min(delay * backoff_factor, max_delay)

    raise RetryExhaustedError(
        f"Function failed after {max_attempts} attempts",
        attempts=max_attempts,
        last_error=last_error,
    )


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        backoff_factor: float = 2.0,
        max_delay: float = 60.0,
        jitter: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.backoff_factor = backoff_factor
        self.max_delay = max_delay
        self.jitter = jitter
        self.sleep = sleep

