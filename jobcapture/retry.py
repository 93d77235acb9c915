"""
Retry with exponential backoff for page fetches.

Only timeouts, dropped connections and retryable HTTP statuses are retried;
anything else propagates on the first attempt.
"""

import functools
import time
from typing import Callable, Optional, Tuple, Type

import requests

# Request Timeout, Too Many Requests, and the transient 5xx family
RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

TRANSIENT_REQUEST_ERRORS = (
    requests.exceptions.Timeout,
    requests.exceptions.ConnectionError,
)


class RetryError(Exception):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, message: str, attempts: int):
        self.attempts = attempts
        super().__init__(message)


class RetryableStatusError(Exception):
    """A response came back with a status worth retrying."""

    def __init__(self, status_code: int, url: str):
        self.status_code = status_code
        self.url = url
        super().__init__(f"HTTP {status_code} from {url}")


def should_retry_http_status(status_code: int) -> bool:
    return status_code in RETRYABLE_STATUS_CODES


def exponential_backoff(
    max_retries: int = 2,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = TRANSIENT_REQUEST_ERRORS + (RetryableStatusError,),
    on_retry: Optional[Callable] = None,
):
    """
    Decorator for retrying a fetch with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts (0 = no retries)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay between retries in seconds
        exponential_base: Multiplier applied to the delay after each attempt
        exceptions: Exception types that trigger a retry
        on_retry: Optional callback(attempt, exception, delay)

    Raises:
        RetryError: After the last attempt fails, chained to the final error
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            delay = base_delay
            attempts = max_retries + 1

            for attempt in range(1, attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == attempts:
                        raise RetryError(f"Failed after {attempts} attempts: {e}", attempts) from e

                    current_delay = min(delay, max_delay)
                    if on_retry:
                        on_retry(attempt, e, current_delay)
                    time.sleep(current_delay)
                    delay *= exponential_base

        return wrapper
    return decorator
