"""Error taxonomy and retry helpers for story retrieval.

Key Components:
- Exception classes for remote fetch failures and search aborts
- Async retry decorator with exponential backoff for transient failures
- ErrorContext for timing and logging a block of work

Nothing here swallows errors. Retries only cover failures that are
likely to go away on their own (transport errors, 429 and 5xx); once
the retries are spent the original error propagates unchanged.
"""

import asyncio
import logging
import time
from functools import wraps
from typing import Any, Callable, Optional

from src.utils.config import get_settings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class StoryRetrievalError(Exception):
    """Base exception for story retrieval failures."""

    def __init__(self, message: str, **context):
        """Initialize with a message and free-form context.

        Args:
            message: Error message
            **context: Additional context information
        """
        super().__init__(message)
        self.context = context
        self.timestamp = time.time()


class RemoteFetchError(StoryRetrievalError):
    """A lookup against the remote API did not succeed.

    ``status_code`` is the HTTP status for protocol-level failures and
    ``None`` when the request never got a response (connection error,
    timeout).
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        item_id: Optional[int] = None,
        **context,
    ):
        super().__init__(message, **context)
        self.status_code = status_code
        self.url = url
        self.item_id = item_id

    def __str__(self):
        base = super().__str__()
        if self.status_code is not None:
            return f"{base} (status {self.status_code})"
        return base

    @property
    def is_transient(self) -> bool:
        """True when retrying the same request may succeed."""
        return self.status_code is None or self.status_code in RETRYABLE_STATUS_CODES


class InvalidResponseError(StoryRetrievalError):
    """The remote API answered with a payload of the wrong shape."""

    def __init__(self, message: str, url: Optional[str] = None, **context):
        super().__init__(message, **context)
        self.url = url


class SearchTimeoutError(StoryRetrievalError):
    """The whole search did not finish before its deadline."""

    def __init__(self, message: str, deadline: float, **context):
        super().__init__(message, **context)
        self.deadline = deadline


def retry_with_backoff(
    max_retries: Optional[int] = None,
    initial_delay: Optional[float] = None,
    backoff_factor: float = 2.0,
):
    """Decorator retrying an async call on transient RemoteFetchError.

    Defaults are read from the ``settings`` keyword argument of the
    decorated call when it has one, otherwise from the global settings.

    Args:
        max_retries: Retry attempts after the first call (FETCH_MAX_RETRIES if None)
        initial_delay: Delay before the first retry (FETCH_RETRY_DELAY if None)
        backoff_factor: Multiplier applied to the delay after each retry

    Returns:
        Decorated coroutine function

    Example:
        @retry_with_backoff(max_retries=3, initial_delay=0.1)
        async def get_item(client, item_id):
            ...
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            settings = kwargs.get("settings") or get_settings()
            retries = max_retries if max_retries is not None else settings.FETCH_MAX_RETRIES
            delay = initial_delay if initial_delay is not None else settings.FETCH_RETRY_DELAY

            for attempt in range(retries + 1):
                try:
                    return await func(*args, **kwargs)
                except RemoteFetchError as e:
                    if not e.is_transient or attempt == retries:
                        raise
                    logger.warning(
                        "Attempt %d/%d of %s failed: %s. Retrying in %.2fs...",
                        attempt + 1,
                        retries + 1,
                        func.__name__,
                        e,
                        delay,
                    )
                    await asyncio.sleep(delay)
                    delay *= backoff_factor

        return wrapper

    return decorator


class ErrorContext:
    """Context manager that logs how long a block took and whether it failed.

    Usage:
        with ErrorContext("phase_a", candidates=500) as ctx:
            ...
            ctx.add_info("batches", 3)
    """

    def __init__(self, operation: str, **info: Any):
        self.operation = operation
        self.info: dict[str, Any] = dict(info)
        self.start_time: Optional[float] = None
        self.duration: float = 0.0

    def __enter__(self):
        self.start_time = time.monotonic()
        logger.debug("Starting operation: %s", self.operation)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.monotonic() - self.start_time if self.start_time else 0.0

        if exc_type is None:
            logger.debug(
                "Operation '%s' completed in %.2fs", self.operation, self.duration
            )
        else:
            # The caller that finally handles the error logs it at ERROR
            logger.warning(
                "Operation '%s' failed after %.2fs: %s",
                self.operation,
                self.duration,
                exc_val,
                extra={"extra_fields": {"operation": self.operation, **self.info}},
            )

        # Don't suppress the exception
        return False

    def add_info(self, key: str, value: Any):
        """Attach a piece of context reported if the block fails."""
        self.info[key] = value


__all__ = [
    "StoryRetrievalError",
    "RemoteFetchError",
    "InvalidResponseError",
    "SearchTimeoutError",
    "RETRYABLE_STATUS_CODES",
    "retry_with_backoff",
    "ErrorContext",
]
