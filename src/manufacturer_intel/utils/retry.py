"""Backoff policy for calls to external services."""
import functools
import logging
from typing import Any, Callable, Optional

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..core.logging import logger

RetryPredicate = Callable[[BaseException], bool]


def _any_exception(exc: BaseException) -> bool:
    return isinstance(exc, Exception)


def backoff_policy(
    attempts: int,
    min_wait: float,
    max_wait: float,
    should_retry: RetryPredicate,
    multiplier: float = 2.0,
) -> AsyncRetrying:
    """
    Build a tenacity controller that re-raises the last error once
    ``attempts`` are used up.
    """
    return AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=multiplier, min=min_wait, max=max_wait),
        retry=retry_if_exception(should_retry),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def retry_async(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 30.0,
    should_retry: Optional[RetryPredicate] = None,
):
    """
    Retry a coroutine function with exponential backoff.

    Only LLM transport calls use this; page fetches are never retried.

    Args:
        max_attempts: Attempts including the first call
        min_wait: Lower bound of the wait between attempts (seconds)
        max_wait: Upper bound of the wait between attempts (seconds)
        should_retry: Decides whether an error is transient (default: any Exception)
    """
    predicate = should_retry or _any_exception

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            async for attempt in backoff_policy(max_attempts, min_wait, max_wait, predicate):
                with attempt:
                    return await func(*args, **kwargs)

        return wrapper
    return decorator
