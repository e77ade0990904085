"""Retry utilities for transient network failures.

Network backends may have to repeat a request after a dropped connection.
Every mutating platform operation is an upsert, so repeating it is safe.

Key Exports:
    async_retry: Decorator adding exponential backoff to async functions.

Backoff Formula:
    delay = backoff_factor ** attempt_number
    For backoff_factor=2.0: 2s, 4s, 8s, ...
"""

import asyncio
import functools
from collections.abc import Callable
from typing import Any

import httpx
import structlog

log = structlog.get_logger(__name__)

TRANSIENT_ERRORS: tuple[type[Exception], ...] = (httpx.TransportError,)


def async_retry(
    max_attempts: int = 3,
    backoff_factor: float = 2.0,
    exceptions: tuple[type[Exception], ...] = TRANSIENT_ERRORS,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator for async functions with exponential backoff retry logic.

    Only exceptions listed in ``exceptions`` trigger a retry; anything else
    (including HTTP error statuses, which backends map explicitly)
    propagates immediately.

    Args:
        max_attempts: Maximum number of calls before giving up
        backoff_factor: Base of the exponential delay between attempts
        exceptions: Exception types that are considered transient

    Returns:
        A decorator wrapping async functions with retry logic.

    Raises:
        The last caught exception once all attempts are exhausted.

    Example:
        >>> @async_retry(max_attempts=5, backoff_factor=1.5)
        ... async def get_repo(pool, name):
        ...     return await pool.get(f"/repos/{name}")
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts:
                        log.error(
                            "retry_exhausted",
                            function=func.__name__,
                            attempts=attempt,
                            error=str(e),
                        )
                        raise

                    delay = backoff_factor**attempt
                    log.warning(
                        "retry_attempt",
                        function=func.__name__,
                        attempt=attempt,
                        max_attempts=max_attempts,
                        delay=delay,
                        error=str(e),
                    )
                    await asyncio.sleep(delay)

            raise RuntimeError("Retry logic error")

        return wrapper

    return decorator
