"""Retry decorator with exponential backoff for store calls."""
from __future__ import annotations

import asyncio
import functools
import inspect
import random
import time
from typing import Any, Callable, Tuple, Type

from apptrack.errors import StoreUnavailable
from apptrack.log import get_logger

log = get_logger(__name__)


def _delay(attempt: int, base_delay: float, max_delay: float, backoff_factor: float, jitter: bool) -> float:
    delay = min(base_delay * (backoff_factor ** (attempt - 1)), max_delay)
    if jitter:
        delay *= 0.5 + random.random()
    return delay


def retry(
    *,
    max_attempts: int = 3,
    base_delay: float = 0.1,
    max_delay: float = 2.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
    retryable: Tuple[Type[BaseException], ...] = (StoreUnavailable,),
) -> Callable:
    """Retry the wrapped function or coroutine function with exponential backoff.

    Only exceptions listed in *retryable* are retried; the last one is
    re-raised once *max_attempts* is reached.
    """

    def decorator(fn: Callable) -> Callable:
        if inspect.iscoroutinefunction(fn):
            @functools.wraps(fn)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                for attempt in range(1, max_attempts + 1):
                    try:
                        return await fn(*args, **kwargs)
                    except retryable as exc:
                        if attempt == max_attempts:
                            log.error("%s failed after %d attempts: %s", fn.__qualname__, max_attempts, exc)
                            raise
                        delay = _delay(attempt, base_delay, max_delay, backoff_factor, jitter)
                        log.warning("%s attempt %d/%d failed (%s), retrying in %.2fs",
                                    fn.__qualname__, attempt, max_attempts, exc, delay)
                        await asyncio.sleep(delay)

            return async_wrapper

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(1, max_attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except retryable as exc:
                    if attempt == max_attempts:
                        log.error("%s failed after %d attempts: %s", fn.__qualname__, max_attempts, exc)
                        raise
                    delay = _delay(attempt, base_delay, max_delay, backoff_factor, jitter)
                    log.warning("%s attempt %d/%d failed (%s), retrying in %.2fs",
                                fn.__qualname__, attempt, max_attempts, exc, delay)
                    time.sleep(delay)

        return wrapper

    return decorator
