"""Exponential backoff retry decorator for async functions."""

from __future__ import annotations

import asyncio
import functools
import logging
import random
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

logger = logging.getLogger(__name__)


def backoff_delay(
    attempt: int, base_delay: float, max_delay: float, jitter: bool
) -> float:
    """Delay before retry number ``attempt + 1`` (attempts count from 0)."""
    delay = min(base_delay * (2**attempt), max_delay)
    if jitter:
        delay *= 0.5 + random.random()
    return delay


def async_retry(
    max_retries: int | Callable[[], int] = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    jitter: bool = True,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    giveup: tuple[type[Exception], ...] = (),
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Retry an async callable with exponential backoff + jitter.

    ``max_retries`` may be a callable so the limit can follow settings that
    change after import (tests patch them).  Exceptions listed in ``giveup``
    are re-raised immediately even when they also match ``exceptions``.
    """

    def decorator(
        func: Callable[..., Awaitable[T]],
    ) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: object, **kwargs: object) -> T:
            retries = max_retries() if callable(max_retries) else max_retries
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except giveup:
                    raise
                except exceptions as exc:
                    if attempt >= retries:
                        raise
                    delay = backoff_delay(attempt, base_delay, max_delay, jitter)
                    attempt += 1
                    logger.warning(
                        "Retry %d/%d for %s after %.1fs: %s",
                        attempt,
                        retries,
                        func.__name__,
                        delay,
                        exc,
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
