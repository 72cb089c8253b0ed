"""Retry with exponential backoff for async calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
INITIAL_DELAY_SECONDS = 0.1


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    max_retries: int = MAX_RETRIES,
    initial_delay: float = INITIAL_DELAY_SECONDS,
    timeout: float | None = None,
    description: str = "call",
) -> T:
    """Await ``func()`` until it succeeds or retries run out.

    The first attempt is not a retry: ``func`` runs at most
    ``max_retries + 1`` times. Before retry *n* (1-based) it sleeps
    ``initial_delay * 2 ** (n - 1)`` seconds. A timeout counts as a failure.

    Args:
        func: Zero-argument coroutine factory; called afresh for every attempt.
        max_retries: Retries after the first failure.
        initial_delay: Delay before the first retry, in seconds.
        timeout: Optional per-attempt timeout, in seconds.
        description: Label for log messages.

    Returns:
        The first successful result.

    Raises:
        Exception: The last attempt's exception once retries are exhausted.
    """
    if max_retries < 0:
        raise ValueError(f"max_retries must be non-negative, got {max_retries}")

    retry = 0
    while True:
        try:
            if timeout is not None:
                return await asyncio.wait_for(func(), timeout)
            return await func()
        except Exception as e:
            if retry >= max_retries:
                logger.error(f"{description} failed after {retry + 1} attempts: {e!r}")
                raise
            retry += 1
            delay = initial_delay * (2 ** (retry - 1))  # Exponential backoff
            logger.warning(
                f"{description} attempt {retry} failed: {e!r}. Retrying in {delay:.2f}s..."
            )
            await asyncio.sleep(delay)
