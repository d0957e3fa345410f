"""
Bounded exponential backoff for calls to external collaborators.

Gateways wrap each network call in ``retry_with_backoff``. The delay
doubles from ``base_delay`` (1s, 2s, 4s, ...) with no jitter, and the
last error is re-raised once the attempt budget is spent.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BASE_DELAY = 1.0  # seconds


class RetryExhaustedError(Exception):
    """Raised when every attempt of a retried call has failed.

    Attributes:
        attempts: Number of attempts made.
        last_error: Error raised by the final attempt.
    """

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


async def retry_with_backoff(
    coro_factory: Callable[[], Awaitable[T]],
    max_attempts: int,
    base_delay: float = DEFAULT_BASE_DELAY,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    label: str = "request",
) -> T:
    """Run an async callable until it succeeds or the attempts run out.

    Args:
        coro_factory: Callable returning a fresh coroutine per attempt.
        max_attempts: Total attempts, including the first one. At least 1.
        base_delay: Delay before the second attempt; doubles afterwards.
        retry_on: Exception types worth retrying. Anything else propagates
            immediately.
        label: Short description used in log messages.

    Returns:
        The result of the first successful attempt.

    Raises:
        RetryExhaustedError: If all attempts fail with a retryable error.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    last_error: BaseException | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            return await coro_factory()
        except retry_on as exc:
            last_error = exc
            if attempt == max_attempts:
                break
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(
                "%s failed (%s), retrying in %.1fs (attempt %d/%d)",
                label,
                exc,
                delay,
                attempt,
                max_attempts,
            )
            await asyncio.sleep(delay)

    logger.error("%s failed after %d attempts: %s", label, max_attempts, last_error)
    raise RetryExhaustedError(max_attempts, last_error)
