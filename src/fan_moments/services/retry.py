"""Exponential-backoff retry for calls to external generation services."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TERMINAL_MARKERS = ("invalid input", "bad request", "unauthorized", "forbidden")


def is_retryable_error(error: BaseException) -> bool:
    """Return False for failures that another attempt cannot fix."""
    message = str(error).lower()
    return not any(marker in message for marker in _TERMINAL_MARKERS)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Call ``fn`` until it succeeds, waiting ``initial_delay * 2**n`` between tries.

    Terminal errors are re-raised on the first occurrence; otherwise the last
    error is re-raised once ``max_attempts`` calls have failed.
    """

    def log_retry(state: RetryCallState) -> None:
        delay = state.next_action.sleep if state.next_action else 0.0
        logger.info(
            "Retry %d/%d after %.1fs: %s",
            state.attempt_number,
            max_attempts,
            delay,
            state.outcome.exception() if state.outcome else None,
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=initial_delay, exp_base=2, min=0),
        retry=retry_if_exception(is_retryable_error),
        before_sleep=log_retry,
        sleep=sleep,
        reraise=True,
    )

    async def attempt() -> T:
        return await fn()

    return await retrying(attempt)
