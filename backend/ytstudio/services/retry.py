"""Bounded exponential-backoff retry for a single async unit of work.

Only rate-limit failures are retried. The delay before attempt ``k + 1`` is
``initial_delay * 2 ** (k - 1)`` with no jitter and no cap, so the defaults
(3 attempts, 2s) wait 2s and then 4s. Any other failure, or a rate-limit
failure on the last attempt, propagates unchanged.

Usage:
    from ytstudio.services.retry import with_retries

    text = await with_retries(lambda: client.generate(prompt), label="script generation")
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from google.genai.errors import APIError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ytstudio.errors import RATE_LIMIT_MARKER

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return True if the failure signals rate limiting (worth backing off)."""
    capability = getattr(exc, "is_rate_limit", None)
    if callable(capability):
        return bool(capability())
    if isinstance(exc, APIError):
        if exc.code == 429 or exc.status == RATE_LIMIT_MARKER:
            return True
    text = f"{exc} {exc!r} {getattr(exc, 'details', '')}"
    return RATE_LIMIT_MARKER in text


async def with_retries(
    call: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    initial_delay: float = 2.0,
    label: str = "API call",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``call`` and retry it on rate-limit failures.

    Args:
        call: Zero-argument callable returning an awaitable (a coroutine
            function or a lambda around one); invoked once per attempt.
        max_attempts: Total attempts including the first.
        initial_delay: Seconds to wait before the second attempt.
        label: Name of the call in log messages.
        sleep: Awaitable sleep, injectable for tests.

    Returns:
        Whatever ``call`` returns on its first successful attempt.

    Raises:
        The last attempt's exception, unchanged.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=initial_delay, exp_base=2),
        retry=retry_if_exception(is_rate_limit_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        sleep=sleep,
        reraise=True,
    )
    attempts = 0
    try:
        async for attempt in retrying:
            with attempt:
                attempts = attempt.retry_state.attempt_number
                return await call()
    except Exception as e:
        logger.error(
            "%s failed after %d attempt(s): %s: %s",
            label, attempts, type(e).__name__, e,
        )
        raise
