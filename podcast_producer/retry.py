"""Bounded exponential-backoff retry for synthesis calls."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from podcast_producer.constants import TTS_RETRY_COUNT, TTS_RETRY_BASE_DELAY
from podcast_producer.errors import (
    BatchSynthesisError,
    ConfigurationError,
    VendorError,
    REASON_UNKNOWN,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, base_delay: float = TTS_RETRY_BASE_DELAY) -> float:
    """Delay after the given 1-based failed attempt: base, 2x base, 4x base..."""
    return base_delay * (2 ** (attempt - 1))


def is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, ConfigurationError):
        return False
    if isinstance(exc, VendorError):
        return exc.retryable
    return True


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = TTS_RETRY_COUNT,
    base_delay: float = TTS_RETRY_BASE_DELAY,
    batch_index: int | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds or attempts run out.

    ``operation`` must return a fresh awaitable on every call. Configuration
    errors propagate untouched. Auth failures stop immediately; everything
    else is retried with exponential backoff. The final failure is raised as
    BatchSynthesisError tagged with ``batch_index``.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    last_error: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except ConfigurationError:
            raise
        except Exception as e:
            last_error = e
            if not is_retryable(e):
                logger.error("Batch %s: fatal error, not retrying: %s", batch_index, e)
                raise BatchSynthesisError(batch_index, attempt, e) from e

        if attempt < max_attempts:
            delay = backoff_delay(attempt, base_delay)
            logger.warning(
                "Batch %s: attempt %d/%d failed (%s), retrying in %.1fs",
                batch_index, attempt, max_attempts,
                getattr(last_error, "reason", REASON_UNKNOWN), delay,
            )
            await sleep(delay)

    raise BatchSynthesisError(batch_index, max_attempts, last_error) from last_error
