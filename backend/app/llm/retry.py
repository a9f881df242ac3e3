"""Retry-on-rate-limit wrapper for AI calls."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from openai import RateLimitError

from backend.app.errors import AIServiceError
from backend.app.utils.logging import StructuredAILogger
from backend.app.utils.metrics import metrics

logger = logging.getLogger(__name__)
ai_logger = StructuredAILogger()

T = TypeVar("T")

MAX_RETRIES = 7
MIN_DELAY_SECONDS = 2.0
MAX_DELAY_SECONDS = 128.0
BACKOFF_FACTOR = 2.0


def is_rate_limit_error(error: BaseException) -> bool:
    """Whether an error signals a rate limit or exhausted quota."""
    if isinstance(error, RateLimitError):
        return True
    message = str(error)
    lowered = message.lower()
    return (
        "429" in message
        or "RATELIMIT_EXCEEDED" in message
        or "quota" in lowered
        or "rate limit" in lowered
    )


def backoff_delay(attempt: int) -> float:
    """Delay before retry number ``attempt`` (0-based), capped at the maximum."""
    return min(MIN_DELAY_SECONDS * BACKOFF_FACTOR**attempt, MAX_DELAY_SECONDS)


async def call_ai(
    operation: str,
    func: Callable[[], Awaitable[T]],
    *,
    retry_rate_limits: bool = False,
    retries: int = MAX_RETRIES,
) -> T:
    """Run an AI call with metrics, logging and optional rate-limit retries.

    Args:
        operation: Operation name for metrics and logs
        func: Zero-argument coroutine factory performing the call
        retry_rate_limits: Retry rate-limit errors with exponential backoff
        retries: Maximum number of retries after the first attempt

    Returns:
        The call's result

    Raises:
        AIServiceError: On a non-retryable error or when retries are exhausted
    """
    attempt = 0
    while True:
        start = time.monotonic()
        try:
            result = await func()
        except Exception as e:
            latency_ms = (time.monotonic() - start) * 1000
            rate_limited = is_rate_limit_error(e)
            reason = "rate_limit" if rate_limited else type(e).__name__
            metrics.record_latency(operation, "error", latency_ms)
            metrics.inc_error(operation, reason)
            ai_logger.log_call(operation, attempt + 1, "error", latency_ms, error_reason=reason)

            if rate_limited and retry_rate_limits and attempt < retries:
                delay = backoff_delay(attempt)
                metrics.inc_retry(operation)
                logger.warning(f"{operation} rate limited, retrying in {delay:.0f}s")
                await asyncio.sleep(delay)
                attempt += 1
                continue

            raise AIServiceError(operation, f"AI {operation} failed: {e}") from e

        latency_ms = (time.monotonic() - start) * 1000
        metrics.record_latency(operation, "success", latency_ms)
        ai_logger.log_call(operation, attempt + 1, "success", latency_ms)
        return result
