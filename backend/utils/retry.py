"""
Retry with exponential backoff for flaky external calls.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, TypeVar

from utils.error_handlers import AppError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_status_code(error: Any) -> Optional[int]:
    """
    Extract the HTTP status carried by an error, if any.

    Looks at, in order: ``upstream_status`` (our wrapped external errors),
    ``status_code`` (openai / httpx style), ``status`` and
    ``response.status_code``. The HTTP status our own ``AppError``s would be
    rendered with is not an upstream status and is ignored.
    """
    status = getattr(error, "upstream_status", None)
    if isinstance(status, int):
        return status

    if not isinstance(error, AppError):
        for attr in ("status_code", "status"):
            status = getattr(error, attr, None)
            if isinstance(status, int):
                return status

    response = getattr(error, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return status

    return None


def is_retryable_error(error: Exception) -> bool:
    """
    Default retry predicate.

    Retries on 429 and 5xx, never on other 4xx. Without a status our own
    errors follow their ``retryable`` flag; anything else (network errors,
    unknown failures) is retried.
    """
    status = get_status_code(error)
    if status is not None:
        if status == 429 or 500 <= status < 600:
            return True
        if 400 <= status < 500:
            return False

    if isinstance(error, AppError):
        return error.retryable

    return True


def is_rate_limit_or_server_error(error: Exception) -> bool:
    """Retry only when the upstream said 429 or 5xx."""
    status = get_status_code(error)
    return status is not None and (status == 429 or 500 <= status < 600)


@dataclass
class RetryOptions:
    """Configuration for with_retry. Delays are in seconds."""
    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 8.0
    backoff_multiplier: float = 2.0
    retry_predicate: Callable[[Exception], bool] = field(default=is_retryable_error)


def calculate_backoff_delay(attempt: int, options: RetryOptions) -> float:
    """Delay before the retry that follows failed attempt number ``attempt`` (1-based)."""
    delay = options.initial_delay * (options.backoff_multiplier ** (attempt - 1))
    return min(delay, options.max_delay)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    options: Optional[RetryOptions] = None
) -> T:
    """
    Run an async operation, retrying it with exponential backoff.

    Args:
        operation: Zero-argument callable returning an awaitable
        options: Retry configuration (defaults: 3 attempts, 1s, 2s... capped at 8s)

    Returns:
        Result of the operation

    Raises:
        The last error, unchanged, once attempts are exhausted or the
        predicate declines to retry.
    """
    options = options or RetryOptions()
    if options.max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempt = 0
    while True:
        attempt += 1
        try:
            result = await operation()
        except Exception as e:
            if attempt >= options.max_attempts:
                logger.error(f"All {options.max_attempts} attempts failed. Last error: {e}")
                raise

            if not options.retry_predicate(e):
                logger.error(f"Non-retryable error on attempt {attempt}: {e}")
                raise

            delay = calculate_backoff_delay(attempt, options)
            logger.warning(
                f"Attempt {attempt}/{options.max_attempts} failed: {e}. "
                f"Retrying in {delay:.2f}s..."
            )
            await asyncio.sleep(delay)
            continue

        if attempt > 1:
            logger.info(f"Operation succeeded on attempt {attempt}/{options.max_attempts}")
        return result
