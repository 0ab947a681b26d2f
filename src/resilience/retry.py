"""Retry logic with exponential backoff and jitter

Implements retry logic for persistence writes that:
1. Only retries transient errors (lost connections, timeouts, retryable writes)
2. Uses exponential backoff with jitter to prevent thundering herd
3. Gives up after max retries to avoid infinite loops
"""

import asyncio
import random
import logging
from typing import Callable, Any, TypeVar

import httpx
import psycopg
import redis

from src.exceptions import ConnectionError as DatabaseConnectionError
from src.exceptions import PersistenceError
from src.observability.metrics import record_retry

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Retry configuration
MAX_RETRIES = 3
BASE_DELAY = 0.2  # seconds
MAX_DELAY = 5.0  # seconds
JITTER = 0.1  # 10% random jitter


def is_retryable_error(exc: Exception) -> bool:
    """
    Determine if error is transient and should be retried.

    Retryable errors:
    - Lost or refused database connections (psycopg.OperationalError)
    - Redis connection errors and timeouts
    - PersistenceError flagged as retryable
    - HTTP timeouts, 429 and 5xx responses

    Non-retryable errors:
    - Constraint violations and malformed queries
    - Validation errors

    Args:
        exc: The exception to check

    Returns:
        True if error should be retried, False otherwise
    """
    if isinstance(exc, PersistenceError):
        return exc.retryable

    if isinstance(exc, DatabaseConnectionError):
        return True

    if isinstance(exc, psycopg.OperationalError):
        return True

    if isinstance(exc, (redis.ConnectionError, redis.TimeoutError)):
        return True

    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in [429, 500, 502, 503, 504]

    if isinstance(exc, httpx.TimeoutException):
        return True

    # Wrapped driver errors keep the original as .cause
    cause = getattr(exc, "cause", None) or exc.__cause__
    if cause is not None and cause is not exc:
        return is_retryable_error(cause)

    return False


def calculate_backoff(attempt: int) -> float:
    """
    Calculate exponential backoff delay with jitter.

    Formula: delay = min(BASE_DELAY * (2 ** attempt), MAX_DELAY) + jitter
    Jitter is random value between -10% and +10% of delay

    Args:
        attempt: The retry attempt number (0-indexed)

    Returns:
        Delay in seconds
    """
    delay = min(BASE_DELAY * (2 ** attempt), MAX_DELAY)

    jitter_amount = random.uniform(-JITTER * delay, JITTER * delay)
    final_delay = delay + jitter_amount

    return max(final_delay, 0.0)


async def retry_with_backoff(
    func: Callable[..., T],
    *args: Any,
    max_retries: int = MAX_RETRIES,
    **kwargs: Any
) -> T:
    """
    Retry async function with exponential backoff.

    Only retries transient errors. Gives up after max_retries attempts.

    Args:
        func: Async function to retry
        max_retries: Maximum number of retry attempts (default: 3)
        *args, **kwargs: Arguments to pass to func

    Returns:
        Result from func

    Raises:
        Last exception if all retries exhausted or non-retryable error

    Example:
        granted = await retry_with_backoff(backend.grant_xp, user_id, 50, "checkin", key)
    """
    operation = getattr(func, "__name__", "operation")

    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)

        except Exception as e:
            if attempt == max_retries:
                logger.error(f"[RETRY] All {max_retries} retries exhausted for {operation}")
                raise

            if not is_retryable_error(e):
                logger.warning(
                    f"[RETRY] Non-retryable error for {operation}: "
                    f"{type(e).__name__}: {e}"
                )
                raise

            backoff = calculate_backoff(attempt)
            record_retry(operation)

            logger.info(
                f"[RETRY] Attempt {attempt + 1}/{max_retries} for {operation} "
                f"after {backoff:.2f}s (error: {type(e).__name__})"
            )

            await asyncio.sleep(backoff)

    raise RuntimeError("Retry logic failed unexpectedly")
