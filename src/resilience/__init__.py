"""Resilience patterns for persistence writes

Retry with exponential backoff for transient database and cache errors.
"""

from src.resilience.retry import (
    calculate_backoff,
    is_retryable_error,
    retry_with_backoff,
)

__all__ = [
    "calculate_backoff",
    "is_retryable_error",
    "retry_with_backoff",
]
