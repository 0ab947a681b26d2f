"""
Error types raised at the storage, configuration and API edges of the
progress engine

Scoring and recommendation code never raises these: malformed metrics
and counters are clamped or defaulted where they are read. Each class
carries the HTTP status, log level and athlete-facing message used when
it reaches the API.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

import psycopg
import redis

logger = logging.getLogger(__name__)


class MindsetError(Exception):
    """
    Base class for progress engine errors

    Every instance gets a request id and a UTC timestamp and is logged
    once, when created, with its user, operation and context attached.

    Example:
        raise MindsetError(
            "Failed to persist achievement unlock",
            user_id="athlete-42",
            operation="record_unlock",
            context={"achievement_id": "ex-5"},
        )
    """

    status_code = 500
    log_level = logging.ERROR
    default_user_message = "An error occurred. Please try again."

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = dict(context or {})
        self.cause = cause
        self.user_message = user_message or self.default_user_message
        self.timestamp = datetime.now(timezone.utc)

        self._log()

    def _log(self) -> None:
        # 'message' is reserved on LogRecord, hence error_message
        extra = {
            "error_type": type(self).__name__,
            "error_message": self.message,
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,
        }
        if self.cause is not None:
            extra["cause"] = repr(self.cause)
        logger.log(
            self.log_level,
            f"{type(self).__name__} [{self.operation or '-'}]: {self.message}",
            extra=extra,
            exc_info=self.cause if self.log_level >= logging.ERROR else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict used in persistence_errors lists and API payloads"""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


def _with_context(kwargs: Dict[str, Any], **fields: Any) -> Dict[str, Any]:
    """Fold typed fields into the caller's context kwarg"""
    kwargs["context"] = {**(kwargs.get("context") or {}), **fields}
    return kwargs


# ==========================================
# Request input
# ==========================================

class ValidationError(MindsetError):
    """
    Request input that cannot be interpreted at all

    A check-in without a usable date, a date after today, or an unknown
    activity type. Out-of-range metric values are clamped instead.
    """

    status_code = 422
    log_level = logging.WARNING

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None, **kwargs):
        self.field = field
        self.value = value
        kwargs.setdefault("user_message", f"Invalid {field}: {message}" if field else message)
        super().__init__(message, **_with_context(kwargs, field=field, value=value))


# ==========================================
# Storage
# ==========================================

class DatabaseError(MindsetError):
    """Relational store failure"""

    status_code = 503
    default_user_message = "Progress storage is unavailable right now. Please try again shortly."


class ConnectionError(DatabaseError):
    """Could not reach the database or the pool is exhausted"""

    def __init__(self, message: str = "Database connection failed", **kwargs):
        super().__init__(message, **kwargs)


class QueryError(DatabaseError):
    """A statement against the progress tables failed"""

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        self.query = query
        super().__init__(message, **_with_context(kwargs, query=query))


class CacheError(MindsetError):
    """Key-value store failure while claiming or reading daily task keys"""

    status_code = 503
    default_user_message = "We couldn't confirm today's rewards. Please try again."

    def __init__(self, message: str, key: Optional[str] = None, **kwargs):
        self.key = key
        super().__init__(message, **_with_context(kwargs, key=key))


class PersistenceError(MindsetError):
    """
    An XP grant or achievement unlock could not be written

    The decision that produced the write stays valid. Ledger and unlock
    writes are keyed, so repeating the operation cannot double count.
    """

    status_code = 503
    default_user_message = "Your progress was calculated but could not be saved yet. Please try again."

    def __init__(self, message: str, retryable: bool = True, **kwargs):
        self.retryable = retryable
        super().__init__(message, **kwargs)


# ==========================================
# Access and setup
# ==========================================

class AuthenticationError(MindsetError):
    """Bearer API key missing from the configured key list"""

    status_code = 401
    log_level = logging.WARNING
    default_user_message = "Authentication failed. Please check your API key."

    def __init__(self, message: str = "Authentication failed", **kwargs):
        super().__init__(message, **kwargs)


class ConfigurationError(MindsetError):
    """Environment settings are missing or inconsistent"""

    status_code = 503
    default_user_message = "The service is not configured yet. Please contact support."

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        self.config_key = config_key
        super().__init__(message, **_with_context(kwargs, config_key=config_key))


# psycopg.OperationalError must be checked before its base psycopg.Error
_DRIVER_ERRORS = (
    (psycopg.OperationalError, ConnectionError, "Database connection failed"),
    (psycopg.Error, QueryError, "Database query failed"),
    (redis.RedisError, CacheError, "Key-value store failed"),
)


def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> MindsetError:
    """
    Translate a psycopg or redis exception into a MindsetError

    Our own errors pass through unchanged; anything unrecognised becomes
    a plain MindsetError. The driver exception is kept as ``cause`` so
    retry classification can still inspect it.

    Example:
        try:
            await cur.execute(query)
        except psycopg.Error as e:
            raise wrap_external_exception(e, "record_unlock", user_id, {"achievement_id": "ex-5"})
    """
    if isinstance(error, MindsetError):
        return error

    for driver_type, error_type, prefix in _DRIVER_ERRORS:
        if isinstance(error, driver_type):
            break
    else:
        error_type, prefix = MindsetError, f"{operation} failed"

    return error_type(
        f"{prefix}: {error}",
        user_id=user_id,
        operation=operation,
        context=context,
        cause=error,
    )
