"""
Exception hierarchy for the achievements service

Every error carries a request id, an optional user id and operation name,
a user-facing message, and is logged once when it is created. The API layer
serializes them with to_dict().
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

import psycopg

logger = logging.getLogger(__name__)


class ReadingTrackerError(Exception):
    """Base class; subclasses override default_user_message"""

    default_user_message = "An error occurred. Please try again."

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or self.default_user_message
        self.request_id = str(uuid4())
        self.timestamp = datetime.now(timezone.utc)

        logger.error(
            f"{type(self).__name__}: {message}",
            extra={
                "request_id": self.request_id,
                "user_id": user_id,
                "operation": operation,
                "error_context": self.context,
            },
            exc_info=cause
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


class ValidationError(ReadingTrackerError):
    """Caller input rejected (HTTP 400)"""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None, **kwargs):
        self.field = field
        self.value = value
        kwargs.setdefault("user_message", f"Invalid {field}: {message}" if field else message)
        super().__init__(message, context={"field": field, "value": value}, **kwargs)


class QueryError(ReadingTrackerError):
    """A store query failed (HTTP 503)"""

    default_user_message = "Achievements are temporarily unavailable. Please try again in a moment."

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        self.query = query
        context = kwargs.pop("context", None) or {}
        if query:
            context["query"] = query
        super().__init__(message, context=context, **kwargs)


class AchievementError(ReadingTrackerError):
    """Achievement engine failure (HTTP 503 unless a subclass says otherwise)"""

    default_user_message = "Achievements are temporarily unavailable. Please try again in a moment."


class MappingUnavailableError(AchievementError):
    """Store ids for the catalog could not be loaded"""

    def __init__(self, message: str = "Achievement identity map is not loaded", **kwargs):
        super().__init__(message, **kwargs)


class UnknownAchievementError(AchievementError):
    """A store id does not resolve to a catalog definition (HTTP 404)"""

    default_user_message = "That achievement does not exist."

    def __init__(self, message: str, achievement: Optional[str] = None, **kwargs):
        self.achievement = achievement
        super().__init__(message, context={"achievement": achievement}, **kwargs)


class ConfigurationError(ReadingTrackerError):
    """Invalid settings detected at startup"""

    default_user_message = "The service is not properly configured."

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        self.config_key = config_key
        super().__init__(message, context={"config_key": config_key}, **kwargs)


def wrap_database_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None
) -> ReadingTrackerError:
    """Translate a driver error raised inside a query function"""
    if isinstance(error, psycopg.Error):
        return QueryError(
            f"Database query failed: {error}",
            user_id=user_id,
            operation=operation,
            cause=error
        )
    return ReadingTrackerError(
        f"{operation} failed: {error}",
        user_id=user_id,
        operation=operation,
        cause=error
    )
