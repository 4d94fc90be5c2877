"""
Low-level exceptions.

Raised by repositories and by notification channel backends. They never
leave a public service operation: services convert them into ServiceResult
failures (see ``BaseService._handle_exception``) or, for delivery problems,
record them on the reminder being sent.
"""

from typing import Any, Dict, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Codes carried by low-level exceptions; distinct from the service ErrorCode."""

    INTERNAL_ERROR = "INTERNAL_ERROR"

    DATABASE_ERROR = "DATABASE_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"

    NOTIFICATION_DELIVERY_FAILED = "NOTIFICATION_DELIVERY_FAILED"
    CONTACT_UNAVAILABLE = "CONTACT_UNAVAILABLE"


class BaseAppException(Exception):
    """Exception with a code and a details dict for structured logging."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"


# ========================================
# Persistence
# ========================================

class RepositoryError(BaseAppException):
    """A database operation failed."""

    def __init__(
        self,
        message: str = "Repository operation failed",
        details: Optional[Dict[str, Any]] = None,
        error_code: ErrorCode = ErrorCode.DATABASE_ERROR,
    ):
        super().__init__(message, error_code, details)


class EntityNotFoundError(RepositoryError):
    def __init__(self, entity_type: str, entity_id: Optional[str] = None):
        message = f"{entity_type} not found" if not entity_id else f"{entity_type} not found (ID: {entity_id})"
        super().__init__(
            message,
            details={"entity_type": entity_type, "entity_id": entity_id},
            error_code=ErrorCode.RESOURCE_NOT_FOUND,
        )


class EntityAlreadyExistsError(RepositoryError):
    """A unique constraint rejected a row."""

    def __init__(self, message: str = "Entity already exists", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details, error_code=ErrorCode.DUPLICATE_ENTRY)


# ========================================
# Notification delivery
# ========================================

class NotificationDeliveryError(BaseAppException):
    """A channel backend could not deliver a message."""

    def __init__(
        self,
        message: str = "Notification delivery failed",
        channel: Optional[str] = None,
        recipient: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.NOTIFICATION_DELIVERY_FAILED,
    ):
        super().__init__(message, error_code, {"channel": channel, "recipient": recipient})
        self.channel = channel


class ContactUnavailableError(NotificationDeliveryError):
    """The recipient cannot be reached on a channel: no address, or opted out."""

    def __init__(self, channel: str, reason: str):
        super().__init__(
            f"Cannot deliver via {channel}: {reason}",
            channel=channel,
            error_code=ErrorCode.CONTACT_UNAVAILABLE,
        )
