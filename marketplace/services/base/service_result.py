"""
Outcome values returned by booking operations.

Expected domain failures (missing record, wrong party, illegal transition,
duplicate, rejected input) are returned as a failed ``ServiceResult`` and
never raised. The API layer maps ``ErrorCode`` onto HTTP statuses.
"""

from typing import TypeVar, Generic, Optional, Any, Callable, Dict
from dataclasses import dataclass
from enum import Enum
from datetime import datetime, timezone


class ErrorCode(str, Enum):
    """Failure taxonomy shared by every booking component."""

    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    INVALID_STATE = "INVALID_STATE"
    CONFLICT = "CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Unexpected exception caught at an operation boundary
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorSeverity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class ServiceError:
    """A failure with its code, a readable message and optional context."""

    code: ErrorCode
    message: str
    severity: ErrorSeverity = ErrorSeverity.WARNING
    details: Optional[Dict[str, Any]] = None
    field: Optional[str] = None
    occurred_at: Optional[datetime] = None

    def __post_init__(self):
        if self.occurred_at is None:
            self.occurred_at = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
            "severity": self.severity.value,
            "occurred_at": self.occurred_at.isoformat(),
        }
        if self.field:
            payload["field"] = self.field
        if self.details:
            payload["details"] = self.details
        return payload


TData = TypeVar("TData")


@dataclass
class ServiceResult(Generic[TData]):
    """
    Success carrying ``data``, or failure carrying ``error``.

    ``metadata`` holds side figures of an operation, such as how many
    bookings a cancellation touched.
    """

    is_success: bool
    data: Optional[TData] = None
    error: Optional[ServiceError] = None
    message: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def success(
        cls,
        data: Optional[TData] = None,
        message: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "ServiceResult[TData]":
        return cls(is_success=True, data=data, message=message, metadata=metadata or {})

    @classmethod
    def failure(
        cls,
        error: ServiceError,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "ServiceResult[TData]":
        return cls(is_success=False, error=error, message=error.message, metadata=metadata or {})

    @classmethod
    def _fail(
        cls,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
    ) -> "ServiceResult[TData]":
        return cls.failure(ServiceError(code=code, message=message, details=details, field=field))

    @classmethod
    def validation_failure(
        cls,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> "ServiceResult[TData]":
        """Input rejected before anything was written."""
        return cls._fail(ErrorCode.VALIDATION_ERROR, message, details, field)

    @classmethod
    def not_found(cls, entity: str, entity_id: Optional[str] = None) -> "ServiceResult[TData]":
        message = f"{entity} not found" if not entity_id else f"{entity} not found (ID: {entity_id})"
        return cls._fail(ErrorCode.NOT_FOUND, message, {"entity": entity, "entity_id": entity_id})

    @classmethod
    def forbidden(cls, action: str, entity: Optional[str] = None) -> "ServiceResult[TData]":
        """The actor is not the party allowed to ``action``."""
        message = f"Not allowed to {action}"
        if entity:
            message = f"{message} on {entity}"
        return cls._fail(ErrorCode.FORBIDDEN, message, {"action": action, "entity": entity})

    @classmethod
    def invalid_state(
        cls,
        message: str,
        current: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> "ServiceResult[TData]":
        """The transition is not legal from the entity's current status."""
        context = dict(details or {})
        if current is not None:
            context["current_status"] = current
        return cls._fail(ErrorCode.INVALID_STATE, message, context or None)

    @classmethod
    def conflict(cls, message: str, details: Optional[Dict[str, Any]] = None) -> "ServiceResult[TData]":
        return cls._fail(ErrorCode.CONFLICT, message, details)

    @property
    def error_code(self) -> Optional[ErrorCode]:
        return self.error.code if self.error else None

    def unwrap(self) -> TData:
        """
        Return ``data`` of a successful result.

        Raises:
            ValueError: On a failed result
        """
        if not self.is_success:
            raise ValueError(f"Cannot unwrap failed result: {self.message or 'unknown error'}")
        return self.data

    def map(self, func: Callable[[TData], Any]) -> "ServiceResult":
        """Transform ``data`` of a successful result; failures pass through."""
        if not self.is_success:
            return self
        return ServiceResult.success(func(self.data), message=self.message, metadata=self.metadata)

    def __bool__(self) -> bool:
        return self.is_success

    def __repr__(self) -> str:
        state = "ok" if self.is_success else f"failed {self.error_code.value}"
        return f"<ServiceResult {state}: {self.message}>" if self.message else f"<ServiceResult {state}>"


__all__ = [
    "ErrorCode",
    "ErrorSeverity",
    "ServiceError",
    "ServiceResult",
]
