"""
Base class of the booking services.

Every public operation catches unexpected exceptions at its boundary and turns
them into a failed ServiceResult through ``_handle_exception``; expected
failures are returned directly.
"""

from typing import TypeVar, Generic, Optional, Dict, Any, Tuple, Type
from abc import ABC

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from marketplace.core.clock import Clock, SystemClock
from marketplace.core.exceptions import EntityAlreadyExistsError, EntityNotFoundError
from marketplace.core.logging import get_logger
from marketplace.repositories.base.base_repository import BaseRepository
from marketplace.services.base.service_result import (
    ServiceResult,
    ServiceError,
    ErrorCode,
    ErrorSeverity,
)
from marketplace.services.base.transaction_manager import TransactionManager


TModel = TypeVar("TModel")
TRepo = TypeVar("TRepo", bound=BaseRepository)

# First match wins
_EXCEPTION_CODES: Tuple[Tuple[Type[Exception], ErrorCode], ...] = (
    (EntityNotFoundError, ErrorCode.NOT_FOUND),
    (EntityAlreadyExistsError, ErrorCode.CONFLICT),
    (ValueError, ErrorCode.VALIDATION_ERROR),
    (SQLAlchemyError, ErrorCode.INTERNAL_ERROR),
)


class BaseService(ABC, Generic[TModel, TRepo]):
    """
    Holds the primary repository, the session, the clock and the transaction
    manager. Services built by one ServiceFactory share a TransactionManager,
    so an operation that calls another service joins its unit of work.
    """

    def __init__(
        self,
        repository: TRepo,
        db_session: Session,
        clock: Optional[Clock] = None,
        transactions: Optional[TransactionManager] = None,
    ):
        self.repository: TRepo = repository
        self.db: Session = db_session
        self.clock: Clock = clock or SystemClock()
        self.transactions = transactions or TransactionManager(db_session)
        self._logger = get_logger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    def _handle_exception(
        self,
        exception: Exception,
        operation: str,
        entity_ref: Optional[Any] = None,
    ) -> ServiceResult:
        """
        Log an unexpected exception and convert it into a failed result.

        Args:
            exception: The caught exception
            operation: What was being done, e.g. "accept booking"
            entity_ref: Identifier of the entity involved, if any
        """
        ref = str(entity_ref) if entity_ref is not None else None
        code = self._error_code_for(exception)

        self._logger.error(
            f"{operation} failed: {exception}",
            exc_info=True,
            extra={
                "operation": operation,
                "entity_ref": ref,
                "exception_type": type(exception).__name__,
                "error_code": code.value,
            },
        )

        severity = ErrorSeverity.CRITICAL if code == ErrorCode.INTERNAL_ERROR else ErrorSeverity.ERROR
        return ServiceResult.failure(
            ServiceError(
                code=code,
                message=f"Failed to {operation}",
                details={"error": str(exception), "entity_ref": ref},
                severity=severity,
            )
        )

    @staticmethod
    def _error_code_for(exception: Exception) -> ErrorCode:
        for exc_type, code in _EXCEPTION_CODES:
            if isinstance(exception, exc_type):
                return code
        return ErrorCode.INTERNAL_ERROR

    def _log_operation(
        self,
        operation: str,
        entity_ref: Optional[Any] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log a completed operation at INFO with its context."""
        context: Dict[str, Any] = {"operation": operation}
        if entity_ref is not None:
            context["entity_ref"] = str(entity_ref)
        context.update(extra or {})
        self._logger.info(f"{operation} completed", extra=context)
