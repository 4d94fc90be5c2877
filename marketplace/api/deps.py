"""
Shared API dependencies.

The application builds its process-wide collaborators once (see
``marketplace.main.create_app``) and keeps them on ``app.state``; each
request gets a session and a ServiceFactory bound to it.
"""

from typing import Generator, TypeVar

from fastapi import Depends, Header, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from marketplace.services.base.service_factory import ServiceFactory
from marketplace.services.base.service_result import ErrorCode, ServiceError, ServiceResult

T = TypeVar("T")

ERROR_STATUS = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_STATE: status.HTTP_409_CONFLICT,
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ServiceResultError(Exception):
    """A failed ServiceResult escaping a route; rendered by ``service_result_error_handler``."""

    def __init__(self, error: ServiceError):
        self.error = error
        super().__init__(error.message)

    @property
    def status_code(self) -> int:
        return ERROR_STATUS.get(self.error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)


async def service_result_error_handler(request: Request, exc: ServiceResultError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.error.to_dict()})


def unwrap(result: ServiceResult[T]) -> T:
    """Data of a successful result; a failure becomes an HTTP error response."""
    if not result.is_success:
        raise ServiceResultError(result.error)
    return result.data


# --- Database & services ------------------------------------------------------

def get_db(request: Request) -> Generator[Session, None, None]:
    """Yield a session from the application's session factory."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_services(request: Request, db: Session = Depends(get_db)) -> ServiceFactory:
    state = request.app.state
    return ServiceFactory(
        db,
        clock=state.clock,
        dispatcher=state.dispatcher,
        realtime=state.realtime,
        booking_settings=state.settings.booking,
        notification_settings=state.settings.notifications,
    )


# --- Acting user --------------------------------------------------------------

def get_current_user_id(x_user_id: str = Header(..., alias="X-User-Id", min_length=1)) -> str:
    """Acting user id; authentication happens in front of this service."""
    return x_user_id
