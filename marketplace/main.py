from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from marketplace.api.deps import ServiceResultError, service_result_error_handler
from marketplace.api.v1.router import router as api_v1_router
from marketplace.core.clock import Clock, SystemClock
from marketplace.core.config import Settings, settings
from marketplace.core.logging import setup_logging
from marketplace.core.middleware import register_middlewares
from marketplace.db.init_db import init_db
from marketplace.db.session import build_engine, build_session_factory
from marketplace.services.base.notification_dispatcher import NotificationDispatcher
from marketplace.services.base.realtime_publisher import NullRealtimePublisher, RealtimePublisher


def create_app(
    app_settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    clock: Optional[Clock] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
    realtime: Optional[RealtimePublisher] = None,
) -> FastAPI:
    """
    Application factory for the FastAPI app.

    - Configures title, version, debug mode from Settings.
    - Builds the process-wide collaborators (session factory, clock,
      notification dispatcher, realtime publisher) and keeps them on
      ``app.state``.
    - Registers CORS, core middleware, and the service error handler.
    - Includes the versioned API router under /api/v1.
    """
    app_settings = app_settings or settings
    setup_logging(app_settings.logging, app_settings.ENVIRONMENT)

    app = FastAPI(
        title=app_settings.api.API_TITLE,
        debug=app_settings.DEBUG,
        version=app_settings.api.API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    engine = engine or build_engine(app_settings.database)
    app.state.settings = app_settings
    app.state.session_factory = build_session_factory(engine)
    app.state.clock = clock or SystemClock()
    app.state.dispatcher = dispatcher or NotificationDispatcher(
        sms_max_length=app_settings.notifications.SMS_MAX_LENGTH,
    )
    app.state.realtime = realtime or NullRealtimePublisher()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.api.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request ID and timing
    register_middlewares(app)

    app.add_exception_handler(ServiceResultError, service_result_error_handler)

    app.include_router(api_v1_router, prefix=app_settings.api.API_V1_PREFIX)

    # Schema bootstrap outside production; production databases are migrated
    @app.on_event("startup")
    async def on_startup() -> None:
        if not app_settings.is_production:
            init_db(engine)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api.HOST, port=settings.api.PORT)
