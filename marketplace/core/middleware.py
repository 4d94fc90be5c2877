"""
HTTP middleware.

``RequestIDMiddleware`` binds the request id and the acting user to the
logging context variables; ``TimingMiddleware`` logs one line per request.
"""
from __future__ import annotations

import time
import uuid
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from marketplace.core.logging import get_logger, request_id as request_id_var, user_id as user_id_var

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
USER_ID_HEADER = "X-User-Id"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's X-Request-ID or mint one, and echo it back."""

    def __init__(self, app: ASGIApp, header_name: str = REQUEST_ID_HEADER):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = request.headers.get(self.header_name) or uuid.uuid4().hex
        request.state.request_id = rid

        tokens = (
            request_id_var.set(rid),
            user_id_var.set(request.headers.get(USER_ID_HEADER)),
        )
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(tokens[0])
            user_id_var.reset(tokens[1])

        response.headers[self.header_name] = rid
        return response


class TimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "status_code": response.status_code,
                "elapsed_ms": round(elapsed * 1000, 2),
            },
        )
        return response


def register_middlewares(app: FastAPI) -> None:
    """Register core middlewares; the last one added runs first."""
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestIDMiddleware)
