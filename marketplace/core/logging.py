"""
Logging setup.

Records go through the standard library root logger and are rendered as JSON
by python-json-logger (or as plain text). structlog shares the same context
variables, so both carry the request id and the acting user of the HTTP
request being served.
"""

import sys
import time
import logging
from typing import Any, Dict, Optional
from datetime import datetime, timezone
from contextvars import ContextVar
from functools import wraps

import structlog
from pythonjsonlogger import jsonlogger

from .config import LoggingSettings, settings

SERVICE_NAME = "marketplace-bookings"

# Set by RequestIDMiddleware for the duration of a request
request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id: ContextVar[Optional[str]] = ContextVar("user_id", default=None)

# Client contact details never reach the log sink
REDACTED_KEYS = ("phone", "email", "address", "password", "token", "secret", "authorization")


def _request_context() -> Dict[str, str]:
    context = {}
    if request_id.get():
        context["request_id"] = request_id.get()
    if user_id.get():
        context["user_id"] = user_id.get()
    return context


def _redact(values: Dict[str, Any]) -> None:
    for key, value in list(values.items()):
        if any(marker in key.lower() for marker in REDACTED_KEYS):
            values[key] = "[REDACTED]"
        elif isinstance(value, dict):
            _redact(value)


class RequestContextProcessor:
    """structlog processor adding request context and the service identity."""

    def __init__(self, environment: str):
        self.environment = environment

    def __call__(self, logger, method_name, event_dict):
        event_dict.update(_request_context())
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
        event_dict["service"] = SERVICE_NAME
        event_dict["environment"] = self.environment
        return event_dict


class SensitiveDataProcessor:
    """structlog processor masking contact details."""

    def __call__(self, logger, method_name, event_dict):
        _redact(event_dict)
        return event_dict


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON lines with level, origin, request context and masked contacts."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["origin"] = f"{record.funcName}:{record.lineno}"
        log_record.update(_request_context())
        _redact(log_record)


class LoggingConfig:
    """Applies LoggingSettings to structlog and to the root logger."""

    def __init__(self, logging_settings: LoggingSettings, environment: str):
        self.settings = logging_settings
        self.environment = environment

    @property
    def json_output(self) -> bool:
        return self.settings.LOG_FORMAT == "json"

    def configure_structured_logging(self) -> None:
        renderer = (
            structlog.processors.JSONRenderer()
            if self.json_output
            else structlog.processors.KeyValueRenderer(key_order=["event", "request_id"])
        )
        structlog.configure(
            processors=[
                RequestContextProcessor(self.environment),
                SensitiveDataProcessor(),
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                renderer,
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            logger_factory=structlog.stdlib.LoggerFactory(),
            context_class=dict,
            cache_logger_on_first_use=True,
        )

    def configure_standard_logging(self) -> None:
        level = getattr(logging, self.settings.LOG_LEVEL)
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        if self.json_output:
            handler.setFormatter(CustomJsonFormatter("%(asctime)s %(name)s %(levelname)s %(message)s"))
        else:
            handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s"))

        root = logging.getLogger()
        root.setLevel(level)
        root.handlers.clear()
        root.addHandler(handler)

        sql_level = logging.INFO if self.settings.LOG_SQL_QUERIES else logging.WARNING
        logging.getLogger("sqlalchemy.engine").setLevel(sql_level)
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
        logging.getLogger("httpx").setLevel(logging.WARNING)


class LoggerAdapter:
    """Standard logger whose calls always carry an ``extra`` dict."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    @property
    def name(self) -> str:
        return self.logger.name

    def _log(self, level: int, message: str, *args, **kwargs):
        kwargs["extra"] = dict(kwargs.get("extra") or {})
        kwargs.setdefault("stacklevel", 3)
        self.logger.log(level, message, *args, **kwargs)

    def debug(self, message: str, *args, **kwargs):
        self._log(logging.DEBUG, message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs):
        self._log(logging.INFO, message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs):
        self._log(logging.WARNING, message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs):
        self._log(logging.ERROR, message, *args, **kwargs)

    def critical(self, message: str, *args, **kwargs):
        self._log(logging.CRITICAL, message, *args, **kwargs)


def get_logger(name: str) -> LoggerAdapter:
    return LoggerAdapter(logging.getLogger(name))


def log_execution_time(logger_name: Optional[str] = None):
    """Decorator logging how long the wrapped call took, and its failure type if it raised."""

    def decorator(func):
        logger = get_logger(logger_name or func.__module__)

        @wraps(func)
        def wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"{func.__name__} raised after {time.perf_counter() - started:.3f}s",
                    extra={"function_name": func.__name__, "error_type": type(e).__name__},
                )
                raise
            logger.debug(
                f"{func.__name__} took {time.perf_counter() - started:.3f}s",
                extra={"function_name": func.__name__},
            )
            return result

        return wrapper

    return decorator


def setup_logging(logging_settings: Optional[LoggingSettings] = None, environment: Optional[str] = None) -> None:
    """Configure logging once, at application start."""
    logging_settings = logging_settings or settings.logging
    config = LoggingConfig(logging_settings, environment or settings.ENVIRONMENT)
    if logging_settings.ENABLE_STRUCTURED_LOGGING:
        config.configure_structured_logging()
    config.configure_standard_logging()

    get_logger(__name__).info(
        "Logging configured",
        extra={
            "log_level": logging_settings.LOG_LEVEL,
            "log_format": logging_settings.LOG_FORMAT,
            "structured_logging": logging_settings.ENABLE_STRUCTURED_LOGGING,
        },
    )
