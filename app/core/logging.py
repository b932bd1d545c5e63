import logging
from datetime import datetime, UTC
from typing import Any, Dict
from uuid import uuid4
from pythonjsonlogger.jsonlogger import JsonFormatter
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from app.core.config import settings
import time
import traceback

LOGGER_NAMES = [
    "api.request",
    "api.auth",
    "api.events",
    "api.users",
    "admission",
    "db",
    "httpx",
    "uvicorn",
]

class CustomJsonFormatter(JsonFormatter):
    """Custom JSON formatter for logs."""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        """Add custom fields to the log record."""
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.now(UTC).isoformat()
        log_record["level"] = record.levelname
        log_record["name"] = record.name

        # Add code location
        log_record["function"] = record.funcName
        log_record["module"] = record.module
        log_record["line"] = record.lineno

        log_record["process_id"] = record.process
        log_record["thread_id"] = record.thread
        log_record["environment"] = settings.ENVIRONMENT

        # Add request / admission context if available
        for attr in ("request_id", "user_id", "duration", "event_id", "reason"):
            if hasattr(record, attr):
                log_record[attr] = getattr(record, attr)

def _configure(level: str | int, propagate: bool) -> None:
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(CustomJsonFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    # Avoid stacking JSON handlers when called more than once (tests, reload)
    for handler in root_logger.handlers[:]:
        if isinstance(handler.formatter, CustomJsonFormatter):
            root_logger.removeHandler(handler)
    root_logger.addHandler(console_handler)

    for logger_name in LOGGER_NAMES:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.propagate = propagate
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        if not propagate:
            logger.addHandler(console_handler)

def setup_logging() -> None:
    """Configure logging for the application."""
    _configure(settings.LOG_LEVEL.upper(), propagate=False)

def setup_test_logging() -> None:
    """Configure logging for tests with propagation enabled so caplog sees records."""
    _configure(logging.INFO, propagate=True)

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = str(uuid4())
        start_time = time.time()
        request.state.request_id = request_id

        extra = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "duration": None
        }
        request_logger.info("Incoming request", extra=extra)

        try:
            response = await call_next(request)
        except Exception as e:
            extra["duration"] = time.time() - start_time
            extra["error"] = str(e)
            extra["error_type"] = e.__class__.__name__
            extra["traceback"] = traceback.format_exc()
            request_logger.error(f"{e.__class__.__name__} occurred", extra=extra)
            raise

        extra["duration"] = time.time() - start_time
        extra["status_code"] = response.status_code
        request_logger.info("Request completed", extra=extra)

        response.headers["X-Request-ID"] = request_id
        return response

# Create specific loggers
request_logger = logging.getLogger("api.request")
auth_logger = logging.getLogger("api.auth")
events_logger = logging.getLogger("api.events")
users_logger = logging.getLogger("api.users")
admission_logger = logging.getLogger("admission")
db_logger = logging.getLogger("db")
