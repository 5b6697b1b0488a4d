"""
Logging helpers shared by the application entry point and the routers.

- `RequestLoggingMiddleware`: one log line per request with method, path, status and
  duration. Each request gets an id, exposed through `request_id_context` and echoed
  in the `X-Request-ID` response header.
- `log_application_lifecycle`: structured startup/shutdown events.
- `log_error_with_context`: an exception plus the operation it happened in.
- `log_performance`: decorator that logs how long a function took.
"""

import asyncio
from contextvars import ContextVar
import functools
import time
from typing import Any, Callable, Dict, Optional
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from barangay_registry.managers.logging_manager import get_logger

logger = get_logger(prefix="[REQUEST]")
lifecycle_logger = get_logger(prefix="[LIFECYCLE]")
error_logger = get_logger(prefix="[ERROR]")
perf_logger = get_logger(prefix="[PERFORMANCE]")

request_id_context: ContextVar[str] = ContextVar("request_id", default="-")

QUIET_PATHS = {"/metrics", "/health/liveness"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with its status code and duration."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        token = request_id_context.set(request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            log_error_with_context(
                e, {"operation": "http_request", "method": request.method, "path": request.url.path}
            )
            raise
        finally:
            request_id_context.reset(token)

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = request_id
        if request.url.path not in QUIET_PATHS:
            client = request.client.host if request.client else "-"
            logger.info(
                "%s %s -> %d (%.1fms) client=%s id=%s",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                client,
                request_id,
            )
        return response


def log_application_lifecycle(event: str, details: Optional[Dict[str, Any]] = None) -> None:
    lifecycle_logger.info("%s %s", event, details or {})


def log_error_with_context(error: BaseException, context: Optional[Dict[str, Any]] = None) -> None:
    """Log an exception with the operation context it was raised in, including the traceback."""
    error_logger.error(
        "%s: %s context=%s request_id=%s",
        type(error).__name__,
        error,
        context or {},
        request_id_context.get(),
        exc_info=error,
    )


def log_performance(operation: str):
    """Decorator logging the wall-clock duration of a sync or async function."""

    def decorator(func):
        if asyncio.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                start = time.perf_counter()
                try:
                    return await func(*args, **kwargs)
                finally:
                    perf_logger.debug("%s took %.3fs", operation, time.perf_counter() - start)

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                perf_logger.debug("%s took %.3fs", operation, time.perf_counter() - start)

        return wrapper

    return decorator
