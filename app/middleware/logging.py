"""Structured logging setup and per-request access logging."""

import logging
import sys
import time
from collections.abc import Callable
from uuid import uuid4

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings

REQUEST_ID_HEADER = "X-Request-Id"

# Scraped or polled constantly; not worth an access log line
QUIET_PATHS = frozenset({"/metrics", f"{settings.api_v1_prefix}/ping"})


def _renderer() -> structlog.typing.Processor:
    if settings.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def configure_logging() -> None:
    """Route structlog through stdlib logging on stdout."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            _renderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper()),
    )


class LoggingMiddleware(BaseHTTPMiddleware):
    """Tags every request with an id and logs its outcome and timing."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Bind the request id for the duration of the request.

        Service log events emitted while handling the request carry the same
        ``request_id``, which is echoed back in the ``X-Request-Id`` header.
        """
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        quiet = request.url.path in QUIET_PATHS
        logger = structlog.get_logger(__name__)

        structlog.contextvars.clear_contextvars()
        with structlog.contextvars.bound_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        ):
            if not quiet:
                logger.info(
                    "request_started",
                    client=request.client.host if request.client else None,
                )

            started = time.perf_counter()
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    "request_failed",
                    error=str(e),
                    duration=time.perf_counter() - started,
                )
                raise
            duration = time.perf_counter() - started

            if not quiet:
                logger.info(
                    "request_completed",
                    status_code=response.status_code,
                    duration=duration,
                )

        response.headers["X-Process-Time"] = f"{duration:.6f}"
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
