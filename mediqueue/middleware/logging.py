"""Logging middleware and configuration."""

import logging
import re
import sys
import time
from collections.abc import Callable
from uuid import uuid4

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from mediqueue.config import settings

# Queue resources whose ids are bound to every log line of a request
RESOURCE_CONTEXT_KEYS = {
    "queues": "queue_id",
    "queue-items": "queue_item_id",
    "doctors": "doctor_id",
    "patients": "patient_id",
}
RESOURCE_PATH = re.compile(
    r"/(?P<resource>queues|queue-items|doctors|patients)/"
    r"(?P<id>[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12})"
)

# Polled by displays and scrapers; logged at debug only
QUIET_PATHS = frozenset(
    {
        "/metrics",
        f"{settings.api_v1_prefix}/ping",
        f"{settings.api_v1_prefix}/health",
    }
)


def configure_logging() -> None:
    """Configure structured logging."""
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*shared_processors, renderer],
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
    # Request lines come from LoggingMiddleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def request_context(path: str) -> dict[str, str]:
    """
    Resource ids named in a request path, keyed for the log context.

    ``/api/v1/queues/<id>/call-next`` gives ``{"queue_id": "<id>"}``.
    """
    return {
        RESOURCE_CONTEXT_KEYS[match["resource"]]: match["id"].lower()
        for match in RESOURCE_PATH.finditer(path)
    }


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request, tagged with its request id and queue resources."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        """
        Log request and response details.

        Args:
            request: Request object
            call_next: Next middleware in chain

        Returns:
            Response object
        """
        logger = structlog.get_logger()
        path = request.url.path
        request_id = request.headers.get("X-Request-ID") or uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, **request_context(path))

        quiet = path in QUIET_PATHS
        start_time = time.perf_counter()
        if not quiet:
            logger.info(
                "request_started",
                method=request.method,
                path=path,
                client=request.client.host if request.client else None,
            )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=path,
                error=str(e),
                duration=time.perf_counter() - start_time,
            )
            raise

        duration = time.perf_counter() - start_time
        if response.status_code >= 500:
            log = logger.error
        elif response.status_code >= 400:
            # Empty queue or consultation already running
            log = logger.info if response.status_code in (404, 409) else logger.warning
        else:
            log = logger.debug if quiet else logger.info
        log(
            "request_completed",
            method=request.method,
            path=path,
            status_code=response.status_code,
            duration=duration,
        )

        response.headers["X-Process-Time"] = str(duration)
        response.headers["X-Request-ID"] = request_id

        return response
