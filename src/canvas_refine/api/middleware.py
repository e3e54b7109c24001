"""Request tracing for the refine API.

Each request gets an id that is bound into the structlog context, so the
engine and session events logged during a refine can be matched to the HTTP
call that started them. The id is echoed in X-Request-ID.
"""

import re
import time
import uuid
from typing import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Ids supplied by callers are echoed back, so only accept plain tokens.
_VALID_REQUEST_ID = re.compile(r"[A-Za-z0-9._:-]{1,128}")

# Polled by the host plugin and by Prometheus.
QUIET_PATHS = frozenset({"/metrics", "/health"})


def resolve_request_id(header_value: str | None) -> str:
    """Return the caller's request id if usable, otherwise a new uuid4."""
    if header_value and _VALID_REQUEST_ID.fullmatch(header_value):
        return header_value
    return str(uuid.uuid4())


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """Bind a request id to every log event emitted while serving a request."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        started = time.perf_counter()

        def elapsed_ms() -> float:
            return round((time.perf_counter() - started) * 1000, 2)

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Request failed", duration_ms=elapsed_ms())
            raise
        else:
            response.headers[REQUEST_ID_HEADER] = request_id
            if request.url.path not in QUIET_PATHS:
                logger.info(
                    "Request completed",
                    status_code=response.status_code,
                    duration_ms=elapsed_ms(),
                    client=request.client.host if request.client else None,
                )
            return response
        finally:
            structlog.contextvars.clear_contextvars()
