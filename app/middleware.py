"""
Custom middleware for request correlation and timing.

Provides:
- **Request ID injection**: every request/response carries a trace ID
  (``X-Request-ID`` header).  The same ID is stamped onto log records and
  returned in error envelopes, so a client report can be matched to the
  server log entry that explains it.
- **Request timing**: logs wall-clock duration of every request.
"""

import logging
import time
import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

# Header name used for request tracing across services.
REQUEST_ID_HEADER = "X-Request-ID"

# Current request's correlation ID, read by the logging filter.
request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def new_request_id() -> str:
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Injects a unique request ID into every request/response cycle.

    - An incoming ``X-Request-ID`` (set by a gateway or the frontend) is reused.
    - Otherwise a new UUID4 is generated.
    - The ID is stored on ``request.state.request_id`` and in ``request_id_ctx``
      for the duration of the request, and echoed in the response header.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or new_request_id()
        request.state.request_id = request_id
        token = request_id_ctx.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """
    Logs the wall-clock duration of every HTTP request and exposes it in the
    ``X-Process-Time`` response header.
    """

    SLOW_REQUEST_MS = 500

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        response.headers["X-Process-Time"] = f"{elapsed_ms:.2f}ms"

        if elapsed_ms > self.SLOW_REQUEST_MS:
            logger.warning(
                "%s %s completed in %.2fms (SLOW)",
                request.method,
                request.url.path,
                elapsed_ms,
            )
        else:
            logger.debug(
                "%s %s completed in %.2fms",
                request.method,
                request.url.path,
                elapsed_ms,
            )

        return response
