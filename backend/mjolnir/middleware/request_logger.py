"""
Access log with request ids.

Each request gets an id, taken from an incoming X-Request-ID header or
generated, stored on ``request.state`` for the exception handlers and
echoed on the response. One line is logged per request with the status and
duration. Bodies are never logged: they carry contract source.
"""

from __future__ import annotations

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from mjolnir.utils.logger import get_logger

logger = get_logger("mjolnir.access")

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64


def request_id_for(request: Request) -> str:
    supplied = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if supplied and len(supplied) <= MAX_REQUEST_ID_LENGTH and supplied.isprintable():
        return supplied
    return uuid.uuid4().hex[:16]


class RequestLoggerMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request_id_for(request)
        request.state.request_id = request_id
        start = time.perf_counter()

        response = await call_next(request)

        elapsed_ms = (time.perf_counter() - start) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id
        operation = request.url.path.rstrip("/").rsplit("/", 1)[-1] or "root"
        logger.info(
            "%s %s -> %d in %.1fms from %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request.client.host if request.client else "unknown",
            extra={"request_id": request_id, "operation": operation},
        )
        return response
