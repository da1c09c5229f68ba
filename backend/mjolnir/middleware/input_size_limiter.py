"""
Request body size limit.

Rejects a request whose declared Content-Length exceeds the configured
limit with 413 PAYLOAD_TOO_LARGE before the body is read, so oversized
contract sources never reach the parser. A malformed Content-Length is a
400 INVALID_REQUEST. The ``code`` field validator enforces the same limit
on the decoded source.
"""

from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from mjolnir.models.schemas import error_body
from mjolnir.utils.logger import get_logger

logger = get_logger(__name__)


class InputSizeLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, max_bytes: int) -> None:
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        declared = request.headers.get("content-length")
        if declared is None:
            return await call_next(request)

        if not declared.isdigit():
            return JSONResponse(
                status_code=400,
                content=error_body("INVALID_REQUEST", "Content-Length is not a number.", {"content_length": declared}),
            )

        size = int(declared)
        if size > self.max_bytes:
            logger.warning("Rejected %s %s: %d bytes over the %d byte limit", request.method, request.url.path, size, self.max_bytes)
            return JSONResponse(
                status_code=413,
                content=error_body(
                    "PAYLOAD_TOO_LARGE",
                    f"Request body ({size:,} bytes) exceeds the {self.max_bytes:,} byte limit.",
                    {"size": size, "limit": self.max_bytes},
                ),
            )
        return await call_next(request)
