"""
Exception handlers for the HTTP API.

Domain errors keep their own status code and error_code, request validation
failures become 400 INVALID_REQUEST, and anything unexpected becomes a 500
INTERNAL_SERVER_ERROR. Every body is the same envelope the CLI prints.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from mjolnir.errors import MjolnirError
from mjolnir.models.schemas import error_body, invalid_request_body
from mjolnir.utils.logger import get_logger

logger = get_logger(__name__)


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def setup_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(MjolnirError)
    async def mjolnir_error(request: Request, exc: MjolnirError) -> JSONResponse:
        logger.warning(
            "%s on %s: %s",
            exc.error_code,
            request.url.path,
            exc.message,
            extra={"request_id": _request_id(request)},
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.error_code, exc.message, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        logger.warning(
            "Invalid request to %s: %d error(s)",
            request.url.path,
            len(errors),
            extra={"request_id": _request_id(request)},
        )
        return JSONResponse(status_code=400, content=invalid_request_body(errors))

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled %s on %s",
            type(exc).__name__,
            request.url.path,
            extra={"request_id": _request_id(request)},
        )
        return JSONResponse(
            status_code=500,
            content=error_body("INTERNAL_SERVER_ERROR", "An unexpected error occurred.", {"type": type(exc).__name__}),
        )
