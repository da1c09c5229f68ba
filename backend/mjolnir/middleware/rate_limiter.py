"""
Per-client rate limiting for the pipeline endpoints.

The slowapi Limiter below is applied with ``@limiter.limit(PIPELINE_RATE_LIMIT)``
on the analyze and convert routes only; /health is never limited. Limits are
keyed on the client address and can be switched off with
MJOLNIR_RATE_LIMIT_ENABLED=false.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from mjolnir.config import get_settings
from mjolnir.models.schemas import error_body
from mjolnir.utils.logger import get_logger

logger = get_logger(__name__)

PIPELINE_RATE_LIMIT = get_settings().RATE_LIMIT
limiter = Limiter(key_func=get_remote_address, enabled=get_settings().RATE_LIMIT_ENABLED)


def setup_rate_limiter(app: FastAPI) -> None:
    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def rate_limited(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        client = get_remote_address(request)
        logger.warning("Rate limit hit by %s on %s (%s)", client, request.url.path, exc.detail)
        return JSONResponse(
            status_code=429,
            content=error_body(
                "RATE_LIMIT_EXCEEDED",
                f"Too many requests: {exc.detail}.",
                {"limit": exc.detail},
            ),
        )
