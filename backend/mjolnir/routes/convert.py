"""
Convert route.

POST /api/v1/convert translates a contract between ink! and Solidity and
reports every approximation made along the way.
"""

from fastapi import APIRouter, Request

from mjolnir.middleware.rate_limiter import PIPELINE_RATE_LIMIT, limiter
from mjolnir.models.schemas import ConversionRequest, ConversionResult, ErrorResponse
from mjolnir.services.protocol import handle_convert

router = APIRouter(prefix="/convert", tags=["convert"])


@router.post(
    "",
    response_model=ConversionResult,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request or unknown target"},
        422: {"model": ErrorResponse, "description": "Source could not be parsed or converted"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    },
    summary="Convert between ink! and Solidity",
)
@limiter.limit(PIPELINE_RATE_LIMIT)
def convert_contract(request: Request, body: ConversionRequest) -> ConversionResult:
    """Return the converted source, its dialect and any conversion notes."""
    return handle_convert(body)
