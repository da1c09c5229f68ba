"""
Analyze route.

POST /api/v1/analyze runs the rule engine over ink! or Solidity source and
returns the overall score, per-category metrics and ordered issues.
"""

from fastapi import APIRouter, Request

from mjolnir.middleware.rate_limiter import PIPELINE_RATE_LIMIT, limiter
from mjolnir.models.schemas import AnalysisResult, AnalyzeRequest, ErrorResponse
from mjolnir.services.protocol import handle_analyze

router = APIRouter(prefix="/analyze", tags=["analyze"])


@router.post(
    "",
    response_model=AnalysisResult,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request or configuration"},
        422: {"model": ErrorResponse, "description": "Source could not be parsed"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    },
    summary="Analyze a smart contract",
)
@limiter.limit(PIPELINE_RATE_LIMIT)
def analyze_contract(request: Request, body: AnalyzeRequest) -> AnalysisResult:
    """Score the contract and list its issues, most severe first."""
    return handle_analyze(body)
