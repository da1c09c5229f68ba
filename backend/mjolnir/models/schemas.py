"""
Pydantic request/response models (schemas).

Defines the wire envelopes shared by the CLI and the HTTP API:
AnalyzeRequest/AnalysisResult, ConversionRequest/ConversionResult, and
ErrorResponse.
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mjolnir.config import get_settings


# ── Shared ────────────────────────────────────────────────────

class ErrorResponse(BaseModel):
    """Standardised error envelope."""
    error: bool = True
    error_code: str
    message: str
    details: dict | None = None


def error_body(error_code: str, message: str, details: dict | None = None) -> dict:
    """An ErrorResponse as a plain dict, for JSONResponse or json.dumps."""
    return ErrorResponse(error_code=error_code, message=message, details=details or {}).model_dump()


def invalid_request_body(errors: list[dict]) -> dict:
    """INVALID_REQUEST envelope listing pydantic errors by location and message."""
    listed = [{"loc": [str(part) for part in err["loc"]], "msg": err["msg"]} for err in errors]
    return error_body("INVALID_REQUEST", "Request could not be decoded.", {"errors": listed})


class SourceRequest(BaseModel):
    """Fields common to every request carrying contract source."""
    code: str = Field(
        ...,
        min_length=1,
        description="Contract source code (ink! or Solidity).",
    )
    dialect: str | None = Field(
        default=None,
        description="Source dialect; detected from the code when omitted.",
    )

    @field_validator("code")
    @classmethod
    def code_within_limit(cls, value: str) -> str:
        limit = get_settings().MAX_INPUT_SIZE_BYTES
        size = len(value.encode("utf-8"))
        if size > limit:
            raise ValueError(f"code is {size:,} bytes; the limit is {limit:,} bytes")
        return value


# ── Analyze ───────────────────────────────────────────────────

class AnalyzerConfig(BaseModel):
    """Rule selection and weighting."""
    enabled_rules: list[str] = Field(
        default_factory=list,
        description='Rule names to run; empty or ["all"] runs every rule.',
    )
    custom_weights: dict[str, float] | None = Field(
        default=None,
        description="Per-rule or per-category weight multipliers.",
    )

    @field_validator("custom_weights")
    @classmethod
    def finite_weights(cls, value: dict[str, float] | None) -> dict[str, float] | None:
        for key, weight in (value or {}).items():
            if not math.isfinite(weight):
                raise ValueError(f"weight for '{key}' must be a finite number")
        return value


class AnalyzeRequest(SourceRequest):
    """analyze request body."""
    config: AnalyzerConfig | None = None


class MetricsOut(BaseModel):
    performance: int
    security: int
    gas_efficiency: int
    code_quality: int


class IssueOut(BaseModel):
    severity: str
    message: str
    line: int | None = None
    recommendation: str | None = None


class AnalysisResult(BaseModel):
    """analyze response body."""
    score: int = Field(..., ge=0, le=100)
    metrics: MetricsOut
    issues: list[IssueOut] = Field(default_factory=list)


# ── Convert ───────────────────────────────────────────────────

class ConversionConfig(BaseModel):
    target: str = Field(..., description='Target dialect, "ink" or "solidity" (any case).')
    optimize: bool = False


class ConversionRequest(SourceRequest):
    """convert request body."""
    config: ConversionConfig


class ConversionResult(BaseModel):
    """convert response body."""
    model_config = ConfigDict(populate_by_name=True)

    converted_code: str = Field(..., alias="convertedCode")
    target_type: str = Field(..., alias="targetType")
    compilation_output: str | None = Field(default=None, alias="compilationOutput")
