"""
Request handling shared by the CLI and the HTTP routes.

``handle_analyze`` and ``handle_convert`` run the pipeline for an already
validated request. ``process_request`` is the raw-bytes boundary used by the
CLI: it decodes one JSON request, dispatches it and always produces exactly
one JSON document, either the result or an error envelope.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from mjolnir.analyzer.engine import EngineConfig, analyze
from mjolnir.codegen.converter import convert, resolve_target
from mjolnir.errors import ConfigError, MjolnirError
from mjolnir.frontend.parse import parse
from mjolnir.ir.model import Dialect
from mjolnir.models.schemas import (
    AnalysisResult,
    AnalyzeRequest,
    ConversionRequest,
    ConversionResult,
    IssueOut,
    MetricsOut,
    error_body,
    invalid_request_body,
)
from mjolnir.utils.logger import get_logger

logger = get_logger(__name__)

OPERATIONS = ("analyze", "convert")


def resolve_dialect(name: str | None) -> Dialect | None:
    if name is None:
        return None
    dialect = Dialect.from_name(name)
    if dialect is None:
        raise ConfigError(
            f"Unknown source dialect '{name}'",
            {"supported_dialects": [d.value for d in Dialect]},
        )
    return dialect


def handle_analyze(request: AnalyzeRequest) -> AnalysisResult:
    logger.info("Analyze request: %d chars, dialect=%s", len(request.code), request.dialect or "auto")
    model = parse(request.code, resolve_dialect(request.dialect))
    config = EngineConfig()
    if request.config is not None:
        config = EngineConfig(request.config.enabled_rules, request.config.custom_weights or {})
    outcome = analyze(model, config)
    return AnalysisResult(
        score=outcome.score,
        metrics=MetricsOut(**outcome.metrics.as_dict()),
        issues=[
            IssueOut(
                severity=issue.severity.value,
                message=issue.message,
                line=issue.line,
                recommendation=issue.recommendation,
            )
            for issue in outcome.issues
        ],
    )


def handle_convert(request: ConversionRequest) -> ConversionResult:
    logger.info(
        "Convert request: %d chars, dialect=%s, target=%s, optimize=%s",
        len(request.code),
        request.dialect or "auto",
        request.config.target,
        request.config.optimize,
    )
    # Resolve the target first: an unknown target must fail before any work.
    target = resolve_target(request.config.target)
    model = parse(request.code, resolve_dialect(request.dialect))
    result = convert(model, target, optimize=request.config.optimize)
    return ConversionResult(
        converted_code=result.code,
        target_type=result.target.value,
        compilation_output=result.compilation_output,
    )


# ── Raw boundary ──────────────────────────────────────────────


def _encode(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False)


def dump_result(result: AnalysisResult | ConversionResult) -> dict[str, Any]:
    return result.model_dump(by_alias=True, exclude_none=True)


def process_request(raw: str | bytes, operation: str) -> tuple[int, str]:
    """Decode, dispatch and encode one request.

    Returns ``(status, json_text)``; status is 200 on success and the
    HTTP-equivalent error status otherwise.
    """
    try:
        if operation == "analyze":
            result = handle_analyze(AnalyzeRequest.model_validate_json(raw))
        elif operation == "convert":
            result = handle_convert(ConversionRequest.model_validate_json(raw))
        else:
            raise ConfigError(f"Unknown operation '{operation}'", {"supported_operations": list(OPERATIONS)})
        return 200, _encode(dump_result(result))
    except ValidationError as exc:
        logger.warning("Invalid %s request: %d error(s)", operation, exc.error_count())
        return 400, _encode(invalid_request_body(exc.errors()))
    except MjolnirError as exc:
        logger.warning("%s: %s", exc.error_code, exc.message)
        return exc.status_code, _encode(error_body(exc.error_code, exc.message, exc.details))
    except Exception as exc:
        logger.exception("Unhandled error while processing %s request", operation)
        return 500, _encode(error_body("INTERNAL_ERROR", "An unexpected error occurred.", {"type": type(exc).__name__}))
