"""
Domain exceptions.

Every failure the engine can report at its boundary derives from
MjolnirError, which carries a stable machine-readable error_code and a
details dict. The CLI and the HTTP exception handlers turn these into the
standard JSON error envelope; status_code is the HTTP status used there.
"""

from __future__ import annotations

from typing import Any


class MjolnirError(Exception):
    """Base class for all engine errors that map to a structured response."""

    error_code = "MJOLNIR_ERROR"
    status_code = 422

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ── Parsing ───────────────────────────────────────────────────


class ParseError(MjolnirError):
    """The source could not be turned into a contract model."""

    error_code = "PARSE_ERROR"


class NotAContract(ParseError):
    error_code = "NOT_A_CONTRACT"

    def __init__(self, message: str = "Input does not contain a recognisable contract.") -> None:
        super().__init__(message)


class AmbiguousDialect(ParseError):
    error_code = "AMBIGUOUS_DIALECT"

    def __init__(
        self,
        message: str = "Input carries both ink! and Solidity markers; state the dialect explicitly.",
    ) -> None:
        super().__init__(message)


class ContractSyntaxError(ParseError):
    """Malformed source at a known line."""

    error_code = "SYNTAX_ERROR"

    def __init__(self, message: str, line: int | None = None) -> None:
        self.line = line
        text = f"line {line}: {message}" if line else message
        super().__init__(text, {"line": line} if line else None)


# ── Conversion ────────────────────────────────────────────────


class ConversionError(MjolnirError):
    error_code = "CONVERSION_ERROR"


class UnsupportedConstruct(ConversionError):
    """Raised only when a construct leaves nothing that can be emitted."""

    error_code = "UNSUPPORTED_CONSTRUCT"

    def __init__(self, construct: str, line: int | None = None) -> None:
        self.construct = construct
        self.line = line
        super().__init__(
            f"Unsupported construct: {construct}",
            {"construct": construct, "line": line},
        )


# ── Configuration ─────────────────────────────────────────────


class ConfigError(MjolnirError):
    error_code = "CONFIG_ERROR"
    status_code = 400
