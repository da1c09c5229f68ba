"""
Front-end entry point: source text to ContractModel.

Each dialect registers a (parser, builder) pair; ``parse`` tokenizes with
the dialect's keyword table, parses into that dialect's syntax tree and
lowers it into the shared IR.
"""

from __future__ import annotations

from typing import Callable

from mjolnir.frontend.detect import detect_dialect
from mjolnir.frontend.ink import parse_ink
from mjolnir.frontend.lexer import tokenize
from mjolnir.frontend.solidity import parse_solidity
from mjolnir.ir.lower_ink import build_ink
from mjolnir.ir.lower_solidity import build_solidity
from mjolnir.ir.model import ContractModel, Dialect
from mjolnir.utils.logger import get_logger

logger = get_logger(__name__)

FRONT_ENDS: dict[Dialect, tuple[Callable, Callable]] = {
    Dialect.INK: (parse_ink, build_ink),
    Dialect.SOLIDITY: (parse_solidity, build_solidity),
}


def parse(source: str, dialect: Dialect | None = None) -> ContractModel:
    """Parse *source* into a ContractModel, detecting the dialect if not given.

    Raises:
        ParseError: NotAContract, AmbiguousDialect or ContractSyntaxError.
    """
    if dialect is None:
        dialect = detect_dialect(source)
        logger.debug("Detected dialect: %s", dialect.value)

    parser, builder = FRONT_ENDS[dialect]
    tokens = tokenize(source, dialect)
    tree, warnings = parser(tokens, source)
    model = builder(tree, warnings)
    logger.info(
        "Parsed %s contract '%s' (%d chars, %d warnings)",
        dialect.value,
        model.name,
        len(source),
        len(model.warnings),
    )
    return model
