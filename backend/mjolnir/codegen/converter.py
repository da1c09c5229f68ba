"""
Conversion entry point: ContractModel in, target source text out.
"""

from __future__ import annotations

from dataclasses import dataclass

from mjolnir.codegen.base import BaseGenerator
from mjolnir.codegen.diagnostics import ConversionDiagnostics
from mjolnir.codegen.ink import InkGenerator
from mjolnir.codegen.optimizer import optimize as optimize_model
from mjolnir.codegen.solidity import SolidityGenerator
from mjolnir.errors import ConfigError, UnsupportedConstruct
from mjolnir.ir.model import ContractModel, Dialect, Unsupported
from mjolnir.ir.visitor import iter_statements
from mjolnir.utils.logger import get_logger

logger = get_logger(__name__)

GENERATORS: dict[Dialect, type[BaseGenerator]] = {
    Dialect.INK: InkGenerator,
    Dialect.SOLIDITY: SolidityGenerator,
}


@dataclass
class ConversionResult:
    target: Dialect
    code: str
    compilation_output: str | None = None


def resolve_target(name: str | None) -> Dialect:
    """Case-insensitive target lookup."""
    target = Dialect.from_name(name)
    if target is None:
        raise ConfigError(
            f"Unknown conversion target '{name}'",
            {"supported_targets": [d.value for d in Dialect]},
        )
    return target


def _first_unsupported(model: ContractModel) -> Unsupported | None:
    """The first opaque statement when the contract has nothing else to emit.

    A contract with fields, events, errors or functions always converts;
    opaque statements inside it are carried as comments and reported.
    """
    if model.fields or model.events or model.errors or model.functions:
        return None
    bodies = [c.body for c in model.constructors]
    statements = [stmt for body in bodies for stmt, _, _ in iter_statements(body)]
    if not statements or not all(isinstance(stmt, Unsupported) for stmt in statements):
        return None
    return statements[0]


def convert(model: ContractModel, target: Dialect | str, optimize: bool = False) -> ConversionResult:
    if not isinstance(target, Dialect):
        target = resolve_target(target)

    blocker = _first_unsupported(model)
    if blocker is not None:
        raise UnsupportedConstruct(blocker.construct, blocker.line)

    diagnostics = ConversionDiagnostics()
    if optimize:
        model = optimize_model(model, diagnostics)

    code = GENERATORS[target](model, diagnostics).generate()
    output = diagnostics.render(model.warnings)
    logger.info(
        "Converted '%s' from %s to %s: %d limitation(s), %d optimization(s)",
        model.name,
        model.dialect.value,
        target.value,
        len(diagnostics.limitations),
        len(diagnostics.optimizations),
    )
    for note in diagnostics.limitations:
        logger.debug("Limitation: %s", note.message)
    return ConversionResult(target, code, output)
