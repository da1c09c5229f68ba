"""
IR builder.

Shared lowering state (scopes, warnings, contract invariants) used by the
per-dialect lowerings in ``lower_solidity`` and ``lower_ink``. ``finalize``
enforces the model invariants every consumer relies on: unique storage field
names, unique (name, parameter types) function signatures, and at least one
constructor.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from mjolnir.errors import ContractSyntaxError
from mjolnir.ir.model import (
    Cast,
    Constructor,
    ContractModel,
    Emit,
    EnvRef,
    ExternalCall,
    Index,
    Member,
    Name,
    ParseWarning,
    SelfCall,
    StateRef,
    Statement,
    TypeRef,
)
from mjolnir.ir.visitor import iter_statements, statement_expressions, walk_expression
from mjolnir.utils.logger import get_logger

logger = get_logger(__name__)

_UNDECLARED = object()


class Lowering:
    """Base class for lowering one dialect's syntax tree into a ContractModel."""

    def __init__(self, warnings: list[ParseWarning]):
        self.warnings = list(warnings)
        self.scopes: list[dict[str, TypeRef | None]] = []
        self.field_types: dict[str, TypeRef] = {}

    # ── Diagnostics ──────────────────────────────────────────

    def warn(self, construct: str, message: str, line: int | None = None) -> None:
        self.warnings.append(ParseWarning(construct, message, line or None))

    # ── Scopes ───────────────────────────────────────────────

    @contextmanager
    def scope(self) -> Iterator[None]:
        self.scopes.append({})
        try:
            yield
        finally:
            self.scopes.pop()

    def declare(self, name: str | None, type_ref: TypeRef | None) -> None:
        if name and self.scopes:
            self.scopes[-1][name] = type_ref

    def _lookup(self, name: str):  # noqa: ANN202
        for frame in reversed(self.scopes):
            if name in frame:
                return frame[name]
        return _UNDECLARED

    def is_local(self, name: str) -> bool:
        return self._lookup(name) is not _UNDECLARED

    def local_type(self, name: str) -> TypeRef | None:
        found = self._lookup(name)
        return None if found is _UNDECLARED else found

    def static_type(self, expr) -> TypeRef | None:  # noqa: ANN001
        """Best-effort declared type of an IR expression."""
        if isinstance(expr, StateRef):
            return self.field_types.get(expr.field)
        if isinstance(expr, Name):
            return self.local_type(expr.name)
        if isinstance(expr, Cast):
            return expr.type
        if isinstance(expr, Index):
            base = self.static_type(expr.base)
            return base.value if base is not None else None
        if isinstance(expr, Member):
            return None
        return None

    # ── Invariants ───────────────────────────────────────────

    def finalize(self, model: ContractModel) -> ContractModel:
        seen_fields: set[str] = set()
        for storage_field in model.fields:
            if storage_field.name in seen_fields:
                raise ContractSyntaxError(
                    f"duplicate storage field '{storage_field.name}'", storage_field.line
                )
            seen_fields.add(storage_field.name)

        seen_signatures: set[tuple[str, tuple[str, ...]]] = set()
        for function in model.functions:
            signature = function.signature
            if signature in seen_signatures:
                types = ", ".join(signature[1])
                raise ContractSyntaxError(
                    f"duplicate function '{function.name}({types})'", function.line
                )
            seen_signatures.add(signature)

        if not model.constructors:
            model.constructors.append(Constructor(implicit=True))

        model.warnings = self.warnings
        logger.debug(
            "Built %s model '%s': %d fields, %d constructors, %d functions, %d events, %d warnings",
            model.dialect.value,
            model.name,
            len(model.fields),
            len(model.constructors),
            len(model.functions),
            len(model.events),
            len(model.warnings),
        )
        return model


def touches_chain(body: list[Statement]) -> bool:
    """True if a body reads/writes storage, queries the environment or calls out."""
    for stmt, _, _ in iter_statements(body):
        if isinstance(stmt, Emit):
            return True
        for root in statement_expressions(stmt):
            for expr in walk_expression(root):
                if isinstance(expr, (StateRef, EnvRef, SelfCall, ExternalCall)):
                    return True
    return False
