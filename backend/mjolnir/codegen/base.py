"""
Base generator class with shared utilities.

Holds the output buffer and indentation, the per-callable type scope, and
the helpers both target generators need: operator precedence, string
quoting, and the mutable-local analysis.
"""

from __future__ import annotations

import json
import textwrap
from contextlib import contextmanager
from typing import Iterator

from mjolnir.codegen.diagnostics import ConversionDiagnostics
from mjolnir.codegen.naming import Namer
from mjolnir.ir.model import (
    Assign,
    Binary,
    ContractModel,
    Dialect,
    Expression,
    Index,
    Loop,
    Member,
    Name,
    Parameter,
    Statement,
    Ternary,
    TypeRef,
    Unsupported,
)
from mjolnir.ir.scope import TypeScope
from mjolnir.ir.visitor import iter_statements

INDENT = "    "

# Higher binds tighter. Both targets rank bitwise operators above comparisons.
PRECEDENCE = {
    "||": 1,
    "&&": 2,
    "==": 3, "!=": 3,
    "<": 4, ">": 4, "<=": 4, ">=": 4,
    "|": 5,
    "^": 6,
    "&": 7,
    "<<": 8, ">>": 8,
    "+": 9, "-": 9,
    "*": 10, "/": 10, "%": 10,
    "**": 11,
}
UNARY_PRECEDENCE = 12
ATOM_PRECEDENCE = 13


def quote(text: str) -> str:
    """Double-quoted literal valid in both Solidity and Rust."""
    return json.dumps(text)


def root_name(expr: Expression) -> str | None:
    while isinstance(expr, (Index, Member)):
        expr = expr.base
    if isinstance(expr, Name):
        return expr.name
    return None


def reassigned_locals(body: list[Statement]) -> set[str]:
    """Locals written after their declaration (need ``let mut`` in Rust)."""
    names = set()
    for stmt, _, _ in iter_statements(body):
        if isinstance(stmt, Assign):
            name = root_name(stmt.target)
            if name is not None:
                names.add(name)
        elif isinstance(stmt, Loop) and stmt.post is not None and isinstance(stmt.post, Assign):
            name = root_name(stmt.post.target)
            if name is not None:
                names.add(name)
    return names


class BaseGenerator:
    """
    Base class for the target generators.

    Subclasses set ``target`` and implement ``generate``.
    """

    target: Dialect

    def __init__(self, model: ContractModel, diagnostics: ConversionDiagnostics | None = None):
        self.model = model
        self.diagnostics = diagnostics or ConversionDiagnostics()
        self.namer = Namer(self.target, self.diagnostics)
        self.scope: TypeScope | None = None
        self._lines: list[str] = []
        self._level = 0

    # ── Output buffer ────────────────────────────────────────

    def emit(self, text: str = "") -> None:
        self._lines.append(f"{INDENT * self._level}{text}" if text else "")

    def blank(self) -> None:
        if self._lines and self._lines[-1] != "":
            self._lines.append("")

    @contextmanager
    def indented(self) -> Iterator[None]:
        self._level += 1
        try:
            yield
        finally:
            self._level -= 1

    @contextmanager
    def block(self, header: str, closer: str = "}") -> Iterator[None]:
        self.emit(f"{header} {{")
        with self.indented():
            yield
        self.emit(closer)

    def opaque(self, stmt: Unsupported) -> None:
        """Copy opaque source verbatim into its own dialect; comment it out otherwise."""
        if not stmt.text:
            self.diagnostics.opaque_source(stmt.construct, stmt.line)
            self.emit(f"// unsupported: {stmt.construct}")
            return
        first, _, rest = stmt.text.partition("\n")
        lines = [first.strip()] + [line.rstrip() for line in textwrap.dedent(rest).splitlines()]
        if self.model.dialect == self.target:
            self.diagnostics.verbatim_source(stmt.construct, stmt.line)
            for line in lines:
                self.emit(line)
            return
        self.diagnostics.opaque_source(stmt.construct, stmt.line)
        self.emit(f"// unsupported: {lines[0]}")
        for line in lines[1:]:
            self.emit(f"// {line}".rstrip())

    def render(self) -> str:
        while self._lines and self._lines[-1] == "":
            self._lines.pop()
        return "\n".join(self._lines) + "\n"

    def generate(self) -> str:
        raise NotImplementedError

    # ── Types ────────────────────────────────────────────────

    def enter_callable(self, parameters: list[Parameter], body: list[Statement]) -> None:
        self.scope = TypeScope(self.model, parameters, body)

    def type_of(self, expr: Expression) -> TypeRef | None:
        if self.scope is None:
            self.scope = TypeScope(self.model, [], [])
        return self.scope.infer(expr)

    # ── Expressions ──────────────────────────────────────────

    @staticmethod
    def precedence(expr: Expression) -> int:
        if isinstance(expr, Binary):
            return PRECEDENCE.get(expr.op, 0)
        if isinstance(expr, Ternary):
            return 0
        return ATOM_PRECEDENCE

    def operand(self, expr: Expression, minimum: int) -> str:
        """Render *expr*, parenthesised if it binds looser than *minimum*."""
        text = self.expr(expr)
        if self.precedence(expr) < minimum:
            return f"({text})"
        return text

    def binary(self, op: str, left: Expression, right: Expression) -> str:
        level = PRECEDENCE.get(op, 0)
        return f"{self.operand(left, level)} {op} {self.operand(right, level + 1)}"

    def arguments(self, args: list[Expression]) -> str:
        return ", ".join(self.expr(a) for a in args)

    def expr(self, expr: Expression) -> str:
        raise NotImplementedError
