"""
Best-effort static typing of IR expressions inside one callable.

Used by the overflow rule (is this operand an integer?) and by the code
generators (what type should an untyped local be declared with?).
"""

from __future__ import annotations

from mjolnir.ir.model import (
    ADDRESS,
    BOOL,
    STRING,
    Binary,
    Builtin,
    CallKind,
    Cast,
    ContractModel,
    EnvKind,
    EnvRef,
    Expression,
    ExternalCall,
    Index,
    Literal,
    LocalVar,
    Loop,
    Member,
    Name,
    Parameter,
    SelfCall,
    StateRef,
    Statement,
    Ternary,
    TypeRef,
    Unary,
    integer,
)
from mjolnir.ir.visitor import iter_statements

ARITHMETIC = frozenset({"+", "-", "*", "/", "%", "**", "<<", ">>", "&", "|", "^"})
LOGICAL = frozenset({"&&", "||", "==", "!=", "<", ">", "<=", ">="})
UINT256 = integer(256)
ENV_TYPES = {
    EnvKind.CALLER: ADDRESS,
    EnvKind.ORIGIN: ADDRESS,
    EnvKind.THIS: ADDRESS,
    EnvKind.VALUE: UINT256,
    EnvKind.TIMESTAMP: UINT256,
    EnvKind.BLOCK_NUMBER: UINT256,
    EnvKind.BALANCE: UINT256,
    EnvKind.PREVRANDAO: UINT256,
}


class TypeScope:
    """Declared and inferred types visible inside one function body."""

    def __init__(self, model: ContractModel, parameters: list[Parameter], body: list[Statement]):
        self.model = model
        self.fields = {f.name: f.type for f in model.fields}
        self.locals: dict[str, TypeRef | None] = {p.name: p.type for p in parameters}
        for stmt, _, _ in iter_statements(body):
            if isinstance(stmt, LocalVar):
                declared = stmt.type
                if declared is None and stmt.value is not None:
                    declared = self.infer(stmt.value)
                self.locals[stmt.name] = declared
            elif isinstance(stmt, Loop) and stmt.each_var and stmt.iterable is not None:
                iterable = self.infer(stmt.iterable)
                self.locals[stmt.each_var] = iterable.value if iterable is not None else None

    def infer(self, expr: Expression | None) -> TypeRef | None:
        if expr is None:
            return None
        if isinstance(expr, Literal):
            if expr.kind in ("number", "hex"):
                return UINT256
            return {"bool": BOOL, "string": STRING, "address": ADDRESS}.get(expr.kind)
        if isinstance(expr, StateRef):
            return self.fields.get(expr.field)
        if isinstance(expr, Name):
            return self.locals.get(expr.name)
        if isinstance(expr, Index):
            base = self.infer(expr.base)
            return base.value if base is not None else None
        if isinstance(expr, Cast):
            return expr.type
        if isinstance(expr, Binary):
            if expr.op in LOGICAL:
                return BOOL
            left = self.infer(expr.left)
            # an untyped literal on the left defers to the other operand
            if left is None or (isinstance(expr.left, Literal) and not isinstance(expr.right, Literal)):
                return self.infer(expr.right) or left
            return left
        if isinstance(expr, Unary):
            return self.infer(expr.operand)
        if isinstance(expr, Ternary):
            return self.infer(expr.if_true) or self.infer(expr.if_false)
        if isinstance(expr, EnvRef):
            return ENV_TYPES.get(expr.kind)
        if isinstance(expr, Member) and expr.member == "length":
            return UINT256
        if isinstance(expr, SelfCall):
            callee = self.model.function_named(expr.name)
            return callee.returns if callee is not None else None
        if isinstance(expr, ExternalCall) and expr.kind in (CallKind.SEND, CallKind.CALL, CallKind.DELEGATECALL):
            return BOOL
        if isinstance(expr, Builtin) and expr.name == "contains":
            return BOOL
        return None

    def is_integer(self, expr: Expression) -> bool:
        type_ref = self.infer(expr)
        return type_ref is not None and type_ref.is_integer
