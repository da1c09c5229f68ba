"""
Optional model rewrites applied before generation when ``optimize`` is set.

Works on a deep copy so the caller's model is never modified. Two passes:
constant folding of literal arithmetic, comparison and boolean expressions,
and removal of private storage fields nothing references.
"""

from __future__ import annotations

import copy
import operator

from mjolnir.codegen.diagnostics import ConversionDiagnostics
from mjolnir.ir.model import (
    Binary,
    ContractModel,
    Expression,
    Literal,
    StateRef,
    Ternary,
    Unary,
    Visibility,
)
from mjolnir.ir.visitor import iter_expressions, transform_expression, transform_statements, walk_expression
from mjolnir.utils.logger import get_logger

logger = get_logger(__name__)

MAX_UINT = 2**256 - 1
INTEGER_OPS = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.floordiv,
    "%": operator.mod,
    "**": operator.pow,
    "<<": operator.lshift,
    ">>": operator.rshift,
    "&": operator.and_,
    "|": operator.or_,
    "^": operator.xor,
}
COMPARISONS = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
}


def _number(expr: Expression) -> int | None:
    if isinstance(expr, Literal) and expr.kind in ("number", "hex"):
        try:
            return int(expr.value, 0)
        except ValueError:
            return None
    return None


def _boolean(expr: Expression) -> bool | None:
    if isinstance(expr, Literal) and expr.kind == "bool":
        return expr.value == "true"
    return None


def _bool_literal(value: bool) -> Literal:
    return Literal("true" if value else "false", "bool")


class ConstantFolder:
    """Bottom-up folding; counts every rewrite it makes."""

    def __init__(self) -> None:
        self.folded = 0

    def __call__(self, expr: Expression) -> Expression:
        result = self.fold(expr)
        if result is not expr:
            self.folded += 1
        return result

    def fold(self, expr: Expression) -> Expression:
        if isinstance(expr, Binary):
            return self.fold_binary(expr)
        if isinstance(expr, Unary) and expr.op == "!":
            value = _boolean(expr.operand)
            if value is not None:
                return _bool_literal(not value)
        if isinstance(expr, Ternary):
            condition = _boolean(expr.condition)
            if condition is not None:
                return expr.if_true if condition else expr.if_false
        return expr

    def fold_binary(self, expr: Binary) -> Expression:
        left, right = _number(expr.left), _number(expr.right)
        if left is not None and right is not None:
            if expr.op in COMPARISONS:
                return _bool_literal(COMPARISONS[expr.op](left, right))
            if expr.op in INTEGER_OPS:
                if expr.op in ("/", "%") and right == 0:
                    return expr
                if expr.op == "**" and right > 256:
                    return expr
                if expr.op in ("<<", ">>") and right > 256:
                    return expr
                result = INTEGER_OPS[expr.op](left, right)
                if 0 <= result <= MAX_UINT:
                    return Literal(str(result), "number")
            return expr

        left_bool, right_bool = _boolean(expr.left), _boolean(expr.right)
        if left_bool is not None and right_bool is not None:
            if expr.op == "&&":
                return _bool_literal(left_bool and right_bool)
            if expr.op == "||":
                return _bool_literal(left_bool or right_bool)
            if expr.op in ("==", "!="):
                return _bool_literal((left_bool == right_bool) == (expr.op == "=="))
        return expr


def fold_constants(model: ContractModel) -> int:
    folder = ConstantFolder()
    for storage_field in model.fields:
        if storage_field.default is not None:
            storage_field.default = transform_expression(storage_field.default, folder)
    for constructor in model.constructors:
        constructor.body = transform_statements(constructor.body, folder)
    for function in model.functions:
        function.body = transform_statements(function.body, folder)
    return folder.folded


def referenced_fields(model: ContractModel) -> set[str]:
    referenced = set()
    bodies = [c.body for c in model.constructors] + [f.body for f in model.functions]
    for body in bodies:
        for expr, _, _ in iter_expressions(body):
            if isinstance(expr, StateRef):
                referenced.add(expr.field)
    for constructor in model.constructors:
        for arg in constructor.delegate_args:
            referenced.update(e.field for e in walk_expression(arg) if isinstance(e, StateRef))
    for storage_field in model.fields:
        if storage_field.default is not None:
            referenced.update(e.field for e in walk_expression(storage_field.default) if isinstance(e, StateRef))
    return referenced


def optimize(model: ContractModel, diagnostics: ConversionDiagnostics) -> ContractModel:
    """Return an optimised copy of *model*; rewrites are recorded in *diagnostics*."""
    model = copy.deepcopy(model)

    folded = fold_constants(model)
    if folded:
        diagnostics.optimization("constant_folding", f"folded {folded} constant expression(s)")

    referenced = referenced_fields(model)
    kept = []
    for storage_field in model.fields:
        if storage_field.visibility == Visibility.PRIVATE and storage_field.name not in referenced:
            diagnostics.optimization("unused_field", f"removed unused private field '{storage_field.name}'")
            continue
        kept.append(storage_field)
    removed = len(model.fields) - len(kept)
    model.fields = kept

    logger.debug("Optimised '%s': %d folds, %d fields removed", model.name, folded, removed)
    return model
