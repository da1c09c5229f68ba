"""
Traversal helpers over the IR.

Rules, the optimiser and the generators all need the same walks: statements
in execution order (with loop depth), every expression hanging off a
statement, and rebuilding expressions bottom-up.
"""

from __future__ import annotations

import dataclasses
from typing import Callable, Iterator

from mjolnir.ir.model import (
    Assign,
    Delete,
    Emit,
    Expression,
    ExprStatement,
    Guard,
    If,
    Index,
    LocalVar,
    Loop,
    Member,
    Return,
    StateRef,
    Statement,
    Unchecked,
)


def iter_statements(
    statements: list[Statement],
    loop_depth: int = 0,
    unchecked: bool = False,
) -> Iterator[tuple[Statement, int, bool]]:
    """Yield ``(statement, loop_depth, in_unchecked)`` in source order."""
    for stmt in statements:
        yield stmt, loop_depth, unchecked
        if isinstance(stmt, If):
            yield from iter_statements(stmt.then, loop_depth, unchecked)
            yield from iter_statements(stmt.otherwise, loop_depth, unchecked)
        elif isinstance(stmt, Loop):
            if stmt.init is not None:
                yield from iter_statements([stmt.init], loop_depth, unchecked)
            yield from iter_statements(stmt.body, loop_depth + 1, unchecked)
            if stmt.post is not None:
                yield from iter_statements([stmt.post], loop_depth + 1, unchecked)
        elif isinstance(stmt, Unchecked):
            yield from iter_statements(stmt.body, loop_depth, True)


def statement_expressions(stmt: Statement) -> list[Expression]:
    """Expressions owned directly by *stmt* (not by nested statements)."""
    if isinstance(stmt, Assign):
        return [stmt.target, stmt.value]
    if isinstance(stmt, LocalVar):
        return [stmt.value] if stmt.value is not None else []
    if isinstance(stmt, If):
        return [stmt.condition]
    if isinstance(stmt, Loop):
        exprs = []
        if stmt.condition is not None:
            exprs.append(stmt.condition)
        if stmt.iterable is not None:
            exprs.append(stmt.iterable)
        return exprs
    if isinstance(stmt, ExprStatement):
        return [stmt.expression]
    if isinstance(stmt, Emit):
        return list(stmt.args)
    if isinstance(stmt, Return):
        return [stmt.value] if stmt.value is not None else []
    if isinstance(stmt, Guard):
        return [stmt.condition]
    if isinstance(stmt, Delete):
        return [stmt.target]
    return []


def _children(expr: Expression) -> Iterator[Expression]:
    for f in dataclasses.fields(expr):
        value = getattr(expr, f.name)
        if isinstance(value, Expression):
            yield value
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, Expression):
                    yield item


def walk_expression(expr: Expression) -> Iterator[Expression]:
    """Pre-order walk over *expr* and all its sub-expressions."""
    yield expr
    for child in _children(expr):
        yield from walk_expression(child)


def iter_expressions(statements: list[Statement]) -> Iterator[tuple[Expression, Statement, int]]:
    """Every expression node reachable from *statements*, with its owner and loop depth."""
    for stmt, depth, _ in iter_statements(statements):
        for root in statement_expressions(stmt):
            for expr in walk_expression(root):
                yield expr, stmt, depth


def transform_expression(expr: Expression, fn: Callable[[Expression], Expression]) -> Expression:
    """Rebuild *expr* bottom-up, applying *fn* to every node after its children."""
    changes = {}
    for f in dataclasses.fields(expr):
        value = getattr(expr, f.name)
        if isinstance(value, Expression):
            changes[f.name] = transform_expression(value, fn)
        elif isinstance(value, list) and any(isinstance(v, Expression) for v in value):
            changes[f.name] = [
                transform_expression(v, fn) if isinstance(v, Expression) else v for v in value
            ]
    rebuilt = dataclasses.replace(expr, **changes) if changes else expr
    return fn(rebuilt)


def transform_statements(
    statements: list[Statement],
    fn: Callable[[Expression], Expression],
) -> list[Statement]:
    """Apply :func:`transform_expression` to every expression in a body."""
    result = []
    for stmt in statements:
        changes = {}
        for f in dataclasses.fields(stmt):
            value = getattr(stmt, f.name)
            if isinstance(value, Expression):
                changes[f.name] = transform_expression(value, fn)
            elif isinstance(value, Statement):
                changes[f.name] = transform_statements([value], fn)[0]
            elif isinstance(value, list) and value and isinstance(value[0], Statement):
                changes[f.name] = transform_statements(value, fn)
            elif isinstance(value, list) and any(isinstance(v, Expression) for v in value):
                changes[f.name] = [transform_expression(v, fn) for v in value]
        result.append(dataclasses.replace(stmt, **changes) if changes else stmt)
    return result


# ── State access ─────────────────────────────────────────────


def state_root(expr: Expression) -> str | None:
    """Storage field at the root of an lvalue such as ``balances[a].x``."""
    while isinstance(expr, (Index, Member)):
        expr = expr.base
    if isinstance(expr, StateRef):
        return expr.field
    return None


def is_state_write(stmt: Statement) -> bool:
    if isinstance(stmt, (Assign, Delete)):
        return state_root(stmt.target) is not None
    if isinstance(stmt, ExprStatement):
        # arr.push(x) / arr.pop() mutate a storage sequence in place
        call = stmt.expression
        function = getattr(call, "function", None)
        if isinstance(function, Member) and function.member in ("push", "pop"):
            return state_root(function.base) is not None
    return False


def state_writes(statements: list[Statement]) -> set[str]:
    written = set()
    for stmt, _, _ in iter_statements(statements):
        if is_state_write(stmt):
            target = stmt.target if isinstance(stmt, (Assign, Delete)) else stmt.expression.function.base
            written.add(state_root(target))
    return written


def read_expressions(stmt: Statement) -> list[Expression]:
    """Like :func:`statement_expressions`, minus the plain target of ``=``."""
    if isinstance(stmt, Assign) and stmt.op == "=":
        # the target itself is not a read, but its index expressions are
        return [stmt.value] + _index_operands(stmt.target)
    return statement_expressions(stmt)


def state_reads(statements: list[Statement]) -> set[str]:
    """Fields referenced anywhere other than as the plain target of ``=``."""
    read = set()
    for stmt, _, _ in iter_statements(statements):
        for root in read_expressions(stmt):
            for expr in walk_expression(root):
                if isinstance(expr, StateRef):
                    read.add(expr.field)
    return read


def _index_operands(target: Expression) -> list[Expression]:
    operands = []
    while isinstance(target, (Index, Member)):
        if isinstance(target, Index):
            operands.append(target.index)
        target = target.base
    return operands
