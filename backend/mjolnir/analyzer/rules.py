"""
Built-in analysis rules.

Each rule is a pure function from a ContractModel to a list of findings,
registered with a name, a severity and the metric categories its penalties
land in. Registration order is part of the public contract: it breaks ties
when issues are sorted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterator

from mjolnir.analyzer.models import Category, Severity
from mjolnir.ir.model import (
    Assign,
    Binary,
    Builtin,
    CallKind,
    ContractModel,
    Delete,
    Dialect,
    Emit,
    EnvKind,
    EnvRef,
    Expression,
    ExprStatement,
    ExternalCall,
    Function,
    Guard,
    If,
    Literal,
    Loop,
    Name,
    Return,
    Revert,
    SelfCall,
    StateRef,
    Statement,
    Ternary,
    TypeKind,
    Unsupported,
    Visibility,
)
from mjolnir.ir.lower_solidity import DEPRECATED
from mjolnir.ir.scope import TypeScope
from mjolnir.ir.visitor import (
    is_state_write,
    iter_expressions,
    iter_statements,
    read_expressions,
    statement_expressions,
    walk_expression,
)


@dataclass(frozen=True)
class Finding:
    message: str
    line: int | None = None
    recommendation: str | None = None


@dataclass(frozen=True)
class Rule:
    name: str
    severity: Severity
    categories: tuple[Category, ...]
    check: Callable[[ContractModel], list[Finding]]
    description: str = ""


# ── Helpers ───────────────────────────────────────────────────

REENTRANT_CALLS = (CallKind.CALL, CallKind.DELEGATECALL, CallKind.INVOKE)
LOW_LEVEL_CALLS = (CallKind.CALL, CallKind.SEND, CallKind.DELEGATECALL)
ARITHMETIC_OPS = frozenset({"+", "-", "*", "**"})
COMPOUND_ARITHMETIC = {"+=": "+", "-=": "-", "*=": "*"}
EXACT_VERSION = re.compile(r"^=?\s*\d+\.\d+\.\d+$")
SIGNATURE_RECOVERY = frozenset({"ecrecover", "env.ecdsa_recover"})
# Lowering notes that do not hide any code from the rules
INFORMATIONAL_WARNINGS = frozenset({
    "assembly", "cross_contract_call", "interface", "modifier_inlined", "test_module",
})

GAS_SSTORE = 20_000
GAS_SLOAD = 2_100
GAS_CALL = 2_600
GAS_CALL_VALUE = 9_000
GAS_LOG = 375
GAS_TX_BASE = 21_000
GAS_OTHER = 10
GAS_LOOP_FACTOR = 10
GAS_THRESHOLD = 100_000


def _line(stmt: Statement, function: Function) -> int | None:
    return stmt.line if stmt.line is not None else function.line


def _mentions_env(expr: Expression, kind: EnvKind) -> bool:
    return any(isinstance(e, EnvRef) and e.kind == kind for e in walk_expression(expr))


def _conditions(body: list[Statement]) -> Iterator[tuple[Expression, Statement]]:
    """Branch, guard and loop conditions plus ternary conditions nested anywhere."""
    for stmt, _, _ in iter_statements(body):
        if isinstance(stmt, (If, Guard)):
            yield stmt.condition, stmt
        elif isinstance(stmt, Loop) and stmt.condition is not None:
            yield stmt.condition, stmt
        for root in statement_expressions(stmt):
            for expr in walk_expression(root):
                if isinstance(expr, Ternary):
                    yield expr.condition, stmt


def _has_caller_guard(body: list[Statement]) -> bool:
    for stmt, _, _ in iter_statements(body):
        if isinstance(stmt, (If, Guard)) and _mentions_env(stmt.condition, EnvKind.CALLER):
            return True
    return False


def _aborts(statements: list[Statement]) -> bool:
    return any(isinstance(s, (Revert, Return)) for s in statements)


def _identifiers(expr: Expression) -> set[str]:
    found = set()
    for node in walk_expression(expr):
        if isinstance(node, Name):
            found.add(node.name)
        elif isinstance(node, StateRef):
            found.add("self." + node.field)
    return found


def _conjuncts(expr: Expression, joiner: str) -> Iterator[Expression]:
    if isinstance(expr, Binary) and expr.op == joiner:
        yield from _conjuncts(expr.left, joiner)
        yield from _conjuncts(expr.right, joiner)
    else:
        yield expr


def _as_bound(comparison: Expression, holds: bool) -> tuple[Expression, Expression] | None:
    """``(low, high)`` such that ``low <= high`` once *comparison* is known to be *holds*."""
    if not isinstance(comparison, Binary) or comparison.op not in ("<", "<=", ">", ">="):
        return None
    left_is_smaller = comparison.op in ("<", "<=")
    if not holds:
        left_is_smaller = not left_is_smaller
    if left_is_smaller:
        return comparison.left, comparison.right
    return comparison.right, comparison.left


def _bounds(body: list[Statement]) -> list[tuple[Expression, Expression]]:
    """Ordering facts established by requires, asserts and early exits."""
    bounds = []
    for stmt, _, _ in iter_statements(body):
        if isinstance(stmt, Guard):
            facts = [_as_bound(c, True) for c in _conjuncts(stmt.condition, "&&")]
        elif isinstance(stmt, If) and _aborts(stmt.then):
            facts = [_as_bound(c, False) for c in _conjuncts(stmt.condition, "||")]
        elif isinstance(stmt, If) and _aborts(stmt.otherwise):
            facts = [_as_bound(c, True) for c in _conjuncts(stmt.condition, "&&")]
        else:
            continue
        bounds.extend(fact for fact in facts if fact is not None)
    return bounds


def _loop_counters(body: list[Statement]) -> set[str]:
    counters: set[str] = set()
    for stmt, _, _ in iter_statements(body):
        if isinstance(stmt, Loop) and stmt.condition is not None:
            # a counter compared against its bound cannot run past it
            counters |= _identifiers(stmt.condition)
    return counters


def _is_ceiling(expr: Expression) -> bool:
    if isinstance(expr, Literal):
        return True
    if isinstance(expr, (Name, StateRef)):
        name = expr.name if isinstance(expr, Name) else expr.field
        return "max" in name.lower() or "limit" in name.lower() or name.isupper()
    return False


def _contains(expr: Expression, target: Expression) -> bool:
    return any(node == target for node in walk_expression(expr))


def _is_bounded(op: str, left: Expression, right: Expression, bounds: list[tuple[Expression, Expression]]) -> bool:
    if op == "-":
        return any(low == right and high == left for low, high in bounds)
    whole = Binary(op, left, right)
    for low, high in bounds:
        if _contains(low, whole) or _contains(high, whole):
            return True
        if low in (left, right) and _is_ceiling(high):
            return True
    return False


def _callees(function: Function, model: ContractModel) -> list[Function]:
    names = set()
    for expr, _, _ in iter_expressions(function.body):
        if isinstance(expr, SelfCall):
            names.add(expr.name)
    return [f for f in model.functions if f.name in names]


def _reaches(function: Function, model: ContractModel, predicate: Callable[[Function], bool]) -> bool:
    """True if *predicate* holds for *function* or anything it calls."""
    seen: set[int] = set()
    pending = [function]
    while pending:
        current = pending.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        if predicate(current):
            return True
        pending.extend(_callees(current, model))
    return False


def _emits(function: Function) -> bool:
    return any(isinstance(stmt, Emit) for stmt, _, _ in iter_statements(function.body))


def _writes(function: Function) -> bool:
    return any(is_state_write(stmt) for stmt, _, _ in iter_statements(function.body))


# ── Rules ─────────────────────────────────────────────────────


def check_reentrancy(model: ContractModel) -> list[Finding]:
    findings = []
    for function in model.functions:
        if not function.mutability.writes_state:
            continue
        pending_call: Statement | None = None
        for stmt, _, _ in iter_statements(function.body):
            if pending_call is not None and is_state_write(stmt):
                findings.append(Finding(
                    f"Potential reentrancy in '{function.name}': state is written after an external call",
                    _line(pending_call, function),
                    "Apply checks-effects-interactions: perform all state changes before making external calls",
                ))
                break
            if pending_call is None and any(
                isinstance(e, ExternalCall) and e.kind in REENTRANT_CALLS
                for root in statement_expressions(stmt)
                for e in walk_expression(root)
            ):
                pending_call = stmt
    return findings


def check_unbounded_storage(model: ContractModel) -> list[Finding]:
    return [
        Finding(
            f"Storage field '{f.name}' is an unbounded dynamic sequence",
            f.line,
            "Use a keyed mapping with a counter, or bound the sequence length",
        )
        for f in model.fields
        if f.type.is_dynamic_sequence and not f.constant
    ]


def check_event_emission(model: ContractModel) -> list[Finding]:
    findings = []
    for function in model.functions:
        if function.visibility != Visibility.PUBLIC or not function.mutability.writes_state:
            continue
        if not _reaches(function, model, _writes):
            continue
        if _reaches(function, model, _emits):
            continue
        findings.append(Finding(
            f"Missing event emission after state change in '{function.name}'",
            function.line,
            "Emit an event after significant state changes for better off-chain tracking",
        ))
    return findings


def check_unchecked_arithmetic(model: ContractModel) -> list[Finding]:
    findings = []
    for function in model.functions:
        scope = TypeScope(model, function.parameters, function.body)
        bounds = _bounds(function.body)
        counters = _loop_counters(function.body)
        for stmt, _, in_unchecked in iter_statements(function.body):
            if model.checked_arithmetic and not in_unchecked:
                continue
            operations: list[tuple[str, Expression, Expression]] = []
            if isinstance(stmt, Assign) and stmt.op in COMPOUND_ARITHMETIC:
                operations.append((COMPOUND_ARITHMETIC[stmt.op], stmt.target, stmt.value))
            for root in statement_expressions(stmt):
                for expr in walk_expression(root):
                    if isinstance(expr, Binary) and expr.op in ARITHMETIC_OPS and not expr.checked:
                        operations.append((expr.op, expr.left, expr.right))
            if any(_is_unguarded_overflow(*operation, scope, bounds, counters) for operation in operations):
                findings.append(Finding(
                    f"Potential integer overflow/underflow in '{function.name}'",
                    _line(stmt, function),
                    "Use checked arithmetic (checked_add/checked_sub or a >=0.8 compiler) "
                    "or guard the operands before the operation",
                ))
                break
    return findings


def _is_unguarded_overflow(
    op: str,
    left: Expression,
    right: Expression,
    scope: TypeScope,
    bounds: list[tuple[Expression, Expression]],
    counters: set[str],
) -> bool:
    if isinstance(left, Literal) and isinstance(right, Literal):
        return False
    if not (scope.is_integer(left) or scope.is_integer(right)):
        return False
    if (_identifiers(left) | _identifiers(right)) & counters:
        return False
    return not _is_bounded(op, left, right, bounds)


def check_tx_origin(model: ContractModel) -> list[Finding]:
    findings = []
    for function in model.functions:
        for expr, stmt, _ in iter_expressions(function.body):
            if isinstance(expr, EnvRef) and expr.kind == EnvKind.ORIGIN:
                findings.append(Finding(
                    f"Use of tx.origin in '{function.name}'",
                    _line(stmt, function),
                    "Use msg.sender (the immediate caller) for authorization instead of tx.origin",
                ))
                break
    return findings


def check_unprotected_selfdestruct(model: ContractModel) -> list[Finding]:
    findings = []
    for function in model.functions:
        for expr, stmt, _ in iter_expressions(function.body):
            if isinstance(expr, Builtin) and expr.name == "selfdestruct":
                if not _has_caller_guard(function.body):
                    findings.append(Finding(
                        f"Unprotected self-destruct in '{function.name}'",
                        _line(stmt, function),
                        "Restrict contract termination to an authorized caller",
                    ))
                break
    return findings


def check_unchecked_call(model: ContractModel) -> list[Finding]:
    findings = []
    for function in model.functions:
        for stmt, _, _ in iter_statements(function.body):
            if (
                isinstance(stmt, ExprStatement)
                and isinstance(stmt.expression, ExternalCall)
                and stmt.expression.kind in LOW_LEVEL_CALLS
            ):
                findings.append(Finding(
                    f"Unchecked return value from low-level {stmt.expression.method or stmt.expression.kind.value} "
                    f"in '{function.name}'",
                    _line(stmt, function),
                    "Check the returned success flag, or use a call that reverts on failure",
                ))
    return findings


def check_loop_external_call(model: ContractModel) -> list[Finding]:
    findings = []
    for function in model.functions:
        for expr, stmt, depth in iter_expressions(function.body):
            if depth > 0 and isinstance(expr, ExternalCall):
                findings.append(Finding(
                    f"External call inside a loop in '{function.name}'",
                    _line(stmt, function),
                    "Avoid external calls in loops; a single failing or expensive call can block the whole "
                    "operation (prefer a pull-payment pattern)",
                ))
                break
    return findings


def check_storage_in_loop(model: ContractModel) -> list[Finding]:
    findings = []
    for function in model.functions:
        for stmt, depth, _ in iter_statements(function.body):
            if depth > 0 and is_state_write(stmt):
                findings.append(Finding(
                    f"Storage write inside a loop in '{function.name}'",
                    _line(stmt, function),
                    "Accumulate in a local variable and write storage once after the loop",
                ))
                break
    return findings


def check_timestamp_dependence(model: ContractModel) -> list[Finding]:
    findings = []
    for function in model.functions:
        for condition, stmt in _conditions(function.body):
            if _mentions_env(condition, EnvKind.TIMESTAMP):
                findings.append(Finding(
                    f"Contract logic in '{function.name}' depends on the block timestamp",
                    _line(stmt, function),
                    "Block timestamps can be skewed by block producers; avoid them for critical decisions",
                ))
                break
    return findings


def check_weak_randomness(model: ContractModel) -> list[Finding]:
    findings = []
    for function in model.functions:
        for expr, stmt, _ in iter_expressions(function.body):
            if isinstance(expr, EnvRef) and expr.kind in (EnvKind.PREVRANDAO, EnvKind.BLOCKHASH):
                source = "blockhash" if expr.kind == EnvKind.BLOCKHASH else "block randomness"
                findings.append(Finding(
                    f"Weak randomness using {source} in '{function.name}'",
                    _line(stmt, function),
                    "Use a verifiable randomness source (oracle or commit-reveal scheme)",
                ))
                break
    return findings


def check_access_control(model: ContractModel) -> list[Finding]:
    findings = []
    for function in model.functions:
        if function.visibility != Visibility.PUBLIC or not function.mutability.writes_state:
            continue
        if _has_caller_guard(function.body):
            continue
        sensitive: Statement | None = None
        for stmt, _, _ in iter_statements(function.body):
            if isinstance(stmt, Assign) and stmt.op == "=" and isinstance(stmt.target, StateRef):
                target_field = model.field_named(stmt.target.field)
                if target_field is not None and target_field.type.kind == TypeKind.ADDRESS:
                    sensitive = stmt
                    break
            if any(
                isinstance(e, ExternalCall) and (e.kind in (CallKind.TRANSFER, CallKind.SEND) or e.value is not None)
                for root in statement_expressions(stmt)
                for e in walk_expression(root)
            ):
                sensitive = stmt
                break
        if sensitive is not None:
            findings.append(Finding(
                f"Function '{function.name}' may lack proper access control",
                _line(sensitive, function),
                "Check the caller (e.g. an owner check) before transferring value or changing privileged addresses",
            ))
    return findings


def check_floating_pragma(model: ContractModel) -> list[Finding]:
    if model.dialect != Dialect.SOLIDITY:
        return []
    constraint = (model.version_constraint or "").strip()
    if constraint and EXACT_VERSION.match(constraint):
        return []
    shown = constraint or "missing"
    return [Finding(
        f"Floating pragma version ({shown})",
        model.version_line,
        "Pin the compiler version (e.g. pragma solidity 0.8.19;) to the one the contract was tested with",
    )]


def estimate_gas(function: Function) -> int:
    """Heuristic upper estimate of one call's gas; loops multiply their bodies."""
    total = GAS_TX_BASE if function.visibility == Visibility.PUBLIC else 0
    for stmt, depth, _ in iter_statements(function.body):
        cost = 0
        if is_state_write(stmt):
            cost += GAS_SSTORE
        for root in read_expressions(stmt):
            for expr in walk_expression(root):
                if isinstance(expr, StateRef):
                    cost += GAS_SLOAD
                elif isinstance(expr, ExternalCall):
                    cost += GAS_CALL
                    if expr.value is not None:
                        cost += GAS_CALL_VALUE
        if isinstance(stmt, Emit):
            cost += GAS_LOG + GAS_LOG * len(stmt.args)
        if cost == 0 and not isinstance(stmt, (If, Loop, Delete)):
            cost = GAS_OTHER
        total += cost * GAS_LOOP_FACTOR ** depth
    return total


def check_gas_hotspot(model: ContractModel) -> list[Finding]:
    findings = []
    for function in model.functions:
        estimate = estimate_gas(function)
        if estimate > GAS_THRESHOLD:
            findings.append(Finding(
                f"Function '{function.name}' has a high estimated gas cost (~{estimate:,})",
                function.line,
                "Reduce storage writes and loop work, or split the operation into smaller calls",
            ))
    return findings


def _callables(model: ContractModel) -> Iterator[tuple[str, list[Statement], int | None]]:
    for constructor in model.constructors:
        yield "constructor", constructor.body, constructor.line
    for function in model.functions:
        yield function.name, function.body, function.line


def check_assembly_usage(model: ContractModel) -> list[Finding]:
    findings = []
    for name, body, line in _callables(model):
        for stmt, _, _ in iter_statements(body):
            if not (isinstance(stmt, Unsupported) and stmt.construct == "assembly"):
                continue
            text = stmt.text or ""
            if "//" in text or "/*" in text:
                continue
            findings.append(Finding(
                f"Assembly block without documentation in '{name}'",
                stmt.line if stmt.line is not None else line,
                "Document assembly blocks with comments explaining their purpose and behaviour",
            ))
    return findings


def check_deprecated_patterns(model: ContractModel) -> list[Finding]:
    return [
        Finding(
            f"Use of deprecated function or pattern: {warning.construct}",
            warning.line,
            f"Replace with {DEPRECATED[warning.construct]}",
        )
        for warning in model.warnings
        if warning.construct in DEPRECATED
    ]


def check_missing_visibility(model: ContractModel) -> list[Finding]:
    if model.dialect != Dialect.SOLIDITY:
        return []
    return [
        Finding(
            f"Function '{function.name}' is missing an explicit visibility specifier",
            function.line,
            "Always specify function visibility (public, private, internal or external)",
        )
        for function in model.functions
        if not function.explicit_visibility
    ]


def check_signature_malleability(model: ContractModel) -> list[Finding]:
    findings = []
    for name, body, line in _callables(model):
        for expr, stmt, _ in iter_expressions(body):
            if isinstance(expr, Builtin) and expr.name in SIGNATURE_RECOVERY:
                findings.append(Finding(
                    f"Potential signature malleability in '{name}'",
                    stmt.line if stmt.line is not None else line,
                    "Reject high-s signatures and check the recovered address, "
                    "or use a vetted ECDSA library",
                ))
                break
    return findings


def check_force_send_ether(model: ContractModel) -> list[Finding]:
    for _, body, line in _callables(model):
        for expr, stmt, _ in iter_expressions(body):
            if isinstance(expr, Builtin) and expr.name == "selfdestruct":
                return [Finding(
                    "Contract uses selfdestruct which can force-send ether",
                    stmt.line if stmt.line is not None else line,
                    "Contracts can receive ether through selfdestruct without a payable entry point; "
                    "never rely on the balance matching deposits",
                )]
    return []


def check_unmodelled_construct(model: ContractModel) -> list[Finding]:
    return [
        Finding(
            f"Code not analysed: {warning.message}",
            warning.line,
            "Review this code by hand; the analyzer could not model it",
        )
        for warning in model.warnings
        if warning.construct not in INFORMATIONAL_WARNINGS and warning.construct not in DEPRECATED
    ]


# ── Registry ──────────────────────────────────────────────────

RULES: tuple[Rule, ...] = (
    Rule("reentrancy", Severity.HIGH, (Category.SECURITY, Category.PERFORMANCE), check_reentrancy,
         "External call before a state write in a mutating function"),
    Rule("unbounded_storage", Severity.MEDIUM, (Category.GAS_EFFICIENCY,), check_unbounded_storage,
         "Storage field holding an unkeyed dynamic sequence"),
    Rule("event_emission", Severity.LOW, (Category.CODE_QUALITY,), check_event_emission,
         "State-changing function that emits no event"),
    Rule("unchecked_arithmetic", Severity.HIGH, (Category.SECURITY,), check_unchecked_arithmetic,
         "Integer arithmetic without overflow protection"),
    Rule("tx_origin", Severity.HIGH, (Category.SECURITY,), check_tx_origin,
         "Use of tx.origin"),
    Rule("unprotected_selfdestruct", Severity.HIGH, (Category.SECURITY,), check_unprotected_selfdestruct,
         "Contract termination without a caller check"),
    Rule("unchecked_call", Severity.HIGH, (Category.SECURITY,), check_unchecked_call,
         "Discarded result of a low-level call"),
    Rule("loop_external_call", Severity.HIGH, (Category.SECURITY, Category.GAS_EFFICIENCY), check_loop_external_call,
         "External call inside a loop"),
    Rule("storage_in_loop", Severity.MEDIUM, (Category.GAS_EFFICIENCY, Category.PERFORMANCE), check_storage_in_loop,
         "Storage write inside a loop"),
    Rule("timestamp_dependence", Severity.MEDIUM, (Category.SECURITY,), check_timestamp_dependence,
         "Block timestamp used in a condition"),
    Rule("weak_randomness", Severity.MEDIUM, (Category.SECURITY,), check_weak_randomness,
         "Block-derived randomness"),
    Rule("access_control", Severity.MEDIUM, (Category.SECURITY,), check_access_control,
         "Value transfer or privileged address change without a caller check"),
    Rule("floating_pragma", Severity.LOW, (Category.CODE_QUALITY,), check_floating_pragma,
         "Unpinned Solidity compiler version"),
    Rule("gas_hotspot", Severity.LOW, (Category.GAS_EFFICIENCY,), check_gas_hotspot,
         "Heuristic gas estimate above 100,000"),
    Rule("assembly_usage", Severity.MEDIUM, (Category.CODE_QUALITY,), check_assembly_usage,
         "Inline assembly without documentation"),
    Rule("deprecated_patterns", Severity.MEDIUM, (Category.CODE_QUALITY,), check_deprecated_patterns,
         "Pre-0.5 Solidity functions and statements"),
    Rule("missing_visibility", Severity.LOW, (Category.CODE_QUALITY,), check_missing_visibility,
         "Solidity function without a visibility keyword"),
    Rule("signature_malleability", Severity.MEDIUM, (Category.SECURITY,), check_signature_malleability,
         "Raw signature recovery"),
    Rule("force_send_ether", Severity.MEDIUM, (Category.SECURITY,), check_force_send_ether,
         "selfdestruct can push ether into any contract"),
    Rule("unmodelled_construct", Severity.LOW, (Category.CODE_QUALITY,), check_unmodelled_construct,
         "Source the front end kept opaque or dropped"),
)

RULES_BY_NAME: dict[str, Rule] = {rule.name: rule for rule in RULES}
