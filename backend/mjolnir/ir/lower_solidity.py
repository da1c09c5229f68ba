"""
Solidity syntax tree to IR.

Resolves identifiers against parameters, locals and storage fields, maps
`msg`/`block`/`tx` members to environment references, classifies value
transfers and calls through contract-typed values as external calls, and
inlines modifiers at their `_;` placeholder.
"""

from __future__ import annotations

import copy
import re
from typing import Callable

from mjolnir.errors import NotAContract
from mjolnir.frontend import ast_nodes as syn
from mjolnir.ir.builder import Lowering
from mjolnir.ir.model import (
    ADDRESS,
    BOOL,
    BYTES,
    STRING,
    Assign,
    Binary,
    Break,
    Builtin,
    Call,
    CallKind,
    Cast,
    Constructor,
    Continue,
    ContractModel,
    Delete,
    Dialect,
    Emit,
    EnvKind,
    EnvRef,
    Event,
    EventField,
    Expression,
    ExprStatement,
    ExternalCall,
    Function,
    Guard,
    If,
    Index,
    Literal,
    LocalVar,
    Loop,
    Member,
    Mutability,
    Name,
    Parameter,
    ParseWarning,
    Return,
    Revert,
    SelfCall,
    StateRef,
    Statement,
    StorageField,
    Ternary,
    TypeKind,
    TypeRef,
    Unary,
    Unchecked,
    Unsupported,
    Visibility,
    composite,
    integer,
    mapping,
    sequence,
)

INTEGER_TYPE = re.compile(r"^(u?)int(\d*)$")
FIXED_BYTES_TYPE = re.compile(r"^bytes(\d+)$")
VERSION = re.compile(r"(\d+)\.(\d+)")

MSG_MEMBERS = {"sender": EnvKind.CALLER, "value": EnvKind.VALUE}
BLOCK_MEMBERS = {
    "timestamp": EnvKind.TIMESTAMP,
    "number": EnvKind.BLOCK_NUMBER,
    "prevrandao": EnvKind.PREVRANDAO,
    "difficulty": EnvKind.PREVRANDAO,
}
TX_MEMBERS = {"origin": EnvKind.ORIGIN}
HASH_BUILTINS = frozenset({
    "keccak256", "sha256", "sha3", "ripemd160", "ecrecover", "addmod", "mulmod", "gasleft",
})
# Pre-0.5 spellings and what replaced them
DEPRECATED = {
    "suicide": "selfdestruct",
    "sha3": "keccak256",
    "throw": "revert()",
    "msg.gas": "gasleft()",
    "block.blockhash": "blockhash",
}
MUTABILITY = {"pure": Mutability.PURE, "view": Mutability.VIEW, "payable": Mutability.PAYABLE}


def checked_by_default(pragma: str | None) -> bool:
    """Solidity checks integer overflow from 0.8 on; no pragma means a current compiler."""
    if not pragma:
        return True
    found = VERSION.search(pragma)
    if not found:
        return True
    return (int(found.group(1)), int(found.group(2))) >= (0, 8)


class SolidityLowering(Lowering):
    def __init__(self, unit: syn.SourceUnit, warnings: list[ParseWarning]):
        super().__init__(warnings)
        self.unit = unit
        self.contract: syn.ContractDefinition | None = None
        self.composites: set[str] = set()
        self.contract_types: set[str] = set()
        self.libraries: set[str] = set()
        self.function_names: set[str] = set()
        self.modifiers: dict[str, syn.FunctionDefinition] = {}
        self.substitutions: dict[str, Expression] = {}
        self.placeholders: list[Callable[[], list[Statement]]] = []

    # ── Contract ─────────────────────────────────────────────

    def build(self) -> ContractModel:
        contracts = [c for c in self.unit.contracts if c.kind == "contract"]
        if not contracts:
            raise NotAContract("Source declares no Solidity contract (only interfaces or libraries).")
        contract = self.contract = contracts[0]
        for other in self.unit.contracts:
            if other is contract:
                continue
            if other.kind == "library":
                self.libraries.add(other.name)
            else:
                self.contract_types.add(other.name)
            self.warn(other.kind, f"{other.kind} '{other.name}' is not modelled; only '{contract.name}' is", other.line)
        if contract.bases:
            self.warn("inheritance", f"inherited members of {', '.join(contract.bases)} are not modelled", contract.line)

        self.composites = set(contract.structs) | set(contract.enums)
        self.function_names = {f.name for f in contract.functions if f.kind == "function"}
        self.modifiers = {m.name: m for m in contract.modifiers}

        model = ContractModel(
            contract.name,
            Dialect.SOLIDITY,
            version_constraint=self.unit.pragma,
            version_line=self.unit.pragma_line or None,
            checked_arithmetic=checked_by_default(self.unit.pragma),
        )

        for var in contract.state_variables:
            type_ref = self.type_of(var.type)
            self.field_types[var.name] = type_ref
            visibility = Visibility.PUBLIC if var.visibility == "public" else Visibility.PRIVATE
            model.fields.append(
                StorageField(var.name, type_ref, visibility, constant=var.constant, line=var.line)
            )
        for storage_field, var in zip(model.fields, contract.state_variables):
            if var.value is not None:
                with self.scope():
                    storage_field.default = self.lower_expr(var.value)

        for event in contract.events:
            fields = [
                EventField(p.name or f"arg{i}", self.type_of(p.type), p.indexed)
                for i, p in enumerate(event.params)
            ]
            model.events.append(Event(event.name, fields, event.anonymous, event.line))
        model.errors = list(contract.errors)

        for definition in contract.functions:
            if definition.kind in ("receive", "fallback"):
                self.warn(definition.kind, f"{definition.kind}() is not modelled", definition.line)
            elif definition.kind == "constructor":
                model.constructors.append(self.lower_constructor(definition))
            elif definition.body is None:
                self.warn("abstract_function", f"function '{definition.name}' has no body and is skipped", definition.line)
            else:
                model.functions.append(self.lower_function(definition))

        return self.finalize(model)

    # ── Types ────────────────────────────────────────────────

    def type_of(self, type_name: syn.TypeName) -> TypeRef:
        name = type_name.name
        if name == "mapping":
            return mapping(self.type_of(type_name.args[0]), self.type_of(type_name.args[1]))
        if name == "[]":
            length = int(type_name.length) if type_name.length and type_name.length.isdigit() else None
            return sequence(self.type_of(type_name.args[0]), length)
        if name == "bool":
            return BOOL
        if name == "address":
            return ADDRESS
        if name == "string":
            return STRING
        if name == "bytes":
            return BYTES
        if name == "byte":
            return TypeRef(TypeKind.BYTES, length=1)
        if found := FIXED_BYTES_TYPE.match(name):
            return TypeRef(TypeKind.BYTES, length=int(found.group(1)))
        if found := INTEGER_TYPE.match(name):
            return integer(int(found.group(2) or 256), signed=not found.group(1))
        return composite(name)

    def is_contract_typed(self, expr: Expression) -> bool:
        type_ref = self.static_type(expr)
        return (
            type_ref is not None
            and type_ref.kind == TypeKind.COMPOSITE
            and type_ref.name not in self.composites
            and type_ref.name not in self.libraries
        )

    # ── Callables ────────────────────────────────────────────

    def lower_parameters(self, params: list[syn.Param]) -> list[Parameter]:
        lowered = []
        for i, param in enumerate(params):
            type_ref = self.type_of(param.type)
            name = param.name or f"arg{i}"
            self.declare(name, type_ref)
            lowered.append(Parameter(name, type_ref))
        return lowered

    def lower_constructor(self, definition: syn.FunctionDefinition) -> Constructor:
        with self.scope():
            parameters = self.lower_parameters(definition.params)
            body = self.lower_with_modifiers(definition)
        mutability = Mutability.PAYABLE if definition.mutability == "payable" else Mutability.MUTATING
        return Constructor("new", parameters, body, mutability, line=definition.line)

    def lower_function(self, definition: syn.FunctionDefinition) -> Function:
        with self.scope():
            parameters = self.lower_parameters(definition.params)
            returns = None
            if len(definition.returns) == 1:
                returns = self.type_of(definition.returns[0].type)
            elif definition.returns:
                types = [self.type_of(r.type) for r in definition.returns]
                returns = composite("(" + ", ".join(t.describe() for t in types) + ")")
                self.warn(
                    "multiple_returns",
                    f"function '{definition.name}' returns a tuple, modelled as an opaque composite",
                    definition.line,
                )

            named = [r for r in definition.returns if r.name]
            prologue: list[Statement] = []
            for ret in named:
                type_ref = self.type_of(ret.type)
                self.declare(ret.name, type_ref)
                prologue.append(LocalVar(ret.name, type_ref, line=ret.line))

            body = prologue + self.lower_with_modifiers(definition)
            if named and not (body and isinstance(body[-1], Return)):
                if len(named) == 1:
                    value: Expression = Name(named[0].name)
                else:
                    value = Builtin("tuple", [Name(r.name) for r in named])
                body.append(Return(value))

        visibility = Visibility.PUBLIC if definition.visibility in ("public", "external") else Visibility.PRIVATE
        return Function(
            definition.name,
            parameters,
            returns,
            MUTABILITY.get(definition.mutability, Mutability.MUTATING),
            visibility,
            body,
            definition.line,
            definition.visibility_declared,
        )

    def lower_with_modifiers(self, definition: syn.FunctionDefinition) -> list[Statement]:
        invocations = []
        for invocation in definition.modifiers:
            if invocation.name in self.modifiers:
                invocations.append(invocation)
            elif self.contract and invocation.name in self.contract.bases:
                self.warn("base_constructor", f"base constructor arguments for '{invocation.name}' are dropped", invocation.line)
            else:
                self.warn("modifier", f"modifier '{invocation.name}' is not defined in this contract and is ignored", invocation.line)
        return self.inline_modifiers(invocations, definition)

    def inline_modifiers(
        self, invocations: list[syn.ModifierInvocation], definition: syn.FunctionDefinition
    ) -> list[Statement]:
        if not invocations:
            return self.lower_block(definition.body) if definition.body else []

        invocation, rest = invocations[0], invocations[1:]
        modifier = self.modifiers[invocation.name]
        self.warn(
            "modifier_inlined",
            f"modifier '{invocation.name}' inlined into '{definition.name or 'constructor'}'",
            invocation.line,
        )
        outer = self.substitutions
        arguments = {
            param.name: self.lower_expr(arg)
            for param, arg in zip(modifier.params, invocation.args)
            if param.name
        }

        def placeholder() -> list[Statement]:
            inner = self.substitutions
            self.substitutions = outer
            try:
                return self.inline_modifiers(rest, definition)
            finally:
                self.substitutions = inner

        self.substitutions = {**outer, **arguments}
        self.placeholders.append(placeholder)
        try:
            with self.scope():
                return self.lower_block(modifier.body) if modifier.body else []
        finally:
            self.placeholders.pop()
            self.substitutions = outer

    # ── Statements ───────────────────────────────────────────

    def lower_block(self, block: syn.Block | syn.Statement | None) -> list[Statement]:
        if block is None:
            return []
        if not isinstance(block, syn.Block):
            return self.lower_statement(block)
        lowered: list[Statement] = []
        with self.scope():
            for statement in block.statements:
                lowered.extend(self.lower_statement(statement))
        return lowered

    def lower_statement(self, stmt: syn.Statement) -> list[Statement]:
        line = stmt.line or None
        if isinstance(stmt, syn.Block):
            return self.lower_block(stmt)
        if isinstance(stmt, syn.VarDecl):
            return self.lower_declaration(stmt)
        if isinstance(stmt, syn.ExprStmt):
            expression = stmt.expression
            if isinstance(expression, syn.Identifier) and expression.name == "throw" and not self.is_local("throw"):
                self.deprecated("throw", line)
                return [Revert(line=line)]
            return self.lower_expression_statement(expression, line)
        if isinstance(stmt, syn.IfStatement):
            return [
                If(
                    self.lower_expr(stmt.condition),
                    self.lower_block(stmt.then),
                    self.lower_block(stmt.otherwise),
                    line=line,
                )
            ]
        if isinstance(stmt, syn.ForStatement):
            with self.scope():
                init = self.lower_statement(stmt.init) if stmt.init else []
                condition = self.lower_expr(stmt.condition) if stmt.condition else None
                post = self.lower_expression_statement(stmt.post, line) if stmt.post else []
                body = self.lower_block(stmt.body)
            return [
                Loop(
                    "for",
                    condition,
                    body,
                    init=init[0] if init else None,
                    post=post[0] if post else None,
                    line=line,
                )
            ]
        if isinstance(stmt, syn.WhileStatement):
            kind = "do" if stmt.do_while else "while"
            return [Loop(kind, self.lower_expr(stmt.condition), self.lower_block(stmt.body), line=line)]
        if isinstance(stmt, syn.ReturnStatement):
            return [Return(self.lower_expr(stmt.value) if stmt.value else None, line=line)]
        if isinstance(stmt, syn.EmitStatement):
            return [Emit(stmt.event, [self.lower_expr(a) for a in stmt.args], line=line)]
        if isinstance(stmt, syn.RevertStatement):
            if stmt.error:
                return [Revert(error=stmt.error, line=line)]
            return [Revert(reason=self.string_argument(stmt.args, 0), line=line)]
        if isinstance(stmt, syn.DeleteStatement):
            return [Delete(self.lower_expr(stmt.target), line=line)]
        if isinstance(stmt, syn.BreakStatement):
            return [Break(line=line)]
        if isinstance(stmt, syn.ContinueStatement):
            return [Continue(line=line)]
        if isinstance(stmt, syn.UncheckedBlock):
            return [Unchecked(self.lower_block(stmt.body), line=line)]
        if isinstance(stmt, syn.PlaceholderStatement):
            if not self.placeholders:
                self.warn("placeholder", "'_;' outside a modifier is ignored", line)
                return []
            return self.placeholders[-1]()
        if isinstance(stmt, syn.OpaqueStatement):
            return [Unsupported(stmt.construct, stmt.text, line=line)]
        self.warn("statement", f"unrecognised statement {type(stmt).__name__}", line)
        return [Unsupported(type(stmt).__name__, line=line)]

    def lower_declaration(self, stmt: syn.VarDecl) -> list[Statement]:
        line = stmt.line or None
        value = self.lower_expr(stmt.value) if stmt.value is not None else None
        names = [n for n in stmt.names if n]
        if len(stmt.names) == 1:
            type_ref = self.type_of(stmt.type) if stmt.type else None
            self.declare(names[0], type_ref)
            return [LocalVar(names[0], type_ref, value, line=line)]

        if len(names) > 1:
            self.warn("tuple_destructuring", f"tuple declaration of {', '.join(names)} keeps only the first value", line)
        lowered: list[Statement] = []
        for i, name in enumerate(names):
            type_ref = self.type_of(stmt.type) if i == 0 and stmt.type else None
            self.declare(name, type_ref)
            lowered.append(LocalVar(name, type_ref, value if i == 0 else None, line=line))
        return lowered

    def lower_expression_statement(self, expr: syn.Expression, line: int | None) -> list[Statement]:
        if isinstance(expr, syn.AssignExpr):
            if isinstance(expr.target, syn.TupleExpr):
                if isinstance(expr.value, syn.TupleExpr) and len(expr.value.items) == len(expr.target.items):
                    self.warn("tuple_assignment", "tuple assignment is split into sequential assignments", line)
                    return [
                        Assign(self.lower_expr(t), self.lower_expr(v), expr.op, line=line)
                        for t, v in zip(expr.target.items, expr.value.items)
                        if t is not None and v is not None
                    ]
                self.warn("tuple_assignment", "destructuring assignment is not modelled", line)
                return [Unsupported("tuple_assignment", line=line)]
            return [Assign(self.lower_expr(expr.target), self.lower_expr(expr.value), expr.op, line=line)]

        if isinstance(expr, syn.UnaryOp) and expr.op in ("++", "--"):
            op = "+=" if expr.op == "++" else "-="
            return [Assign(self.lower_expr(expr.operand), Literal("1"), op, line=line)]
        if isinstance(expr, syn.UnaryOp) and expr.op == "delete":
            return [Delete(self.lower_expr(expr.operand), line=line)]

        if isinstance(expr, syn.FunctionCall) and isinstance(expr.callee, syn.Identifier):
            name = expr.callee.name
            if name in ("require", "assert") and expr.args and not self.is_local(name):
                message = self.string_argument(expr.args, 1)
                return [Guard(self.lower_expr(expr.args[0]), message, name, line=line)]
            if name == "revert":
                return [Revert(reason=self.string_argument(expr.args, 0), line=line)]

        return [ExprStatement(self.lower_expr(expr), line=line)]

    def deprecated(self, name: str, line: int | None) -> None:
        self.warn(name, f"'{name}' is deprecated; lowered as {DEPRECATED[name]}", line)

    @staticmethod
    def string_argument(args: list[syn.Expression], index: int) -> str | None:
        if len(args) > index and isinstance(args[index], syn.LiteralExpr) and args[index].kind == "string":
            return args[index].value
        return None

    # ── Expressions ──────────────────────────────────────────

    def lower_expr(self, expr: syn.Expression) -> Expression:
        if isinstance(expr, syn.LiteralExpr):
            return Literal(expr.value, expr.kind)
        if isinstance(expr, syn.Identifier):
            return self.lower_identifier(expr.name)
        if isinstance(expr, syn.MemberAccess):
            return self.lower_member(expr)
        if isinstance(expr, syn.FunctionCall):
            return self.lower_call(expr)
        if isinstance(expr, syn.BinaryOp):
            return Binary(expr.op, self.lower_expr(expr.left), self.lower_expr(expr.right))
        if isinstance(expr, syn.UnaryOp):
            return Unary(expr.op, self.lower_expr(expr.operand), expr.prefix)
        if isinstance(expr, syn.TernaryOp):
            return Ternary(
                self.lower_expr(expr.condition),
                self.lower_expr(expr.if_true),
                self.lower_expr(expr.if_false),
            )
        if isinstance(expr, syn.IndexAccess):
            base = self.lower_expr(expr.base)
            if expr.index is None:
                return Builtin("array_type", [base])
            return Index(base, self.lower_expr(expr.index))
        if isinstance(expr, syn.CastExpr):
            return self.lower_cast(expr)
        if isinstance(expr, syn.TupleExpr):
            return Builtin("tuple", [self.lower_expr(i) for i in expr.items if i is not None])
        if isinstance(expr, syn.ArrayLiteral):
            return Builtin("array", [self.lower_expr(i) for i in expr.items])
        if isinstance(expr, syn.NewExpr):
            return Builtin("new", [Name(self.type_of(expr.type).describe())])
        if isinstance(expr, syn.AssignExpr):
            self.warn("nested_assignment", "assignment used as a value", expr.line)
            return Builtin("assign" + expr.op, [self.lower_expr(expr.target), self.lower_expr(expr.value)])
        self.warn("expression", f"unrecognised expression {type(expr).__name__}", expr.line)
        return Builtin(type(expr).__name__)

    def lower_identifier(self, name: str) -> Expression:
        if name in self.substitutions:
            return copy.deepcopy(self.substitutions[name])
        if self.is_local(name):
            return Name(name)
        if name in self.field_types:
            return StateRef(name)
        if name == "this":
            return EnvRef(EnvKind.THIS)
        if name == "now":
            return EnvRef(EnvKind.TIMESTAMP)
        return Name(name)

    def lower_member(self, expr: syn.MemberAccess) -> Expression:
        base_syntax = expr.base
        if isinstance(base_syntax, syn.Identifier) and not self.is_local(base_syntax.name):
            table = {"msg": MSG_MEMBERS, "block": BLOCK_MEMBERS, "tx": TX_MEMBERS}.get(base_syntax.name)
            if table is not None:
                if expr.member in table:
                    return EnvRef(table[expr.member])
                if base_syntax.name == "msg" and expr.member == "gas":
                    self.deprecated("msg.gas", expr.line)
                    return Builtin("gasleft")
                return Builtin(f"{base_syntax.name}.{expr.member}")

        base = self.lower_expr(base_syntax)
        if expr.member == "balance" and isinstance(base, EnvRef) and base.kind == EnvKind.THIS:
            return EnvRef(EnvKind.BALANCE)
        return Member(base, expr.member)

    def lower_cast(self, expr: syn.CastExpr) -> Expression:
        type_ref = self.type_of(expr.type)
        inner = self.lower_expr(expr.expression)
        if type_ref.kind == TypeKind.ADDRESS:
            if isinstance(inner, EnvRef) and inner.kind == EnvKind.THIS:
                return inner
            if isinstance(inner, Literal) and inner.value in ("0", "0x0"):
                return Literal("0", "address")
        return Cast(type_ref, inner)

    def lower_call(self, call: syn.FunctionCall) -> Expression:
        args = [self.lower_expr(a) for a in call.args]
        value = self.lower_expr(call.options["value"]) if "value" in call.options else None
        callee = call.callee

        if isinstance(callee, syn.Identifier) and not self.is_local(callee.name):
            name = callee.name
            if name == "payable" and len(args) == 1:
                return args[0]
            if name in ("selfdestruct", "suicide"):
                if name == "suicide":
                    self.deprecated(name, call.line)
                return Builtin("selfdestruct", args)
            if name == "sha3":
                self.deprecated(name, call.line)
                return Builtin("keccak256", args)
            if name == "blockhash":
                return EnvRef(EnvKind.BLOCKHASH, args)
            if name in HASH_BUILTINS or name in ("require", "assert", "revert", "type"):
                return Builtin(name, args)
            if name in self.function_names:
                return SelfCall(name, args)
            if name in self.contract_types and len(args) == 1:
                return Cast(composite(name), args[0])
            return Call(Name(name), args)

        if isinstance(callee, syn.NewExpr):
            self.warn("new", f"contract/array creation 'new {callee.type.name}' is not modelled", call.line)
            return Builtin("new", [Name(self.type_of(callee.type).describe())] + args)

        if isinstance(callee, syn.MemberAccess):
            member = callee.member
            base_syntax = callee.base
            if isinstance(base_syntax, syn.Identifier) and not self.is_local(base_syntax.name):
                if base_syntax.name == "abi":
                    return Builtin(f"abi.{member}", args)
                if base_syntax.name == "block" and member == "blockhash":
                    self.deprecated("block.blockhash", call.line)
                    return EnvRef(EnvKind.BLOCKHASH, args)
                if base_syntax.name == "super":
                    self.warn("super_call", f"super.{member}() resolves to the local '{member}'", call.line)
                    return SelfCall(member, args)
                if base_syntax.name in self.libraries:
                    return Call(Member(Name(base_syntax.name), member), args)

            base = self.lower_expr(base_syntax)
            if isinstance(base, EnvRef) and base.kind == EnvKind.THIS:
                return SelfCall(member, args)
            if self.is_contract_typed(base):
                return ExternalCall(CallKind.INVOKE, base, value, member, args)
            if member in ("transfer", "send") and len(args) == 1:
                kind = CallKind.TRANSFER if member == "transfer" else CallKind.SEND
                return ExternalCall(kind, base, args[0], member)
            if member in ("call", "staticcall"):
                return ExternalCall(CallKind.CALL, base, value, member, args)
            if member == "delegatecall":
                return ExternalCall(CallKind.DELEGATECALL, base, value, member, args)
            return Call(Member(base, member), args)

        return Call(self.lower_expr(callee), args)


def build_solidity(unit: syn.SourceUnit, warnings: list[ParseWarning]) -> ContractModel:
    return SolidityLowering(unit, warnings).build()
