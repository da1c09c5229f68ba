"""
ContractModel to Solidity source.

Layout: SPDX header and pragma, then storage fields, the constructor,
functions, events and custom errors. Solidity has a single constructor, so
when the model carries several the first non-delegating one is kept and the
rest are reported.
"""

from __future__ import annotations

from mjolnir.codegen.base import UNARY_PRECEDENCE, BaseGenerator, quote
from mjolnir.ir.model import (
    Assign,
    Binary,
    Break,
    Builtin,
    Call,
    CallKind,
    Cast,
    Constructor,
    Continue,
    Delete,
    Dialect,
    Emit,
    EnvKind,
    EnvRef,
    Event,
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
    Raw,
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
)

DEFAULT_PRAGMA = "^0.8.0"
LICENSE = "// SPDX-License-Identifier: MIT"

ENV_EXPRESSIONS = {
    EnvKind.CALLER: "msg.sender",
    EnvKind.VALUE: "msg.value",
    EnvKind.TIMESTAMP: "block.timestamp",
    EnvKind.BLOCK_NUMBER: "block.number",
    EnvKind.ORIGIN: "tx.origin",
    EnvKind.THIS: "address(this)",
    EnvKind.BALANCE: "address(this).balance",
    EnvKind.PREVRANDAO: "block.prevrandao",
}
HASH_FUNCTIONS = frozenset({"keccak256", "sha256", "ripemd160", "sha3"})
REFERENCE_KINDS = frozenset({TypeKind.STRING, TypeKind.SEQUENCE})
MUTABILITY_KEYWORDS = {
    Mutability.PURE: " pure",
    Mutability.VIEW: " view",
    Mutability.PAYABLE: " payable",
    Mutability.MUTATING: "",
}


def solidity_width(bits: int) -> int:
    """Nearest valid Solidity integer width at or above *bits*."""
    rounded = max(8, -(-bits // 8) * 8)
    return min(rounded, 256)


def needs_location(type_ref: TypeRef) -> bool:
    if type_ref.kind in REFERENCE_KINDS:
        return True
    return type_ref.kind == TypeKind.BYTES and not type_ref.length


class SolidityGenerator(BaseGenerator):
    target = Dialect.SOLIDITY

    # ── Contract ─────────────────────────────────────────────

    def generate(self) -> str:
        model = self.model
        pragma = model.version_constraint if model.dialect == Dialect.SOLIDITY and model.version_constraint else DEFAULT_PRAGMA
        self.emit(LICENSE)
        self.emit(f"pragma solidity {pragma};")
        self.blank()
        with self.block(f"contract {self.namer.type(model.name)}"):
            for storage_field in model.fields:
                self.field(storage_field)
            self.blank()

            constructor = self.primary_constructor()
            if constructor is not None:
                self.constructor(constructor)
                self.blank()

            for function in model.functions:
                self.function(function)
                self.blank()

            for event in model.events:
                self.event(event)
            if model.events:
                self.blank()
            for error in model.errors:
                self.emit(f"error {self.namer.type(error)}();")
            while self._lines and self._lines[-1] == "":
                self._lines.pop()
        return self.render()

    def field(self, storage_field: StorageField) -> None:
        self.scope = None
        parts = [self.type_name(storage_field.type), storage_field.visibility.value]
        if storage_field.constant:
            parts.append("constant")
        parts.append(self.namer.value(storage_field.name))
        text = " ".join(parts)
        if storage_field.default is not None:
            text += f" = {self.value(storage_field.default, storage_field.type)}"
        self.emit(f"{text};")

    def event(self, event: Event) -> None:
        params = []
        for event_field in event.fields:
            indexed = " indexed" if event_field.indexed else ""
            params.append(f"{self.type_name(event_field.type)}{indexed} {self.namer.value(event_field.name)}")
        suffix = " anonymous" if event.anonymous else ""
        self.emit(f"event {self.namer.type(event.name)}({', '.join(params)}){suffix};")

    # ── Callables ────────────────────────────────────────────

    def primary_constructor(self) -> Constructor | None:
        explicit = [c for c in self.model.constructors if not c.implicit]
        if not explicit:
            return None
        primary = next((c for c in explicit if c.delegates_to is None), explicit[0])
        for other in explicit:
            if other is not primary:
                self.diagnostics.dropped_constructor(other.name)
        return primary

    def parameters(self, parameters: list[Parameter]) -> str:
        return ", ".join(f"{self.declaration_type(p.type)} {self.namer.value(p.name)}" for p in parameters)

    def constructor(self, constructor: Constructor) -> None:
        self.enter_callable(constructor.parameters, constructor.body)
        payable = " payable" if constructor.mutability == Mutability.PAYABLE else ""
        with self.block(f"constructor({self.parameters(constructor.parameters)}){payable}"):
            if constructor.delegates_to is not None:
                self.diagnostics.limitation(
                    "constructor",
                    f"constructor '{constructor.name}' delegates to '{constructor.delegates_to}'; the delegated body is not inlined",
                    constructor.line,
                )
            self.statements(constructor.body, None)

    def function(self, function: Function) -> None:
        self.enter_callable(function.parameters, function.body)
        visibility = "public" if function.visibility == Visibility.PUBLIC else "internal"
        header = (
            f"function {self.namer.value(function.name)}({self.parameters(function.parameters)}) "
            f"{visibility}{MUTABILITY_KEYWORDS[function.mutability]}"
        )
        if function.returns is not None:
            header += f" returns ({self.declaration_type(function.returns)})"
        with self.block(header):
            self.statements(function.body, function.returns)

    # ── Types ────────────────────────────────────────────────

    def type_name(self, type_ref: TypeRef) -> str:
        kind = type_ref.kind
        if kind == TypeKind.BOOL:
            return "bool"
        if kind == TypeKind.INTEGER:
            return f"{'int' if type_ref.signed else 'uint'}{solidity_width(type_ref.bits)}"
        if kind == TypeKind.ADDRESS:
            return "address"
        if kind == TypeKind.STRING:
            return "string"
        if kind == TypeKind.BYTES:
            return f"bytes{type_ref.length}" if type_ref.length else "bytes"
        if kind == TypeKind.MAPPING:
            return f"mapping({self.type_name(type_ref.key)} => {self.type_name(type_ref.value)})"
        if kind == TypeKind.SEQUENCE:
            size = str(type_ref.length) if type_ref.length is not None else ""
            return f"{self.type_name(type_ref.value)}[{size}]"
        self.diagnostics.composite_type(type_ref.name)
        return self.namer.type(type_ref.name) if type_ref.name.isidentifier() else "bytes"

    def declaration_type(self, type_ref: TypeRef) -> str:
        text = self.type_name(type_ref)
        return f"{text} memory" if needs_location(type_ref) else text

    def zero_value(self, type_ref: TypeRef | None) -> str:
        if type_ref is None:
            return "0"
        kind = type_ref.kind
        if kind == TypeKind.BOOL:
            return "false"
        if kind == TypeKind.ADDRESS:
            return "address(0)"
        if kind == TypeKind.STRING:
            return '""'
        if kind == TypeKind.BYTES:
            return f"bytes{type_ref.length}(0)" if type_ref.length else '""'
        if kind == TypeKind.SEQUENCE and type_ref.length is None:
            return f"new {self.type_name(type_ref)}(0)"
        if kind == TypeKind.INTEGER:
            return "0"
        self.diagnostics.limitation("default", f"no zero value for '{type_ref.describe()}'")
        return f"{self.type_name(type_ref)}(0)"

    # ── Statements ───────────────────────────────────────────

    def statements(self, statements: list[Statement], returns: TypeRef | None) -> None:
        for stmt in statements:
            self.statement(stmt, returns)

    def statement(self, stmt: Statement, returns: TypeRef | None) -> None:
        if isinstance(stmt, If):
            self.if_statement(stmt, returns)
        elif isinstance(stmt, Loop):
            self.loop(stmt, returns)
        elif isinstance(stmt, Unchecked):
            with self.block("unchecked"):
                self.statements(stmt.body, returns)
        elif isinstance(stmt, Emit):
            event = self.model.event_named(stmt.event)
            types = [f.type for f in event.fields] if event is not None else []
            args = [self.value(a, types[i] if i < len(types) else None) for i, a in enumerate(stmt.args)]
            self.emit(f"emit {self.namer.type(stmt.event)}({', '.join(args)});")
        elif isinstance(stmt, Return):
            if stmt.value is None:
                self.emit("return;")
            else:
                self.emit(f"return {self.value(stmt.value, returns)};")
        elif isinstance(stmt, Guard):
            self.guard(stmt)
        elif isinstance(stmt, Revert):
            if stmt.error:
                self.emit(f"revert {self.namer.type(stmt.error)}();")
            elif stmt.reason:
                self.emit(f"revert({quote(stmt.reason)});")
            else:
                self.emit("revert();")
        elif isinstance(stmt, Break):
            self.emit("break;")
        elif isinstance(stmt, Continue):
            self.emit("continue;")
        elif isinstance(stmt, Unsupported):
            self.opaque(stmt)
        else:
            self.emit(f"{self.simple_statement(stmt)};")

    def simple_statement(self, stmt: Statement) -> str:
        """Statements that fit on one line without the trailing semicolon."""
        if isinstance(stmt, Assign):
            expected = self.type_of(stmt.target)
            return f"{self.expr(stmt.target)} {stmt.op} {self.value(stmt.value, expected)}"
        if isinstance(stmt, LocalVar):
            type_ref = stmt.type
            if type_ref is None and stmt.value is not None:
                type_ref = self.type_of(stmt.value)
            if type_ref is None:
                self.diagnostics.limitation("local", f"type of local '{stmt.name}' could not be inferred; declared as uint256", stmt.line)
                declared = "uint256"
            else:
                declared = self.declaration_type(type_ref)
            text = f"{declared} {self.namer.value(stmt.name)}"
            if stmt.value is not None:
                text += f" = {self.value(stmt.value, type_ref)}"
            return text
        if isinstance(stmt, ExprStatement):
            return self.expr(stmt.expression)
        if isinstance(stmt, Delete):
            return f"delete {self.expr(stmt.target)}"
        self.diagnostics.opaque_source(type(stmt).__name__, stmt.line)
        return f"// {type(stmt).__name__}"

    def if_statement(self, stmt: If, returns: TypeRef | None, chained: bool = False) -> None:
        opener = "} else if" if chained else "if"
        self.emit(f"{opener} ({self.expr(stmt.condition)}) {{")
        with self.indented():
            self.statements(stmt.then, returns)
        otherwise = stmt.otherwise
        if len(otherwise) == 1 and isinstance(otherwise[0], If):
            self.if_statement(otherwise[0], returns, chained=True)
            return
        if otherwise:
            self.emit("} else {")
            with self.indented():
                self.statements(otherwise, returns)
        self.emit("}")

    def loop(self, stmt: Loop, returns: TypeRef | None) -> None:
        condition = self.expr(stmt.condition) if stmt.condition is not None else ""
        if stmt.kind == "each":
            self.each_loop(stmt, returns)
        elif stmt.kind == "do":
            self.emit("do {")
            with self.indented():
                self.statements(stmt.body, returns)
            self.emit(f"}} while ({condition or 'true'});")
        elif stmt.kind == "for":
            init = self.simple_statement(stmt.init) if stmt.init is not None else ""
            post = self.simple_statement(stmt.post) if stmt.post is not None else ""
            with self.block(f"for ({init}; {condition}; {post})"):
                self.statements(stmt.body, returns)
        else:
            with self.block(f"while ({condition or 'true'})"):
                self.statements(stmt.body, returns)

    def each_loop(self, stmt: Loop, returns: TypeRef | None) -> None:
        var = self.namer.value(stmt.each_var)
        iterable = stmt.iterable
        if isinstance(iterable, Builtin) and iterable.name == "range" and len(iterable.args) == 2:
            start, end = (self.expr(a) for a in iterable.args)
            with self.block(f"for (uint256 {var} = {start}; {var} < {end}; {var}++)"):
                self.statements(stmt.body, returns)
            return
        sequence_type = self.type_of(iterable)
        element = sequence_type.value if sequence_type is not None and sequence_type.value is not None else None
        index = f"{var}Index"
        source = self.operand(iterable, UNARY_PRECEDENCE + 1)
        with self.block(f"for (uint256 {index} = 0; {index} < {source}.length; {index}++)"):
            declared = self.declaration_type(element) if element is not None else "uint256"
            self.emit(f"{declared} {var} = {source}[{index}];")
            self.statements(stmt.body, returns)

    def guard(self, stmt: Guard) -> None:
        condition = self.expr(stmt.condition)
        if stmt.kind == "assert" and not stmt.message:
            self.emit(f"assert({condition});")
        elif stmt.message:
            self.emit(f"require({condition}, {quote(stmt.message)});")
        else:
            self.emit(f"require({condition});")

    # ── Expressions ──────────────────────────────────────────

    def value(self, expr: Expression, expected: TypeRef | None) -> str:
        """Render *expr* where a value of type *expected* is required."""
        if isinstance(expr, Builtin) and expr.name == "default":
            return self.zero_value(expected)
        return self.expr(expr)

    def expr(self, expr: Expression) -> str:
        if isinstance(expr, Literal):
            return self.literal(expr)
        if isinstance(expr, Name):
            return self.namer.value(expr.name)
        if isinstance(expr, StateRef):
            return self.namer.value(expr.field)
        if isinstance(expr, EnvRef):
            return self.env(expr)
        if isinstance(expr, Unary):
            op = expr.op
            type_ref = self.type_of(expr.operand)
            if op == "!" and type_ref is not None and type_ref.is_integer:
                op = "~"
            operand = self.operand(expr.operand, UNARY_PRECEDENCE)
            return f"{op}{operand}" if expr.prefix else f"{operand}{op}"
        if isinstance(expr, Binary):
            return self.binary(expr.op, expr.left, expr.right)
        if isinstance(expr, Ternary):
            return f"{self.operand(expr.condition, 1)} ? {self.expr(expr.if_true)} : {self.expr(expr.if_false)}"
        if isinstance(expr, Index):
            return f"{self.operand(expr.base, UNARY_PRECEDENCE + 1)}[{self.expr(expr.index)}]"
        if isinstance(expr, Member):
            return f"{self.operand(expr.base, UNARY_PRECEDENCE + 1)}.{expr.member}"
        if isinstance(expr, Call):
            return self.call(expr)
        if isinstance(expr, SelfCall):
            return f"{self.namer.value(expr.name)}({self.arguments(expr.args)})"
        if isinstance(expr, ExternalCall):
            return self.external_call(expr)
        if isinstance(expr, Builtin):
            return self.builtin(expr)
        if isinstance(expr, Cast):
            if expr.type.kind == TypeKind.COMPOSITE:
                self.diagnostics.composite_type(expr.type.name)
            return f"{self.type_name(expr.type)}({self.expr(expr.expression)})"
        if isinstance(expr, Raw):
            return self.raw(expr)
        self.diagnostics.opaque_source(type(expr).__name__)
        return "0"

    def literal(self, literal: Literal) -> str:
        if literal.kind == "string":
            return quote(literal.value)
        if literal.kind == "address":
            return "address(0)"
        return literal.value

    def env(self, env: EnvRef) -> str:
        if env.kind == EnvKind.BLOCKHASH:
            return f"blockhash({self.arguments(env.args)})"
        return ENV_EXPRESSIONS[env.kind]

    def call(self, call: Call) -> str:
        function = call.function
        if isinstance(function, Name) and "::" in function.name:
            self.diagnostics.opaque_source(function.name)
            return f"0 /* {function.name}(..) */"
        if isinstance(function, Member):
            base = self.operand(function.base, UNARY_PRECEDENCE + 1)
            return f"{base}.{self.namer.value(function.member)}({self.arguments(call.args)})"
        return f"{self.expr(function)}({self.arguments(call.args)})"

    def external_call(self, call: ExternalCall) -> str:
        target = self.expr(call.target)
        if call.kind == CallKind.TRANSFER:
            return f"payable({target}).transfer({self.expr(call.value)})"
        if call.kind == CallKind.SEND:
            return f"payable({target}).send({self.expr(call.value)})"
        if call.kind in (CallKind.CALL, CallKind.DELEGATECALL):
            method = call.method or call.kind.value
            self.diagnostics.limitation("low_level_call", f"low-level '{method}' kept as is; its return data is discarded")
            options = f"{{value: {self.expr(call.value)}}}" if call.value is not None else ""
            payload = self.arguments(call.args) or '""'
            return f"{target}.{method}{options}({payload})"
        options = f"{{value: {self.expr(call.value)}}}" if call.value is not None else ""
        return f"{target}.{self.namer.value(call.method)}{options}({self.arguments(call.args)})"

    def builtin(self, builtin: Builtin) -> str:
        name, args = builtin.name, builtin.args
        if name == "default":
            return "0"
        if name == "contains":
            index = args[0]
            value_type = self.type_of(index)
            self.diagnostics.limitation("contains", "mapping membership is approximated by comparing against the zero value")
            return f"{self.expr(index)} != {self.zero_value(value_type)}"
        if name == "selfdestruct":
            return f"selfdestruct(payable({self.arguments(args)}))"
        if name in HASH_FUNCTIONS:
            if self.model.dialect == Dialect.INK:
                return f"{name}(abi.encodePacked({self.arguments(args)}))"
            return f"{name}({self.arguments(args)})"
        if name == "tuple":
            return f"({self.arguments(args)})"
        if name == "array":
            return f"[{self.arguments(args)}]"
        if name == "new":
            type_name = args[0].name if args and isinstance(args[0], Name) else "bytes"
            return f"new {type_name}({self.arguments(args[1:])})"
        if name.startswith(("abi.", "msg.", "block.", "tx.")) or name in ("require", "assert", "revert", "type"):
            if name.startswith(("msg.", "block.", "tx.")) and not args:
                return name
            return f"{name}({self.arguments(args)})"
        if name.endswith(("::MAX", "::MIN")):
            return self.bound(name)
        if name.startswith("assign") and len(args) == 2:
            return f"({self.expr(args[0])} {name[len('assign'):]} {self.expr(args[1])})"
        self.diagnostics.opaque_source(name)
        return f"0 /* {name} */"

    def bound(self, name: str) -> str:
        type_name, which = name.split("::", 1)
        signed = type_name.startswith("i")
        digits = "".join(c for c in type_name if c.isdigit())
        bits = int(digits) if digits else 128
        return f"type({'int' if signed else 'uint'}{solidity_width(bits)}).{which.lower()}"

    def raw(self, raw: Raw) -> str:
        if raw.dialect == Dialect.SOLIDITY:
            return raw.text
        self.diagnostics.opaque_source(raw.text)
        return f"0 /* {raw.text.replace('*/', '* /')} */"
