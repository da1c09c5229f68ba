"""
ContractModel to ink! source.

Layout inside ``#[ink::contract] mod <name>``: imports, events (ink requires
them ahead of the storage struct), the error enum, the storage struct, and
one ``impl`` holding constants, constructors, messages and private helpers.

Arithmetic follows the source's overflow semantics: checked sources (and
explicitly checked operations) use ``checked_*().expect(..)``, unchecked
blocks use ``wrapping_*``. Mapping reads/writes/deletes become
``get``/``insert``/``remove`` and nested Solidity mappings become a single
``Mapping`` keyed by a tuple.
"""

from __future__ import annotations

import re

from mjolnir.codegen.base import ATOM_PRECEDENCE, UNARY_PRECEDENCE, BaseGenerator, quote, reassigned_locals
from mjolnir.codegen.diagnostics import ConversionDiagnostics
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
    ContractModel,
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
    Ternary,
    TypeKind,
    TypeRef,
    Unary,
    Unchecked,
    Unsupported,
    Visibility,
)
from mjolnir.ir.visitor import iter_statements, walk_expression

CRATE_ATTRIBUTE = '#![cfg_attr(not(feature = "std"), no_std, no_main)]'
OVERFLOW = '"arithmetic overflow"'
RUST_WIDTHS = (8, 16, 32, 64, 128)
ARITHMETIC_METHODS = {"+": "add", "-": "sub", "*": "mul"}
COPY_KINDS = frozenset({TypeKind.BOOL, TypeKind.INTEGER, TypeKind.ADDRESS})
# Operands of `a..b` that are comparisons or logic need parentheses.
PRECEDENCE_RANGE = 5
SOLIDITY_INTEGER = re.compile(r"^(u?)int(\d*)$")
ENV_METHODS = {
    EnvKind.CALLER: "caller",
    EnvKind.VALUE: "transferred_value",
    EnvKind.TIMESTAMP: "block_timestamp",
    EnvKind.BLOCK_NUMBER: "block_number",
    EnvKind.THIS: "account_id",
    EnvKind.BALANCE: "balance",
}
IMPORTS = {
    "Mapping": "use ink::storage::Mapping;",
    "String": "use ink::prelude::string::String;",
    "Vec": "use ink::prelude::vec::Vec;",
}


def rust_width(bits: int) -> int:
    return next((w for w in RUST_WIDTHS if w >= bits), 128)


def format_literal(text: str) -> str:
    """Escape braces so *text* is a literal format string for assert!/panic!."""
    return quote(text.replace("{", "{{").replace("}", "}}"))


def is_fallible(body: list[Statement]) -> bool:
    """A body that reverts with a named error returns ``Result<_, Error>``."""
    return any(isinstance(stmt, Revert) and stmt.error for stmt, _, _ in iter_statements(body))


class InkGenerator(BaseGenerator):
    target = Dialect.INK

    def __init__(self, model: ContractModel, diagnostics: ConversionDiagnostics | None = None):
        super().__init__(model, diagnostics)
        self.imports: set[str] = set()
        self.receiver = "self"
        self.env_base = "self.env()"
        self.fallible = False
        self.unchecked = 0
        self.mutable_locals: set[str] = set()
        self.fallible_functions = {f.name for f in model.functions if is_fallible(f.body)}

    # ── Contract ─────────────────────────────────────────────

    def generate(self) -> str:
        model = self.model
        self.emit(CRATE_ATTRIBUTE)
        self.blank()
        self.emit("#[ink::contract]")
        with self.block(f"mod {self.namer.module(model.name)}"):
            imports_at = len(self._lines)
            for event in model.events:
                self.event(event)
                self.blank()
            if model.errors:
                self.error_enum()
                self.blank()
            self.storage()
            self.blank()
            with self.block(f"impl {self.storage_name}"):
                self.constants()
                for constructor in model.constructors:
                    self.constructor(constructor)
                    self.blank()
                for function in model.functions:
                    self.function(function)
                    self.blank()
                if model.dialect == Dialect.SOLIDITY:
                    self.getters()
                while self._lines and self._lines[-1] == "":
                    self._lines.pop()
            imports = [f"    {IMPORTS[name]}" for name in sorted(self.imports)]
            if imports:
                imports.append("")
            self._lines[imports_at:imports_at] = imports
        return self.render()

    @property
    def storage_name(self) -> str:
        return self.namer.type(self.model.name)

    def event(self, event: Event) -> None:
        self.emit("#[ink(event, anonymous)]" if event.anonymous else "#[ink(event)]")
        with self.block(f"pub struct {self.namer.type(event.name)}"):
            for event_field in event.fields:
                if event_field.indexed:
                    self.emit("#[ink(topic)]")
                self.emit(f"{self.namer.value(event_field.name)}: {self.rust_type(event_field.type)},")

    def error_enum(self) -> None:
        self.emit("#[derive(Debug, PartialEq, Eq)]")
        self.emit("#[ink::scale_derive(Encode, Decode, TypeInfo)]")
        with self.block("pub enum Error"):
            for error in self.model.errors:
                self.emit(f"{self.namer.type(error)},")

    def storage(self) -> None:
        self.emit("#[ink(storage)]")
        stored = [f for f in self.model.fields if not f.constant]
        if not stored:
            self.emit(f"pub struct {self.storage_name} {{}}")
            return
        with self.block(f"pub struct {self.storage_name}"):
            for storage_field in stored:
                self.emit(f"{self.namer.value(storage_field.name)}: {self.rust_type(storage_field.type)},")

    def constants(self) -> None:
        constants = [f for f in self.model.fields if f.constant]
        for constant in constants:
            self.scope = None
            value = self.expr(constant.default) if constant.default is not None else "Default::default()"
            self.emit(f"pub const {self.namer.value(constant.name)}: {self.rust_type(constant.type)} = {value};")
        if constants:
            self.blank()

    # ── Constructors ─────────────────────────────────────────

    def field_initialisers(self) -> dict[str, str]:
        values = {}
        for storage_field in self.model.fields:
            if storage_field.constant:
                continue
            if storage_field.default is not None:
                values[storage_field.name] = self.expr(storage_field.default)
            else:
                values[storage_field.name] = "Default::default()"
        return values

    def struct_literal(self, values: dict[str, str]) -> None:
        if not values:
            self.emit("Self {}")
            return
        with self.block("Self"):
            for name, value in values.items():
                self.emit(f"{self.namer.value(name)}: {value},")

    @staticmethod
    def plain_initialiser(stmt: Statement) -> bool:
        return (
            isinstance(stmt, Assign)
            and stmt.op == "="
            and isinstance(stmt.target, StateRef)
            and not any(isinstance(e, StateRef) for e in walk_expression(stmt.value))
        )

    def constructor(self, constructor: Constructor) -> None:
        self.enter_callable(constructor.parameters, constructor.body)
        self.receiver, self.env_base, self.fallible = "instance", "Self::env()", False
        self.mutable_locals = reassigned_locals(constructor.body)
        payable = ", payable" if constructor.mutability == Mutability.PAYABLE else ""
        self.emit(f"#[ink(constructor{payable})]")
        header = f"pub fn {self.namer.value(constructor.name)}({self.parameters(constructor.parameters)}) -> Self"
        with self.block(header):
            if constructor.delegates_to is not None:
                target = self.namer.value(constructor.delegates_to)
                self.emit(f"Self::{target}({self.arguments(constructor.delegate_args)})")
            elif all(self.plain_initialiser(s) for s in constructor.body) and self.distinct_targets(constructor.body):
                values = self.field_initialisers()
                for stmt in constructor.body:
                    values[stmt.target.field] = self.expr(stmt.value)
                self.struct_literal(values)
            else:
                values = self.field_initialisers()
                if values:
                    with self.block("let mut instance = Self", "};"):
                        for name, value in values.items():
                            self.emit(f"{self.namer.value(name)}: {value},")
                else:
                    self.emit("let mut instance = Self {};")
                self.statements(constructor.body)
                self.emit("instance")
        self.receiver, self.env_base = "self", "self.env()"

    @staticmethod
    def distinct_targets(body: list[Statement]) -> bool:
        names = [stmt.target.field for stmt in body]
        return len(names) == len(set(names))

    # ── Messages ─────────────────────────────────────────────

    def parameters(self, parameters: list[Parameter]) -> str:
        return ", ".join(f"{self.namer.value(p.name)}: {self.rust_type(p.type)}" for p in parameters)

    def function(self, function: Function) -> None:
        self.enter_callable(function.parameters, function.body)
        self.receiver, self.env_base = "self", "self.env()"
        self.fallible = function.name in self.fallible_functions
        self.mutable_locals = reassigned_locals(function.body)

        receiver = "&mut self" if function.mutability.writes_state else "&self"
        params = ", ".join(filter(None, [receiver, self.parameters(function.parameters)]))
        returns = self.rust_type(function.returns) if function.returns is not None else None
        if self.fallible:
            returns = f"Result<{returns or '()'}, Error>"

        if function.visibility == Visibility.PUBLIC:
            payable = ", payable" if function.mutability == Mutability.PAYABLE else ""
            self.emit(f"#[ink(message{payable})]")
            prefix = "pub fn"
        else:
            prefix = "fn"
        header = f"{prefix} {self.namer.value(function.name)}({params})"
        if returns is not None:
            header += f" -> {returns}"
        with self.block(header):
            self.function_body(function.body, function.returns)

    def function_body(self, body: list[Statement], returns: TypeRef | None) -> None:
        tail = body[-1] if body else None
        if isinstance(tail, Return) and tail.value is not None:
            self.statements(body[:-1])
            value = self.owned(tail.value)
            self.emit(f"Ok({value})" if self.fallible else value)
            return
        self.statements(body)
        if self.fallible and returns is None and not isinstance(tail, (Return, Revert)):
            self.emit("Ok(())")

    def getters(self) -> None:
        """Solidity public fields get a read-only message of the same name."""
        taken = {f.name for f in self.model.functions}
        for storage_field in self.model.fields:
            if storage_field.visibility != Visibility.PUBLIC or storage_field.name in taken:
                continue
            self.scope = None
            name = self.namer.value(storage_field.name)
            getter = name.lower() if storage_field.constant else name
            type_ref = storage_field.type
            self.diagnostics.synthesized_getter(storage_field.name)
            self.emit("#[ink(message)]")
            if storage_field.constant:
                with self.block(f"pub fn {getter}(&self) -> {self.rust_type(type_ref)}"):
                    self.emit(f"Self::{name}")
            elif type_ref.kind == TypeKind.MAPPING:
                keys, value = [], type_ref
                while value.kind == TypeKind.MAPPING:
                    keys.append(value.key)
                    value = value.value
                params = ", ".join(f"key{i}: {self.rust_type(k)}" for i, k in enumerate(keys))
                key = "key0" if len(keys) == 1 else "(" + ", ".join(f"key{i}" for i in range(len(keys))) + ")"
                with self.block(f"pub fn {name}(&self, {params}) -> {self.rust_type(value)}"):
                    self.emit(f"self.{name}.get({key}).unwrap_or_default()")
            elif type_ref.kind == TypeKind.SEQUENCE:
                element = type_ref.value
                suffix = "" if element.kind in COPY_KINDS else ".clone()"
                with self.block(f"pub fn {name}(&self, index: u128) -> {self.rust_type(element)}"):
                    self.emit(f"self.{name}[index as usize]{suffix}")
            else:
                suffix = "" if self.is_copy(type_ref) else ".clone()"
                with self.block(f"pub fn {name}(&self) -> {self.rust_type(type_ref)}"):
                    self.emit(f"self.{name}{suffix}")
            self.blank()

    # ── Types ────────────────────────────────────────────────

    def rust_type(self, type_ref: TypeRef) -> str:
        kind = type_ref.kind
        if kind == TypeKind.BOOL:
            return "bool"
        if kind == TypeKind.INTEGER:
            if type_ref.name and self.model.dialect == Dialect.INK:
                return type_ref.name
            width = rust_width(type_ref.bits)
            if type_ref.bits > 128:
                self.diagnostics.narrowed_integer(type_ref.describe(), f"{'i' if type_ref.signed else 'u'}128")
            return f"{'i' if type_ref.signed else 'u'}{width}"
        if kind == TypeKind.ADDRESS:
            return "AccountId"
        if kind == TypeKind.STRING:
            self.imports.add("String")
            return "String"
        if kind == TypeKind.BYTES:
            if type_ref.length:
                return f"[u8; {type_ref.length}]"
            self.imports.add("Vec")
            return "Vec<u8>"
        if kind == TypeKind.MAPPING:
            self.imports.add("Mapping")
            keys, value = [], type_ref
            while value.kind == TypeKind.MAPPING:
                keys.append(self.rust_type(value.key))
                value = value.value
            key = keys[0] if len(keys) == 1 else "(" + ", ".join(keys) + ")"
            return f"Mapping<{key}, {self.rust_type(value)}>"
        if kind == TypeKind.SEQUENCE:
            element = self.rust_type(type_ref.value)
            if type_ref.length is not None:
                return f"[{element}; {type_ref.length}]"
            self.imports.add("Vec")
            return f"Vec<{element}>"
        if type_ref.name == self.model.name:
            return "Self"
        self.diagnostics.composite_type(type_ref.name)
        return type_ref.name

    @staticmethod
    def is_copy(type_ref: TypeRef | None) -> bool:
        if type_ref is None:
            return True
        if type_ref.kind == TypeKind.BYTES:
            return bool(type_ref.length)
        return type_ref.kind in COPY_KINDS

    def owned(self, expr: Expression) -> str:
        """Render a value leaving storage, cloning non-Copy reads."""
        text = self.expr(expr)
        if isinstance(expr, (StateRef, Member, Index)) and not self.is_copy(self.type_of(expr)):
            if self.mapping_access(expr) is None:
                return f"{text}.clone()"
        return text

    # ── Statements ───────────────────────────────────────────

    def statements(self, statements: list[Statement]) -> None:
        for stmt in statements:
            self.statement(stmt)

    def statement(self, stmt: Statement) -> None:
        if isinstance(stmt, Assign):
            self.assign(stmt)
        elif isinstance(stmt, LocalVar):
            self.local(stmt)
        elif isinstance(stmt, If):
            self.if_statement(stmt)
        elif isinstance(stmt, Loop):
            self.loop(stmt)
        elif isinstance(stmt, Unchecked):
            self.unchecked += 1
            self.statements(stmt.body)
            self.unchecked -= 1
        elif isinstance(stmt, ExprStatement):
            self.emit(f"{self.expr(stmt.expression)};")
        elif isinstance(stmt, Emit):
            self.emit_event(stmt)
        elif isinstance(stmt, Return):
            self.return_statement(stmt)
        elif isinstance(stmt, Guard):
            message = f", {format_literal(stmt.message)}" if stmt.message else ""
            self.emit(f"assert!({self.expr(stmt.condition)}{message});")
        elif isinstance(stmt, Revert):
            self.revert(stmt)
        elif isinstance(stmt, Delete):
            self.delete(stmt)
        elif isinstance(stmt, Break):
            self.emit("break;")
        elif isinstance(stmt, Continue):
            self.emit("continue;")
        elif isinstance(stmt, Unsupported):
            self.opaque(stmt)
        else:
            self.diagnostics.opaque_source(type(stmt).__name__, stmt.line)
            self.emit(f"// unsupported: {type(stmt).__name__}")

    def assign(self, stmt: Assign) -> None:
        value = stmt.value
        if stmt.op != "=":
            value = Binary(stmt.op[:-1], stmt.target, stmt.value)
        access = self.mapping_access(stmt.target)
        if access is not None:
            storage, keys = access
            self.emit(f"{storage}.insert({self.key(keys)}, &{self.operand(value, UNARY_PRECEDENCE)});")
            return
        target = self.expr(stmt.target)
        if stmt.op != "=" and not self.rewrites_arithmetic(value) and stmt.op != "**=":
            self.emit(f"{target} {stmt.op} {self.expr(stmt.value)};")
            return
        self.emit(f"{target} = {self.owned(value)};")

    def local(self, stmt: LocalVar) -> None:
        mutable = "mut " if stmt.name in self.mutable_locals else ""
        annotation = f": {self.rust_type(stmt.type)}" if stmt.type is not None else ""
        if stmt.value is None:
            if stmt.type is None:
                self.diagnostics.limitation("local", f"local '{stmt.name}' has neither a type nor a value", stmt.line)
            value = "Default::default()"
        else:
            value = self.owned(stmt.value)
        self.emit(f"let {mutable}{self.namer.value(stmt.name)}{annotation} = {value};")

    def if_statement(self, stmt: If, chained: bool = False) -> None:
        opener = "} else if" if chained else "if"
        self.emit(f"{opener} {self.expr(stmt.condition)} {{")
        with self.indented():
            self.statements(stmt.then)
        otherwise = stmt.otherwise
        if len(otherwise) == 1 and isinstance(otherwise[0], If):
            self.if_statement(otherwise[0], chained=True)
            return
        if otherwise:
            self.emit("} else {")
            with self.indented():
                self.statements(otherwise)
        self.emit("}")

    def loop(self, stmt: Loop) -> None:
        if stmt.kind == "each":
            self.each_loop(stmt)
            return
        if stmt.kind == "do":
            with self.block("loop"):
                self.statements(stmt.body)
                if stmt.condition is not None:
                    self.emit(f"if !{self.operand(stmt.condition, ATOM_PRECEDENCE)} {{")
                    with self.indented():
                        self.emit("break;")
                    self.emit("}")
            return
        if stmt.kind == "for":
            bounds = self.range_bounds(stmt)
            if bounds is not None:
                var, start, end, inclusive = bounds
                dots = "..=" if inclusive else ".."
                with self.block(f"for {self.namer.value(var)} in {start}{dots}{end}"):
                    self.statements(stmt.body)
                return
            if stmt.init is not None:
                self.statement(stmt.init)
            if stmt.post is not None and any(isinstance(s, Continue) for s, _, _ in iter_statements(stmt.body)):
                self.diagnostics.limitation("loop", "'continue' inside a rewritten for loop skips its increment", stmt.line)
        header = f"while {self.expr(stmt.condition)}" if stmt.condition is not None else "loop"
        with self.block(header):
            self.statements(stmt.body)
            if stmt.post is not None:
                self.statement(stmt.post)

    def range_bounds(self, stmt: Loop) -> tuple[str, str, str, bool] | None:
        """``for (i = a; i < b; i += 1)`` with no other write to ``i``."""
        init, condition, post = stmt.init, stmt.condition, stmt.post
        if not isinstance(init, LocalVar) or init.value is None:
            return None
        if not (isinstance(condition, Binary) and condition.op in ("<", "<=") and condition.left == Name(init.name)):
            return None
        if not (
            isinstance(post, Assign)
            and post.target == Name(init.name)
            and post.op == "+="
            and post.value == Literal("1")
        ):
            return None
        if init.name in reassigned_locals(stmt.body):
            return None
        end = self.operand(condition.right, PRECEDENCE_RANGE)
        return init.name, self.operand(init.value, PRECEDENCE_RANGE), end, condition.op == "<="

    def each_loop(self, stmt: Loop) -> None:
        var = self.namer.value(stmt.each_var)
        iterable = stmt.iterable
        if isinstance(iterable, Builtin) and iterable.name == "range" and len(iterable.args) == 2:
            start, end = (self.operand(a, PRECEDENCE_RANGE) for a in iterable.args)
            header = f"for {var} in {start}..{end}"
        else:
            header = f"for {var} in {self.operand(iterable, ATOM_PRECEDENCE)}.clone()"
        with self.block(header):
            self.statements(stmt.body)

    def emit_event(self, stmt: Emit) -> None:
        event = self.model.event_named(stmt.event)
        name = self.namer.type(stmt.event)
        if event is None:
            self.diagnostics.limitation("event", f"event '{stmt.event}' is not declared", stmt.line)
            self.emit(f"// emit {name}({self.arguments(stmt.args)})")
            return
        values = [
            f"{self.namer.value(f.name)}: {self.owned(arg)}"
            for f, arg in zip(event.fields, stmt.args)
        ]
        self.emit(f"{self.env_base}.emit_event({name} {{ {', '.join(values)} }});" if values else f"{self.env_base}.emit_event({name} {{}});")

    def return_statement(self, stmt: Return) -> None:
        if stmt.value is None:
            self.emit("return Ok(());" if self.fallible else "return;")
            return
        value = self.owned(stmt.value)
        self.emit(f"return Ok({value});" if self.fallible else f"return {value};")

    def revert(self, stmt: Revert) -> None:
        if stmt.error and self.fallible:
            self.emit(f"return Err(Error::{self.namer.type(stmt.error)});")
        elif stmt.error:
            self.emit(f"panic!({format_literal(stmt.error)});")
        else:
            self.emit(f"panic!({format_literal(stmt.reason or 'reverted')});")

    def delete(self, stmt: Delete) -> None:
        access = self.mapping_access(stmt.target)
        if access is not None:
            storage, keys = access
            self.emit(f"{storage}.remove({self.key(keys)});")
            return
        self.emit(f"{self.expr(stmt.target)} = Default::default();")

    # ── Storage access ───────────────────────────────────────

    def mapping_access(self, expr: Expression) -> tuple[str, list[Expression]] | None:
        """Split ``m[a][b]`` on a (nested) mapping into storage text and keys."""
        keys = []
        node = expr
        while isinstance(node, Index):
            keys.append(node.index)
            node = node.base
        if not keys:
            return None
        type_ref = self.type_of(node)
        depth = 0
        while type_ref is not None and type_ref.kind == TypeKind.MAPPING:
            depth += 1
            type_ref = type_ref.value
        if depth == 0 or depth != len(keys):
            return None
        keys.reverse()
        return self.expr(node), keys

    def key(self, keys: list[Expression]) -> str:
        if len(keys) == 1:
            return self.expr(keys[0])
        return f"({self.arguments(keys)})"

    # ── Expressions ──────────────────────────────────────────

    def precedence(self, expr: Expression) -> int:
        if isinstance(expr, Binary) and (self.rewrites_arithmetic(expr) or expr.op == "**"):
            return ATOM_PRECEDENCE
        if isinstance(expr, Cast):
            return ATOM_PRECEDENCE
        return BaseGenerator.precedence(expr)

    def rewrites_arithmetic(self, expr: Binary) -> bool:
        if expr.op not in ARITHMETIC_METHODS:
            return False
        if not (self.type_of_is_integer(expr.left) or self.type_of_is_integer(expr.right)):
            return False
        return bool(self.unchecked) or expr.checked or self.model.checked_arithmetic

    def type_of_is_integer(self, expr: Expression) -> bool:
        type_ref = self.type_of(expr)
        return type_ref is not None and type_ref.is_integer and not isinstance(expr, Literal)

    def receiver_of(self, expr: Expression, result: TypeRef | None) -> str:
        """Method receiver; bare literals get a concrete type."""
        if isinstance(expr, Literal) and expr.kind in ("number", "hex"):
            rust = self.rust_type(result) if result is not None else "u128"
            return f"({expr.value} as {rust})"
        return self.operand(expr, ATOM_PRECEDENCE)

    def arithmetic(self, expr: Binary) -> str:
        result = self.type_of(expr)
        left = self.receiver_of(expr.left, result)
        if expr.op == "**":
            exponent = f"{self.operand(expr.right, ATOM_PRECEDENCE)} as u32"
            if self.unchecked:
                return f"{left}.wrapping_pow({exponent})"
            if expr.checked or self.model.checked_arithmetic:
                return f"{left}.checked_pow({exponent}).expect({OVERFLOW})"
            return f"{left}.pow({exponent})"
        method = ARITHMETIC_METHODS[expr.op]
        right = self.expr(expr.right)
        if self.unchecked:
            return f"{left}.wrapping_{method}({right})"
        return f"{left}.checked_{method}({right}).expect({OVERFLOW})"

    def expr(self, expr: Expression) -> str:
        if isinstance(expr, Literal):
            return self.literal(expr)
        if isinstance(expr, Name):
            return self.namer.value(expr.name)
        if isinstance(expr, StateRef):
            storage_field = self.model.field_named(expr.field)
            if storage_field is not None and storage_field.constant:
                return f"Self::{self.namer.value(expr.field)}"
            return f"{self.receiver}.{self.namer.value(expr.field)}"
        if isinstance(expr, EnvRef):
            return self.env(expr)
        if isinstance(expr, Unary):
            return self.unary(expr)
        if isinstance(expr, Binary):
            if expr.op == "**" or self.rewrites_arithmetic(expr):
                return self.arithmetic(expr)
            return self.binary(expr.op, expr.left, expr.right)
        if isinstance(expr, Ternary):
            return f"if {self.expr(expr.condition)} {{ {self.expr(expr.if_true)} }} else {{ {self.expr(expr.if_false)} }}"
        if isinstance(expr, Index):
            access = self.mapping_access(expr)
            if access is not None:
                storage, keys = access
                return f"{storage}.get({self.key(keys)}).unwrap_or_default()"
            return f"{self.operand(expr.base, ATOM_PRECEDENCE)}[{self.operand(expr.index, ATOM_PRECEDENCE)} as usize]"
        if isinstance(expr, Member):
            return self.member(expr)
        if isinstance(expr, Call):
            return self.call(expr)
        if isinstance(expr, SelfCall):
            text = f"{self.receiver}.{self.namer.value(expr.name)}({self.arguments(expr.args)})"
            if expr.name in self.fallible_functions:
                return f"{text}?" if self.fallible else f"{text}.expect({quote(expr.name + ' failed')})"
            return text
        if isinstance(expr, ExternalCall):
            return self.external_call(expr)
        if isinstance(expr, Builtin):
            return self.builtin(expr)
        if isinstance(expr, Cast):
            return self.cast(expr)
        if isinstance(expr, Raw):
            if expr.dialect == Dialect.INK:
                return expr.text
            self.diagnostics.opaque_source(expr.text)
            return "Default::default()"
        self.diagnostics.opaque_source(type(expr).__name__)
        return "Default::default()"

    def literal(self, literal: Literal) -> str:
        if literal.kind == "string":
            self.imports.add("String")
            return f"String::from({quote(literal.value)})"
        if literal.kind == "address":
            return "AccountId::from([0u8; 32])"
        return literal.value

    def env(self, env: EnvRef) -> str:
        if env.kind == EnvKind.ORIGIN:
            self.diagnostics.unsupported_env("tx.origin", "the immediate caller")
            return f"{self.env_base}.caller()"
        if env.kind in (EnvKind.PREVRANDAO, EnvKind.BLOCKHASH):
            self.diagnostics.unsupported_env(env.kind.value, "Default::default()")
            return "Default::default()"
        return f"{self.env_base}.{ENV_METHODS[env.kind]}()"

    def unary(self, expr: Unary) -> str:
        op = "!" if expr.op == "~" else expr.op
        if op in ("++", "--"):
            self.diagnostics.limitation("increment", "increment used as a value is not expressible in Rust")
            return self.expr(expr.operand)
        return f"{op}{self.operand(expr.operand, UNARY_PRECEDENCE)}"

    def member(self, expr: Member) -> str:
        base = expr.base
        if expr.member == "length":
            return f"({self.operand(base, ATOM_PRECEDENCE)}.len() as u128)"
        if expr.member in ("max", "min") and isinstance(base, Builtin) and base.name == "type":
            return self.type_bound(base, expr.member)
        if expr.member == "balance":
            self.diagnostics.unsupported_env("balance of another account", "0")
            return "0"
        return f"{self.operand(base, ATOM_PRECEDENCE)}.{self.namer.value(expr.member)}"

    def type_bound(self, builtin: Builtin, which: str) -> str:
        arg = builtin.args[0] if builtin.args else None
        found = SOLIDITY_INTEGER.match(arg.name) if isinstance(arg, Name) else None
        if found is None:
            self.diagnostics.opaque_source(f"type(..).{which}")
            return "Default::default()"
        bits = int(found.group(2) or 256)
        signed = not found.group(1)
        if bits > 128:
            self.diagnostics.narrowed_integer(arg.name, f"{'i' if signed else 'u'}128")
        return f"{'i' if signed else 'u'}{rust_width(bits)}::{which.upper()}"

    def call(self, call: Call) -> str:
        function = call.function
        if isinstance(function, Member):
            base = self.operand(function.base, ATOM_PRECEDENCE)
            method = function.member if self.model.dialect == Dialect.INK else self.namer.value(function.member)
            return f"{base}.{method}({self.arguments(call.args)})"
        if isinstance(function, Name):
            name = function.name if "::" in function.name else self.namer.value(function.name)
            if "::" in name and self.model.dialect != Dialect.INK:
                self.diagnostics.opaque_source(name)
            return f"{name}({self.arguments(call.args)})"
        return f"{self.operand(function, ATOM_PRECEDENCE)}({self.arguments(call.args)})"

    def external_call(self, call: ExternalCall) -> str:
        if call.kind in (CallKind.TRANSFER, CallKind.SEND):
            text = f"{self.env_base}.transfer({self.expr(call.target)}, {self.expr(call.value)})"
            if call.kind == CallKind.TRANSFER:
                return f"{text}.expect({quote('transfer failed')})"
            return f"{text}.is_ok()"
        if call.kind == CallKind.CALL and call.value is not None and self.empty_payload(call.args):
            self.diagnostics.limitation("low_level_call", "value-only low-level call translated to an environment transfer")
            return f"{self.env_base}.transfer({self.expr(call.target)}, {self.expr(call.value)}).is_ok()"
        if call.kind in (CallKind.CALL, CallKind.DELEGATECALL):
            self.diagnostics.limitation("low_level_call", f"low-level '{call.method or call.kind.value}' has no equivalent; treated as failed")
            return "false"
        self.diagnostics.limitation("cross_contract_call", f"call to '{call.method}' needs a contract reference type")
        return f"{self.operand(call.target, ATOM_PRECEDENCE)}.{self.namer.value(call.method)}({self.arguments(call.args)})"

    @staticmethod
    def empty_payload(args: list[Expression]) -> bool:
        return not args or (len(args) == 1 and args[0] == Literal("", "string"))

    def builtin(self, builtin: Builtin) -> str:
        name, args = builtin.name, builtin.args
        if name == "default":
            return "Default::default()"
        if name == "contains" and args:
            access = self.mapping_access(args[0])
            if access is not None:
                storage, keys = access
                return f"{storage}.contains({self.key(keys)})"
        if name == "selfdestruct":
            return f"{self.env_base}.terminate_contract({self.arguments(args)})"
        if name == "tuple":
            return f"({self.arguments(args)})"
        if name == "array":
            return f"ink::prelude::vec![{self.arguments(args)}]"
        if name == "array_repeat" and len(args) == 2:
            return f"[{self.expr(args[0])}; {self.expr(args[1])}]"
        if name == "range" and len(args) == 2:
            return f"{self.operand(args[0], PRECEDENCE_RANGE)}..{self.operand(args[1], PRECEDENCE_RANGE)}"
        if name.endswith(("::MAX", "::MIN")) and self.model.dialect == Dialect.INK:
            return name
        if name in ("keccak256", "sha256", "ripemd160", "sha3"):
            self.diagnostics.unsupported_env(name, "Default::default()")
            return "Default::default()"
        self.diagnostics.opaque_source(name)
        return "Default::default()"

    def cast(self, cast: Cast) -> str:
        type_ref = cast.type
        if type_ref.kind == TypeKind.INTEGER:
            return f"({self.operand(cast.expression, UNARY_PRECEDENCE)} as {self.rust_type(type_ref)})"
        if type_ref.kind == TypeKind.COMPOSITE:
            self.diagnostics.composite_type(type_ref.name)
        return self.expr(cast.expression)

