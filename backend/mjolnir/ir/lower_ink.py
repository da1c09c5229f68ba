"""
ink! syntax tree to IR.

The `#[ink(storage)]` struct names the contract; `#[ink(event)]` structs
become events and an `...Error` enum supplies the custom error names. Inside
bodies, `self.<field>` becomes a StateRef, `self.env()` queries become
EnvRefs, `Mapping` get/insert/remove become index reads, assignments and
deletes, and Rust's Result plumbing (`?`, `unwrap`, `Ok`, `Err(Error::X)`) is
folded into plain values, returns and reverts.
"""

from __future__ import annotations

from mjolnir.errors import NotAContract
from mjolnir.frontend import ast_nodes as syn
from mjolnir.frontend.ast_nodes import has_ink_attr
from mjolnir.ir.builder import Lowering, touches_chain
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
    Unsupported,
    Visibility,
    composite,
    integer,
    mapping,
    sequence,
)

RUST_INTEGERS = {
    "u8": (8, False), "u16": (16, False), "u32": (32, False), "u64": (64, False),
    "u128": (128, False), "i8": (8, True), "i16": (16, True), "i32": (32, True),
    "i64": (64, True), "i128": (128, True), "usize": (32, False), "isize": (32, True),
    "U256": (256, False),
}
ENV_INTEGERS = {"Balance": 128, "Timestamp": 64, "BlockNumber": 32}
ADDRESS_TYPES = frozenset({"AccountId", "Address", "H160"})
MAPPING_TYPES = frozenset({"Mapping", "HashMap", "BTreeMap", "StorageHashMap"})
TRANSPARENT_TYPES = frozenset({"Option", "Result", "Lazy", "Box", "StorageValue"})
DEFAULT_SOURCES = frozenset({"Default", "Mapping", "Vec", "String", "Lazy", "BTreeMap", "StorageVec"})

ENV_QUERIES = {
    "caller": EnvKind.CALLER,
    "transferred_value": EnvKind.VALUE,
    "transferred_balance": EnvKind.VALUE,
    "block_timestamp": EnvKind.TIMESTAMP,
    "block_number": EnvKind.BLOCK_NUMBER,
    "account_id": EnvKind.THIS,
    "address": EnvKind.THIS,
    "balance": EnvKind.BALANCE,
    "random": EnvKind.PREVRANDAO,
}
ARITHMETIC_PREFIXES = ("checked_", "saturating_", "wrapping_")
ARITHMETIC_OPS = {"add": "+", "sub": "-", "mul": "*", "div": "/", "rem": "%", "pow": "**"}
# Methods that only unwrap Option/Result or copy a value.
PASSTHROUGH_METHODS = frozenset({
    "unwrap", "expect", "clone", "unwrap_or", "unwrap_or_default", "unwrap_or_else",
    "ok_or", "ok_or_else", "map_err", "into", "to_owned", "copied", "cloned", "as_ref",
    "iter", "into_iter",
})
DEBUG_MACROS = frozenset({"debug_println", "debug_print", "println", "print", "eprintln", "dbg"})
ABORT_MACROS = frozenset({"panic", "unreachable", "todo", "unimplemented"})


def is_zero_literal(expr: syn.Expression) -> bool:
    if not isinstance(expr, syn.LiteralExpr) or expr.kind not in ("number", "hex"):
        return False
    return expr.value.lower().removeprefix("0x").strip("0") == ""


def is_default_call(expr: syn.Expression | None) -> bool:
    """`Default::default()`, `Mapping::new()`, `Vec::default()` and friends."""
    return (
        isinstance(expr, syn.FunctionCall)
        and not expr.args
        and isinstance(expr.callee, syn.PathExpr)
        and expr.callee.segments[0] in DEFAULT_SOURCES
        and expr.callee.segments[-1] in ("default", "new")
    )


def call_path(expr: syn.Expression) -> list[str] | None:
    """Path segments of a plain call `a::b(..)` / `f(..)`, else None."""
    if not isinstance(expr, syn.FunctionCall):
        return None
    if isinstance(expr.callee, syn.PathExpr):
        return expr.callee.segments
    if isinstance(expr.callee, syn.Identifier):
        return [expr.callee.name]
    return None


def strip_refs(expr: syn.Expression) -> syn.Expression:
    while isinstance(expr, syn.RefExpr) or (isinstance(expr, syn.UnaryOp) and expr.op == "*"):
        expr = expr.operand
    return expr


class InkLowering(Lowering):
    def __init__(self, module: syn.InkModule, warnings: list[ParseWarning]):
        super().__init__(warnings)
        self.module = module
        self.storage_name = ""
        self.aliases = {alias.name: alias.type for alias in module.aliases}
        self.events: dict[str, Event] = {}
        self.function_names: set[str] = set()
        self.constructor_names: set[str] = set()
        self.self_aliases: set[str] = set()
        self.field_aliases: dict[str, str] = {}

    # ── Contract ─────────────────────────────────────────────

    def build(self) -> ContractModel:
        storage = next((s for s in self.module.structs if has_ink_attr(s.attributes, "storage")), None)
        if storage is None:
            raise NotAContract("Source declares no #[ink(storage)] struct.")
        self.storage_name = storage.name
        model = ContractModel(storage.name, Dialect.INK, checked_arithmetic=False)

        for rust_field in storage.fields:
            type_ref = self.required_type(rust_field.type)
            self.field_types[rust_field.name] = type_ref
            model.fields.append(StorageField(rust_field.name, type_ref, Visibility.PRIVATE, line=rust_field.line))

        impls = [impl for impl in self.module.impls if impl.target in (storage.name, "Self")]
        for impl in self.module.impls:
            if impl not in impls:
                self.warn("impl", f"impl block for '{impl.target}' is not part of the contract", impl.line)
            elif impl.trait:
                self.warn("trait_impl", f"trait impl '{impl.trait}' is flattened into the contract", impl.line)

        constants = list(self.module.constants)
        for impl in impls:
            constants.extend(impl.constants)
        for const in constants:
            self.field_types[const.name] = self.required_type(const.type)
        for const in constants:
            with self.scope():
                default = self.lower_expr(const.value)
            model.fields.append(
                StorageField(
                    const.name,
                    self.field_types[const.name],
                    Visibility.PRIVATE,
                    default=default,
                    constant=True,
                    line=const.line,
                )
            )

        for struct in self.module.structs:
            if struct is storage:
                continue
            if has_ink_attr(struct.attributes, "event"):
                event = Event(
                    struct.name,
                    [
                        EventField(f.name, self.required_type(f.type), has_ink_attr(f.attributes, "topic"))
                        for f in struct.fields
                    ],
                    anonymous=has_ink_attr(struct.attributes, "anonymous"),
                    line=struct.line,
                )
                self.events[struct.name] = event
                model.events.append(event)
            else:
                self.warn("struct", f"struct '{struct.name}' is modelled as an opaque composite type", struct.line)

        for enum in self.module.enums:
            if enum.name.endswith("Error"):
                model.errors.extend(enum.variants)
            else:
                self.warn("enum", f"enum '{enum.name}' is modelled as an opaque composite type", enum.line)

        functions = []
        for impl in impls:
            for fn in impl.functions:
                if impl.trait and not any(a.path == "ink" for a in fn.attributes):
                    continue
                if has_ink_attr(fn.attributes, "constructor"):
                    self.constructor_names.add(fn.name)
                else:
                    self.function_names.add(fn.name)
                functions.append(fn)

        for fn in functions:
            if fn.body is None:
                self.warn("function", f"function '{fn.name}' has no body and is skipped", fn.line)
            elif fn.name in self.constructor_names and has_ink_attr(fn.attributes, "constructor"):
                model.constructors.append(self.lower_constructor(fn))
            else:
                model.functions.append(self.lower_function(fn))

        return self.finalize(model)

    # ── Types ────────────────────────────────────────────────

    def type_of(self, type_name: syn.TypeName | None, resolving: frozenset[str] = frozenset()) -> TypeRef | None:
        if type_name is None:
            return None
        name = type_name.name
        args = type_name.args
        if name in self.aliases and name not in resolving:
            return self.type_of(self.aliases[name], resolving | {name})
        if name == "bool":
            return BOOL
        if name in RUST_INTEGERS:
            bits, signed = RUST_INTEGERS[name]
            return integer(bits, signed)
        if name in ENV_INTEGERS:
            return integer(ENV_INTEGERS[name], name=name)
        if name in ADDRESS_TYPES:
            return ADDRESS
        if name == "Hash":
            return TypeRef(TypeKind.BYTES, length=32)
        if name in ("String", "str"):
            return STRING
        if name == "()":
            if not args:
                return None
            parts = [self.required_type(a) for a in args]
            return composite("(" + ", ".join(p.describe() for p in parts) + ")")
        if name in ("Vec", "StorageVec") and args:
            if args[0].name == "u8":
                return BYTES
            return sequence(self.required_type(args[0]))
        if name == "[]":
            length = int(type_name.length) if type_name.length and type_name.length.isdigit() else None
            if args[0].name == "u8" and length is not None:
                return TypeRef(TypeKind.BYTES, length=length)
            return sequence(self.required_type(args[0]), length)
        if name in MAPPING_TYPES and len(args) >= 2:
            value = self.required_type(args[1])
            key = args[0]
            if key.name == "()" and key.args:
                for part in reversed(key.args[1:]):
                    value = mapping(self.required_type(part), value)
                return mapping(self.required_type(key.args[0]), value)
            return mapping(self.required_type(key), value)
        if name in TRANSPARENT_TYPES and args:
            return self.type_of(args[0], resolving)
        if name == "Self":
            return composite(self.storage_name)
        return composite(name)

    def required_type(self, type_name: syn.TypeName) -> TypeRef:
        return self.type_of(type_name) or composite("()")

    # ── Callables ────────────────────────────────────────────

    def lower_parameters(self, params: list[syn.Param]) -> list[Parameter]:
        lowered = []
        for param in params:
            type_ref = self.required_type(param.type)
            self.declare(param.name, type_ref)
            lowered.append(Parameter(param.name or "_", type_ref))
        return lowered

    def lower_function(self, fn: syn.RustFunction) -> Function:
        is_message = has_ink_attr(fn.attributes, "message")
        if any(a.path == "ink" and a.has("selector") for a in fn.attributes):
            self.warn("selector", f"explicit selector on '{fn.name}' is dropped", fn.line)
        with self.scope():
            parameters = self.lower_parameters(fn.params)
            returns = self.type_of(fn.returns)
            body = self.lower_body(fn.body, returns is not None)

        if fn.receiver == "&mut self":
            payable = has_ink_attr(fn.attributes, "payable")
            mutability = Mutability.PAYABLE if payable else Mutability.MUTATING
        elif fn.receiver in ("&self", "self"):
            mutability = Mutability.VIEW if touches_chain(body) else Mutability.PURE
        else:
            mutability = Mutability.PURE

        visibility = Visibility.PUBLIC if is_message else Visibility.PRIVATE
        return Function(fn.name, parameters, returns, mutability, visibility, body, fn.line)

    def lower_constructor(self, fn: syn.RustFunction) -> Constructor:
        mutability = Mutability.PAYABLE if has_ink_attr(fn.attributes, "payable") else Mutability.MUTATING
        constructor = Constructor(fn.name, mutability=mutability, line=fn.line)
        statements = list(fn.body.statements)
        tail = None
        if statements and isinstance(statements[-1], syn.ExprStmt) and not statements[-1].semicolon:
            tail = statements.pop().expression
        elif statements and isinstance(statements[-1], syn.ReturnStatement):
            tail = statements.pop().value
        tail = strip_refs(tail) if tail is not None else None

        self.self_aliases = set()
        self.field_aliases = {}
        for stmt in statements:
            if isinstance(stmt, syn.VarDecl) and len(stmt.names) == 1 and self.is_self_value(stmt.value):
                self.self_aliases.add(stmt.names[0])
        if isinstance(tail, syn.StructLiteral):
            declared = {
                stmt.names[0] for stmt in statements if isinstance(stmt, syn.VarDecl) and len(stmt.names) == 1
            }
            for field_name, value in tail.fields:
                if isinstance(value, syn.Identifier) and value.name in declared and field_name in self.field_types:
                    self.field_aliases[value.name] = field_name

        try:
            with self.scope():
                constructor.parameters = self.lower_parameters(fn.params)
                body: list[Statement] = []
                for stmt in statements:
                    body.extend(self.lower_statement(stmt))
                if tail is not None:
                    body.extend(self.lower_constructor_tail(tail, constructor))
        finally:
            self.self_aliases = set()
            self.field_aliases = {}
        constructor.body = body
        return constructor

    def is_self_value(self, expr: syn.Expression | None) -> bool:
        if isinstance(expr, syn.StructLiteral):
            return expr.path[-1] in ("Self", self.storage_name)
        path = call_path(expr) if expr is not None else None
        return bool(path) and len(path) == 2 and path[0] in ("Self", self.storage_name) and path[1] == "default"

    def lower_constructor_tail(self, tail: syn.Expression, constructor: Constructor) -> list[Statement]:
        line = tail.line or None
        if isinstance(tail, syn.StructLiteral) and tail.path[-1] in ("Self", self.storage_name):
            return self.struct_assignments(tail)
        if isinstance(tail, syn.Identifier) and tail.name in self.self_aliases:
            return []
        path = call_path(tail)
        if path and len(path) == 2 and path[0] in ("Self", self.storage_name):
            if path[1] in self.constructor_names:
                constructor.delegates_to = path[1]
                constructor.delegate_args = [self.lower_expr(a) for a in tail.args]
                return []
            if path[1] == "default":
                return []
        self.warn("constructor_tail", "constructor result expression is not a struct literal", line)
        return [Unsupported("constructor_tail", line=line)]

    def struct_assignments(self, literal: syn.StructLiteral) -> list[Statement]:
        assignments: list[Statement] = []
        for field_name, value in literal.fields:
            if is_default_call(value):
                continue
            if isinstance(value, syn.Identifier) and self.field_aliases.get(value.name) == field_name:
                continue
            if field_name not in self.field_types:
                self.warn("struct_literal", f"unknown storage field '{field_name}'", value.line)
                continue
            assignments.append(Assign(StateRef(field_name), self.lower_expr(value), line=value.line or None))
        return assignments

    # ── Bodies ───────────────────────────────────────────────

    def lower_body(self, block: syn.Block, returns_value: bool) -> list[Statement]:
        lowered: list[Statement] = []
        with self.scope():
            for i, stmt in enumerate(block.statements):
                if i == len(block.statements) - 1:
                    lowered.extend(self.lower_tail(stmt, returns_value))
                else:
                    lowered.extend(self.lower_statement(stmt))
        return lowered

    def lower_tail(self, stmt: syn.Statement, returns_value: bool) -> list[Statement]:
        if isinstance(stmt, syn.ExprStmt) and not stmt.semicolon:
            return self.lower_result(stmt.expression, stmt.line or None, returns_value, tail=True)
        if isinstance(stmt, syn.IfStatement) and returns_value:
            return [
                If(
                    self.lower_expr(stmt.condition),
                    self.lower_body(stmt.then, returns_value),
                    self.lower_else(stmt.otherwise, returns_value),
                    line=stmt.line or None,
                )
            ]
        return self.lower_statement(stmt)

    def lower_else(self, otherwise: syn.Block | syn.IfStatement | None, returns_value: bool) -> list[Statement]:
        if otherwise is None:
            return []
        if isinstance(otherwise, syn.IfStatement):
            return self.lower_tail(otherwise, returns_value)
        return self.lower_body(otherwise, returns_value)

    def lower_result(
        self, expr: syn.Expression | None, line: int | None, returns_value: bool, tail: bool
    ) -> list[Statement]:
        """Lower a returned value, unfolding `Ok(..)`/`Err(..)` and branching tails."""
        if expr is None:
            return [Return(line=line)]
        path = call_path(expr)
        if path == ["Ok"] and len(expr.args) == 1:
            inner = expr.args[0]
            if isinstance(inner, syn.TupleExpr) and not inner.items:
                return [] if tail else [Return(line=line)]
            return [Return(self.lower_expr(inner), line=line)]
        if path == ["Err"] and len(expr.args) == 1:
            return [self.revert_of(expr.args[0], line)]
        if tail and isinstance(expr, syn.IfExpr):
            return [
                If(
                    self.lower_expr(expr.condition),
                    self.lower_body(expr.then, returns_value),
                    self.lower_else_expr(expr.otherwise, returns_value),
                    line=line,
                )
            ]
        if tail and isinstance(expr, syn.BlockExpr):
            return self.lower_body(expr.block, returns_value)
        if tail and not returns_value:
            return self.lower_statement(syn.ExprStmt(expr, True, line=expr.line))
        return [Return(self.lower_expr(expr), line=line)]

    def lower_else_expr(self, otherwise: syn.Block | syn.IfExpr | None, returns_value: bool) -> list[Statement]:
        if otherwise is None:
            return []
        if isinstance(otherwise, syn.IfExpr):
            return self.lower_result(otherwise, otherwise.line or None, returns_value, tail=True)
        return self.lower_body(otherwise, returns_value)

    def revert_of(self, error: syn.Expression, line: int | None) -> Revert:
        error = strip_refs(error)
        path = call_path(error)
        if path is not None:
            return Revert(error=path[-1], line=line)
        if isinstance(error, syn.PathExpr):
            return Revert(error=error.segments[-1], line=line)
        if isinstance(error, syn.Identifier):
            return Revert(error=error.name, line=line)
        if isinstance(error, syn.LiteralExpr) and error.kind == "string":
            return Revert(reason=error.value, line=line)
        return Revert(line=line)

    def lower_block(self, block: syn.Block) -> list[Statement]:
        lowered: list[Statement] = []
        with self.scope():
            for stmt in block.statements:
                lowered.extend(self.lower_statement(stmt))
        return lowered

    # ── Statements ───────────────────────────────────────────

    def lower_statement(self, stmt: syn.Statement) -> list[Statement]:
        line = stmt.line or None
        if isinstance(stmt, syn.VarDecl):
            return self.lower_let(stmt)
        if isinstance(stmt, syn.ExprStmt):
            return self.lower_expression_statement(stmt.expression, line)
        if isinstance(stmt, syn.IfStatement):
            otherwise = stmt.otherwise
            if isinstance(otherwise, syn.IfStatement):
                lowered_else = self.lower_statement(otherwise)
            else:
                lowered_else = self.lower_block(otherwise) if otherwise else []
            return [If(self.lower_expr(stmt.condition), self.lower_block(stmt.then), lowered_else, line=line)]
        if isinstance(stmt, syn.WhileStatement):
            return [Loop("while", self.lower_expr(stmt.condition), self.lower_block(stmt.body), line=line)]
        if isinstance(stmt, syn.LoopStatement):
            return [Loop("while", Literal("true", "bool"), self.lower_block(stmt.body), line=line)]
        if isinstance(stmt, syn.ForInStatement):
            return [self.lower_for(stmt, line)]
        if isinstance(stmt, syn.ReturnStatement):
            return self.lower_result(stmt.value, line, True, tail=False)
        if isinstance(stmt, syn.BreakStatement):
            return [Break(line=line)]
        if isinstance(stmt, syn.ContinueStatement):
            return [Continue(line=line)]
        if isinstance(stmt, syn.OpaqueStatement):
            return [Unsupported(stmt.construct, stmt.text, line=line)]
        self.warn("statement", f"unrecognised statement {type(stmt).__name__}", line)
        return [Unsupported(type(stmt).__name__, line=line)]

    def lower_let(self, stmt: syn.VarDecl) -> list[Statement]:
        line = stmt.line or None
        names = [n for n in stmt.names if n]
        if len(names) == 1 and names[0] in self.self_aliases:
            if isinstance(stmt.value, syn.StructLiteral):
                return self.struct_assignments(stmt.value)
            return []
        if len(names) == 1 and names[0] in self.field_aliases:
            if is_default_call(stmt.value) or stmt.value is None:
                return []
            return [Assign(StateRef(self.field_aliases[names[0]]), self.lower_expr(stmt.value), line=line)]

        value = self.lower_expr(stmt.value) if stmt.value is not None else None
        declared = self.type_of(stmt.type) if stmt.type else None
        if len(names) > 1:
            self.warn("tuple_destructuring", f"tuple binding of {', '.join(names)} keeps only the first value", line)
        lowered: list[Statement] = []
        for i, name in enumerate(names):
            type_ref = declared if i == 0 else None
            if type_ref is None and i == 0 and value is not None:
                type_ref = self.static_type(value)
            self.declare(name, type_ref)
            lowered.append(LocalVar(name, type_ref, value if i == 0 else None, line=line))
        return lowered

    def lower_for(self, stmt: syn.ForInStatement, line: int | None) -> Loop:
        iterable = strip_refs(stmt.iterable)
        with self.scope():
            if isinstance(iterable, syn.RangeExpr) and iterable.start is not None and iterable.end is not None:
                start = self.lower_expr(iterable.start)
                end = self.lower_expr(iterable.end)
                var_type = self.static_type(start) or self.static_type(end)
                self.declare(stmt.var, var_type)
                return Loop(
                    "for",
                    Binary("<=" if iterable.inclusive else "<", Name(stmt.var), end),
                    self.lower_block(stmt.body),
                    init=LocalVar(stmt.var, var_type, start, line=line),
                    post=Assign(Name(stmt.var), Literal("1"), "+=", line=line),
                    line=line,
                )
            lowered = self.lower_expr(iterable)
            sequence_type = self.static_type(lowered)
            element = sequence_type.value if sequence_type is not None else None
            self.declare(stmt.var, element)
            return Loop("each", None, self.lower_block(stmt.body), each_var=stmt.var, iterable=lowered, line=line)

    def lower_expression_statement(self, expr: syn.Expression, line: int | None) -> list[Statement]:
        if isinstance(expr, syn.AssignExpr):
            return [Assign(self.lower_expr(expr.target), self.lower_expr(expr.value), expr.op, line=line)]
        if isinstance(expr, syn.MacroCall):
            return self.lower_macro_statement(expr, line)
        if isinstance(expr, syn.BlockExpr):
            return self.lower_block(expr.block)
        if isinstance(expr, syn.IfExpr):
            return self.lower_result(expr, line, False, tail=True)
        if isinstance(expr, syn.OpaqueExpr):
            return [Unsupported(expr.construct, expr.text, line=line)]

        path = call_path(expr)
        if path == ["Ok"]:
            return []
        if path == ["Err"] and len(expr.args) == 1:
            return [self.revert_of(expr.args[0], line)]

        target = strip_refs(expr)
        if isinstance(target, syn.FunctionCall) and isinstance(target.callee, syn.MemberAccess):
            method = target.callee.member
            base = target.callee.base
            if method == "emit_event" and self.is_env(base) and len(target.args) == 1:
                return [self.lower_emit(strip_refs(target.args[0]), line)]
            if method in ("insert", "set", "remove", "take"):
                storage = self.lower_expr(base)
                if self.is_mapping(storage):
                    if method == "insert" and len(target.args) == 2:
                        return [Assign(self.index_of(storage, target.args[0]), self.lower_expr(target.args[1]), line=line)]
                    if method in ("remove", "take") and len(target.args) == 1:
                        return [Delete(self.index_of(storage, target.args[0]), line=line)]
                elif method == "set" and len(target.args) == 1:
                    return [Assign(storage, self.lower_expr(target.args[0]), line=line)]

        return [ExprStatement(self.lower_expr(expr), line=line)]

    def lower_emit(self, payload: syn.Expression, line: int | None) -> Statement:
        if not isinstance(payload, syn.StructLiteral):
            self.warn("emit_event", "emitted value is not an event struct literal", line)
            return Unsupported("emit_event", line=line)
        name = payload.path[-1]
        values = {field_name: value for field_name, value in payload.fields}
        event = self.events.get(name)
        if event is None:
            self.warn("emit_event", f"event '{name}' is not declared in the contract", line)
            return Emit(name, [self.lower_expr(v) for v in values.values()], line=line)
        args = []
        for event_field in event.fields:
            value = values.get(event_field.name)
            args.append(self.lower_expr(value) if value is not None else Builtin("default"))
        return Emit(name, args, line=line)

    def lower_macro_statement(self, macro: syn.MacroCall, line: int | None) -> list[Statement]:
        name, args = macro.name, macro.args
        if name in DEBUG_MACROS:
            return []
        if name == "assert" and args:
            return [Guard(self.lower_expr(args[0]), self.macro_message(args, 1), "assert", line=line)]
        if name in ("assert_eq", "assert_ne") and len(args) >= 2:
            op = "==" if name == "assert_eq" else "!="
            condition = Binary(op, self.lower_expr(args[0]), self.lower_expr(args[1]))
            return [Guard(condition, self.macro_message(args, 2), "assert", line=line)]
        if name in ABORT_MACROS:
            return [Revert(reason=self.macro_message(args, 0), line=line)]
        self.warn("macro", f"macro '{name}!' is not modelled", line)
        return [Unsupported(f"{name}!", macro.text, line=line)]

    @staticmethod
    def macro_message(args: list[syn.Expression], index: int) -> str | None:
        if len(args) > index and isinstance(args[index], syn.LiteralExpr) and args[index].kind == "string":
            return args[index].value
        return None

    # ── Expressions ──────────────────────────────────────────

    def is_self(self, expr: syn.Expression) -> bool:
        return isinstance(expr, syn.Identifier) and (expr.name == "self" or expr.name in self.self_aliases)

    def is_env(self, expr: syn.Expression) -> bool:
        """`self.env()` or `Self::env()`."""
        if not isinstance(expr, syn.FunctionCall) or expr.args:
            return False
        callee = expr.callee
        if isinstance(callee, syn.MemberAccess):
            return callee.member == "env" and self.is_self(callee.base)
        return isinstance(callee, syn.PathExpr) and callee.segments == ["Self", "env"]

    def is_mapping(self, expr: Expression) -> bool:
        type_ref = self.static_type(expr)
        return type_ref is not None and type_ref.kind == TypeKind.MAPPING

    def index_of(self, storage: Expression, key: syn.Expression) -> Expression:
        key = strip_refs(key)
        if isinstance(key, syn.TupleExpr) and key.items:
            result = storage
            for item in key.items:
                result = Index(result, self.lower_expr(item))
            return result
        return Index(storage, self.lower_expr(key))

    def lower_expr(self, expr: syn.Expression) -> Expression:
        if isinstance(expr, syn.LiteralExpr):
            kind = "string" if expr.kind in ("char", "bytes") else expr.kind
            return Literal(expr.value, kind)
        if isinstance(expr, syn.Identifier):
            return self.lower_identifier(expr.name)
        if isinstance(expr, syn.PathExpr):
            return self.lower_path(expr)
        if isinstance(expr, syn.MemberAccess):
            if self.is_self(expr.base):
                return StateRef(expr.member)
            return Member(self.lower_expr(expr.base), expr.member)
        if isinstance(expr, syn.FunctionCall):
            return self.lower_call(expr)
        if isinstance(expr, syn.BinaryOp):
            return Binary(expr.op, self.lower_expr(expr.left), self.lower_expr(expr.right))
        if isinstance(expr, syn.UnaryOp):
            if expr.op == "*":
                return self.lower_expr(expr.operand)
            return Unary(expr.op, self.lower_expr(expr.operand))
        if isinstance(expr, syn.RefExpr):
            return self.lower_expr(expr.operand)
        if isinstance(expr, syn.TryExpr):
            return self.settle(self.lower_expr(expr.operand))
        if isinstance(expr, syn.CastExpr):
            return Cast(self.required_type(expr.type), self.lower_expr(expr.expression))
        if isinstance(expr, syn.IndexAccess):
            return Index(self.lower_expr(expr.base), self.lower_expr(expr.index))
        if isinstance(expr, syn.TupleExpr):
            return Builtin("tuple", [self.lower_expr(i) for i in expr.items if i is not None])
        if isinstance(expr, syn.ArrayLiteral):
            if expr.repeat is not None:
                return Builtin("array_repeat", [self.lower_expr(expr.items[0]), self.lower_expr(expr.repeat)])
            return Builtin("array", [self.lower_expr(i) for i in expr.items])
        if isinstance(expr, syn.StructLiteral):
            self.warn("struct_literal", f"struct literal '{expr.path[-1]}' is modelled opaquely", expr.line)
            return Builtin(expr.path[-1], [self.lower_expr(v) for _, v in expr.fields])
        if isinstance(expr, syn.IfExpr):
            return self.lower_if_value(expr)
        if isinstance(expr, syn.BlockExpr):
            value = self.block_value(expr.block)
            if value is not None:
                return self.lower_expr(value)
            self.warn("block_expression", "block expression with statements is not modelled", expr.line)
            return Raw("{ ... }", Dialect.INK)
        if isinstance(expr, syn.RangeExpr):
            bounds = [self.lower_expr(b) for b in (expr.start, expr.end) if b is not None]
            return Builtin("range", bounds)
        if isinstance(expr, syn.MacroCall):
            if expr.name == "vec":
                return Builtin("array", [self.lower_expr(a) for a in expr.args])
            self.warn("macro", f"macro '{expr.name}!' in expression is kept as source", expr.line)
            return Raw(expr.text, Dialect.INK)
        if isinstance(expr, syn.OpaqueExpr):
            return Raw(expr.text, Dialect.INK)
        if isinstance(expr, syn.AssignExpr):
            self.warn("nested_assignment", "assignment used as a value", expr.line)
            return Builtin("assign" + expr.op, [self.lower_expr(expr.target), self.lower_expr(expr.value)])
        self.warn("expression", f"unrecognised expression {type(expr).__name__}", expr.line)
        return Raw(type(expr).__name__, Dialect.INK)

    @staticmethod
    def block_value(block: syn.Block) -> syn.Expression | None:
        if len(block.statements) == 1:
            only = block.statements[0]
            if isinstance(only, syn.ExprStmt) and not only.semicolon:
                return only.expression
        return None

    def lower_if_value(self, expr: syn.IfExpr) -> Expression:
        then = self.block_value(expr.then)
        otherwise = expr.otherwise
        if isinstance(otherwise, syn.Block):
            other_value: Expression | None = None
            value = self.block_value(otherwise)
            if value is not None:
                other_value = self.lower_expr(value)
        elif isinstance(otherwise, syn.IfExpr):
            other_value = self.lower_if_value(otherwise)
        else:
            other_value = None
        if then is None or other_value is None:
            self.warn("if_expression", "if expression with statements is not modelled", expr.line)
            return Raw("if ...", Dialect.INK)
        return Ternary(self.lower_expr(expr.condition), self.lower_expr(then), other_value)

    def lower_identifier(self, name: str) -> Expression:
        if name in self.field_aliases:
            return StateRef(self.field_aliases[name])
        if self.is_local(name):
            return Name(name)
        if name == "self":
            return EnvRef(EnvKind.THIS)
        if name in self.field_types:
            return StateRef(name)
        if name == "None":
            return Literal("0", "address")
        return Name(name)

    def lower_path(self, expr: syn.PathExpr) -> Expression:
        segments = expr.segments
        if len(segments) == 2 and segments[0] in ("Self", self.storage_name) and segments[1] in self.field_types:
            return StateRef(segments[1])
        if len(segments) == 2 and segments[1] in ("MAX", "MIN"):
            return Builtin(f"{segments[0]}::{segments[1]}")
        return Raw(expr.text, Dialect.INK)

    def settle(self, value: Expression) -> Expression:
        """Unwrapping a transfer result makes failure revert."""
        if isinstance(value, ExternalCall) and value.kind == CallKind.SEND and value.method == "transfer":
            return ExternalCall(CallKind.TRANSFER, value.target, value.value, value.method, value.args)
        return value

    def lower_call(self, call: syn.FunctionCall) -> Expression:
        callee = call.callee
        if isinstance(callee, syn.MemberAccess):
            return self.lower_method(call, callee.base, callee.member)

        path = call_path(call) or []
        args = call.args
        if path in (["Some"], ["Ok"], ["Box", "new"]) and len(args) == 1:
            return self.lower_expr(args[0])
        if path == ["Err"] and len(args) == 1:
            return Builtin("err", [self.lower_expr(args[0])])
        if is_default_call(call):
            return Builtin("default")
        if len(path) == 2 and path[0] in ADDRESS_TYPES and path[1] == "from" and len(args) == 1:
            arg = strip_refs(args[0])
            if isinstance(arg, syn.ArrayLiteral) and arg.items and is_zero_literal(arg.items[0]):
                return Literal("0", "address")
            return Cast(ADDRESS, self.lower_expr(arg))
        if len(path) == 2 and path[0] in ("Self", self.storage_name):
            if path[1] in self.function_names:
                return SelfCall(path[1], [self.lower_expr(a) for a in args])
            if path[1] == "default" or path[1] in self.constructor_names:
                self.warn("constructor_call", f"'{'::'.join(path)}' called outside a constructor tail", call.line)
        if path:
            return Call(Name("::".join(path)), [self.lower_expr(a) for a in args])
        return Call(self.lower_expr(callee), [self.lower_expr(a) for a in args])

    def lower_method(self, call: syn.FunctionCall, base: syn.Expression, method: str) -> Expression:
        args = call.args
        if self.is_env(base):
            return self.lower_env(call, method)
        if self.is_self(base) and method in self.function_names:
            return SelfCall(method, [self.lower_expr(a) for a in args])

        if method in PASSTHROUGH_METHODS:
            return self.settle(self.lower_expr(base))
        if method == "is_ok":
            return self.lower_expr(base)
        if method == "is_err":
            return Unary("!", self.lower_expr(base))

        if method.startswith(ARITHMETIC_PREFIXES) and len(args) == 1:
            op = ARITHMETIC_OPS.get(method.split("_", 1)[1])
            if op:
                return Binary(op, self.lower_expr(base), self.lower_expr(args[0]), checked=True)

        if method in ("is_some", "is_none"):
            inner = strip_refs(base)
            if isinstance(inner, syn.FunctionCall) and isinstance(inner.callee, syn.MemberAccess):
                storage = self.lower_expr(inner.callee.base)
                if inner.callee.member == "get" and self.is_mapping(storage) and len(inner.args) == 1:
                    contains = Builtin("contains", [self.index_of(storage, inner.args[0])])
                    return contains if method == "is_some" else Unary("!", contains)
            value = Binary("!=", self.lower_expr(base), Literal("0", "address"))
            return value if method == "is_some" else Unary("!", value)

        target = self.lower_expr(base)
        if self.is_mapping(target):
            if method == "get" and len(args) == 1:
                return self.index_of(target, args[0])
            if method == "contains" and len(args) == 1:
                return Builtin("contains", [self.index_of(target, args[0])])
            if method == "insert" and len(args) == 2:
                return Builtin("assign=", [self.index_of(target, args[0]), self.lower_expr(args[1])])
        if method == "get" and not args:
            return target
        if method == "len" and not args:
            return Member(target, "length")

        type_ref = self.static_type(target)
        if type_ref is not None and type_ref.kind == TypeKind.COMPOSITE and type_ref.name.endswith("Ref"):
            self.warn("cross_contract_call", f"call to '{method}' on contract reference", call.line)
            return ExternalCall(CallKind.INVOKE, target, None, method, [self.lower_expr(a) for a in args])
        return Call(Member(target, method), [self.lower_expr(a) for a in args])

    def lower_env(self, call: syn.FunctionCall, method: str) -> Expression:
        args = [self.lower_expr(a) for a in call.args]
        if method in ENV_QUERIES:
            return EnvRef(ENV_QUERIES[method], args if method == "random" else [])
        if method == "transfer" and len(args) == 2:
            return ExternalCall(CallKind.SEND, args[0], args[1], "transfer")
        if method == "terminate_contract":
            return Builtin("selfdestruct", args)
        if method == "caller_is_origin":
            return Binary("==", EnvRef(EnvKind.CALLER), EnvRef(EnvKind.ORIGIN))
        if method in ("hash_bytes", "hash_encoded"):
            return Builtin("keccak256", args)
        if method == "emit_event":
            self.warn("emit_event", "event emitted inside an expression", call.line)
            return Builtin("emit_event", args)
        self.warn("env", f"environment call '{method}' is not modelled", call.line)
        return Builtin(f"env.{method}", args)


def build_ink(module: syn.InkModule, warnings: list[ParseWarning]) -> ContractModel:
    return InkLowering(module, warnings).build()
