"""
Dialect-neutral intermediate representation.

Both front ends lower their syntax trees into these dataclasses; the rule
engine and the code generators only ever see this model. A ContractModel is
built fresh for one request and thrown away afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Dialect(str, Enum):
    INK = "ink"
    SOLIDITY = "solidity"

    @classmethod
    def from_name(cls, value: str | None) -> Dialect | None:
        """Case-insensitive lookup; returns None for unknown names."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class Mutability(str, Enum):
    PURE = "pure"
    VIEW = "view"
    MUTATING = "mutating"
    PAYABLE = "payable"

    @property
    def writes_state(self) -> bool:
        return self in (Mutability.MUTATING, Mutability.PAYABLE)


# ── Types ─────────────────────────────────────────────────────


class TypeKind(str, Enum):
    BOOL = "bool"
    INTEGER = "integer"
    ADDRESS = "address"
    STRING = "string"
    BYTES = "bytes"
    MAPPING = "mapping"
    SEQUENCE = "sequence"
    COMPOSITE = "composite"


@dataclass(frozen=True)
class TypeRef:
    """A declared type.

    ``bits``/``signed`` describe integers, ``length`` the size of fixed bytes
    and fixed arrays, ``key``/``value`` the sub-types of mappings (``value``
    doubles as the element type of sequences) and ``name`` the spelling of
    composite types or integer aliases such as ``Balance``.
    """

    kind: TypeKind
    bits: int = 0
    signed: bool = False
    length: int | None = None
    key: TypeRef | None = None
    value: TypeRef | None = None
    name: str = ""

    @property
    def is_integer(self) -> bool:
        return self.kind == TypeKind.INTEGER

    @property
    def is_dynamic_sequence(self) -> bool:
        return self.kind == TypeKind.SEQUENCE and self.length is None

    def describe(self) -> str:
        """Canonical spelling used for signatures and messages."""
        if self.kind == TypeKind.INTEGER:
            return f"{'int' if self.signed else 'uint'}{self.bits}"
        if self.kind == TypeKind.BYTES:
            return f"bytes{self.length}" if self.length else "bytes"
        if self.kind == TypeKind.MAPPING:
            return f"mapping({self.key.describe()}=>{self.value.describe()})"
        if self.kind == TypeKind.SEQUENCE:
            size = str(self.length) if self.length is not None else ""
            return f"{self.value.describe()}[{size}]"
        if self.kind == TypeKind.COMPOSITE:
            return self.name
        return self.kind.value


BOOL = TypeRef(TypeKind.BOOL)
ADDRESS = TypeRef(TypeKind.ADDRESS)
STRING = TypeRef(TypeKind.STRING)
BYTES = TypeRef(TypeKind.BYTES)


def integer(bits: int = 256, signed: bool = False, name: str = "") -> TypeRef:
    return TypeRef(TypeKind.INTEGER, bits=bits, signed=signed, name=name)


def mapping(key: TypeRef, value: TypeRef) -> TypeRef:
    return TypeRef(TypeKind.MAPPING, key=key, value=value)


def sequence(element: TypeRef, length: int | None = None) -> TypeRef:
    return TypeRef(TypeKind.SEQUENCE, value=element, length=length)


def composite(name: str) -> TypeRef:
    return TypeRef(TypeKind.COMPOSITE, name=name)


# ── Expressions ───────────────────────────────────────────────


class EnvKind(str, Enum):
    CALLER = "caller"
    VALUE = "value"
    TIMESTAMP = "timestamp"
    BLOCK_NUMBER = "block_number"
    ORIGIN = "origin"
    THIS = "this"
    BALANCE = "balance"
    PREVRANDAO = "prevrandao"
    BLOCKHASH = "blockhash"


class CallKind(str, Enum):
    TRANSFER = "transfer"
    SEND = "send"
    CALL = "call"
    DELEGATECALL = "delegatecall"
    INVOKE = "invoke"


@dataclass
class Expression:
    pass


@dataclass
class Literal(Expression):
    """``kind`` is one of number, hex, string, bool or address (zero address)."""

    value: str
    kind: str = "number"


@dataclass
class Name(Expression):
    name: str


@dataclass
class StateRef(Expression):
    field: str


@dataclass
class EnvRef(Expression):
    kind: EnvKind
    args: list[Expression] = field(default_factory=list)


@dataclass
class Unary(Expression):
    op: str
    operand: Expression
    prefix: bool = True


@dataclass
class Binary(Expression):
    op: str
    left: Expression
    right: Expression
    checked: bool = False


@dataclass
class Ternary(Expression):
    condition: Expression
    if_true: Expression
    if_false: Expression


@dataclass
class Index(Expression):
    base: Expression
    index: Expression


@dataclass
class Member(Expression):
    base: Expression
    member: str


@dataclass
class Call(Expression):
    function: Expression
    args: list[Expression] = field(default_factory=list)


@dataclass
class SelfCall(Expression):
    name: str
    args: list[Expression] = field(default_factory=list)


@dataclass
class ExternalCall(Expression):
    kind: CallKind
    target: Expression
    value: Expression | None = None
    method: str = ""
    args: list[Expression] = field(default_factory=list)


@dataclass
class Builtin(Expression):
    """Chain builtins such as selfdestruct or keccak256."""

    name: str
    args: list[Expression] = field(default_factory=list)


@dataclass
class Cast(Expression):
    type: TypeRef
    expression: Expression


@dataclass
class Raw(Expression):
    """Source text that has no IR equivalent, kept for reporting."""

    text: str
    dialect: Dialect


# ── Statements ────────────────────────────────────────────────


@dataclass(kw_only=True)
class Statement:
    line: int | None = None


@dataclass
class Assign(Statement):
    target: Expression
    value: Expression
    op: str = "="


@dataclass
class LocalVar(Statement):
    name: str
    type: TypeRef | None = None
    value: Expression | None = None


@dataclass
class If(Statement):
    condition: Expression
    then: list[Statement] = field(default_factory=list)
    otherwise: list[Statement] = field(default_factory=list)


@dataclass
class Loop(Statement):
    """``for``/``while``/``do`` loop, or a for-each when ``each_var`` is set."""

    kind: str = "while"
    condition: Expression | None = None
    body: list[Statement] = field(default_factory=list)
    init: Statement | None = None
    post: Statement | None = None
    each_var: str | None = None
    iterable: Expression | None = None


@dataclass
class ExprStatement(Statement):
    expression: Expression


@dataclass
class Emit(Statement):
    event: str
    args: list[Expression] = field(default_factory=list)


@dataclass
class Return(Statement):
    value: Expression | None = None


@dataclass
class Guard(Statement):
    condition: Expression
    message: str | None = None
    kind: str = "require"


@dataclass
class Revert(Statement):
    reason: str | None = None
    error: str | None = None


@dataclass
class Delete(Statement):
    target: Expression


@dataclass
class Unchecked(Statement):
    body: list[Statement] = field(default_factory=list)


@dataclass
class Break(Statement):
    pass


@dataclass
class Continue(Statement):
    pass


@dataclass
class Unsupported(Statement):
    construct: str
    text: str = ""


# ── Declarations ──────────────────────────────────────────────


@dataclass
class Parameter:
    name: str
    type: TypeRef


@dataclass
class StorageField:
    name: str
    type: TypeRef
    visibility: Visibility = Visibility.PRIVATE
    default: Expression | None = None
    constant: bool = False
    line: int | None = None


@dataclass
class Function:
    name: str
    parameters: list[Parameter] = field(default_factory=list)
    returns: TypeRef | None = None
    mutability: Mutability = Mutability.MUTATING
    visibility: Visibility = Visibility.PUBLIC
    body: list[Statement] = field(default_factory=list)
    line: int | None = None
    explicit_visibility: bool = True

    @property
    def signature(self) -> tuple[str, tuple[str, ...]]:
        return self.name, tuple(p.type.describe() for p in self.parameters)


@dataclass
class Constructor:
    name: str = "new"
    parameters: list[Parameter] = field(default_factory=list)
    body: list[Statement] = field(default_factory=list)
    mutability: Mutability = Mutability.MUTATING
    implicit: bool = False
    delegates_to: str | None = None
    delegate_args: list[Expression] = field(default_factory=list)
    line: int | None = None


@dataclass
class EventField:
    name: str
    type: TypeRef
    indexed: bool = False


@dataclass
class Event:
    name: str
    fields: list[EventField] = field(default_factory=list)
    anonymous: bool = False
    line: int | None = None


@dataclass
class ParseWarning:
    construct: str
    message: str
    line: int | None = None

    def __str__(self) -> str:
        where = f"line {self.line}: " if self.line else ""
        return f"{where}{self.message}"


@dataclass
class ContractModel:
    name: str
    dialect: Dialect
    fields: list[StorageField] = field(default_factory=list)
    constructors: list[Constructor] = field(default_factory=list)
    functions: list[Function] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[ParseWarning] = field(default_factory=list)
    checked_arithmetic: bool = False
    version_constraint: str | None = None
    version_line: int | None = None

    def field_named(self, name: str) -> StorageField | None:
        return next((f for f in self.fields if f.name == name), None)

    def event_named(self, name: str) -> Event | None:
        return next((e for e in self.events if e.name == name), None)

    def function_named(self, name: str) -> Function | None:
        return next((f for f in self.functions if f.name == name), None)

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]
