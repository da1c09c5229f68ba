"""
Syntax tree node definitions for both dialect parsers.

Expression and statement nodes are shared: Solidity and Rust agree closely
enough on their shape that one set serves both grammars. Declaration nodes
are dialect specific (SourceUnit/ContractDefinition for Solidity,
InkModule and its items for ink!). Every node records its source line.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(kw_only=True)
class Node:
    line: int = 0


# ── Types ─────────────────────────────────────────────────────


@dataclass
class TypeName(Node):
    """A type as written.

    ``name`` is the last path segment (``Mapping``, ``uint256``, ``AccountId``)
    or one of the structural markers ``mapping``, ``[]`` (array, with
    ``length`` for fixed arrays) and ``()`` (tuple).
    """

    name: str
    args: list[TypeName] = field(default_factory=list)
    length: str | None = None


# ── Expressions ───────────────────────────────────────────────


@dataclass
class Expression(Node):
    pass


@dataclass
class LiteralExpr(Expression):
    """``kind`` is one of number, hex, string, bool, char or bytes."""

    value: str
    kind: str


@dataclass
class Identifier(Expression):
    name: str


@dataclass
class PathExpr(Expression):
    """Rust path such as ``Error::NotOwner`` or ``Self::new``."""

    segments: list[str]

    @property
    def text(self) -> str:
        return "::".join(self.segments)


@dataclass
class UnaryOp(Expression):
    op: str
    operand: Expression
    prefix: bool = True


@dataclass
class BinaryOp(Expression):
    op: str
    left: Expression
    right: Expression


@dataclass
class AssignExpr(Expression):
    op: str
    target: Expression
    value: Expression


@dataclass
class TernaryOp(Expression):
    condition: Expression
    if_true: Expression
    if_false: Expression


@dataclass
class IndexAccess(Expression):
    base: Expression
    index: Expression | None


@dataclass
class MemberAccess(Expression):
    base: Expression
    member: str


@dataclass
class FunctionCall(Expression):
    callee: Expression
    args: list[Expression] = field(default_factory=list)
    options: dict[str, Expression] = field(default_factory=dict)
    named_args: dict[str, Expression] = field(default_factory=dict)


@dataclass
class MacroCall(Expression):
    name: str
    args: list[Expression] = field(default_factory=list)
    text: str = ""


@dataclass
class StructLiteral(Expression):
    path: list[str]
    fields: list[tuple[str, Expression]] = field(default_factory=list)
    base: Expression | None = None


@dataclass
class TupleExpr(Expression):
    items: list[Expression | None] = field(default_factory=list)


@dataclass
class ArrayLiteral(Expression):
    items: list[Expression] = field(default_factory=list)
    repeat: Expression | None = None


@dataclass
class CastExpr(Expression):
    type: TypeName
    expression: Expression


@dataclass
class NewExpr(Expression):
    type: TypeName


@dataclass
class RefExpr(Expression):
    operand: Expression
    mutable: bool = False


@dataclass
class TryExpr(Expression):
    operand: Expression


@dataclass
class RangeExpr(Expression):
    start: Expression | None
    end: Expression | None
    inclusive: bool = False


@dataclass
class IfExpr(Expression):
    condition: Expression
    then: Block
    otherwise: Block | IfExpr | None = None


@dataclass
class BlockExpr(Expression):
    block: Block


@dataclass
class OpaqueExpr(Expression):
    """Expression kept as source text (closures, match, inline assembly)."""

    construct: str
    text: str


# ── Statements ────────────────────────────────────────────────


@dataclass
class Statement(Node):
    pass


@dataclass
class Block(Statement):
    statements: list[Statement] = field(default_factory=list)


@dataclass
class VarDecl(Statement):
    """``names`` holds several entries (some None) for tuple destructuring."""

    names: list[str | None]
    type: TypeName | None = None
    value: Expression | None = None
    mutable: bool = False


@dataclass
class ExprStmt(Statement):
    expression: Expression
    semicolon: bool = True


@dataclass
class IfStatement(Statement):
    condition: Expression
    then: Block
    otherwise: Block | IfStatement | None = None


@dataclass
class ForStatement(Statement):
    init: Statement | None
    condition: Expression | None
    post: Expression | None
    body: Block


@dataclass
class ForInStatement(Statement):
    var: str
    iterable: Expression
    body: Block


@dataclass
class WhileStatement(Statement):
    condition: Expression
    body: Block
    do_while: bool = False


@dataclass
class LoopStatement(Statement):
    body: Block


@dataclass
class ReturnStatement(Statement):
    value: Expression | None = None


@dataclass
class EmitStatement(Statement):
    event: str
    args: list[Expression] = field(default_factory=list)


@dataclass
class RevertStatement(Statement):
    """``revert("reason")`` when ``error`` is None, else ``revert Error(args)``."""

    error: str | None = None
    args: list[Expression] = field(default_factory=list)


@dataclass
class DeleteStatement(Statement):
    target: Expression


@dataclass
class BreakStatement(Statement):
    pass


@dataclass
class ContinueStatement(Statement):
    pass


@dataclass
class UncheckedBlock(Statement):
    body: Block


@dataclass
class PlaceholderStatement(Statement):
    """The ``_;`` marker inside a Solidity modifier."""


@dataclass
class OpaqueStatement(Statement):
    construct: str
    text: str


# ── Shared declarations ───────────────────────────────────────


@dataclass
class Param(Node):
    name: str | None
    type: TypeName
    indexed: bool = False


# ── Solidity declarations ─────────────────────────────────────


@dataclass
class StateVariable(Node):
    name: str
    type: TypeName
    visibility: str = "internal"
    constant: bool = False
    immutable: bool = False
    value: Expression | None = None


@dataclass
class ModifierInvocation(Node):
    name: str
    args: list[Expression] = field(default_factory=list)


@dataclass
class FunctionDefinition(Node):
    """``kind`` is function, constructor, modifier, receive or fallback."""

    kind: str
    name: str
    params: list[Param] = field(default_factory=list)
    returns: list[Param] = field(default_factory=list)
    visibility: str = "public"
    mutability: str = ""
    modifiers: list[ModifierInvocation] = field(default_factory=list)
    body: Block | None = None
    visibility_declared: bool = False


@dataclass
class EventDefinition(Node):
    name: str
    params: list[Param] = field(default_factory=list)
    anonymous: bool = False


@dataclass
class ContractDefinition(Node):
    kind: str
    name: str
    bases: list[str] = field(default_factory=list)
    state_variables: list[StateVariable] = field(default_factory=list)
    functions: list[FunctionDefinition] = field(default_factory=list)
    modifiers: list[FunctionDefinition] = field(default_factory=list)
    events: list[EventDefinition] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    structs: list[str] = field(default_factory=list)
    enums: list[str] = field(default_factory=list)


@dataclass
class SourceUnit(Node):
    pragma: str | None = None
    pragma_line: int = 0
    contracts: list[ContractDefinition] = field(default_factory=list)


# ── ink! declarations ─────────────────────────────────────────


@dataclass
class Attribute(Node):
    """``#[ink(message, payable)]`` has path ``ink`` and args ``["message", "payable"]``."""

    path: str
    args: list[str] = field(default_factory=list)
    inner: bool = False

    def has(self, arg: str) -> bool:
        return any(a == arg or a.startswith(arg + "=") for a in self.args)


def has_ink_attr(attributes: list[Attribute], arg: str) -> bool:
    return any(a.path == "ink" and a.has(arg) for a in attributes)


@dataclass
class RustField(Node):
    name: str
    type: TypeName
    attributes: list[Attribute] = field(default_factory=list)
    public: bool = False


@dataclass
class RustStruct(Node):
    name: str
    fields: list[RustField] = field(default_factory=list)
    attributes: list[Attribute] = field(default_factory=list)


@dataclass
class RustEnum(Node):
    name: str
    variants: list[str] = field(default_factory=list)
    attributes: list[Attribute] = field(default_factory=list)


@dataclass
class RustFunction(Node):
    """``receiver`` is None, ``&self``, ``&mut self`` or ``self``."""

    name: str
    params: list[Param] = field(default_factory=list)
    receiver: str | None = None
    returns: TypeName | None = None
    body: Block | None = None
    attributes: list[Attribute] = field(default_factory=list)
    public: bool = False


@dataclass
class ImplBlock(Node):
    target: str
    trait: str | None = None
    functions: list[RustFunction] = field(default_factory=list)
    constants: list[ConstItem] = field(default_factory=list)


@dataclass
class ConstItem(Node):
    name: str
    type: TypeName
    value: Expression


@dataclass
class TypeAlias(Node):
    name: str
    type: TypeName


@dataclass
class InkModule(Node):
    name: str
    structs: list[RustStruct] = field(default_factory=list)
    enums: list[RustEnum] = field(default_factory=list)
    impls: list[ImplBlock] = field(default_factory=list)
    constants: list[ConstItem] = field(default_factory=list)
    aliases: list[TypeAlias] = field(default_factory=list)
    skipped: list[tuple[str, str, int]] = field(default_factory=list)
