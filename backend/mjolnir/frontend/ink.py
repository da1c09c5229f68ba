"""
ink! parser.

Parses the subset of Rust that ink! contracts are written in: the
`#[ink::contract]` module and its items (storage/event structs, error enums,
impl blocks, consts, type aliases) plus Rust statements and expressions.
Constructs outside that subset (match, closures, `if let`, nested modules)
are kept as opaque nodes and reported as parse warnings.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from mjolnir.errors import ContractSyntaxError
from mjolnir.frontend.ast_nodes import (
    ArrayLiteral,
    AssignExpr,
    Attribute,
    Block,
    BlockExpr,
    BreakStatement,
    CastExpr,
    ConstItem,
    ContinueStatement,
    Expression,
    ExprStmt,
    ForInStatement,
    FunctionCall,
    Identifier,
    IfExpr,
    IfStatement,
    ImplBlock,
    IndexAccess,
    InkModule,
    LiteralExpr,
    LoopStatement,
    MacroCall,
    MemberAccess,
    OpaqueExpr,
    OpaqueStatement,
    Param,
    PathExpr,
    RangeExpr,
    RefExpr,
    ReturnStatement,
    RustEnum,
    RustField,
    RustFunction,
    RustStruct,
    Statement,
    StructLiteral,
    TryExpr,
    TupleExpr,
    TypeAlias,
    TypeName,
    UnaryOp,
    VarDecl,
    WhileStatement,
)
from mjolnir.frontend.parser_base import ParserBase
from mjolnir.frontend.tokens import TokenType

ASSIGNMENT_OPS = frozenset({"=", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<=", ">>="})
PATH_KEYWORDS = ("self", "Self", "crate", "super")


class InkParser(ParserBase):
    """Recursive descent parser for ink! contract source files."""

    BINARY_LEVELS = (
        (frozenset({"||"}), False),
        (frozenset({"&&"}), False),
        (frozenset({"==", "!=", "<", ">", "<=", ">="}), False),
        (frozenset({"|"}), False),
        (frozenset({"^"}), False),
        (frozenset({"&"}), False),
        (frozenset({"<<", ">>"}), False),
        (frozenset({"+", "-"}), False),
        (frozenset({"*", "/", "%"}), False),
    )

    def __init__(self, tokens, source: str):  # noqa: ANN001
        super().__init__(tokens, source)
        self.no_struct = False
        self.contract_module: InkModule | None = None

    @contextmanager
    def struct_literals(self, allowed: bool) -> Iterator[None]:
        """Rust forbids struct literals in `if`/`while`/`for` heads; track that."""
        saved = self.no_struct
        self.no_struct = not allowed
        try:
            yield
        finally:
            self.no_struct = saved

    # ── Items ────────────────────────────────────────────────

    def parse(self) -> InkModule:
        file_module = InkModule("", line=1)
        self.parse_items(file_module, closer=None)
        return self.contract_module or file_module

    def parse_items(self, module: InkModule, closer: str | None) -> None:
        while not self.at_end() and not (closer and self.check(closer)):
            attributes = self.parse_attributes()
            if closer is None and self.at_end():
                break
            token = self.current()
            public = self.parse_visibility()

            if self.check("mod"):
                self.parse_mod(module, attributes)
            elif self.check("use", "extern", "static"):
                self.skip_until(";")
                self.expect(";")
            elif self.check("struct"):
                module.structs.append(self.parse_struct(attributes))
            elif self.check("enum"):
                module.enums.append(self.parse_enum(attributes))
            elif self.check("impl"):
                module.impls.append(self.parse_impl())
            elif self.check("const") and not self.check("fn", offset=1):
                module.constants.append(self.parse_const())
            elif self.check("type"):
                module.aliases.append(self.parse_type_alias())
            elif self.check("fn", "const", "trait", "unsafe"):
                kind = "trait" if self.check("trait") else "function"
                self.skip_until("{", ";")
                if self.check("{"):
                    self.skip_balanced()
                else:
                    self.advance()
                module.skipped.append((kind, token.value, token.line))
                self.warn(kind, f"free {kind} outside the contract impl is ignored", token.line)
            elif public and self.check(";"):
                self.advance()
            else:
                raise self.error(f"unexpected {self.describe(self.current())} at item level")

    def parse_mod(self, module: InkModule, attributes: list[Attribute]) -> None:
        line = self.expect("mod").line
        name = self.expect_identifier(" (module name)")
        if self.match(";"):
            return
        if any(a.path == "ink::contract" for a in attributes) and self.contract_module is None:
            contract = InkModule(name, line=line)
            self.expect("{")
            self.parse_items(contract, closer="}")
            self.expect("}")
            self.contract_module = contract
            return
        is_test = any(a.path == "cfg" and any("test" in arg for arg in a.args) for a in attributes)
        self.skip_balanced()
        kind = "test_module" if is_test else "module"
        module.skipped.append((kind, name, line))
        if is_test:
            self.warn(kind, f"test module '{name}' is skipped", line)
        else:
            self.warn(kind, f"nested module '{name}' is not modelled", line)

    def parse_attributes(self) -> list[Attribute]:
        attributes = []
        while self.check("#"):
            line = self.advance().line
            inner = self.match("!")
            self.expect("[")
            path = self.advance().value
            while self.match("::"):
                path += "::" + self.advance().value
            args: list[str] = []
            if self.check("("):
                self.advance()
                while not self.check(")"):
                    start = self.pos
                    self.skip_until(",", ")")
                    args.append("".join(self.text_from(start).split()))
                    if not self.match(","):
                        break
                self.expect(")")
            else:
                self.skip_until("]")
            self.expect("]")
            if not inner:
                attributes.append(Attribute(path, args, inner, line=line))
        return attributes

    def parse_visibility(self) -> bool:
        if self.match("pub"):
            if self.check("("):
                self.skip_balanced()
            return True
        return False

    def skip_generics(self) -> None:
        """Skip a `<...>` parameter/argument list, honouring `>>` splits."""
        self.expect("<")
        depth = 1
        while depth:
            if self.at_end():
                raise self.error("unterminated generic parameter list")
            if self.check("<"):
                self.advance()
                depth += 1
            elif self.split_angle():
                depth -= 1
            elif self.check("(", "["):
                self.skip_balanced()
            else:
                self.advance()

    def parse_struct(self, attributes: list[Attribute]) -> RustStruct:
        line = self.expect("struct").line
        struct = RustStruct(self.expect_identifier(" (struct name)"), attributes=attributes, line=line)
        if self.check("<"):
            self.skip_generics()
        if self.check("("):
            self.skip_balanced()
            self.expect(";")
            return struct
        if self.match(";"):
            return struct
        self.skip_until("{")
        self.expect("{")
        while not self.check("}"):
            field_attrs = self.parse_attributes()
            field_line = self.current().line
            public = self.parse_visibility()
            name = self.expect_identifier(" (field name)")
            self.expect(":")
            struct.fields.append(RustField(name, self.parse_type_name(), field_attrs, public, line=field_line))
            if not self.match(","):
                break
        self.expect("}")
        return struct

    def parse_enum(self, attributes: list[Attribute]) -> RustEnum:
        line = self.expect("enum").line
        enum = RustEnum(self.expect_identifier(" (enum name)"), attributes=attributes, line=line)
        if self.check("<"):
            self.skip_generics()
        self.expect("{")
        while not self.check("}"):
            self.parse_attributes()
            enum.variants.append(self.expect_identifier(" (enum variant)"))
            if self.check("(", "{"):
                self.skip_balanced()
            if self.match("="):
                self.parse_expression()
            if not self.match(","):
                break
        self.expect("}")
        return enum

    def parse_impl(self) -> ImplBlock:
        line = self.expect("impl").line
        if self.check("<"):
            self.skip_generics()
        first = self.parse_type_name()
        trait = None
        target = first.name
        if self.match("for"):
            trait = first.name
            target = self.parse_type_name().name
        self.skip_until("{")
        impl = ImplBlock(target, trait, line=line)
        self.expect("{")
        while not self.check("}"):
            if self.at_end():
                raise self.error(f"unterminated impl block for '{target}'")
            attributes = self.parse_attributes()
            public = self.parse_visibility()
            if self.check("fn") or (self.check("const", "unsafe") and self.check("fn", offset=1)):
                if not self.check("fn"):
                    self.advance()
                impl.functions.append(self.parse_function(attributes, public))
            elif self.check("const"):
                impl.constants.append(self.parse_const())
            elif self.check("type"):
                self.skip_until(";")
                self.expect(";")
            else:
                raise self.error(f"unexpected {self.describe(self.current())} in impl block")
        self.expect("}")
        return impl

    def parse_function(self, attributes: list[Attribute], public: bool) -> RustFunction:
        line = self.expect("fn").line
        func = RustFunction(self.expect_identifier(" (function name)"), attributes=attributes, public=public, line=line)
        if self.check("<"):
            self.skip_generics()
        self.expect("(")
        while not self.check(")"):
            param_line = self.current().line
            receiver = self.try_receiver()
            if receiver:
                func.receiver = receiver
            else:
                name = self.parse_pattern_name()
                self.expect(":", f" in parameters of '{func.name}'")
                func.params.append(Param(name, self.parse_type_name(), line=param_line))
            if not self.match(","):
                break
        self.expect(")")
        if self.match("->"):
            func.returns = self.parse_type_name()
        if self.check("where"):
            self.skip_until("{", ";")
        if self.match(";"):
            return func
        func.body = self.parse_block()
        return func

    def try_receiver(self) -> str | None:
        start = self.pos
        reference = self.match("&")
        if reference and self.current().type == TokenType.LIFETIME:
            self.advance()
        mutable = self.match("mut")
        if self.match("self"):
            if self.match(":"):
                self.parse_type_name()
            if not reference:
                return "self"
            return "&mut self" if mutable else "&self"
        self.pos = start
        return None

    def parse_pattern_name(self) -> str:
        """Binding name of a simple pattern (`x`, `mut x`, `_`, `ref x`)."""
        self.match("ref")
        self.match("mut")
        if self.check("(", "["):
            start = self.pos
            self.skip_balanced()
            self.warn("pattern", f"destructuring pattern '{self.text_from(start)}' is reduced to a single binding")
            return "_"
        return self.expect_identifier(" (binding name)")

    def parse_const(self) -> ConstItem:
        line = self.expect("const").line
        name = self.expect_identifier(" (const name)")
        self.expect(":")
        type_name = self.parse_type_name()
        self.expect("=")
        value = self.parse_expression()
        self.expect(";")
        return ConstItem(name, type_name, value, line=line)

    def parse_type_alias(self) -> TypeAlias:
        line = self.expect("type").line
        name = self.expect_identifier(" (type alias)")
        if self.check("<"):
            self.skip_generics()
        self.expect("=")
        alias = TypeAlias(name, self.parse_type_name(), line=line)
        self.expect(";")
        return alias

    # ── Types ────────────────────────────────────────────────

    def parse_type_name(self) -> TypeName:
        line = self.current().line
        if self.match("&"):
            if self.current().type == TokenType.LIFETIME:
                self.advance()
            self.match("mut")
            return self.parse_type_name()
        if self.match("("):
            items = self.parse_comma_list(")", self.parse_type_name)
            if len(items) == 1 and not self.tokens[self.pos - 2].value == ",":
                return items[0]
            return TypeName("()", items, line=line)
        if self.match("["):
            element = self.parse_type_name()
            length = None
            if self.match(";"):
                start = self.pos
                self.parse_expression()
                length = self.text_from(start)
            self.expect("]")
            return TypeName("[]", [element], length, line=line)
        if self.check("dyn", "impl"):
            self.advance()

        name = self.advance()
        if name.type not in (TokenType.IDENTIFIER, TokenType.KEYWORD):
            raise self.error(f"expected type but found {self.describe(name)}", name)
        segment = name.value
        args: list[TypeName] = []
        while True:
            if self.check("<"):
                args = self.parse_generic_args()
            if self.match("::"):
                if self.check("<"):
                    continue
                segment = self.advance().value
                args = []
                continue
            break
        return TypeName(segment, args, line=line)

    def parse_generic_args(self) -> list[TypeName]:
        self.expect("<")
        args = []
        while not self.split_angle():
            if self.at_end():
                raise self.error("unterminated generic argument list")
            if self.current().type == TokenType.LIFETIME:
                self.advance()
            elif self.current().type in (TokenType.NUMBER, TokenType.HEX_NUMBER) or self.check("{"):
                if self.check("{"):
                    self.skip_balanced()
                else:
                    self.advance()
            else:
                args.append(self.parse_type_name())
            self.match(",")
        return args

    # ── Statements ───────────────────────────────────────────

    def parse_block(self) -> Block:
        line = self.expect("{").line
        block = Block(line=line)
        with self.struct_literals(True):
            while not self.check("}"):
                if self.at_end():
                    raise self.error("unterminated block", self.tokens[self.pos - 1])
                statement = self.parse_statement()
                if statement is not None:
                    block.statements.append(statement)
        self.expect("}")
        return block

    def parse_statement(self) -> Statement | None:
        if self.match(";"):
            return None
        if self.check("#"):
            self.parse_attributes()
        token = self.current()
        line = token.line

        if token.type == TokenType.LIFETIME and self.check(":", offset=1):
            self.advance()
            self.advance()
            token = self.current()
        if self.check("let"):
            return self.parse_let()
        if self.check("const", "use", "fn", "struct", "enum", "impl"):
            self.skip_until("{", ";")
            if self.check("{"):
                self.skip_balanced()
            else:
                self.advance()
            self.warn("nested_item", f"item '{token.value}' inside a function body is ignored", line)
            return None
        if self.match("return"):
            value = None
            if not self.check(";", "}"):
                value = self.parse_expression()
            self.match(";")
            return ReturnStatement(value, line=line)
        if self.match("break"):
            if self.current().type == TokenType.LIFETIME:
                self.advance()
            if not self.check(";", "}"):
                self.parse_expression()
                self.warn("break_value", "break with a value is reduced to a plain break", line)
            self.match(";")
            return BreakStatement(line=line)
        if self.match("continue"):
            if self.current().type == TokenType.LIFETIME:
                self.advance()
            self.match(";")
            return ContinueStatement(line=line)
        if self.check("if"):
            return self.parse_if_statement()
        if self.check("while"):
            if self.check("let", offset=1):
                return self.parse_opaque_statement("while let")
            self.advance()
            condition = self.parse_condition()
            return WhileStatement(condition, self.parse_block(), line=line)
        if self.match("loop"):
            return LoopStatement(self.parse_block(), line=line)
        if self.match("for"):
            var = self.parse_pattern_name()
            self.expect("in", " in for loop")
            iterable = self.parse_condition()
            return ForInStatement(var, iterable, self.parse_block(), line=line)
        if self.check("match"):
            return self.parse_opaque_statement("match")

        expression = self.parse_expression()
        if self.match(";"):
            return ExprStmt(expression, True, line=line)
        if self.check("}"):
            return ExprStmt(expression, False, line=line)
        if isinstance(expression, (BlockExpr, OpaqueExpr, IfExpr)):
            return ExprStmt(expression, True, line=line)
        raise self.error(f"expected ';' after expression but found {self.describe(self.current())}")

    def parse_let(self) -> VarDecl:
        line = self.expect("let").line
        names: list[str | None] = []
        mutable = False
        if self.match("("):
            while not self.check(")"):
                self.match("ref")
                mutable = self.match("mut") or mutable
                names.append(self.expect_identifier(" (binding name)"))
                if not self.match(","):
                    break
            self.expect(")")
        else:
            self.match("ref")
            mutable = self.match("mut")
            names.append(self.expect_identifier(" (binding name)"))
        type_name = self.parse_type_name() if self.match(":") else None
        value = self.parse_expression() if self.match("=") else None
        if self.match("else"):
            self.skip_balanced()
            self.warn("let_else", "let-else divergence branch is dropped", line)
        self.expect(";", " after let binding")
        return VarDecl(names, type_name, value, mutable, line=line)

    def parse_condition(self) -> Expression:
        with self.struct_literals(False):
            return self.parse_expression()

    def parse_if_statement(self) -> Statement:
        line = self.current().line
        if self.check("let", offset=1):
            return self.parse_opaque_statement("if let")
        self.expect("if")
        condition = self.parse_condition()
        then = self.parse_block()
        otherwise: Block | IfStatement | None = None
        if self.match("else"):
            if self.check("if"):
                otherwise = self.parse_if_statement()
                if isinstance(otherwise, OpaqueStatement):
                    otherwise = Block([otherwise], line=otherwise.line)
            else:
                otherwise = self.parse_block()
        return IfStatement(condition, then, otherwise, line=line)

    def parse_opaque_statement(self, construct: str) -> OpaqueStatement:
        start = self.pos
        line = self.current().line
        self.skip_opaque_construct()
        self.match(";")
        self.warn(construct.replace(" ", "_"), f"'{construct}' is not modelled; kept as opaque source", line)
        return OpaqueStatement(construct, self.text_from(start), line=line)

    def skip_opaque_construct(self) -> None:
        """Skip `head {...}` plus any `else` / `else if` continuation."""
        self.advance()
        self.skip_until("{")
        self.skip_balanced()
        while self.match("else"):
            if self.match("if"):
                self.skip_until("{")
            self.skip_balanced()

    # ── Expressions ──────────────────────────────────────────

    def parse_expression(self) -> Expression:
        left = self.parse_range()
        token = self.current()
        if token.type == TokenType.PUNCT and token.value in ASSIGNMENT_OPS:
            self.advance()
            return AssignExpr(token.value, left, self.parse_expression(), line=left.line)
        return left

    def parse_range(self) -> Expression:
        line = self.current().line
        start = None
        if not self.check("..", "..="):
            start = self.parse_binary()
        if self.check("..", "..="):
            inclusive = self.advance().value == "..="
            end = None
            if not self.check(")", "]", "}", ",", ";", "{"):
                end = self.parse_binary()
            return RangeExpr(start, end, inclusive, line=line)
        return start

    def parse_operand(self) -> Expression:
        expr = self.parse_unary()
        while self.check("as"):
            line = self.advance().line
            expr = CastExpr(self.parse_type_name(), expr, line=line)
        return expr

    def parse_unary(self) -> Expression:
        token = self.current()
        line = token.line
        if self.check("-", "!", "*"):
            self.advance()
            return UnaryOp(token.value, self.parse_unary(), line=line)
        if self.check("&", "&&"):
            self.advance()
            mutable = self.match("mut")
            operand = self.parse_unary()
            if token.value == "&&":
                operand = RefExpr(operand, mutable, line=line)
                mutable = False
            return RefExpr(operand, mutable, line=line)
        if self.check("|", "||", "move"):
            return self.parse_closure()
        return self.parse_postfix()

    def parse_closure(self) -> OpaqueExpr:
        start = self.pos
        line = self.current().line
        self.match("move")
        if self.match("|"):
            while not self.match("|"):
                if self.at_end():
                    raise self.error("unterminated closure parameter list")
                self.advance()
        else:
            self.expect("||")
        if self.match("->"):
            self.parse_type_name()
        if self.check("{"):
            self.parse_block()
        else:
            self.parse_expression()
        return OpaqueExpr("closure", self.text_from(start), line=line)

    def parse_postfix(self) -> Expression:
        expr = self.parse_primary()
        while True:
            token = self.current()
            if self.match("?"):
                expr = TryExpr(expr, line=token.line)
            elif self.match("."):
                member = self.advance()
                if member.type not in (TokenType.IDENTIFIER, TokenType.KEYWORD, TokenType.NUMBER):
                    raise self.error("expected field or method name after '.'", member)
                if self.check("::") and self.check("<", offset=1):
                    self.advance()
                    self.skip_generics()
                if self.check("("):
                    callee = MemberAccess(expr, member.value, line=member.line)
                    expr = FunctionCall(callee, self.parse_call_arguments(), line=member.line)
                else:
                    expr = MemberAccess(expr, member.value, line=member.line)
            elif self.check("("):
                expr = FunctionCall(expr, self.parse_call_arguments(), line=expr.line)
            elif self.match("["):
                with self.struct_literals(True):
                    index = self.parse_expression()
                self.expect("]")
                expr = IndexAccess(expr, index, line=token.line)
            else:
                return expr

    def parse_call_arguments(self) -> list[Expression]:
        self.expect("(")
        with self.struct_literals(True):
            return self.parse_comma_list(")", self.parse_expression)

    def parse_primary(self) -> Expression:
        token = self.current()
        line = token.line

        if token.type in (TokenType.NUMBER, TokenType.HEX_NUMBER):
            self.advance()
            return LiteralExpr(token.value, "hex" if token.type == TokenType.HEX_NUMBER else "number", line=line)
        if token.type == TokenType.STRING:
            return LiteralExpr(self.advance().value, "string", line=line)
        if token.type == TokenType.BYTE_STRING:
            return LiteralExpr(self.advance().value, "bytes", line=line)
        if token.type == TokenType.CHAR:
            return LiteralExpr(self.advance().value, "char", line=line)
        if self.check("true", "false"):
            return LiteralExpr(self.advance().value, "bool", line=line)
        if self.match("("):
            with self.struct_literals(True):
                if self.match(")"):
                    return TupleExpr([], line=line)
                first = self.parse_expression()
                if self.match(")"):
                    return first
                items: list[Expression | None] = [first]
                while self.match(","):
                    if self.check(")"):
                        break
                    items.append(self.parse_expression())
                self.expect(")")
            return TupleExpr(items, line=line)
        if self.match("["):
            with self.struct_literals(True):
                if self.match("]"):
                    return ArrayLiteral([], line=line)
                first = self.parse_expression()
                if self.match(";"):
                    repeat = self.parse_expression()
                    self.expect("]")
                    return ArrayLiteral([first], repeat, line=line)
                items = [first]
                while self.match(","):
                    if self.check("]"):
                        break
                    items.append(self.parse_expression())
                self.expect("]")
            return ArrayLiteral(items, line=line)
        if self.check("if"):
            return self.parse_if_expression()
        if self.check("match", "loop", "while", "for"):
            start = self.pos
            construct = token.value
            self.skip_opaque_construct()
            self.warn(construct, f"'{construct}' expression is not modelled; kept as opaque source", line)
            return OpaqueExpr(construct, self.text_from(start), line=line)
        if self.check("{"):
            return BlockExpr(self.parse_block(), line=line)
        if self.match("unsafe"):
            return BlockExpr(self.parse_block(), line=line)
        if self.check("<"):
            start = self.pos
            self.skip_generics()
            while self.match("::"):
                self.advance()
            self.warn("qualified_path", "qualified path expression kept as opaque source", line)
            return OpaqueExpr("qualified_path", self.text_from(start), line=line)
        if token.type == TokenType.IDENTIFIER or self.check(*PATH_KEYWORDS) or self.check("::"):
            return self.parse_path_expression()
        raise self.error(f"unexpected {self.describe(token)} in expression")

    def parse_if_expression(self) -> IfExpr:
        line = self.current().line
        if self.check("let", offset=1):
            start = self.pos
            self.skip_opaque_construct()
            self.warn("if_let", "'if let' is not modelled; kept as opaque source", line)
            return OpaqueExpr("if let", self.text_from(start), line=line)
        self.expect("if")
        condition = self.parse_condition()
        then = self.parse_block()
        otherwise = None
        if self.match("else"):
            otherwise = self.parse_if_expression() if self.check("if") else self.parse_block()
        return IfExpr(condition, then, otherwise, line=line)

    def parse_path_expression(self) -> Expression:
        line = self.current().line
        segments = []
        if not self.check("::"):
            segments.append(self.advance().value)
        while self.check("::"):
            self.advance()
            if self.check("<"):
                self.skip_generics()
                continue
            segment = self.advance()
            if segment.type not in (TokenType.IDENTIFIER, TokenType.KEYWORD):
                raise self.error("expected path segment after '::'", segment)
            segments.append(segment.value)

        if self.check("!") and self.check("(", "[", "{", offset=1):
            return self.parse_macro(segments[-1], line)
        if self.check("{") and not self.no_struct and segments[-1][:1].isupper():
            return self.parse_struct_literal(segments, line)
        if len(segments) == 1:
            return Identifier(segments[0], line=line)
        return PathExpr(segments, line=line)

    def parse_macro(self, name: str, line: int) -> MacroCall:
        start = self.pos - 1
        self.expect("!")
        closer = {"(": ")", "[": "]", "{": "}"}[self.current().value]
        body_start = self.pos
        try:
            self.advance()
            with self.struct_literals(True):
                args = []
                while not self.check(closer):
                    args.append(self.parse_expression())
                    if self.match(";"):
                        args.append(self.parse_expression())
                        break
                    if not self.match(","):
                        break
                self.expect(closer)
        except ContractSyntaxError:
            # macro bodies need not be expressions; keep them verbatim
            self.pos = body_start
            self.skip_balanced()
            args = []
        return MacroCall(name, args, self.text_from(start), line=line)

    def parse_struct_literal(self, segments: list[str], line: int) -> StructLiteral:
        literal = StructLiteral(segments, line=line)
        self.expect("{")
        with self.struct_literals(True):
            while not self.check("}"):
                if self.match(".."):
                    literal.base = self.parse_expression()
                    break
                field_token = self.advance()
                if field_token.type not in (TokenType.IDENTIFIER, TokenType.NUMBER):
                    raise self.error("expected field name in struct literal", field_token)
                if self.match(":"):
                    value = self.parse_expression()
                else:
                    value = Identifier(field_token.value, line=field_token.line)
                literal.fields.append((field_token.value, value))
                if not self.match(","):
                    break
        self.expect("}")
        return literal


def parse_ink(tokens, source: str) -> tuple[InkModule, list]:  # noqa: ANN001
    parser = InkParser(tokens, source)
    module = parser.parse()
    return module, parser.warnings
