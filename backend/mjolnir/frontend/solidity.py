"""
Solidity parser.

Recursive descent over the shared token stream, producing a SourceUnit of
contract definitions. Constructs the rest of the pipeline cannot model
(inline assembly, try/catch, free functions, top-level structs) are kept as
opaque nodes or skipped with a parse warning rather than rejected.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from mjolnir.errors import ContractSyntaxError
from mjolnir.frontend.ast_nodes import (
    ArrayLiteral,
    AssignExpr,
    Block,
    BreakStatement,
    CastExpr,
    ContinueStatement,
    ContractDefinition,
    DeleteStatement,
    EmitStatement,
    EventDefinition,
    Expression,
    ExprStmt,
    ForStatement,
    FunctionCall,
    FunctionDefinition,
    Identifier,
    IfStatement,
    IndexAccess,
    LiteralExpr,
    MemberAccess,
    ModifierInvocation,
    NewExpr,
    OpaqueStatement,
    Param,
    PlaceholderStatement,
    ReturnStatement,
    RevertStatement,
    SourceUnit,
    StateVariable,
    Statement,
    TernaryOp,
    TupleExpr,
    TypeName,
    UnaryOp,
    UncheckedBlock,
    VarDecl,
    WhileStatement,
)
from mjolnir.frontend.parser_base import ParserBase
from mjolnir.frontend.tokens import DENOMINATIONS, TokenType

ELEMENTARY_TYPE = re.compile(r"^(u?int\d*|bytes\d*|bool|address|string|byte)$")

ASSIGNMENT_OPS = frozenset({"=", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<=", ">>="})
VISIBILITIES = ("public", "private", "internal", "external")
MUTABILITIES = ("pure", "view", "payable")
DATA_LOCATIONS = ("memory", "storage", "calldata")


class SolidityParser(ParserBase):
    """Recursive descent parser for Solidity source units."""

    BINARY_LEVELS = (
        (frozenset({"||"}), False),
        (frozenset({"&&"}), False),
        (frozenset({"==", "!="}), False),
        (frozenset({"<", ">", "<=", ">="}), False),
        (frozenset({"|"}), False),
        (frozenset({"^"}), False),
        (frozenset({"&"}), False),
        (frozenset({"<<", ">>"}), False),
        (frozenset({"+", "-"}), False),
        (frozenset({"*", "/", "%"}), False),
        (frozenset({"**"}), True),
    )

    # ── Top level ────────────────────────────────────────────

    def parse(self) -> SourceUnit:
        unit = SourceUnit(line=1)
        while not self.at_end():
            token = self.current()
            if self.check("pragma"):
                self.parse_pragma(unit)
            elif self.check("import"):
                self.skip_until(";")
                self.expect(";")
            elif self.check("abstract", "contract", "interface", "library"):
                unit.contracts.append(self.parse_contract())
            elif self.check("struct", "enum"):
                kind = self.advance().value
                name = self.expect_identifier(f" after '{kind}'")
                self.skip_balanced()
                self.warn(kind, f"file-level {kind} '{name}' is not modelled", token.line)
            elif self.check("function"):
                self.advance()
                name = self.current().value
                self.skip_until("{", ";")
                if self.check("{"):
                    self.skip_balanced()
                else:
                    self.advance()
                self.warn("free_function", f"free function '{name}' outside a contract is ignored", token.line)
            elif token.type in (TokenType.IDENTIFIER, TokenType.KEYWORD):
                # file-level constants, errors, `using ... for ... global`, user types
                self.skip_until(";")
                self.expect(";")
                self.warn("file_level_declaration", f"file-level declaration '{token.value}' is ignored", token.line)
            else:
                raise self.error(f"unexpected {self.describe(token)} at file level")
        return unit

    def parse_pragma(self, unit: SourceUnit) -> None:
        line = self.expect("pragma").line
        name = self.advance().value
        start = self.pos
        self.skip_until(";")
        text = self.text_from(start).strip()
        self.expect(";")
        if name == "solidity" and unit.pragma is None:
            unit.pragma = text
            unit.pragma_line = line

    def parse_contract(self) -> ContractDefinition:
        line = self.current().line
        self.match("abstract")
        kind = self.advance().value
        contract = ContractDefinition(kind, self.expect_identifier(f" after '{kind}'"), line=line)

        if self.match("is"):
            while True:
                base = self.expect_identifier(" in inheritance list")
                while self.match("."):
                    base += "." + self.expect_identifier()
                contract.bases.append(base)
                if self.check("("):
                    self.skip_balanced()
                if not self.match(","):
                    break

        self.expect("{", f" to open {kind} '{contract.name}'")
        while not self.check("}"):
            if self.at_end():
                raise self.error(f"unterminated {kind} '{contract.name}'")
            self.parse_contract_member(contract)
        self.expect("}")
        return contract

    def parse_contract_member(self, contract: ContractDefinition) -> None:
        token = self.current()
        if self.check("function", "constructor"):
            contract.functions.append(self.parse_function())
        elif self.check("receive", "fallback") and self.check("(", offset=1):
            contract.functions.append(self.parse_function())
        elif self.check("modifier"):
            contract.modifiers.append(self.parse_modifier())
        elif self.check("event"):
            contract.events.append(self.parse_event())
        elif self.check("error") and self.peek(1).type == TokenType.IDENTIFIER:
            self.advance()
            contract.errors.append(self.expect_identifier())
            self.skip_balanced()
            self.expect(";")
        elif self.check("struct", "enum"):
            kind = self.advance().value
            name = self.expect_identifier(f" after '{kind}'")
            self.skip_balanced()
            (contract.structs if kind == "struct" else contract.enums).append(name)
            self.warn(kind, f"{kind} '{name}' is treated as an opaque composite type", token.line)
        elif self.check("using") or (self.check("type") and self.peek(1).type == TokenType.IDENTIFIER):
            self.skip_until(";")
            self.expect(";")
        elif self.check(";"):
            self.advance()
        else:
            contract.state_variables.append(self.parse_state_variable())

    # ── Declarations ─────────────────────────────────────────

    def parse_type_name(self) -> TypeName:
        line = self.current().line
        if self.match("mapping"):
            self.expect("(")
            key = self.parse_type_name()
            if self.current().type == TokenType.IDENTIFIER:
                self.advance()
            self.expect("=>")
            value = self.parse_type_name()
            if self.current().type == TokenType.IDENTIFIER:
                self.advance()
            self.expect(")")
            type_name = TypeName("mapping", [key, value], line=line)
        elif self.match("function"):
            self.skip_balanced()
            while self.check(*VISIBILITIES, *MUTABILITIES):
                self.advance()
            if self.match("returns"):
                self.skip_balanced()
            type_name = TypeName("function", line=line)
        else:
            name = self.expect_identifier(" (type name)")
            while self.check(".") and self.peek(1).type == TokenType.IDENTIFIER:
                self.advance()
                name += "." + self.advance().value
            if name == "address":
                self.match("payable")
            type_name = TypeName(name, line=line)

        while self.check("["):
            self.advance()
            length = None
            if not self.check("]"):
                start = self.pos
                self.parse_expression()
                length = self.text_from(start)
            self.expect("]")
            type_name = TypeName("[]", [type_name], length, line=line)
        return type_name

    def parse_param(self) -> Param:
        line = self.current().line
        type_name = self.parse_type_name()
        indexed = self.match("indexed")
        self.match(*DATA_LOCATIONS)
        name = None
        if self.current().type == TokenType.IDENTIFIER:
            name = self.advance().value
        return Param(name, type_name, indexed, line=line)

    def parse_parameter_list(self) -> list[Param]:
        self.expect("(")
        return self.parse_comma_list(")", self.parse_param)

    def parse_state_variable(self) -> StateVariable:
        line = self.current().line
        type_name = self.parse_type_name()
        var = StateVariable("", type_name, line=line)
        while True:
            if self.check(*VISIBILITIES):
                var.visibility = self.advance().value
            elif self.match("constant"):
                var.constant = True
            elif self.match("immutable"):
                var.immutable = True
            elif self.match("override"):
                if self.check("("):
                    self.skip_balanced()
            elif self.check("transient"):
                self.advance()
            else:
                break
        var.name = self.expect_identifier(" (state variable name)")
        if self.match("="):
            var.value = self.parse_expression()
        self.expect(";", f" after state variable '{var.name}'")
        return var

    def parse_function(self) -> FunctionDefinition:
        token = self.advance()
        line = token.line
        if token.value == "function":
            kind = "function"
            name_token = self.advance()
            if name_token.type not in (TokenType.IDENTIFIER, TokenType.KEYWORD):
                raise self.error("expected function name", name_token)
            name = name_token.value
        else:
            kind = token.value
            name = "" if kind == "constructor" else kind

        func = FunctionDefinition(kind, name, self.parse_parameter_list(), line=line)
        self.parse_function_attributes(func)
        func.body = None if self.match(";") else self.parse_block()
        return func

    def parse_function_attributes(self, func: FunctionDefinition) -> None:
        while True:
            token = self.current()
            if self.check(*VISIBILITIES):
                func.visibility = self.advance().value
                func.visibility_declared = True
            elif self.check(*MUTABILITIES):
                func.mutability = self.advance().value
            elif self.check("virtual"):
                self.advance()
            elif self.match("override"):
                if self.check("("):
                    self.skip_balanced()
            elif self.match("returns"):
                func.returns = self.parse_parameter_list()
            elif token.type == TokenType.IDENTIFIER:
                self.advance()
                name = token.value
                while self.match("."):
                    name += "." + self.expect_identifier()
                args = self.parse_call_arguments()[0] if self.check("(") else []
                func.modifiers.append(ModifierInvocation(name, args, line=token.line))
            else:
                return

    def parse_modifier(self) -> FunctionDefinition:
        line = self.expect("modifier").line
        name = self.expect_identifier(" (modifier name)")
        params = self.parse_parameter_list() if self.check("(") else []
        modifier = FunctionDefinition("modifier", name, params, line=line)
        while self.check("virtual", "override"):
            if self.advance().value == "override" and self.check("("):
                self.skip_balanced()
        modifier.body = None if self.match(";") else self.parse_block()
        return modifier

    def parse_event(self) -> EventDefinition:
        line = self.expect("event").line
        event = EventDefinition(self.expect_identifier(" (event name)"), self.parse_parameter_list(), line=line)
        event.anonymous = self.match("anonymous")
        self.expect(";", f" after event '{event.name}'")
        return event

    # ── Statements ───────────────────────────────────────────

    def parse_block(self) -> Block:
        line = self.expect("{").line
        block = Block(line=line)
        while not self.check("}"):
            if self.at_end():
                raise self.error("unterminated block", self.tokens[self.pos - 1])
            block.statements.append(self.parse_statement())
        self.expect("}")
        return block

    def parse_body(self) -> Block:
        """Loop/branch body: a block, or a single statement wrapped in one."""
        if self.check("{"):
            return self.parse_block()
        statement = self.parse_statement()
        return Block([statement], line=statement.line)

    def parse_statement(self) -> Statement:
        token = self.current()
        line = token.line
        if self.check("{"):
            return self.parse_block()
        if self.match("if"):
            self.expect("(")
            condition = self.parse_expression()
            self.expect(")")
            then = self.parse_body()
            otherwise = None
            if self.match("else"):
                otherwise = self.parse_statement() if self.check("if") else self.parse_body()
            return IfStatement(condition, then, otherwise, line=line)
        if self.match("for"):
            return self.parse_for(line)
        if self.match("while"):
            self.expect("(")
            condition = self.parse_expression()
            self.expect(")")
            return WhileStatement(condition, self.parse_body(), line=line)
        if self.match("do"):
            body = self.parse_body()
            self.expect("while")
            self.expect("(")
            condition = self.parse_expression()
            self.expect(")")
            self.expect(";")
            return WhileStatement(condition, body, do_while=True, line=line)
        if self.match("return"):
            value = None if self.check(";") else self.parse_expression()
            self.expect(";")
            return ReturnStatement(value, line=line)
        if self.match("break"):
            self.expect(";")
            return BreakStatement(line=line)
        if self.match("continue"):
            self.expect(";")
            return ContinueStatement(line=line)
        if self.match("emit"):
            event = self.expect_identifier(" (event name)")
            while self.match("."):
                event += "." + self.expect_identifier()
            args, _ = self.parse_call_arguments()
            self.expect(";")
            return EmitStatement(event, args, line=line)
        if self.check("revert") and (self.check("(", offset=1) or self.peek(1).type == TokenType.IDENTIFIER):
            return self.parse_revert()
        if self.match("delete"):
            target = self.parse_expression()
            self.expect(";")
            return DeleteStatement(target, line=line)
        if self.match("unchecked"):
            return UncheckedBlock(self.parse_block(), line=line)
        if self.check("assembly"):
            return self.parse_opaque("assembly", "inline assembly is not analysed or converted")
        if self.check("try"):
            return self.parse_opaque("try/catch", "try/catch is not analysed or converted")
        if self.check("_") and self.check(";", offset=1):
            self.advance()
            self.advance()
            return PlaceholderStatement(line=line)
        if self.check("(") and (declaration := self.try_tuple_declaration()) is not None:
            return declaration
        if self.is_variable_declaration():
            return self.parse_variable_declaration()

        expression = self.parse_expression()
        self.expect(";", " after expression")
        return ExprStmt(expression, line=line)

    def parse_for(self, line: int) -> ForStatement:
        self.expect("(")
        if self.match(";"):
            init = None
        elif self.is_variable_declaration():
            init = self.parse_variable_declaration()
        else:
            init_line = self.current().line
            init = ExprStmt(self.parse_expression(), line=init_line)
            self.expect(";")
        condition = None if self.check(";") else self.parse_expression()
        self.expect(";")
        post = None if self.check(")") else self.parse_expression()
        self.expect(")")
        return ForStatement(init, condition, post, self.parse_body(), line=line)

    def parse_revert(self) -> RevertStatement:
        line = self.advance().line
        error = None
        if self.current().type == TokenType.IDENTIFIER:
            error = self.advance().value
            while self.match("."):
                error += "." + self.expect_identifier()
        args, _ = self.parse_call_arguments()
        self.expect(";")
        return RevertStatement(error, args, line=line)

    def parse_opaque(self, construct: str, message: str) -> OpaqueStatement:
        start = self.pos
        line = self.advance().line
        if construct == "assembly":
            if self.current().type == TokenType.STRING:
                self.advance()
            if self.check("("):
                self.skip_balanced()
            self.skip_balanced()
        else:
            self.skip_until("{")
            self.skip_balanced()
            while self.match("catch"):
                self.skip_until("{")
                self.skip_balanced()
        self.warn(construct, message, line)
        return OpaqueStatement(construct, self.text_from(start), line=line)

    def is_variable_declaration(self) -> bool:
        """Lookahead: does a `Type [location] name` declaration start here?"""
        if not (self.check("mapping") or self.current().type == TokenType.IDENTIFIER):
            return False
        start = self.pos
        try:
            self.parse_type_name()
            return self.current().type == TokenType.IDENTIFIER or self.check(*DATA_LOCATIONS)
        except ContractSyntaxError:
            return False
        finally:
            self.pos = start

    def parse_variable_declaration(self) -> VarDecl:
        line = self.current().line
        type_name = self.parse_type_name()
        self.match(*DATA_LOCATIONS)
        name = self.expect_identifier(" (variable name)")
        value = self.parse_expression() if self.match("=") else None
        self.expect(";", f" after declaration of '{name}'")
        return VarDecl([name], type_name, value, mutable=True, line=line)

    def try_tuple_declaration(self) -> VarDecl | None:
        """`(bool ok, ) = ...;` or None (cursor restored) when this is an expression."""
        start = self.pos
        line = self.current().line
        try:
            self.expect("(")
            names: list[str | None] = []
            first_type = None
            while True:
                if self.check(",", ")"):
                    names.append(None)
                else:
                    type_name = self.parse_type_name()
                    self.match(*DATA_LOCATIONS)
                    names.append(self.expect_identifier())
                    first_type = first_type or type_name
                if not self.match(","):
                    break
            self.expect(")")
            self.expect("=")
        except ContractSyntaxError:
            self.pos = start
            return None
        if first_type is None:
            self.pos = start
            return None
        value = self.parse_expression()
        self.expect(";")
        return VarDecl(names, first_type, value, mutable=True, line=line)

    # ── Expressions ──────────────────────────────────────────

    def parse_expression(self) -> Expression:
        left = self.parse_ternary()
        token = self.current()
        if token.type == TokenType.PUNCT and token.value in ASSIGNMENT_OPS:
            self.advance()
            return AssignExpr(token.value, left, self.parse_expression(), line=left.line)
        return left

    def parse_ternary(self) -> Expression:
        condition = self.parse_binary()
        if self.match("?"):
            if_true = self.parse_expression()
            self.expect(":", " in conditional expression")
            if_false = self.parse_expression()
            return TernaryOp(condition, if_true, if_false, line=condition.line)
        return condition

    def parse_operand(self) -> Expression:
        token = self.current()
        if token.type == TokenType.PUNCT and token.value in ("!", "~", "-", "+", "++", "--"):
            self.advance()
            return UnaryOp(token.value, self.parse_operand(), line=token.line)
        if self.match("delete"):
            return UnaryOp("delete", self.parse_operand(), line=token.line)
        return self.parse_postfix()

    def parse_postfix(self) -> Expression:
        expr = self.parse_primary()
        options: dict[str, Expression] = {}
        while True:
            token = self.current()
            if self.match("."):
                member = self.advance()
                if member.type not in (TokenType.IDENTIFIER, TokenType.KEYWORD):
                    raise self.error("expected member name after '.'", member)
                expr = MemberAccess(expr, member.value, line=token.line)
            elif self.match("["):
                index = None if self.check("]") else self.parse_expression()
                if self.match(":"):
                    if not self.check("]"):
                        self.parse_expression()
                    self.warn("slice", "array slices are reduced to their start index", token.line)
                self.expect("]")
                expr = IndexAccess(expr, index, line=token.line)
            elif self.check("{") and self.peek(1).type == TokenType.IDENTIFIER and self.check(":", offset=2):
                self.advance()
                while not self.check("}"):
                    key = self.expect_identifier()
                    self.expect(":")
                    options[key] = self.parse_expression()
                    if not self.match(","):
                        break
                self.expect("}")
            elif self.check("("):
                args, named = self.parse_call_arguments()
                expr = FunctionCall(expr, args, options, named, line=expr.line)
                options = {}
            elif self.check("++", "--"):
                expr = UnaryOp(self.advance().value, expr, prefix=False, line=expr.line)
            else:
                return expr

    def parse_call_arguments(self) -> tuple[list[Expression], dict[str, Expression]]:
        self.expect("(")
        if self.check("{") and not self.check("}", offset=1):
            self.advance()
            named: dict[str, Expression] = {}
            while not self.check("}"):
                key = self.expect_identifier()
                self.expect(":")
                named[key] = self.parse_expression()
                if not self.match(","):
                    break
            self.expect("}")
            self.expect(")")
            return list(named.values()), named
        return self.parse_comma_list(")", self.parse_expression), {}

    def parse_primary(self) -> Expression:
        token = self.current()
        line = token.line

        if token.type in (TokenType.NUMBER, TokenType.HEX_NUMBER):
            self.advance()
            return self.parse_number(token.value, token.type == TokenType.HEX_NUMBER, line)
        if token.type == TokenType.STRING:
            value = self.advance().value
            while self.current().type == TokenType.STRING:
                value += self.advance().value
            return LiteralExpr(value, "string", line=line)
        if self.check("true", "false"):
            return LiteralExpr(self.advance().value, "bool", line=line)
        if self.match("("):
            if self.match(")"):
                return TupleExpr([], line=line)
            items: list[Expression | None] = [None if self.check(",") else self.parse_expression()]
            while self.match(","):
                items.append(None if self.check(",", ")") else self.parse_expression())
            self.expect(")")
            if len(items) == 1 and items[0] is not None:
                return items[0]
            return TupleExpr(items, line=line)
        if self.match("["):
            items = self.parse_comma_list("]", self.parse_expression)
            return ArrayLiteral(items, line=line)
        if self.match("new"):
            return NewExpr(self.parse_type_name(), line=line)
        if self.check("payable") and self.check("(", offset=1):
            self.advance()
            return Identifier("payable", line=line)
        if token.type == TokenType.IDENTIFIER:
            self.advance()
            if ELEMENTARY_TYPE.match(token.value) and self.check("("):
                self.advance()
                inner = self.parse_expression()
                self.expect(")")
                return CastExpr(TypeName(token.value, line=line), inner, line=line)
            return Identifier(token.value, line=line)
        raise self.error(f"unexpected {self.describe(token)} in expression")

    def parse_number(self, text: str, is_hex: bool, line: int) -> LiteralExpr:
        unit = self.current()
        multiplier = 1
        if unit.type == TokenType.IDENTIFIER and unit.value in DENOMINATIONS:
            self.advance()
            multiplier = DENOMINATIONS[unit.value]
        if is_hex:
            if multiplier == 1:
                return LiteralExpr(text, "hex", line=line)
            return LiteralExpr(str(int(text, 16) * multiplier), "number", line=line)
        if multiplier == 1 and text.isdigit():
            return LiteralExpr(text, "number", line=line)
        try:
            value = Decimal(text) * multiplier
        except InvalidOperation as exc:
            raise ContractSyntaxError(f"malformed number '{text}'", line) from exc
        if value != value.to_integral_value():
            raise ContractSyntaxError(f"fractional literal '{text}' is not an integer", line)
        return LiteralExpr(str(int(value)), "number", line=line)


def parse_solidity(tokens, source: str) -> tuple[SourceUnit, list]:  # noqa: ANN001
    parser = SolidityParser(tokens, source)
    unit = parser.parse()
    return unit, parser.warnings
