"""
Recursive-descent machinery shared by the Solidity and ink! parsers.

Provides the token cursor (peek/advance/match/expect), source-text capture
for opaque constructs, and a table-driven binary-operator parser. Each
dialect parser supplies its precedence table and the operand parser that
sits below the tightest binary level.
"""

from __future__ import annotations

from mjolnir.errors import ContractSyntaxError
from mjolnir.frontend.ast_nodes import BinaryOp, Expression
from mjolnir.frontend.tokens import Token, TokenType
from mjolnir.ir.model import ParseWarning

_VALUE_TOKENS = (TokenType.PUNCT, TokenType.KEYWORD, TokenType.IDENTIFIER)


class ParserBase:
    # Loosest to tightest; each entry is (operators, right_associative).
    BINARY_LEVELS: tuple[tuple[frozenset[str], bool], ...] = ()

    def __init__(self, tokens: list[Token], source: str):
        self.tokens = tokens
        self.source = source
        self.pos = 0
        self.warnings: list[ParseWarning] = []

    # ── Cursor ───────────────────────────────────────────────

    def peek(self, offset: int = 0) -> Token:
        """Look ahead in the token stream without consuming."""
        pos = self.pos + offset
        if pos >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[pos]

    def current(self) -> Token:
        return self.peek()

    def advance(self) -> Token:
        token = self.current()
        if token.type != TokenType.EOF:
            self.pos += 1
        return token

    def at_end(self) -> bool:
        return self.current().type == TokenType.EOF

    def check(self, *values: str, offset: int = 0) -> bool:
        """True if the token at *offset* is punctuation/word with one of *values*."""
        token = self.peek(offset)
        return token.type in _VALUE_TOKENS and token.value in values

    def match(self, *values: str) -> bool:
        """Consume the current token if it has one of *values*."""
        if self.check(*values):
            self.advance()
            return True
        return False

    def expect(self, value: str, context: str = "") -> Token:
        if not self.check(value):
            raise self.error(f"expected '{value}'{context} but found {self.describe(self.current())}")
        return self.advance()

    def expect_identifier(self, context: str = "") -> str:
        token = self.current()
        if token.type != TokenType.IDENTIFIER:
            raise self.error(f"expected identifier{context} but found {self.describe(token)}")
        return self.advance().value

    def error(self, message: str, token: Token | None = None) -> ContractSyntaxError:
        token = token or self.current()
        return ContractSyntaxError(message, token.line)

    @staticmethod
    def describe(token: Token) -> str:
        if token.type == TokenType.EOF:
            return "end of input"
        return f"'{token.value}'"

    def warn(self, construct: str, message: str, line: int | None = None) -> None:
        self.warnings.append(ParseWarning(construct, message, line or self.current().line))

    # ── Source capture ───────────────────────────────────────

    def text_from(self, start_index: int) -> str:
        """Source text from token *start_index* up to the last consumed token."""
        if self.pos <= start_index:
            return ""
        first = self.tokens[start_index]
        last = self.tokens[self.pos - 1]
        return self.source[first.start:last.end]

    def skip_balanced(self) -> None:
        """Consume a bracketed group starting at the current opening bracket."""
        pairs = {"(": ")", "[": "]", "{": "}"}
        opener = self.current()
        if not self.check(*pairs):
            raise self.error(f"expected a bracketed group but found {self.describe(opener)}")
        stack = [pairs[self.advance().value]]
        while stack:
            token = self.advance()
            if token.type == TokenType.EOF:
                raise self.error(f"unbalanced '{opener.value}' opened here", opener)
            if token.type != TokenType.PUNCT:
                continue
            if token.value in pairs:
                stack.append(pairs[token.value])
            elif token.value in (")", "]", "}"):
                if token.value != stack.pop():
                    raise self.error(f"mismatched '{token.value}'", token)

    def skip_until(self, *values: str) -> None:
        """Skip tokens (and whole bracketed groups) until one of *values* at depth 0."""
        while not self.at_end() and not self.check(*values):
            if self.check("(", "[", "{"):
                self.skip_balanced()
            else:
                self.advance()

    def split_angle(self) -> bool:
        """Consume one closing '>' even when the lexer produced '>>' or '>='."""
        token = self.current()
        if self.check(">"):
            self.advance()
            return True
        if token.type == TokenType.PUNCT and token.value in (">>", ">=", ">>="):
            rest = token.value[1:]
            self.tokens[self.pos] = Token(
                TokenType.PUNCT, rest, token.line, token.column + 1, token.start + 1, token.end
            )
            return True
        return False

    # ── Expressions ──────────────────────────────────────────

    def parse_binary(self, level: int = 0) -> Expression:
        """Parse binary operators from precedence *level* downward."""
        if level >= len(self.BINARY_LEVELS):
            return self.parse_operand()
        operators, right_assoc = self.BINARY_LEVELS[level]
        left = self.parse_binary(level + 1)
        while self.current().type == TokenType.PUNCT and self.current().value in operators:
            op_token = self.advance()
            right = self.parse_binary(level if right_assoc else level + 1)
            left = BinaryOp(op_token.value, left, right, line=op_token.line)
            if right_assoc:
                break
        return left

    def parse_operand(self) -> Expression:
        raise NotImplementedError

    def parse_comma_list(self, closer: str, parse_item) -> list:  # noqa: ANN001
        """Parse ``item (, item)* [,]`` up to and including *closer*."""
        items = []
        while not self.check(closer):
            items.append(parse_item())
            if not self.match(","):
                break
        self.expect(closer)
        return items
