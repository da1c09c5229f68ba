"""
Lexer for both contract dialects.

One scanner serves Solidity and ink!; the dialect only selects the keyword
table, which quote characters open strings, and a few Rust-only literal
forms (byte strings, chars, lifetimes, raw identifiers, integer suffixes).
"""

from __future__ import annotations

from mjolnir.errors import ContractSyntaxError
from mjolnir.frontend.tokens import (
    DIALECT_EXCLUDED_OPS,
    KEYWORDS,
    RUST_INT_SUFFIXES,
    SINGLE_CHAR_OPS,
    THREE_CHAR_OPS,
    TWO_CHAR_OPS,
    Token,
    TokenType,
)
from mjolnir.ir.model import Dialect


def _is_ident_start(ch: str) -> bool:
    return ch.isascii() and (ch.isalpha() or ch == "_")


class Lexer:
    """Converts source text into a list of tokens ending with EOF."""

    def __init__(self, source: str, dialect: Dialect):
        self.source = source
        self.dialect = dialect
        self.keywords = KEYWORDS[dialect]
        self.excluded_ops = DIALECT_EXCLUDED_OPS[dialect]
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: list[Token] = []

    def peek(self, offset: int = 0) -> str:
        """Look ahead in the source without consuming."""
        pos = self.pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def advance(self) -> str:
        """Consume and return the current character."""
        ch = self.peek()
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def error(self, message: str, line: int | None = None) -> ContractSyntaxError:
        return ContractSyntaxError(message, line or self.line)

    def is_ident_char(self, ch: str) -> bool:
        if not ch or not ch.isascii():
            return False
        if ch.isalnum() or ch == "_":
            return True
        return ch == "$" and self.dialect == Dialect.SOLIDITY

    # ── Trivia ───────────────────────────────────────────────

    def skip_whitespace(self) -> None:
        while self.peek() and self.peek() in " \t\r\n\f\v":
            self.advance()

    def skip_comment(self) -> None:
        """Skip a line or block comment; Rust block comments nest."""
        start_line = self.line
        if self.peek(1) == "/":
            while self.peek() and self.peek() != "\n":
                self.advance()
            return

        self.advance()
        self.advance()
        depth = 1
        while depth:
            if not self.peek():
                raise self.error("unterminated block comment", start_line)
            if self.peek() == "*" and self.peek(1) == "/":
                self.advance()
                self.advance()
                depth -= 1
            elif self.dialect == Dialect.INK and self.peek() == "/" and self.peek(1) == "*":
                self.advance()
                self.advance()
                depth += 1
            else:
                self.advance()

    # ── Literals ─────────────────────────────────────────────

    def read_quoted(self, quote: str) -> str:
        """Read a quoted literal and return its raw contents (escapes kept)."""
        start_line = self.line
        self.advance()
        result = ""
        while True:
            ch = self.peek()
            if not ch or (ch == "\n" and quote == "'"):
                raise self.error("unterminated string literal", start_line)
            if ch == quote:
                self.advance()
                return result
            if ch == "\\":
                result += self.advance()
                if not self.peek():
                    raise self.error("unterminated string literal", start_line)
            result += self.advance()

    def read_raw_string(self) -> str:
        """Rust raw string: r"..." or r#"..."# with any number of hashes."""
        start_line = self.line
        self.advance()  # r
        hashes = 0
        while self.peek() == "#":
            self.advance()
            hashes += 1
        if self.peek() != '"':
            raise self.error("malformed raw string literal")
        self.advance()
        closing = '"' + "#" * hashes
        result = ""
        while not self.source.startswith(closing, self.pos):
            if not self.peek():
                raise self.error("unterminated raw string literal", start_line)
            result += self.advance()
        for _ in closing:
            self.advance()
        return result

    def read_number(self) -> tuple[str, TokenType]:
        """Read a decimal or hex literal, dropping underscores and Rust suffixes."""
        result = ""
        token_type = TokenType.NUMBER

        if self.peek() == "0" and self.peek(1) in ("x", "X"):
            self.advance()
            self.advance()
            result = "0x"
            token_type = TokenType.HEX_NUMBER
            while self.peek() and self.peek() in "0123456789abcdefABCDEF_":
                ch = self.advance()
                if ch != "_":
                    result += ch
            if result == "0x":
                raise self.error("hex literal has no digits")
        else:
            while self.peek() and self.peek() in "0123456789_":
                ch = self.advance()
                if ch != "_":
                    result += ch
            # a fraction needs a digit after the dot so `0..10` stays a range
            if self.peek() == "." and self.peek(1).isdigit():
                result += self.advance()
                while self.peek() and self.peek() in "0123456789_":
                    ch = self.advance()
                    if ch != "_":
                        result += ch
            if self.peek() in ("e", "E") and (self.peek(1).isdigit() or self.peek(1) == "-"):
                result += self.advance()
                if self.peek() == "-":
                    result += self.advance()
                while self.peek().isdigit():
                    result += self.advance()

        if self.dialect == Dialect.INK:
            for suffix in RUST_INT_SUFFIXES:
                if self.source.startswith(suffix, self.pos) and not self.is_ident_char(
                    self.peek(len(suffix))
                ):
                    for _ in suffix:
                        self.advance()
                    break

        return result, token_type

    def read_identifier(self) -> str:
        result = ""
        while self.is_ident_char(self.peek()):
            result += self.advance()
        return result

    def read_char_or_lifetime(self) -> tuple[TokenType, str]:
        """Disambiguate Rust `'x'` char literals from `'a` lifetimes."""
        if self.peek(1) == "\\" or (self.peek(1) and self.peek(2) == "'"):
            return TokenType.CHAR, self.read_quoted("'")
        if _is_ident_start(self.peek(1)):
            self.advance()
            return TokenType.LIFETIME, self.read_identifier()
        raise self.error("malformed character literal")

    # ── Driver ───────────────────────────────────────────────

    def add_token(self, token_type: TokenType, value: str, line: int, column: int, start: int) -> None:
        self.tokens.append(Token(token_type, value, line, column, start, self.pos))

    def tokenize(self) -> list[Token]:
        """
        Tokenize the entire source.

        Raises:
            ContractSyntaxError: on unterminated literals/comments or
                characters that belong to neither dialect.
        """
        ink = self.dialect == Dialect.INK
        while True:
            self.skip_whitespace()
            if self.pos >= len(self.source):
                break

            ch = self.peek()
            if ch == "/" and self.peek(1) in ("/", "*"):
                self.skip_comment()
                continue

            line, column, start = self.line, self.column, self.pos

            if ch == '"' or (ch == "'" and not ink):
                self.add_token(TokenType.STRING, self.read_quoted(ch), line, column, start)
                continue

            if ink and ch == "'":
                token_type, value = self.read_char_or_lifetime()
                self.add_token(token_type, value, line, column, start)
                continue

            if ink and ch == "b" and self.peek(1) in ('"', "'"):
                self.advance()
                quote = self.peek()
                token_type = TokenType.BYTE_STRING if quote == '"' else TokenType.CHAR
                self.add_token(token_type, self.read_quoted(quote), line, column, start)
                continue

            if ink and ch == "r" and (self.peek(1) == '"' or (self.peek(1) == "#" and self.peek(2) in ('"', "#"))):
                self.add_token(TokenType.STRING, self.read_raw_string(), line, column, start)
                continue

            if ink and ch == "r" and self.peek(1) == "#" and _is_ident_start(self.peek(2)):
                self.advance()
                self.advance()
                self.add_token(TokenType.IDENTIFIER, self.read_identifier(), line, column, start)
                continue

            if ch.isdigit():
                value, token_type = self.read_number()
                self.add_token(token_type, value, line, column, start)
                continue

            if _is_ident_start(ch) or (ch == "$" and not ink):
                value = self.read_identifier()
                if not ink and value in ("hex", "unicode") and self.peek() in ('"', "'"):
                    self.add_token(TokenType.STRING, self.read_quoted(self.peek()), line, column, start)
                    continue
                token_type = TokenType.KEYWORD if value in self.keywords else TokenType.IDENTIFIER
                self.add_token(token_type, value, line, column, start)
                continue

            three = self.source[self.pos:self.pos + 3]
            two = self.source[self.pos:self.pos + 2]
            if three in THREE_CHAR_OPS:
                op = three
            elif two in TWO_CHAR_OPS and two not in self.excluded_ops:
                op = two
            elif ch in SINGLE_CHAR_OPS:
                op = ch
            else:
                raise self.error(f"unexpected character {ch!r}")
            for _ in op:
                self.advance()
            self.add_token(TokenType.PUNCT, op, line, column, start)

        self.tokens.append(Token(TokenType.EOF, "", self.line, self.column, self.pos, self.pos))
        return self.tokens


def tokenize(source: str, dialect: Dialect) -> list[Token]:
    return Lexer(source, dialect).tokenize()
