"""
Token definitions shared by both dialect lexers.

The lexer only distinguishes broad token classes; parsers compare token
values directly, which keeps one token set usable for both grammars.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from mjolnir.ir.model import Dialect


class TokenType(Enum):
    IDENTIFIER = auto()
    KEYWORD = auto()
    NUMBER = auto()
    HEX_NUMBER = auto()
    STRING = auto()
    BYTE_STRING = auto()
    CHAR = auto()
    LIFETIME = auto()
    PUNCT = auto()
    EOF = auto()


@dataclass
class Token:
    type: TokenType
    value: str
    line: int
    column: int
    start: int = 0
    end: int = 0

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


SOLIDITY_KEYWORDS = frozenset({
    "pragma", "import", "contract", "interface", "library", "abstract", "is",
    "using", "struct", "enum", "function", "modifier", "event", "constructor",
    "mapping", "public", "private", "internal", "external", "view", "pure",
    "payable", "constant", "immutable", "virtual", "override", "indexed",
    "anonymous", "returns", "return", "if", "else", "for", "while", "do",
    "break", "continue", "new", "delete", "emit", "unchecked", "assembly",
    "try", "catch", "true", "false", "memory", "storage", "calldata",
})

RUST_KEYWORDS = frozenset({
    "as", "break", "const", "continue", "crate", "dyn", "else", "enum",
    "false", "fn", "for", "if", "impl", "in", "let", "loop", "match", "mod",
    "move", "mut", "pub", "ref", "return", "self", "Self", "static", "struct",
    "super", "trait", "true", "type", "unsafe", "use", "where", "while",
})

KEYWORDS = {
    Dialect.SOLIDITY: SOLIDITY_KEYWORDS,
    Dialect.INK: RUST_KEYWORDS,
}

THREE_CHAR_OPS = (">>=", "<<=", "..=", "...")

TWO_CHAR_OPS = frozenset({
    "::", "->", "=>", "==", "!=", "<=", ">=", "&&", "||", "++", "--",
    "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<", ">>", "**", "..",
})

SINGLE_CHAR_OPS = frozenset("{}()[];,.:?#!=<>+-*/%&|^~@")

# `**` is exponentiation in Solidity but two dereferences in Rust.
DIALECT_EXCLUDED_OPS = {
    Dialect.SOLIDITY: frozenset(),
    Dialect.INK: frozenset({"**", "++", "--"}),
}

RUST_INT_SUFFIXES = (
    "u8", "u16", "u32", "u64", "u128", "usize",
    "i8", "i16", "i32", "i64", "i128", "isize",
)

# Solidity number denominations and their multipliers.
DENOMINATIONS = {
    "wei": 1,
    "gwei": 10**9,
    "ether": 10**18,
    "seconds": 1,
    "minutes": 60,
    "hours": 3600,
    "days": 86400,
    "weeks": 604800,
}
