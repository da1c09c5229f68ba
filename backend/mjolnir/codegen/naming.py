"""
Identifier conventions for the two targets.

Solidity uses camelCase for functions, variables and fields; ink! uses
snake_case. Types (contract, events, errors) are PascalCase in both.
SCREAMING_CASE constants are left alone. Names that collide with a target
keyword are escaped (``r#name`` in Rust, a trailing underscore in Solidity)
and every escape is reported.
"""

from __future__ import annotations

import re

from mjolnir.codegen.diagnostics import ConversionDiagnostics
from mjolnir.ir.model import Dialect

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CONSTANT = re.compile(r"^[A-Z][A-Z0-9_]*$")

RUST_RESERVED = frozenset({
    "as", "async", "await", "break", "const", "continue", "crate", "dyn", "else", "enum",
    "extern", "false", "fn", "for", "if", "impl", "in", "let", "loop", "match", "mod",
    "move", "mut", "pub", "ref", "return", "self", "Self", "static", "struct", "super",
    "trait", "true", "type", "unsafe", "use", "where", "while", "abstract", "become",
    "box", "do", "final", "macro", "override", "priv", "typeof", "unsized", "virtual",
    "yield", "try",
})
# Rust cannot raw-escape these.
RUST_UNRAWABLE = frozenset({"self", "Self", "crate", "super"})

SOLIDITY_RESERVED = frozenset({
    "address", "bool", "string", "bytes", "byte", "uint", "int", "mapping", "contract",
    "interface", "library", "function", "modifier", "event", "error", "struct", "enum",
    "public", "private", "internal", "external", "view", "pure", "payable", "constant",
    "immutable", "memory", "storage", "calldata", "returns", "return", "if", "else", "for",
    "while", "do", "break", "continue", "new", "delete", "emit", "revert", "require",
    "assert", "this", "super", "msg", "block", "tx", "now", "true", "false", "override",
    "virtual", "indexed", "anonymous", "unchecked", "assembly", "try", "catch", "type",
    "constructor", "receive", "fallback", "is", "using", "import", "pragma", "let",
    "selfdestruct", "wei", "gwei", "ether", "seconds", "minutes", "hours", "days", "weeks",
})


def _split_prefix(name: str) -> tuple[str, str]:
    stripped = name.lstrip("_")
    return name[: len(name) - len(stripped)], stripped


def is_constant_name(name: str) -> bool:
    return bool(_CONSTANT.match(name.lstrip("_"))) and any(c.isalpha() for c in name)


def to_snake(name: str) -> str:
    if is_constant_name(name):
        return name
    prefix, body = _split_prefix(name)
    body = _ACRONYM_BOUNDARY.sub(r"\1_\2", body)
    body = _CAMEL_BOUNDARY.sub(r"\1_\2", body)
    return prefix + body.lower()


def to_camel(name: str) -> str:
    if is_constant_name(name):
        return name
    prefix, body = _split_prefix(name)
    if "_" not in body:
        return prefix + body
    parts = [p for p in body.split("_") if p]
    if not parts:
        return name
    return prefix + parts[0] + "".join(p[:1].upper() + p[1:] for p in parts[1:])


def to_pascal(name: str) -> str:
    camel = to_camel(name).lstrip("_")
    return camel[:1].upper() + camel[1:]


class Namer:
    """Applies one target's naming conventions and records keyword escapes."""

    def __init__(self, target: Dialect, diagnostics: ConversionDiagnostics):
        self.target = target
        self.diagnostics = diagnostics
        self._escaped: set[str] = set()

    def _escape(self, name: str) -> str:
        if self.target == Dialect.INK:
            if name not in RUST_RESERVED:
                return name
            escaped = f"{name}_" if name in RUST_UNRAWABLE else f"r#{name}"
        else:
            if name not in SOLIDITY_RESERVED:
                return name
            escaped = f"{name}_"
        if name not in self._escaped:
            self._escaped.add(name)
            self.diagnostics.keyword_escaped(name, escaped)
        return escaped

    def value(self, name: str) -> str:
        """Functions, parameters, fields and locals."""
        converted = to_snake(name) if self.target == Dialect.INK else to_camel(name)
        return self._escape(converted)

    def type(self, name: str) -> str:
        """Contract, event and error names."""
        if is_constant_name(name):
            return self._escape(name)
        return self._escape(to_pascal(name))

    def module(self, name: str) -> str:
        return self._escape(to_snake(name).lstrip("_") or "contract")
