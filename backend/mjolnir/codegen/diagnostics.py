"""
Conversion diagnostics.

Collects every approximation a generator makes (limitations) and every
rewrite the optimiser performs (optimizations) so they can be reported in
``compilationOutput`` alongside the front end's parse warnings.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from mjolnir.ir.model import ParseWarning


class NoteKind(Enum):
    LIMITATION = "limitation"
    OPTIMIZATION = "optimization"


@dataclass(frozen=True)
class Note:
    kind: NoteKind
    message: str
    construct: str = ""
    line: int | None = None

    def __str__(self) -> str:
        where = f" (line {self.line})" if self.line else ""
        return f"[{self.kind.value}] {self.message}{where}"


class ConversionDiagnostics:
    """Collects limitations and optimizations during one conversion."""

    def __init__(self) -> None:
        self._notes: list[Note] = []

    @property
    def notes(self) -> list[Note]:
        return list(self._notes)

    @property
    def limitations(self) -> list[Note]:
        return [n for n in self._notes if n.kind == NoteKind.LIMITATION]

    @property
    def optimizations(self) -> list[Note]:
        return [n for n in self._notes if n.kind == NoteKind.OPTIMIZATION]

    def _add(self, note: Note) -> None:
        if note not in self._notes:
            self._notes.append(note)

    # ── Specific notes ───────────────────────────────────────

    def limitation(self, construct: str, message: str, line: int | None = None) -> None:
        self._add(Note(NoteKind.LIMITATION, message, construct, line))

    def optimization(self, construct: str, message: str) -> None:
        self._add(Note(NoteKind.OPTIMIZATION, message, construct))

    def narrowed_integer(self, original: str, narrowed: str) -> None:
        self.limitation("integer", f"{original} narrowed to {narrowed}; values above {narrowed}::MAX will not fit")

    def unsupported_env(self, what: str, replacement: str, line: int | None = None) -> None:
        self.limitation("environment", f"{what} has no equivalent; emitted as {replacement}", line)

    def composite_type(self, name: str) -> None:
        self.limitation("composite", f"user type '{name}' is emitted by name and must be declared by hand")

    def opaque_source(self, construct: str, line: int | None = None) -> None:
        self.limitation(construct, f"'{construct}' could not be translated and is left as a comment", line)

    def verbatim_source(self, construct: str, line: int | None = None) -> None:
        self.limitation(construct, f"'{construct}' copied verbatim without translation", line)

    def keyword_escaped(self, original: str, escaped: str) -> None:
        self.limitation("naming", f"identifier '{original}' clashes with a keyword; renamed to '{escaped}'")

    def synthesized_getter(self, field_name: str) -> None:
        self.limitation("getter", f"public field '{field_name}' exposed through a synthesised getter message")

    def dropped_constructor(self, name: str) -> None:
        self.limitation("constructor", f"constructor '{name}' dropped; Solidity allows a single constructor")

    # ── Reporting ────────────────────────────────────────────

    def render(self, warnings: list[ParseWarning] | None = None) -> str | None:
        """Text for ``compilationOutput``; None when there is nothing to say."""
        lines = [f"[warning] {w}" for w in warnings or []]
        lines.extend(str(note) for note in self._notes)
        if not lines:
            return None
        return "\n".join(lines)
