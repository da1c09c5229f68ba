"""
Dialect detection from structural cues.

Comments are stripped first so a commented-out `pragma solidity` or
`#[ink::contract]` cannot influence the decision.
"""

from __future__ import annotations

import re

from mjolnir.errors import AmbiguousDialect, NotAContract
from mjolnir.ir.model import Dialect

COMMENTS = re.compile(r"//[^\n]*|/\*.*?\*/", re.DOTALL)

INK_MARKERS = re.compile(
    r"#\s*\[\s*ink\s*::\s*contract"
    r"|#\s*\[\s*ink\s*\(\s*(?:storage|message|constructor|event)\b"
)
SOLIDITY_MARKERS = re.compile(
    r"\bpragma\s+solidity\b"
    r"|\b(?:contract|interface|library)\s+[A-Za-z_$][\w$]*\s*(?:is\s+[^{;]+)?\{"
)


def strip_comments(source: str) -> str:
    return COMMENTS.sub(" ", source)


def detect_dialect(source: str) -> Dialect:
    """Return the dialect *source* is written in.

    Raises:
        AmbiguousDialect: markers of both dialects are present.
        NotAContract: no marker of either dialect is present.
    """
    text = strip_comments(source)
    is_ink = INK_MARKERS.search(text) is not None
    is_solidity = SOLIDITY_MARKERS.search(text) is not None
    if is_ink and is_solidity:
        raise AmbiguousDialect()
    if is_ink:
        return Dialect.INK
    if is_solidity:
        return Dialect.SOLIDITY
    raise NotAContract()
