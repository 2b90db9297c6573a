"""
Tokenizer for rule expressions.

Rule text is written in a small C-like surface syntax:
    applicant.score >= 700 && !flags.manual_review
    Math.round(loan.amount * 0.02)
"""

import re
from dataclasses import dataclass
from typing import List

from ..core.errors import ParseError


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    pos: int


KEYWORDS = {
    "true",
    "false",
    "null",
    "undefined",
    "and",
    "or",
    "not",
}


TOKEN_RE = re.compile(
    r"""
    (?P<NUMBER>(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?)
  | (?P<STRING>"(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*')
  | (?P<OP>===|!==|==|!=|<=|>=|&&|\|\||[+\-*/%<>!?:()\[\],.])
  | (?P<ID>[A-Za-z_$][A-Za-z0-9_$]*)
  | (?P<SKIP>\s+)
  | (?P<MISMATCH>.)
    """,
    re.VERBOSE,
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", "'": "'", '"': '"', "0": "\0"}


def unquote(raw: str) -> str:
    """Strip quotes from a STRING token and resolve backslash escapes."""
    body = raw[1:-1]
    out = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            out.append(_ESCAPES.get(nxt, nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def tokenize(source: str) -> List[Token]:
    pos = 0
    tokens: List[Token] = []
    while pos < len(source):
        m = TOKEN_RE.match(source, pos)
        if not m:
            raise ParseError(f"Tokenizer stalled at offset {pos}")
        kind = m.lastgroup or "MISMATCH"
        value = m.group(0)
        if kind == "SKIP":
            pass
        elif kind == "ID" and value in KEYWORDS:
            tokens.append(Token("KW", value, pos))
        elif kind == "MISMATCH":
            raise ParseError(f"Unexpected character {value!r} at offset {pos}")
        else:
            tokens.append(Token(kind, value, pos))
        pos = m.end()
    tokens.append(Token("EOF", "", pos))
    return tokens
