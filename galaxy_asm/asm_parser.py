# galaxy_asm/asm_parser.py
"""
Tokenizer/parser for Galaxy assembly text.

Script: one ``LHS = RHS`` statement per line, blank lines ignored.
Tokens:

    ap                 application
    ( , )              list sugar
    123  -7            demodulated numbers
    [123]              modulated number
    {0110}             modulated list bits
    :1029  x1029       variable 1029
    galaxy             the entry variable
    inc add cons ...   basis combinators
"""

from __future__ import annotations

import re
from typing import List

from galaxy_asm.core.ops import (
    EncodedNumber,
    Fun,
    Modulation,
    ModulatedBits,
    Op,
    Ops,
    Syntax,
    Variable,
)
from galaxy_asm.env import Equality
from galaxy_asm.errors import ParseError, UnknownToken

_TOKEN_RE = re.compile(r"[(),]|=|[^\s(),=]+")
_NUMBER_RE = re.compile(r"-?\d+")
_MODULATED_RE = re.compile(r"\[(-?\d+)\]")
_BITS_RE = re.compile(r"\{([01]*)\}")
_VARIABLE_RE = re.compile(r"[:x](-?\d+)")

_SYNTAX = {s.value: s for s in Syntax}
_FUNS = {f.value: f for f in Fun}

EQUAL_SIGN = "="


def tokenize(text: str) -> List[str]:
    return _TOKEN_RE.findall(text)


def parse_token(token: str, line: int | None = None) -> Op:
    syntax = _SYNTAX.get(token)
    if syntax is not None:
        return syntax
    fun = _FUNS.get(token)
    if fun is not None:
        return fun
    if _NUMBER_RE.fullmatch(token):
        return EncodedNumber(int(token))
    m = _VARIABLE_RE.fullmatch(token)
    if m:
        return Variable(int(m.group(1)))
    m = _MODULATED_RE.fullmatch(token)
    if m:
        return EncodedNumber(int(m.group(1)), Modulation.MODULATED)
    m = _BITS_RE.fullmatch(token)
    if m:
        return ModulatedBits(m.group(1))
    raise UnknownToken(token, line=line)


def parse_expression(text: str, line: int | None = None) -> Ops:
    """Parse one expression (no ``=``) into an op sequence."""
    ops: List[Op] = []
    for token in tokenize(text):
        if token == EQUAL_SIGN:
            raise ParseError("'=' inside an expression", line=line, token=token)
        ops.append(parse_token(token, line))
    return tuple(ops)


def parse_statement(text: str, line: int | None = None) -> Equality:
    lhs_text, sep, rhs_text = text.partition(EQUAL_SIGN)
    if not sep:
        raise ParseError("statement without '='", line=line)
    lhs = parse_expression(lhs_text, line)
    rhs = parse_expression(rhs_text, line)
    if not lhs:
        raise ParseError("empty left-hand side", line=line)
    if not rhs:
        raise ParseError("empty right-hand side", line=line)
    return lhs, rhs


def parse_script(text: str) -> List[Equality]:
    """Parse every non-blank line as a statement."""
    statements: List[Equality] = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        if not raw.strip():
            continue
        statements.append(parse_statement(raw, lineno))
    return statements


__all__ = [
    "parse_expression",
    "parse_script",
    "parse_statement",
    "parse_token",
    "tokenize",
]
