# galaxy_asm/core/ops.py
"""
Operation model for Galaxy assembly.

An operation sequence (``Ops``) is a flat tuple of ops exactly as the parser
emits them, e.g. ``ap ap add 1 2`` is::

    (AP, Fun.ADD, EncodedNumber(1), EncodedNumber(2))

Ops are hashable so whole sequences can key the environment tables.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Tuple, Union


class Modulation(Enum):
    DEMODULATED = auto()
    MODULATED = auto()


@dataclass(frozen=True)
class EncodedNumber:
    """Signed integer tagged with its modulation state."""

    value: int
    modulation: Modulation = Modulation.DEMODULATED

    @property
    def is_modulated(self) -> bool:
        return self.modulation is Modulation.MODULATED

    def modulated(self) -> "EncodedNumber":
        return EncodedNumber(self.value, Modulation.MODULATED)

    def demodulated(self) -> "EncodedNumber":
        return EncodedNumber(self.value, Modulation.DEMODULATED)


class Fun(Enum):
    """Fixed combinator basis; values are the asm tokens."""

    INC = "inc"
    DEC = "dec"
    ADD = "add"
    MUL = "mul"
    DIV = "div"
    NEG = "neg"
    EQ = "eq"
    LT = "lt"
    TRUE = "t"
    FALSE = "f"
    I = "i"  # noqa: E741
    C = "c"
    B = "b"
    S = "s"
    CONS = "cons"
    VEC = "vec"
    CAR = "car"
    CDR = "cdr"
    NIL = "nil"
    ISNIL = "isnil"
    IF0 = "if0"
    MOD = "mod"
    DEM = "dem"
    MODEM = "modem"
    SEND = "send"
    DRAW = "draw"
    MULTIPLEDRAW = "multipledraw"
    INTERACT = "interact"
    F38 = "f38"
    GALAXY = "galaxy"


# Number of arguments each combinator consumes before its law fires.
ARITY = {
    Fun.INC: 1,
    Fun.DEC: 1,
    Fun.ADD: 2,
    Fun.MUL: 2,
    Fun.DIV: 2,
    Fun.NEG: 1,
    Fun.EQ: 2,
    Fun.LT: 2,
    Fun.TRUE: 2,
    Fun.FALSE: 2,
    Fun.I: 1,
    Fun.C: 3,
    Fun.B: 3,
    Fun.S: 3,
    Fun.CONS: 3,
    Fun.VEC: 3,
    Fun.CAR: 1,
    Fun.CDR: 1,
    Fun.NIL: 1,
    Fun.ISNIL: 1,
    Fun.IF0: 3,
    Fun.MOD: 1,
    Fun.DEM: 1,
    Fun.MODEM: 1,
    Fun.SEND: 1,
    Fun.DRAW: 1,
    Fun.MULTIPLEDRAW: 1,
    Fun.INTERACT: 3,
    Fun.F38: 2,
}

GALAXY_VARIABLE_ID = -1


@dataclass(frozen=True)
class Variable:
    """Reference into the environment; ``:1029`` and ``x1029`` are both id 1029."""

    name: int


class Syntax(Enum):
    AP = "ap"
    LEFT_PAREN = "("
    COMMA = ","
    RIGHT_PAREN = ")"


AP = Syntax.AP


@dataclass(frozen=True)
class ModulatedBits:
    """A list value in its wire form, produced by ``mod`` and read by ``dem``."""

    bits: str


@dataclass(frozen=True)
class Picture:
    """Set of points produced by ``draw``; points keep their input order."""

    points: Tuple[Tuple[int, int], ...] = ()


Op = Union[EncodedNumber, Fun, Variable, Syntax, ModulatedBits, Picture]
Ops = Tuple[Op, ...]

