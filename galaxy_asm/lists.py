# galaxy_asm/lists.py
"""
Cons-list values and their modulated wire form.

A value tree is one of:

    NIL              the empty list
    Cons(left, right)
    int              a number leaf

Wire layout (preorder):

    nil          -> 00
    cons a b     -> 11 <a> <b>
    number       -> NumberCodec bits (prefix 01 / 10)

Encoding and decoding walk the tree with an explicit stack, so long
lists do not hit the interpreter's recursion limit.

Bridges to the evaluator's op form (``ap ap cons a b`` / ``nil``) live here
as well: ``tree_to_ops`` and ``ops_to_tree``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Tuple, Union

from galaxy_asm.core.numbers import check_bits, modulate_number, read_number
from galaxy_asm.core.ops import AP, EncodedNumber, Fun, Ops
from galaxy_asm.errors import BadPrefix, CodecError, TrailingBits

NIL_BITS = "00"
CONS_BITS = "11"


class _Nil:
    """Singleton empty list."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NIL"

    def __reduce__(self):
        return (_Nil, ())


NIL = _Nil()


@dataclass(frozen=True)
class Cons:
    left: "ValueTree"
    right: "ValueTree"


ValueTree = Union[_Nil, Cons, int]


# ---------------------------------------------------------------------------
# Constructors / inspection
# ---------------------------------------------------------------------------


def is_proper_list(t: ValueTree) -> bool:
    """True when following cdrs from ``t`` ends at NIL."""
    cur = t
    while isinstance(cur, Cons):
        cur = cur.right
    return cur is NIL


def list_from_py(xs: Any) -> ValueTree:
    """
    Build a value tree from Python data.

    Lists and tuples become proper lists, ints become number leaves,
    None becomes NIL. Nested sequences nest.
    """
    if xs is None:
        return NIL
    if isinstance(xs, bool):
        raise TypeError("booleans are not list values")
    if isinstance(xs, int):
        return xs
    if isinstance(xs, EncodedNumber):
        return xs.value
    if isinstance(xs, (Cons, _Nil)):
        return xs
    if isinstance(xs, (list, tuple)):
        out: ValueTree = NIL
        for item in reversed(xs):
            out = Cons(list_from_py(item), out)
        return out
    raise TypeError(f"cannot convert {type(xs).__name__} to a list value")


def py_from_list(t: ValueTree) -> Any:
    """
    Inverse of list_from_py for proper lists.

    Improper pairs come back as 2-tuples ``(left, right)``.
    """
    if t is NIL:
        return []
    if isinstance(t, int):
        return t
    if not is_proper_list(t):
        assert isinstance(t, Cons)
        return (py_from_list(t.left), py_from_list(t.right))
    out: List[Any] = []
    cur = t
    while isinstance(cur, Cons):
        out.append(py_from_list(cur.left))
        cur = cur.right
    return out


# ---------------------------------------------------------------------------
# Modulation
# ---------------------------------------------------------------------------


def modulate_list(t: ValueTree) -> str:
    """Encode a value tree to its bit string."""
    out: List[str] = []
    stack: List[ValueTree] = [t]
    while stack:
        cur = stack.pop()
        if cur is NIL:
            out.append(NIL_BITS)
        elif isinstance(cur, Cons):
            out.append(CONS_BITS)
            stack.append(cur.right)
            stack.append(cur.left)
        elif isinstance(cur, (int, EncodedNumber)) and not isinstance(cur, bool):
            out.append(modulate_number(cur))
        else:
            raise TypeError(f"cannot modulate {cur!r}")
    return "".join(out)


def read_list(bits: str, pos: int = 0) -> Tuple[ValueTree, int]:
    """
    Decode one value tree starting at ``pos``; returns (tree, next_pos).

    Pending cons cells sit on a stack as 0- or 1-element lists holding the
    already decoded left side.
    """
    stack: List[List[ValueTree]] = []
    while True:
        tag = bits[pos:pos + 2]
        if tag == NIL_BITS:
            value: ValueTree = NIL
            pos += 2
        elif tag == CONS_BITS:
            stack.append([])
            pos += 2
            continue
        elif tag == "01" or tag == "10":
            n, pos = read_number(bits, pos)
            value = n.value
        else:
            raise BadPrefix(bits, pos)

        while stack:
            frame = stack[-1]
            if not frame:
                frame.append(value)
                break
            stack.pop()
            value = Cons(frame[0], value)
        else:
            return value, pos


def demodulate_list(bits: str) -> ValueTree:
    """Decode a complete bit string holding exactly one value tree."""
    check_bits(bits)
    tree, end = read_list(bits, 0)
    if end != len(bits):
        raise TrailingBits(bits, end)
    return tree


# ---------------------------------------------------------------------------
# Bridges to the op form used by the evaluator
# ---------------------------------------------------------------------------


def tree_to_ops(t: ValueTree) -> Ops:
    """``(1 . nil)`` -> ``ap ap cons 1 nil``."""
    out: list = []
    stack: List[ValueTree] = [t]
    while stack:
        cur = stack.pop()
        if cur is NIL:
            out.append(Fun.NIL)
        elif isinstance(cur, Cons):
            out.extend((AP, AP, Fun.CONS))
            stack.append(cur.right)
            stack.append(cur.left)
        elif isinstance(cur, EncodedNumber):
            out.append(cur)
        else:
            out.append(EncodedNumber(cur))
    return tuple(out)


def ops_to_tree(ops: Ops) -> ValueTree:
    """
    Read ``ap ap cons a b`` / ``nil`` / number ops back into a value tree.

    Raises CodecError when the ops hold anything else (a partial
    application, a function, a free variable, ...).
    """
    stack: List[List[ValueTree]] = []
    i = 0
    n = len(ops)
    while True:
        if i >= n:
            raise CodecError(f"truncated list ops: {ops!r}")
        op = ops[i]
        if op is Fun.NIL:
            value: ValueTree = NIL
            i += 1
        elif isinstance(op, EncodedNumber):
            value = op.value
            i += 1
        elif op is AP and i + 2 < n and ops[i + 1] is AP and ops[i + 2] in (Fun.CONS, Fun.VEC):
            stack.append([])
            i += 3
            continue
        else:
            raise CodecError(f"not a list value at op {i}: {op!r}")

        while stack:
            frame = stack[-1]
            if not frame:
                frame.append(value)
                break
            stack.pop()
            value = Cons(frame[0], value)
        else:
            if i != n:
                raise CodecError(f"trailing ops after list value at op {i}")
            return value
