# galaxy_asm/pretty.py
"""
Human-readable renderings.

- pretty_list: value trees in tuple notation, e.g. ``(1, 2, (3, 4))``
- render_asm:  op sequences back to asm text, re-parseable by asm_parser
"""

from __future__ import annotations

from typing import List, Optional

from galaxy_asm.core.ops import (
    GALAXY_VARIABLE_ID,
    EncodedNumber,
    Fun,
    ModulatedBits,
    Op,
    Ops,
    Picture,
    Syntax,
    Variable,
)
from galaxy_asm.errors import CodecError
from galaxy_asm.lists import NIL, Cons, ValueTree, ops_to_tree


def pretty_list(t: ValueTree, *, nil: str = "nil") -> str:
    """
    Pretty-print a value tree.

    Parameters
    ----------
    t:
        Value tree (NIL, Cons or int).
    nil:
        Text used for the empty list.

    Proper lists print as ``(a, b, c)``; a chain that does not end in nil
    prints its last cdr after a dot: ``(1 . 2)``, ``(1, 2 . 3)``.
    """
    if t is NIL:
        return nil
    if isinstance(t, int):
        return str(t)

    items: List[str] = []
    cur: ValueTree = t
    while isinstance(cur, Cons):
        items.append(pretty_list(cur.left, nil=nil))
        cur = cur.right
    body = ", ".join(items)
    if cur is NIL:
        return f"({body})"
    return f"({body} . {pretty_list(cur, nil=nil)})"


def render_op(op: Op) -> str:
    if isinstance(op, Syntax):
        return op.value
    if isinstance(op, Fun):
        return op.value
    if isinstance(op, Variable):
        if op.name == GALAXY_VARIABLE_ID:
            return Fun.GALAXY.value
        return f":{op.name}"
    if isinstance(op, EncodedNumber):
        return f"[{op.value}]" if op.is_modulated else str(op.value)
    if isinstance(op, ModulatedBits):
        return "{" + op.bits + "}"
    if isinstance(op, Picture):
        return f"<picture:{len(op.points)}>"
    raise TypeError(f"not an op: {op!r}")


def render_asm(ops: Ops) -> str:
    """``(AP, Fun.INC, 1)`` -> ``'ap inc 1'``."""
    return " ".join(render_op(op) for op in ops)


def pretty_value(ops: Ops) -> Optional[str]:
    """Tuple notation for ops that spell a list or number, else None."""
    try:
        return pretty_list(ops_to_tree(ops))
    except CodecError:
        return None
