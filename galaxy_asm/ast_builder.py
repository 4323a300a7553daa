# galaxy_asm/ast_builder.py
"""
Application trees for Galaxy assembly.

``build_tree`` turns a flat op sequence into a binary tree of App / Literal
nodes using an explicit stack of pending obligations (no host recursion):

    ap      pushes AwaitFun
    node    fills the top obligation: AwaitFun -> AwaitArg(fun),
            AwaitArg(fun) -> App(fun, node) which is fed further up
    ( , )   list sugar, desugared to ``ap ap cons x rest`` / ``nil``

Nodes are immutable and hash in O(1) (the hash is computed from the
children's hashes at construction), so they can be shared freely between
environment bindings and used directly as cache keys.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Set, Tuple, Union

from galaxy_asm.core.ops import (
    AP,
    GALAXY_VARIABLE_ID,
    Fun,
    Op,
    Ops,
    Syntax,
    Variable,
)
from galaxy_asm.errors import (
    ListCommaWithoutElement,
    ListNotClosed,
    ListSyntaxClosingAfterComma,
    ListSyntaxSeveralCommas,
    ListSyntaxUnexpectedNode,
    NoAppArgProvided,
    NoAppFunProvided,
    TrailingOps,
    UnexpectedSyntax,
)


# =============================================================================
# Nodes
# =============================================================================


class Node:
    __slots__ = ("_hash",)

    def __hash__(self) -> int:
        return self._hash

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Node):
            return NotImplemented
        return nodes_equal(self, other)

    def __ne__(self, other: object) -> bool:
        eq = self.__eq__(other)
        return eq if eq is NotImplemented else not eq

    def __repr__(self) -> str:
        from galaxy_asm.pretty import render_asm

        return f"<{type(self).__name__} {render_asm(render(self))}>"


class Literal(Node):
    __slots__ = ("op",)

    def __init__(self, op: Op) -> None:
        self.op = op
        self._hash = hash(("lit", op))


class App(Node):
    __slots__ = ("fun", "arg")

    def __init__(self, fun: Node, arg: Node) -> None:
        self.fun = fun
        self.arg = arg
        self._hash = hash((fun._hash, arg._hash))


class _Empty:
    """Result of building an empty op sequence."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "EMPTY"

    def __bool__(self) -> bool:
        return False


EMPTY = _Empty()

Ast = Union[_Empty, Node]


def nodes_equal(a: Node, b: Node) -> bool:
    """
    Structural equality without recursion.

    Pairs already compared are remembered so shared subgraphs are visited
    once.
    """
    seen: Set[Tuple[int, int]] = set()
    stack: List[Tuple[Node, Node]] = [(a, b)]
    while stack:
        x, y = stack.pop()
        if x is y:
            continue
        if x._hash != y._hash:
            return False
        key = (id(x), id(y))
        if key in seen:
            continue
        seen.add(key)
        if isinstance(x, Literal):
            if not isinstance(y, Literal) or x.op != y.op:
                return False
        elif isinstance(x, App):
            if not isinstance(y, App):
                return False
            stack.append((x.arg, y.arg))
            stack.append((x.fun, y.fun))
        else:
            return False
    return True


# ---------------------------------------------------------------------------
# Shared constructors
# ---------------------------------------------------------------------------

_FUN_LITERALS: Dict[Fun, Literal] = {f: Literal(f) for f in Fun}

NIL_NODE = _FUN_LITERALS[Fun.NIL]
TRUE_NODE = _FUN_LITERALS[Fun.TRUE]
FALSE_NODE = _FUN_LITERALS[Fun.FALSE]
CONS_NODE = _FUN_LITERALS[Fun.CONS]


def lit(op: Op) -> Literal:
    """Literal node; basis functions reuse one shared node each."""
    if isinstance(op, Fun):
        if op is Fun.GALAXY:
            return Literal(Variable(GALAXY_VARIABLE_ID))
        return _FUN_LITERALS[op]
    return Literal(op)


def app(fun: Node, *args: Node) -> Node:
    """``app(f, x, y)`` == ``ap ap f x y``."""
    node = fun
    for a in args:
        node = App(node, a)
    return node


def cons_node(head: Node, tail: Node) -> Node:
    return App(App(CONS_NODE, head), tail)


def bool_node(flag: bool) -> Node:
    return TRUE_NODE if flag else FALSE_NODE


def list_node(items: List[Node]) -> Node:
    node: Node = NIL_NODE
    for item in reversed(items):
        node = cons_node(item, node)
    return node


# =============================================================================
# Builder
# =============================================================================


class _AwaitFun:
    __slots__ = ()


class _AwaitArg:
    __slots__ = ("fun",)

    def __init__(self, fun: Node) -> None:
        self.fun = fun


class _ListOpen:
    __slots__ = ("items", "after_element", "after_comma")

    def __init__(self) -> None:
        self.items: List[Node] = []
        self.after_element = False
        self.after_comma = False


_AWAIT_FUN = _AwaitFun()


def build_tree(ops: Ops) -> Ast:
    """
    Build an application tree from an op sequence.

    Returns EMPTY for an empty sequence.

    Raises:
        NoAppFunProvided: ``ap`` with nothing after it
        NoAppArgProvided: ``ap f`` with no argument
        ListNotClosed / ListSyntax*: malformed list sugar
        TrailingOps: more ops after a complete expression
    """
    states: List[Union[_AwaitFun, _AwaitArg, _ListOpen]] = []
    result: Optional[Node] = None

    for index, op in enumerate(ops):
        if result is not None:
            raise TrailingOps(index)

        if op is AP:
            states.append(_AWAIT_FUN)
            continue

        if op is Syntax.LEFT_PAREN:
            states.append(_ListOpen())
            continue

        if op is Syntax.COMMA:
            top = states[-1] if states else None
            if not isinstance(top, _ListOpen):
                raise UnexpectedSyntax(op)
            if top.after_comma:
                raise ListSyntaxSeveralCommas()
            if not top.after_element:
                raise ListCommaWithoutElement()
            top.after_element = False
            top.after_comma = True
            continue

        if op is Syntax.RIGHT_PAREN:
            top = states[-1] if states else None
            if not isinstance(top, _ListOpen):
                raise UnexpectedSyntax(op)
            if top.after_comma:
                raise ListSyntaxClosingAfterComma()
            states.pop()
            node: Node = list_node(top.items)
        else:
            node = lit(op)

        # feed the finished node into the pending obligations
        while True:
            if not states:
                result = node
                break
            top = states[-1]
            if top is _AWAIT_FUN:
                states[-1] = _AwaitArg(node)
                break
            if isinstance(top, _AwaitArg):
                states.pop()
                node = App(top.fun, node)
                continue
            assert isinstance(top, _ListOpen)
            if top.after_element:
                raise ListSyntaxUnexpectedNode(node)
            top.items.append(node)
            top.after_element = True
            top.after_comma = False
            break

    if states:
        top = states[-1]
        if top is _AWAIT_FUN:
            raise NoAppFunProvided()
        if isinstance(top, _AwaitArg):
            raise NoAppArgProvided(top.fun)
        raise ListNotClosed()

    return EMPTY if result is None else result


def render(node: Node) -> Ops:
    """Flatten a tree back to its op sequence (preorder, ``ap`` prefix)."""
    out: List[Op] = []
    stack: List[Node] = [node]
    while stack:
        cur = stack.pop()
        if isinstance(cur, App):
            out.append(AP)
            stack.append(cur.arg)
            stack.append(cur.fun)
        else:
            assert isinstance(cur, Literal)
            out.append(cur.op)
    return tuple(out)
