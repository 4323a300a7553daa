# galaxy_asm/engine/evaluator.py
"""
Lazy graph reducer for Galaxy assembly.

Execution model
---------------
Reduction is to weak head normal form (WHNF): a spine
``ap ap ... head a1 a2 ...`` is unwound, and if ``head`` is a basis
combinator with enough arguments its law fires and the result is reduced
again. A spine is in WHNF when its head is

    - a number, a modulated bit string or a picture (with no arguments),
    - a basis combinator with fewer arguments than its arity,
    - a variable the environment does not bind.

Strict laws (arithmetic, isnil, if0, mod, dem, send, draw, ...) need some
arguments in WHNF first. They ask for it by yielding an ``_Eval`` request,
and the driver loop pushes a new frame for that argument. Every frame is a
generator on an explicit stack, so reduction depth is not bounded by the
Python call stack, and a ``send`` can suspend the whole machine by yielding
its modulated request bits out of the driver.

Every node on a rewrite chain is memoized against the chain's WHNF in a
cache owned by the Evaluator, so a subtree shared through the environment
is reduced once.

Public entry points:

    Evaluator().eval(ast, env, transport=None) -> Ops
    Evaluator().start(ast, env) -> Reduction   (step through sends by hand)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generator, List, Optional, Tuple, Union

from galaxy_asm.ast_builder import (
    EMPTY,
    FALSE_NODE,
    NIL_NODE,
    TRUE_NODE,
    App,
    Ast,
    Literal,
    Node,
    app,
    bool_node,
    build_tree,
    cons_node,
    lit,
    render,
)
from galaxy_asm.core.ops import (
    ARITY,
    EncodedNumber,
    Fun,
    ModulatedBits,
    Ops,
    Picture,
    Syntax,
    Variable,
)
from galaxy_asm.env import Environment
from galaxy_asm.errors import (
    AppExpectsNumButFunProvided,
    AppOnNonCallable,
    AppOnNumber,
    ArithmeticOnModulatedNumber,
    DemOnDemodulatedNumber,
    DivisionByZero,
    EvalEmptyTree,
    ExpectedList,
    ExpectedPoint,
    IsNilAppOnANumber,
    ModOnModulatedNumber,
    PeerGone,
    ResumeMisuse,
    SendWithoutTransport,
    StepLimitExceeded,
    TwoNumbersOpInDifferentModulation,
    UnexpectedSyntax,
)
from galaxy_asm.lists import NIL, Cons, ValueTree, demodulate_list, modulate_list, tree_to_ops
from galaxy_asm.trace import Tracer


# =============================================================================
# Resource Limits
# =============================================================================

# 0 disables the limit; GALAXY_MAX_STEPS caps rule applications per reduction
MAX_STEPS = int(os.environ.get("GALAXY_MAX_STEPS", "0") or "0")

# 0 disables the limit; a cache holding more nodes than this is emptied
# before the next query starts
CACHE_LIMIT = int(os.environ.get("GALAXY_CACHE_LIMIT", "0") or "0")


# =============================================================================
# Requests yielded by reduction frames
# =============================================================================


class _Eval:
    __slots__ = ("node",)

    def __init__(self, node: Node) -> None:
        self.node = node


class _Send:
    __slots__ = ("bits",)

    def __init__(self, bits: str) -> None:
        self.bits = bits


class _Stuck:
    """A strict argument reduced to a free variable: the redex stays as is."""

    def __repr__(self) -> str:
        return "STUCK"


STUCK = _Stuck()

Frame = Generator[Union[_Eval, _Send], Any, Any]


# =============================================================================
# Spine helpers
# =============================================================================


def unwind(node: Node) -> Tuple[Literal, List[Node]]:
    """``ap ap f x y`` -> (f, [x, y])."""
    args: List[Node] = []
    while isinstance(node, App):
        args.append(node.arg)
        node = node.fun
    args.reverse()
    assert isinstance(node, Literal)
    return node, args


def cons_parts(node: Node) -> Optional[Tuple[Node, Node]]:
    """(head, tail) when ``node`` is a saturated-to-two ``cons``/``vec`` cell."""
    if not isinstance(node, App) or not isinstance(node.fun, App):
        return None
    head = node.fun.fun
    if isinstance(head, Literal) and (head.op is Fun.CONS or head.op is Fun.VEC):
        return node.fun.arg, node.arg
    return None


def is_stuck(node: Node) -> bool:
    """
    WHNF that is held up by a free variable: a variable head, or a strict
    basis function left saturated because its argument was stuck.
    """
    head, args = unwind(node)
    op = head.op
    if isinstance(op, Variable):
        return True
    return isinstance(op, Fun) and len(args) >= ARITY[op]


def tree_node(tree: ValueTree) -> Node:
    """Value tree -> ``ap ap cons ...`` node."""
    built = build_tree(tree_to_ops(tree))
    assert built is not EMPTY
    return built


# =============================================================================
# Lazy laws (pure substitution, no argument needs reducing)
# =============================================================================

CAR_NODE = lit(Fun.CAR)
CDR_NODE = lit(Fun.CDR)
MOD_NODE = lit(Fun.MOD)
DEM_NODE = lit(Fun.DEM)
MODEM_NODE = lit(Fun.MODEM)
SEND_NODE = lit(Fun.SEND)
DRAW_NODE = lit(Fun.DRAW)
MULTIPLEDRAW_NODE = lit(Fun.MULTIPLEDRAW)
IF0_NODE = lit(Fun.IF0)
INTERACT_NODE = lit(Fun.INTERACT)
F38_NODE = lit(Fun.F38)


def interact_law(protocol: Node, state: Node, event: Node) -> Node:
    """``interact p s e`` -> ``f38 p (p s e)``."""
    return app(F38_NODE, protocol, app(protocol, state, event))


def f38_law(protocol: Node, result: Node) -> Node:
    """
    ``f38 p r`` where r = (flag, new_state, data)::

        if0 flag
            (cons (modem new_state) (cons (multipledraw data) nil))
            (interact p (modem new_state) (send data))
    """
    rest = App(CDR_NODE, result)
    new_state = App(MODEM_NODE, App(CAR_NODE, rest))
    data = App(CAR_NODE, App(CDR_NODE, rest))
    return app(
        IF0_NODE,
        App(CAR_NODE, result),
        cons_node(new_state, cons_node(App(MULTIPLEDRAW_NODE, data), NIL_NODE)),
        app(INTERACT_NODE, protocol, new_state, App(SEND_NODE, data)),
    )


LAZY_LAWS: Dict[Fun, Callable[..., Node]] = {
    Fun.TRUE: lambda x, y: x,
    Fun.FALSE: lambda x, y: y,
    Fun.I: lambda x: x,
    Fun.C: lambda x, y, z: app(x, z, y),
    Fun.B: lambda x, y, z: App(x, App(y, z)),
    Fun.S: lambda x, y, z: App(App(x, z), App(y, z)),
    Fun.CONS: lambda x, y, z: app(z, x, y),
    Fun.VEC: lambda x, y, z: app(z, x, y),
    Fun.CAR: lambda x: App(x, TRUE_NODE),
    Fun.CDR: lambda x: App(x, FALSE_NODE),
    Fun.NIL: lambda x: TRUE_NODE,
    Fun.MODEM: lambda x: App(DEM_NODE, App(MOD_NODE, x)),
    Fun.INTERACT: interact_law,
    Fun.F38: f38_law,
}


# =============================================================================
# Outcomes of a stepped reduction
# =============================================================================


@dataclass(frozen=True)
class Done:
    ops: Ops
    node: Node = field(repr=False, compare=False)


@dataclass(frozen=True)
class PendingSend:
    """
    Reduction paused on ``send``: ``bits`` must go to the server and the
    reply bits come back through ``resume``.
    """

    bits: str
    seq: int
    reduction: "Reduction" = field(repr=False, compare=False)

    def resume(self, reply_bits: str) -> Union[Done, "PendingSend"]:
        return self.reduction.resume(reply_bits, seq=self.seq)


Outcome = Union[Done, PendingSend]


class Reduction:
    """
    One suspended-or-running evaluation.

    advance() starts it; each PendingSend is answered exactly once with
    resume(); cancel() abandons it, after which any use raises PeerGone.
    """

    def __init__(self, machine: Generator[str, str, Node]) -> None:
        self._machine = machine
        self._started = False
        self._closed = False
        self._pending: Optional[PendingSend] = None
        self._seq = 0
        self.result: Optional[Done] = None

    @property
    def pending(self) -> Optional[PendingSend]:
        return self._pending

    @property
    def done(self) -> bool:
        return self.result is not None

    def _step(self, value: Optional[str]) -> Outcome:
        try:
            bits = self._machine.send(value)
        except StopIteration as stop:
            self._closed = True
            self.result = Done(render(stop.value), stop.value)
            return self.result
        except BaseException:
            self._closed = True
            raise
        self._seq += 1
        self._pending = PendingSend(bits, self._seq, self)
        return self._pending

    def advance(self) -> Outcome:
        if self._started:
            raise ResumeMisuse("reduction already started; use resume()")
        self._started = True
        return self._step(None)

    def resume(self, reply_bits: str, seq: Optional[int] = None) -> Outcome:
        if self._closed and self.result is None:
            raise PeerGone("reduction was cancelled or failed")
        pending = self._pending
        if pending is None:
            raise ResumeMisuse("no send is waiting for a reply")
        if seq is not None and seq != pending.seq:
            raise ResumeMisuse(f"send #{seq} was already answered")
        self._pending = None
        return self._step(reply_bits)

    def cancel(self) -> None:
        self._pending = None
        if not self._closed:
            self._closed = True
            self._machine.close()


# =============================================================================
# Evaluator
# =============================================================================


class Evaluator:
    """
    WHNF graph reducer with a private memo cache.

    A cache is only valid for one environment; evaluating against a
    different Environment object empties it first. The cache persists
    across queries, so long interact loops should set ``cache_limit``
    (or call clear_cache()) to bound it.
    """

    def __init__(
        self,
        *,
        cache: Optional[Dict[Node, Node]] = None,
        tracer: Optional[Tracer] = None,
        max_steps: Optional[int] = None,
        cache_limit: Optional[int] = None,
    ) -> None:
        self.cache: Dict[Node, Node] = {} if cache is None else cache
        self.tracer = tracer if tracer is not None else Tracer()
        self.max_steps = MAX_STEPS if max_steps is None else max_steps
        self.cache_limit = CACHE_LIMIT if cache_limit is None else cache_limit
        self.steps = 0
        self._sends = 0
        self._cache_env: Optional[int] = None

        self._strict_laws: Dict[Fun, Callable[..., Frame]] = {
            Fun.INC: self._law_inc,
            Fun.DEC: self._law_dec,
            Fun.NEG: self._law_neg,
            Fun.ADD: self._law_add,
            Fun.MUL: self._law_mul,
            Fun.DIV: self._law_div,
            Fun.EQ: self._law_eq,
            Fun.LT: self._law_lt,
            Fun.ISNIL: self._law_isnil,
            Fun.IF0: self._law_if0,
            Fun.MOD: self._law_mod,
            Fun.DEM: self._law_dem,
            Fun.SEND: self._law_send,
            Fun.DRAW: self._law_draw,
            Fun.MULTIPLEDRAW: self._law_multipledraw,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def clear_cache(self) -> None:
        self.cache.clear()

    def _bind(self, env: Environment) -> None:
        if self._cache_env != id(env):
            self.cache.clear()
            self._cache_env = id(env)
        elif self.cache_limit and len(self.cache) > self.cache_limit:
            self.cache.clear()
        self.steps = 0

    def start(self, ast: Ast, env: Environment) -> Reduction:
        """Prepare a stepped reduction of ``ast``; nothing runs until advance()."""
        if ast is EMPTY:
            raise EvalEmptyTree()
        assert isinstance(ast, Node)
        self._bind(env)
        return Reduction(self._drive(self._force_result(ast), env))

    def eval(self, ast: Ast, env: Environment, transport: Any = None) -> Ops:
        """
        Reduce ``ast`` and render the result.

        Cons cells in the result are forced element by element, so a list
        comes back as literal values. Each send goes through
        ``transport.send(bits) -> reply_bits``.

        Raises:
            EvalError: type errors during reduction
            SendWithoutTransport: a send was reached and transport is None
            TransportError: raised by the transport
        """
        reduction = self.start(ast, env)
        outcome = reduction.advance()
        while isinstance(outcome, PendingSend):
            if transport is None:
                reduction.cancel()
                raise SendWithoutTransport(outcome.bits)
            try:
                reply = transport.send(outcome.bits)
            except BaseException:
                reduction.cancel()
                raise
            outcome = reduction.resume(reply)
        return outcome.ops

    def whnf(self, node: Node, env: Environment) -> Node:
        """Reduce one node to WHNF without forcing list elements (no sends allowed)."""
        self._bind(env)
        machine = self._drive(self._reduce(node, env), env)
        try:
            bits = machine.send(None)
        except StopIteration as stop:
            return stop.value
        machine.close()
        raise SendWithoutTransport(bits)

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------
    def _drive(self, first: Frame, env: Environment) -> Generator[str, str, Node]:
        """
        Run frames on an explicit stack.

        _Eval requests push a reduction frame (or answer from cache);
        _Send requests are yielded to the caller, whose reply is fed back.
        """
        stack: List[Frame] = [first]
        value: Any = None
        while True:
            frame = stack[-1]
            try:
                request = frame.send(value)
            except StopIteration as stop:
                stack.pop()
                value = stop.value
                if not stack:
                    return value
                continue

            if isinstance(request, _Eval):
                hit = self.cache.get(request.node)
                if hit is not None:
                    self.tracer.cached()
                    value = hit
                    continue
                stack.append(self._reduce(request.node, env))
                value = None
            else:
                self._sends += 1
                value = yield request.bits

    def _tick(self, rule: Fun) -> None:
        self.steps += 1
        if self.max_steps and self.steps > self.max_steps:
            raise StepLimitExceeded(self.max_steps)
        self.tracer.applied(rule.value)

    # ------------------------------------------------------------------
    # WHNF reduction of one node
    # ------------------------------------------------------------------
    def _reduce(self, node: Node, env: Environment) -> Frame:
        sends_before = self._sends
        chain: List[Node] = [node]
        cur = node
        while True:
            if cur is not node:
                hit = self.cache.get(cur)
                if hit is not None:
                    result = hit
                    break

            head, args = unwind(cur)
            op = head.op

            if isinstance(op, Variable):
                bound = env.resolve(op)
                if bound is None:
                    self.tracer.stuck(op.name)
                    result = cur
                    break
                value = yield _Eval(bound)
                cur = app(value, *args)
                chain.append(cur)
                continue

            if isinstance(op, EncodedNumber):
                if args:
                    raise AppOnNumber(op, args[0])
                result = cur
                break

            if isinstance(op, (ModulatedBits, Picture)):
                if args:
                    raise AppOnNonCallable(op, args[0])
                result = cur
                break

            if isinstance(op, Syntax):
                raise UnexpectedSyntax(op)

            arity = ARITY[op]
            if len(args) < arity:
                result = cur
                break

            self._tick(op)
            operands = args[:arity]
            law = LAZY_LAWS.get(op)
            if law is not None:
                rewritten = law(*operands)
            else:
                rewritten = yield from self._strict_laws[op](*operands)
                if rewritten is STUCK:
                    result = cur
                    break

            cur = app(rewritten, *args[arity:])
            chain.append(cur)

        # results that depended on a send reply stay out of the cache
        if self._sends == sends_before:
            for n in chain:
                self.cache[n] = result
            self.cache[result] = result
        return result

    # ------------------------------------------------------------------
    # Deep forcing
    # ------------------------------------------------------------------
    def _force_result(self, root: Node) -> Frame:
        """WHNF of ``root``; cons cells are rebuilt with forced elements."""
        pending: List[List[Node]] = []
        todo: List[Node] = [root]
        while True:
            w = yield _Eval(todo.pop())
            parts = cons_parts(w)
            if parts is not None:
                pending.append([])
                todo.append(parts[1])
                todo.append(parts[0])
                continue
            value = w
            while pending:
                frame = pending[-1]
                if not frame:
                    frame.append(value)
                    break
                pending.pop()
                value = cons_node(frame[0], value)
            else:
                return value

    def _force_value(self, root: Node, fun: Fun) -> Frame:
        """Force ``root`` into a value tree (numbers, nil, cons); STUCK on a free variable."""
        pending: List[List[ValueTree]] = []
        todo: List[Node] = [root]
        while True:
            w = yield _Eval(todo.pop())
            parts = cons_parts(w)
            if parts is not None:
                pending.append([])
                todo.append(parts[1])
                todo.append(parts[0])
                continue

            head, args = unwind(w)
            op = head.op
            if head.op is Fun.NIL and not args:
                value: ValueTree = NIL
            elif isinstance(op, EncodedNumber) and not args:
                value = op.value
            elif is_stuck(w):
                return STUCK
            else:
                raise ExpectedList(fun.value, w)

            while pending:
                frame = pending[-1]
                if not frame:
                    frame.append(value)
                    break
                pending.pop()
                value = Cons(frame[0], value)
            else:
                return value

    def _number(self, node: Node) -> Frame:
        """WHNF of ``node`` as an EncodedNumber, or STUCK."""
        w = yield _Eval(node)
        head, args = unwind(w)
        op = head.op
        if isinstance(op, EncodedNumber) and not args:
            return op
        if is_stuck(w):
            return STUCK
        raise AppExpectsNumButFunProvided(w)

    def _numbers(self, x: Node, y: Node) -> Frame:
        a = yield from self._number(x)
        if a is STUCK:
            return STUCK
        b = yield from self._number(y)
        if b is STUCK:
            return STUCK
        if a.modulation is not b.modulation:
            raise TwoNumbersOpInDifferentModulation(a, b)
        if a.is_modulated:
            raise ArithmeticOnModulatedNumber(a)
        return a.value, b.value

    def _unary(self, x: Node) -> Frame:
        n = yield from self._number(x)
        if n is STUCK:
            return STUCK
        if n.is_modulated:
            raise ArithmeticOnModulatedNumber(n)
        return n.value

    # ------------------------------------------------------------------
    # Strict laws
    # ------------------------------------------------------------------
    def _law_inc(self, x: Node) -> Frame:
        v = yield from self._unary(x)
        return STUCK if v is STUCK else Literal(EncodedNumber(v + 1))

    def _law_dec(self, x: Node) -> Frame:
        v = yield from self._unary(x)
        return STUCK if v is STUCK else Literal(EncodedNumber(v - 1))

    def _law_neg(self, x: Node) -> Frame:
        v = yield from self._unary(x)
        return STUCK if v is STUCK else Literal(EncodedNumber(-v))

    def _law_add(self, x: Node, y: Node) -> Frame:
        ab = yield from self._numbers(x, y)
        return STUCK if ab is STUCK else Literal(EncodedNumber(ab[0] + ab[1]))

    def _law_mul(self, x: Node, y: Node) -> Frame:
        ab = yield from self._numbers(x, y)
        return STUCK if ab is STUCK else Literal(EncodedNumber(ab[0] * ab[1]))

    def _law_div(self, x: Node, y: Node) -> Frame:
        ab = yield from self._numbers(x, y)
        if ab is STUCK:
            return STUCK
        a, b = ab
        if b == 0:
            raise DivisionByZero(a)
        q = abs(a) // abs(b)
        if (a < 0) != (b < 0):
            q = -q
        return Literal(EncodedNumber(q))

    def _law_eq(self, x: Node, y: Node) -> Frame:
        ab = yield from self._numbers(x, y)
        return STUCK if ab is STUCK else bool_node(ab[0] == ab[1])

    def _law_lt(self, x: Node, y: Node) -> Frame:
        ab = yield from self._numbers(x, y)
        return STUCK if ab is STUCK else bool_node(ab[0] < ab[1])

    def _law_if0(self, cond: Node, x: Node, y: Node) -> Frame:
        v = yield from self._unary(cond)
        if v is STUCK:
            return STUCK
        return x if v == 0 else y

    def _law_isnil(self, x: Node) -> Frame:
        w = yield _Eval(x)
        head, args = unwind(w)
        op = head.op
        if is_stuck(w):
            return STUCK
        if isinstance(op, EncodedNumber):
            raise IsNilAppOnANumber(op)
        return bool_node(op is Fun.NIL and not args)

    def _law_mod(self, x: Node) -> Frame:
        w = yield _Eval(x)
        head, args = unwind(w)
        op = head.op
        if isinstance(op, EncodedNumber) and not args:
            if op.is_modulated:
                raise ModOnModulatedNumber(op)
            return Literal(op.modulated())
        if is_stuck(w):
            return STUCK
        tree = yield from self._force_value(w, Fun.MOD)
        if tree is STUCK:
            return STUCK
        return Literal(ModulatedBits(modulate_list(tree)))

    def _law_dem(self, x: Node) -> Frame:
        w = yield _Eval(x)
        head, args = unwind(w)
        op = head.op
        if isinstance(op, EncodedNumber) and not args:
            if not op.is_modulated:
                raise DemOnDemodulatedNumber(op)
            return Literal(op.demodulated())
        if isinstance(op, ModulatedBits):
            return tree_node(demodulate_list(op.bits))
        if is_stuck(w):
            return STUCK
        raise AppExpectsNumButFunProvided(w)

    def _law_send(self, x: Node) -> Frame:
        tree = yield from self._force_value(x, Fun.SEND)
        if tree is STUCK:
            return STUCK
        bits = modulate_list(tree)
        self.tracer.send_request(bits)
        reply = yield _Send(bits)
        self.tracer.send_reply(reply)
        return tree_node(demodulate_list(reply))

    def _law_draw(self, x: Node) -> Frame:
        tree = yield from self._force_value(x, Fun.DRAW)
        if tree is STUCK:
            return STUCK
        points: List[Tuple[int, int]] = []
        cur = tree
        while isinstance(cur, Cons):
            point = cur.left
            if not (isinstance(point, Cons) and isinstance(point.left, int) and isinstance(point.right, int)):
                raise ExpectedPoint(point)
            points.append((point.left, point.right))
            cur = cur.right
        if cur is not NIL:
            raise ExpectedList(Fun.DRAW.value, cur)
        return Literal(Picture(tuple(points)))

    def _law_multipledraw(self, x: Node) -> Frame:
        w = yield _Eval(x)
        head, args = unwind(w)
        if head.op is Fun.NIL and not args:
            return NIL_NODE
        if is_stuck(w):
            return STUCK
        return cons_node(
            App(DRAW_NODE, App(CAR_NODE, w)),
            App(MULTIPLEDRAW_NODE, App(CDR_NODE, w)),
        )
