# galaxy_asm/session.py
"""
Session: a loaded script plus the evaluator that reduces queries against it.

    s = Session("x1162 = cons\\nx1029 = ap ap x1162 7 nil")
    s.eval_asm(":1029")          # -> (AP, AP, Fun.CONS, 7, Fun.NIL)

A Session owns its Environment, Evaluator and cache; independent Sessions
share nothing and can run in separate threads. A failed query leaves the
Environment untouched, so the Session stays usable.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

from galaxy_asm.asm_parser import parse_expression, parse_script
from galaxy_asm.ast_builder import EMPTY, Literal, Node, build_tree, render
from galaxy_asm.core.ops import AP, EncodedNumber, Fun, Ops, Picture
from galaxy_asm.engine.channel import run_with_transport
from galaxy_asm.engine.evaluator import Evaluator, Reduction, cons_parts
from galaxy_asm.env import Environment
from galaxy_asm.errors import EvalEmptyTree, ExpectedList
from galaxy_asm.trace import Tracer


@dataclass(frozen=True)
class InteractStep:
    """Outcome of one ``interact`` round: the next state and what to draw."""

    state: Ops
    pictures: Tuple[Picture, ...]


class Session:
    def __init__(
        self,
        script_text: str = "",
        *,
        evaluator: Optional[Evaluator] = None,
        transport: Any = None,
        tracer: Optional[Tracer] = None,
    ) -> None:
        """
        Parse ``script_text`` and load every statement into a fresh
        Environment. Right-hand sides are not reduced here; variables are
        resolved on demand during evaluation.

        Raises ParseError / BuildError for a malformed script.
        """
        self.env = Environment().extend(parse_script(script_text))
        self.evaluator = evaluator if evaluator is not None else Evaluator(tracer=tracer)
        self.transport = transport

    @classmethod
    def from_file(cls, path: Union[str, Path], **kwargs: Any) -> "Session":
        return cls(Path(path).read_text(encoding="utf-8"), **kwargs)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def eval_asm(self, text: str) -> Ops:
        return self.eval_ops(parse_expression(text))

    def eval_ops(self, ops: Ops) -> Ops:
        return self.evaluator.eval(build_tree(tuple(ops)), self.env, self.transport)

    def start(self, text: str) -> Reduction:
        """Stepped evaluation: the caller answers each PendingSend itself."""
        return self.evaluator.start(build_tree(parse_expression(text)), self.env)

    async def eval_asm_async(self, text: str) -> Ops:
        return await self.eval_ops_async(parse_expression(text))

    async def eval_ops_async(self, ops: Ops) -> Ops:
        """
        Like eval_ops, but sends run the (blocking) transport in a worker
        thread so other tasks keep running while a reply is awaited.
        """
        ast = build_tree(tuple(ops))
        if self.transport is None:
            return self.evaluator.eval(ast, self.env, None)
        return await run_with_transport(self.evaluator, ast, self.env, self.transport)

    def interact(self, state: Ops, x: int, y: int, protocol: Ops = (Fun.GALAXY,)) -> InteractStep:
        """
        One round of ``ap ap ap interact <protocol> <state> ap ap vec x y``.

        Returns the new state (to pass back next round) and the pictures the
        protocol asked to draw.
        """
        ops = (AP, AP, AP, Fun.INTERACT, *protocol, *state, AP, AP, Fun.VEC, EncodedNumber(x), EncodedNumber(y))
        result = build_tree(self.eval_ops(ops))
        return _split_interact_result(result)

    # ------------------------------------------------------------------
    # Environment / cache
    # ------------------------------------------------------------------
    def lookup(self, text: str) -> Optional[Ops]:
        return self.env.lookup(parse_expression(text))

    def clear_cache(self) -> None:
        self.evaluator.clear_cache()


def _split_interact_result(result: Any) -> InteractStep:
    if result is EMPTY:
        raise EvalEmptyTree()
    first = cons_parts(result)
    if first is None:
        raise ExpectedList(Fun.INTERACT.value, result)
    state, rest = first
    second = cons_parts(rest)
    if second is None:
        raise ExpectedList(Fun.INTERACT.value, rest)

    pictures: List[Picture] = []
    cur: Node = second[0]
    while True:
        parts = cons_parts(cur)
        if parts is None:
            break
        item, cur = parts
        if not (isinstance(item, Literal) and isinstance(item.op, Picture)):
            raise ExpectedList(Fun.MULTIPLEDRAW.value, item)
        pictures.append(item.op)
    if not (isinstance(cur, Literal) and cur.op is Fun.NIL):
        raise ExpectedList(Fun.MULTIPLEDRAW.value, cur)
    return InteractStep(render(state), tuple(pictures))
