# galaxy_asm/env.py
"""
Equality table for a loaded script.

Each ``LHS = RHS`` statement lands in two dicts keyed by flattened op
tuples: ``forward[lhs] = rhs`` and ``backward[rhs] = lhs``. Statements whose
LHS is a single variable are also kept as built trees so the evaluator can
resolve a variable to a shared node instead of rebuilding it.

Mutation happens only while a script loads; evaluation only reads.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from galaxy_asm.ast_builder import EMPTY, Node, build_tree
from galaxy_asm.core.ops import GALAXY_VARIABLE_ID, Fun, Ops, Variable

Equality = Tuple[Ops, Ops]


def _binding_key(lhs: Ops) -> Optional[int]:
    if len(lhs) != 1:
        return None
    op = lhs[0]
    if isinstance(op, Variable):
        return op.name
    if op is Fun.GALAXY:
        return GALAXY_VARIABLE_ID
    return None


class Environment:
    def __init__(self) -> None:
        self.forward: Dict[Ops, Ops] = {}
        self.backward: Dict[Ops, Ops] = {}
        self._trees: Dict[int, Node] = {}
        self._order: List[Ops] = []

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def add_equality(self, lhs: Ops, rhs: Ops) -> None:
        """
        Record ``lhs = rhs``. A repeated LHS overwrites the earlier one.

        Raises BuildError if a variable's RHS is not a well-formed tree; in
        that case nothing is recorded.
        """
        lhs = tuple(lhs)
        rhs = tuple(rhs)
        key = _binding_key(lhs)
        tree = None
        if key is not None:
            tree = build_tree(rhs)

        if lhs not in self.forward:
            self._order.append(lhs)
        self.forward[lhs] = rhs
        self.backward[rhs] = lhs
        if key is not None and tree is not EMPTY:
            self._trees[key] = tree

    def extend(self, equalities: Iterable[Equality]) -> "Environment":
        for lhs, rhs in equalities:
            self.add_equality(lhs, rhs)
        return self

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------
    def lookup(self, key: Ops) -> Optional[Ops]:
        """Forward table first, then backward."""
        key = tuple(key)
        found = self.forward.get(key)
        if found is not None:
            return found
        return self.backward.get(key)

    def resolve(self, variable: Variable) -> Optional[Node]:
        """Shared tree bound to ``variable``, or None when it is free."""
        return self._trees.get(variable.name)

    def snapshot(self) -> List[Equality]:
        """Equalities in load order (last write per LHS)."""
        return [(lhs, self.forward[lhs]) for lhs in self._order]

    @classmethod
    def from_snapshot(cls, equalities: Iterable[Equality]) -> "Environment":
        return cls().extend(equalities)

    def __len__(self) -> int:
        return len(self.forward)

    def __contains__(self, key: object) -> bool:
        return key in self.forward
