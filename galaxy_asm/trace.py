from __future__ import annotations

import json
import os
from typing import Any, Dict, Iterable, List, Mapping, Optional

TRACE_EVENT_V1 = 1

# Feature flag: set GALAXY_TRACE=1 to record reduction / send events
GALAXY_TRACE_ENABLED = os.environ.get("GALAXY_TRACE", "0") == "1"


EVENT_TYPES = frozenset([
    "reduction.applied",
    "reduction.cached",
    "reduction.stuck",
    "send.request",
    "send.reply",
])


def _sorted_payload(x: Any) -> Any:
    """Payload with dict keys sorted at every level; list order is kept."""
    if isinstance(x, dict):
        return {str(k): _sorted_payload(x[k]) for k in sorted(x)}
    if isinstance(x, list):
        return [_sorted_payload(v) for v in x]
    return x


def canon_event(ev: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Canonical form of one trace event: ``v``, ``type``, ``i``, then ``t``
    (rule name) and ``mu`` (payload) when present. Other keys are dropped.

    Raises ValueError for an unknown version or type, a negative or
    non-integer ``i``, or a blank ``t``.
    """
    if not isinstance(ev, Mapping):
        raise TypeError(f"event must be a mapping, got {type(ev)}")
    if ev.get("v", TRACE_EVENT_V1) != TRACE_EVENT_V1:
        raise ValueError(f"event.v must be {TRACE_EVENT_V1}, got {ev.get('v')!r}")
    typ = ev.get("type")
    if typ not in EVENT_TYPES:
        raise ValueError(f"unknown event.type {typ!r}")
    i = ev.get("i")
    if not isinstance(i, int) or isinstance(i, bool) or i < 0:
        raise ValueError("event.i must be an integer >= 0")

    out: Dict[str, Any] = {"v": TRACE_EVENT_V1, "type": typ, "i": i}
    t = ev.get("t")
    if t is not None:
        if not isinstance(t, str) or not t.strip():
            raise ValueError("event.t must be a non-empty string")
        out["t"] = t
    mu = ev.get("mu")
    if mu is not None:
        out["mu"] = _sorted_payload(mu)
    return out


def canon_events(events: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Canonicalize events and check that ``i`` runs 0..n-1 in order."""
    out = [canon_event(ev) for ev in events]
    got = [e["i"] for e in out]
    expected = list(range(len(out)))
    if got != expected:
        raise ValueError(f"event.i must be contiguous 0..n-1 in-order; got {got}, expected {expected}")
    return out


def canon_jsonl(events: Iterable[Mapping[str, Any]]) -> str:
    """Serialize canonical events to JSONL (one event per line, newline-terminated)."""
    lines = [
        json.dumps(e, ensure_ascii=False, separators=(",", ":"), sort_keys=False)
        for e in canon_events(events)
    ]
    return "\n".join(lines) + ("\n" if lines else "")


class Tracer:
    """
    Collects trace events for one evaluator.

    Disabled tracers (the default unless GALAXY_TRACE=1) drop everything,
    so the evaluator can call them unconditionally.
    """

    def __init__(self, enabled: Optional[bool] = None, limit: Optional[int] = None) -> None:
        self._events: List[Dict[str, Any]] = []
        self._enabled = GALAXY_TRACE_ENABLED if enabled is None else enabled
        self._limit = limit
        self.dropped = 0

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def events(self) -> List[Dict[str, Any]]:
        return list(self._events)

    def _emit(self, event_type: str, t: Optional[str] = None, mu: Any = None) -> None:
        if not self._enabled:
            return
        if self._limit is not None and len(self._events) >= self._limit:
            self.dropped += 1
            return
        ev: Dict[str, Any] = {"v": TRACE_EVENT_V1, "type": event_type, "i": len(self._events)}
        if t is not None:
            ev["t"] = t
        if mu is not None:
            ev["mu"] = mu
        self._events.append(ev)

    def applied(self, rule: str) -> None:
        self._emit("reduction.applied", t=rule)

    def cached(self) -> None:
        self._emit("reduction.cached")

    def stuck(self, variable: int) -> None:
        self._emit("reduction.stuck", mu={"variable": variable})

    def send_request(self, bits: str) -> None:
        self._emit("send.request", mu={"bits": bits})

    def send_reply(self, bits: str) -> None:
        self._emit("send.reply", mu={"bits": bits})

    def clear(self) -> None:
        self._events.clear()
        self.dropped = 0

    def to_jsonl(self) -> str:
        return canon_jsonl(self._events)
