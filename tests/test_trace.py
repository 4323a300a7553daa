from __future__ import annotations

import json
from pathlib import Path

import pytest

from galaxy_asm.ast_builder import build_tree
from galaxy_asm.engine.evaluator import Evaluator
from galaxy_asm.env import Environment
from galaxy_asm.trace import Tracer, canon_event, canon_events, canon_jsonl
from galaxy_asm.transport import RecordingTransport

from conftest import asm

ROOT = Path(__file__).resolve().parent.parent
EVENT_SCHEMA = ROOT / "docs/schemas/galaxy-trace-event.v1.json"
FIXTURE = ROOT / "tests/fixtures/traces/send_round.v1.jsonl"


def _load_json(p: Path):
    return json.loads(p.read_text(encoding="utf-8"))


def _traced(expr: str, replies=()):
    tracer = Tracer(enabled=True)
    Evaluator(tracer=tracer).eval(build_tree(asm(expr)), Environment(), RecordingTransport(list(replies)))
    return tracer


# =============================================================================
# canon_event / canon_jsonl
# =============================================================================


def test_canon_event_keeps_key_order():
    out = canon_event({"i": 0, "t": "add", "type": "reduction.applied", "v": 1})
    assert list(out.keys()) == ["v", "type", "i", "t"]


def test_canon_event_drops_none_optionals_and_ignores_unknown_keys():
    out = canon_event({"v": 1, "type": "reduction.cached", "i": 0, "t": None, "mu": None, "extra": 1})
    assert out == {"v": 1, "type": "reduction.cached", "i": 0}


def test_canon_event_sorts_payload():
    out = canon_event({"v": 1, "type": "send.request", "i": 0, "mu": {"z": 1, "a": {"d": 4, "c": 3}}})
    assert list(out["mu"].keys()) == ["a", "z"]
    assert list(out["mu"]["a"].keys()) == ["c", "d"]


@pytest.mark.parametrize(
    "ev",
    [
        {"v": 2, "type": "send.reply", "i": 0},
        {"v": 1, "type": "trace.start", "i": 0},
        {"v": 1, "type": "send.reply", "i": -1},
        {"v": 1, "type": "send.reply", "i": True},
        {"v": 1, "type": "send.reply", "i": 0, "t": "  "},
    ],
)
def test_canon_event_rejects(ev):
    with pytest.raises(ValueError):
        canon_event(ev)


def test_canon_event_keeps_only_known_keys():
    ev = {"extra": 1, "i": 0, "type": "reduction.applied", "t": "add", "mu": {"b": 1, "a": [{"d": 2, "c": 3}]}}
    out = canon_event(ev)
    assert list(out) == ["v", "type", "i", "t", "mu"]
    assert list(out["mu"]) == ["a", "b"]
    assert list(out["mu"]["a"][0]) == ["c", "d"]


def test_canon_events_requires_contiguous_indices():
    with pytest.raises(ValueError):
        canon_events([{"v": 1, "type": "reduction.cached", "i": 1}])


def test_canon_jsonl_is_deterministic_across_key_permutations():
    a = [{"v": 1, "type": "send.request", "i": 0, "mu": {"bits": "00"}}]
    b = [{"mu": {"bits": "00"}, "i": 0, "type": "send.request", "v": 1}]
    assert canon_jsonl(a) == canon_jsonl(b)
    assert canon_jsonl(a).endswith("\n")
    assert canon_jsonl([]) == ""


# =============================================================================
# Tracer
# =============================================================================


def test_disabled_tracer_records_nothing():
    tracer = Tracer(enabled=False)
    Evaluator(tracer=tracer).eval(build_tree(asm("ap inc 1")), Environment())
    assert tracer.events == []


def test_applied_rules_in_order():
    tracer = _traced("ap ap ap s add inc 1")
    rules = [e["t"] for e in tracer.events if e["type"] == "reduction.applied"]
    assert rules == ["s", "add", "inc"]


def test_stuck_variable_recorded():
    tracer = _traced("ap inc x5")
    stuck = [e for e in tracer.events if e["type"] == "reduction.stuck"]
    assert stuck and stuck[0]["mu"] == {"variable": 5}


def test_limit_counts_dropped_events():
    tracer = Tracer(enabled=True, limit=1)
    tracer.applied("inc")
    tracer.applied("dec")
    assert len(tracer.events) == 1
    assert tracer.dropped == 1
    tracer.clear()
    assert tracer.events == [] and tracer.dropped == 0


def test_send_round_matches_fixture():
    tracer = _traced("ap send nil", replies=["1101000"])
    assert tracer.to_jsonl() == FIXTURE.read_text(encoding="utf-8")


# =============================================================================
# Schema
# =============================================================================


def test_trace_event_schema_file_exists():
    assert EVENT_SCHEMA.exists(), "Missing docs/schemas/galaxy-trace-event.v1.json"


def test_trace_fixture_validates_against_schema():
    jsonschema = pytest.importorskip("jsonschema")
    schema = _load_json(EVENT_SCHEMA)
    for ln in FIXTURE.read_text(encoding="utf-8").splitlines():
        jsonschema.validate(instance=json.loads(ln), schema=schema)


def test_live_trace_validates_against_schema():
    jsonschema = pytest.importorskip("jsonschema")
    schema = _load_json(EVENT_SCHEMA)
    tracer = _traced("ap ap cons ap inc x1 ap send (0)", replies=["00"])
    for ev in canon_events(tracer.events):
        jsonschema.validate(instance=ev, schema=schema)
