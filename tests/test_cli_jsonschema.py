from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path

import pytest

from galaxy_asm.cli import SCHEMA_DOC, SCHEMA_TAG, main

ROOT = Path(__file__).resolve().parents[1]
SCHEMA = ROOT / SCHEMA_DOC


@pytest.fixture(autouse=True)
def _no_server(monkeypatch):
    monkeypatch.delenv("GALAXY_SERVER_URL", raising=False)
    monkeypatch.delenv("GALAXY_API_KEY", raising=False)


def _run_main(capsys, args: list[str]) -> tuple[int, dict, str]:
    rc = main(args)
    captured = capsys.readouterr()
    payload = json.loads(captured.out) if captured.out.strip() else {}
    return rc, payload, captured.err


def _validate(payload: dict) -> None:
    jsonschema = pytest.importorskip("jsonschema")
    schema = json.loads(SCHEMA.read_text(encoding="utf-8"))
    jsonschema.validate(instance=payload, schema=schema)


def test_schema_flag_via_module():
    r = subprocess.run(
        [sys.executable, "-m", "galaxy_asm.cli", "--schema"],
        cwd=str(ROOT),
        capture_output=True,
        text=True,
    )
    assert r.returncode == 0, r.stdout + "\n" + r.stderr
    assert r.stdout.strip() == f"{SCHEMA_TAG} {SCHEMA_DOC}"


def test_number_result(capsys):
    rc, payload, _ = _run_main(capsys, ["ap ap add 1 2"])
    assert rc == 0
    assert payload["ok"] is True
    assert payload["output"] == "3"
    assert payload["value"] == "3"
    assert payload["warnings"] == []
    _validate(payload)


def test_list_result_with_script(capsys, tmp_path: Path):
    script = tmp_path / "galaxy.txt"
    script.write_text("x1162 = cons\n:2 = ap ap x1162 1 ap ap x1162 2 nil\n", encoding="utf-8")
    rc, payload, _ = _run_main(capsys, ["--script", str(script), ":2"])
    assert rc == 0
    assert payload["output"] == "ap ap cons 1 ap ap cons 2 nil"
    assert payload["value"] == "(1, 2)"
    _validate(payload)


def test_non_list_value_is_null(capsys):
    rc, payload, _ = _run_main(capsys, ["ap add 1"])
    assert rc == 0
    assert payload["output"] == "ap add 1"
    assert payload["value"] is None
    _validate(payload)


def test_eval_error_exit_1(capsys):
    rc, payload, _ = _run_main(capsys, ["ap ap div 1 0"])
    assert rc == 1
    assert payload["ok"] is False
    assert payload["output"] is None
    assert payload["warnings"][0].startswith("DivisionByZero")
    _validate(payload)


def test_send_without_server_exit_1(capsys):
    rc, payload, _ = _run_main(capsys, ["ap send nil"])
    assert rc == 1
    assert payload["warnings"][0].startswith("SendWithoutTransport")


def test_bad_expression_exit_2(capsys):
    rc, payload, err = _run_main(capsys, ["ap inc"])
    assert rc == 2
    assert payload == {}
    assert "Invalid input" in err


def test_bad_script_exit_2(capsys, tmp_path: Path):
    script = tmp_path / "bad.txt"
    script.write_text(":1 = ap nonsense 1\n", encoding="utf-8")
    rc, _, err = _run_main(capsys, ["--script", str(script), ":1"])
    assert rc == 2
    assert "Invalid input" in err


def test_inputs_hash_is_deterministic(capsys):
    _, first, _ = _run_main(capsys, ["ap inc 1"])
    _, second, _ = _run_main(capsys, ["ap inc 1"])
    _, other, _ = _run_main(capsys, ["ap inc 2"])
    h = lambda p: p["meta"]["determinism"]["inputs_hash"]
    assert h(first) == h(second)
    assert h(first) != h(other)


def test_trace_goes_to_stderr(capsys):
    rc, payload, err = _run_main(capsys, ["--trace", "ap inc 1"])
    assert rc == 0
    events = [json.loads(ln) for ln in err.splitlines()]
    assert events[0] == {"v": 1, "type": "reduction.applied", "i": 0, "t": "inc"}
    assert payload["output"] == "2"
