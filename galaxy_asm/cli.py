from __future__ import annotations

"""
Galaxy eval CLI

Evaluate one Galaxy assembly expression against an optional script and
emit the result as JSON.

Contract: emits JSON with schema tag + schema_doc.
"""

import argparse
import datetime
import hashlib
import json
import os
import sys
from typing import Any, List, Optional

from galaxy_asm.asm_parser import parse_expression
from galaxy_asm.ast_builder import build_tree
from galaxy_asm.errors import GalaxyError
from galaxy_asm.pretty import pretty_value, render_asm
from galaxy_asm.session import Session
from galaxy_asm.trace import Tracer
from galaxy_asm.transport import HttpTransport


SCHEMA_TAG = "galaxy-eval.v1"
SCHEMA_DOC = "docs/schemas/galaxy-eval.v1.json"


def _utc_now_z() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def _inputs_hash(script: str, expression: str) -> str:
    payload = json.dumps({"script": script, "expression": expression}, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _emit(payload: dict[str, Any], pretty: bool) -> None:
    if pretty:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        print(json.dumps(payload, ensure_ascii=False))


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Evaluate a Galaxy assembly expression and emit JSON.")
    ap.add_argument("--schema", action="store_true", help="Print schema tag + schema doc path and exit.")
    ap.add_argument("--pretty", action="store_true", help="Pretty-print JSON output.")
    ap.add_argument("--trace", action="store_true", help="Write JSONL trace events to stderr.")
    ap.add_argument(
        "--script",
        type=argparse.FileType("r", encoding="utf-8"),
        default=None,
        help="Script of 'LHS = RHS' statements to evaluate against.",
    )
    ap.add_argument(
        "--server-url",
        default=None,
        help="Endpoint for send requests (default: GALAXY_SERVER_URL; without one, send is an error).",
    )
    ap.add_argument("expression", nargs="?", help='Expression, e.g. "ap ap add 1 2".')

    args = ap.parse_args(argv)

    if args.schema:
        print(f"{SCHEMA_TAG} {SCHEMA_DOC}")
        return 0

    if not args.expression:
        ap.error("expression is required unless --schema is used")

    script = ""
    if args.script is not None:
        try:
            script = args.script.read()
        finally:
            args.script.close()

    tracer = Tracer(enabled=True) if args.trace else Tracer()
    try:
        url = args.server_url or os.environ.get("GALAXY_SERVER_URL")
        transport = HttpTransport(url) if url else None
        session = Session(script, tracer=tracer, transport=transport)
        query = parse_expression(args.expression)
        build_tree(query)
    except GalaxyError as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return 2

    warnings: List[str] = []
    output: Optional[str] = None
    value: Optional[str] = None
    try:
        ops = session.eval_ops(query)
        output = render_asm(ops)
        value = pretty_value(ops)
        ok = True
    except GalaxyError as e:
        ok = False
        warnings.append(f"{type(e).__name__}: {e}")

    if args.trace:
        sys.stderr.write(tracer.to_jsonl())

    payload: dict[str, Any] = {
        "schema": SCHEMA_TAG,
        "schema_doc": SCHEMA_DOC,
        "expression": args.expression,
        "output": output,
        "value": value,
        "ok": bool(ok),
        "warnings": warnings,
        "meta": {
            "tool": "galaxy_eval_cli",
            "generated_at": _utc_now_z(),
            "determinism": {
                "inputs_hash": _inputs_hash(script, args.expression),
            },
        },
    }

    _emit(payload, pretty=bool(args.pretty))
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
