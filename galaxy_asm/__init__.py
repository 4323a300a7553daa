# galaxy_asm/__init__.py
"""
Galaxy assembly: modulation codec and lazy combinator evaluator.

This module exposes a small, coherent core:

    - Ops: Fun, Syntax, Variable, EncodedNumber, Modulation,
           ModulatedBits, Picture, AP
    - Codec: modulate_number, demodulate_number, modulate_list,
             demodulate_list, NIL, Cons, list_from_py, py_from_list
    - Trees: build_tree, render, EMPTY
    - Evaluation: Environment, Evaluator, Reduction, Done, PendingSend
    - Front door: Session, parse_script, parse_expression, render_asm,
                  pretty_list
"""

from __future__ import annotations

from .asm_parser import parse_expression, parse_script
from .ast_builder import EMPTY, App, Literal, Node, build_tree, render
from .core.numbers import demodulate_number, modulate_number
from .core.ops import (
    AP,
    EncodedNumber,
    Fun,
    Modulation,
    ModulatedBits,
    Picture,
    Syntax,
    Variable,
)
from .engine.evaluator import Done, Evaluator, PendingSend, Reduction
from .env import Environment
from .errors import (
    BuildError,
    CodecError,
    EvalError,
    GalaxyError,
    ParseError,
    ProtocolError,
)
from .lists import NIL, Cons, demodulate_list, list_from_py, modulate_list, py_from_list
from .pretty import pretty_list, render_asm
from .session import InteractStep, Session

__all__ = [
    # ops
    "AP",
    "EncodedNumber",
    "Fun",
    "Modulation",
    "ModulatedBits",
    "Picture",
    "Syntax",
    "Variable",
    # codec
    "modulate_number",
    "demodulate_number",
    "modulate_list",
    "demodulate_list",
    "NIL",
    "Cons",
    "list_from_py",
    "py_from_list",
    # trees
    "EMPTY",
    "App",
    "Literal",
    "Node",
    "build_tree",
    "render",
    # evaluation
    "Environment",
    "Evaluator",
    "Reduction",
    "Done",
    "PendingSend",
    # front door
    "Session",
    "InteractStep",
    "parse_script",
    "parse_expression",
    "render_asm",
    "pretty_list",
    # errors
    "GalaxyError",
    "CodecError",
    "BuildError",
    "EvalError",
    "ProtocolError",
    "ParseError",
]
