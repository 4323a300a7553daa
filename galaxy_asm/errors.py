# galaxy_asm/errors.py
"""
Error taxonomy for galaxy_asm.

Four families, all recoverable from the caller's point of view:

    CodecError     malformed bit strings (prefix / width / framing)
    BuildError     malformed operation sequences (dangling ap, bad list sugar)
    EvalError      reduction-time type errors (applying a number, ...)
    ProtocolError  send/transport failures (no transport, peer gone, HTTP)

ParseError belongs to the asm text parser and sits beside them.
"""

from __future__ import annotations

from typing import Any


class GalaxyError(Exception):
    """Base class for every error raised by galaxy_asm."""


# =============================================================================
# Codec
# =============================================================================


class CodecError(GalaxyError):
    def __init__(self, message: str, bits: str = "", pos: int = 0) -> None:
        super().__init__(message)
        self.bits = bits
        self.pos = pos


class BadPrefix(CodecError):
    def __init__(self, bits: str, pos: int) -> None:
        super().__init__(f"bad prefix at bit {pos}: {bits[pos:pos + 2]!r}", bits, pos)


class BadWidthCode(CodecError):
    def __init__(self, bits: str, pos: int) -> None:
        super().__init__(f"truncated width code or magnitude at bit {pos}", bits, pos)


class TrailingBits(CodecError):
    def __init__(self, bits: str, pos: int) -> None:
        super().__init__(f"unexpected trailing bits after position {pos}: {bits[pos:]!r}", bits, pos)


class InvalidBit(CodecError):
    def __init__(self, bits: str, pos: int) -> None:
        super().__init__(f"invalid bit {bits[pos]!r} at position {pos}", bits, pos)


# =============================================================================
# Tree building
# =============================================================================


class BuildError(GalaxyError):
    pass


class NoAppFunProvided(BuildError):
    def __init__(self) -> None:
        super().__init__("ap without a function")


class NoAppArgProvided(BuildError):
    def __init__(self, fun: Any) -> None:
        super().__init__(f"ap without an argument for function {fun!r}")
        self.fun = fun


class ListNotClosed(BuildError):
    def __init__(self) -> None:
        super().__init__("list syntax not closed with ')'")


class ListCommaWithoutElement(BuildError):
    def __init__(self) -> None:
        super().__init__("',' without a preceding list element")


class ListSyntaxUnexpectedNode(BuildError):
    def __init__(self, node: Any) -> None:
        super().__init__(f"expected ',' or ')' in list, got {node!r}")
        self.node = node


class ListSyntaxSeveralCommas(BuildError):
    def __init__(self) -> None:
        super().__init__("several commas in a row inside list")


class ListSyntaxClosingAfterComma(BuildError):
    def __init__(self) -> None:
        super().__init__("')' right after ','")


class UnexpectedSyntax(BuildError):
    def __init__(self, op: Any) -> None:
        super().__init__(f"unexpected list syntax token {op!r}")
        self.op = op


class TrailingOps(BuildError):
    def __init__(self, index: int) -> None:
        super().__init__(f"ops after a complete expression, starting at op {index}")
        self.index = index


# =============================================================================
# Evaluation
# =============================================================================


class EvalError(GalaxyError):
    pass


class EvalEmptyTree(EvalError):
    def __init__(self) -> None:
        super().__init__("nothing to evaluate")


class AppOnNumber(EvalError):
    def __init__(self, number: Any, arg: Any) -> None:
        super().__init__(f"number {number!r} applied to argument {arg!r}")
        self.number = number
        self.arg = arg


class AppOnNonCallable(EvalError):
    def __init__(self, value: Any, arg: Any) -> None:
        super().__init__(f"non-callable value {value!r} applied to argument {arg!r}")
        self.value = value
        self.arg = arg


class AppExpectsNumButFunProvided(EvalError):
    def __init__(self, fun: Any) -> None:
        super().__init__(f"expected a number, got {fun!r}")
        self.fun = fun


class TwoNumbersOpInDifferentModulation(EvalError):
    def __init__(self, a: Any, b: Any) -> None:
        super().__init__(f"numbers in different modulation: {a!r} and {b!r}")
        self.a = a
        self.b = b


class ArithmeticOnModulatedNumber(EvalError):
    def __init__(self, number: Any) -> None:
        super().__init__(f"arithmetic on modulated number {number!r}")
        self.number = number


class DivisionByZero(EvalError):
    def __init__(self, number: Any = None) -> None:
        super().__init__(f"division of {number!r} by zero")
        self.number = number


class ModOnModulatedNumber(EvalError):
    def __init__(self, number: Any) -> None:
        super().__init__(f"mod applied to already modulated number {number!r}")
        self.number = number


class DemOnDemodulatedNumber(EvalError):
    def __init__(self, number: Any) -> None:
        super().__init__(f"dem applied to demodulated number {number!r}")
        self.number = number


class IsNilAppOnANumber(EvalError):
    def __init__(self, number: Any) -> None:
        super().__init__(f"isnil applied to number {number!r}")
        self.number = number


class ExpectedList(EvalError):
    def __init__(self, fun: str, got: Any) -> None:
        super().__init__(f"{fun} expects a list, got {got!r}")
        self.fun = fun
        self.got = got


class ExpectedPoint(EvalError):
    def __init__(self, got: Any) -> None:
        super().__init__(f"draw expects 'vec x y' points, got {got!r}")
        self.got = got


class StepLimitExceeded(EvalError):
    def __init__(self, limit: int) -> None:
        super().__init__(f"reduction exceeded {limit} steps")
        self.limit = limit


# =============================================================================
# Send / transport protocol
# =============================================================================


class ProtocolError(GalaxyError):
    pass


class SendWithoutTransport(ProtocolError):
    def __init__(self, bits: str) -> None:
        super().__init__(f"send of {bits!r} requested but no transport configured")
        self.bits = bits


class PeerGone(ProtocolError):
    def __init__(self, message: str = "reply channel closed before a response arrived") -> None:
        super().__init__(message)


class ResumeMisuse(ProtocolError):
    pass


class TransportError(ProtocolError):
    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


# =============================================================================
# Parser collaborator
# =============================================================================


class ParseError(GalaxyError):
    def __init__(self, message: str, line: int | None = None, token: str | None = None) -> None:
        where = f" (line {line})" if line is not None else ""
        super().__init__(f"{message}{where}")
        self.line = line
        self.token = token


class UnknownToken(ParseError):
    def __init__(self, token: str, line: int | None = None) -> None:
        super().__init__(f"unknown token {token!r}", line=line, token=token)
