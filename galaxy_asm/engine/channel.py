# galaxy_asm/engine/channel.py
"""
Async send/reply plumbing around a stepped Reduction.

The reducing side never talks to the network itself. Each ``send`` becomes
a SendRequest put on an outbound memory stream, carrying a one-shot reply
stream; the reduction waits on that reply and then resumes. Exactly one
request is outstanding per reduction.

    outbound, inbound = anyio.create_memory_object_stream()
    tg.start_soon(serve_transport, transport, inbound)
    ops = await eval_with_channel(evaluator, ast, env, outbound)

If the reply stream is closed before an answer arrives the reduction ends
with PeerGone.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

import anyio
from anyio.abc import ObjectReceiveStream, ObjectSendStream

from galaxy_asm.ast_builder import Ast
from galaxy_asm.core.ops import Ops
from galaxy_asm.engine.evaluator import Evaluator, PendingSend
from galaxy_asm.env import Environment
from galaxy_asm.errors import GalaxyError, PeerGone, TransportError

Reply = Union[str, TransportError]


@dataclass
class SendRequest:
    bits: str
    reply: ObjectSendStream


async def eval_with_channel(
    evaluator: Evaluator,
    ast: Ast,
    env: Environment,
    outbound: ObjectSendStream,
) -> Ops:
    """
    Reduce ``ast``, routing every send through ``outbound``.

    A TransportError sent back as the reply is raised here, inside the
    reduction's caller.
    """
    reduction = evaluator.start(ast, env)
    outcome = reduction.advance()
    try:
        while isinstance(outcome, PendingSend):
            reply = await _round_trip(outcome.bits, outbound)
            if isinstance(reply, BaseException):
                raise reply
            outcome = reduction.resume(reply)
    except BaseException:
        reduction.cancel()
        raise
    return outcome.ops


async def _round_trip(bits: str, outbound: ObjectSendStream) -> Reply:
    reply_send, reply_recv = anyio.create_memory_object_stream(1)
    async with reply_recv:
        try:
            await outbound.send(SendRequest(bits, reply_send))
        except (anyio.ClosedResourceError, anyio.BrokenResourceError) as e:
            await reply_send.aclose()
            raise PeerGone("transport channel is closed") from e
        try:
            return await reply_recv.receive()
        except anyio.EndOfStream as e:
            raise PeerGone() from e


async def serve_transport(transport: Any, inbound: ObjectReceiveStream) -> None:
    """
    Answer SendRequests until ``inbound`` is closed.

    ``transport.send`` is blocking and runs in a worker thread.
    """
    async with inbound:
        async for request in inbound:
            async with request.reply:
                try:
                    reply: Reply = await anyio.to_thread.run_sync(transport.send, request.bits)
                except TransportError as e:
                    reply = e
                try:
                    await request.reply.send(reply)
                except (anyio.ClosedResourceError, anyio.BrokenResourceError):
                    # requester already gave up
                    continue


async def run_with_transport(
    evaluator: Evaluator,
    ast: Ast,
    env: Environment,
    transport: Any,
) -> Ops:
    """Evaluate with a transport task serving sends in the same task group."""
    outbound, inbound = anyio.create_memory_object_stream()
    result: Optional[Ops] = None
    error: Optional[GalaxyError] = None
    async with anyio.create_task_group() as tg:
        tg.start_soon(serve_transport, transport, inbound)
        async with outbound:
            try:
                result = await eval_with_channel(evaluator, ast, env, outbound)
            except GalaxyError as e:
                error = e
    if error is not None:
        raise error
    assert result is not None
    return result
