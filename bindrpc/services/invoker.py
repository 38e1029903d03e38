"""
Invoker.

Calls the bound function with the coerced arguments. Coroutine functions are
awaited on the event loop; plain functions run in a worker thread (the same
asyncio.to_thread approach used for any blocking work) so a slow function
doesn't stall other requests.

The function is trusted: no timeout, no retry, and exceptions it raises
propagate to the application's exception handler.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Callable

from fastapi import Request

from bindrpc.services.signature import SignatureDescriptor


@dataclass
class CallResult:
    """What the function returned, split into its payload and error slots."""

    payload: Any = None
    error: BaseException | None = None


async def invoke(
    fn: Callable[..., Any],
    descriptor: SignatureDescriptor,
    arguments: list[Any],
    request: Request | None = None,
) -> CallResult:
    """
    Call fn and return its CallResult.

    When the function wants the request context, the request is passed as the
    first positional argument, ahead of the caller's arguments.
    """
    if descriptor.wants_context:
        arguments = [request, *arguments]

    if descriptor.is_coroutine:
        returned = await fn(*arguments)
    else:
        returned = await asyncio.to_thread(fn, *arguments)

    if descriptor.return_arity == 2:
        payload, error = returned
        return CallResult(payload=payload, error=error)
    return CallResult(error=returned)
