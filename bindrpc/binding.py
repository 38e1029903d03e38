"""
Binding a function to an HTTP endpoint.

    from fastapi import FastAPI
    from bindrpc import bind

    def add(a: int, b: float) -> tuple[float, Exception | None]:
        return a + b, None

    app = FastAPI()
    app.add_api_route("/rpc/add", bind(add), methods=["POST"])

A browser then calls it with `fetch("/rpc/add", {method: "POST", body: "[1, 2.5]"})`.

Each request walks the same steps:

    Received -> Decoded -> Coerced -> Invoked -> Responded

A bad method, body or argument ends the request with a 400 before the
function is called. Once called, the function's own error return also
becomes a 400; otherwise the payload (or an empty body) comes back with 200.
"""

import logging
from typing import Any, Awaitable, Callable

from fastapi import Request, Response

from bindrpc.errors import BindError, MethodNotAllowedError, RequestError
from bindrpc.services.coercion import coerce_arguments
from bindrpc.services.decoder import decode_arguments
from bindrpc.services.encoder import encode_result, error_response
from bindrpc.services.invoker import invoke
from bindrpc.services.signature import describe

logger = logging.getLogger(__name__)

Endpoint = Callable[[Request], Awaitable[Response]]


def bind(fn: Callable[..., Any]) -> Endpoint:
    """
    Build an endpoint that calls fn with the arguments of a JSON array body.

    fn must return either `(payload, error)` or just `error`, annotated as
    `tuple[T, E | None]` or `E | None`. Raises BindError when fn's signature
    can't be exposed. The returned endpoint has the SignatureDescriptor
    attached as `endpoint.descriptor`.
    """
    descriptor = describe(fn)
    logger.info(
        "Bound %s (params=%d, context=%s, returns=%d)",
        descriptor.name,
        len(descriptor.parameter_types),
        descriptor.wants_context,
        descriptor.return_arity,
    )

    async def endpoint(request: Request) -> Response:
        if request.method != "POST":
            return error_response(MethodNotAllowedError().message)

        try:
            arguments = decode_arguments(await request.body(), descriptor)
            values = coerce_arguments(arguments, descriptor)
        except RequestError as exc:
            logger.info("Rejected call to %s: %s", descriptor.name, exc.message)
            return error_response(exc.message)

        result = await invoke(fn, descriptor, values, request)
        if result.error is not None:
            logger.info("%s returned an error: %s", descriptor.name, result.error)
        return encode_result(descriptor, result)

    endpoint.__name__ = getattr(fn, "__name__", endpoint.__name__)
    endpoint.__qualname__ = descriptor.name
    endpoint.descriptor = descriptor
    return endpoint


def must_bind(fn: Callable[..., Any]) -> Endpoint:
    """
    Same as bind, for call sites where an unbindable function is a startup
    defect: the BindError is logged and re-raised as a RuntimeError.
    """
    try:
        return bind(fn)
    except BindError as exc:
        logger.critical("Bind failed for %r: %s", fn, exc)
        raise RuntimeError(f"bind failed with: {exc}") from exc
