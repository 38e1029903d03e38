"""
RPC router.

Groups bound functions under one URL prefix:

    rpc = RpcRouter()              # prefix from config, "/rpc" by default

    @rpc.function()
    def echo(s: str) -> tuple[str, Exception | None]:
        return s * 2, None

    app.include_router(rpc)        # POST /rpc/echo

Routes accept every method so a GET gets the "only POST requests are
permitted" message from the endpoint rather than a bare 405.
"""

from typing import Any, Callable

from fastapi import APIRouter

from bindrpc.binding import Endpoint, bind
from bindrpc.config import RPC_PREFIX
from bindrpc.services.signature import SignatureDescriptor

RPC_METHODS = ["GET", "HEAD", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"]


class RpcRouter(APIRouter):
    """An APIRouter that exposes plain functions as RPC endpoints."""

    def __init__(self, prefix: str = RPC_PREFIX, **kwargs: Any):
        kwargs.setdefault("tags", ["rpc"])
        super().__init__(prefix=prefix, **kwargs)
        self.functions: dict[str, SignatureDescriptor] = {}

    def add_function(self, fn: Callable[..., Any], name: str | None = None) -> Endpoint:
        """Bind fn and mount it at /<name> (fn.__name__ by default)."""
        name = name or fn.__name__
        if name in self.functions:
            raise ValueError(f"function {name!r} is already registered")

        endpoint = bind(fn)
        self.add_api_route(
            f"/{name}",
            endpoint,
            methods=RPC_METHODS,
            name=name,
            include_in_schema=False,
        )
        self.functions[name] = endpoint.descriptor
        return endpoint

    def function(self, name: str | None = None) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of add_function. The function itself is returned unchanged."""

        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            self.add_function(fn, name)
            return fn

        return decorator
