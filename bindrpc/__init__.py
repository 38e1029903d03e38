"""
bindrpc: call type-annotated Python functions from browser scripts.

A bound function receives a JSON array of arguments over POST, each argument
checked and converted against the function's annotations, and answers with
its JSON-encoded result or a quoted error message.
"""

from bindrpc.binding import bind, must_bind
from bindrpc.errors import (
    ArgumentCountError,
    ArgumentError,
    ArgumentLengthError,
    ArgumentTypeError,
    BindError,
    BindrpcError,
    MalformedArgumentsError,
    MethodNotAllowedError,
    NullArgumentError,
    RequestError,
)
from bindrpc.numeric import (
    Float32,
    Float64,
    Int8,
    Int16,
    Int32,
    Int64,
    Uint8,
    Uint16,
    Uint32,
    Uint64,
)
from bindrpc.routers.rpc import RpcRouter
from bindrpc.services.signature import JSON_NAME, SignatureDescriptor, describe

__all__ = [
    "ArgumentCountError",
    "ArgumentError",
    "ArgumentLengthError",
    "ArgumentTypeError",
    "BindError",
    "BindrpcError",
    "Float32",
    "Float64",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "JSON_NAME",
    "MalformedArgumentsError",
    "MethodNotAllowedError",
    "NullArgumentError",
    "RequestError",
    "RpcRouter",
    "SignatureDescriptor",
    "Uint8",
    "Uint16",
    "Uint32",
    "Uint64",
    "bind",
    "describe",
    "must_bind",
]
