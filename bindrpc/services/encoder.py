"""
Response encoder.

Turns a CallResult into the HTTP response the caller sees:

- error returned: 400, body is the quoted error message
- (payload, None) returned: 200, body is the payload as JSON
- None returned by an error-only function: 200, empty body

Every body ends with a newline.
"""

import dataclasses
import json
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import PlainTextResponse, Response

from bindrpc.services.invoker import CallResult
from bindrpc.services.signature import JSON_NAME, SignatureDescriptor


def error_response(message: str) -> Response:
    """400 response whose body is message as a JSON string."""
    return PlainTextResponse(
        json.dumps(message, ensure_ascii=False) + "\n",
        status_code=400,
        headers={"X-Content-Type-Options": "nosniff"},
    )


def encode_result(descriptor: SignatureDescriptor, result: CallResult) -> Response:
    if result.error is not None:
        return error_response(str(result.error))

    if descriptor.return_arity == 2:
        content = json.dumps(
            to_jsonable(result.payload),
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
        return Response(content + "\n", media_type="application/json")

    return Response(status_code=200)


def to_jsonable(value: Any) -> Any:
    """
    Convert a payload into plain JSON types.

    Pydantic models are dumped by alias and dataclass fields by their "json"
    metadata name, so results use the same external names arguments do.
    Everything else goes through fastapi's jsonable_encoder.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            item.metadata.get(JSON_NAME, item.name): to_jsonable(getattr(value, item.name))
            for item in dataclasses.fields(value)
        }
    if isinstance(value, dict):
        return {_json_key(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(item) for item in value]
    return jsonable_encoder(value, by_alias=True)


def _json_key(key: Any) -> Any:
    # JSON object keys must be scalars; composite keys are spelled as JSON.
    key = jsonable_encoder(key)
    if key is None or isinstance(key, (str, int, float, bool)):
        return key
    return json.dumps(key, separators=(",", ":"), ensure_ascii=False)
