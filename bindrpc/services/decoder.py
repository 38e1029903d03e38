"""
Argument decoder.

The request body is a JSON array with one element per parameter. Every JSON
number is decoded as a float, whatever it looks like in the body; the
coercion engine converts it to the parameter's numeric type afterwards.
"""

import json
import logging
import math
from typing import Any

from bindrpc.errors import ArgumentCountError, MalformedArgumentsError
from bindrpc.services.signature import SignatureDescriptor

logger = logging.getLogger(__name__)


def decode_arguments(body: bytes | str, descriptor: SignatureDescriptor) -> list[Any]:
    """
    Decode the raw body into the list of untyped arguments.

    Raises MalformedArgumentsError if the body isn't a JSON array and
    ArgumentCountError if its length doesn't match the parameter count.
    """
    try:
        arguments = json.loads(
            body,
            parse_int=_parse_number,
            parse_float=_parse_number,
            parse_constant=_reject_constant,
        )
    except (ValueError, RecursionError) as exc:
        # RecursionError: nesting deeper than the parser can follow.
        logger.debug("Malformed arguments for %s: %s", descriptor.name, exc)
        raise MalformedArgumentsError() from exc

    if not isinstance(arguments, list):
        raise MalformedArgumentsError()

    expected = len(descriptor.parameter_types)
    if len(arguments) != expected:
        raise ArgumentCountError(len(arguments), expected)

    return arguments


def _parse_number(text: str) -> float:
    number = float(text)
    if not math.isfinite(number):
        raise ValueError(f"number {text} out of range")
    return number


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid constant {name}")
