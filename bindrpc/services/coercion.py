"""
Coercion engine.

Takes the untyped values decoded from the request body and turns each one
into the value its parameter expects. The rules are applied in this order:

1. null: nilable types (`X | None`, sequences, maps, Any) get their zero
   value, anything else is rejected
2. object into a struct: decoded field by field using the external names
3. array into a sequence or fixed tuple, object into a map: decoded element
   by element
4. number into any numeric type: converted, narrowed to the declared width
5. same kind (bool/bool, string/string, anything/Any): passed through
6. anything else: rejected with the observed and expected kind

Only null handling differs between the top level and nested values: a null
nested inside a struct, sequence or map becomes the zero value of its target
type, the same as a missing field.
"""

import logging
from typing import Any

from bindrpc.errors import ArgumentError, ArgumentLengthError, ArgumentTypeError, NullArgumentError
from bindrpc.services.signature import Kind, SignatureDescriptor, TypeSpec

logger = logging.getLogger(__name__)


class CoercionFailure(Exception):
    """
    A value below the top level couldn't be coerced.

    It doesn't know which argument it belongs to; coerce_arguments turns it
    into an ArgumentError once the index is known.
    """

    def __init__(self, got: Any, expected: Any, path: str = ""):
        super().__init__(f"{path or '<argument>'}: got={got} expected={expected}")
        self.got = got
        self.expected = expected
        self.path = path

    def to_error(self, index: int) -> ArgumentError:
        return ArgumentTypeError(index, self.got, self.expected, self.path)


class LengthFailure(CoercionFailure):
    def to_error(self, index: int) -> ArgumentError:
        return ArgumentLengthError(index, self.got, self.expected, self.path)


def coerce_arguments(arguments: list[Any], descriptor: SignatureDescriptor) -> list[Any]:
    """
    Coerce every decoded argument to its parameter type, left to right.

    Stops at the first argument that can't be coerced and raises the
    matching ArgumentError (with a 1-based index), so the function is
    never called with a partial argument list.
    """
    values = []
    for index, (value, spec) in enumerate(zip(arguments, descriptor.parameter_types), start=1):
        if value is None:
            if not spec.nullable:
                raise NullArgumentError(index)
            values.append(zero_value(spec))
            continue
        try:
            values.append(coerce_value(value, spec))
        except CoercionFailure as failure:
            logger.debug("Argument %d of %s rejected: %s", index, descriptor.name, failure)
            raise failure.to_error(index) from None
    return values


def coerce_value(value: Any, spec: TypeSpec, path: str = "") -> Any:
    """Coerce one untyped value to spec, raising CoercionFailure if it can't be."""
    if value is None:
        return zero_value(spec)

    kind = spec.kind

    if kind is Kind.INTERFACE:
        return value

    if kind is Kind.UNION:
        # Members are tried in declaration order; the first that accepts wins.
        for member in spec.items:
            try:
                return coerce_value(value, member, path)
            except CoercionFailure:
                continue
        raise CoercionFailure(kind_of(value), spec.name, path)

    if kind is Kind.STRUCT and isinstance(value, dict):
        return _coerce_struct(value, spec, path)

    if kind in (Kind.SLICE, Kind.ARRAY) and isinstance(value, list):
        return _coerce_sequence(value, spec, path)

    if kind is Kind.MAP and isinstance(value, dict):
        return {
            key: coerce_value(item, spec.element, _join(path, key))
            for key, item in value.items()
        }

    if kind in (Kind.INT, Kind.FLOAT) and _is_number(value):
        return _convert_number(value, spec)

    if kind is Kind.BOOL and isinstance(value, bool):
        return value
    if kind is Kind.STRING and isinstance(value, str):
        return value

    raise CoercionFailure(kind_of(value), spec.name, path)


def zero_value(spec: TypeSpec, _building: tuple = ()) -> Any:
    """
    The value a parameter or field takes when the caller sent null
    (or, for struct fields, nothing at all).

    _building holds the struct specs whose zero value is being built, so a
    struct that requires itself ends the chain with None.
    """
    if spec.optional or spec.kind is Kind.INTERFACE:
        return None
    if spec.kind is Kind.BOOL:
        return False
    if spec.kind is Kind.INT:
        return 0
    if spec.kind is Kind.FLOAT:
        return 0.0
    if spec.kind is Kind.STRING:
        return ""
    if spec.kind is Kind.SLICE:
        return spec.factory()
    if spec.kind is Kind.MAP:
        return {}
    if spec.kind is Kind.ARRAY:
        return tuple(zero_value(item, _building) for item in spec.items)
    if spec.kind is Kind.STRUCT:
        if any(spec is building for building in _building):
            return None
        inner = _building + (spec,)
        return spec.factory(**{item.name: _field_default(item, inner) for item in spec.fields})
    # Non-optional union: zero value of its first member.
    return zero_value(spec.items[0], _building)


def kind_of(value: Any) -> str:
    """Name of the kind of an untyped (decoded JSON) value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "float64"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "slice"
    if isinstance(value, dict):
        return "map"
    return type(value).__name__


def _coerce_struct(value: dict, spec: TypeSpec, path: str) -> Any:
    folded = None
    values = {}
    for item in spec.fields:
        key = item.key
        if key not in value:
            # Fall back to a case-insensitive match on the external name.
            if folded is None:
                folded = {source.casefold(): source for source in value}
            key = folded.get(key.casefold(), key)
        if key in value:
            values[item.name] = coerce_value(value[key], item.spec, _join(path, item.key))
        else:
            values[item.name] = _field_default(item)
    return spec.factory(**values)


def _coerce_sequence(value: list, spec: TypeSpec, path: str) -> Any:
    if spec.kind is Kind.ARRAY:
        if len(value) != len(spec.items):
            raise LengthFailure(len(value), len(spec.items), path)
        return tuple(
            coerce_value(item, item_spec, f"{path}[{position}]")
            for position, (item, item_spec) in enumerate(zip(value, spec.items))
        )
    return spec.factory(
        coerce_value(item, spec.element, f"{path}[{position}]")
        for position, item in enumerate(value)
    )


def _convert_number(value: float, spec: TypeSpec) -> Any:
    # No range validation: ints truncate toward zero, sized types wrap or round.
    if spec.kind is Kind.INT:
        number = int(value)
        return spec.width.wrap(number) if spec.width is not None else number
    return spec.width.narrow(value) if spec.width is not None else float(value)


def _field_default(item, _building: tuple = ()) -> Any:
    return item.default() if item.default is not None else zero_value(item.spec, _building)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key
