"""
Tests for the coercion engine.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Optional

import pytest
from pydantic import BaseModel, Field

from bindrpc.errors import ArgumentLengthError, ArgumentTypeError, NullArgumentError
from bindrpc.numeric import Float32, Int8, Uint8, Uint16
from bindrpc.services.coercion import coerce_arguments, coerce_value, kind_of, zero_value
from bindrpc.services.signature import SignatureDescriptor, build_type_spec


class Inner(BaseModel):
    text: str = Field(alias="b")


class Outer(BaseModel):
    number: int = Field(alias="c")
    inner: Inner = Field(alias="a")
    tags: list[str] = []


class Swapped(BaseModel):
    a: int = Field(alias="c")
    c: int = Field(alias="a")


class Chain(BaseModel):
    label: str
    next: "Chain"


@dataclass
class Pixel:
    red: Uint8 = field(metadata={"json": "r"})
    label: str = "none"
    weights: list[float] = field(default_factory=list)


def descriptor_for(*annotations):
    """Descriptor of a function taking the given parameter annotations."""
    return SignatureDescriptor(
        name="fn",
        parameter_names=tuple(f"p{i}" for i in range(len(annotations))),
        parameter_types=tuple(build_type_spec(annotation) for annotation in annotations),
        wants_context=False,
        return_arity=1,
        payload_annotation=None,
        is_coroutine=False,
    )


def test_null_into_nilable_types_gives_zero_values():
    descriptor = descriptor_for(Optional[int], Optional[str], dict[str, str], list[int], Any)

    assert coerce_arguments([None] * 5, descriptor) == [None, None, {}, [], None]


@pytest.mark.parametrize("annotation", [int, str, float, bool, Outer, int | str])
def test_null_into_non_nilable_type_is_rejected(annotation):
    descriptor = descriptor_for(int, annotation)

    with pytest.raises(NullArgumentError) as excinfo:
        coerce_arguments([1.0, None], descriptor)

    assert excinfo.value.message == "2. can't be null"
    assert excinfo.value.index == 2


def test_first_null_reported_first():
    descriptor = descriptor_for(int, str, float)

    with pytest.raises(NullArgumentError, match="^1. can't be null$"):
        coerce_arguments([None, None, None], descriptor)


def test_map_into_int_reports_kinds():
    descriptor = descriptor_for(int)

    with pytest.raises(ArgumentTypeError) as excinfo:
        coerce_arguments([{"a": 1233.0}], descriptor)

    assert excinfo.value.message == "mismatching argument type of 1. argument. got=map expected=int"


def test_string_is_never_converted_to_number():
    descriptor = descriptor_for(str, float)

    with pytest.raises(ArgumentTypeError) as excinfo:
        coerce_arguments(["ok", "1.5"], descriptor)

    assert excinfo.value.message == "mismatching argument type of 2. argument. got=string expected=float64"


def test_bool_is_not_a_number():
    with pytest.raises(ArgumentTypeError, match="got=bool expected=int"):
        coerce_arguments([True], descriptor_for(int))


def test_numbers_convert_to_every_numeric_type():
    descriptor = descriptor_for(int, float, Int8, Uint8, Uint16, Float32)

    values = coerce_arguments([-7.9, 2.0, 200.0, 300.0, -1.0, 0.1], descriptor)

    assert values[0] == -7 and isinstance(values[0], int)
    assert values[1] == 2.0 and isinstance(values[1], float)
    assert values[2] == -56
    assert values[3] == 44
    assert values[4] == 65535
    assert values[5] == pytest.approx(0.1, rel=1e-7)
    assert values[5] != 0.1


def test_float32_overflow_becomes_infinity():
    assert coerce_value(1e300, build_type_spec(Float32)) == math.inf
    assert coerce_value(-1e300, build_type_spec(Float32)) == -math.inf


def test_exact_kinds_pass_through():
    descriptor = descriptor_for(bool, str, Any)
    payload = {"x": [1.0]}

    values = coerce_arguments([False, "text", payload], descriptor)

    assert values == [False, "text", payload]
    assert values[2] is payload


def test_struct_decodes_by_external_names():
    value = coerce_value({"c": 1233.0, "a": {"b": "hello"}, "unknown": 1.0}, build_type_spec(Outer))

    assert isinstance(value, Outer)
    assert value.number == 1233
    assert value.inner.text == "hello"
    assert value.tags == []


def test_struct_key_match_falls_back_to_case_insensitive():
    value = coerce_value({"C": 5.0, "A": {"B": "x"}}, build_type_spec(Outer))

    assert value.number == 5
    assert value.inner.text == "x"


def test_struct_missing_fields_take_defaults_or_zero_values():
    value = coerce_value({}, build_type_spec(Outer))

    assert value.number == 0
    assert value.inner.text == ""
    assert value.tags == []


def test_struct_fields_aliased_to_each_other():
    value = coerce_value({"c": 1.0, "a": 2.0}, build_type_spec(Swapped))

    assert (value.a, value.c) == (1, 2)
    assert value.model_dump(by_alias=True) == {"c": 1, "a": 2}


def test_dataclass_struct():
    value = coerce_value({"r": 511.0, "weights": [1.0, 2.5]}, build_type_spec(Pixel))

    assert value == Pixel(red=255, label="none", weights=[1.0, 2.5])


def test_nested_nulls_become_zero_values():
    value = coerce_value({"c": None, "a": None, "tags": [None, "x"]}, build_type_spec(Outer))

    assert value.number == 0
    assert value.inner.text == ""
    assert value.tags == ["", "x"]


def test_nested_failure_is_reported_at_outer_index_with_path():
    descriptor = descriptor_for(str, Outer)

    with pytest.raises(ArgumentTypeError) as excinfo:
        coerce_arguments(["x", {"c": 1.0, "a": {"b": 12.0}}], descriptor)

    error = excinfo.value
    assert error.index == 2
    assert error.path == "a.b"
    assert error.message == "mismatching argument type of 2. argument at a.b. got=float64 expected=string"


def test_sequence_elements_are_coerced():
    assert coerce_value([10.0, 11.0, 12.0], build_type_spec(list[int])) == [10, 11, 12]
    assert coerce_value([1.0, 1.0], build_type_spec(set[int])) == {1}
    assert coerce_value(["a"], build_type_spec(tuple[str, ...])) == ("a",)


def test_sequence_element_failure_aborts_argument():
    descriptor = descriptor_for(list[int])

    with pytest.raises(ArgumentTypeError) as excinfo:
        coerce_arguments([[1.0, "two", 3.0]], descriptor)

    assert excinfo.value.message == "mismatching argument type of 1. argument at [1]. got=string expected=int"


def test_fixed_tuple_checks_length():
    spec = build_type_spec(tuple[int, str])

    assert coerce_value([1.0, "a"], spec) == (1, "a")

    with pytest.raises(ArgumentLengthError, match="got=3 expected=2"):
        coerce_arguments([[1.0, "a", "b"]], descriptor_for(tuple[int, str]))


def test_map_values_are_coerced():
    assert coerce_value({"a": 1.0, "b": 2.9}, build_type_spec(dict[str, int])) == {"a": 1, "b": 2}


def test_union_members_tried_in_order():
    spec = build_type_spec(int | str)

    assert coerce_value(3.0, spec) == 3
    assert coerce_value("three", spec) == "three"

    with pytest.raises(ArgumentTypeError, match="got=bool expected=int\\|string"):
        coerce_arguments([True], descriptor_for(int | str))


def test_optional_value_is_coerced_against_inner_type():
    assert coerce_value(4.0, build_type_spec(Optional[int])) == 4


def test_zero_values():
    assert zero_value(build_type_spec(tuple[int, str])) == (0, "")
    assert zero_value(build_type_spec(Pixel)) == Pixel(red=0)
    assert zero_value(build_type_spec(int | str)) == 0


def test_kind_of():
    assert [kind_of(v) for v in (None, True, 1.0, 1, "s", [], {})] == [
        "null",
        "bool",
        "float64",
        "float64",
        "string",
        "slice",
        "map",
    ]


def test_zero_value_of_self_requiring_struct_stops_at_none():
    value = coerce_value({}, build_type_spec(Chain))

    assert value.label == ""
    assert value.next.label == ""
    assert value.next.next is None
