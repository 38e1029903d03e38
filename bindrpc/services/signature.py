"""
Signature inspection (the binder).

Binding a function happens once, before any request is served. We read the
function's annotations and turn every parameter type into a TypeSpec: a small
explicit schema the coercion engine walks on each request. Doing the
inspection up front means requests never touch `typing` or `inspect`, and a
function whose signature can't be exposed fails immediately with a BindError
instead of on the first call.

The shape we accept mirrors a "(result, error)" calling convention:

    def lookup(user_id: int) -> tuple[User, LookupError | None]: ...   # arity 2
    def delete(user_id: int) -> Exception | None: ...                   # arity 1

An optional first parameter annotated with fastapi's Request receives the
incoming request instead of a caller-supplied argument.
"""

import dataclasses
import inspect
import types
import typing
from collections import abc
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator

from fastapi import Request
from pydantic import BaseModel

from bindrpc.errors import BindError
from bindrpc.numeric import FloatWidth, IntWidth

# Dataclass field metadata key holding the external (JSON) name of a field:
#     name: str = field(metadata={"json": "user_name"})
JSON_NAME = "json"

_NONE_TYPE = type(None)
_UNION_ORIGINS = (typing.Union, types.UnionType)

# Sequence annotations and the container their values are built into.
_SEQUENCE_FACTORIES = {
    list: list,
    tuple: tuple,
    set: set,
    frozenset: frozenset,
    abc.Sequence: list,
    abc.MutableSequence: list,
    abc.Collection: list,
    abc.Iterable: list,
    abc.Set: frozenset,
    abc.MutableSet: set,
}
_MAPPING_ORIGINS = (dict, abc.Mapping, abc.MutableMapping)


class Kind(str, Enum):
    """
    The broad category of a parameter type.

    Sized numbers share INT/FLOAT and carry their width separately, see
    TypeSpec.name for the name reported to callers.
    """

    BOOL = "bool"
    INT = "int"
    FLOAT = "float64"
    STRING = "string"
    SLICE = "slice"
    ARRAY = "array"
    MAP = "map"
    STRUCT = "struct"
    INTERFACE = "interface"
    UNION = "union"


@dataclass(eq=False)
class FieldSpec:
    """One field of a struct-like type (pydantic model or dataclass)."""

    name: str
    key: str
    spec: "TypeSpec"
    default: Callable[[], Any] | None = None


@dataclass(eq=False)
class TypeSpec:
    """
    Explicit schema for one annotation.

    - element: value type of a slice or map
    - items: positional types of a fixed tuple (array) or the members of a union
    - fields: struct fields, filled after creation so self-referencing models work
    - factory: builds the final value (container type, model constructor)
    - width: numeric width for sized int/float annotations
    - optional: the annotation admits None (`X | None`)
    """

    kind: Kind
    annotation: Any = Any
    optional: bool = False
    element: "TypeSpec | None" = None
    items: tuple["TypeSpec", ...] = ()
    fields: list[FieldSpec] = field(default_factory=list)
    factory: Callable[..., Any] | None = None
    width: IntWidth | FloatWidth | None = None

    @property
    def nullable(self) -> bool:
        """Whether a top-level null is accepted for this type."""
        return self.optional or self.kind in (Kind.SLICE, Kind.ARRAY, Kind.MAP, Kind.INTERFACE)

    @property
    def name(self) -> str:
        """Kind name used in mismatch messages (e.g. "int", "uint8", "int|string")."""
        if self.width is not None:
            return self.width.kind
        if self.kind is Kind.UNION:
            return "|".join(item.name for item in self.items)
        return self.kind.value


@dataclass(frozen=True)
class SignatureDescriptor:
    """
    Precomputed shape of a bound function.

    Built once by describe() and only ever read afterwards, so it's safe to
    share between concurrently handled requests.
    """

    name: str
    parameter_names: tuple[str, ...]
    parameter_types: tuple[TypeSpec, ...]
    wants_context: bool
    return_arity: int
    payload_annotation: Any
    is_coroutine: bool

    @property
    def error_index(self) -> int:
        """Position of the error slot in the return value (always the last one)."""
        return self.return_arity - 1


def describe(fn: Any) -> SignatureDescriptor:
    """
    Inspect fn and build its SignatureDescriptor.

    Raises BindError when fn can't be exposed: it isn't callable, it doesn't
    return one or two values, its last return slot can't carry an error, or
    one of its parameters has a type we can't decode JSON into.
    """
    if not callable(fn):
        raise BindError("fn wasn't a function")

    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError) as exc:
        raise BindError("fn wasn't a function") from exc

    hints = _resolve_hints(fn)

    arity, payload, error = _return_shape(hints.get("return", inspect.Signature.empty))
    if arity not in (1, 2):
        raise BindError("fn doesn't return 1 or 2 values")
    if not _is_error_slot(error):
        raise BindError("fn doesn't return an error as its last value")

    params = list(signature.parameters.values())
    wants_context = bool(params) and hints.get(params[0].name) is Request
    if wants_context:
        params = params[1:]

    names = []
    specs = []
    for param in params:
        if param.kind is inspect.Parameter.KEYWORD_ONLY and param.default is not inspect.Parameter.empty:
            continue
        if param.kind not in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            raise BindError("fn has parameters that can't be passed positionally")
        try:
            specs.append(build_type_spec(hints.get(param.name, inspect.Parameter.empty)))
        except BindError as exc:
            raise BindError(f"{exc} of parameter {param.name!r}") from exc
        names.append(param.name)

    return SignatureDescriptor(
        name=getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None) or repr(fn),
        parameter_names=tuple(names),
        parameter_types=tuple(specs),
        wants_context=wants_context,
        return_arity=arity,
        payload_annotation=payload,
        is_coroutine=inspect.iscoroutinefunction(fn)
        or inspect.iscoroutinefunction(getattr(fn, "__call__", None)),
    )


def build_type_spec(annotation: Any, _seen: dict[type, TypeSpec] | None = None) -> TypeSpec:
    """
    Turn one annotation into a TypeSpec.

    _seen maps struct classes to their (possibly still being filled) spec so a
    model that refers to itself, e.g. `children: list["Node"]`, terminates.
    """
    seen = {} if _seen is None else _seen

    if annotation is inspect.Parameter.empty or annotation is Any or annotation is object:
        return TypeSpec(Kind.INTERFACE, Any)

    origin = typing.get_origin(annotation)
    args = typing.get_args(annotation)

    if origin is typing.Annotated:
        spec = build_type_spec(args[0], seen)
        for meta in args[1:]:
            if isinstance(meta, IntWidth) and spec.kind is Kind.INT:
                spec = dataclasses.replace(spec, annotation=annotation, width=meta)
            elif isinstance(meta, FloatWidth) and spec.kind is Kind.FLOAT:
                spec = dataclasses.replace(spec, annotation=annotation, width=meta)
        return spec

    if origin in _UNION_ORIGINS:
        members = [arg for arg in args if arg is not _NONE_TYPE]
        if len(members) == 1:
            spec = build_type_spec(members[0], seen)
        else:
            spec = TypeSpec(
                Kind.UNION,
                annotation,
                items=tuple(build_type_spec(member, seen) for member in members),
            )
        if len(members) < len(args):
            spec = dataclasses.replace(spec, optional=True)
        return spec

    if annotation is bool:
        return TypeSpec(Kind.BOOL, bool)
    if annotation is int:
        return TypeSpec(Kind.INT, int)
    if annotation is float:
        return TypeSpec(Kind.FLOAT, float)
    if annotation is str:
        return TypeSpec(Kind.STRING, str)

    container = origin or annotation
    if _hashable(container) and container in _SEQUENCE_FACTORIES:
        if container is tuple and args and Ellipsis not in args:
            return TypeSpec(
                Kind.ARRAY,
                annotation,
                items=tuple(build_type_spec(arg, seen) for arg in args),
                factory=tuple,
            )
        element = build_type_spec(args[0], seen) if args else TypeSpec(Kind.INTERFACE, Any)
        return TypeSpec(Kind.SLICE, annotation, element=element, factory=_SEQUENCE_FACTORIES[container])

    if _hashable(container) and container in _MAPPING_ORIGINS:
        element = TypeSpec(Kind.INTERFACE, Any)
        if args:
            key, value = args
            if key is not str and key is not Any:
                raise BindError(f"unsupported map key type {key!r}")
            element = build_type_spec(value, seen)
        return TypeSpec(Kind.MAP, annotation, element=element, factory=dict)

    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return _struct_spec(annotation, seen, _model_fields, _model_factory(annotation))
    if isinstance(annotation, type) and dataclasses.is_dataclass(annotation):
        return _struct_spec(annotation, seen, _dataclass_fields, annotation)

    raise BindError(f"unsupported type {annotation!r}")


def _struct_spec(cls: type, seen: dict, fields_of: Callable, factory: Callable) -> TypeSpec:
    if cls in seen:
        return seen[cls]
    spec = TypeSpec(Kind.STRUCT, cls, factory=factory)
    seen[cls] = spec
    spec.fields.extend(fields_of(cls, seen))
    return spec


def _model_fields(model: type[BaseModel], seen: dict) -> Iterator[FieldSpec]:
    hints = _resolve_hints(model)
    for name, info in model.model_fields.items():
        if isinstance(info.validation_alias, str):
            key = info.validation_alias
        else:
            key = info.alias or name
        default = None
        if not info.is_required():
            default = _model_default(info)
        yield FieldSpec(name, key, build_type_spec(hints.get(name, info.annotation), seen), default)


def _model_factory(model: type[BaseModel]) -> Callable[..., BaseModel]:
    """
    Build a model instance from values keyed by field name.

    model_construct matches aliases before names, so a field whose alias is
    another field's name would pick up the wrong value. The already coerced
    values are placed directly instead.
    """

    def build(**values: Any) -> BaseModel:
        instance = model.model_construct(_fields_set=set(values))
        instance.__dict__.update(values)
        return instance

    return build


def _model_default(info) -> Callable[[], Any]:
    return lambda: info.get_default(call_default_factory=True)


def _dataclass_fields(cls: type, seen: dict) -> Iterator[FieldSpec]:
    hints = _resolve_hints(cls)
    for item in dataclasses.fields(cls):
        if not item.init:
            continue
        default = None
        if item.default is not dataclasses.MISSING:
            default = _constant(item.default)
        elif item.default_factory is not dataclasses.MISSING:
            default = item.default_factory
        yield FieldSpec(
            item.name,
            item.metadata.get(JSON_NAME, item.name),
            build_type_spec(hints.get(item.name, inspect.Parameter.empty), seen),
            default,
        )


def _constant(value: Any) -> Callable[[], Any]:
    return lambda: value


def _return_shape(annotation: Any) -> tuple[int, Any, Any]:
    """Split a return annotation into (arity, payload annotation, error annotation)."""
    if annotation is inspect.Signature.empty or annotation is None or annotation is _NONE_TYPE:
        return 0, None, None
    if typing.get_origin(annotation) is tuple:
        args = typing.get_args(annotation)
        if Ellipsis not in args:
            if len(args) == 2:
                return 2, args[0], args[1]
            if len(args) != 1:
                return len(args), None, None
    return 1, None, annotation


def _is_error_slot(annotation: Any) -> bool:
    """True for `E | None` where every E is an exception class."""
    if typing.get_origin(annotation) not in _UNION_ORIGINS:
        return False
    members = typing.get_args(annotation)
    errors = [member for member in members if member is not _NONE_TYPE]
    if not errors or len(errors) == len(members):
        return False
    return all(isinstance(member, type) and issubclass(member, BaseException) for member in errors)


def _resolve_hints(obj: Any) -> dict[str, Any]:
    try:
        return typing.get_type_hints(obj, include_extras=True)
    except TypeError:
        # Partials and callable instances keep their annotations on the wrapped function.
        inner = getattr(obj, "func", None) or getattr(type(obj), "__call__", None)
        if inner is None or inner is obj or not inspect.isfunction(inner):
            return {}
        return _resolve_hints(inner)
    except NameError as exc:
        raise BindError(f"can't resolve annotations of {obj!r}: {exc}") from exc


def _hashable(value: Any) -> bool:
    try:
        hash(value)
    except TypeError:
        return False
    return True
