"""Shape model: how Python values decompose into map/list/scalar trees.

Every value the encoder sees is first described by a Shape, one of a
closed set of tags:

    none     None
    scalar   bool/int/float/str/bytes/datetime/Counter/Timestamp/OpaqueScalar
    seq      list/tuple/NamedTuple/set/frozenset/other iterables
    map      any Mapping
    struct   dataclass or pydantic model instance (field name → value)
    variant  Enum member, or an instance of a class marked with @variant

Types outside that set plug in through the registry::

    register_type(Decimal, encode=str, decode=Decimal, wire=str)

and tagged unions are spelled with @variant::

    @variant
    @dataclass
    class Move:
        dx: int
        dy: int

    # encodes as {"Move": {"dx": 1, "dy": 2}}
"""

from __future__ import annotations

import dataclasses
import enum
import typing
from collections.abc import Iterable, Mapping
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

from pydantic import BaseModel

from ._errors import Custom, UnsupportedShape
from ._scalars import is_scalar

SHAPE_NONE: str = "none"
SHAPE_SCALAR: str = "scalar"
SHAPE_SEQ: str = "seq"
SHAPE_MAP: str = "map"
SHAPE_STRUCT: str = "struct"
SHAPE_VARIANT: str = "variant"


class Shape(NamedTuple):
    """One level of a value's decomposition.

    `payload` is the scalar itself, a list of elements, or a list of
    (key, value) pairs.  For variants, `name` is the tag and `payload` is the
    inner Shape (None for unit variants).
    """

    tag: str
    payload: Any = None
    name: Optional[str] = None


# ── Registry ──────────────────────────────────────────────────

class TypeHooks(NamedTuple):
    encode: Callable[[Any], Any]
    decode: Callable[[Any], Any]
    wire: Any


_REGISTRY: Dict[type, TypeHooks] = {}


def register_type(cls: type, *, encode: Callable[[Any], Any],
                  decode: Callable[[Any], Any], wire: Any = Any) -> None:
    """Teach the codec a type it has no built-in rule for.

    `encode` turns an instance into any supported value; `decode` turns the
    decoded `wire` value back into an instance.  Subclasses inherit the
    hooks unless registered themselves.
    """
    _REGISTRY[cls] = TypeHooks(encode, decode, wire)


def unregister_type(cls: type) -> None:
    _REGISTRY.pop(cls, None)


def lookup_type(cls: Any) -> Optional[TypeHooks]:
    for klass in getattr(cls, "__mro__", ()):
        hooks = _REGISTRY.get(klass)
        if hooks is not None:
            return hooks
    return None


# ── Variants ──────────────────────────────────────────────────

class VariantInfo(NamedTuple):
    name: str
    newtype: bool


_VARIANT_ATTR = "__treecodec_variant__"


def variant(cls: Optional[type] = None, *, name: Optional[str] = None,
            newtype: bool = False) -> Any:
    """Mark a dataclass, NamedTuple or pydantic model as a tagged variant.

    Usable bare (``@variant``) or with options (``@variant(name="Tag")``).
    With ``newtype=True`` the class must have exactly one field, whose value
    becomes the whole payload.
    """
    def wrap(klass: type) -> type:
        setattr(klass, _VARIANT_ATTR, VariantInfo(name or klass.__name__, newtype))
        return klass

    if cls is not None:
        return wrap(cls)
    return wrap


def variant_info(cls: Any) -> Optional[VariantInfo]:
    # Looked up on the class itself so subclasses don't inherit the tag.
    return getattr(cls, "__dict__", {}).get(_VARIANT_ATTR)


# ── Struct introspection ──────────────────────────────────────

class FieldSpec(NamedTuple):
    name: str
    hint: Any
    required: bool


def is_namedtuple_type(cls: Any) -> bool:
    return isinstance(cls, type) and issubclass(cls, tuple) and hasattr(cls, "_fields")


def is_struct_type(cls: Any) -> bool:
    if not isinstance(cls, type):
        return False
    return dataclasses.is_dataclass(cls) or issubclass(cls, BaseModel)


def struct_fields(cls: type) -> List[FieldSpec]:
    """Constructor fields of a dataclass or pydantic model, in order."""
    if isinstance(cls, type) and issubclass(cls, BaseModel):
        return [
            FieldSpec(name, info.annotation, info.is_required())
            for name, info in cls.model_fields.items()
        ]

    hints = typing.get_type_hints(cls)
    specs = []
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        required = (f.default is dataclasses.MISSING
                    and f.default_factory is dataclasses.MISSING)
        specs.append(FieldSpec(f.name, hints.get(f.name, Any), required))
    return specs


def namedtuple_fields(cls: type) -> List[FieldSpec]:
    hints = typing.get_type_hints(cls)
    defaults = getattr(cls, "_field_defaults", {})
    return [FieldSpec(name, hints.get(name, Any), name not in defaults)
            for name in cls._fields]


def _struct_items(value: Any) -> List[Tuple[str, Any]]:
    if isinstance(value, BaseModel):
        return [(name, getattr(value, name)) for name in type(value).model_fields]
    return [(f.name, getattr(value, f.name)) for f in dataclasses.fields(value)]


def _body_shape(value: Any) -> Optional[Shape]:
    """Struct or tuple-struct shape of value, ignoring any variant marker."""
    if isinstance(value, BaseModel) or (
            dataclasses.is_dataclass(value) and not isinstance(value, type)):
        return Shape(SHAPE_STRUCT, _struct_items(value))
    if is_namedtuple_type(type(value)):
        return Shape(SHAPE_SEQ, list(value))
    return None


def _variant_shape(value: Any, info: VariantInfo) -> Shape:
    body = _body_shape(value)
    if body is None:
        raise UnsupportedShape(
            "@variant needs a dataclass, NamedTuple or pydantic model, got {}".format(
                type(value).__name__))

    if info.newtype:
        if len(body.payload) != 1:
            raise UnsupportedShape(
                "newtype variant {} must have exactly one field".format(info.name))
        inner = body.payload[0]
        if body.tag == SHAPE_STRUCT:
            inner = inner[1]
        return Shape(SHAPE_VARIANT, shape_of(inner), info.name)

    if not body.payload:
        return Shape(SHAPE_VARIANT, None, info.name)
    return Shape(SHAPE_VARIANT, body, info.name)


def _sorted_if_possible(items: Iterable[Any]) -> List[Any]:
    values = list(items)
    try:
        return sorted(values)
    except TypeError:
        return values


def shape_of(value: Any) -> Shape:
    """Describe one level of value.  Children are left undescribed."""
    hooks = lookup_type(type(value))
    if hooks is not None:
        try:
            converted = hooks.encode(value)
        except (ValueError, TypeError) as e:
            raise Custom(str(e)) from e
        return shape_of(converted)

    if value is None:
        return Shape(SHAPE_NONE)

    # Enum before scalars: IntEnum/StrEnum members are ints/strs too.
    if isinstance(value, enum.Enum):
        return Shape(SHAPE_VARIANT, None, value.name)

    info = variant_info(type(value))
    if info is not None:
        return _variant_shape(value, info)

    if is_scalar(value):
        return Shape(SHAPE_SCALAR, value)

    body = _body_shape(value)
    if body is not None:
        return body

    if isinstance(value, Mapping):
        return Shape(SHAPE_MAP, list(value.items()))

    if isinstance(value, (set, frozenset)):
        return Shape(SHAPE_SEQ, _sorted_if_possible(value))

    if isinstance(value, Iterable):
        return Shape(SHAPE_SEQ, list(value))

    raise UnsupportedShape("unsupported type: {}".format(type(value).__name__))
