"""Decoder: rebuild Python values from a location in the store.

A Decoder wraps whatever sits at one (container, property) slot and
dispatches on what the store reports there:

    absent          → None (only Optional/Any targets accept it)
    LIST            → SequenceCursor, element by element
    TEXT            → one string
    MAP / TABLE     → MapCursor, key then value
    scalar          → the primitive the target asks for

Two levels of API:

  * read_bool(), read_int(), ..., read_seq(), read_map() give raw access
    for callers that bind fields themselves.
  * decode(target) walks the target's type hints (dataclasses, pydantic
    models, NamedTuples, Enums, @variant unions, list/tuple/set/dict
    generics, Optional, Union, Literal) and drives the raw access for you.

Decoders are read-only and single-use: cursors are forward-only.
"""

from __future__ import annotations

import collections.abc
import enum
import logging
import types
import typing
from datetime import datetime
from typing import Any, Dict, List, Optional

from ._config import DEFAULT_CONFIG, CodecConfig
from ._constants import (
    INTEGER_KINDS,
    KIND_BOOLEAN,
    KIND_BYTES,
    KIND_F64,
    KIND_INT,
    KIND_NULL,
    KIND_STR,
    KIND_UINT,
    KIND_UNKNOWN,
    OBJ_LIST,
    OBJ_MAP,
    OBJ_TABLE,
    OBJ_TEXT,
    ROOT,
)
from ._cursors import MapCursor, SequenceCursor
from ._errors import CodecError, Custom, TypeMismatch, UnsupportedShape
from ._keys import parse_key
from ._scalars import Counter, OpaqueScalar, Timestamp, to_python
from ._shapes import (
    is_namedtuple_type,
    is_struct_type,
    lookup_type,
    namedtuple_fields,
    struct_fields,
    variant_info,
)
from ._store import (
    ContainerRef,
    ObjId,
    Prop,
    ReadableDocument,
    ScalarValue,
    Value,
    kind_name,
    store_errors,
    value_kind,
)

logger = logging.getLogger(__name__)

_UNION_TYPES = (typing.Union, types.UnionType)

_NONE_TYPE = type(None)

# Python type a scalar kind decodes to without widening.
_EXACT_TYPES = {
    KIND_BOOLEAN: bool,
    KIND_INT: int,
    KIND_UINT: int,
    KIND_F64: float,
    KIND_STR: str,
    KIND_BYTES: bytes,
}

_SEQ_ORIGINS = (
    list,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Iterable,
    collections.abc.Collection,
)
_SET_ORIGINS = (set, frozenset, collections.abc.Set, collections.abc.MutableSet)
_MAP_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


def _type_label(target: Any) -> str:
    return getattr(target, "__name__", None) or repr(target)


def _is_optional(hint: Any) -> bool:
    if hint is Any or hint is object or hint is None or hint is _NONE_TYPE:
        return True
    if typing.get_origin(hint) in _UNION_TYPES:
        return _NONE_TYPE in typing.get_args(hint)
    return False


def _is_variant_member(tp: Any) -> bool:
    if not isinstance(tp, type):
        return False
    return issubclass(tp, enum.Enum) or variant_info(tp) is not None


class Decoder:
    """Read access to one slot of a document."""

    def __init__(self, doc: ReadableDocument, value: Optional[Value],
                 config: Optional[CodecConfig] = None, depth: int = 0) -> None:
        self._doc = doc
        self._value = value
        self._config = config or DEFAULT_CONFIG
        self._depth = depth

    @classmethod
    def at(cls, doc: ReadableDocument, obj: ObjId, prop: Prop,
           config: Optional[CodecConfig] = None) -> "Decoder":
        """Decoder for whatever is stored at (obj, prop)."""
        with store_errors("get {!r} of {}".format(prop, obj)):
            value = doc.get(obj, prop)
        return cls(doc, value, config)

    @classmethod
    def from_value(cls, doc: ReadableDocument, value: Value,
                   config: Optional[CodecConfig] = None) -> "Decoder":
        """Decoder for a value the caller already looked up."""
        return cls(doc, value, config)

    @classmethod
    def at_root(cls, doc: ReadableDocument,
                config: Optional[CodecConfig] = None) -> "Decoder":
        """Decoder for the document-root map itself."""
        return cls(doc, ContainerRef(OBJ_MAP, ROOT), config)

    # ── Inspection ────────────────────────────────────────────

    @property
    def value(self) -> Optional[Value]:
        return self._value

    def kind(self) -> str:
        """Human-readable name of what is stored ("null" when absent)."""
        return kind_name(self._value)

    def is_absent(self) -> bool:
        return self._value is None

    def is_null(self) -> bool:
        v = self._value
        return v is None or (isinstance(v, ScalarValue) and v.kind == KIND_NULL)

    def _scalar(self, kinds: tuple, expected: str) -> ScalarValue:
        v = self._value
        if isinstance(v, ScalarValue) and v.kind in kinds:
            return v
        raise TypeMismatch(self.kind(), expected)

    def _container(self, kinds: tuple, expected: str) -> ContainerRef:
        v = self._value
        if not (isinstance(v, ContainerRef) and v.obj_type in kinds):
            raise TypeMismatch(self.kind(), expected)
        if self._depth + 1 > self._config.max_depth:
            raise UnsupportedShape("nesting exceeds max_depth ({})".format(
                self._config.max_depth))
        return v

    def _child(self, value: Value) -> "Decoder":
        return Decoder(self._doc, value, self._config, self._depth + 1)

    # ── Raw primitive access ──────────────────────────────────

    def read_bool(self) -> bool:
        return bool(self._scalar((KIND_BOOLEAN,), "boolean").value)

    def read_int(self) -> int:
        return int(self._scalar(INTEGER_KINDS, "integer").value)

    def read_float(self) -> float:
        # Integers widen to float; floats never narrow to int.
        return float(self._scalar((KIND_F64,) + INTEGER_KINDS, "float").value)

    def read_str(self) -> str:
        v = self._value
        if isinstance(v, ContainerRef) and v.obj_type == OBJ_TEXT:
            with store_errors("text of {}".format(v.obj_id)):
                return self._doc.text(v.obj_id)
        return str(self._scalar((KIND_STR,), "string").value)

    def read_bytes(self) -> bytes:
        return bytes(self._scalar((KIND_BYTES, KIND_UNKNOWN), "byte buffer").value)

    def read_null(self) -> None:
        if not self.is_null():
            raise TypeMismatch(self.kind(), "null")
        return None

    def read_seq(self) -> SequenceCursor:
        ref = self._container((OBJ_LIST,), "list")
        with store_errors("list_items of {}".format(ref.obj_id)):
            values = iter(self._doc.list_items(ref.obj_id))
        return SequenceCursor(values, self._child, ref.obj_id)

    def read_map(self) -> MapCursor:
        ref = self._container((OBJ_MAP, OBJ_TABLE), "map")
        with store_errors("map_items of {}".format(ref.obj_id)):
            entries = iter(self._doc.map_items(ref.obj_id))
        return MapCursor(entries, self._child, ref.obj_id)

    def read_any(self) -> Any:
        """Untyped read: dict/list/str/plain scalars."""
        v = self._value
        if v is None:
            return None
        if isinstance(v, ScalarValue):
            return to_python(v)
        if v.obj_type == OBJ_LIST:
            return [child.read_any() for child in self.read_seq()]
        if v.obj_type == OBJ_TEXT:
            return self.read_str()
        return {key: child.read_any() for key, child in self.read_map().items()}

    # ── Typed decode ──────────────────────────────────────────

    def decode(self, target: Any = Any) -> Any:
        """Reconstruct a value of type `target` from this slot."""
        if self._depth == 0:
            logger.debug("decode %s from %s", _type_label(target), self.kind())

        if target is Any or target is object:
            return self.read_any()

        if isinstance(target, type):
            hooks = lookup_type(target)
            if hooks is not None:
                wire = self.decode(hooks.wire)
                try:
                    return hooks.decode(wire)
                except (ValueError, TypeError) as e:
                    raise Custom(str(e)) from e

        origin = typing.get_origin(target)
        args = typing.get_args(target)

        if origin is typing.Annotated:
            return self.decode(args[0])
        if origin in _UNION_TYPES:
            return self._decode_union(target, args)
        if origin is typing.Literal:
            return self._decode_literal(args)
        if origin is not None:
            return self._decode_generic(target, origin, args)

        if target is None or target is _NONE_TYPE:
            return self.read_null()

        if not isinstance(target, type):
            raise UnsupportedShape("cannot decode into {!r}".format(target))

        # Enums and variants before the scalar checks: IntEnum is an int.
        if _is_variant_member(target):
            return self._decode_variants([target])

        return self._decode_class(target)

    def _decode_class(self, target: type) -> Any:
        # bool before int, and our int subclasses before int.
        if target is bool:
            return self.read_bool()
        if issubclass(target, Counter):
            return target(self.read_int())
        if issubclass(target, Timestamp):
            return target(self.read_int())
        # Datetimes come back UTC-aware even when a naive one was stored.
        if issubclass(target, datetime):
            return Timestamp(self.read_int()).to_datetime()
        if target is int:
            return self.read_int()
        if target is float:
            return self.read_float()
        if target is str:
            return self.read_str()
        if target is bytes:
            return self.read_bytes()
        if target is bytearray:
            return bytearray(self.read_bytes())
        # OpaqueScalar is a NamedTuple but lives in a single scalar slot.
        if issubclass(target, OpaqueScalar):
            v = self._scalar((KIND_UNKNOWN, KIND_BYTES), "unknown scalar")
            return target(v.type_code, bytes(v.value))

        if is_namedtuple_type(target):
            return self._decode_namedtuple(target)
        if is_struct_type(target):
            return self._decode_struct(target)

        if target is list:
            return [child.decode(Any) for child in self.read_seq()]
        if target is tuple:
            return tuple(child.decode(Any) for child in self.read_seq())
        if target in (set, frozenset):
            return target(child.decode(Any) for child in self.read_seq())
        if target is dict:
            return {key: child.decode(Any) for key, child in self.read_map().items()}

        raise UnsupportedShape("cannot decode into {}".format(target.__name__))

    def _decode_generic(self, target: Any, origin: Any, args: tuple) -> Any:
        if origin is tuple:
            if not args or (len(args) == 2 and args[1] is Ellipsis):
                elem = args[0] if args else Any
                return tuple(child.decode(elem) for child in self.read_seq())
            items = list(self.read_seq())
            if len(items) != len(args):
                raise TypeMismatch("list of length {}".format(len(items)),
                                   "tuple of length {}".format(len(args)))
            return tuple(child.decode(hint) for child, hint in zip(items, args))

        if origin in _SET_ORIGINS:
            elem = args[0] if args else Any
            values = [child.decode(elem) for child in self.read_seq()]
            return frozenset(values) if origin is frozenset else set(values)

        if origin in _SEQ_ORIGINS:
            elem = args[0] if args else Any
            return [child.decode(elem) for child in self.read_seq()]

        if origin in _MAP_ORIGINS:
            key_type, value_type = args if args else (Any, Any)
            return {
                parse_key(key, key_type): child.decode(value_type)
                for key, child in self.read_map().items()
            }

        raise UnsupportedShape("cannot decode into {!r}".format(target))

    def _decode_union(self, target: Any, args: tuple) -> Any:
        members = [a for a in args if a is not _NONE_TYPE]
        if _NONE_TYPE in args and self.is_null():
            return None
        if len(members) == 1:
            return self.decode(members[0])
        if all(_is_variant_member(m) for m in members):
            return self._decode_variants(members)

        # Plain unions: first member that decodes wins, but a member matching
        # the stored scalar kind exactly goes ahead of widening ones.
        exact = _EXACT_TYPES.get(value_kind(self._value))
        members.sort(key=lambda m: m is not exact)
        for member in members:
            try:
                return self.decode(member)
            except CodecError:
                continue
        raise TypeMismatch(self.kind(), repr(target))

    def _decode_literal(self, allowed: tuple) -> Any:
        value = self.read_any()
        for candidate in allowed:
            if value == candidate and type(value) is type(candidate):
                return candidate
        raise TypeMismatch(repr(value), "one of {!r}".format(allowed))

    # ── Structs ───────────────────────────────────────────────

    def _construct(self, cls: type, *args: Any, **kwargs: Any) -> Any:
        # pydantic's ValidationError is a ValueError.
        try:
            return cls(*args, **kwargs)
        except (ValueError, TypeError) as e:
            raise Custom("{}: {}".format(cls.__name__, e)) from e

    def _decode_struct(self, cls: type) -> Any:
        specs = {spec.name: spec for spec in struct_fields(cls)}
        values: Dict[str, Any] = {}
        for key, child in self.read_map().items():
            spec = specs.get(key)
            if spec is None:
                continue  # unknown keys are ignored
            values[key] = child.decode(spec.hint)

        for name, spec in specs.items():
            if name in values or not spec.required:
                continue
            if _is_optional(spec.hint):
                values[name] = None
            else:
                raise TypeMismatch("null", "field {!r} of {}".format(name, cls.__name__))
        return self._construct(cls, **values)

    def _decode_namedtuple(self, cls: type) -> Any:
        specs = namedtuple_fields(cls)
        items = list(self.read_seq())
        if len(items) > len(specs):
            raise TypeMismatch("list of length {}".format(len(items)),
                               "{} ({} fields)".format(cls.__name__, len(specs)))
        values: List[Any] = [child.decode(spec.hint) for child, spec in zip(items, specs)]
        for spec in specs[len(items):]:
            if not spec.required:
                break
            if _is_optional(spec.hint):
                values.append(None)
            else:
                raise TypeMismatch("null", "field {!r} of {}".format(spec.name, cls.__name__))
        return self._construct(cls, *values)

    # ── Enums and variants ────────────────────────────────────

    def _decode_variants(self, members: List[type]) -> Any:
        names = []
        for m in members:
            if issubclass(m, enum.Enum):
                names.extend(m.__members__)
            else:
                names.append(variant_info(m).name)
        expected = "variant of {}".format(", ".join(names))

        v = self._value
        if isinstance(v, ScalarValue) and v.kind == KIND_STR:
            tag = v.value
            for m in members:
                if issubclass(m, enum.Enum):
                    if tag in m.__members__:
                        return m[tag]
                elif variant_info(m).name == tag:
                    return self._construct(m)
            raise TypeMismatch("unknown variant {!r}".format(tag), expected)

        if not (isinstance(v, ContainerRef) and v.obj_type in (OBJ_MAP, OBJ_TABLE)):
            raise TypeMismatch(self.kind(), expected)

        # A tagged variant is a map with exactly one entry.
        cursor = self.read_map()
        tag = cursor.next_key()
        if tag is None:
            raise TypeMismatch("empty map", expected)
        payload = cursor.next_value()
        if cursor.next_key() is not None:
            raise TypeMismatch("map with more than one entry", expected)

        for m in members:
            if issubclass(m, enum.Enum):
                continue
            info = variant_info(m)
            if info.name == tag:
                return payload._decode_variant_payload(m, info.newtype)
        raise TypeMismatch("unknown variant {!r}".format(tag), expected)

    def _decode_variant_payload(self, cls: type, newtype: bool) -> Any:
        if newtype:
            if is_namedtuple_type(cls):
                spec = namedtuple_fields(cls)[0]
                return self._construct(cls, self.decode(spec.hint))
            spec = struct_fields(cls)[0]
            return self._construct(cls, **{spec.name: self.decode(spec.hint)})
        if is_namedtuple_type(cls):
            return self._decode_namedtuple(cls)
        return self._decode_struct(cls)
