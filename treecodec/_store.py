"""The document-store boundary.

treecodec never owns document data.  It talks to a store through the small
structural interface below and only ever holds opaque ObjId tokens into it.
Any class with these methods works; no inheritance is required.

Example::

    from treecodec import MemoryDocument, ROOT, set_value, get_value

    doc = MemoryDocument()
    set_value(doc, ROOT, "numbers", [31, 32, 33])
    get_value(doc, ROOT, "numbers")   # [31, 32, 33]
"""

from __future__ import annotations

import contextlib
from typing import Any, Iterator, NamedTuple, Optional, Protocol, Tuple, Union

from ._constants import KIND_NAMES
from ._errors import CodecError, StoreError

ObjId = str
Prop = Union[str, int]


class ScalarValue(NamedTuple):
    """A leaf value as the store sees it: a kind tag plus a Python payload.

    `type_code` is only meaningful for KIND_UNKNOWN, where it carries the
    store's unrecognized tag number.
    """

    kind: str
    value: Any
    type_code: int = 0


class ContainerRef(NamedTuple):
    """A child slot that holds a container rather than a scalar."""

    obj_type: str
    obj_id: ObjId


Value = Union[ContainerRef, ScalarValue]


class ReadableDocument(Protocol):
    """Read side of the store interface.  All the decoder needs."""

    def get(self, obj: ObjId, prop: Prop) -> Optional[Value]:
        """Return what sits at (obj, prop), or None when the slot is empty."""
        ...

    def map_items(self, obj: ObjId) -> Iterator[Tuple[str, Value]]:
        """Iterate a MAP/TABLE container's entries in the store's order."""
        ...

    def list_items(self, obj: ObjId) -> Iterator[Value]:
        """Iterate a LIST container's elements in positional order."""
        ...

    def length(self, obj: ObjId) -> int: ...

    def object_type(self, obj: ObjId) -> str: ...

    def text(self, obj: ObjId) -> str:
        """Flattened content of a TEXT container."""
        ...


class WritableDocument(ReadableDocument, Protocol):
    """Write side of the store interface.  Documents and open transactions."""

    def put(self, obj: ObjId, prop: Prop, value: ScalarValue) -> None:
        """Set the slot to a scalar, replacing whatever was there."""
        ...

    def put_object(self, obj: ObjId, prop: Prop, obj_type: str) -> ObjId:
        """Create a fresh, empty container in the slot and return its id."""
        ...

    def insert(self, obj: ObjId, index: int, value: ScalarValue) -> None:
        """Insert a scalar into a LIST at index, shifting later elements."""
        ...


def value_kind(value: Optional[Value]) -> str:
    """Machine-readable kind of a store value ("null" for an empty slot)."""
    if value is None:
        return "null"
    if isinstance(value, ContainerRef):
        return value.obj_type
    return value.kind


def kind_name(value: Optional[Value]) -> str:
    """Human-readable kind of a store value, as TypeMismatch reports it."""
    kind = value_kind(value)
    return KIND_NAMES.get(kind, kind)


@contextlib.contextmanager
def store_errors(action: str) -> Iterator[None]:
    """Re-raise anything the store throws as StoreError, cause attached."""
    try:
        yield
    except CodecError:
        raise
    except Exception as e:
        raise StoreError("{} failed: {}".format(action, e)) from e
