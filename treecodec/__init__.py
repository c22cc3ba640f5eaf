"""treecodec — map typed Python values onto a tree-shaped document store.

Values (dataclasses, pydantic models, NamedTuples, lists, dicts, enums,
scalars) are written as nested MAP/LIST containers and scalar leaves.
Every container keeps a stable id, so a sub-tree can be updated later
without re-encoding the whole value.

Quick start:
    >>> from dataclasses import dataclass
    >>> from treecodec import MemoryDocument, ROOT, get_value, set_value
    >>> @dataclass
    ... class Point:
    ...     x: int
    ...     y: int
    >>> doc = MemoryDocument()
    >>> point_id = set_value(doc, ROOT, "origin", Point(1, 2))
    >>> get_value(doc, ROOT, "origin", Point)
    Point(x=1, y=2)

Point update: only "x" is rewritten; "y" keeps its slot untouched.
    >>> _ = set_value(doc, point_id, "x", 5)
    >>> get_value(doc, ROOT, "origin", Point)
    Point(x=5, y=2)
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Optional

from ._config import DEFAULT_CONFIG, CodecConfig
from ._constants import (
    OBJ_LIST,
    OBJ_MAP,
    OBJ_TABLE,
    OBJ_TEXT,
    ROOT,
)
from ._cursors import MapCursor, SequenceCursor
from ._decoder import Decoder
from ._encoder import Encoder, PlanNode, plan
from ._errors import (
    ERR_CUSTOM,
    ERR_PROTOCOL,
    ERR_STORE,
    ERR_TYPE_MISMATCH,
    ERR_UNSUPPORTED_SHAPE,
    CodecError,
    Custom,
    ProtocolViolation,
    StoreError,
    TypeMismatch,
    UnsupportedShape,
)
from ._keys import normalize_key
from ._memory import Change, DocumentError, MemoryDocument, Transaction
from ._scalars import Counter, OpaqueScalar, Timestamp
from ._shapes import register_type, unregister_type, variant
from ._store import (
    ContainerRef,
    ObjId,
    Prop,
    ReadableDocument,
    ScalarValue,
    Value,
    WritableDocument,
    store_errors,
)

__version__ = "0.3.0"

__all__ = [
    # Public API functions
    "encode",
    "decode",
    "set_value",
    "get_value",
    "normalize_key",
    "plan",
    # Codec classes
    "Encoder",
    "Decoder",
    "MapCursor",
    "SequenceCursor",
    "PlanNode",
    "CodecConfig",
    "DEFAULT_CONFIG",
    # Value model
    "variant",
    "register_type",
    "unregister_type",
    "Counter",
    "Timestamp",
    "OpaqueScalar",
    # Store interface
    "ROOT",
    "OBJ_MAP",
    "OBJ_LIST",
    "OBJ_TEXT",
    "OBJ_TABLE",
    "ObjId",
    "Prop",
    "ScalarValue",
    "ContainerRef",
    "Value",
    "ReadableDocument",
    "WritableDocument",
    # Reference store
    "MemoryDocument",
    "Transaction",
    "Change",
    "DocumentError",
    # Exceptions
    "CodecError",
    "UnsupportedShape",
    "TypeMismatch",
    "ProtocolViolation",
    "StoreError",
    "Custom",
    # Error codes
    "ERR_UNSUPPORTED_SHAPE",
    "ERR_TYPE_MISMATCH",
    "ERR_PROTOCOL",
    "ERR_STORE",
    "ERR_CUSTOM",
]

logger = logging.getLogger(__name__)


# ── Core API ──────────────────────────────────────────────────

def encode(tx: WritableDocument, obj: ObjId, prop: Prop, value: Any, *,
           config: Optional[CodecConfig] = None) -> ObjId:
    """Write value at (obj, prop) of a document or open transaction.

    Returns the id of the container created at the location, or the id of
    `obj` when value is a scalar.
    """
    return Encoder(tx, obj, prop, config).encode(value)


def decode(doc: ReadableDocument, obj: ObjId, prop: Prop, target: Any = Any, *,
           config: Optional[CodecConfig] = None) -> Any:
    """Read the value at (obj, prop) as `target` (untyped when omitted)."""
    return Decoder.at(doc, obj, prop, config).decode(target)


# ── One-shot point updates ────────────────────────────────────
# These wrap a single encode/decode in an implicit commit boundary.

def set_value(store: Any, obj: ObjId, prop: Prop, value: Any, *,
              config: Optional[CodecConfig] = None) -> ObjId:
    """Encode value at (obj, prop) as one committed change.

    If `store` can open transactions, the write happens in its own
    transaction: committed on success, rolled back if encoding fails.
    An already-open transaction is written into directly.
    """
    opener = getattr(store, "transaction", None)
    if opener is None:
        return encode(store, obj, prop, value, config=config)

    # Driven by hand so that opening, committing and rolling back the
    # transaction all report store failures as StoreError.
    with store_errors("open transaction on {}".format(obj)):
        manager = opener()
        tx = manager.__enter__()
    try:
        obj_id = encode(tx, obj, prop, value, config=config)
    except BaseException:
        with store_errors("rollback on {}".format(obj)):
            manager.__exit__(*sys.exc_info())
        raise
    with store_errors("commit on {}".format(obj)):
        manager.__exit__(None, None, None)
    logger.debug("set_value %s/%r committed", obj, prop)
    return obj_id


def get_value(store: ReadableDocument, obj: ObjId, prop: Prop, target: Any = Any, *,
              config: Optional[CodecConfig] = None) -> Any:
    """Decode (obj, prop) as `target`; None when nothing is stored there."""
    decoder = Decoder.at(store, obj, prop, config)
    if decoder.is_absent():
        return None
    return decoder.decode(target)
