"""Encoder: write a Python value into the store at one location.

Encoding runs in two passes over the value:

  1. Plan.  Describe every level with shape_of(), classify scalars, reduce
     map keys to strings, and enforce max_depth and the 64-bit integer
     range.  Nothing touches the store yet, so a bad key or an oversized
     int anywhere in the value fails with no partial writes.
  2. Write.  Walk the plan, creating MAP/LIST containers and putting
     scalars.  Store failures surface as StoreError; writes made before
     the failure stay in the caller's transaction.

Representation:

    scalar / None          → put(obj, prop, scalar)
    seq / NamedTuple       → LIST, element i at index i
    map / struct           → MAP, one child per (string) key
    unit variant / Enum    → the variant name as a string scalar
    other variants         → MAP with one entry: {name: payload}

encode() returns the id of the container it created at the location (or,
for a scalar, the id of the container holding the slot), so callers can
aim a later point-update straight at a sub-tree.
"""

from __future__ import annotations

import logging
from typing import Any, List, NamedTuple, Optional, Tuple

from ._config import DEFAULT_CONFIG, CodecConfig
from ._constants import KIND_NULL, KIND_STR, OBJ_LIST, OBJ_MAP, ROOT
from ._errors import UnsupportedShape
from ._keys import normalize_key
from ._scalars import classify
from ._shapes import (
    SHAPE_MAP,
    SHAPE_NONE,
    SHAPE_SCALAR,
    SHAPE_SEQ,
    SHAPE_STRUCT,
    SHAPE_VARIANT,
    Shape,
    shape_of,
)
from ._store import ContainerRef, ObjId, Prop, ScalarValue, WritableDocument, store_errors

logger = logging.getLogger(__name__)

NODE_SCALAR: str = "scalar"
NODE_LIST: str = "list"
NODE_MAP: str = "map"

_NULL = ScalarValue(KIND_NULL, None)


class PlanNode(NamedTuple):
    """Store-ready description of one value: a scalar, a list or a map."""

    kind: str
    payload: Any


class _Planner:
    def __init__(self, config: CodecConfig) -> None:
        self._config = config

    def _enter(self, depth: int) -> int:
        # depth counts the containers enclosing the one being entered
        if depth + 1 > self._config.max_depth:
            raise UnsupportedShape("nesting exceeds max_depth ({})".format(
                self._config.max_depth))
        return depth + 1

    def plan(self, value: Any, depth: int = 0) -> PlanNode:
        return self.plan_shape(shape_of(value), depth)

    def plan_shape(self, shape: Shape, depth: int) -> PlanNode:
        tag = shape.tag

        if tag == SHAPE_NONE:
            return PlanNode(NODE_SCALAR, _NULL)

        if tag == SHAPE_SCALAR:
            return PlanNode(NODE_SCALAR, classify(shape.payload, self._config))

        if tag == SHAPE_SEQ:
            inner = self._enter(depth)
            return PlanNode(NODE_LIST, [self.plan(v, inner) for v in shape.payload])

        if tag == SHAPE_MAP:
            inner = self._enter(depth)
            entries: List[Tuple[str, PlanNode]] = []
            for k, v in shape.payload:
                entries.append((normalize_key(k), self.plan(v, inner)))
            return PlanNode(NODE_MAP, entries)

        if tag == SHAPE_STRUCT:
            inner = self._enter(depth)
            return PlanNode(NODE_MAP, [(name, self.plan(v, inner)) for name, v in shape.payload])

        if tag == SHAPE_VARIANT:
            if shape.payload is None:
                return PlanNode(NODE_SCALAR, ScalarValue(KIND_STR, shape.name))
            inner = self._enter(depth)
            return PlanNode(NODE_MAP, [(shape.name, self.plan_shape(shape.payload, inner))])

        raise UnsupportedShape("unknown shape tag {!r}".format(tag))


def plan(value: Any, config: Optional[CodecConfig] = None) -> PlanNode:
    """Validate and describe value without touching any store."""
    return _Planner(config or DEFAULT_CONFIG).plan(value)


class Encoder:
    """Writes one value at (obj, prop) of a document or open transaction."""

    def __init__(self, tx: WritableDocument, obj: ObjId, prop: Prop,
                 config: Optional[CodecConfig] = None) -> None:
        if isinstance(prop, int) and not isinstance(prop, bool) and prop < 0:
            raise UnsupportedShape("list index must be non-negative, got {}".format(prop))
        self._tx = tx
        self._obj = obj
        self._prop = prop
        self._config = config or DEFAULT_CONFIG

    @classmethod
    def at_root(cls, tx: WritableDocument, prop: str,
                config: Optional[CodecConfig] = None) -> "Encoder":
        return cls(tx, ROOT, prop, config)

    def encode(self, value: Any) -> ObjId:
        """Write value and return the id of the container at the location."""
        logger.debug("encode %s at %s/%r", type(value).__name__, self._obj, self._prop)
        node = _Planner(self._config).plan(value)
        return self._write(node, self._obj, self._prop)

    # ── Write pass ────────────────────────────────────────────

    def _write(self, node: PlanNode, obj: ObjId, prop: Prop) -> ObjId:
        if isinstance(prop, int):
            self._ensure_slot(obj, prop)

        if node.kind == NODE_SCALAR:
            with store_errors("put {!r} of {}".format(prop, obj)):
                self._tx.put(obj, prop, node.payload)
            return obj

        if node.kind == NODE_LIST:
            child = self._container(obj, prop, OBJ_LIST)
            for index, element in enumerate(node.payload):
                self._write(element, child, index)
            return child

        child = self._container(obj, prop, OBJ_MAP)
        for key, entry in node.payload:
            self._write(entry, child, key)
        return child

    def _ensure_slot(self, obj: ObjId, index: int) -> None:
        """Pad a list with null placeholders until index is addressable."""
        with store_errors("length of {}".format(obj)):
            length = self._tx.length(obj)
        if length > index:
            return
        with store_errors("insert into {}".format(obj)):
            while length <= index:
                self._tx.insert(obj, length, _NULL)
                length += 1

    def _container(self, obj: ObjId, prop: Prop, obj_type: str) -> ObjId:
        # Only maps are reused: a reused list would keep its old tail.
        if self._config.reuse_containers and obj_type == OBJ_MAP:
            with store_errors("get {!r} of {}".format(prop, obj)):
                existing = self._tx.get(obj, prop)
            if isinstance(existing, ContainerRef) and existing.obj_type == obj_type:
                return existing.obj_id
        with store_errors("put_object {!r} of {}".format(prop, obj)):
            child = self._tx.put_object(obj, prop, obj_type)
        logger.debug("created %s %s at %s/%r", obj_type, child, obj, prop)
        return child
