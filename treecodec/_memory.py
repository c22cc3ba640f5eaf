"""An in-memory store implementing the document interface.

Containers live in a flat table keyed by ObjId ("{counter}@{actor}"), so
ids stay unique across replicas.  Every mutation is recorded as an Op;
committing a transaction turns its ops into a Change in the document's log.

Replicas:

    base = MemoryDocument()
    replica = base.fork()        # copy of state + log under a new actor
    ...edit both...
    base.merge(replica)          # replay replica's unseen changes

merge() is plain replay in log order.  There is no conflict resolution:
when both sides wrote the same slot, the value replayed last stays.
Disjoint point-updates therefore merge cleanly; overlapping ones don't
merge meaningfully.
"""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, Callable, Dict, Iterator, List, NamedTuple, Optional, Set, Tuple

from ._constants import (
    KIND_STR,
    OBJ_LIST,
    OBJ_MAP,
    OBJ_TABLE,
    OBJ_TEXT,
    OBJ_TYPES,
    ROOT,
)
from ._store import ContainerRef, ObjId, Prop, ScalarValue, Value

logger = logging.getLogger(__name__)

OP_PUT: str = "put"
OP_PUT_OBJECT: str = "put_object"
OP_INSERT: str = "insert"
OP_SPLICE: str = "splice"

Undo = Callable[[], None]


class DocumentError(Exception):
    """A document operation was invalid (unknown object, bad property, ...)."""


class Op(NamedTuple):
    action: str
    obj: ObjId
    prop: Any
    value: Any = None
    new_id: Optional[ObjId] = None


class Change(NamedTuple):
    actor: str
    seq: int
    message: Optional[str]
    ops: Tuple[Op, ...]


class _Container:
    __slots__ = ("obj_type", "data")

    def __init__(self, obj_type: str) -> None:
        self.obj_type = obj_type
        if obj_type in (OBJ_MAP, OBJ_TABLE):
            self.data: Any = {}
        else:
            self.data = []


class MemoryDocument:
    """A mutable tree of maps, lists, text and scalars, with a change log.

    Writes made directly on the document auto-commit one change each.
    Use transaction() to group writes into a single change.
    """

    def __init__(self, actor: Optional[str] = None) -> None:
        self.actor = actor or uuid.uuid4().hex[:12]
        self._objects: Dict[ObjId, _Container] = {ROOT: _Container(OBJ_MAP)}
        self._counter = 0
        self._seq = 0
        self._changes: List[Change] = []
        self._seen: Set[Tuple[str, int]] = set()
        self._open: Optional["Transaction"] = None

    # ── Read side ─────────────────────────────────────────────

    def _container(self, obj: ObjId) -> _Container:
        try:
            return self._objects[obj]
        except KeyError:
            raise DocumentError("object {} not found".format(obj)) from None

    def object_type(self, obj: ObjId) -> str:
        return self._container(obj).obj_type

    def get(self, obj: ObjId, prop: Prop) -> Optional[Value]:
        c = self._container(obj)
        if c.obj_type in (OBJ_MAP, OBJ_TABLE):
            _check_key(c, prop)
            return c.data.get(prop)
        _check_index(c, prop)
        if prop >= len(c.data):
            return None
        if c.obj_type == OBJ_TEXT:
            return ScalarValue(KIND_STR, c.data[prop])
        return c.data[prop]

    def keys(self, obj: ObjId) -> List[str]:
        c = self._container(obj)
        if c.obj_type not in (OBJ_MAP, OBJ_TABLE):
            raise DocumentError("object {} is a {}, not a map".format(obj, c.obj_type))
        return sorted(c.data)

    def map_items(self, obj: ObjId) -> Iterator[Tuple[str, Value]]:
        c = self._container(obj)
        if c.obj_type not in (OBJ_MAP, OBJ_TABLE):
            raise DocumentError("object {} is a {}, not a map".format(obj, c.obj_type))
        return iter(sorted(c.data.items()))

    def list_items(self, obj: ObjId) -> Iterator[Value]:
        c = self._container(obj)
        if c.obj_type != OBJ_LIST:
            raise DocumentError("object {} is a {}, not a list".format(obj, c.obj_type))
        return iter(list(c.data))

    def length(self, obj: ObjId) -> int:
        return len(self._container(obj).data)

    def text(self, obj: ObjId) -> str:
        c = self._container(obj)
        if c.obj_type != OBJ_TEXT:
            raise DocumentError("object {} is a {}, not text".format(obj, c.obj_type))
        return "".join(c.data)

    # ── Write side (auto-commit) ──────────────────────────────

    def put(self, obj: ObjId, prop: Prop, value: ScalarValue) -> None:
        with self.transaction() as tx:
            tx.put(obj, prop, value)

    def put_object(self, obj: ObjId, prop: Prop, obj_type: str) -> ObjId:
        with self.transaction() as tx:
            return tx.put_object(obj, prop, obj_type)

    def insert(self, obj: ObjId, index: int, value: ScalarValue) -> None:
        with self.transaction() as tx:
            tx.insert(obj, index, value)

    def splice_text(self, obj: ObjId, pos: int, delete: int, text: str) -> None:
        with self.transaction() as tx:
            tx.splice_text(obj, pos, delete, text)

    def transaction(self, message: Optional[str] = None) -> "Transaction":
        if self._open is not None:
            raise DocumentError("a transaction is already open on this document")
        return Transaction(self, message)

    # ── Change log and replicas ───────────────────────────────

    @property
    def changes(self) -> Tuple[Change, ...]:
        return tuple(self._changes)

    def fork(self, actor: Optional[str] = None) -> "MemoryDocument":
        """Independent replica with the same state and history."""
        if self._open is not None:
            raise DocumentError("cannot fork while a transaction is open")
        other = MemoryDocument(actor)
        other._objects = copy.deepcopy(self._objects)
        other._counter = self._counter
        other._changes = list(self._changes)
        other._seen = set(self._seen)
        return other

    def merge(self, other: "MemoryDocument") -> int:
        """Replay other's changes that this replica hasn't seen.  Returns how many."""
        if self._open is not None:
            raise DocumentError("cannot merge while a transaction is open")
        applied = 0
        for change in other._changes:
            key = (change.actor, change.seq)
            if key in self._seen:
                continue
            for op in change.ops:
                self._apply(op)
            self._changes.append(change)
            self._seen.add(key)
            applied += 1
        logger.debug("merged %d change(s) from %s into %s", applied, other.actor, self.actor)
        return applied

    # ── Internals ─────────────────────────────────────────────

    def _next_id(self) -> ObjId:
        self._counter += 1
        return "{}@{}".format(self._counter, self.actor)

    def _set_slot(self, obj: ObjId, prop: Prop, value: Value) -> Undo:
        c = self._container(obj)
        if c.obj_type in (OBJ_MAP, OBJ_TABLE):
            _check_key(c, prop)
            had = prop in c.data
            old = c.data.get(prop)
            c.data[prop] = value

            def undo_map() -> None:
                if had:
                    c.data[prop] = old
                else:
                    del c.data[prop]
            return undo_map
        if c.obj_type == OBJ_TEXT:
            raise DocumentError("use splice_text to edit text object {}".format(obj))
        _check_index(c, prop)
        if prop >= len(c.data):
            raise DocumentError("index {} out of range for list {} of length {}".format(
                prop, obj, len(c.data)))
        old = c.data[prop]
        c.data[prop] = value

        def undo_list() -> None:
            c.data[prop] = old
        return undo_list

    def _apply(self, op: Op) -> Undo:
        """Apply op and return a callable that reverts it.

        An op that raises has changed nothing.
        """
        if op.action == OP_PUT:
            return self._set_slot(op.obj, op.prop, op.value)
        if op.action == OP_PUT_OBJECT:
            # validate the slot before registering the new container
            restore = self._set_slot(op.obj, op.prop, ContainerRef(op.value, op.new_id))
            self._objects[op.new_id] = _Container(op.value)

            def undo_object() -> None:
                del self._objects[op.new_id]
                restore()
            return undo_object
        if op.action == OP_INSERT:
            c = self._container(op.obj)
            if c.obj_type != OBJ_LIST:
                raise DocumentError("cannot insert into a {} object".format(c.obj_type))
            _check_index(c, op.prop)
            if op.prop > len(c.data):
                raise DocumentError("index {} out of range for list {} of length {}".format(
                    op.prop, op.obj, len(c.data)))
            c.data.insert(op.prop, op.value)
            return lambda: c.data.pop(op.prop)
        if op.action == OP_SPLICE:
            c = self._container(op.obj)
            if c.obj_type != OBJ_TEXT:
                raise DocumentError("object {} is a {}, not text".format(op.obj, c.obj_type))
            pos, delete = op.prop
            if pos < 0 or delete < 0 or pos + delete > len(c.data):
                raise DocumentError("splice range out of bounds")
            removed = c.data[pos:pos + delete]
            c.data[pos:pos + delete] = list(op.value)

            def undo_splice() -> None:
                c.data[pos:pos + len(op.value)] = removed
            return undo_splice
        raise DocumentError("unknown op {!r}".format(op.action))


def _check_key(c: _Container, prop: Any) -> None:
    if not isinstance(prop, str):
        raise DocumentError("property {!r} is invalid for a {} object".format(prop, c.obj_type))


def _check_index(c: _Container, prop: Any) -> None:
    if isinstance(prop, bool) or not isinstance(prop, int) or prop < 0:
        raise DocumentError("property {!r} is invalid for a {} object".format(prop, c.obj_type))


class Transaction:
    """A group of writes that becomes one Change on commit.

    Reads see the transaction's own writes.  Writes are applied as they
    happen; each one records how to revert itself, and rollback() replays
    those reverts newest first.  Used as a context manager it commits on
    normal exit and rolls back if the block raises.
    """

    def __init__(self, doc: MemoryDocument, message: Optional[str] = None) -> None:
        self._doc = doc
        self.message = message
        self._ops: List[Op] = []
        self._undo: List[Undo] = []
        self._counter = doc._counter
        self._closed = False
        doc._open = self

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> bool:
        if self._closed:
            return False
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return False

    @property
    def pending_ops(self) -> int:
        return len(self._ops)

    def _record(self, op: Op) -> None:
        if self._closed:
            raise DocumentError("transaction is closed")
        self._undo.append(self._doc._apply(op))
        self._ops.append(op)

    # ── Read side delegates to the document ───────────────────

    def get(self, obj: ObjId, prop: Prop) -> Optional[Value]:
        return self._doc.get(obj, prop)

    def map_items(self, obj: ObjId) -> Iterator[Tuple[str, Value]]:
        return self._doc.map_items(obj)

    def list_items(self, obj: ObjId) -> Iterator[Value]:
        return self._doc.list_items(obj)

    def length(self, obj: ObjId) -> int:
        return self._doc.length(obj)

    def object_type(self, obj: ObjId) -> str:
        return self._doc.object_type(obj)

    def text(self, obj: ObjId) -> str:
        return self._doc.text(obj)

    # ── Write side ────────────────────────────────────────────

    def put(self, obj: ObjId, prop: Prop, value: ScalarValue) -> None:
        self._record(Op(OP_PUT, obj, prop, value))

    def put_object(self, obj: ObjId, prop: Prop, obj_type: str) -> ObjId:
        if obj_type not in OBJ_TYPES:
            raise DocumentError("unknown object type {!r}".format(obj_type))
        new_id = self._doc._next_id()
        self._record(Op(OP_PUT_OBJECT, obj, prop, obj_type, new_id))
        return new_id

    def insert(self, obj: ObjId, index: int, value: ScalarValue) -> None:
        self._record(Op(OP_INSERT, obj, index, value))

    def splice_text(self, obj: ObjId, pos: int, delete: int, text: str) -> None:
        self._record(Op(OP_SPLICE, obj, (pos, delete), text))

    # ── Lifecycle ─────────────────────────────────────────────

    def commit(self) -> Optional[Change]:
        """Close the transaction; returns the new Change, or None if nothing was written."""
        if self._closed:
            raise DocumentError("transaction is closed")
        self._closed = True
        self._undo = []
        doc = self._doc
        doc._open = None
        if not self._ops:
            return None
        doc._seq += 1
        change = Change(doc.actor, doc._seq, self.message, tuple(self._ops))
        doc._changes.append(change)
        doc._seen.add((change.actor, change.seq))
        logger.debug("commit %s/%d: %d op(s)", change.actor, change.seq, len(change.ops))
        return change

    def rollback(self) -> None:
        """Discard every write made in this transaction."""
        if self._closed:
            raise DocumentError("transaction is closed")
        self._closed = True
        doc = self._doc
        for undo in reversed(self._undo):
            undo()
        self._undo = []
        doc._counter = self._counter
        doc._open = None
        logger.debug("rollback: discarded %d op(s)", len(self._ops))
