"""Unit tests for the treecodec public API.

Organized by feature area: round trips through set_value/get_value,
point updates, key rejection, configuration and the type registry.
Decoder/cursor details live in test_decoder.py, the in-memory store in
test_memory.py.
"""

from __future__ import annotations

import os
import sys
import unittest
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, FrozenSet, List, NamedTuple, Optional, Set, Tuple, Union
from unittest import mock

from pydantic import BaseModel, field_validator

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from treecodec import (
    DEFAULT_CONFIG,
    ERR_CUSTOM,
    ERR_STORE,
    ERR_UNSUPPORTED_SHAPE,
    ROOT,
    CodecConfig,
    Counter,
    Custom,
    DocumentError,
    MemoryDocument,
    OpaqueScalar,
    ScalarValue,
    StoreError,
    Timestamp,
    Transaction,
    TypeMismatch,
    UnsupportedShape,
    encode,
    get_value,
    plan,
    register_type,
    set_value,
    unregister_type,
    variant,
)


# ── Fixtures ──────────────────────────────────────────────────

@dataclass
class Float3:
    x: int
    y: int
    z: int


@dataclass
class Player:
    position: Float3
    direction: Float3


@dataclass
class Inventory:
    owner: str
    items: List[str] = field(default_factory=list)
    gold: Optional[int] = None


@dataclass(frozen=True)
class GridKey:
    row: int
    col: int


class Pair(NamedTuple):
    left: int
    right: str


class Color(Enum):
    RED = 1
    GREEN = 2


class Camera(BaseModel):
    x: int
    y: int
    z: int
    label: Optional[str] = None


class Positive(BaseModel):
    n: int

    @field_validator("n")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("n must be >= 0")
        return v


@variant
@dataclass
class Move:
    dx: int
    dy: int


@variant
@dataclass
class Quit:
    pass


@variant(newtype=True)
@dataclass
class Say:
    text: str


@variant
class Resize(NamedTuple):
    width: int
    height: int


Command = Union[Move, Quit, Say, Resize]


# ── Round trips ───────────────────────────────────────────────

class TestRoundTrip(unittest.TestCase):
    def setUp(self):
        self.doc = MemoryDocument("test")

    def roundtrip(self, value, target=None):
        set_value(self.doc, ROOT, "v", value)
        if target is None:
            return get_value(self.doc, ROOT, "v")
        return get_value(self.doc, ROOT, "v", target)

    def test_plain_scalars(self):
        for value in ("hello", "", 0, -7, 2**63 - 1, -(2**63), 1.5, True, False, b"\x00\xff"):
            with self.subTest(value=value):
                self.assertEqual(self.roundtrip(value), value)
                self.assertIs(type(self.roundtrip(value)), type(value))

    def test_none(self):
        self.assertIsNone(self.roundtrip(None))
        self.assertEqual(self.doc.get(ROOT, "v"), ScalarValue("null", None))

    def test_uint_range(self):
        set_value(self.doc, ROOT, "v", 2**64 - 1)
        self.assertEqual(self.doc.get(ROOT, "v").kind, "uint")
        self.assertEqual(get_value(self.doc, ROOT, "v", int), 2**64 - 1)

    def test_counter(self):
        set_value(self.doc, ROOT, "v", Counter(5))
        self.assertEqual(self.doc.get(ROOT, "v").kind, "counter")
        self.assertEqual(get_value(self.doc, ROOT, "v"), 5)
        got = get_value(self.doc, ROOT, "v", Counter)
        self.assertIsInstance(got, Counter)
        self.assertEqual(got, 5)

    def test_datetime(self):
        dt = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        set_value(self.doc, ROOT, "v", dt)
        self.assertEqual(self.doc.get(ROOT, "v").kind, "timestamp")
        self.assertEqual(get_value(self.doc, ROOT, "v", datetime), dt)
        self.assertEqual(get_value(self.doc, ROOT, "v"), Timestamp.from_datetime(dt))

    def test_naive_datetime_comes_back_as_utc(self):
        naive = datetime(2024, 1, 2, 3, 4, 5)
        set_value(self.doc, ROOT, "v", naive)
        got = get_value(self.doc, ROOT, "v", datetime)
        self.assertEqual(got.tzinfo, timezone.utc)
        self.assertEqual(got, naive.replace(tzinfo=timezone.utc))

    def test_opaque_scalar(self):
        set_value(self.doc, ROOT, "v", OpaqueScalar(42, b"\x01\x02"))
        self.assertEqual(self.doc.get(ROOT, "v"), ScalarValue("unknown", b"\x01\x02", 42))
        self.assertEqual(get_value(self.doc, ROOT, "v", bytes), b"\x01\x02")

    def test_opaque_scalar_typed(self):
        value = OpaqueScalar(42, b"\x01")
        self.assertEqual(self.roundtrip(value, OpaqueScalar), value)
        self.assertEqual(self.roundtrip(b"\x05", OpaqueScalar), OpaqueScalar(0, b"\x05"))
        with self.assertRaises(TypeMismatch):
            self.roundtrip("text", OpaqueScalar)

    def test_list(self):
        self.assertEqual(self.roundtrip([1, "two", 3.0, None]), [1, "two", 3.0, None])
        self.assertEqual(self.roundtrip([]), [])

    def test_typed_list(self):
        self.assertEqual(self.roundtrip([1, 2, 3], List[int]), [1, 2, 3])

    def test_tuple(self):
        self.assertEqual(self.roundtrip((1, "a"), Tuple[int, str]), (1, "a"))
        self.assertEqual(self.roundtrip((1, 2, 3), Tuple[int, ...]), (1, 2, 3))

    def test_set_encodes_sorted(self):
        self.assertEqual(self.roundtrip({3, 1, 2}), [1, 2, 3])
        self.assertEqual(self.roundtrip({3, 1, 2}, Set[int]), {1, 2, 3})
        self.assertEqual(self.roundtrip(frozenset({"b", "a"}), FrozenSet[str]),
                         frozenset({"a", "b"}))

    def test_dict(self):
        value = {"a": 1, "b": [True, None], "c": {"d": "e"}}
        self.assertEqual(self.roundtrip(value), value)
        self.assertEqual(self.roundtrip({}), {})

    def test_dict_with_int_keys(self):
        set_value(self.doc, ROOT, "v", {1: "one", 2: "two"})
        self.assertEqual(get_value(self.doc, ROOT, "v"), {"1": "one", "2": "two"})
        self.assertEqual(get_value(self.doc, ROOT, "v", Dict[int, str]), {1: "one", 2: "two"})

    def test_dataclass(self):
        player = Player(Float3(1, 2, 3), Float3(10, 11, 12))
        self.assertEqual(self.roundtrip(player, Player), player)

    def test_dataclass_defaults(self):
        inv = Inventory("ann", ["sword"], 12)
        self.assertEqual(self.roundtrip(inv, Inventory), inv)
        self.assertEqual(self.roundtrip(Inventory("bob"), Inventory), Inventory("bob"))

    def test_dataclass_untyped_is_dict(self):
        got = self.roundtrip(Float3(1, 2, 3))
        self.assertEqual(got, {"x": 1, "y": 2, "z": 3})

    def test_pydantic_model(self):
        cam = Camera(x=1, y=2, z=3)
        self.assertEqual(self.roundtrip(cam, Camera), cam)
        cam = Camera(x=1, y=2, z=3, label="main")
        self.assertEqual(self.roundtrip(cam, Camera), cam)

    def test_pydantic_validation_is_custom(self):
        set_value(self.doc, ROOT, "v", {"n": -1})
        with self.assertRaises(Custom) as cm:
            get_value(self.doc, ROOT, "v", Positive)
        self.assertEqual(cm.exception.code, ERR_CUSTOM)

    def test_namedtuple(self):
        self.assertEqual(self.roundtrip(Pair(1, "x")), [1, "x"])
        self.assertEqual(self.roundtrip(Pair(1, "x"), Pair), Pair(1, "x"))

    def test_enum(self):
        self.assertEqual(self.roundtrip(Color.GREEN), "GREEN")
        self.assertIs(self.roundtrip(Color.GREEN, Color), Color.GREEN)

    def test_optional(self):
        self.assertIsNone(self.roundtrip(None, Optional[int]))
        self.assertEqual(self.roundtrip(4, Optional[int]), 4)

    def test_plain_union(self):
        self.assertEqual(self.roundtrip("x", Union[int, str]), "x")
        self.assertEqual(self.roundtrip(3, Union[int, str]), 3)

    def test_pipe_union(self):
        self.assertIsNone(self.roundtrip(None, int | None))
        self.assertEqual(self.roundtrip(4, int | None), 4)
        self.assertEqual(self.roundtrip("x", int | str), "x")

    def test_union_prefers_exact_kind(self):
        got = self.roundtrip(3, Union[float, int])
        self.assertEqual(got, 3)
        self.assertIs(type(got), int)
        got = self.roundtrip(2.5, Union[int, float])
        self.assertEqual(got, 2.5)
        # widening still applies when no member matches exactly
        self.assertEqual(self.roundtrip(4, Union[float, str]), 4.0)

    def test_absent_is_none(self):
        self.assertIsNone(get_value(self.doc, ROOT, "missing"))
        self.assertIsNone(get_value(self.doc, ROOT, "missing", int))


# ── Variants ──────────────────────────────────────────────────

class TestVariants(unittest.TestCase):
    def setUp(self):
        self.doc = MemoryDocument("test")

    def test_struct_variant(self):
        set_value(self.doc, ROOT, "cmd", Move(1, 2))
        self.assertEqual(get_value(self.doc, ROOT, "cmd"), {"Move": {"dx": 1, "dy": 2}})
        self.assertEqual(get_value(self.doc, ROOT, "cmd", Command), Move(1, 2))

    def test_unit_variant(self):
        set_value(self.doc, ROOT, "cmd", Quit())
        self.assertEqual(get_value(self.doc, ROOT, "cmd"), "Quit")
        self.assertEqual(get_value(self.doc, ROOT, "cmd", Command), Quit())

    def test_newtype_variant(self):
        set_value(self.doc, ROOT, "cmd", Say("hi"))
        self.assertEqual(get_value(self.doc, ROOT, "cmd"), {"Say": "hi"})
        self.assertEqual(get_value(self.doc, ROOT, "cmd", Command), Say("hi"))

    def test_tuple_variant(self):
        set_value(self.doc, ROOT, "cmd", Resize(3, 4))
        self.assertEqual(get_value(self.doc, ROOT, "cmd"), {"Resize": [3, 4]})
        self.assertEqual(get_value(self.doc, ROOT, "cmd", Command), Resize(3, 4))

    def test_list_of_variants(self):
        script = [Move(0, 1), Say("go"), Quit()]
        set_value(self.doc, ROOT, "script", script)
        self.assertEqual(get_value(self.doc, ROOT, "script", List[Command]), script)

    def test_single_variant_target(self):
        set_value(self.doc, ROOT, "cmd", Move(5, 6))
        self.assertEqual(get_value(self.doc, ROOT, "cmd", Move), Move(5, 6))

    def test_renamed_variant(self):
        @variant(name="stop")
        @dataclass
        class Stop:
            pass

        set_value(self.doc, ROOT, "cmd", Stop())
        self.assertEqual(get_value(self.doc, ROOT, "cmd"), "stop")

    def test_newtype_needs_one_field(self):
        @variant(newtype=True)
        @dataclass
        class Bad:
            a: int
            b: int

        with self.assertRaises(UnsupportedShape):
            set_value(self.doc, ROOT, "cmd", Bad(1, 2))
        self.assertIsNone(self.doc.get(ROOT, "cmd"))


# ── Point updates ─────────────────────────────────────────────

class TestPointUpdate(unittest.TestCase):
    def setUp(self):
        self.doc = MemoryDocument("test")

    def test_returns_container_id(self):
        player_id = set_value(self.doc, ROOT, "player", Player(Float3(1, 2, 3), Float3(0, 0, 1)))
        ref = self.doc.get(ROOT, "player")
        self.assertEqual(ref.obj_id, player_id)

    def test_scalar_returns_parent_id(self):
        self.assertEqual(set_value(self.doc, ROOT, "k", 1), ROOT)

    def test_update_leaves_siblings_untouched(self):
        player_id = set_value(self.doc, ROOT, "player", Player(Float3(1, 2, 3), Float3(0, 0, 1)))
        direction_before = self.doc.get(player_id, "direction")

        pos_id = self.doc.get(player_id, "position").obj_id
        set_value(self.doc, pos_id, "x", 100)

        self.assertEqual(self.doc.get(player_id, "direction"), direction_before)
        self.assertEqual(get_value(self.doc, ROOT, "player", Player),
                         Player(Float3(100, 2, 3), Float3(0, 0, 1)))

    def test_sequence_index_update(self):
        numbers_id = set_value(self.doc, ROOT, "numbers", [31, 32, 33])
        set_value(self.doc, numbers_id, 2, 34)
        self.assertEqual(get_value(self.doc, ROOT, "numbers", List[int]), [31, 32, 34])

    def test_index_past_end_pads_with_null(self):
        list_id = set_value(self.doc, ROOT, "l", [])
        set_value(self.doc, list_id, 3, "x")
        self.assertEqual(get_value(self.doc, ROOT, "l"), [None, None, None, "x"])
        self.assertEqual(self.doc.length(list_id), 4)

    def test_nested_container_into_list(self):
        list_id = set_value(self.doc, ROOT, "l", [1])
        set_value(self.doc, list_id, 1, {"k": "v"})
        self.assertEqual(get_value(self.doc, ROOT, "l"), [1, {"k": "v"}])

    def test_negative_index(self):
        list_id = set_value(self.doc, ROOT, "l", [1])
        with self.assertRaises(UnsupportedShape):
            set_value(self.doc, list_id, -1, 2)

    def test_replace_container_gets_new_id(self):
        first = set_value(self.doc, ROOT, "m", {"a": 1, "b": 2})
        second = set_value(self.doc, ROOT, "m", {"a": 5})
        self.assertNotEqual(first, second)
        self.assertEqual(get_value(self.doc, ROOT, "m"), {"a": 5})

    def test_reuse_containers(self):
        config = CodecConfig(reuse_containers=True)
        first = set_value(self.doc, ROOT, "m", {"a": 1, "b": 2}, config=config)
        second = set_value(self.doc, ROOT, "m", {"a": 5}, config=config)
        self.assertEqual(first, second)
        self.assertEqual(get_value(self.doc, ROOT, "m"), {"a": 5, "b": 2})

    def test_reuse_replaces_different_kind(self):
        config = CodecConfig(reuse_containers=True)
        first = set_value(self.doc, ROOT, "m", {"a": 1}, config=config)
        second = set_value(self.doc, ROOT, "m", [1], config=config)
        self.assertNotEqual(first, second)
        self.assertEqual(get_value(self.doc, ROOT, "m"), [1])

    def test_reuse_never_keeps_list_tail(self):
        config = CodecConfig(reuse_containers=True)
        first = set_value(self.doc, ROOT, "l", [1, 2, 3], config=config)
        second = set_value(self.doc, ROOT, "l", [9], config=config)
        self.assertNotEqual(first, second)
        self.assertEqual(get_value(self.doc, ROOT, "l"), [9])

    def test_reuse_nested_list_in_map(self):
        config = CodecConfig(reuse_containers=True)
        set_value(self.doc, ROOT, "m", {"xs": [1, 2, 3]}, config=config)
        set_value(self.doc, ROOT, "m", {"xs": [7]}, config=config)
        self.assertEqual(get_value(self.doc, ROOT, "m"), {"xs": [7]})

    def test_one_change_per_set_value(self):
        set_value(self.doc, ROOT, "player", Player(Float3(1, 2, 3), Float3(0, 0, 1)))
        self.assertEqual(len(self.doc.changes), 1)

    def test_encode_inside_open_transaction(self):
        with self.doc.transaction("batch") as tx:
            encode(tx, ROOT, "a", 1)
            encode(tx, ROOT, "b", [1, 2])
        self.assertEqual(len(self.doc.changes), 1)
        self.assertEqual(self.doc.changes[0].message, "batch")
        self.assertEqual(get_value(self.doc, ROOT, "b"), [1, 2])


# ── Key rejection ─────────────────────────────────────────────

class TestKeyRejection(unittest.TestCase):
    def setUp(self):
        self.doc = MemoryDocument("test")
        set_value(self.doc, ROOT, "keep", {"a": 1})

    def assert_rejected(self, value):
        changes = self.doc.changes
        with self.assertRaises(UnsupportedShape) as cm:
            set_value(self.doc, ROOT, "bad", value)
        self.assertEqual(cm.exception.code, ERR_UNSUPPORTED_SHAPE)
        self.assertEqual(self.doc.changes, changes)
        self.assertIsNone(self.doc.get(ROOT, "bad"))
        self.assertEqual(get_value(self.doc, ROOT, "keep"), {"a": 1})

    def test_tuple_key(self):
        self.assert_rejected({(1, 2): "x"})

    def test_struct_key(self):
        self.assert_rejected({GridKey(0, 1): "x"})

    def test_none_key(self):
        self.assert_rejected({None: "x"})

    def test_enum_key(self):
        self.assert_rejected({Color.RED: "x"})

    def test_nested_bad_key(self):
        self.assert_rejected({"ok": 1, "deep": [{"fine": {(1, 2): "x"}}]})

    def test_no_ops_in_open_transaction(self):
        with self.doc.transaction() as tx:
            with self.assertRaises(UnsupportedShape):
                encode(tx, ROOT, "bad", {"a": 1, "b": {(1,): 2}})
            self.assertEqual(tx.pending_ops, 0)

    def test_scalar_keys_accepted(self):
        set_value(self.doc, ROOT, "m", {True: "t", 1.5: "f", b"raw": "b"})
        self.assertEqual(get_value(self.doc, ROOT, "m"),
                         {"true": "t", "1.5": "f", "raw": "b"})

    def test_plan_does_not_need_a_store(self):
        node = plan({"a": [1, 2]})
        self.assertEqual(node.kind, "map")
        with self.assertRaises(UnsupportedShape):
            plan({(1, 2): 3})


# ── Limits and configuration ──────────────────────────────────

class TestLimits(unittest.TestCase):
    def setUp(self):
        self.doc = MemoryDocument("test")

    def test_integer_out_of_range(self):
        for value in (2**64, -(2**63) - 1, 2**100):
            with self.subTest(value=value):
                with self.assertRaises(UnsupportedShape):
                    set_value(self.doc, ROOT, "n", value)
        self.assertEqual(self.doc.changes, ())

    def test_integer_out_of_range_nested(self):
        with self.assertRaises(UnsupportedShape):
            set_value(self.doc, ROOT, "n", {"a": 1, "b": [2, 2**70]})
        self.assertIsNone(self.doc.get(ROOT, "n"))

    def test_truncate_integers(self):
        config = CodecConfig(truncate_integers=True)
        set_value(self.doc, ROOT, "a", 2**64, config=config)
        set_value(self.doc, ROOT, "b", -(2**63) - 1, config=config)
        self.assertEqual(get_value(self.doc, ROOT, "a"), 0)
        self.assertEqual(get_value(self.doc, ROOT, "b"), 2**63 - 1)

    def test_max_depth_encode(self):
        config = CodecConfig(max_depth=2)
        set_value(self.doc, ROOT, "ok", [[1]], config=config)
        with self.assertRaises(UnsupportedShape):
            set_value(self.doc, ROOT, "deep", [[[1]]], config=config)
        self.assertIsNone(self.doc.get(ROOT, "deep"))

    def test_max_depth_decode(self):
        set_value(self.doc, ROOT, "deep", [[1]])
        config = CodecConfig(max_depth=1)
        with self.assertRaises(UnsupportedShape):
            get_value(self.doc, ROOT, "deep", config=config)
        self.assertEqual(get_value(self.doc, ROOT, "deep"), [[1]])

    def test_unsupported_type(self):
        with self.assertRaises(UnsupportedShape):
            set_value(self.doc, ROOT, "x", object())


class TestConfig(unittest.TestCase):
    def test_defaults(self):
        self.assertEqual(DEFAULT_CONFIG.max_depth, 64)
        self.assertFalse(DEFAULT_CONFIG.truncate_integers)
        self.assertFalse(DEFAULT_CONFIG.reuse_containers)

    def test_invalid_depth(self):
        with self.assertRaises(ValueError):
            CodecConfig(max_depth=0)

    def test_from_env(self):
        env = {
            "TREECODEC_MAX_DEPTH": "8",
            "TREECODEC_TRUNCATE_INTEGERS": "yes",
            "TREECODEC_REUSE_CONTAINERS": "0",
        }
        with mock.patch.dict(os.environ, env):
            config = CodecConfig.from_env()
        self.assertEqual(config, CodecConfig(max_depth=8, truncate_integers=True))

    def test_from_env_unset(self):
        names = ("TREECODEC_MAX_DEPTH", "TREECODEC_TRUNCATE_INTEGERS",
                 "TREECODEC_REUSE_CONTAINERS")
        env = {k: v for k, v in os.environ.items() if k not in names}
        with mock.patch.dict(os.environ, env, clear=True):
            self.assertEqual(CodecConfig.from_env(), DEFAULT_CONFIG)

    def test_from_env_bad_int(self):
        with mock.patch.dict(os.environ, {"TREECODEC_MAX_DEPTH": "deep"}):
            with self.assertRaises(ValueError):
                CodecConfig.from_env()

    def test_frozen(self):
        with self.assertRaises(AttributeError):
            DEFAULT_CONFIG.max_depth = 3


# ── Registry ──────────────────────────────────────────────────

@dataclass
class Invoice:
    total: Decimal
    ref: uuid.UUID


class TestRegistry(unittest.TestCase):
    def setUp(self):
        self.doc = MemoryDocument("test")
        register_type(Decimal, encode=str, decode=Decimal, wire=str)
        register_type(uuid.UUID, encode=str, decode=uuid.UUID, wire=str)

    def tearDown(self):
        unregister_type(Decimal)
        unregister_type(uuid.UUID)

    def test_registered_scalar(self):
        set_value(self.doc, ROOT, "d", Decimal("1.50"))
        self.assertEqual(get_value(self.doc, ROOT, "d"), "1.50")
        self.assertEqual(get_value(self.doc, ROOT, "d", Decimal), Decimal("1.50"))

    def test_registered_field(self):
        inv = Invoice(Decimal("9.99"), uuid.UUID(int=7))
        set_value(self.doc, ROOT, "inv", inv)
        self.assertEqual(get_value(self.doc, ROOT, "inv", Invoice), inv)

    def test_hook_failure_is_custom(self):
        set_value(self.doc, ROOT, "u", "not-a-uuid")
        with self.assertRaises(Custom):
            get_value(self.doc, ROOT, "u", uuid.UUID)

    def test_unregistered_is_unsupported(self):
        unregister_type(Decimal)
        with self.assertRaises(UnsupportedShape):
            set_value(self.doc, ROOT, "d", Decimal("1"))


# ── Store failures ────────────────────────────────────────────

class TestStoreErrors(unittest.TestCase):
    def setUp(self):
        self.doc = MemoryDocument("test")

    def test_unknown_object(self):
        with self.assertRaises(StoreError) as cm:
            set_value(self.doc, "99@ghost", "k", 1)
        self.assertEqual(cm.exception.code, ERR_STORE)
        self.assertIsInstance(cm.exception.__cause__, DocumentError)

    def test_failed_set_value_rolls_back(self):
        list_id = set_value(self.doc, ROOT, "l", [1])
        changes = self.doc.changes
        with self.assertRaises(StoreError):
            # int prop on a map container
            set_value(self.doc, ROOT, 0, {"a": 1})
        self.assertEqual(self.doc.changes, changes)
        self.assertEqual(get_value(self.doc, ROOT, "l"), [1])
        # the document accepts new transactions afterwards
        set_value(self.doc, list_id, 0, 2)
        self.assertEqual(get_value(self.doc, ROOT, "l"), [2])

    def test_decode_unknown_object(self):
        with self.assertRaises(StoreError):
            get_value(self.doc, "99@ghost", "k")

    def test_transaction_already_open(self):
        tx = self.doc.transaction()
        try:
            with self.assertRaises(StoreError) as cm:
                set_value(self.doc, ROOT, "v", 1)
            self.assertIsInstance(cm.exception.__cause__, DocumentError)
        finally:
            tx.rollback()
        self.assertEqual(set_value(self.doc, ROOT, "v", 1), ROOT)

    def test_commit_failure(self):
        doc = _CommitFailsDocument("test")
        with self.assertRaises(StoreError) as cm:
            set_value(doc, ROOT, "v", 1)
        self.assertIsInstance(cm.exception.__cause__, DocumentError)


class _CommitFailsTransaction(Transaction):
    def commit(self):
        raise DocumentError("disk full")


class _CommitFailsDocument(MemoryDocument):
    def transaction(self, message=None):
        return _CommitFailsTransaction(self, message)


class TestLogging(unittest.TestCase):
    def test_debug_tracing(self):
        doc = MemoryDocument("test")
        with self.assertLogs("treecodec", level="DEBUG") as cm:
            set_value(doc, ROOT, "v", {"a": [1]})
        self.assertTrue(any("encode" in line for line in cm.output))


if __name__ == "__main__":
    unittest.main()
