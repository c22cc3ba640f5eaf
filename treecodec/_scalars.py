"""Scalar classifier: Python primitives to and from the store's scalar kinds.

Encode direction (classify):

    bool                          → boolean
    Counter                       → counter
    Timestamp, datetime           → timestamp (ms since the Unix epoch)
    int   in int64 range          → int
    int   in (INT64_MAX, UINT64]  → uint
    float                         → f64
    str                           → str
    bytes/bytearray/memoryview    → bytes
    OpaqueScalar                  → unknown (type code + raw bytes)
    None                          → null

Decode direction (to_python) is the inverse for untyped reads.  Counter and
timestamp scalars come back as plain ints there; typed reads that ask for
Counter or datetime get the richer type (see _decoder.py).
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, NamedTuple

from ._config import CodecConfig
from ._constants import (
    INT64_MAX,
    INT64_MIN,
    KIND_BOOLEAN,
    KIND_BYTES,
    KIND_COUNTER,
    KIND_F64,
    KIND_INT,
    KIND_NULL,
    KIND_STR,
    KIND_TIMESTAMP,
    KIND_UINT,
    KIND_UNKNOWN,
    UINT64_MAX,
)
from ._errors import UnsupportedShape
from ._store import ScalarValue

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


class Counter(int):
    """An int the store should treat as a mergeable counter."""

    def __repr__(self) -> str:
        return "Counter({})".format(int(self))


class Timestamp(int):
    """Milliseconds since the Unix epoch, stored with the timestamp kind.

    Time zones are not stored.  Naive datetimes are read as UTC, and
    to_datetime() always returns an aware UTC datetime, so a naive value
    decodes as its UTC-aware equivalent.
    """

    def __repr__(self) -> str:
        return "Timestamp({})".format(int(self))

    @classmethod
    def from_datetime(cls, dt: datetime) -> "Timestamp":
        # Naive datetimes are taken to be UTC.
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return cls((dt - EPOCH) // _ONE_MS)

    def to_datetime(self) -> datetime:
        return EPOCH + timedelta(milliseconds=int(self))


class OpaqueScalar(NamedTuple):
    """A scalar whose tag the store did not recognize; kept as raw bytes."""

    type_code: int
    data: bytes


SCALAR_TYPES = (
    bool,
    int,
    float,
    str,
    bytes,
    bytearray,
    memoryview,
    datetime,
    OpaqueScalar,
)


def is_scalar(value: Any) -> bool:
    """True for values the classifier knows how to place directly."""
    return value is None or isinstance(value, SCALAR_TYPES)


def _wrap_int64(v: int) -> int:
    return ((v - INT64_MIN) % 2**64) + INT64_MIN


def _signed(v: int, config: CodecConfig, what: str) -> int:
    if INT64_MIN <= v <= INT64_MAX:
        return v
    if config.truncate_integers:
        return _wrap_int64(v)
    raise UnsupportedShape("{} {} outside the 64-bit range".format(what, v))


def classify(value: Any, config: CodecConfig) -> ScalarValue:
    """Map a Python primitive onto a ScalarValue, narrowing ints to 64 bits."""
    if value is None:
        return ScalarValue(KIND_NULL, None)

    # bool before int: isinstance(True, int) is True.  Same trap for our
    # own int subclasses, so Counter and Timestamp go next.
    if isinstance(value, bool):
        return ScalarValue(KIND_BOOLEAN, value)

    if isinstance(value, Counter):
        return ScalarValue(KIND_COUNTER, _signed(int(value), config, "counter"))

    if isinstance(value, Timestamp):
        return ScalarValue(KIND_TIMESTAMP, _signed(int(value), config, "timestamp"))

    if isinstance(value, datetime):
        ts = Timestamp.from_datetime(value)
        return ScalarValue(KIND_TIMESTAMP, _signed(int(ts), config, "timestamp"))

    if isinstance(value, int):
        v = int(value)
        if INT64_MIN <= v <= INT64_MAX:
            return ScalarValue(KIND_INT, v)
        if INT64_MAX < v <= UINT64_MAX:
            return ScalarValue(KIND_UINT, v)
        return ScalarValue(KIND_INT, _signed(v, config, "integer"))

    if isinstance(value, float):
        return ScalarValue(KIND_F64, float(value))

    if isinstance(value, str):
        return ScalarValue(KIND_STR, str(value))

    if isinstance(value, OpaqueScalar):
        return ScalarValue(KIND_UNKNOWN, bytes(value.data), value.type_code)

    if isinstance(value, (bytes, bytearray, memoryview)):
        return ScalarValue(KIND_BYTES, bytes(value))

    raise UnsupportedShape("unsupported scalar type: {}".format(type(value).__name__))


def to_python(scalar: ScalarValue) -> Any:
    """Plain Python value for an untyped read."""
    kind = scalar.kind
    if kind == KIND_NULL:
        return None
    if kind in (KIND_INT, KIND_UINT, KIND_COUNTER, KIND_TIMESTAMP):
        return int(scalar.value)
    if kind == KIND_F64:
        return float(scalar.value)
    if kind == KIND_BOOLEAN:
        return bool(scalar.value)
    if kind in (KIND_BYTES, KIND_UNKNOWN):
        return bytes(scalar.value)
    return scalar.value
