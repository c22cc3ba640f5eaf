"""Key codec: reduce map keys to the strings MAP containers require.

Only a single scalar token can become a key.  Compound keys (tuples,
mappings, dataclasses, optionals, enum members) are rejected outright;
the codec never tries to flatten them into a string.

Formatting follows the usual display form of each scalar:

    "k"        → "k"
    True       → "true"
    42         → "42"
    1.0        → "1"        (integral floats drop the fraction)
    0.5        → "0.5"
    1e-05      → "0.00001"
    b"\\xffk"   → "\\ufffdk"  (lossy UTF-8)
"""

from __future__ import annotations

import enum
import math
from decimal import Decimal
from typing import Any

from ._errors import TypeMismatch, UnsupportedShape

KEY_ERROR = "map keys must be a string"


def _format_float(f: float) -> str:
    if math.isnan(f):
        return "NaN"
    if math.isinf(f):
        return "inf" if f > 0 else "-inf"
    if f.is_integer():
        text = str(int(f))
        # int() drops the sign of negative zero
        if f == 0.0 and math.copysign(1.0, f) < 0:
            return "-0"
        return text
    # shortest round-trip digits, written out without an exponent
    return format(Decimal(repr(f)), "f")


def normalize_key(key: Any) -> str:
    """Return the string form of a map key, or raise UnsupportedShape."""
    # Enum members first: StrEnum/IntEnum members also pass the str/int checks.
    if isinstance(key, enum.Enum):
        raise UnsupportedShape(KEY_ERROR)

    if isinstance(key, str):
        return str(key)

    # bool before int (bool subclasses int)
    if isinstance(key, bool):
        return "true" if key else "false"

    if isinstance(key, int):
        return str(int(key))

    if isinstance(key, float):
        return _format_float(key)

    if isinstance(key, (bytes, bytearray, memoryview)):
        return bytes(key).decode("utf-8", errors="replace")

    raise UnsupportedShape(KEY_ERROR)


def parse_key(text: str, target: Any) -> Any:
    """Turn a stored key back into the key type a dict target asks for."""
    if target is str or target is Any or target is object:
        return text

    if target is bool:
        if text == "true":
            return True
        if text == "false":
            return False
        raise TypeMismatch("string {!r}".format(text), "boolean key")

    if target is int:
        try:
            return int(text)
        except ValueError:
            raise TypeMismatch("string {!r}".format(text), "integer key") from None

    if target is float:
        try:
            return float(text)
        except ValueError:
            raise TypeMismatch("string {!r}".format(text), "float key") from None

    if target is bytes:
        return text.encode("utf-8")

    raise UnsupportedShape(KEY_ERROR)
