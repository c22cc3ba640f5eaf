"""treecodec error codes and exception classes.

Every failure the codec reports is a CodecError.  The `.code` attribute is
one of the ERR_* strings below, so callers can switch on a single value;
each taxonomy entry also has its own subclass for callers who prefer
``except TypeMismatch:``.

The codec never retries or recovers.  Writes that happened before a failure
stay in whatever transaction the caller had open.
"""

from __future__ import annotations

from typing import Optional

# ── Error codes ──────────────────────────────────────────────
# Grep-friendly, stable across releases.

ERR_UNSUPPORTED_SHAPE: str = "ERR_UNSUPPORTED_SHAPE"  # value can't map onto map/list/text/scalar
ERR_TYPE_MISMATCH: str = "ERR_TYPE_MISMATCH"          # stored kind incompatible with requested type
ERR_PROTOCOL: str = "ERR_PROTOCOL"                    # cursor key/value protocol misuse
ERR_STORE: str = "ERR_STORE"                          # underlying document operation failed
ERR_CUSTOM: str = "ERR_CUSTOM"                        # a value type's own validation failed


class CodecError(Exception):
    """Base exception for all treecodec failures."""

    code: str = ERR_CUSTOM

    def __init__(self, msg: str = "", code: Optional[str] = None) -> None:
        if code is not None:
            self.code = code
        super().__init__(msg or self.code)


class UnsupportedShape(CodecError):
    """The value's shape has no representation in the store's model.

    Chiefly raised for map keys that do not reduce to one scalar token and
    for integers outside the 64-bit range.  Always raised before the encoder
    touches the store.
    """

    code = ERR_UNSUPPORTED_SHAPE


class TypeMismatch(CodecError):
    """Decode asked for a type the stored value can't satisfy.

    `.found` is the human-readable name of what is actually stored
    ("boolean", "list", "null", ...); `.expected` names what was asked for.
    """

    code = ERR_TYPE_MISMATCH

    def __init__(self, found: str, expected: str = "") -> None:
        self.found = found
        self.expected = expected
        if expected:
            msg = "expected {}, found {}".format(expected, found)
        else:
            msg = "unexpected {}".format(found)
        super().__init__(msg)


class ProtocolViolation(CodecError, RuntimeError):
    """A MapCursor was driven out of order.

    This is a bug in the calling code, not a data problem, which is why it
    is also a RuntimeError.
    """

    code = ERR_PROTOCOL


class StoreError(CodecError):
    """The document store rejected an operation.

    The store's own exception is chained as ``__cause__``.
    """

    code = ERR_STORE


class Custom(CodecError):
    """Escape hatch for validation errors raised by the value types themselves."""

    code = ERR_CUSTOM
