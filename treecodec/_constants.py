"""treecodec constants — container kinds, scalar kinds, integer ranges, limits.

The names here are the vocabulary shared by the store interface, the
encoder and the decoder.  Kind strings double as the machine-readable tag
on ScalarValue / ContainerRef; the *_NAMES tables hold the human-readable
names that TypeMismatch errors report.
"""

from __future__ import annotations

from typing import Dict

# Identity of the document-root map.  Every document has exactly one.
ROOT: str = "_root"

# ── Container kinds ──────────────────────────────────────────
# MAP and TABLE hold string-keyed children, LIST holds index-keyed children,
# TEXT is a flat character sequence.  The encoder only ever creates MAP and
# LIST; TEXT and TABLE are read-side only.
OBJ_MAP: str = "map"
OBJ_LIST: str = "list"
OBJ_TEXT: str = "text"
OBJ_TABLE: str = "table"

OBJ_TYPES = (OBJ_MAP, OBJ_LIST, OBJ_TEXT, OBJ_TABLE)

# ── Scalar kinds ─────────────────────────────────────────────
KIND_STR: str = "str"
KIND_BYTES: str = "bytes"
KIND_INT: str = "int"
KIND_UINT: str = "uint"
KIND_F64: str = "f64"
KIND_BOOLEAN: str = "boolean"
KIND_NULL: str = "null"
KIND_COUNTER: str = "counter"
KIND_TIMESTAMP: str = "timestamp"
KIND_UNKNOWN: str = "unknown"   # unrecognized tag, raw bytes payload

SCALAR_KINDS = (
    KIND_STR,
    KIND_BYTES,
    KIND_INT,
    KIND_UINT,
    KIND_F64,
    KIND_BOOLEAN,
    KIND_NULL,
    KIND_COUNTER,
    KIND_TIMESTAMP,
    KIND_UNKNOWN,
)

# Kinds a caller asking for an integer may read.
INTEGER_KINDS = (KIND_INT, KIND_UINT, KIND_COUNTER, KIND_TIMESTAMP)

# ── Human-readable kind names (used in TypeMismatch) ─────────
KIND_NAMES: Dict[str, str] = {
    OBJ_MAP: "map",
    OBJ_TABLE: "table",
    OBJ_LIST: "list",
    OBJ_TEXT: "text",
    KIND_BYTES: "byte buffer",
    KIND_STR: "string",
    KIND_INT: "integer number",
    KIND_UINT: "unsigned integer number",
    KIND_F64: "floating point number",
    KIND_COUNTER: "counter",
    KIND_TIMESTAMP: "timestamp",
    KIND_BOOLEAN: "boolean",
    KIND_NULL: "null",
    KIND_UNKNOWN: "unknown scalar",
}

# ── 64-bit integer ranges ────────────────────────────────────
# Python ints are arbitrary-precision; the store's are not.  Anything outside
# [INT64_MIN, UINT64_MAX] cannot be stored without losing bits.
INT64_MIN: int = -(2**63)
INT64_MAX: int = 2**63 - 1
UINT64_MAX: int = 2**64 - 1

# ── Default limits ───────────────────────────────────────────
# Container nesting allowed within one encode or decode call.
DEFAULT_MAX_DEPTH: int = 64
