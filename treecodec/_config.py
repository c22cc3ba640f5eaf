"""CodecConfig: per-call knobs for the encoder and decoder.

CodecConfig is a frozen dataclass.  Pass one to encode()/decode()/
set_value()/get_value(), or build one from the environment with
CodecConfig.from_env().
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from ._constants import DEFAULT_MAX_DEPTH


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        msg = "{} must be an integer, got {!r}".format(name, raw)
        raise ValueError(msg) from None


@dataclass(frozen=True)
class CodecConfig:
    """Immutable codec configuration.

    Attributes:
        max_depth: Maximum container nesting within one encode or decode call.
        truncate_integers: When True, integers outside the 64-bit range are
            wrapped to int64 (two's complement) instead of rejected.
        reuse_containers: When True, encoding a map into a slot that already
            holds a map writes into that map instead of replacing it.  Keys
            absent from the new value are kept.  Lists are always replaced.
    """

    max_depth: int = DEFAULT_MAX_DEPTH
    truncate_integers: bool = False
    reuse_containers: bool = False

    def __post_init__(self) -> None:
        if self.max_depth < 1:
            msg = "max_depth must be >= 1, got {}".format(self.max_depth)
            raise ValueError(msg)

    @classmethod
    def from_env(cls) -> "CodecConfig":
        return cls(
            max_depth=_env_int("TREECODEC_MAX_DEPTH", DEFAULT_MAX_DEPTH),
            truncate_integers=_env_bool("TREECODEC_TRUNCATE_INTEGERS", False),
            reuse_containers=_env_bool("TREECODEC_REUSE_CONTAINERS", False),
        )


DEFAULT_CONFIG = CodecConfig()
