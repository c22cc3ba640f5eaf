"""Lazy, forward-only traversal over one container's children.

SequenceCursor is a plain Python iterator over a LIST.  MapCursor walks a
MAP/TABLE with an explicit two-phase protocol: next_key() then
next_value(), once per entry.  Its state machine:

    AWAITING_KEY --next_key()--> KEY_READY --next_value()--> AWAITING_KEY
    AWAITING_KEY --next_key() at end--> END

Calling next_value() anywhere but KEY_READY raises ProtocolViolation.
Neither cursor can be restarted; build a new Decoder to read again.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, Optional, Tuple

from ._errors import ProtocolViolation
from ._store import ObjId, Value, store_errors

AWAITING_KEY: str = "awaiting_key"
KEY_READY: str = "key_ready"
END: str = "end"

_DONE = object()


class SequenceCursor:
    """Iterator of child decoders, one per list element, in positional order."""

    def __init__(self, values: Iterator[Value], make: Callable[[Value], Any],
                 obj: ObjId = "") -> None:
        self._values = values
        self._make = make
        self.obj = obj
        self.index = 0

    def __iter__(self) -> "SequenceCursor":
        return self

    def __next__(self) -> Any:
        with store_errors("list iteration"):
            value = next(self._values, _DONE)
        if value is _DONE:
            raise StopIteration
        self.index += 1
        return self._make(value)


class MapCursor:
    """Two-phase key/value traversal over a map-shaped container."""

    def __init__(self, entries: Iterator[Tuple[str, Value]],
                 make: Callable[[Value], Any], obj: ObjId = "") -> None:
        self._entries = entries
        self._make = make
        self._current: Optional[Value] = None
        self.obj = obj
        self.state = AWAITING_KEY

    def next_key(self) -> Optional[str]:
        """Advance to the next entry and return its key, or None at the end.

        A key whose value was never read is simply skipped.
        """
        if self.state == END:
            return None
        with store_errors("map iteration"):
            entry = next(self._entries, None)
        if entry is None:
            self._current = None
            self.state = END
            return None
        key, value = entry
        self._current = value
        self.state = KEY_READY
        return key

    def next_value(self) -> Any:
        """Decoder for the value paired with the key next_key() just returned."""
        if self.state != KEY_READY:
            raise ProtocolViolation(
                "next_value() called without a preceding next_key() (state: {})".format(
                    self.state))
        value = self._current
        self._current = None
        self.state = AWAITING_KEY
        return self._make(value)

    def items(self) -> Iterator[Tuple[str, Any]]:
        """(key, decoder) pairs, driven through the two-phase protocol."""
        while True:
            key = self.next_key()
            if key is None:
                return
            yield key, self.next_value()
