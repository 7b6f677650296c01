# src/opmeter/meter/ledger.py
"""Context ledger: pending key/value metadata of one operation.

Entries accumulate between lifecycle events and are flushed (cleared) only
when an event is actually emitted. Entries added while the channel of an
event was disabled are carried forward into the next event.

Keys and values are always strings. None keys or values are stored as the
NULL_VALUE placeholder instead of being rejected.
"""

from collections.abc import Iterator

NULL_VALUE = "<null>"


def _as_text(value: object) -> str:
    if value is None:
        return NULL_VALUE
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ContextLedger:
    """Insertion-ordered string map owned by a single operation.

    NOT thread-safe: an operation and its ledger belong to one thread of
    control.
    """

    def __init__(self, entries: dict[str, str] | None = None) -> None:
        self._entries: dict[str, str] = dict(entries) if entries else {}

    def put(self, key: object, value: object) -> None:
        """Add or overwrite an entry; re-putting a key keeps its original position."""
        self._entries[_as_text(key)] = _as_text(value)

    def flag(self, key: object) -> None:
        """Add a value-less entry, rendered by its key alone."""
        self._entries[_as_text(key)] = NULL_VALUE

    def remove(self, key: object) -> bool:
        """Remove an entry. Returns False if the key was absent."""
        return self._entries.pop(_as_text(key), None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def snapshot(self) -> dict[str, str]:
        """Copy of the current entries."""
        return dict(self._entries)

    def copy(self) -> "ContextLedger":
        return ContextLedger(self._entries)

    def get(self, key: str) -> str | None:
        return self._entries.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __repr__(self) -> str:
        return f"ContextLedger({self._entries!r})"
