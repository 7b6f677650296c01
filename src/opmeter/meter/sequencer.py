# src/opmeter/meter/sequencer.py
"""Per-identity position counters.

Each operation gets a position: the count of operations created so far for
the same identity key (``category`` or ``category/name``). Positions start
at 1 and wrap back to 1, never 0, after the maximum value.

Thread Safety:
    next_position() may be called concurrently from any thread. A single
    lock guards the counter map; the critical section is a dict lookup and
    an integer add, so contention stays low.
"""

import threading

MAX_POSITION = 2**63 - 1


def identity_key(category: str, name: str | None = None) -> str:
    """Counter key for an operation identity."""
    return category if name is None else f"{category}/{name}"


class PositionSequencer:
    """Keyed monotonic counters with wraparound.

    Counters are created lazily on first use and never removed.

    Example:
        sequencer = PositionSequencer()
        sequencer.next_position("app.db", "query")  # 1
        sequencer.next_position("app.db", "query")  # 2
        sequencer.next_position("app.db")           # 1 (different key)
    """

    def __init__(self, max_position: int = MAX_POSITION) -> None:
        """Initialize the sequencer.

        Args:
            max_position: Largest position handed out before wrapping to 1.

        Raises:
            ValueError: If max_position < 1.
        """
        if max_position < 1:
            raise ValueError(f"max_position must be >= 1, got {max_position}")
        self._max_position = max_position
        self._counters: dict[str, int] = {}
        self._lock = threading.Lock()

    @property
    def max_position(self) -> int:
        return self._max_position

    def next_position(self, category: str, name: str | None = None) -> int:
        """Advance and return the counter for ``category[/name]``."""
        key = identity_key(category, name)
        with self._lock:
            current = self._counters.get(key, 0)
            position = 1 if current >= self._max_position else current + 1
            self._counters[key] = position
        return position

    def current(self, category: str, name: str | None = None) -> int:
        """Last position handed out for the key (0 if never used)."""
        with self._lock:
            return self._counters.get(identity_key(category, name), 0)

    def seed(self, category: str, name: str | None = None, *, value: int) -> None:
        """Set the counter so that the next position is ``value + 1`` (or 1 on wrap).

        Raises:
            ValueError: If value is negative or above max_position.
        """
        if not 0 <= value <= self._max_position:
            raise ValueError(f"value must be within [0, {self._max_position}], got {value}")
        with self._lock:
            self._counters[identity_key(category, name)] = value

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)
