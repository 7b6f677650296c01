# src/opmeter/meter/stack.py
"""Stack of running operations for the current thread of control.

``start()`` pushes an operation and its termination pops it, which makes
the enclosing operation "current" again. Sub-operations look up their parent
here.

The stack lives in a ``contextvars.ContextVar`` holding an immutable tuple.
Each thread starts with its own empty stack, and each asyncio task works on
the snapshot it was created with, so pushes and pops never need locking and
never leak between threads or tasks.
"""

from contextvars import ContextVar
from enum import Enum, auto
from typing import Generic, TypeVar

T = TypeVar("T")


class Removal(Enum):
    """How pop() found the item.

    TOP: item was on top, stack restored to what was beneath it
    OUT_OF_ORDER: item was deeper in the stack; it and everything above it
        were dropped
    ABSENT: item not on this stack (never pushed, or pushed in another
        thread of control); stack unchanged
    """

    TOP = auto()
    OUT_OF_ORDER = auto()
    ABSENT = auto()


class OperationStack(Generic[T]):
    """LIFO of running operations scoped to the calling thread or task.

    Items are compared by identity.

    Example:
        stack = OperationStack()
        stack.push(outer)
        stack.push(inner)
        stack.pop(inner)  # Removal.TOP, outer is current again
    """

    def __init__(self, name: str = "opmeter_operations") -> None:
        self._entries: ContextVar[tuple[T, ...]] = ContextVar(name, default=())

    def push(self, item: T) -> None:
        self._entries.set((*self._entries.get(), item))

    def pop(self, item: T) -> Removal:
        """Remove ``item`` and everything pushed after it."""
        entries = self._entries.get()
        if entries and entries[-1] is item:
            self._entries.set(entries[:-1])
            return Removal.TOP
        for index in range(len(entries) - 1, -1, -1):
            if entries[index] is item:
                self._entries.set(entries[:index])
                return Removal.OUT_OF_ORDER
        return Removal.ABSENT

    def peek(self) -> T | None:
        """Top of the stack, or None when empty."""
        entries = self._entries.get()
        return entries[-1] if entries else None

    def snapshot(self) -> tuple[T, ...]:
        """Current entries, bottom first."""
        return self._entries.get()

    def __len__(self) -> int:
        return len(self._entries.get())

    def __contains__(self, item: object) -> bool:
        return any(entry is item for entry in self._entries.get())
