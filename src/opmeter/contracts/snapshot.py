# src/opmeter/contracts/snapshot.py
"""Read-only snapshot of an operation, taken at each emission point.

The snapshot is what the formatter renders and what the data channel
serializes. It is a copy: later mutation of the operation never changes a
snapshot already handed to a logger.

Times are monotonic nanosecond instants; 0 means "unset".
"""

from dataclasses import dataclass, field
from typing import Any

from opmeter.contracts.enums import OperationState

_NANOS_PER_SECOND = 1_000_000_000


def format_full_id(category: str, name: str | None, session_id: str, position: int) -> str:
    """Fully-qualified operation id: ``category[/name]@session#position``."""
    identity = category if name is None else f"{category}/{name}"
    return f"{identity}@{session_id}#{position}"


@dataclass(frozen=True, slots=True)
class OperationSnapshot:
    """Immutable view of one operation at a point in time.

    Attributes:
        category: Operation category (usually a dotted module name)
        name: Optional operation name, "/"-joined for sub-operations
        parent: Full id of the enclosing operation, if any
        session_id: Short session id of the emitting process
        position: Sequence number for this category/name
        state: Lifecycle state at snapshot time
        current_time: Clock reading when the snapshot was taken
        time_limit: Slow threshold in nanoseconds (0 = no limit)
        context: Context entries flushed with this snapshot
    """

    category: str
    name: str | None
    parent: str | None
    session_id: str
    position: int
    state: OperationState
    description: str | None = None
    create_time: int = 0
    start_time: int = 0
    stop_time: int = 0
    current_time: int = 0
    time_limit: int = 0
    current_iteration: int = 0
    expected_iterations: int = 0
    ok_path: str | None = None
    reject_path: str | None = None
    fail_path: str | None = None
    fail_message: str | None = None
    context: dict[str, str] = field(default_factory=dict)

    @property
    def full_id(self) -> str:
        return format_full_id(self.category, self.name, self.session_id, self.position)

    @property
    def is_started(self) -> bool:
        return self.start_time != 0

    @property
    def is_stopped(self) -> bool:
        return self.stop_time != 0

    @property
    def is_ok(self) -> bool:
        return self.state is OperationState.OK

    @property
    def is_reject(self) -> bool:
        return self.state is OperationState.REJECTED

    @property
    def is_fail(self) -> bool:
        return self.state is OperationState.FAILED

    @property
    def path(self) -> str | None:
        """The outcome path that applies to the current state."""
        if self.fail_path is not None:
            return self.fail_path
        if self.reject_path is not None:
            return self.reject_path
        return self.ok_path

    @property
    def execution_time(self) -> int:
        """Nanoseconds between start and stop (or snapshot time while running)."""
        if not self.is_started:
            return 0
        if not self.is_stopped:
            return self.current_time - self.start_time
        return self.stop_time - self.start_time

    @property
    def waiting_time(self) -> int:
        """Nanoseconds between creation and start (or snapshot time if not started)."""
        if not self.is_started:
            return self.current_time - self.create_time
        return self.start_time - self.create_time

    @property
    def iterations_per_second(self) -> float:
        elapsed = self.execution_time
        if self.current_iteration == 0 or elapsed <= 0:
            return 0.0
        return self.current_iteration / elapsed * _NANOS_PER_SECOND

    @property
    def is_slow(self) -> bool:
        return self.time_limit > 0 and self.is_started and self.execution_time > self.time_limit

    def to_dict(self) -> dict[str, Any]:
        """Structured record for the data channel.

        Unset optional fields and zero counters are omitted to keep records
        compact; identity fields are always present.
        """
        record: dict[str, Any] = {
            "id": self.full_id,
            "category": self.category,
            "session": self.session_id,
            "position": self.position,
            "state": self.state.value,
        }
        optional: dict[str, Any] = {
            "name": self.name,
            "parent": self.parent,
            "description": self.description,
            "ok_path": self.ok_path,
            "reject_path": self.reject_path,
            "fail_path": self.fail_path,
            "fail_message": self.fail_message,
        }
        record.update({key: value for key, value in optional.items() if value is not None})
        counters = {
            "create_time": self.create_time,
            "start_time": self.start_time,
            "stop_time": self.stop_time,
            "time_limit": self.time_limit,
            "iteration": self.current_iteration,
            "expected_iterations": self.expected_iterations,
        }
        record.update({key: value for key, value in counters.items() if value != 0})
        if self.context:
            record["context"] = dict(self.context)
        return record
