# src/opmeter/contracts/enums.py
"""Status codes and log markers shared across the operation engine.

Markers are attached to every record emitted by an operation so that log
pipelines can route lifecycle messages, structured data records and misuse
diagnostics without parsing message text.
"""

from enum import StrEnum


class OperationState(StrEnum):
    """Lifecycle state of an operation.

    CREATED -> STARTED -> {OK | REJECTED | FAILED}. The last three are terminal.
    """

    CREATED = "created"
    STARTED = "started"
    OK = "ok"
    REJECTED = "rejected"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Whether no further lifecycle transition is possible."""
        return self in (OperationState.OK, OperationState.REJECTED, OperationState.FAILED)


class Marker(StrEnum):
    """Marker attached to a channel record (``record.marker``).

    Values:
        MSG_*: Human-readable lifecycle message (message channel)
        DATA_*: Structured snapshot record at TRACE (data channel)
        ILLEGAL: Illegal argument, call discarded
        INCONSISTENT_*: Lifecycle method called in the wrong state
        BUG: Unexpected exception inside the engine, swallowed
    """

    MSG_START = "MSG_START"
    MSG_PROGRESS = "MSG_PROGRESS"
    MSG_SLOW_PROGRESS = "MSG_SLOW_PROGRESS"
    MSG_OK = "MSG_OK"
    MSG_SLOW_OK = "MSG_SLOW_OK"
    MSG_REJECT = "MSG_REJECT"
    MSG_FAIL = "MSG_FAIL"

    DATA_START = "DATA_START"
    DATA_PROGRESS = "DATA_PROGRESS"
    DATA_SLOW_PROGRESS = "DATA_SLOW_PROGRESS"
    DATA_OK = "DATA_OK"
    DATA_SLOW_OK = "DATA_SLOW_OK"
    DATA_REJECT = "DATA_REJECT"
    DATA_FAIL = "DATA_FAIL"

    ILLEGAL = "ILLEGAL"
    INCONSISTENT_START = "INCONSISTENT_START"
    INCONSISTENT_INCREMENT = "INCONSISTENT_INCREMENT"
    INCONSISTENT_PROGRESS = "INCONSISTENT_PROGRESS"
    INCONSISTENT_OK = "INCONSISTENT_OK"
    INCONSISTENT_REJECT = "INCONSISTENT_REJECT"
    INCONSISTENT_FAIL = "INCONSISTENT_FAIL"
    BUG = "BUG"

    @property
    def is_diagnostic(self) -> bool:
        """Whether this marker flags API misuse or an internal fault."""
        return self is Marker.ILLEGAL or self is Marker.BUG or self.value.startswith("INCONSISTENT_")
