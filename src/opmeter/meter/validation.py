# src/opmeter/meter/validation.py
"""Precondition checks and diagnostic logging for operation misuse.

Checks are pure functions of the operation state returning a ``Validation``.
``Diagnostics`` logs rejected validations on the message channel at ERROR,
tagged with the validation's marker, and tells the caller whether to proceed.
Nothing here raises: misuse is logged and the call is discarded.
"""

import logging
from collections.abc import Callable

from opmeter.contracts.enums import Marker, OperationState
from opmeter.contracts.errors import ACCEPTED, Validation, rejected
from opmeter.meter.channels import ChannelsProtocol

# Marker reported when a terminal method is called in the wrong state
STOP_MARKERS: dict[OperationState, Marker] = {
    OperationState.OK: Marker.INCONSISTENT_OK,
    OperationState.REJECTED: Marker.INCONSISTENT_REJECT,
    OperationState.FAILED: Marker.INCONSISTENT_FAIL,
}


def check_start(state: OperationState) -> Validation:
    if state is OperationState.STARTED:
        return rejected(Marker.INCONSISTENT_START, "Operation already started")
    if state.is_terminal:
        return rejected(Marker.INCONSISTENT_START, "Operation already stopped")
    return ACCEPTED


def check_increment(state: OperationState) -> Validation:
    if state is OperationState.CREATED:
        return rejected(Marker.INCONSISTENT_INCREMENT, "Operation incremented but not started")
    if state.is_terminal:
        return rejected(Marker.INCONSISTENT_INCREMENT, "Operation incremented after stopped")
    return ACCEPTED


def check_progress(state: OperationState) -> Validation:
    if state is OperationState.CREATED:
        return rejected(Marker.INCONSISTENT_PROGRESS, "Operation progress but not started")
    if state.is_terminal:
        return rejected(Marker.INCONSISTENT_PROGRESS, "Operation progress after stopped")
    return ACCEPTED


def check_mutable(state: OperationState) -> Validation:
    """Configuration and context calls are discarded once the operation stopped."""
    if state.is_terminal:
        return rejected(Marker.ILLEGAL, "Operation already stopped")
    return ACCEPTED


def check_stop(state: OperationState, outcome: OperationState) -> Validation:
    """Terminal call precondition.

    A rejected validation from CREATED is still followed by the transition
    (auto-correction); one from a terminal state is not.
    """
    marker = STOP_MARKERS[outcome]
    if state.is_terminal:
        return rejected(marker, "Operation already stopped")
    if state is OperationState.CREATED:
        return rejected(marker, "Operation stopped but not started")
    return ACCEPTED


def check_not_none(value: object) -> Validation:
    if value is None:
        return rejected(Marker.ILLEGAL, "Null argument")
    return ACCEPTED


class Diagnostics:
    """Logs misuse of one operation on its message channel.

    Message shapes:
        ILLEGAL:        "Illegal call to Operation.<method>: <reason>; id=<id>"
        INCONSISTENT_*: "<reason>; id=<id>"
        BUG:            "Operation.<method> raised <type>; id=<id>" (with exc_info)
    """

    def __init__(self, channels: ChannelsProtocol, operation_id: Callable[[], str]) -> None:
        self._channels = channels
        self._operation_id = operation_id

    def accept(self, validation: Validation, method: str) -> bool:
        """Log a rejected validation. Returns ``validation.accepted``."""
        if validation.accepted:
            return True
        self.report(validation, method)
        return False

    def report(self, validation: Validation, method: str) -> None:
        marker = validation.diagnostic or Marker.ILLEGAL
        operation_id = self._operation_id()
        if marker is Marker.ILLEGAL:
            text = f"Illegal call to Operation.{method}: {validation.reason}; id={operation_id}"
        else:
            text = f"{validation.reason}; id={operation_id}"
        self._emit(marker, text, operation_id)

    def out_of_order(self, outcome: OperationState) -> None:
        operation_id = self._operation_id()
        self._emit(STOP_MARKERS[outcome], f"Operation out of order; id={operation_id}", operation_id)

    def bug(self, method: str, error: Exception) -> None:
        operation_id = self._operation_id()
        self._emit(
            Marker.BUG,
            f"Operation.{method} raised {type(error).__name__}; id={operation_id}",
            operation_id,
            exc_info=error,
        )

    def _emit(self, marker: Marker, text: str, operation_id: str, exc_info: BaseException | None = None) -> None:
        if self._channels.is_message_enabled(logging.ERROR):
            self._channels.message(logging.ERROR, marker, text, operation_id=operation_id, exc_info=exc_info)
