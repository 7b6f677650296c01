# src/opmeter/contracts/errors.py
"""Validation outcomes and configuration errors.

Operation misuse is never raised to the caller. Validators return a
``Validation`` and the engine logs the diagnostic before discarding the call.
Only configuration problems surface as exceptions.
"""

from dataclasses import dataclass

from opmeter.contracts.enums import Marker


@dataclass(frozen=True, slots=True)
class Validation:
    """Result of validating one API call against the operation state.

    Attributes:
        accepted: True when the call may proceed
        diagnostic: Marker logged when the call was rejected
        reason: Human-readable reason for the rejection
    """

    accepted: bool
    diagnostic: Marker | None = None
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.accepted


ACCEPTED = Validation(accepted=True)


def rejected(diagnostic: Marker, reason: str) -> Validation:
    """Build a rejected validation."""
    return Validation(accepted=False, diagnostic=diagnostic, reason=reason)


class SettingsError(Exception):
    """Raised when meter settings cannot be loaded or fail validation.

    Attributes:
        source: Where the settings came from (file path or "environment")
        message: Human-readable error description
    """

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        self.message = message
        super().__init__(f"Invalid meter settings from '{source}': {message}")
