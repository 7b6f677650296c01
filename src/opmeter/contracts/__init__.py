# src/opmeter/contracts/__init__.py
"""Shared types of the operation engine.

Everything here is a plain value: enums, frozen dataclasses and the
validation result type. Nothing in this package logs or holds state.
"""

from opmeter.contracts.enums import Marker, OperationState
from opmeter.contracts.errors import ACCEPTED, SettingsError, Validation, rejected
from opmeter.contracts.paths import Display, Fault, PathValue, Symbol, Text, path_text, to_path_value
from opmeter.contracts.snapshot import OperationSnapshot, format_full_id

__all__ = [
    "ACCEPTED",
    "Display",
    "Fault",
    "Marker",
    "OperationSnapshot",
    "OperationState",
    "PathValue",
    "SettingsError",
    "Symbol",
    "Text",
    "Validation",
    "format_full_id",
    "path_text",
    "rejected",
    "to_path_value",
]
