"""
opmeter: lifecycle logging for discrete units of work.

An operation is created, started, optionally advanced through iterations,
and terminated as ok, rejected or failed. Every lifecycle event is reported
as a human-readable message record and a structured data record.
"""

from opmeter.contracts import Marker, OperationSnapshot, OperationState, SettingsError
from opmeter.core.config import MeterSettings, load_settings
from opmeter.core.logging import configure_logging
from opmeter.core.operations import track_operation
from opmeter.meter.factory import (
    OperationFactory,
    current_operation,
    current_sub_operation,
    get_factory,
    new_operation,
    set_factory,
)
from opmeter.meter.operation import Operation

__version__ = "0.1.0"

__all__ = [
    "Marker",
    "MeterSettings",
    "Operation",
    "OperationFactory",
    "OperationSnapshot",
    "OperationState",
    "SettingsError",
    "configure_logging",
    "current_operation",
    "current_sub_operation",
    "get_factory",
    "load_settings",
    "new_operation",
    "set_factory",
    "track_operation",
]
