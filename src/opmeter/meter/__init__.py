# src/opmeter/meter/__init__.py
"""Operation lifecycle engine and its collaborators."""

from opmeter.meter.channels import ChannelsProtocol, LoggingChannels
from opmeter.meter.factory import OperationFactory
from opmeter.meter.formatting import MessageFormatter
from opmeter.meter.iterations import IterationTracker
from opmeter.meter.ledger import NULL_VALUE, ContextLedger
from opmeter.meter.operation import RESULT_CONTEXT_KEY, SCOPE_EXIT_PATH, Operation
from opmeter.meter.sequencer import MAX_POSITION, PositionSequencer
from opmeter.meter.stack import OperationStack, Removal

__all__ = [
    "MAX_POSITION",
    "NULL_VALUE",
    "RESULT_CONTEXT_KEY",
    "SCOPE_EXIT_PATH",
    "ChannelsProtocol",
    "ContextLedger",
    "IterationTracker",
    "LoggingChannels",
    "MessageFormatter",
    "Operation",
    "OperationFactory",
    "OperationStack",
    "PositionSequencer",
    "Removal",
]
