# src/opmeter/meter/factory.py
"""Creation of operations and lookup of the current one.

An OperationFactory owns everything operations share: settings, the position
sequencer, the per-thread operation stack, the clock and the message
formatter. Most programs use the process-wide default factory through the
module-level helpers:

    from opmeter import new_operation

    op = new_operation("app.billing", "invoice").start()
    ...
    op.ok()

The default factory is built lazily from OPMETER_* environment variables.
Tests and embedding applications install their own with set_factory().
"""

import threading
import time
from collections.abc import Callable

from opmeter.core.config import MeterSettings, settings_from_env
from opmeter.core.logging import get_logger
from opmeter.core.session import short_session_id
from opmeter.meter.channels import ChannelsProtocol, LoggingChannels
from opmeter.meter.formatting import Formatter, MessageFormatter
from opmeter.meter.ledger import ContextLedger
from opmeter.meter.operation import Operation
from opmeter.meter.sequencer import PositionSequencer
from opmeter.meter.stack import OperationStack

logger = get_logger(__name__)

# Category of the placeholder returned when no operation is running
UNKNOWN_CATEGORY = "unknown"

ChannelsFactory = Callable[[str, MeterSettings], ChannelsProtocol]


class OperationFactory:
    """Creates operations bound to shared collaborators.

    Args:
        settings: Meter settings (defaults to MeterSettings())
        sequencer: Position sequencer (a fresh one per factory by default)
        stack: Operation stack (a fresh one per factory by default)
        clock: Nanosecond clock (time.monotonic_ns)
        formatter: Message text renderer (MessageFormatter(settings))
        channels_factory: Builds the channels of a category
            (LoggingChannels.for_category)
        session_id: Session id embedded in operation ids (derived from
            the process session uuid and settings.session_id_size)
    """

    def __init__(
        self,
        settings: MeterSettings | None = None,
        *,
        sequencer: PositionSequencer | None = None,
        stack: OperationStack[Operation] | None = None,
        clock: Callable[[], int] = time.monotonic_ns,
        formatter: Formatter | None = None,
        channels_factory: ChannelsFactory | None = None,
        session_id: str | None = None,
    ) -> None:
        self.settings = settings if settings is not None else MeterSettings()
        self.sequencer = sequencer if sequencer is not None else PositionSequencer()
        self.stack: OperationStack[Operation] = stack if stack is not None else OperationStack()
        self.clock = clock
        self.formatter: Formatter = formatter if formatter is not None else MessageFormatter(self.settings)
        self._channels_factory: ChannelsFactory = channels_factory or LoggingChannels.for_category
        self.session_id = session_id if session_id is not None else short_session_id(self.settings.session_id_size)
        self._unknown: Operation | None = None

    def channels_for(self, category: str) -> ChannelsProtocol:
        return self._channels_factory(category, self.settings)

    def new_operation(self, category: str, name: str | None = None) -> Operation:
        """Create a CREATED operation with the next position of its identity."""
        return self.create(category, name)

    def create(
        self,
        category: str,
        name: str | None = None,
        *,
        parent: str | None = None,
        channels: ChannelsProtocol | None = None,
        context: ContextLedger | None = None,
    ) -> Operation:
        """Lower-level constructor used by new_operation() and Operation.sub()."""
        if not isinstance(category, str):
            raise TypeError(f"category must be a str, got {type(category).__name__}")
        return Operation(
            self,
            category,
            name,
            position=self.sequencer.next_position(category, name),
            channels=channels if channels is not None else self.channels_for(category),
            parent=parent,
            context=context,
        )

    def current_operation(self) -> Operation:
        """Innermost running operation of this thread of control.

        Never returns None: with no operation running, a placeholder in the
        "unknown" category (position 0, never started) is returned and a warning
        is logged.
        """
        current = self.stack.peek()
        if current is not None:
            return current
        logger.warning("No current operation", category=UNKNOWN_CATEGORY)
        return self._unknown_operation()

    def current_sub_operation(self, name: str) -> Operation:
        """New sub-operation of the current operation (not started)."""
        return self.current_operation().sub(name)

    def _unknown_operation(self) -> Operation:
        if self._unknown is None:
            self._unknown = Operation(
                self,
                UNKNOWN_CATEGORY,
                position=0,
                channels=self.channels_for(UNKNOWN_CATEGORY),
            )
        return self._unknown


# =============================================================================
# Process-wide default factory
# =============================================================================

_default_factory: OperationFactory | None = None
_default_lock = threading.Lock()


def get_factory() -> OperationFactory:
    """Process-wide factory, built from environment settings on first use."""
    global _default_factory
    if _default_factory is None:
        with _default_lock:
            if _default_factory is None:
                _default_factory = OperationFactory(settings_from_env())
    return _default_factory


def set_factory(factory: OperationFactory | None) -> None:
    """Install the process-wide factory. None resets to lazy construction."""
    global _default_factory
    with _default_lock:
        _default_factory = factory


def new_operation(category: str, name: str | None = None) -> Operation:
    return get_factory().new_operation(category, name)


def current_operation() -> Operation:
    return get_factory().current_operation()


def current_sub_operation(name: str) -> Operation:
    return get_factory().current_sub_operation(name)
