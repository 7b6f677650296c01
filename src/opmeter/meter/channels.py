# src/opmeter/meter/channels.py
"""Logger collaborator of an operation: a message channel and a data channel.

The message channel carries human-readable lifecycle messages (DEBUG, INFO,
WARNING, ERROR) and misuse diagnostics. The data channel carries one
structured snapshot per lifecycle event at TRACE. Both channels are level
gated independently, and every record is tagged with a ``Marker``.
"""

import json
import logging
from typing import Any, Protocol, runtime_checkable

from opmeter.contracts.enums import Marker
from opmeter.core.config import MeterSettings
from opmeter.core.logging import TRACE


@runtime_checkable
class ChannelsProtocol(Protocol):
    """Protocol for the two-channel logger collaborator.

    Error handling:
        - Implementations should not raise; the engine catches and reports
          anything they do raise as a BUG diagnostic.
    """

    def is_message_enabled(self, level: int) -> bool:
        """Whether a message record at ``level`` would be emitted."""
        ...

    def message(
        self,
        level: int,
        marker: Marker,
        text: str,
        *,
        operation_id: str,
        exc_info: BaseException | None = None,
    ) -> None:
        """Emit a message-channel record."""
        ...

    def is_data_enabled(self) -> bool:
        """Whether a TRACE data record would be emitted."""
        ...

    def data(self, marker: Marker, record: dict[str, Any], *, operation_id: str) -> None:
        """Emit a data-channel record."""
        ...


class LoggingChannels:
    """Channels backed by two stdlib loggers.

    Records carry ``marker`` and ``operation`` attributes (and ``data`` for
    the data channel) via ``extra``; core.logging.configure_logging lifts
    them into the structured output.

    Example:
        channels = LoggingChannels.for_category("app.billing", settings)
        channels.message(logging.INFO, Marker.MSG_OK, "OK: ...", operation_id=op_id)
    """

    def __init__(self, message_logger: logging.Logger, data_logger: logging.Logger) -> None:
        self._message_logger = message_logger
        self._data_logger = data_logger

    @classmethod
    def for_category(cls, category: str, settings: MeterSettings) -> "LoggingChannels":
        """Channels named after ``category`` with the configured prefixes/suffixes."""
        return cls(
            logging.getLogger(settings.message_logger_name(category)),
            logging.getLogger(settings.data_logger_name(category)),
        )

    @property
    def message_logger(self) -> logging.Logger:
        return self._message_logger

    @property
    def data_logger(self) -> logging.Logger:
        return self._data_logger

    def is_message_enabled(self, level: int) -> bool:
        return self._message_logger.isEnabledFor(level)

    def message(
        self,
        level: int,
        marker: Marker,
        text: str,
        *,
        operation_id: str,
        exc_info: BaseException | None = None,
    ) -> None:
        self._message_logger.log(
            level,
            text,
            exc_info=exc_info,
            extra={"marker": marker.value, "operation": operation_id},
        )

    def is_data_enabled(self) -> bool:
        return self._data_logger.isEnabledFor(TRACE)

    def data(self, marker: Marker, record: dict[str, Any], *, operation_id: str) -> None:
        self._data_logger.log(
            TRACE,
            json.dumps(record, separators=(",", ":")),
            extra={"marker": marker.value, "operation": operation_id, "data": record},
        )
