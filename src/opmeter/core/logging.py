# src/opmeter/core/logging.py
"""Structured logging configuration for opmeter.

Uses structlog for structured logging of the package's own diagnostics,
and routes the per-operation channels (plain stdlib loggers) through the
same processor chain.

Architecture:
    This module configures BOTH structlog and stdlib logging to emit
    consistent output (JSON or console). It uses ProcessorFormatter
    to route stdlib log records through structlog's processor chain,
    so that operation channel records (stdlib loggers carrying marker and
    snapshot data in ``extra``) produce the same output format as modules
    using structlog.get_logger().

    Data channel records are emitted at TRACE, a level below DEBUG that
    stdlib logging does not define. It is registered on import.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Record attributes set by operation channels via ``extra``.
CHANNEL_FIELDS: tuple[str, ...] = ("marker", "operation", "data")


def _remove_internal_fields(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Remove internal structlog fields from output.

    ProcessorFormatter ALWAYS adds _record and _from_structlog when processing
    log records (see structlog.stdlib.ProcessorFormatter.format()). These are
    internal bookkeeping and should not appear in output.
    """
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
) -> None:
    """Configure structlog and stdlib logging for opmeter.

    Args:
        json_output: If True, output JSON. If False, human-readable.
        level: Log level (TRACE, DEBUG, INFO, WARNING, ERROR).
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level!r}")

    # Shared processors applied to ALL log records (structlog and stdlib)
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    # Final processors for the formatter (run after shared_processors)
    if json_output:
        final_processors: list[Any] = [
            _remove_internal_fields,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        final_processors = [
            _remove_internal_fields,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=[*shared_processors, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Disable caching to allow reconfiguration in tests
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ProcessorFormatter(
            processors=final_processors,
            # Channel records come from stdlib loggers: lift their extra
            # fields (marker, operation id, snapshot) into the event dict.
            foreign_pre_chain=[
                *shared_processors,
                structlog.stdlib.ExtraAdder(allow=CHANNEL_FIELDS),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = []
    root.addHandler(handler)
    root.setLevel(log_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a bound logger for a module.

    Args:
        name: Logger name (typically __name__).

    Returns:
        Bound structlog logger.
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
