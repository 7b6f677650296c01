# src/opmeter/core/__init__.py
"""Core infrastructure: Configuration, Logging, Session identity, Scoped operations."""

from opmeter.core.config import MeterSettings, load_settings, settings_from_env
from opmeter.core.logging import TRACE, configure_logging, get_logger
from opmeter.core.session import SESSION_UUID, short_session_id

__all__ = [
    "SESSION_UUID",
    "TRACE",
    "MeterSettings",
    "configure_logging",
    "get_logger",
    "load_settings",
    "settings_from_env",
    "short_session_id",
]
