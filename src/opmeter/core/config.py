# src/opmeter/core/config.py
"""
Configuration schema and loading for opmeter.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from opmeter.contracts.errors import SettingsError

_ENVVAR_PREFIX = "OPMETER"

# Dynaconf bookkeeping keys that leak into as_dict()
_INTERNAL_KEYS = frozenset({"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"})


class MeterSettings(BaseModel):
    """Static configuration for operations and their formatter.

    Example YAML:
        progress_period_ms: 500
        data_prefix: "data."
        print_category: true
    """

    model_config = {"frozen": True}

    progress_period_ms: int = Field(
        default=2000,
        ge=0,
        description="Minimum interval between progress reports; 0 reports every change",
    )
    message_prefix: str = Field(default="", description="Prefix of the message channel logger name")
    message_suffix: str = Field(default="", description="Suffix of the message channel logger name")
    data_prefix: str = Field(default="data.", description="Prefix of the data channel logger name")
    data_suffix: str = Field(default="", description="Suffix of the data channel logger name")
    print_category: bool = Field(default=False, description="Formatter prints the last category segment")
    print_position: bool = Field(default=True, description="Formatter prints the operation position")
    print_status: bool = Field(default=True, description="Formatter prefixes the status word")
    session_id_size: int = Field(
        default=5,
        ge=1,
        le=32,
        description="Number of session uuid characters used in operation ids",
    )

    @property
    def progress_period_ns(self) -> int:
        return self.progress_period_ms * 1_000_000

    def message_logger_name(self, category: str) -> str:
        return f"{self.message_prefix}{category}{self.message_suffix}"

    def data_logger_name(self, category: str) -> str:
        return f"{self.data_prefix}{category}{self.data_suffix}"


def _validate(source: str, raw_config: dict[str, Any]) -> MeterSettings:
    try:
        return MeterSettings(**raw_config)
    except ValidationError as e:
        raise SettingsError(source, str(e)) from e


def _as_raw_config(dynaconf_settings: Any) -> dict[str, Any]:
    # Dynaconf returns uppercase keys; convert to lowercase for Pydantic
    return {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in _INTERNAL_KEYS}


def load_settings(config_path: Path) -> MeterSettings:
    """Load settings from a YAML file with environment variable overrides.

    Precedence:
    1. Environment variables (OPMETER_*) - highest priority
    2. Config file
    3. Defaults from the Pydantic schema - lowest priority

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated MeterSettings instance

    Raises:
        SettingsError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Explicit check for file existence (Dynaconf silently accepts missing files)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix=_ENVVAR_PREFIX,
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
    )
    return _validate(str(config_path), _as_raw_config(dynaconf_settings))


def settings_from_env() -> MeterSettings:
    """Build settings from OPMETER_* environment variables only.

    Raises:
        SettingsError: If an environment value fails validation
    """
    from dynaconf import Dynaconf

    dynaconf_settings = Dynaconf(
        envvar_prefix=_ENVVAR_PREFIX,
        environments=False,
        load_dotenv=False,
    )
    return _validate("environment", _as_raw_config(dynaconf_settings))
