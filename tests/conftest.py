# tests/conftest.py
"""Shared test fixtures and helpers.

Fixtures:
- clock: FakeClock, a manually advanced nanosecond clock
- meter_settings: MeterSettings with progress throttling disabled
- channels: RecordingChannels, an in-memory ChannelsProtocol implementation
- factory: OperationFactory wired to the three above, with a fresh
  sequencer and stack and a fixed session id

Engine tests drive operations through ``factory`` and assert on
``channels``. Tests of the stdlib logging path use ``caplog`` with
LoggingChannels instead.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import logging
import os
from dataclasses import dataclass
from typing import Any

import pytest
from hypothesis import Phase, Verbosity, settings

from opmeter.contracts.enums import Marker
from opmeter.core.config import MeterSettings
from opmeter.core.logging import TRACE
from opmeter.meter.factory import OperationFactory

SESSION_ID = "abcde"
# Fake clock origin; a zero timestamp means "unset" to the engine
CLOCK_ORIGIN = 1_000_000_000


# =============================================================================
# Fakes
# =============================================================================


class FakeClock:
    """Monotonic nanosecond clock that only moves when told to."""

    def __init__(self, start: int = CLOCK_ORIGIN) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, *, ns: int = 0, ms: int = 0) -> None:
        self.now += ns + ms * 1_000_000


@dataclass
class MessageRecord:
    level: int
    marker: Marker
    text: str
    operation_id: str
    exc_info: BaseException | None


@dataclass
class DataRecord:
    marker: Marker
    record: dict[str, Any]
    operation_id: str


class RecordingChannels:
    """ChannelsProtocol implementation that keeps records in memory.

    ``message_level`` is the lowest enabled message level; ``data_enabled``
    toggles the data channel. Both may be changed mid-test.
    """

    def __init__(self, message_level: int = logging.DEBUG, data_enabled: bool = True) -> None:
        self.message_level = message_level
        self.data_enabled = data_enabled
        # Message and data records in emission order
        self.records: list[MessageRecord | DataRecord] = []

    def is_message_enabled(self, level: int) -> bool:
        return level >= self.message_level

    def message(
        self,
        level: int,
        marker: Marker,
        text: str,
        *,
        operation_id: str,
        exc_info: BaseException | None = None,
    ) -> None:
        self.records.append(MessageRecord(level, marker, text, operation_id, exc_info))

    def is_data_enabled(self) -> bool:
        return self.data_enabled

    def data(self, marker: Marker, record: dict[str, Any], *, operation_id: str) -> None:
        self.records.append(DataRecord(marker, record, operation_id))

    @property
    def messages(self) -> list[MessageRecord]:
        return [r for r in self.records if isinstance(r, MessageRecord)]

    @property
    def data_records(self) -> list[DataRecord]:
        return [r for r in self.records if isinstance(r, DataRecord)]

    @property
    def markers(self) -> list[Marker]:
        return [r.marker for r in self.records]

    @property
    def diagnostics(self) -> list[Marker]:
        """Markers of misuse diagnostics only."""
        return [r.marker for r in self.records if r.marker.is_diagnostic]

    @property
    def lifecycle(self) -> list[Marker]:
        """Markers of lifecycle records only."""
        return [r.marker for r in self.records if not r.marker.is_diagnostic]

    def last_data(self) -> dict[str, Any]:
        return self.data_records[-1].record

    def clear(self) -> None:
        self.records.clear()


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def meter_settings() -> MeterSettings:
    return MeterSettings(progress_period_ms=0)


@pytest.fixture
def channels() -> RecordingChannels:
    return RecordingChannels()


@pytest.fixture
def factory(meter_settings: MeterSettings, clock: FakeClock, channels: RecordingChannels) -> OperationFactory:
    return OperationFactory(
        meter_settings,
        clock=clock,
        channels_factory=lambda category, _settings: channels,
        session_id=SESSION_ID,
    )


@pytest.fixture
def trace_logging(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    """caplog capturing every level down to TRACE."""
    caplog.set_level(TRACE)
    return caplog


# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
