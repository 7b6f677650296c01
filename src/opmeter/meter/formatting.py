# src/opmeter/meter/formatting.py
"""Human-readable rendering of operation snapshots.

One line per lifecycle event, for example::

    OK: query#3[cached] 120; 1.4ms; 85.7k/s 11.7us; 'load invoices'; customer=42; 1a2b3

The status word and identity block (name, position, path) are followed by
"; "-separated sections: iterations, timing, description, context entries
and the short session id.
"""

from collections.abc import Callable

from opmeter.contracts.snapshot import OperationSnapshot
from opmeter.core.config import MeterSettings
from opmeter.meter.ledger import NULL_VALUE

Formatter = Callable[[OperationSnapshot], str]

_TIME_UNITS: tuple[tuple[float, str], ...] = (
    (1.0, "ns"),
    (1_000.0, "us"),
    (1_000_000.0, "ms"),
    (1_000_000_000.0, "s"),
    (60_000_000_000.0, "min"),
    (3_600_000_000_000.0, "h"),
)
_COUNT_UNITS: tuple[tuple[float, str], ...] = (
    (1.0, ""),
    (1_000.0, "k"),
    (1_000_000.0, "M"),
    (1_000_000_000.0, "G"),
)


def _scaled(value: float, units: tuple[tuple[float, str], ...]) -> str:
    factor, suffix = units[0]
    for candidate_factor, candidate_suffix in units:
        if abs(value) < candidate_factor:
            break
        factor, suffix = candidate_factor, candidate_suffix
    scaled = value / factor
    if factor == 1.0 and float(scaled).is_integer():
        return f"{int(scaled)}{suffix}"
    return f"{scaled:.1f}{suffix}"


def format_nanoseconds(value: float) -> str:
    """``1500000`` -> ``1.5ms``."""
    return _scaled(value, _TIME_UNITS)


def format_iterations(value: float) -> str:
    """``1200`` -> ``1.2k``."""
    return _scaled(value, _COUNT_UNITS)


def status_word(snapshot: OperationSnapshot) -> str:
    if snapshot.is_stopped:
        if snapshot.is_reject:
            return "REJECT"
        if snapshot.is_fail:
            return "FAIL"
        return "OK (Slow)" if snapshot.is_slow else "OK"
    if snapshot.is_started:
        if snapshot.current_iteration == 0:
            return "STARTED"
        return "PROGRESS (Slow)" if snapshot.is_slow else "PROGRESS"
    return "SCHEDULED"


class MessageFormatter:
    """Default formatter collaborator, driven by MeterSettings print flags."""

    def __init__(self, settings: MeterSettings) -> None:
        self._settings = settings

    def __call__(self, snapshot: OperationSnapshot) -> str:
        settings = self._settings
        parts: list[str] = []

        identity = self._identity(snapshot)
        head = f"{status_word(snapshot)}: " if settings.print_status else ""
        head += identity

        if snapshot.is_started and snapshot.current_iteration > 0:
            iterations = format_iterations(snapshot.current_iteration)
            if snapshot.expected_iterations > 0:
                iterations += f"/{format_iterations(snapshot.expected_iterations)}"
            parts.append(iterations)

        if not snapshot.is_started:
            parts.append(format_nanoseconds(snapshot.waiting_time))
        else:
            report_timing = snapshot.is_stopped or snapshot.execution_time > settings.progress_period_ns
            if report_timing:
                parts.append(format_nanoseconds(snapshot.execution_time))
                rate = snapshot.iterations_per_second
                if snapshot.current_iteration > 0 and rate > 0:
                    parts.append(f"{format_iterations(rate)}/s {format_nanoseconds(1_000_000_000 / rate)}")

        if snapshot.description is not None:
            parts.append(f"'{snapshot.description}'")

        for key, value in snapshot.context.items():
            parts.append(key if value == NULL_VALUE else f"{key}={value}")

        parts.append(snapshot.session_id)

        body = "; ".join(parts)
        if not identity:
            return head + body
        return f"{head} {body}"

    def _identity(self, snapshot: OperationSnapshot) -> str:
        settings = self._settings
        identity = ""
        if settings.print_category:
            identity += snapshot.category.rsplit(".", 1)[-1]
        if snapshot.name is not None:
            if settings.print_category:
                identity += "/"
            identity += snapshot.name
        if settings.print_position:
            identity += f"#{snapshot.position}"
        path = snapshot.path
        if path is not None:
            if snapshot.is_fail and snapshot.fail_message is not None:
                identity += f"[{path}; {snapshot.fail_message}]"
            else:
                identity += f"[{path}]"
        return identity
