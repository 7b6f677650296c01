# src/opmeter/meter/iterations.py
"""Iteration counting and progress throttling.

The tracker holds the iteration counters of one operation and decides when
a progress report is due. Argument checks return a ``Validation`` instead of
raising; the operation logs rejected calls and leaves the counters untouched.
"""

from opmeter.contracts.enums import Marker
from opmeter.contracts.errors import ACCEPTED, Validation, rejected


def is_slow(elapsed_ns: int, time_limit_ns: int) -> bool:
    """Whether ``elapsed_ns`` exceeds a configured limit (0 = no limit)."""
    return time_limit_ns > 0 and elapsed_ns > time_limit_ns


class IterationTracker:
    """Current/expected iteration counts and the last progress baseline.

    Invariant: ``current`` never decreases.

    Attributes:
        current: Iterations completed so far
        expected: Expected total (0 = unknown)
        last_progress_iteration: ``current`` at the last progress report
        last_progress_time: Clock reading at the last progress report
            (start time until the first report)
    """

    def __init__(self) -> None:
        self.current = 0
        self.expected = 0
        self.last_progress_iteration = 0
        self.last_progress_time = 0

    def begin(self, now: int) -> None:
        """Set the progress baseline when the operation starts."""
        self.last_progress_time = now

    # -------------------------------------------------------------------------
    # Argument checks
    # -------------------------------------------------------------------------

    @staticmethod
    def check_increment(delta: int | None) -> Validation:
        if delta is None:
            return rejected(Marker.ILLEGAL, "Null argument")
        if delta <= 0:
            return rejected(Marker.ILLEGAL, "Non-positive increment")
        return ACCEPTED

    def check_advance(self, value: int | None) -> Validation:
        if value is None:
            return rejected(Marker.ILLEGAL, "Null argument")
        if value <= 0:
            return rejected(Marker.ILLEGAL, "Non-positive argument")
        if value < self.current:
            return rejected(Marker.ILLEGAL, "Non-forward iteration")
        return ACCEPTED

    @staticmethod
    def check_expected(expected: int | None) -> Validation:
        if expected is None:
            return rejected(Marker.ILLEGAL, "Null argument")
        if expected <= 0:
            return rejected(Marker.ILLEGAL, "Non-positive argument")
        return ACCEPTED

    # -------------------------------------------------------------------------
    # Mutation (callers validate first)
    # -------------------------------------------------------------------------

    def increment(self, delta: int = 1) -> None:
        self.current += delta

    def advance_to(self, value: int) -> None:
        self.current = value

    def expect(self, expected: int) -> None:
        self.expected = expected

    # -------------------------------------------------------------------------
    # Progress throttling
    # -------------------------------------------------------------------------

    def is_report_due(self, now: int, period_ns: int) -> bool:
        """Whether a progress report should be emitted at ``now``.

        Due only if the iteration count moved since the last report and,
        unless throttling is disabled (period 0), at least ``period_ns`` has
        elapsed since the last report.
        """
        if self.current == self.last_progress_iteration:
            return False
        return period_ns == 0 or now - self.last_progress_time >= period_ns

    def mark_reported(self, now: int) -> None:
        self.last_progress_iteration = self.current
        self.last_progress_time = now

