# src/opmeter/meter/operation.py
"""Operation lifecycle engine.

An Operation instruments one unit of work from creation to a terminal
outcome and reports each lifecycle event on its two logger channels:

    CREATED --start()--> STARTED --ok()/reject()/fail()--> OK | REJECTED | FAILED

Error policy:
    Misuse never raises. Illegal arguments are logged (ILLEGAL) and the call
    is discarded, keeping the previous value. Lifecycle calls in the wrong
    state are logged (INCONSISTENT_*). A terminal call on an operation that
    was never started still terminates it (auto-correction, with
    ``start_time = create_time``) so that no operation is left without a
    terminal record. Repeated start() calls and repeated terminal calls
    change nothing: the first outcome wins. Unexpected exceptions inside a
    lifecycle method are logged as BUG and swallowed.

Context flushing:
    The context ledger is cleared when, and only when, the message record of
    a lifecycle event is emitted. If the event's level is disabled, pending
    entries carry forward into the next event.

Usage:
    op = factory.new_operation("app.billing", "invoice")
    op.limit_milliseconds(500).iterations(len(rows)).start()
    for row in rows:
        process(row)
        op.inc().progress()
    op.ctx("rows", len(rows)).ok()
"""

import logging
from collections.abc import Callable
from types import TracebackType
from typing import TYPE_CHECKING, TypeVar

from opmeter.contracts.enums import Marker, OperationState
from opmeter.contracts.errors import Validation, rejected
from opmeter.contracts.paths import Fault, PathValue, path_text, to_path_value
from opmeter.contracts.snapshot import OperationSnapshot, format_full_id
from opmeter.meter import validation as checks
from opmeter.meter.channels import ChannelsProtocol
from opmeter.meter.iterations import IterationTracker, is_slow
from opmeter.meter.ledger import ContextLedger
from opmeter.meter.stack import Removal
from opmeter.meter.validation import Diagnostics

if TYPE_CHECKING:
    from opmeter.meter.factory import OperationFactory

R = TypeVar("R")

# Fail path recorded when a scoped operation is left while still running
SCOPE_EXIT_PATH = "scope-exit"
# Context key holding the return value of call()/call_or_reject()
RESULT_CONTEXT_KEY = "result"

_NANOS_PER_MILLISECOND = 1_000_000
_UNSET: object = object()


class Operation:
    """One instrumented unit of work.

    Created by OperationFactory, mutated in place by every call, and
    logically immutable once terminal (except path(), which may be called in
    any state). All mutators return ``self`` for chaining.

    Thread Safety:
        NOT thread-safe. An operation belongs to the thread of control that
        drives it; only position sequencing is shared across threads.
    """

    def __init__(
        self,
        factory: "OperationFactory",
        category: str,
        name: str | None = None,
        *,
        position: int,
        channels: ChannelsProtocol,
        parent: str | None = None,
        context: ContextLedger | None = None,
    ) -> None:
        """Initialize a CREATED operation.

        Raises:
            TypeError: If category is not a string or channels is missing.
                These are programming faults and fail fast.
        """
        if not isinstance(category, str):
            raise TypeError(f"category must be a str, got {type(category).__name__}")
        if channels is None:
            raise TypeError("channels collaborator is required")

        self._factory = factory
        self._clock = factory.clock
        self._stack = factory.stack
        self._formatter = factory.formatter
        self._period_ns = factory.settings.progress_period_ns
        self._channels = channels

        self.category = category
        self.name = name
        self.parent = parent
        self.session_id = factory.session_id
        self.position = position

        self._state = OperationState.CREATED
        self._create_time = self._clock()
        self._start_time = 0
        self._stop_time = 0
        self._time_limit = 0
        self._description: str | None = None
        self._ok_path: str | None = None
        self._reject_path: str | None = None
        self._fail_path: str | None = None
        self._fail_message: str | None = None
        self._iterations = IterationTracker()
        self._context = context if context is not None else ContextLedger()
        self._diagnostics = Diagnostics(channels, lambda: self.full_id)

    # =========================================================================
    # Read-only view
    # =========================================================================

    @property
    def full_id(self) -> str:
        return format_full_id(self.category, self.name, self.session_id, self.position)

    @property
    def state(self) -> OperationState:
        return self._state

    @property
    def channels(self) -> ChannelsProtocol:
        return self._channels

    @property
    def create_time(self) -> int:
        return self._create_time

    @property
    def start_time(self) -> int:
        return self._start_time

    @property
    def stop_time(self) -> int:
        return self._stop_time

    @property
    def time_limit(self) -> int:
        """Slow threshold in nanoseconds (0 = no limit)."""
        return self._time_limit

    @property
    def description(self) -> str | None:
        return self._description

    @property
    def ok_path(self) -> str | None:
        return self._ok_path

    @property
    def reject_path(self) -> str | None:
        return self._reject_path

    @property
    def fail_path(self) -> str | None:
        return self._fail_path

    @property
    def fail_message(self) -> str | None:
        return self._fail_message

    @property
    def current_iteration(self) -> int:
        return self._iterations.current

    @property
    def expected_iterations(self) -> int:
        return self._iterations.expected

    @property
    def context(self) -> dict[str, str]:
        """Copy of the pending (not yet flushed) context entries."""
        return self._context.snapshot()

    def snapshot(self) -> OperationSnapshot:
        """Read-only copy of the operation as of now."""
        return self._snapshot_at(self._clock())

    def _snapshot_at(self, now: int) -> OperationSnapshot:
        return OperationSnapshot(
            category=self.category,
            name=self.name,
            parent=self.parent,
            session_id=self.session_id,
            position=self.position,
            state=self._state,
            description=self._description,
            create_time=self._create_time,
            start_time=self._start_time,
            stop_time=self._stop_time,
            current_time=now,
            time_limit=self._time_limit,
            current_iteration=self._iterations.current,
            expected_iterations=self._iterations.expected,
            ok_path=self._ok_path,
            reject_path=self._reject_path,
            fail_path=self._fail_path,
            fail_message=self._fail_message,
            context=self._context.snapshot(),
        )

    def __repr__(self) -> str:
        return f"Operation({self.full_id!r}, state={self._state.value})"

    # =========================================================================
    # Configuration
    # =========================================================================

    def m(self, message: str | None, *args: object) -> "Operation":
        """Set the description, optionally %-formatted with ``args``."""
        if not self._diagnostics.accept(checks.check_mutable(self._state), "m(message)"):
            return self
        if message is None:
            self._diagnostics.report(rejected(Marker.ILLEGAL, "Null argument"), "m(message)")
            return self
        if not args:
            self._description = message
            return self
        try:
            self._description = message % args
        except (TypeError, ValueError, KeyError):
            self._diagnostics.report(rejected(Marker.ILLEGAL, "Illegal string format"), "m(format, args...)")
            self._description = None
        return self

    def limit_milliseconds(self, time_limit: int | None) -> "Operation":
        """Report the operation as slow once it runs longer than ``time_limit`` ms."""
        method = "limit_milliseconds(time_limit)"
        if not self._diagnostics.accept(checks.check_mutable(self._state), method):
            return self
        if time_limit is None:
            self._diagnostics.report(rejected(Marker.ILLEGAL, "Null argument"), method)
            return self
        if time_limit <= 0:
            self._diagnostics.report(rejected(Marker.ILLEGAL, "Non-positive argument"), method)
            return self
        self._time_limit = time_limit * _NANOS_PER_MILLISECOND
        return self

    def iterations(self, expected: int) -> "Operation":
        """Declare the expected number of iterations."""
        method = "iterations(expected)"
        if not self._diagnostics.accept(checks.check_mutable(self._state), method):
            return self
        if not self._diagnostics.accept(self._iterations.check_expected(expected), method):
            return self
        self._iterations.expect(expected)
        return self

    def path(self, value: object) -> "Operation":
        """Preset the ok path. Permitted in any state."""
        resolved = to_path_value(value)
        if resolved is None:
            self._diagnostics.report(rejected(Marker.ILLEGAL, "Null argument"), "path(value)")
            return self
        self._ok_path = path_text(resolved)
        return self

    # =========================================================================
    # Context ledger
    # =========================================================================

    def ctx(self, key: object, value: object = _UNSET, *args: object) -> "Operation":
        """Add a context entry to be reported with the next emitted event.

        Forms:
            ctx("cached")                  flag entry, rendered as its key
            ctx("rows", 42)                key=value, value converted with str()
            ctx("ratio", "%.2f", 0.5)      key=value, %-formatted

        None keys and values are recorded as "<null>".
        """
        if not self._diagnostics.accept(checks.check_mutable(self._state), "ctx(key, value)"):
            return self
        if value is _UNSET:
            self._context.flag(key)
        elif args and isinstance(value, str):
            try:
                self._context.put(key, value % args)
            except (TypeError, ValueError, KeyError):
                self._diagnostics.report(rejected(Marker.ILLEGAL, "Illegal string format"), "ctx(key, format, args...)")
        else:
            self._context.put(key, value)
        return self

    def ctx_if(self, condition: bool, true_name: object, false_name: object = _UNSET) -> "Operation":
        """Add a flag entry chosen by ``condition``.

        With a single name and a false condition this is a no-op: nothing is
        validated and nothing is logged.
        """
        if not condition and false_name is _UNSET:
            return self
        if not self._diagnostics.accept(checks.check_mutable(self._state), "ctx_if(condition, name)"):
            return self
        self._context.flag(true_name if condition else false_name)
        return self

    def unctx(self, key: str) -> "Operation":
        """Remove a pending context entry."""
        if not self._diagnostics.accept(checks.check_mutable(self._state), "unctx(key)"):
            return self
        if not self._diagnostics.accept(checks.check_not_none(key), "unctx(key)"):
            return self
        self._context.remove(key)
        return self

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> "Operation":
        """CREATED -> STARTED. Emits MSG_START (DEBUG) and DATA_START (TRACE)."""
        try:
            if not self._diagnostics.accept(checks.check_start(self._state), "start()"):
                return self
            now = self._clock()
            self._start_time = now
            self._state = OperationState.STARTED
            self._iterations.begin(now)
            self._stack.push(self)
            self._emit(now, logging.DEBUG, Marker.MSG_START, Marker.DATA_START)
        except Exception as e:
            self._diagnostics.bug("start()", e)
        return self

    def inc(self) -> "Operation":
        return self._increment(1, "inc()")

    def inc_by(self, delta: int) -> "Operation":
        return self._increment(delta, "inc_by(delta)")

    def inc_to(self, value: int) -> "Operation":
        """Advance the iteration count to ``value``; it may not move backward."""
        method = "inc_to(value)"
        if not self._diagnostics.accept(checks.check_increment(self._state), method):
            return self
        if not self._diagnostics.accept(self._iterations.check_advance(value), method):
            return self
        self._iterations.advance_to(value)
        return self

    def _increment(self, delta: int, method: str) -> "Operation":
        if not self._diagnostics.accept(checks.check_increment(self._state), method):
            return self
        if not self._diagnostics.accept(self._iterations.check_increment(delta), method):
            return self
        self._iterations.increment(delta)
        return self

    def progress(self) -> "Operation":
        """Report progress if iterations moved and the throttle period elapsed.

        Otherwise a silent no-op. Emits MSG_PROGRESS (INFO), or
        MSG_SLOW_PROGRESS (WARNING) past the time limit, plus the matching
        data record.
        """
        try:
            if not self._diagnostics.accept(checks.check_progress(self._state), "progress()"):
                return self
            now = self._clock()
            if not self._iterations.is_report_due(now, self._period_ns):
                return self
            self._iterations.mark_reported(now)
            if is_slow(now - self._start_time, self._time_limit):
                self._emit(now, logging.WARNING, Marker.MSG_SLOW_PROGRESS, Marker.DATA_SLOW_PROGRESS)
            else:
                self._emit(now, logging.INFO, Marker.MSG_PROGRESS, Marker.DATA_PROGRESS)
        except Exception as e:
            self._diagnostics.bug("progress()", e)
        return self

    def ok(self, path: object = _UNSET) -> "Operation":
        """Terminate successfully, optionally overriding the preset ok path.

        ``ok(None)`` is illegal and keeps any path set earlier by path().
        """
        resolved: PathValue | None = None
        if path is not _UNSET:
            resolved = to_path_value(path)
            self._diagnostics.accept(checks.check_not_none(path), "ok(path)")
        return self._stop(OperationState.OK, resolved, "ok()")

    def reject(self, cause: object) -> "Operation":
        """Terminate as an expected, non-error outcome identified by ``cause``."""
        self._diagnostics.accept(checks.check_not_none(cause), "reject(cause)")
        return self._stop(OperationState.REJECTED, to_path_value(cause), "reject(cause)")

    def fail(self, cause: object) -> "Operation":
        """Terminate as an error. Exceptions keep their message apart from their type."""
        self._diagnostics.accept(checks.check_not_none(cause), "fail(cause)")
        error = cause if isinstance(cause, BaseException) else None
        return self._stop(OperationState.FAILED, to_path_value(cause), "fail(cause)", exc_info=error)

    def _stop(
        self,
        outcome: OperationState,
        resolved: PathValue | None,
        method: str,
        exc_info: BaseException | None = None,
    ) -> "Operation":
        try:
            now = self._clock()
            validation: Validation = checks.check_stop(self._state, outcome)
            if not self._diagnostics.accept(validation, method):
                if self._state.is_terminal:
                    return self
                # Never started: terminate anyway, as if started at creation
                self._start_time = self._create_time
            elif self._stack.pop(self) is Removal.OUT_OF_ORDER:
                self._diagnostics.out_of_order(outcome)

            self._stop_time = max(now, self._start_time)
            self._state = outcome
            self._record_outcome(outcome, resolved)

            slow = is_slow(self._stop_time - self._start_time, self._time_limit)
            if outcome is OperationState.OK:
                if slow:
                    self._emit(now, logging.WARNING, Marker.MSG_SLOW_OK, Marker.DATA_SLOW_OK)
                else:
                    self._emit(now, logging.INFO, Marker.MSG_OK, Marker.DATA_OK)
            elif outcome is OperationState.REJECTED:
                level = logging.WARNING if slow else logging.INFO
                self._emit(now, level, Marker.MSG_REJECT, Marker.DATA_REJECT)
            else:
                self._emit(now, logging.ERROR, Marker.MSG_FAIL, Marker.DATA_FAIL, exc_info=exc_info)
        except Exception as e:
            self._diagnostics.bug(method, e)
        return self

    def _record_outcome(self, outcome: OperationState, resolved: PathValue | None) -> None:
        self._reject_path = None
        self._fail_path = None
        self._fail_message = None
        if outcome is OperationState.OK:
            if resolved is not None:
                self._ok_path = path_text(resolved)
        elif outcome is OperationState.REJECTED:
            self._ok_path = None
            self._reject_path = path_text(resolved) if resolved is not None else None
        else:
            self._ok_path = None
            if resolved is not None:
                self._fail_path = path_text(resolved, qualified=True)
                if isinstance(resolved, Fault):
                    self._fail_message = resolved.message

    def _emit(
        self,
        now: int,
        level: int,
        message_marker: Marker,
        data_marker: Marker,
        exc_info: BaseException | None = None,
    ) -> bool:
        """Emit the message record and, if enabled, the data record.

        A failure cause that is an exception travels with the message record.

        Returns True (and flushes the context ledger) only if the message
        record was emitted.
        """
        if not self._channels.is_message_enabled(level):
            return False
        snapshot = self._snapshot_at(now)
        operation_id = snapshot.full_id
        self._channels.message(
            level, message_marker, self._formatter(snapshot), operation_id=operation_id, exc_info=exc_info
        )
        if self._channels.is_data_enabled():
            self._channels.data(data_marker, snapshot.to_dict(), operation_id=operation_id)
        self._context.clear()
        return True

    # =========================================================================
    # Nesting
    # =========================================================================

    def sub(self, name: str | None) -> "Operation":
        """Create a child operation named ``<this name>/<name>``.

        The child inherits the category, the channels and a copy of the
        pending context; its parent is this operation's full id. It is not
        started.
        """
        if name is None:
            self._diagnostics.report(rejected(Marker.ILLEGAL, "Null argument"), "sub(name)")
            sub_name = self.name
        elif self.name is None:
            sub_name = name
        else:
            sub_name = f"{self.name}/{name}"
        return self._factory.create(
            self.category,
            sub_name,
            parent=self.full_id,
            channels=self._channels,
            context=self._context.copy(),
        )

    # =========================================================================
    # Execution helpers
    # =========================================================================

    def run(self, fn: Callable[[], object]) -> None:
        """Run ``fn`` inside this operation: ok() on return, fail() on exception."""
        self._execute(fn, (), record_result=False)

    def call(self, fn: Callable[[], R]) -> R:
        """Like run(), also recording the return value as context ``result``."""
        return self._execute(fn, (), record_result=True)

    def run_or_reject(self, fn: Callable[[], object], *reject_types: type[BaseException]) -> None:
        """Like run(), but exceptions of ``reject_types`` reject instead of fail."""
        self._execute(fn, reject_types, record_result=False)

    def call_or_reject(self, fn: Callable[[], R], *reject_types: type[BaseException]) -> R:
        """Like call(), but exceptions of ``reject_types`` reject instead of fail."""
        return self._execute(fn, reject_types, record_result=True)

    def _execute(
        self,
        fn: Callable[[], R],
        reject_types: tuple[type[BaseException], ...],
        *,
        record_result: bool,
    ) -> R:
        if self._state is OperationState.CREATED:
            self.start()
        try:
            result = fn()
        except BaseException as e:
            if not self._state.is_terminal:
                if reject_types and isinstance(e, reject_types):
                    self.reject(e)
                else:
                    self.fail(e)
            raise
        if self._state is OperationState.STARTED:
            if record_result:
                self.ctx(RESULT_CONTEXT_KEY, result)
            self.ok()
        return result

    # =========================================================================
    # Scoped usage
    # =========================================================================

    def __enter__(self) -> "Operation":
        if self._state is OperationState.CREATED:
            self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Guarantee a terminal record: fail with the exception, or with
        SCOPE_EXIT_PATH if the block ended without terminating the operation."""
        if self._state.is_terminal:
            return
        self.fail(exc if exc is not None else SCOPE_EXIT_PATH)
