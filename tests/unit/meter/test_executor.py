# tests/unit/meter/test_executor.py
"""Tests for run()/call() helpers and scoped (``with``) usage."""

import pytest

from opmeter.contracts.enums import Marker, OperationState
from opmeter.meter.factory import OperationFactory
from opmeter.meter.operation import RESULT_CONTEXT_KEY, SCOPE_EXIT_PATH


class TestRunAndCall:
    """Tests for the execution helpers."""

    def test_run_starts_and_oks(self, factory: OperationFactory, channels) -> None:
        calls: list[str] = []
        op = factory.new_operation("cat")

        result = op.run(lambda: calls.append("ran"))

        assert result is None
        assert calls == ["ran"]
        assert op.state is OperationState.OK
        assert channels.lifecycle == [Marker.MSG_START, Marker.DATA_START, Marker.MSG_OK, Marker.DATA_OK]

    def test_call_returns_value_and_records_result(self, factory: OperationFactory, channels) -> None:
        op = factory.new_operation("cat")

        assert op.call(lambda: 42) == 42
        assert channels.last_data()["context"] == {RESULT_CONTEXT_KEY: "42"}

    def test_call_on_started_operation_does_not_restart(self, factory: OperationFactory, channels) -> None:
        op = factory.new_operation("cat").start()

        op.call(lambda: "x")

        assert channels.diagnostics == []

    def test_exception_fails_and_propagates(self, factory: OperationFactory, channels) -> None:
        op = factory.new_operation("cat")

        def explode() -> None:
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            op.run(explode)

        assert op.state is OperationState.FAILED
        assert op.fail_path == "ValueError"
        assert op.fail_message == "boom"
        assert isinstance(channels.messages[-1].exc_info, ValueError)

    def test_reject_type_rejects(self, factory: OperationFactory) -> None:
        op = factory.new_operation("cat")

        def deny() -> int:
            raise PermissionError("denied")

        with pytest.raises(PermissionError):
            op.call_or_reject(deny, PermissionError, LookupError)

        assert op.state is OperationState.REJECTED
        assert op.reject_path == "PermissionError"

    def test_other_exception_still_fails(self, factory: OperationFactory) -> None:
        op = factory.new_operation("cat")

        def explode() -> None:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            op.run_or_reject(explode, PermissionError)

        assert op.state is OperationState.FAILED

    def test_function_may_terminate_the_operation(self, factory: OperationFactory, channels) -> None:
        op = factory.new_operation("cat")

        op.run(lambda: op.reject("skipped"))

        assert op.state is OperationState.REJECTED
        assert channels.diagnostics == []


class TestScopedUsage:
    """Tests for ``with operation:``."""

    def test_enter_starts(self, factory: OperationFactory) -> None:
        with factory.new_operation("cat") as op:
            assert op.state is OperationState.STARTED
            op.ok()

        assert op.state is OperationState.OK

    def test_leaving_running_scope_fails_with_scope_exit(self, factory: OperationFactory, channels) -> None:
        with factory.new_operation("cat") as op:
            pass

        assert op.state is OperationState.FAILED
        assert op.fail_path == SCOPE_EXIT_PATH
        assert channels.lifecycle[-2:] == [Marker.MSG_FAIL, Marker.DATA_FAIL]

    def test_exception_fails_and_is_not_suppressed(self, factory: OperationFactory, channels) -> None:
        with pytest.raises(KeyError), factory.new_operation("cat") as op:
            raise KeyError("k")

        assert op.state is OperationState.FAILED
        assert op.fail_path == "KeyError"
        assert isinstance(channels.messages[-1].exc_info, KeyError)

    def test_terminated_operation_left_alone(self, factory: OperationFactory, channels) -> None:
        with factory.new_operation("cat") as op:
            op.reject("nothing to do")

        assert op.state is OperationState.REJECTED
        assert channels.diagnostics == []

    def test_stack_restored_after_scope(self, factory: OperationFactory) -> None:
        outer = factory.new_operation("cat", "outer").start()

        with factory.new_operation("cat", "inner") as inner:
            assert factory.current_operation() is inner
            inner.ok()

        assert factory.current_operation() is outer
