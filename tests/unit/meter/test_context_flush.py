# tests/unit/meter/test_context_flush.py
"""Tests for context accumulation and flushing.

Context entries are flushed only when a lifecycle record is actually
emitted; with the channel disabled they carry forward to the next event.
"""

import logging

from opmeter.meter.factory import OperationFactory
from opmeter.meter.ledger import NULL_VALUE


class TestContextEntries:
    """Tests for ctx(), ctx_if() and unctx()."""

    def test_key_value(self, factory: OperationFactory) -> None:
        op = factory.new_operation("cat").ctx("rows", 42).ctx("table", "invoices")

        assert op.context == {"rows": "42", "table": "invoices"}

    def test_flag_entry(self, factory: OperationFactory) -> None:
        op = factory.new_operation("cat").ctx("cached")

        assert op.context == {"cached": NULL_VALUE}

    def test_formatted_value(self, factory: OperationFactory) -> None:
        op = factory.new_operation("cat").ctx("ratio", "%.2f", 0.5)

        assert op.context == {"ratio": "0.50"}

    def test_bad_format_is_illegal(self, factory: OperationFactory, channels) -> None:
        op = factory.new_operation("cat").ctx("ratio", "%d", "x")

        assert op.context == {}
        assert [m.marker.value for m in channels.messages] == ["ILLEGAL"]

    def test_none_key_and_value_are_placeholders(self, factory: OperationFactory, channels) -> None:
        op = factory.new_operation("cat").ctx(None, None)

        assert op.context == {NULL_VALUE: NULL_VALUE}
        assert channels.records == []

    def test_bool_values(self, factory: OperationFactory) -> None:
        op = factory.new_operation("cat").ctx("dry_run", True)

        assert op.context == {"dry_run": "true"}

    def test_overwrite_keeps_position(self, factory: OperationFactory) -> None:
        op = factory.new_operation("cat").ctx("a", 1).ctx("b", 2).ctx("a", 3)

        assert list(op.context.items()) == [("a", "3"), ("b", "2")]

    def test_ctx_if_true(self, factory: OperationFactory) -> None:
        op = factory.new_operation("cat").ctx_if(True, "hit")

        assert op.context == {"hit": NULL_VALUE}

    def test_ctx_if_false_single_name_is_noop(self, factory: OperationFactory, channels) -> None:
        op = factory.new_operation("cat").start().ok()
        channels.records.clear()

        op.ctx_if(False, "hit")

        assert channels.records == []

    def test_ctx_if_false_with_alternative(self, factory: OperationFactory) -> None:
        op = factory.new_operation("cat").ctx_if(False, "hit", "miss")

        assert op.context == {"miss": NULL_VALUE}

    def test_unctx_removes_entry(self, factory: OperationFactory) -> None:
        op = factory.new_operation("cat").ctx("a", 1).ctx("b", 2).unctx("a")

        assert op.context == {"b": "2"}

    def test_unctx_none_is_illegal(self, factory: OperationFactory, channels) -> None:
        factory.new_operation("cat").unctx(None)  # type: ignore[arg-type]

        assert [m.marker.value for m in channels.messages] == ["ILLEGAL"]

    def test_context_rendered_in_message(self, factory: OperationFactory, channels) -> None:
        factory.new_operation("cat").ctx("customer", 42).ctx("cached").start()

        assert channels.messages[0].text == "STARTED: #1 customer=42; cached; abcde"


class TestFlushLaw:
    """Context is cleared only by an emitted record."""

    def test_start_flushes_context(self, factory: OperationFactory, channels) -> None:
        op = factory.new_operation("cat").ctx("a", 1).start()

        assert op.context == {}
        assert channels.data_records[0].record["context"] == {"a": "1"}

    def test_disabled_start_carries_context_to_ok(self, factory: OperationFactory, channels) -> None:
        channels.message_level = logging.INFO
        op = factory.new_operation("cat").ctx("a", 1).start()

        assert op.context == {"a": "1"}

        op.ctx("b", 2).ok()

        assert op.context == {}
        assert channels.last_data()["context"] == {"a": "1", "b": "2"}

    def test_same_calls_different_levels_differ(self, factory: OperationFactory, channels) -> None:
        verbose = factory.new_operation("cat").ctx("a", 1).start().ctx("b", 2)

        channels.message_level = logging.INFO
        quiet = factory.new_operation("cat").ctx("a", 1).start().ctx("b", 2)

        assert verbose.context == {"b": "2"}
        assert quiet.context == {"a": "1", "b": "2"}

    def test_disabled_progress_carries_context(self, factory: OperationFactory, channels) -> None:
        op = factory.new_operation("cat").start()
        channels.message_level = logging.WARNING

        op.ctx("batch", 1).inc().progress()

        assert op.context == {"batch": "1"}

    def test_silent_progress_keeps_context(self, factory: OperationFactory) -> None:
        op = factory.new_operation("cat").start().ctx("batch", 1).progress()

        assert op.context == {"batch": "1"}

    def test_progress_flushes_context(self, factory: OperationFactory, channels) -> None:
        op = factory.new_operation("cat").start().ctx("batch", 1).inc().progress()

        assert op.context == {}
        assert channels.last_data()["context"] == {"batch": "1"}

    def test_data_channel_disabled_still_flushes_with_message(self, factory: OperationFactory, channels) -> None:
        channels.data_enabled = False

        op = factory.new_operation("cat").ctx("a", 1).start()

        assert op.context == {}
        assert channels.data_records == []

    def test_fail_flushes_even_at_error_only(self, factory: OperationFactory, channels) -> None:
        channels.message_level = logging.ERROR
        op = factory.new_operation("cat").ctx("a", 1).start()
        op.ctx("b", 2).fail("boom")

        assert op.context == {}
        assert channels.last_data()["context"] == {"a": "1", "b": "2"}

    def test_ctx_after_terminal_is_illegal(self, factory: OperationFactory, channels) -> None:
        op = factory.new_operation("cat").start().ok()
        channels.records.clear()

        op.ctx("late", 1)

        assert op.context == {}
        assert [m.marker.value for m in channels.messages] == ["ILLEGAL"]
