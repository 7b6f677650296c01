# tests/unit/meter/test_stack.py
"""Tests for OperationStack."""

import asyncio

from opmeter.meter.stack import OperationStack, Removal


class TestOperationStack:
    def test_push_pop_restores_previous(self) -> None:
        stack: OperationStack[object] = OperationStack()
        outer, inner = object(), object()
        stack.push(outer)
        stack.push(inner)

        assert stack.pop(inner) is Removal.TOP
        assert stack.peek() is outer

    def test_out_of_order_pop_truncates(self) -> None:
        stack: OperationStack[object] = OperationStack()
        a, b, c = object(), object(), object()
        for item in (a, b, c):
            stack.push(item)

        assert stack.pop(b) is Removal.OUT_OF_ORDER
        assert stack.snapshot() == (a,)

    def test_pop_absent_leaves_stack(self) -> None:
        stack: OperationStack[object] = OperationStack()
        a = object()
        stack.push(a)

        assert stack.pop(object()) is Removal.ABSENT
        assert len(stack) == 1
        assert a in stack

    def test_empty_peek(self) -> None:
        assert OperationStack().peek() is None

    def test_compares_by_identity(self) -> None:
        stack: OperationStack[list[int]] = OperationStack()
        first, second = [1], [1]
        stack.push(first)

        assert second not in stack
        assert stack.pop(second) is Removal.ABSENT

    def test_tasks_do_not_share_pushes(self) -> None:
        stack: OperationStack[str] = OperationStack()
        stack.push("root")

        async def task(name: str) -> tuple[str, ...]:
            stack.push(name)
            await asyncio.sleep(0)
            return stack.snapshot()

        async def main() -> list[tuple[str, ...]]:
            return list(await asyncio.gather(task("a"), task("b")))

        assert asyncio.run(main()) == [("root", "a"), ("root", "b")]
        assert stack.snapshot() == ("root",)
