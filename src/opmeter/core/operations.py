# src/opmeter/core/operations.py
"""Scoped operation tracking.

track_operation wraps a block of code in an operation:
- Operation creation and start
- ok() when the block completes without terminating the operation itself
- fail(exception) when the block raises, then re-raise
- The block may call ok()/reject()/fail() itself; that outcome is kept

This is the context-manager counterpart of Operation.run()/call(). Unlike
``with operation:``, which treats leaving the block while running as a
failure ("scope-exit"), track_operation treats a normal exit as success.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from opmeter.contracts.enums import OperationState

if TYPE_CHECKING:
    from opmeter.meter.factory import OperationFactory
    from opmeter.meter.operation import Operation


@contextmanager
def track_operation(
    category: str,
    name: str | None = None,
    *,
    factory: "OperationFactory | None" = None,
) -> Iterator["Operation"]:
    """Context manager running the block inside a started operation.

    Usage:
        with track_operation("app.billing", "invoice") as op:
            op.ctx("customer", customer_id)
            if not eligible:
                op.reject("ineligible")
                return
            send(invoice)
        # ok() recorded here unless the block terminated the operation

    Args:
        category: Operation category (usually a logger-like dotted name)
        name: Optional operation name within the category
        factory: Factory to create the operation with (process default if None)

    Yields:
        The started Operation
    """
    if factory is None:
        from opmeter.meter.factory import get_factory

        factory = get_factory()

    operation = factory.new_operation(category, name).start()
    try:
        yield operation
    except BaseException as e:
        if not operation.state.is_terminal:
            operation.fail(e)
        raise
    if operation.state is OperationState.STARTED:
        operation.ok()
