"""
Completion bridge between driver calls and store futures.

aiosqlite hands each statement to its worker thread and finishes a task
when the thread reports back. The store never returns those tasks
directly: every operation gets a fresh future that is settled from the
task's outcome in error-first form, optionally mapping rows through a
loader on the way.
"""

import asyncio
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

T = TypeVar("T")

RowLoader = Callable[[Any], T]


def settle(
    future: asyncio.Future,
    error: BaseException | None,
    rows: Iterable[Any] | None = None,
    row_loader: RowLoader | None = None,
) -> None:
    """
    Settle a store future from an error-first driver result.

    - error set: the future fails with it and rows are ignored
    - no loader: the future resolves to None
    - loader: every row is mapped in order and the list is the result

    A loader failure fails the future; no row is silently dropped.
    A future the caller already cancelled is left as it is.
    """
    if future.done():
        return

    if error is not None:
        future.set_exception(error)
        return

    if row_loader is None:
        future.set_result(None)
        return

    try:
        records = [row_loader(row) for row in rows or ()]
    except Exception as e:
        future.set_exception(e)
        return
    future.set_result(records)


def bridge(task: asyncio.Future, row_loader: RowLoader | None = None) -> asyncio.Future:
    """
    Return a new future settled from the outcome of a driver task.

    Args:
        task: Pending driver task (its result is the fetched row list, or
              anything when no loader is given)
        row_loader: Optional per-row mapping applied to the task's result
    """
    future = task.get_loop().create_future()

    def _on_done(done: asyncio.Future) -> None:
        if done.cancelled():
            future.cancel()
            return
        error = done.exception()
        settle(future, error, None if error is not None else done.result(), row_loader)

    task.add_done_callback(_on_done)
    return future
