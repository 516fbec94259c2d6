"""Structured fan-out for concurrent core operations."""

import asyncio
from collections.abc import Coroutine, Iterable
from typing import Any, TypeVar

T = TypeVar("T")


async def run_all(coros: Iterable[Coroutine[Any, Any, T]]) -> list[T]:
    """Run coroutines concurrently and return their results in order.

    If any of them fails, the others are cancelled and awaited before the
    first failure is raised on its own, outside of an ExceptionGroup.

    Args:
        coros: Coroutines to run as sibling tasks.

    Returns:
        Results in the order the coroutines were given.
    """
    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(coro) for coro in coros]
    except ExceptionGroup as failures:
        error: BaseException = failures
        while isinstance(error, BaseExceptionGroup):
            error = error.exceptions[0]
        raise error
    return [task.result() for task in tasks]
