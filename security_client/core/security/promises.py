"""Awaitable mirrors for callback-style operations.

``install_async_mirrors`` adds ``<operation>_async`` coroutine methods for a
closed list of operation names. Each mirror supplies its own completion
callback and delegates to the original operation, so both consumption styles
share one implementation.
"""
from __future__ import annotations
import asyncio
import functools
from typing import Any, Callable, Iterable, Optional

from .exceptions import InvalidArgumentError

ASYNC_SUFFIX = "_async"


def _settle(future: asyncio.Future, error: Optional[BaseException], result: Any) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)


def make_async_mirror(operation: Callable, name: str) -> Callable:
    """Build the coroutine mirror of one callback-style operation."""
    mirror_name = f"{name}{ASYNC_SUFFIX}"

    @functools.wraps(operation)
    async def mirror(*args, **kwargs):
        if "callback" in kwargs or any(callable(arg) for arg in args):
            raise InvalidArgumentError(f"{mirror_name}: awaitable operations do not take a callback")

        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def _on_done(error, result=None):
            # Transports may complete on a worker thread.
            loop.call_soon_threadsafe(_settle, future, error, result)

        operation(*args, callback=_on_done, **kwargs)
        return await future

    mirror.__name__ = mirror_name
    mirror.__qualname__ = mirror_name
    return mirror


def install_async_mirrors(target: Any, operations: Iterable[str]) -> Any:
    """Attach an awaitable mirror to ``target`` for every listed operation.

    Args:
        target: Object exposing the callback-style operations
        operations: Operation names; anything not listed is left alone

    Returns:
        The target, for chaining
    """
    for name in operations:
        operation = getattr(target, name)
        setattr(target, f"{name}{ASYNC_SUFFIX}", make_async_mirror(operation, name))
    return target
