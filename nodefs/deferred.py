"""Deferred execution of blocking operations

Callback forms run their blocking body on a later turn of the running
asyncio event loop. Arguments are validated before anything is scheduled,
so validation errors still raise at the call site. Work is queued with
loop.call_soon, which runs callbacks in FIFO order, and each unit runs to
completion once started.
"""

import asyncio
import functools
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from .arguments import pop_callback

logger = logging.getLogger(__name__)


class Deliver(Enum):
    """How a completed operation's result reaches the callback"""

    VOID = "void"  # callback(None)
    VALUE = "value"  # callback(None, result)
    VALUES = "values"  # callback(None, *result)
    BARE = "bare"  # callback(result), no error slot


def schedule(function: Callable[..., Any], *args: Any) -> asyncio.Handle:
    """Queue function(*args) on the running loop

    Raises:
        RuntimeError: If no event loop is running
    """
    loop = asyncio.get_running_loop()
    return loop.call_soon(function, *args)


def defer(
    callback: Callable[..., Any],
    deliver: Deliver,
    operation: Callable[..., Any],
    *args: Any,
) -> None:
    """Run operation(*args) on a later turn and report to callback

    A failure is delivered as callback(err). Exceptions raised by the
    callback itself propagate to the loop's exception handler.
    """

    def run() -> None:
        try:
            result = operation(*args)
        except Exception as err:
            logger.debug("[deferred] %s failed: %s", _name(operation), err)
            callback(err)
            return

        if deliver is Deliver.VOID:
            callback(None)
        elif deliver is Deliver.VALUE:
            callback(None, result)
        elif deliver is Deliver.VALUES:
            callback(None, *result)
        else:
            callback(result)

    schedule(run)


def _name(operation: Callable[..., Any]) -> str:
    return getattr(operation, "__name__", repr(operation))


def callback_form(
    prepare: Callable[..., tuple],
    run: Callable[..., Any],
    deliver: Deliver = Deliver.VOID,
    name: Optional[str] = None,
) -> Callable[..., None]:
    """Build the callback form of a verb from its two halves

    Args:
        prepare: (self, *args) -> canonical argument tuple; raises on bad input
        run: (self, *canonical) -> result; the blocking body
        deliver: How the result is handed to the callback
        name: Public verb name, used for the docstring

    Returns:
        A method taking the verb's arguments followed by a callback
    """
    verb = name or run.__name__.lstrip("_")

    def method(self: Any, *args: Any) -> None:
        args, callback = pop_callback(args)
        prepared = prepare(self, *args)
        defer(callback, deliver, run, self, *prepared)

    method.__name__ = verb
    method.__qualname__ = verb
    method.__doc__ = f"Callback form of {verb}_sync; the callback is the last argument"
    return method


def promisify(function: Callable[..., None]) -> Callable[..., Awaitable[Any]]:
    """Turn a callback-last function into a coroutine function

    The coroutine resolves to None, the single value, or a tuple when the
    callback receives several values; an error argument is raised.
    """

    @functools.wraps(function)
    async def wrapper(*args: Any) -> Any:
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def callback(err: Optional[BaseException], *values: Any) -> None:
            if future.done():
                return
            if err is not None:
                future.set_exception(err)
            elif not values:
                future.set_result(None)
            elif len(values) == 1:
                future.set_result(values[0])
            else:
                future.set_result(values)

        function(*args, callback)
        return await future

    return wrapper
