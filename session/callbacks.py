"""
Completion-callback adapter for host frameworks.

Store operations are coroutines. Hosts that expect node-style completion
callbacks pass ``callback(error, result)``; it is invoked exactly once,
with either the exception or the result, and the coroutine still returns
or raises as usual.
"""

from typing import Any, Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")

Callback = Callable[[Optional[BaseException], Any], Any]


async def with_callback(
    awaitable: Awaitable[T],
    callback: Optional[Callback] = None
) -> T:
    """Await ``awaitable`` and report its outcome to ``callback``."""
    try:
        result = await awaitable
    except Exception as e:
        if callback is not None:
            callback(e, None)
        raise
    if callback is not None:
        callback(None, result)
    return result
