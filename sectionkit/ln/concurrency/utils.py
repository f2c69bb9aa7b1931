import inspect
from collections.abc import Callable
from typing import Any

__all__ = ("is_coro_func", "callable_name")


def is_coro_func(func: Callable[..., Any]) -> bool:
    """Check if a callable is a coroutine function or has an async ``__call__``.

    Not cached: queued callables are usually one-off closures.
    """
    if inspect.iscoroutinefunction(func):
        return True
    call = getattr(func, "__call__", None)
    return call is not None and inspect.iscoroutinefunction(call)


def callable_name(func: Callable[..., Any] | None) -> str:
    if func is None:
        return "None"
    return getattr(func, "__qualname__", None) or type(func).__name__
