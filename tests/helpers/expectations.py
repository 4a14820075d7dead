"""Exception assertions that hand the raised error back for further checks."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

P = ParamSpec("P")
E = TypeVar("E", bound=BaseException)


def _not_raised(exception_type: type[BaseException]) -> AssertionError:
    return AssertionError(f"{exception_type.__name__} was not raised")


def expect_exception(func: Callable[P, object], exception_type: type[E], *args: P.args, **kwargs: P.kwargs) -> E:
    """Call ``func(*args, **kwargs)``; return the ``exception_type`` it raises."""
    try:
        func(*args, **kwargs)
    except exception_type as err:
        return err
    raise _not_raised(exception_type)


async def expect_async_exception(
    func: Callable[P, Awaitable[object]],
    exception_type: type[E],
    *args: P.args,
    **kwargs: P.kwargs,
) -> E:
    """Await ``func(*args, **kwargs)``; return the ``exception_type`` it raises."""
    try:
        await func(*args, **kwargs)
    except exception_type as err:
        return err
    raise _not_raised(exception_type)
