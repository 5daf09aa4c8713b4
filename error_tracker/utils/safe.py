"""
Safe execution utilities.

Every public SDK operation goes through one of these wrappers so that a
fault inside the SDK never propagates into the host application.
"""

import asyncio
import functools
import inspect
from typing import Any, Awaitable, Callable, Coroutine, Optional, Set, TypeVar

T = TypeVar("T")

# Strong references to fire-and-forget tasks so they are not collected mid-flight
_background_tasks: Set["asyncio.Task[Any]"] = set()


def safe_execute(fn: Callable[[], T], fallback: T) -> T:
    """Execute a function, returning fallback on error."""
    try:
        return fn()
    except Exception:
        return fallback


async def safe_execute_async(fn: Callable[[], Awaitable[T]], fallback: T) -> T:
    """Execute an async function, returning fallback on error."""
    try:
        return await fn()
    except Exception:
        return fallback


def safe(
    fallback: Any = None,
    on_error: Optional[Callable[[Exception], None]] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator form of safe_execute for sync and async callables.

    Args:
        fallback: Value returned when the wrapped call raises
        on_error: Optional callback receiving the swallowed exception
    """

    def report(error: Exception) -> None:
        if on_error is not None:
            safe_execute(lambda: on_error(error), None)

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                try:
                    return await fn(*args, **kwargs)
                except Exception as e:
                    report(e)
                    return fallback

            return async_wrapper

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return fn(*args, **kwargs)
            except Exception as e:
                report(e)
                return fallback

        return wrapper

    return decorator


async def with_timeout(awaitable: Awaitable[T], timeout: float, fallback: T) -> T:
    """Await with a time limit, returning fallback when it expires."""
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError:
        return fallback


def run_coroutine(coro: Coroutine[Any, Any, T]) -> Any:
    """
    Run a coroutine from synchronous code.

    Inside a running event loop the coroutine is scheduled as a task and the
    task is returned; otherwise it runs to completion on a fresh loop and
    its result is returned.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    task = loop.create_task(coro)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task
