"""Tests for safe execution helpers."""

import asyncio
import inspect

from error_tracker.utils.safe import (
    run_coroutine,
    safe,
    safe_execute,
    safe_execute_async,
    with_timeout,
)


def _fail():
    raise RuntimeError("boom")


async def _fail_async():
    raise RuntimeError("boom")


async def _answer():
    return 42


class TestSafeExecute:
    """Test cases for the safe execution wrappers."""

    def test_safe_execute(self):
        assert safe_execute(lambda: 1, 0) == 1
        assert safe_execute(_fail, "fallback") == "fallback"

    def test_safe_execute_async(self):
        assert asyncio.run(safe_execute_async(_answer, 0)) == 42
        assert asyncio.run(safe_execute_async(_fail_async, None)) is None

    def test_safe_decorator_sync(self):
        errors = []
        wrapped = safe(fallback=-1, on_error=errors.append)(_fail)

        assert wrapped() == -1
        assert isinstance(errors[0], RuntimeError)

    def test_safe_decorator_async(self):
        errors = []
        wrapped = safe(on_error=errors.append)(_fail_async)

        assert inspect.iscoroutinefunction(wrapped)
        assert asyncio.run(wrapped()) is None
        assert len(errors) == 1

    def test_safe_decorator_failing_callback(self):
        """Test a raising on_error callback is ignored."""

        def on_error(error):
            raise ValueError("callback")

        assert safe(fallback=0, on_error=on_error)(_fail)() == 0


class TestAsyncHelpers:
    """Test cases for the asyncio helpers."""

    def test_with_timeout_expires(self):
        result = asyncio.run(with_timeout(asyncio.sleep(1, result="late"), 0.01, "fallback"))

        assert result == "fallback"

    def test_with_timeout_completes(self):
        assert asyncio.run(with_timeout(_answer(), 1.0, 0)) == 42

    def test_run_coroutine_without_loop(self):
        """Test coroutines run to completion outside an event loop."""
        assert run_coroutine(_answer()) == 42

    def test_run_coroutine_inside_loop(self):
        """Test coroutines become tasks inside a running loop."""

        async def scenario():
            task = run_coroutine(_answer())
            assert isinstance(task, asyncio.Task)
            return await task

        assert asyncio.run(scenario()) == 42
