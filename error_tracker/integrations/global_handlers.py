"""
Global error handlers.

Hooks into sys.excepthook, threading.excepthook, the asyncio loop exception
handler and termination signals to capture errors automatically. Every
installer returns a disposer; disposers are kept on a HandlerStack and run
last-in first-out so each one only undoes its own layer.
"""

import asyncio
import atexit
import signal
import sys
import threading
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional

from ..models import ErrorLevel
from ..utils.safe import run_coroutine, safe_execute

if TYPE_CHECKING:
    from ..client import Client

Disposer = Callable[[], None]

TERMINATION_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class HandlerStack:
    """Installed handler layers, torn down in reverse installation order."""

    def __init__(self) -> None:
        self._disposers: List[Disposer] = []

    def push(self, disposer: Disposer) -> Disposer:
        self._disposers.append(disposer)
        return disposer

    def dispose_all(self) -> None:
        while self._disposers:
            disposer = self._disposers.pop()
            safe_execute(disposer, None)

    def __len__(self) -> int:
        return len(self._disposers)


def _noop() -> None:
    return None


def capture_from_hook(client: "Client", error: Any, level: ErrorLevel) -> None:
    """Capture from synchronous hook code. Never raises."""
    try:
        run_coroutine(client.capture_exception(error, level))
    except Exception as e:
        client.config.debug_log("Hook capture failed", error=repr(e))


def install_excepthook(client: "Client") -> Disposer:
    """Capture uncaught exceptions of the main thread at Critical level."""
    previous = sys.excepthook
    state = {"active": True}

    def excepthook(exc_type, exc_value, exc_traceback):
        if state["active"] and not issubclass(exc_type, KeyboardInterrupt):
            client.config.debug_log("Caught uncaught exception", message=str(exc_value))
            capture_from_hook(client, exc_value, ErrorLevel.CRITICAL)
        previous(exc_type, exc_value, exc_traceback)

    sys.excepthook = excepthook

    def dispose() -> None:
        state["active"] = False
        if sys.excepthook is excepthook:
            sys.excepthook = previous

    return dispose


def install_threading_excepthook(client: "Client") -> Disposer:
    """Capture exceptions that end a thread."""
    previous = threading.excepthook
    state = {"active": True}

    def excepthook(args):
        if (
            state["active"]
            and args.exc_value is not None
            and not issubclass(args.exc_type, SystemExit)
        ):
            client.config.debug_log(
                "Caught thread exception",
                thread=getattr(args.thread, "name", None),
            )
            capture_from_hook(client, args.exc_value, ErrorLevel.ERROR)
        previous(args)

    threading.excepthook = excepthook

    def dispose() -> None:
        state["active"] = False
        if threading.excepthook is excepthook:
            threading.excepthook = previous

    return dispose


def install_asyncio_handler(
    client: "Client",
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> Disposer:
    """
    Capture errors reported to an event loop's exception handler.

    Covers exceptions of tasks nobody awaited. Without a loop argument the
    running loop is used; outside a loop nothing is installed.
    """
    if loop is None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return _noop

    previous = loop.get_exception_handler()
    state = {"active": True}

    def handler(event_loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
        if state["active"]:
            error = context.get("exception") or context.get("message", "Unhandled asyncio error")
            client.config.debug_log("Caught asyncio exception", message=str(error))
            capture_from_hook(client, error, ErrorLevel.ERROR)
        if previous is not None:
            previous(event_loop, context)
        else:
            event_loop.default_exception_handler(context)

    loop.set_exception_handler(handler)

    def dispose() -> None:
        state["active"] = False
        if loop.get_exception_handler() is handler:
            loop.set_exception_handler(previous)

    return dispose


def install_signal_handlers(
    client: "Client",
    signals: Iterable[signal.Signals] = TERMINATION_SIGNALS,
) -> Disposer:
    """
    Flush pending events on termination signals, then defer to the
    previous handler (default action exits with status 0).

    Signal handlers can only be installed from the main thread.
    """
    if threading.current_thread() is not threading.main_thread():
        return _noop

    previous: Dict[int, Any] = {}
    state = {"active": True}

    def chain(signum, frame):
        prior = previous.get(signum)
        if callable(prior):
            prior(signum, frame)
        elif prior == signal.SIG_IGN:
            return
        else:
            sys.exit(0)

    def handler(signum, frame):
        if not state["active"]:
            chain(signum, frame)
            return

        client.config.debug_log("Received termination signal, flushing...")
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            safe_execute(lambda: run_coroutine(client.flush()), None)
            chain(signum, frame)
            return

        # A running loop cannot be blocked on; chain once the flush task is done
        task = run_coroutine(client.flush())
        task.add_done_callback(lambda _: chain(signum, frame))

    for signum in signals:
        try:
            previous[signum] = signal.getsignal(signum)
            signal.signal(signum, handler)
        except (ValueError, OSError) as e:
            previous.pop(signum, None)
            client.config.debug_log("Cannot install signal handler", signal=int(signum), error=str(e))

    def dispose() -> None:
        state["active"] = False
        for signum, prior in previous.items():
            if signal.getsignal(signum) is handler:
                signal.signal(signum, prior if prior is not None else signal.SIG_DFL)

    return dispose


def install_exit_handler(client: "Client") -> Disposer:
    """Hand queued events to the beacon transport at interpreter exit."""
    state = {"active": True}

    def on_exit() -> None:
        if state["active"]:
            client.flush_pending_on_exit()

    atexit.register(on_exit)

    def dispose() -> None:
        state["active"] = False
        atexit.unregister(on_exit)

    return dispose


def setup_global_handlers(client: "Client") -> Disposer:
    """
    Install every automatic capture hook.

    Returns:
        Cleanup function removing the handlers in reverse order
    """
    stack = HandlerStack()
    stack.push(install_excepthook(client))
    stack.push(install_threading_excepthook(client))
    stack.push(install_asyncio_handler(client))
    stack.push(install_signal_handlers(client))
    client.config.debug_log("Global handlers installed", count=len(stack))
    return stack.dispose_all
