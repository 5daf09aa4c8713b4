"""
Event hub: builds events from captured errors and delivers them.

Pipeline: normalize -> build (scope snapshot) -> enrich (runtime) ->
before_send gate -> transport -> offline queue on failure.
"""

import asyncio
import functools
import inspect
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from .config import Config
from .models import ErrorEvent, ErrorLevel
from .offline_queue import OfflineQueue, QueueStorage, create_storage
from .runtime import ProcessRuntime, Runtime
from .scope import Scope, UserLike, to_user
from .transport.base import BaseTransport
from .transport.http import HttpTransport
from .utils.normalize import CanonicalError, normalize_error
from .utils.safe import run_coroutine, safe, with_timeout

LevelLike = Union[ErrorLevel, str]


def capture_guard(fn: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
    """Run a hub coroutine so that any fault resolves to None."""

    @functools.wraps(fn)
    async def wrapper(self: "Hub", *args: Any, **kwargs: Any) -> Any:
        def on_error(error: Exception) -> None:
            self.config.debug_log(f"{fn.__name__} failed", error=repr(error))

        return await safe(fallback=None, on_error=on_error)(fn)(self, *args, **kwargs)

    return wrapper


def _timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Hub:
    """
    Central coordination point of the SDK.

    Holds configuration and scope, builds events and hands them to the
    transport. Runtime-specific fields come from the injected Runtime, so
    the build/enrich order is fixed here and not by subclass overrides.
    """

    def __init__(
        self,
        options: Any = None,
        *,
        runtime: Optional[Runtime] = None,
        transport: Optional[BaseTransport] = None,
        queue_storage: Optional[QueueStorage] = None,
        **kwargs: Any,
    ):
        """
        Initialize hub.

        Args:
            options: Config, ErrorTrackerOptions or mapping of options
            runtime: Enrichment strategy (defaults to ProcessRuntime)
            transport: Delivery transport (defaults to HttpTransport)
            queue_storage: Offline queue persistence (defaults from queue_path)
            **kwargs: Options given as keyword arguments

        Raises:
            ConfigurationError: If the options are invalid
        """
        self.config = options if isinstance(options, Config) else Config(options, **kwargs)
        self.scope = Scope(
            tags=dict(self.config.get("tags") or {}),
            user=to_user(self.config.get("user")),
        )
        self.runtime = runtime or ProcessRuntime()
        self.transport = transport or HttpTransport(self.config)
        self.queue = OfflineQueue(
            storage=queue_storage or create_storage(self.config.get("queue_path")),
            transport=self.transport,
            config=self.config,
            max_size=self.config.get("max_queue_size"),
        )
        self.pending_drain: Optional["asyncio.Task[int]"] = None
        self.initialized = True
        self.config.debug_log("SDK initialized")

    # Scope

    def set_user(self, user: Optional[UserLike]) -> None:
        """Set user information for all future events; None clears it."""
        self.scope.set_user(user)
        self.config.debug_log("User set", user=user)

    def set_tag(self, key: str, value: str) -> None:
        self.scope.set_tag(key, value)

    def set_tags(self, tags: Mapping[str, str]) -> None:
        self.scope.set_tags(tags)

    def set_extra(self, key: str, value: Any) -> None:
        """Set a single extra value; None removes the key."""
        self.scope.set_extra(key, value)

    def set_extras(self, extras: Mapping[str, Any]) -> None:
        self.scope.set_extras(extras)

    def get_config(self) -> Config:
        return self.config

    def is_initialized(self) -> bool:
        return self.initialized

    # Capture

    @capture_guard
    async def capture_exception(
        self,
        error: Any,
        level: LevelLike = ErrorLevel.ERROR,
    ) -> Optional[str]:
        """
        Capture an exception (or any value raised/rejected as one).

        Returns:
            Event ID, or None if the event was dropped, queued or failed
        """
        normalized = normalize_error(error)
        event = self.build_event(normalized.message, level, normalized)
        self.runtime.enrich(event, normalized)

        self.config.debug_log("Capturing exception", message=event.message)
        return await self.send_event(event)

    @capture_guard
    async def capture_message(
        self,
        message: str,
        level: LevelLike = ErrorLevel.WARNING,
    ) -> Optional[str]:
        """
        Capture a plain message.

        Returns:
            Event ID, or None if the event was dropped, queued or failed
        """
        event = self.build_event(message, level)
        self.runtime.enrich(event)

        self.config.debug_log("Capturing message", message=message)
        return await self.send_event(event)

    def build_event(
        self,
        message: str,
        level: LevelLike,
        error: Optional[Any] = None,
    ) -> ErrorEvent:
        """
        Build an ErrorEvent from the current configuration and scope.

        Tags, extras and user are copied, so later scope changes never reach
        an event that was already built. Empty tags/extras are left out.
        """
        if error is not None and not isinstance(error, CanonicalError):
            error = normalize_error(error)

        snapshot = self.scope.snapshot()
        return ErrorEvent(
            app_id=self.config.get("app_id"),
            commit_hash=self.config.get("commit_hash"),
            environment=self.config.get("environment"),
            level=ErrorLevel(level),
            message=message,
            stack_trace=error.stack if error is not None else None,
            metadata=snapshot.extras or None,
            tags=snapshot.tags or None,
            user=snapshot.user,
            timestamp=_timestamp(),
        )

    async def apply_before_send(self, event: ErrorEvent) -> Optional[ErrorEvent]:
        """
        Run the before_send hook.

        A hook returning None drops the event. A hook that raises (or returns
        something that is not an event) is ignored and the original event is
        kept.
        """
        before_send = self.config.get("before_send")
        if before_send is None:
            return event

        draft = event.detached_copy()
        try:
            result = before_send(draft)
            if inspect.isawaitable(result):
                result = await result
            if result is None or isinstance(result, ErrorEvent):
                return result
            return ErrorEvent.model_validate(result)
        except Exception as e:
            self.config.debug_log("beforeSend threw an error", error=repr(e))
            return event

    async def send_event(self, event: ErrorEvent) -> Optional[str]:
        """
        Gate and deliver a built event.

        Failed deliveries go to the offline queue. A successful delivery
        means the endpoint is reachable again, so a queue drain is scheduled.
        """
        processed = await self.apply_before_send(event)
        if processed is None:
            self.config.debug_log("Event dropped by beforeSend")
            return None

        result = await self.transport.send(processed)

        if not result.success:
            self.config.debug_log("Send failed, queueing event", error=result.error)
            self.queue.enqueue(processed)
            return None

        self.config.debug_log("Event sent successfully", id=result.id)
        if len(self.queue) and not self.queue.is_draining:
            self.schedule_drain()
        return result.id

    # Queue

    def schedule_drain(self) -> Any:
        """Start a queue drain in the background (or inline without a loop)."""
        result = run_coroutine(self.drain_queue())
        if isinstance(result, asyncio.Task):
            self.pending_drain = result
        return result

    @capture_guard
    async def drain_queue(self) -> int:
        """Retry queued events. Returns the number delivered."""
        return await self.queue.drain()

    async def flush(self, timeout: float = 5.0) -> None:
        """
        Drain the queue and wait for in-flight sends, bounded by timeout.

        Never raises.
        """
        try:
            await with_timeout(self.drain_queue(), timeout, 0)
            await self.transport.flush(timeout)
        except Exception as e:
            self.config.debug_log("Flush failed", error=repr(e))
