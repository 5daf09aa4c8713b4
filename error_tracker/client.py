"""Error tracker client: hub plus process integrations and lifecycle."""

import asyncio
from typing import Any, Mapping, Optional

from .config import Config
from .hub import Hub, LevelLike
from .integrations.global_handlers import HandlerStack, install_exit_handler, setup_global_handlers
from .models import ErrorLevel
from .offline_queue import QueueStorage
from .runtime import Runtime
from .scope import UserLike
from .transport.base import BaseTransport
from .transport.beacon import BeaconTransport


class Client:
    """
    Process-level SDK client.

    Wraps a Hub and installs the global integrations: excepthooks, the
    asyncio exception handler and signal handlers when auto_capture is on,
    and the exit-time beacon flush of the offline queue in every case.
    """

    def __init__(
        self,
        options: Any = None,
        *,
        runtime: Optional[Runtime] = None,
        transport: Optional[BaseTransport] = None,
        beacon: Optional[BeaconTransport] = None,
        queue_storage: Optional[QueueStorage] = None,
        **kwargs: Any,
    ):
        """
        Initialize client.

        Raises:
            ConfigurationError: If the options are invalid; nothing is
                installed in that case
        """
        self.hub = Hub(
            options,
            runtime=runtime,
            transport=transport,
            queue_storage=queue_storage,
            **kwargs,
        )
        self.config: Config = self.hub.config
        self.beacon = beacon or BeaconTransport(self.config)
        self.closed = False

        self._cleanup = HandlerStack()
        self._cleanup.push(self.beacon.close)
        self._cleanup.push(install_exit_handler(self))

        if self.config.get("auto_capture"):
            self._cleanup.push(setup_global_handlers(self))

        self._drain_on_start()

    def _drain_on_start(self) -> None:
        # Only inside a running loop; a blocking drain would stall startup
        if len(self.hub.queue) == 0:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            self.config.debug_log("No running event loop, queue drain deferred")
            return
        self.hub.schedule_drain()

    # Capture

    async def capture_exception(
        self,
        error: Any,
        level: LevelLike = ErrorLevel.ERROR,
    ) -> Optional[str]:
        """Capture an exception. Returns the event ID or None."""
        return await self.hub.capture_exception(error, level)

    async def capture_message(
        self,
        message: str,
        level: LevelLike = ErrorLevel.WARNING,
    ) -> Optional[str]:
        """Capture a message. Returns the event ID or None."""
        return await self.hub.capture_message(message, level)

    # Scope

    def set_user(self, user: Optional[UserLike]) -> None:
        self.hub.set_user(user)

    def set_tag(self, key: str, value: str) -> None:
        self.hub.set_tag(key, value)

    def set_tags(self, tags: Mapping[str, str]) -> None:
        self.hub.set_tags(tags)

    def set_extra(self, key: str, value: Any) -> None:
        self.hub.set_extra(key, value)

    def set_extras(self, extras: Mapping[str, Any]) -> None:
        self.hub.set_extras(extras)

    def get_config(self) -> Config:
        return self.config

    def is_initialized(self) -> bool:
        return self.hub.is_initialized() and not self.closed

    # Lifecycle

    async def flush(self, timeout: float = 5.0) -> None:
        """Retry queued events and wait for in-flight sends, bounded by timeout."""
        await self.hub.flush(timeout)

    def flush_pending_on_exit(self) -> int:
        """
        Dispatch the offline queue through the beacon at process exit.

        Waits at most shutdown_timeout seconds for dispatch; delivery is
        not confirmed.

        Returns:
            Number of events accepted for dispatch
        """
        try:
            accepted = self.hub.queue.flush_all_best_effort(self.beacon)
            if accepted:
                self.beacon.wait(self.config.get("shutdown_timeout"))
            return accepted
        except Exception as e:
            self.config.debug_log("Exit flush failed", error=repr(e))
            return 0

    def close(self) -> None:
        """
        Detach every installed hook.

        Does not wait for in-flight sends; await flush() first for that.
        """
        if self.closed:
            return
        self._cleanup.dispose_all()
        self.closed = True
        self.config.debug_log("Client destroyed")

    destroy = close
