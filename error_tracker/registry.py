"""Process-wide holder of the active client."""

from threading import Lock
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .client import Client


class ClientRegistry:
    """Holds at most one active client."""

    def __init__(self) -> None:
        self._client: Optional["Client"] = None
        self._lock = Lock()

    def get(self) -> Optional["Client"]:
        return self._client

    def set(self, client: Optional["Client"]) -> None:
        with self._lock:
            self._client = client

    def set_if_empty(self, client: "Client") -> bool:
        """
        Register a client unless one is already active.

        Returns:
            True if the client was registered
        """
        with self._lock:
            if self._client is not None:
                return False
            self._client = client
            return True

    def clear(self) -> Optional["Client"]:
        """Remove and return the active client."""
        with self._lock:
            client, self._client = self._client, None
            return client


registry = ClientRegistry()
