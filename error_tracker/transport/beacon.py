"""
Fire-and-forget transport for process teardown.

Payloads are handed to a daemon thread and the caller only learns whether
the event was accepted for dispatch, never whether it was delivered. No
custom headers are attached, so API keys are not sent; use HttpTransport
for authenticated endpoints.
"""

import asyncio
import queue
import threading
import time
from typing import Dict, Optional

import httpx

from ..config import Config
from ..models import ErrorEvent, TransportResponse
from .base import BaseTransport


class BeaconTransport(BaseTransport):
    """Transport that queues payloads for a background sender thread."""

    def __init__(
        self,
        config: Config,
        http_transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize transport and start the dispatch thread.

        Started eagerly: threads cannot be started during interpreter shutdown.

        Args:
            config: SDK configuration
            http_transport: Optional httpx transport (e.g. httpx.MockTransport)
        """
        super().__init__(config)
        self._http_transport = http_transport
        self._payloads: "queue.Queue[Optional[bytes]]" = queue.Queue()
        self._unfinished = 0
        self._done = threading.Condition()
        self._closed = False
        self._worker = threading.Thread(
            target=self._run,
            name="error-tracker-beacon",
            daemon=True,
        )
        self._worker.start()

    def build_headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def dispatch(self, event: ErrorEvent) -> bool:
        """
        Hand an event to the sender thread.

        Returns:
            True if the event was accepted for dispatch
        """
        if self._closed or not self._worker.is_alive():
            return False

        try:
            payload = self.serialize(event)
        except Exception:
            return False

        with self._done:
            self._unfinished += 1
        self._payloads.put(payload)
        return True

    async def send(self, event: ErrorEvent) -> TransportResponse:
        if self.dispatch(event):
            return TransportResponse(success=True)
        return TransportResponse(success=False, error="Beacon dispatch rejected")

    def wait(self, timeout: float) -> bool:
        """
        Block until every accepted payload was attempted.

        Returns:
            True if the dispatch queue emptied before the timeout
        """
        deadline = time.monotonic() + timeout
        with self._done:
            while self._unfinished:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._done.wait(remaining)
        return True

    async def flush(self, timeout: float) -> None:
        await asyncio.to_thread(self.wait, timeout)

    def close(self) -> None:
        """Stop accepting payloads; the thread exits after the backlog."""
        if self._closed:
            return
        self._closed = True
        self._payloads.put(None)

    def _run(self) -> None:
        with httpx.Client(
            timeout=self.config.get("timeout"),
            transport=self._http_transport,
        ) as client:
            while True:
                payload = self._payloads.get()
                if payload is None:
                    return
                try:
                    client.post(self.endpoint, content=payload, headers=self.build_headers())
                except Exception as e:
                    self.config.debug_log("Beacon send failed", error=str(e))
                finally:
                    with self._done:
                        self._unfinished -= 1
                        self._done.notify_all()
