"""HTTP transport using httpx."""

import asyncio
import time
from threading import Lock
from typing import Optional

import httpx
import orjson

from ..config import Config
from ..models import ErrorEvent, TransportResponse
from .base import BaseTransport


class HttpTransport(BaseTransport):
    """
    Request/response transport used for normal delivery.

    A client is opened per send so that sends issued from different event
    loops (signal handlers, thread excepthooks) never share a connection pool.
    """

    def __init__(
        self,
        config: Config,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize transport.

        Args:
            config: SDK configuration
            http_transport: Optional httpx transport (e.g. httpx.MockTransport)
        """
        super().__init__(config)
        self._http_transport = http_transport
        self._in_flight = 0
        self._lock = Lock()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.config.get("timeout"),
            transport=self._http_transport,
        )

    async def send(self, event: ErrorEvent) -> TransportResponse:
        with self._lock:
            self._in_flight += 1
        try:
            return await self._post(event)
        finally:
            with self._lock:
                self._in_flight -= 1

    async def _post(self, event: ErrorEvent) -> TransportResponse:
        try:
            async with self._client() as client:
                response = await client.post(
                    self.endpoint,
                    content=self.serialize(event),
                    headers=self.build_headers(),
                )
        except httpx.TimeoutException:
            return TransportResponse(success=False, error="Request timeout")
        except httpx.HTTPError as e:
            return TransportResponse(success=False, error=str(e) or type(e).__name__)
        except Exception as e:
            return TransportResponse(success=False, error=str(e) or "Unknown error")

        status_code = response.status_code
        if not response.is_success:
            return TransportResponse(
                success=False,
                status_code=status_code,
                error=f"HTTP {status_code}",
            )

        # 2xx means the event was ingested even if the body is not JSON
        try:
            body = orjson.loads(response.content)
        except orjson.JSONDecodeError:
            return TransportResponse(success=True, status_code=status_code)

        result = self.parse_response(body)
        result.status_code = status_code
        return result

    @property
    def pending_count(self) -> int:
        """Number of sends currently in flight."""
        with self._lock:
            return self._in_flight

    async def flush(self, timeout: float) -> None:
        """Wait until in-flight sends finish or timeout seconds pass."""
        deadline = time.monotonic() + timeout
        while self.pending_count and time.monotonic() < deadline:
            await asyncio.sleep(0.05)
