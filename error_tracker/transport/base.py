"""Shared transport logic: endpoint, headers, payload and response parsing."""

from abc import ABC, abstractmethod
from typing import Any, Dict

import orjson
from pydantic import ValidationError

from ..config import Config
from ..models import ApiErrorResponse, ErrorEvent, IngestErrorResponse, TransportResponse

INGEST_PATH = "/api/ingest-error"


def _value(v: Any) -> Any:
    return getattr(v, "value", v)


class BaseTransport(ABC):
    """
    Delivers one event to the ingestion endpoint.

    send() never raises: every failure mode resolves to a TransportResponse
    with success=False.
    """

    def __init__(self, config: Config):
        self.config = config
        self.endpoint = f"{config.get('dsn').rstrip('/')}{INGEST_PATH}"

    @abstractmethod
    async def send(self, event: ErrorEvent) -> TransportResponse:
        """Deliver a single event."""

    async def flush(self, timeout: float) -> None:
        """Wait up to timeout seconds for in-flight sends."""
        return None

    def build_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}

        api_key = self.config.get("api_key")
        if api_key:
            headers["x-functions-key"] = api_key

        return headers

    def build_payload(self, event: ErrorEvent) -> Dict[str, Any]:
        """
        Build the ingestion request body.

        Tags and user are folded into metadata next to the extras; metadata
        is left out entirely when nothing ends up in it.
        """
        payload: Dict[str, Any] = {
            "appId": event.app_id,
            "commitHash": event.commit_hash,
            "environment": _value(event.environment),
            "level": _value(event.level),
            "message": event.message,
        }

        if event.stack_trace:
            payload["stackTrace"] = event.stack_trace

        metadata: Dict[str, Any] = dict(event.metadata or {})
        if event.tags:
            metadata["tags"] = dict(event.tags)
        if event.user is not None:
            metadata["user"] = event.user.to_wire()
        if metadata:
            payload["metadata"] = metadata

        if event.source_context is not None:
            payload["sourceContext"] = event.source_context.to_wire()

        if event.user_agent:
            payload["userAgent"] = event.user_agent

        return payload

    def serialize(self, event: ErrorEvent) -> bytes:
        """Encode the payload; values JSON cannot represent are stringified."""
        return orjson.dumps(self.build_payload(event), default=str)

    def parse_response(self, body: Any) -> TransportResponse:
        """Map a decoded response body to a TransportResponse."""
        try:
            parsed = IngestErrorResponse.model_validate(body)
            if parsed.success:
                return TransportResponse(success=True, id=parsed.id)
        except ValidationError:
            pass

        try:
            error = ApiErrorResponse.model_validate(body)
        except ValidationError:
            return TransportResponse(success=False, error="Unexpected response body")

        if error.details:
            self.config.debug_log("Ingestion rejected event", details=error.details)
        return TransportResponse(success=False, error=error.error)
