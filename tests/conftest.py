"""Shared test fixtures."""

import asyncio
import os
from typing import List, Optional

import pytest

from error_tracker import api
from error_tracker.config import Config
from error_tracker.models import ErrorEvent, TransportResponse
from error_tracker.transport.base import BaseTransport

VALID_OPTIONS = {
    "dsn": "https://ingest.example.com/",
    "appId": "test-app",
    "commitHash": "abc123",
    "environment": "Production",
}


class RecordingTransport(BaseTransport):
    """Transport that records events and replays scripted responses."""

    def __init__(self, config: Config, responses: Optional[List] = None):
        super().__init__(config)
        self.sent: List[ErrorEvent] = []
        self.responses = list(responses or [])

    async def send(self, event: ErrorEvent) -> TransportResponse:
        self.sent.append(event)
        response = self.responses.pop(0) if self.responses else None
        if isinstance(response, Exception):
            raise response
        if response is None:
            response = TransportResponse(success=True, id=f"evt-{len(self.sent)}")
        return response


class StallingTransport(RecordingTransport):
    """RecordingTransport that never finishes sending the given messages."""

    def __init__(self, config: Config, stall_on: List[str]):
        super().__init__(config)
        self.stall_on = set(stall_on)

    async def send(self, event: ErrorEvent) -> TransportResponse:
        response = await super().send(event)
        if event.message in self.stall_on:
            await asyncio.sleep(10)
        return response


def failure(error: str = "HTTP 503") -> TransportResponse:
    return TransportResponse(success=False, status_code=503, error=error)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep ERROR_TRACKER_* variables of the host out of the tests."""
    for key in list(os.environ):
        if key.startswith("ERROR_TRACKER_"):
            monkeypatch.delenv(key)
    yield
    api.close()


@pytest.fixture
def options():
    return dict(VALID_OPTIONS)


@pytest.fixture
def config(options):
    return Config(options)


@pytest.fixture
def transport(config):
    return RecordingTransport(config)
