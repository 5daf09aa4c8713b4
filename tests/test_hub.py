"""Tests for the event hub."""

import asyncio
import json
import platform
import re
import threading

import httpx

from error_tracker.config import Config
from error_tracker.hub import Hub
from error_tracker.models import ErrorLevel
from error_tracker.runtime import ProcessRuntime, Runtime
from error_tracker.transport.http import HttpTransport

from conftest import VALID_OPTIONS, RecordingTransport, failure


def _raise_value_error():
    raise ValueError("boom")


class TestEventBuilding:
    """Tests for event construction and scope handling."""

    def setup_method(self):
        """Set up test fixtures."""
        self.config = Config(VALID_OPTIONS)
        self.transport = RecordingTransport(self.config)
        self.hub = Hub(self.config, transport=self.transport)

    def test_initialized(self):
        assert self.hub.is_initialized() is True
        assert self.hub.get_config() is self.config

    def test_capture_message_fields(self):
        """Test identity fields, level and enrichment of a message event."""
        event_id = asyncio.run(self.hub.capture_message("disk almost full"))

        event = self.transport.sent[0]
        assert event_id == "evt-1"
        assert event.app_id == "test-app"
        assert event.commit_hash == "abc123"
        assert event.environment == "Production"
        assert event.level == ErrorLevel.WARNING
        assert event.message == "disk almost full"
        assert event.stack_trace is None
        assert event.source_context is None
        assert event.timestamp.endswith("Z")
        assert event.user_agent.startswith(platform.python_implementation())

    def test_capture_with_debug_logging(self):
        """Test captures still deliver when diagnostics are logged."""
        config = Config({**VALID_OPTIONS, "debug": True})
        transport = RecordingTransport(config)
        hub = Hub(config, transport=transport)

        assert asyncio.run(hub.capture_message("hello", "Warning")) == "evt-1"
        assert asyncio.run(hub.capture_exception(ValueError("boom"))) == "evt-2"
        assert [event.message for event in transport.sent] == ["hello", "boom"]

    def test_no_empty_tags_or_metadata(self):
        """Test empty scope maps are left out of the event."""
        event = self.hub.build_event("m", ErrorLevel.ERROR)

        assert event.tags is None
        assert event.metadata is None
        assert event.user is None

    def test_scope_values_copied(self):
        """Test tags, extras and user land on the event."""
        self.hub.set_tags({"region": "eu"})
        self.hub.set_extra("order", {"id": 7})
        self.hub.set_user({"id": "u1"})

        event = self.hub.build_event("m", "Error")

        assert event.tags == {"region": "eu"}
        assert event.metadata == {"order": {"id": 7}}
        assert event.user.id == "u1"

    def test_snapshot_isolation(self):
        """Test scope changes after building never reach the event."""
        self.hub.set_tag("stage", "one")
        event = self.hub.build_event("m", "Error")

        self.hub.set_tag("stage", "two")
        self.hub.set_extras({"late": True})
        self.hub.set_user({"id": "late-user"})

        assert event.tags == {"stage": "one"}
        assert event.metadata is None
        assert event.user is None

    def test_config_tags_and_user_seed_scope(self):
        config = Config({**VALID_OPTIONS, "tags": {"service": "api"}, "user": {"id": "svc"}})
        hub = Hub(config, transport=RecordingTransport(config))

        event = hub.build_event("m", "Error")

        assert event.tags == {"service": "api"}
        assert event.user.id == "svc"

    def test_capture_exception_source_context(self):
        """Test the raising frame is reported as source context."""
        try:
            _raise_value_error()
        except ValueError as e:
            error = e

        event_id = asyncio.run(self.hub.capture_exception(error))

        event = self.transport.sent[0]
        assert event_id == "evt-1"
        assert event.level == ErrorLevel.ERROR
        assert event.message == "boom"
        assert "ValueError: boom" in event.stack_trace
        assert event.source_context.function_name == "_raise_value_error"
        assert event.source_context.file_name.endswith("test_hub.py")

    def test_capture_exception_critical_level(self):
        asyncio.run(self.hub.capture_exception("fatal", ErrorLevel.CRITICAL))

        assert self.transport.sent[0].level == "Critical"

    def test_invalid_level_is_swallowed(self):
        """Test an unknown level resolves to None without sending."""
        assert asyncio.run(self.hub.capture_message("x", "Fatal")) is None
        assert self.transport.sent == []

    def test_transport_exception_is_swallowed(self):
        transport = RecordingTransport(self.config, [RuntimeError("socket closed")])
        hub = Hub(self.config, transport=transport)

        assert asyncio.run(hub.capture_message("x")) is None


class TestBeforeSend:
    """Tests for the before_send gate."""

    def setup_method(self):
        """Set up test fixtures."""
        self.config = Config(VALID_OPTIONS)
        self.transport = RecordingTransport(self.config)
        self.hub = Hub(self.config, transport=self.transport)

    def test_drop(self):
        """Test returning None drops the event without sending."""
        self.config.update(before_send=lambda event: None)

        assert asyncio.run(self.hub.capture_message("dropped")) is None
        assert self.transport.sent == []
        assert len(self.hub.queue) == 0

    def test_modify(self):
        def scrub(event):
            event.message = "scrubbed"
            return event

        self.config.update(before_send=scrub)
        asyncio.run(self.hub.capture_message("secret"))

        assert self.transport.sent[0].message == "scrubbed"

    def test_failure_sends_unmodified_original(self):
        """Test a raising hook is ignored and its mutations are discarded."""

        def broken(event):
            event.message = "half-modified"
            raise RuntimeError("hook bug")

        self.config.update(before_send=broken)
        event_id = asyncio.run(self.hub.capture_message("original"))

        assert event_id == "evt-1"
        assert self.transport.sent[0].message == "original"

    def test_async_hook(self):
        async def tag(event):
            event.tags = {"hooked": "yes"}
            return event

        self.config.update(before_send=tag)
        asyncio.run(self.hub.capture_message("m"))

        assert self.transport.sent[0].tags == {"hooked": "yes"}

    def test_hook_returning_mapping(self):
        self.config.update(before_send=lambda event: {**event.to_wire(), "message": "from dict"})
        asyncio.run(self.hub.capture_message("m"))

        assert self.transport.sent[0].message == "from dict"

    def test_hook_runs_when_extras_cannot_be_deep_copied(self):
        """Test a dropping hook still sees events holding uncopyable extras."""
        seen = []

        def drop(event):
            seen.append(event.message)
            return None

        self.hub.set_extra("lock", threading.Lock())
        self.config.update(before_send=drop)

        assert asyncio.run(self.hub.capture_message("secret")) is None
        assert seen == ["secret"]
        assert self.transport.sent == []


class TestDeliveryAndQueue:
    """Tests for failure queueing and retry."""

    def setup_method(self):
        """Set up test fixtures."""
        self.config = Config(VALID_OPTIONS)

    def test_failed_send_is_queued(self):
        transport = RecordingTransport(self.config, [failure()])
        hub = Hub(self.config, transport=transport)

        assert asyncio.run(hub.capture_message("lost")) is None
        assert [event.message for event in hub.queue.pending()] == ["lost"]

    def test_success_triggers_drain(self):
        """Test a successful send retries queued events in the background."""
        transport = RecordingTransport(self.config, [failure()])
        hub = Hub(self.config, transport=transport)

        async def scenario():
            await hub.capture_message("first")
            event_id = await hub.capture_message("second")
            await hub.pending_drain
            return event_id

        assert asyncio.run(scenario()) == "evt-2"
        assert [event.message for event in transport.sent] == ["first", "second", "first"]
        assert len(hub.queue) == 0

    def test_flush_drains_queue(self):
        transport = RecordingTransport(self.config, [failure(), failure()])
        hub = Hub(self.config, transport=transport)

        async def scenario():
            await hub.capture_message("a")
            await hub.capture_message("b")
            await hub.flush(1.0)

        asyncio.run(scenario())

        assert [event.message for event in transport.sent] == ["a", "b", "a", "b"]
        assert len(hub.queue) == 0

    def test_queue_persists_across_hubs(self, tmp_path):
        """Test file-backed queue entries survive a restart."""
        config = Config({**VALID_OPTIONS, "queuePath": str(tmp_path / "queue.json")})
        hub = Hub(config, transport=RecordingTransport(config, [failure()]))
        asyncio.run(hub.capture_message("persisted"))

        restarted = Hub(config, transport=RecordingTransport(config))

        assert [event.message for event in restarted.queue.pending()] == ["persisted"]

    def test_end_to_end_capture_message(self):
        """Test a message travels through the HTTP transport."""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"success": True, "id": "evt-1"})

        config = Config({**VALID_OPTIONS, "apiKey": "secret"})
        transport = HttpTransport(config, http_transport=httpx.MockTransport(handler))
        hub = Hub(config, transport=transport)

        assert asyncio.run(hub.capture_message("hello", "Warning")) == "evt-1"

        request = requests[0]
        body = json.loads(request.content)
        assert request.method == "POST"
        assert request.url == "https://ingest.example.com/api/ingest-error"
        assert request.headers["x-functions-key"] == "secret"
        assert body["appId"] == "test-app"
        assert body["commitHash"] == "abc123"
        assert body["environment"] == "Production"
        assert body["level"] == "Warning"
        assert body["message"] == "hello"
        assert "metadata" not in body
        assert "stackTrace" not in body


class TestRuntime:
    """Tests for runtime enrichment."""

    def test_process_user_agent(self):
        user_agent = ProcessRuntime().user_agent()

        assert re.match(r"^\w+/\d+\.\d+\.\d+\S* \(.+\)$", user_agent)

    def test_base_runtime_adds_nothing(self):
        config = Config(VALID_OPTIONS)
        hub = Hub(config, runtime=Runtime(), transport=RecordingTransport(config))
        event = hub.build_event("m", "Error")

        Runtime().enrich(event)

        assert event.user_agent is None
        assert event.source_context is None
