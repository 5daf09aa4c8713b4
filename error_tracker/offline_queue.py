"""Bounded offline queue for events that could not be delivered."""

import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

import orjson
from pydantic import ValidationError

from .config import Config
from .models import ErrorEvent
from .transport.base import BaseTransport
from .transport.beacon import BeaconTransport

MAX_QUEUE_SIZE = 100


class QueueStorage(Protocol):
    """Key-value style persistence for queued events."""

    def get(self) -> List[Dict[str, Any]]:
        ...

    def set(self, events: List[Dict[str, Any]]) -> None:
        ...

    def clear(self) -> None:
        ...


class MemoryQueueStorage:
    """Process-local storage; entries are lost when the process dies."""

    def __init__(self) -> None:
        self._events: List[Dict[str, Any]] = []

    def get(self) -> List[Dict[str, Any]]:
        return list(self._events)

    def set(self, events: List[Dict[str, Any]]) -> None:
        self._events = list(events)

    def clear(self) -> None:
        self._events = []


class FileQueueStorage:
    """
    JSON file storage that survives restarts.

    A missing or corrupt file reads as an empty queue. Write errors propagate
    to the OfflineQueue, which swallows them.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def get(self) -> List[Dict[str, Any]]:
        try:
            data = orjson.loads(self.path.read_bytes())
        except (OSError, orjson.JSONDecodeError):
            return []
        return data if isinstance(data, list) else []

    def set(self, events: List[Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".queue-")
        with os.fdopen(fd, "wb") as f:
            f.write(orjson.dumps(events, default=str))
        os.replace(tmp_path, self.path)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class OfflineQueue:
    """
    Oldest-first buffer of undelivered events with FIFO eviction.

    The drain reads everything, sends, then writes back the remainder; an
    enqueue landing between the read and the write-back can be overwritten.
    Under cooperative scheduling this only happens when a capture fails while
    a drain is suspended on a send, and costs at most that one event.
    """

    def __init__(
        self,
        storage: QueueStorage,
        transport: BaseTransport,
        config: Config,
        max_size: int = MAX_QUEUE_SIZE,
    ):
        self.storage = storage
        self.transport = transport
        self.config = config
        self.max_size = max_size
        self._draining = False

    # Storage access; custom storages may raise, the queue never does

    def _read(self) -> List[Dict[str, Any]]:
        try:
            entries = self.storage.get()
        except Exception as e:
            self.config.debug_log("Queue read failed", error=str(e))
            return []
        return list(entries or [])

    def _write(self, events: List[ErrorEvent]) -> None:
        try:
            self.storage.set([event.to_wire() for event in events])
        except Exception as e:
            self.config.debug_log("Queue write failed", error=str(e))

    def _clear(self) -> None:
        try:
            self.storage.clear()
        except Exception as e:
            self.config.debug_log("Queue clear failed", error=str(e))

    def _parse(self, entries: List[Dict[str, Any]]) -> List[ErrorEvent]:
        events = []
        for entry in entries:
            try:
                events.append(ErrorEvent.model_validate(entry))
            except ValidationError:
                self.config.debug_log("Dropping unreadable queue entry")
        return events

    def pending(self) -> List[ErrorEvent]:
        """Queued events in insertion order. Unreadable entries are skipped."""
        return self._parse(self._read())

    def __len__(self) -> int:
        return len(self._read())

    @property
    def is_draining(self) -> bool:
        return self._draining

    def enqueue(self, event: ErrorEvent) -> None:
        """Append an event, evicting the oldest entries when full."""
        try:
            events = self.pending()
            while events and len(events) >= self.max_size:
                events.pop(0)
            events.append(event)
            self._write(events)
        except Exception as e:
            self.config.debug_log("Enqueue failed", error=str(e))

    async def drain(self) -> int:
        """
        Send queued events one at a time, stopping at the first failure.

        The failed event and everything after it stay queued in their
        original order. A drain already in progress makes this a no-op.

        Returns:
            Number of events delivered
        """
        if self._draining:
            self.config.debug_log("Queue drain already running")
            return 0

        self._draining = True
        events: Optional[List[ErrorEvent]] = None
        sent = 0
        try:
            entries = self._read()
            if not entries:
                return 0
            events = self._parse(entries)

            for event in events:
                try:
                    result = await self.transport.send(event)
                except Exception as e:
                    self.config.debug_log("Queue send raised", error=str(e))
                    break
                if not result.success:
                    self.config.debug_log(
                        "Queue drain stopped",
                        error=result.error,
                        remaining=len(events) - sent,
                    )
                    break
                sent += 1
                self.config.debug_log("Queue event sent", id=result.id)

            return sent
        finally:
            # Also runs on cancellation so delivered events are not resent
            if events is not None:
                self._write(events[sent:])
            self._draining = False

    def flush_all_best_effort(self, beacon: BeaconTransport) -> int:
        """
        Dispatch every queued event through the beacon and clear the queue.

        Results are not awaited; events the beacon fails to deliver are lost.

        Returns:
            Number of events accepted for dispatch
        """
        accepted = 0
        for event in self.pending():
            if beacon.dispatch(event):
                accepted += 1
        self._clear()
        self.config.debug_log("Queue flushed via beacon", accepted=accepted)
        return accepted


def create_storage(queue_path: Optional[str]) -> QueueStorage:
    """File storage when a path is configured, memory otherwise."""
    if queue_path:
        return FileQueueStorage(queue_path)
    return MemoryQueueStorage()
