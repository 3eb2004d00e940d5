"""Server-Sent-Events channel that reports voice clone progress to clients.

The channel owns a registry of open client connections. Request handlers
publish named steps into it and each subscribed browser (or the recording
console) receives them over its own ``GET /process-events`` stream.

Delivery is at-most-once: publishing never blocks, events are not buffered
for clients that are not connected yet, and a connection whose queue is
closed or full is evicted on the spot. Events sent to one connection keep
their publish order because each connection has a single FIFO queue.

All registry mutations happen on the event loop, so no lock is needed.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncIterator, Callable

from app.telemetry import PROGRESS_CONNECTIONS, PROGRESS_EVENTS

logger = logging.getLogger(__name__)


class ProcessStep(str, Enum):
    """Named pipeline stages announced to subscribed clients."""

    PROCESSING = "processing"
    TRANSFORMING = "transforming"
    UPLOADING = "uploading"
    UPDATING_DB = "updating_db"
    COMPLETED = "completed"
    ERROR = "error"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ProcessEvent:
    """Single progress notification; never persisted."""

    step: str
    error: str | None = None
    timestamp: str = field(default_factory=utc_timestamp)

    def as_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"step": self.step, "timestamp": self.timestamp}
        if self.error:
            payload["error"] = self.error
        return payload


@dataclass(eq=False)
class ClientConnection:
    """One open event stream and its bounded outbound queue."""

    id: str
    queue: asyncio.Queue
    created_at: float
    last_activity: float
    closed: bool = False


_CLOSE = object()


def format_sse(payload: dict[str, Any]) -> str:
    """Encode ``payload`` as a single Server-Sent-Events data frame."""

    return f"data: {json.dumps(payload, separators=(',', ':'))}\n\n"


class ProgressChannel:
    """Registry of event stream connections with heartbeat and idle sweeping."""

    def __init__(
        self,
        *,
        heartbeat_interval: float = 30.0,
        connection_timeout: float = 120.0,
        sweep_interval: float = 30.0,
        queue_size: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._heartbeat_interval = heartbeat_interval
        self._connection_timeout = connection_timeout
        self._sweep_interval = sweep_interval
        self._queue_size = queue_size
        self._clock = clock
        self._connections: dict[str, ClientConnection] = {}
        self._sweep_task: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, client_id: object) -> bool:
        return client_id in self._connections

    @property
    def connection_ids(self) -> list[str]:
        return list(self._connections)

    def subscribe(self) -> ClientConnection:
        """Register a new client and queue its ``connected`` greeting."""

        now = self._clock()
        connection = ClientConnection(
            id=str(uuid.uuid4()),
            queue=asyncio.Queue(maxsize=self._queue_size),
            created_at=now,
            last_activity=now,
        )
        self._connections[connection.id] = connection
        connection.queue.put_nowait({"connected": True, "clientId": connection.id})
        PROGRESS_CONNECTIONS.set(len(self._connections))
        logger.info("Progress client %s connected (%d open)", connection.id, len(self))
        return connection

    def unsubscribe(self, client_id: str) -> bool:
        """Forget ``client_id``; returns False when it was already gone."""

        connection = self._connections.pop(client_id, None)
        if connection is None:
            return False
        self._close(connection)
        PROGRESS_CONNECTIONS.set(len(self._connections))
        logger.info("Progress client %s disconnected (%d open)", client_id, len(self))
        return True

    def publish(self, client_id: str | None, step: str, error: str | None = None) -> int:
        """Deliver a step event to one client, or to every client when ``client_id`` is None.

        Returns how many connections accepted the event. Failing connections
        are evicted without affecting delivery to the others.
        """

        event = ProcessEvent(step=str(getattr(step, "value", step)), error=error)
        if client_id is not None:
            connection = self._connections.get(client_id)
            if connection is None:
                logger.debug("No progress client %s for step %s", client_id, event.step)
                return 0
            targets = [connection]
        else:
            targets = list(self._connections.values())

        delivered = 0
        payload = event.as_payload()
        for connection in targets:
            if self._deliver(connection, payload):
                delivered += 1
        PROGRESS_EVENTS.labels(step=event.step).inc()
        return delivered

    def _deliver(self, connection: ClientConnection, payload: dict[str, Any]) -> bool:
        if connection.closed:
            reason = "connection closed"
        else:
            try:
                connection.queue.put_nowait(payload)
                return True
            except asyncio.QueueFull:
                reason = "outbound queue full"
        logger.warning("Dropping progress client %s: %s", connection.id, reason)
        self.unsubscribe(connection.id)
        return False

    def _close(self, connection: ClientConnection) -> None:
        connection.closed = True
        # Pending frames are discarded so the close marker always fits.
        while not connection.queue.empty():
            connection.queue.get_nowait()
        connection.queue.put_nowait(_CLOSE)

    async def stream(self, connection: ClientConnection) -> AsyncIterator[str]:
        """Yield SSE frames for ``connection`` until it is closed or the client leaves."""

        try:
            while not connection.closed:
                try:
                    item = await asyncio.wait_for(
                        connection.queue.get(), timeout=self._heartbeat_interval
                    )
                except asyncio.TimeoutError:
                    item = {"heartbeat": True, "timestamp": utc_timestamp()}
                if item is _CLOSE:
                    break
                yield format_sse(item)
                connection.last_activity = self._clock()
        finally:
            self.unsubscribe(connection.id)

    def sweep(self) -> list[str]:
        """Evict connections idle for longer than the connection timeout."""

        now = self._clock()
        stale = [
            connection.id
            for connection in self._connections.values()
            if now - connection.last_activity > self._connection_timeout
        ]
        for client_id in stale:
            logger.info("Evicting idle progress client %s", client_id)
            self.unsubscribe(client_id)
        return stale

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            self.sweep()

    def start(self) -> None:
        """Start the background idle sweep on the running loop."""

        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self._sweep_forever())

    async def stop(self) -> None:
        """Cancel the sweep and close every open connection."""

        if self._sweep_task is not None:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None
        for client_id in list(self._connections):
            self.unsubscribe(client_id)


__all__ = [
    "ClientConnection",
    "ProcessEvent",
    "ProcessStep",
    "ProgressChannel",
    "format_sse",
    "utc_timestamp",
]
