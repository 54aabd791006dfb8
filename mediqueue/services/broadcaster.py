"""Fan-out of queue events to connected socket observers."""

import asyncio
import contextlib
from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import UUID, uuid4

import structlog
from fastapi import status

from mediqueue.config import settings
from mediqueue.schemas.events import RealtimeEvent

logger = structlog.get_logger(__name__)


def _discard(outbox: asyncio.Queue) -> None:
    while not outbox.empty():
        outbox.get_nowait()
        outbox.task_done()


class EventSocket(Protocol):
    """The slice of ``fastapi.WebSocket`` the broadcaster writes to."""

    async def send_json(self, data: Any) -> None: ...

    async def close(self, code: int = ...) -> None: ...


@dataclass
class Connection:
    """One observer: its socket, its outbox and its current subscription."""

    id: str
    socket: EventSocket
    outbox: asyncio.Queue
    queue_id: UUID | None = None
    writer: asyncio.Task | None = field(default=None, repr=False)


class ConnectionRegistry:
    """Tracks open connections and which queue each one follows."""

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._connections: dict[str, Connection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def add(self, connection: Connection) -> None:
        self._connections[connection.id] = connection

    def subscribe(self, connection_id: str, queue_id: UUID) -> bool:
        """
        Point a connection at ``queue_id``, replacing any prior subscription.

        Returns:
            False if the connection is unknown (already pruned)
        """
        connection = self._connections.get(connection_id)
        if connection is None:
            return False
        connection.queue_id = queue_id
        return True

    def unsubscribe(self, connection_id: str) -> bool:
        """Clear a connection's subscription so it receives every event."""
        connection = self._connections.get(connection_id)
        if connection is None:
            return False
        connection.queue_id = None
        return True

    def prune(self, connection_id: str) -> Connection | None:
        """Forget a connection. Unknown ids are ignored."""
        return self._connections.pop(connection_id, None)

    def recipients(self, queue_id: UUID | None) -> list[Connection]:
        """
        Connections that should see an event for ``queue_id``.

        Subscribers of that queue plus unsubscribed connections; every
        connection when the event has no queue.
        """
        if queue_id is None:
            return list(self._connections.values())
        return [
            connection
            for connection in self._connections.values()
            if connection.queue_id is None or connection.queue_id == queue_id
        ]

    def all(self) -> list[Connection]:
        return list(self._connections.values())


class Broadcaster:
    """
    Fire-and-forget event publisher.

    ``publish`` never awaits a socket. Each connection owns a bounded outbox
    drained by its own writer task, so a slow observer cannot stall queue
    writes and events reach each observer in publish order.
    """

    def __init__(self, outbox_size: int | None = None):
        """Initialize with the per-connection outbox bound."""
        self.outbox_size = outbox_size or settings.ws_outbox_size
        self.registry = ConnectionRegistry()
        self._closing: set[asyncio.Task] = set()

    @property
    def connection_count(self) -> int:
        return len(self.registry)

    def connect(self, socket: EventSocket) -> str:
        """
        Register an accepted socket and start its writer.

        Args:
            socket: Already-accepted socket

        Returns:
            Connection id used for subscribe/unsubscribe/disconnect
        """
        connection = Connection(
            id=uuid4().hex,
            socket=socket,
            outbox=asyncio.Queue(maxsize=self.outbox_size),
        )
        connection.writer = asyncio.create_task(self._drain(connection))
        self.registry.add(connection)
        logger.info("socket_connected", connection_id=connection.id, connections=len(self.registry))
        return connection.id

    def subscribe(self, connection_id: str, queue_id: UUID) -> bool:
        subscribed = self.registry.subscribe(connection_id, queue_id)
        if subscribed:
            logger.debug("socket_subscribed", connection_id=connection_id, queue_id=str(queue_id))
        return subscribed

    def unsubscribe(self, connection_id: str) -> bool:
        return self.registry.unsubscribe(connection_id)

    def disconnect(self, connection_id: str, close: bool = False) -> None:
        """
        Drop a connection and stop its writer.

        Args:
            connection_id: Connection to drop
            close: Also close the socket with 1013 (try again later)
        """
        connection = self.registry.prune(connection_id)
        if connection is None:
            return
        if connection.writer is not None and connection.writer is not asyncio.current_task():
            connection.writer.cancel()
        _discard(connection.outbox)
        if close:
            task = asyncio.create_task(self._close(connection))
            self._closing.add(task)
            task.add_done_callback(self._closing.discard)
        logger.info(
            "socket_disconnected",
            connection_id=connection_id,
            connections=len(self.registry),
        )

    def publish(self, event: RealtimeEvent) -> int:
        """
        Queue ``event`` for every interested connection.

        A connection whose outbox is full is pruned; delivery is never retried.

        Returns:
            Number of connections the event was queued for
        """
        message = event.to_message()
        delivered = 0
        for connection in self.registry.recipients(event.queue_id):
            try:
                connection.outbox.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("socket_outbox_full", connection_id=connection.id)
                self.disconnect(connection.id, close=True)

        logger.debug(
            "event_published",
            action=event.action,
            queue_id=str(event.queue_id) if event.queue_id else None,
            recipients=delivered,
        )
        return delivered

    async def _drain(self, connection: Connection) -> None:
        while True:
            message = await connection.outbox.get()
            try:
                await connection.socket.send_json(message)
            except Exception as e:
                logger.info("socket_send_failed", connection_id=connection.id, error=str(e))
                connection.outbox.task_done()
                self.disconnect(connection.id, close=True)
                return
            connection.outbox.task_done()

    async def _close(self, connection: Connection) -> None:
        try:
            await connection.socket.close(code=status.WS_1013_TRY_AGAIN_LATER)
        except Exception as e:
            # Peer already gone
            logger.debug("socket_close_failed", connection_id=connection.id, error=str(e))

    async def flush(self) -> None:
        """Wait until every queued event has been handed to its socket."""
        await asyncio.gather(*(connection.outbox.join() for connection in self.registry.all()))

    async def close_all(self) -> None:
        """Stop every writer and finish pending closes; used on application shutdown."""
        writers = []
        for connection in self.registry.all():
            self.registry.prune(connection.id)
            if connection.writer is not None:
                connection.writer.cancel()
                writers.append(connection.writer)
        for writer in writers:
            with contextlib.suppress(asyncio.CancelledError):
                await writer
        await asyncio.gather(*self._closing)


# Process-wide broadcaster shared by the socket route and the services
broadcaster = Broadcaster()


def get_broadcaster() -> Broadcaster:
    """Dependency hook returning the process-wide broadcaster."""
    return broadcaster
