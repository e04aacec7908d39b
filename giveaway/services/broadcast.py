"""Server-Sent Events fan-out to a tenant's live connections."""

import asyncio
import json
import logging
from datetime import datetime, timezone

from giveaway.core.errors import ConnectionWriteError
from giveaway.models.connection import LiveConnection
from giveaway.repositories.connection import ConnectionRegistry

logger = logging.getLogger(__name__)

SHUTDOWN_MESSAGE = "Server is restarting, please refresh the page"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def format_sse(event: dict) -> str:
    """Encode one event as an SSE ``data:`` frame."""
    return f"data: {json.dumps(event, default=str)}\n\n"


class BroadcastService:
    """Opens, feeds and closes live-update connections.

    Every write is a non-blocking enqueue on the connection's own buffer.
    A connection that cannot take a frame is closed and unregistered during
    the same pass, so no separate reaper is needed.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        heartbeat_interval: float = 30.0,
        buffer_size: int = 100,
    ) -> None:
        self.registry = registry
        self.heartbeat_interval = heartbeat_interval
        self.buffer_size = buffer_size

    # ==================== Connection lifecycle ====================

    def open_connection(self, tenant_id: str) -> LiveConnection:
        """Register a stream for *tenant_id* and start its heartbeat.

        Must be called from inside the running event loop.
        """
        connection = LiveConnection(tenant_id, buffer_size=self.buffer_size)
        self.registry.register(connection)
        connection.send(
            format_sse(
                {
                    "type": "connection_status",
                    "status": "connected",
                    "timestamp": utc_timestamp(),
                }
            )
        )
        connection.attach_heartbeat(
            asyncio.create_task(
                self._heartbeat(connection), name=f"sse-heartbeat-{connection.token[:8]}"
            )
        )
        logger.info(
            f"Stream opened for tenant {tenant_id} "
            f"({self.registry.count(tenant_id)} open for tenant)"
        )
        return connection

    def close_connection(self, connection: LiveConnection, final_event: dict | None = None) -> None:
        """Unregister and close a connection, cancelling its heartbeat."""
        self.registry.unregister(connection.token)
        connection.close(format_sse(final_event) if final_event is not None else None)

    async def _heartbeat(self, connection: LiveConnection) -> None:
        while connection.is_open:
            await asyncio.sleep(self.heartbeat_interval)
            try:
                connection.send(format_sse({"type": "heartbeat", "timestamp": utc_timestamp()}))
            except ConnectionWriteError as e:
                logger.info(f"Heartbeat failed, dropping stream: {e}")
                self.close_connection(connection)
                return

    # ==================== Fan-out ====================

    def broadcast(self, tenant_id: str, event: dict) -> int:
        """Send *event* to every open stream of *tenant_id*.

        Returns the number of streams that accepted the frame. A tenant with
        no streams is a no-op.
        """
        connections = self.registry.snapshot(tenant_id)
        if not connections:
            return 0

        frame = format_sse(event)
        delivered = 0
        for connection in connections:
            try:
                connection.send(frame)
                delivered += 1
            except ConnectionWriteError as e:
                logger.info(
                    f"Pruning stream for tenant {tenant_id} "
                    f"with {connection.pending} frames pending: {e}"
                )
                self.close_connection(connection)

        logger.debug(
            f"Broadcast {event.get('type')} to tenant {tenant_id}: "
            f"{delivered}/{len(connections)} delivered"
        )
        return delivered

    def close_tenant(self, tenant_id: str, final_event: dict | None = None) -> int:
        """Close every stream of one tenant. Returns how many were closed."""
        connections = self.registry.snapshot(tenant_id)
        for connection in connections:
            self.close_connection(connection, final_event)
        return len(connections)

    def shutdown(self) -> int:
        """Send ``server_shutdown`` to every stream and close it."""
        connections = self.registry.all_connections()
        event = {
            "type": "server_shutdown",
            "message": SHUTDOWN_MESSAGE,
            "timestamp": utc_timestamp(),
        }
        for connection in connections:
            self.close_connection(connection, event)
        if connections:
            logger.info(f"Closed {len(connections)} live stream(s) for shutdown")
        return len(connections)
