"""Live viewer connection.

Each open event stream owns a bounded outbound buffer. Writers only ever
``put_nowait`` into it, so a stalled viewer can fill its own buffer but can
never block the event loop or delay delivery to other viewers.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from enum import Enum

from giveaway.core.errors import ConnectionWriteError


class ConnectionState(str, Enum):
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class LiveConnection:
    """One viewer stream scoped to a tenant: open -> closing -> closed."""

    # Slots past buffer_size held for the closing frame and the end-of-stream marker
    RESERVED_SLOTS = 2

    def __init__(self, tenant_id: str, buffer_size: int = 100) -> None:
        if buffer_size < 1:
            raise ValueError("buffer_size must be at least 1")
        self.tenant_id = tenant_id
        self.token = uuid.uuid4().hex
        self.connected_at = datetime.now(timezone.utc)
        self.state = ConnectionState.OPEN
        self.buffer_size = buffer_size
        self._queue: asyncio.Queue[str | None] = asyncio.Queue(
            maxsize=buffer_size + self.RESERVED_SLOTS
        )
        self._heartbeat_task: asyncio.Task | None = None

    def __repr__(self) -> str:
        return f"<LiveConnection {self.token[:8]} tenant={self.tenant_id} {self.state.value}>"

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    @property
    def pending(self) -> int:
        """Frames queued but not yet written to the socket."""
        return self._queue.qsize()

    def send(self, frame: str) -> None:
        """Queue a frame for delivery; raise ConnectionWriteError if it cannot be."""
        if self.state is not ConnectionState.OPEN:
            raise ConnectionWriteError(f"{self!r} is not open")
        if self.pending >= self.buffer_size:
            raise ConnectionWriteError(
                f"{self!r} outbound buffer is full ({self.pending} frames pending)"
            )
        self._queue.put_nowait(frame)

    def attach_heartbeat(self, task: asyncio.Task) -> None:
        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
        self._heartbeat_task = task

    def close(self, final_frame: str | None = None) -> None:
        """Cancel the heartbeat, queue *final_frame* and end the stream.

        Safe to call more than once. ``send`` never fills the reserved slots,
        so the terminal frame and the end-of-stream marker always fit behind
        whatever backlog is still queued.
        """
        if self.state is not ConnectionState.OPEN:
            return
        self.state = ConnectionState.CLOSING

        task, self._heartbeat_task = self._heartbeat_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

        if final_frame is not None:
            self._queue.put_nowait(final_frame)
        self._queue.put_nowait(None)
        self.state = ConnectionState.CLOSED

    async def frames(self) -> AsyncIterator[str]:
        """Yield queued frames until the connection is closed."""
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame
