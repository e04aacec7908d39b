"""Server-Sent Events stream for a broadcaster's dashboard"""

import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from giveaway.core.dependencies import get_broadcaster
from giveaway.services import BroadcastService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable proxy buffering for SSE
    "Access-Control-Allow-Origin": "*",
}


async def sse_stream(broadcaster: BroadcastService, user_id: str) -> AsyncIterator[str]:
    """Register a live connection and yield its frames until it closes.

    The connection is opened on first iteration so registration and cleanup
    always pair up, including when the client goes away mid-stream.
    """
    connection = broadcaster.open_connection(user_id)
    try:
        async for frame in connection.frames():
            yield frame
    finally:
        broadcaster.close_connection(connection)
        logger.info(
            f"Stream closed for tenant {user_id} "
            f"({broadcaster.registry.count(user_id)} still open for tenant)"
        )


@router.get("/{user_id}")
async def event_stream(
    user_id: str,
    broadcaster: BroadcastService = Depends(get_broadcaster),
) -> StreamingResponse:
    """Live giveaway updates for one broadcaster."""
    return StreamingResponse(
        sse_stream(broadcaster, user_id),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
