"""Giveaway relay entry point"""

import asyncio
import logging
import socket
from types import FrameType

import uvicorn

from giveaway.app import create_app
from giveaway.core.config import get_settings
from giveaway.core.dependencies import AppContainer

logger = logging.getLogger(__name__)


class GiveawayServer(uvicorn.Server):
    """uvicorn server that ends live streams as soon as an exit signal arrives.

    uvicorn waits for in-flight responses before running the lifespan
    shutdown, and SSE responses never finish on their own, so the
    ``server_shutdown`` notice has to go out from the signal handler.
    """

    def __init__(self, config: uvicorn.Config, container: AppContainer) -> None:
        super().__init__(config)
        self.container = container
        self._loop: asyncio.AbstractEventLoop | None = None

    async def startup(self, sockets: list[socket.socket] | None = None) -> None:
        self._loop = asyncio.get_running_loop()
        await super().startup(sockets=sockets)

    def handle_exit(self, sig: int, frame: FrameType | None) -> None:
        if self._loop is not None and not self.should_exit:
            logger.info("Shutting down gracefully...")
            self._loop.call_soon_threadsafe(self.container.broadcaster.shutdown)
        super().handle_exit(sig, frame)


def main() -> None:
    settings = get_settings()
    app = create_app(settings)
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )
    GiveawayServer(config, app.state.container).run()


if __name__ == "__main__":
    main()
