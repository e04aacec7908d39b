"""Dependency injection utilities for FastAPI

All process state hangs off one ``AppContainer`` stored on ``app.state``;
route handlers reach it only through the getters below.
"""

import logging
from dataclasses import dataclass

from fastapi import Request

from giveaway.core.config import Settings
from giveaway.core.rate_limit import ApiRateLimiter
from giveaway.repositories import CampaignRegistry, ConnectionRegistry, SessionRegistry
from giveaway.services import (
    BroadcastService,
    GiveawayService,
    MessageDispatcher,
    SignatureVerifier,
    TwitchAPIClient,
)

logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    """Registries and services owned by one application instance."""

    settings: Settings
    sessions: SessionRegistry
    campaigns: CampaignRegistry
    connections: ConnectionRegistry
    broadcaster: BroadcastService
    verifier: SignatureVerifier
    dispatcher: MessageDispatcher
    twitch_api: TwitchAPIClient
    giveaways: GiveawayService
    rate_limiter: ApiRateLimiter

    async def close(self) -> None:
        """Close every live stream and the shared HTTP client."""
        self.broadcaster.shutdown()
        await self.twitch_api.close()


def build_container(settings: Settings, twitch_api: TwitchAPIClient | None = None) -> AppContainer:
    """Wire up registries and services. Raises if the settings are unusable."""
    sessions = SessionRegistry()
    campaigns = CampaignRegistry()
    connections = ConnectionRegistry()
    broadcaster = BroadcastService(
        connections,
        heartbeat_interval=settings.heartbeat_interval,
        buffer_size=settings.connection_buffer_size,
    )
    twitch_api = twitch_api or TwitchAPIClient(
        client_id=settings.twitch_client_id,
        client_secret=settings.twitch_client_secret,
    )
    return AppContainer(
        settings=settings,
        sessions=sessions,
        campaigns=campaigns,
        connections=connections,
        broadcaster=broadcaster,
        verifier=SignatureVerifier(settings.twitch_webhook_secret),
        dispatcher=MessageDispatcher(sessions, campaigns, broadcaster),
        twitch_api=twitch_api,
        giveaways=GiveawayService(
            sessions,
            campaigns,
            broadcaster,
            twitch_api,
            webhook_secret=settings.twitch_webhook_secret,
        ),
        rate_limiter=ApiRateLimiter(settings.api_rate_limit, enabled=settings.rate_limit_enabled),
    )


# ============================================
# Service Dependencies
# ============================================


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def get_settings_dep(request: Request) -> Settings:
    return get_container(request).settings


def get_verifier(request: Request) -> SignatureVerifier:
    return get_container(request).verifier


def get_dispatcher(request: Request) -> MessageDispatcher:
    return get_container(request).dispatcher


def get_broadcaster(request: Request) -> BroadcastService:
    return get_container(request).broadcaster


def get_giveaway_service(request: Request) -> GiveawayService:
    return get_container(request).giveaways


def enforce_api_rate_limit(request: Request) -> None:
    client = request.client.host if request.client else "unknown"
    get_container(request).rate_limiter.check(client)
