"""Giveaway administration: login, reward provisioning, start/stop, stats.

Thin orchestration over the registries plus the Twitch API. These are the
only operations that talk to Twitch; webhook handling lives in
``MessageDispatcher``.
"""

import hmac
import logging
import time
from datetime import datetime, timezone

from giveaway.core.errors import (
    CampaignNotFoundError,
    InvalidSessionError,
    SessionNotFoundError,
    UpstreamError,
)
from giveaway.models.campaign import CampaignStats
from giveaway.models.session import TenantSession
from giveaway.repositories.campaign import CampaignRegistry
from giveaway.repositories.session import SessionRegistry
from giveaway.services.broadcast import BroadcastService

from .twitch_api import TwitchAPIClient

logger = logging.getLogger(__name__)


class GiveawayService:
    """API-facing giveaway operations for one process."""

    def __init__(
        self,
        sessions: SessionRegistry,
        campaigns: CampaignRegistry,
        broadcaster: BroadcastService,
        twitch_api: TwitchAPIClient,
        webhook_secret: str,
    ) -> None:
        self.sessions = sessions
        self.campaigns = campaigns
        self.broadcaster = broadcaster
        self.twitch_api = twitch_api
        self._webhook_secret = webhook_secret
        self._started_at = time.monotonic()

    @property
    def uptime(self) -> float:
        return time.monotonic() - self._started_at

    # ==================== Sessions ====================

    def authorize(self, tenant_id: str, access_token: str) -> TenantSession:
        """Return the tenant's session if *access_token* matches it."""
        session = self.sessions.get(tenant_id)
        if session is None:
            raise InvalidSessionError(f"No session for tenant {tenant_id}")
        if not hmac.compare_digest(session.access_token.encode(), access_token.encode()):
            raise InvalidSessionError(f"Access token mismatch for tenant {tenant_id}")
        return session

    async def login(self, code: str, redirect_uri: str) -> TenantSession:
        """Exchange an OAuth code and store the resulting session."""
        result = await self.twitch_api.exchange_code_for_token(code, redirect_uri)
        if not result.success or not result.user or not result.access_token:
            raise UpstreamError(f"Authentication failed: {result.error}")

        user = result.user
        session = self.sessions.create(
            TenantSession(
                tenant_id=str(user["id"]),
                access_token=result.access_token,
                refresh_token=result.refresh_token or "",
                login=user.get("login", ""),
                display_name=user.get("display_name", ""),
                avatar=user.get("profile_image_url"),
            )
        )
        logger.info(f"User authenticated: {session.label} ({session.tenant_id})")
        return session

    # ==================== Provisioning ====================

    async def create_reward(
        self, tenant_id: str, access_token: str, *, title: str, cost: int, prompt: str = ""
    ) -> dict:
        """Create the giveaway reward upstream and provision an inactive campaign."""
        session = self.authorize(tenant_id, access_token)
        reward = await self.twitch_api.create_custom_reward(
            tenant_id, session.access_token, title=title, cost=cost, prompt=prompt
        )
        reward_id = reward["id"]

        self.sessions.update(tenant_id, reward_id=reward_id)
        self.campaigns.provision(tenant_id, reward_id)

        logger.info(f"Reward created for {session.label}: {title} ({cost} points)")
        return reward

    async def subscribe(
        self, tenant_id: str, access_token: str, reward_id: str, callback_url: str
    ) -> str:
        """Register the EventSub webhook for *reward_id* and remember its id."""
        session = self.authorize(tenant_id, access_token)
        subscription = await self.twitch_api.create_redemption_subscription(
            tenant_id,
            reward_id,
            session.access_token,
            callback_url=callback_url,
            secret=self._webhook_secret,
        )
        subscription_id = subscription["id"]
        self.sessions.update(tenant_id, subscription_id=subscription_id)

        logger.info(f"EventSub subscription created for {session.label}: {subscription_id}")
        return subscription_id

    # ==================== Start / stop ====================

    async def set_active(
        self, tenant_id: str, access_token: str, enabled: bool, reward_id: str | None = None
    ) -> bool:
        """Enable/disable the reward upstream, then start/stop the campaign.

        Raises CampaignNotFoundError before touching Twitch if no campaign
        has been provisioned.
        """
        session = self.authorize(tenant_id, access_token)
        campaign = self.campaigns.get(tenant_id)
        if campaign is None:
            raise CampaignNotFoundError(tenant_id)

        target_reward = reward_id or campaign.reward_id
        await self.twitch_api.set_reward_enabled(
            tenant_id, target_reward, session.access_token, enabled
        )

        changed = self.campaigns.start(tenant_id) if enabled else self.campaigns.stop(tenant_id)
        action = "started" if enabled else "stopped"
        if changed:
            logger.info(f"Giveaway {action} for {session.label}")
        else:
            logger.debug(f"Giveaway already {action} for {session.label}")
        return enabled

    # ==================== Stats & housekeeping ====================

    def stats(self, tenant_id: str, recent_limit: int = 20) -> CampaignStats:
        return self.campaigns.stats(tenant_id, recent_limit)

    def clear_entries(self, tenant_id: str) -> int:
        removed = self.campaigns.clear(tenant_id)
        logger.info(f"Cleared {removed} giveaway entries for tenant {tenant_id}")
        return removed

    def cleanup(self, tenant_id: str) -> None:
        """Forget everything about a tenant and close its streams."""
        had_session = self.sessions.delete(tenant_id)
        had_campaign = self.campaigns.delete(tenant_id)
        closed = self.broadcaster.close_tenant(tenant_id)
        if not (had_session or had_campaign or closed):
            raise SessionNotFoundError(tenant_id)
        logger.info(f"Cleaned up tenant {tenant_id} ({closed} stream(s) closed)")

    def global_stats(self) -> dict:
        return {
            "totalUsers": len(self.sessions),
            "activeGiveaways": self.campaigns.count_active(),
            "totalEntries": self.campaigns.total_entries(),
            "openConnections": self.broadcaster.registry.count(),
            "uptime": round(self.uptime, 3),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
