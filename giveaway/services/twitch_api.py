"""Twitch API client service.

All calls here use the broadcaster's User Access Token obtained through the
OAuth authorization-code flow. This client is only used by the operator-facing
routes (login, reward provisioning, start/stop); the webhook pipeline never
calls out to Twitch.
"""

import logging
from dataclasses import dataclass

import httpx

from giveaway.core.errors import UpstreamError
from giveaway.schemas.eventsub import SubscriptionType

logger = logging.getLogger(__name__)

HELIX_BASE = "https://api.twitch.tv/helix"
OAUTH_BASE = "https://id.twitch.tv/oauth2"

REWARD_BACKGROUND_COLOR = "#9146FF"


@dataclass
class TokenExchangeResult:
    """Result of an authorization-code exchange."""

    success: bool
    access_token: str | None = None
    refresh_token: str | None = None
    user: dict | None = None
    error: str | None = None


class TwitchAPIClient:
    """Client for interacting with Twitch API.

    Manages a shared httpx client for connection reuse.
    """

    def __init__(self, client_id: str, client_secret: str, http: httpx.AsyncClient | None = None):
        if not client_id or not client_secret:
            raise ValueError("Twitch client_id and client_secret are required")

        self.client_id = client_id
        self.client_secret = client_secret

        # Shared HTTP client, reuses TCP connections across requests
        self._http = http or httpx.AsyncClient(timeout=10.0)

    async def close(self) -> None:
        """Close the shared HTTP client. Call on app shutdown."""
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _user_headers(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}", "Client-Id": self.client_id}

    async def _helix(
        self,
        method: str,
        path: str,
        token: str,
        *,
        params: dict | None = None,
        json: dict | None = None,
    ) -> dict:
        """Call Helix and return the decoded body. Raises UpstreamError on failure."""
        try:
            response = await self._http.request(
                method,
                f"{HELIX_BASE}/{path}",
                params=params,
                json=json,
                headers=self._user_headers(token),
            )
        except httpx.TimeoutException:
            raise UpstreamError(f"Timeout calling Helix {method} /{path}") from None
        except httpx.HTTPError as e:
            raise UpstreamError(f"Helix {method} /{path} error: {e}") from e

        if response.status_code >= 400:
            raise UpstreamError(
                f"Helix {method} /{path} failed: {response.status_code} {response.text}",
                status_code=response.status_code,
            )
        if not response.content:
            return {}
        return response.json()

    @staticmethod
    def _first(body: dict, what: str) -> dict:
        data = body.get("data") or []
        if not data:
            raise UpstreamError(f"Empty {what} response from Twitch")
        return data[0]

    # ------------------------------------------------------------------
    # OAuth flow
    # ------------------------------------------------------------------

    async def exchange_code_for_token(self, code: str, redirect_uri: str) -> TokenExchangeResult:
        """Exchange an OAuth code for tokens and fetch the authorizing user."""
        try:
            token_response = await self._http.post(
                f"{OAUTH_BASE}/token",
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "code": code,
                    "grant_type": "authorization_code",
                    "redirect_uri": redirect_uri,
                },
            )

            if token_response.status_code != 200:
                logger.error(f"Failed to exchange code: {token_response.status_code}")
                logger.error(f"Response: {token_response.text}")
                return TokenExchangeResult(success=False, error="token_exchange_failed")

            token_data = token_response.json()
            access_token = token_data.get("access_token")
            refresh_token = token_data.get("refresh_token")

            if not access_token:
                logger.error("No access_token in response")
                return TokenExchangeResult(success=False, error="no_access_token")

            user = await self.get_current_user(access_token)
            if user is None:
                return TokenExchangeResult(success=False, error="user_fetch_failed")

            logger.debug(f"Token exchanged for user: {user.get('id')}")
            return TokenExchangeResult(
                success=True,
                access_token=access_token,
                refresh_token=refresh_token or "",
                user=user,
            )

        except httpx.TimeoutException:
            logger.error("Timeout while exchanging code for token")
            return TokenExchangeResult(success=False, error="timeout")
        except httpx.HTTPError as e:
            logger.exception(f"Unexpected error exchanging code: {e}")
            return TokenExchangeResult(success=False, error="exchange_failed")

    async def get_current_user(self, access_token: str) -> dict | None:
        """Get the user that owns *access_token*."""
        try:
            body = await self._helix("GET", "users", access_token)
            return self._first(body, "users")
        except UpstreamError as e:
            logger.error(f"Failed to fetch user: {e}")
            return None

    # ------------------------------------------------------------------
    # Channel Points
    # ------------------------------------------------------------------

    async def create_custom_reward(
        self,
        broadcaster_id: str,
        access_token: str,
        *,
        title: str,
        cost: int,
        prompt: str = "",
    ) -> dict:
        """Create a giveaway reward.

        The reward starts disabled; enabling it is what opens the giveaway.
        Each viewer may redeem it once per stream.
        """
        body = await self._helix(
            "POST",
            "channel_points/custom_rewards",
            access_token,
            params={"broadcaster_id": broadcaster_id},
            json={
                "title": title,
                "cost": cost,
                "prompt": prompt,
                "is_enabled": False,
                "background_color": REWARD_BACKGROUND_COLOR,
                "is_user_input_required": False,
                "is_max_per_stream_enabled": False,
                "is_max_per_user_per_stream_enabled": True,
                "max_per_user_per_stream": 1,
                "should_redemptions_skip_request_queue": True,
            },
        )
        return self._first(body, "custom_rewards")

    async def set_reward_enabled(
        self, broadcaster_id: str, reward_id: str, access_token: str, enabled: bool
    ) -> dict:
        """Enable (and unpause) or disable (and pause) a custom reward."""
        body = await self._helix(
            "PATCH",
            "channel_points/custom_rewards",
            access_token,
            params={"broadcaster_id": broadcaster_id, "id": reward_id},
            json={"is_enabled": enabled, "is_paused": not enabled},
        )
        return self._first(body, "custom_rewards")

    # ------------------------------------------------------------------
    # EventSub
    # ------------------------------------------------------------------

    async def create_redemption_subscription(
        self,
        broadcaster_id: str,
        reward_id: str,
        access_token: str,
        *,
        callback_url: str,
        secret: str,
    ) -> dict:
        """Subscribe our webhook to redemptions of one reward."""
        body = await self._helix(
            "POST",
            "eventsub/subscriptions",
            access_token,
            json={
                "type": SubscriptionType.REDEMPTION_ADD.value,
                "version": "1",
                "condition": {"broadcaster_user_id": broadcaster_id, "reward_id": reward_id},
                "transport": {"method": "webhook", "callback": callback_url, "secret": secret},
            },
        )
        return self._first(body, "eventsub/subscriptions")
