"""Channel points reward and EventSub provisioning routes"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from giveaway.core.config import Settings
from giveaway.core.dependencies import get_giveaway_service, get_settings_dep
from giveaway.core.errors import CampaignNotFoundError, InvalidSessionError, UpstreamError
from giveaway.services import GiveawayService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["rewards"])

VALID_ACTIONS = {"enable", "disable"}
WEBHOOK_PATH = "/webhook/eventsub"


# ============================================
# Request/Response Models
# ============================================


class SessionAuth(BaseModel):
    user_id: str
    access_token: str


class CreateRewardRequest(SessionAuth):
    title: str = Field(..., min_length=1, max_length=45)
    cost: int = Field(..., ge=1)
    prompt: str = Field(default="", max_length=200)


class CreateRewardResponse(BaseModel):
    success: bool
    reward_id: str
    reward_data: dict


class SubscribeRequest(SessionAuth):
    reward_id: str


class SubscribeResponse(BaseModel):
    success: bool
    subscription_id: str


class RewardActionRequest(SessionAuth):
    reward_id: str | None = None


class RewardActionResponse(BaseModel):
    success: bool
    enabled: bool


# ============================================
# Helpers
# ============================================


def _callback_url(request: Request, settings: Settings) -> str:
    base = settings.public_url or str(request.base_url)
    return f"{base.rstrip('/')}{WEBHOOK_PATH}"


def _upstream_http_error(error: UpstreamError, detail: str) -> HTTPException:
    """Surface an expired Twitch token as 401 and anything else as 502."""
    if error.status_code == 401:
        return HTTPException(status_code=401, detail="Twitch authorization expired")
    return HTTPException(status_code=502, detail=detail)



# ============================================
# Endpoints
# ============================================


@router.post("/rewards/create", response_model=CreateRewardResponse)
async def create_reward(
    body: CreateRewardRequest,
    service: GiveawayService = Depends(get_giveaway_service),
) -> CreateRewardResponse:
    """Create the giveaway reward on Twitch and provision the giveaway."""
    try:
        reward = await service.create_reward(
            body.user_id,
            body.access_token,
            title=body.title,
            cost=body.cost,
            prompt=body.prompt,
        )
    except InvalidSessionError:
        raise HTTPException(status_code=401, detail="Invalid session") from None
    except UpstreamError as e:
        logger.error(f"Reward creation error: {e}")
        raise _upstream_http_error(e, f"Reward creation failed: {e}") from None

    return CreateRewardResponse(success=True, reward_id=reward["id"], reward_data=reward)


@router.post("/webhooks/subscribe", response_model=SubscribeResponse)
async def subscribe_webhook(
    body: SubscribeRequest,
    request: Request,
    service: GiveawayService = Depends(get_giveaway_service),
    settings: Settings = Depends(get_settings_dep),
) -> SubscribeResponse:
    """Point an EventSub redemption subscription at this server."""
    try:
        subscription_id = await service.subscribe(
            body.user_id,
            body.access_token,
            body.reward_id,
            callback_url=_callback_url(request, settings),
        )
    except InvalidSessionError:
        raise HTTPException(status_code=401, detail="Invalid session") from None
    except UpstreamError as e:
        logger.error(f"Webhook subscription error: {e}")
        raise _upstream_http_error(e, f"Subscription failed: {e}") from None

    return SubscribeResponse(success=True, subscription_id=subscription_id)


@router.post("/rewards/{action}", response_model=RewardActionResponse)
async def reward_action(
    action: str,
    body: RewardActionRequest,
    service: GiveawayService = Depends(get_giveaway_service),
) -> RewardActionResponse:
    """Start (``enable``) or stop (``disable``) the giveaway."""
    if action not in VALID_ACTIONS:
        raise HTTPException(status_code=400, detail=f"Invalid action: {action}")

    enabled = action == "enable"
    try:
        await service.set_active(body.user_id, body.access_token, enabled, body.reward_id)
    except InvalidSessionError:
        raise HTTPException(status_code=401, detail="Invalid session") from None
    except CampaignNotFoundError:
        raise HTTPException(status_code=404, detail="Giveaway not found") from None
    except UpstreamError as e:
        logger.error(f"Reward update error: {e}")
        raise _upstream_http_error(e, "Failed to update reward status") from None

    return RewardActionResponse(success=True, enabled=enabled)
