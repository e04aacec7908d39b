"""Giveaway statistics and housekeeping routes"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from giveaway.core.config import Settings
from giveaway.core.dependencies import get_giveaway_service, get_settings_dep
from giveaway.core.errors import CampaignNotFoundError, SessionNotFoundError
from giveaway.services import GiveawayService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["giveaway"])

# Development-only routes, mounted by the app factory
dev_router = APIRouter(prefix="/api", tags=["development"])


# ============================================
# Response Models
# ============================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EntryResponse(BaseModel):
    username: str
    user_id: str
    redemption_id: str
    reward_id: str
    reward_cost: int
    redeemed_at: str


class GiveawayStatsResponse(_CamelModel):
    is_active: bool
    total_entries: int
    unique_users: int
    total_points_spent: int
    entries: list[EntryResponse]


class GlobalStatsResponse(_CamelModel):
    total_users: int
    active_giveaways: int
    total_entries: int
    open_connections: int
    uptime: float
    timestamp: str


class ClearResponse(BaseModel):
    success: bool
    removed: int


class CleanupResponse(BaseModel):
    success: bool
    message: str


# ============================================
# Endpoints
# ============================================


@router.get("/giveaway/{user_id}/stats", response_model=GiveawayStatsResponse)
async def get_giveaway_stats(
    user_id: str,
    service: GiveawayService = Depends(get_giveaway_service),
    settings: Settings = Depends(get_settings_dep),
) -> GiveawayStatsResponse:
    """Entry counts plus the most recent entries for one broadcaster."""
    try:
        stats = service.stats(user_id, settings.recent_entries_limit)
    except CampaignNotFoundError:
        raise HTTPException(status_code=404, detail="Giveaway not found") from None

    return GiveawayStatsResponse(
        is_active=stats.active,
        total_entries=stats.total_entries,
        unique_users=stats.unique_participants,
        total_points_spent=stats.total_points_spent,
        entries=[EntryResponse(**e.to_dict()) for e in stats.recent_entries],
    )


@router.post("/giveaway/{user_id}/clear", response_model=ClearResponse)
async def clear_giveaway_entries(
    user_id: str,
    service: GiveawayService = Depends(get_giveaway_service),
) -> ClearResponse:
    """Reset the entry log; the giveaway keeps its reward and active flag."""
    try:
        removed = service.clear_entries(user_id)
    except CampaignNotFoundError:
        raise HTTPException(status_code=404, detail="Giveaway not found") from None
    return ClearResponse(success=True, removed=removed)


@router.get("/stats", response_model=GlobalStatsResponse)
async def get_global_stats(
    service: GiveawayService = Depends(get_giveaway_service),
) -> GlobalStatsResponse:
    """Process-wide counters."""
    return GlobalStatsResponse(**service.global_stats())


@dev_router.post("/cleanup/{user_id}", response_model=CleanupResponse)
async def cleanup_user(
    user_id: str,
    service: GiveawayService = Depends(get_giveaway_service),
) -> CleanupResponse:
    """Drop a broadcaster's session, giveaway and streams (testing aid)."""
    try:
        service.cleanup(user_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="User not found") from None
    return CleanupResponse(success=True, message="User data cleaned up")
