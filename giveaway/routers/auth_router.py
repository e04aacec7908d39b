"""Authentication API routes"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from giveaway.core.dependencies import get_giveaway_service
from giveaway.core.errors import UpstreamError
from giveaway.services import GiveawayService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/oauth", tags=["authentication"])


# ============================================
# Request/Response Models
# ============================================


class OAuthExchangeRequest(BaseModel):
    code: str = ""
    redirect_uri: str = ""


class OAuthExchangeResponse(BaseModel):
    access_token: str
    user_id: str


# ============================================
# Endpoints
# ============================================


@router.post("/exchange", response_model=OAuthExchangeResponse)
async def exchange_code(
    body: OAuthExchangeRequest,
    service: GiveawayService = Depends(get_giveaway_service),
) -> OAuthExchangeResponse:
    """Exchange an authorization code for tokens and open a session."""
    if not body.code:
        raise HTTPException(status_code=400, detail="Authorization code required")

    try:
        session = await service.login(body.code, body.redirect_uri)
    except UpstreamError as e:
        logger.error(f"OAuth exchange error: {e}")
        raise HTTPException(status_code=500, detail="Authentication failed") from None

    return OAuthExchangeResponse(access_token=session.access_token, user_id=session.tenant_id)
