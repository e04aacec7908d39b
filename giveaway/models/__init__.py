"""In-memory data models."""

from .campaign import (
    AppendResult,
    Campaign,
    CampaignState,
    CampaignStateMachine,
    CampaignStats,
    Entry,
)
from .connection import ConnectionState, LiveConnection
from .session import TenantSession

__all__ = [
    "AppendResult",
    "Campaign",
    "CampaignState",
    "CampaignStateMachine",
    "CampaignStats",
    "ConnectionState",
    "Entry",
    "LiveConnection",
    "TenantSession",
]
