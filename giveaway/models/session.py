"""Data model for authorized broadcaster sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class TenantSession:
    """OAuth session for one broadcaster (tenant)."""

    tenant_id: str
    access_token: str
    refresh_token: str
    login: str = ""
    display_name: str = ""
    avatar: str | None = None
    reward_id: str | None = None
    subscription_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def label(self) -> str:
        """Human-readable name for logs."""
        return self.display_name or self.login or self.tenant_id
