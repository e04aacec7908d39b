"""In-memory registry of giveaway campaigns, one per tenant."""

from __future__ import annotations

import logging
import threading

from giveaway.core.errors import CampaignNotFoundError
from giveaway.models.campaign import AppendResult, Campaign, CampaignState, CampaignStats, Entry

logger = logging.getLogger(__name__)


class CampaignRegistry:
    """Owns every Campaign. All reads and writes go through the registry lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._campaigns: dict[str, Campaign] = {}

    def provision(self, tenant_id: str, reward_id: str) -> Campaign:
        """Create the tenant's campaign for *reward_id* (inactive).

        Provisioning the reward the campaign already tracks keeps it and its
        entries; a different reward replaces it with a fresh, inactive one.
        """
        with self._lock:
            existing = self._campaigns.get(tenant_id)
            if existing is not None and existing.reward_id == reward_id:
                return existing
            campaign = Campaign(tenant_id=tenant_id, reward_id=reward_id)
            self._campaigns[tenant_id] = campaign
        if existing is not None:
            logger.info(
                f"Tenant {tenant_id} giveaway moved from reward {existing.reward_id} to {reward_id}"
            )
        return campaign

    def get(self, tenant_id: str) -> Campaign | None:
        with self._lock:
            return self._campaigns.get(tenant_id)

    def state(self, tenant_id: str) -> CampaignState:
        with self._lock:
            campaign = self._campaigns.get(tenant_id)
            return campaign.state if campaign else CampaignState.UNINITIALIZED

    def start(self, tenant_id: str) -> bool:
        """Activate the campaign. Returns False if it was already active."""
        with self._lock:
            return self._require(tenant_id).start()

    def stop(self, tenant_id: str) -> bool:
        """Deactivate the campaign. Returns False if it was already inactive."""
        with self._lock:
            return self._require(tenant_id).stop()

    def add_entry(self, tenant_id: str, entry: Entry) -> AppendResult:
        with self._lock:
            campaign = self._campaigns.get(tenant_id)
            if campaign is None:
                return AppendResult.NO_CAMPAIGN
            return campaign.append(entry)

    def clear(self, tenant_id: str) -> int:
        """Operator reset of the entry log. Returns the number of entries removed."""
        with self._lock:
            return self._require(tenant_id).clear()

    def delete(self, tenant_id: str) -> bool:
        with self._lock:
            return self._campaigns.pop(tenant_id, None) is not None

    def stats(self, tenant_id: str, recent_limit: int = 20) -> CampaignStats:
        with self._lock:
            return self._require(tenant_id).stats(recent_limit)

    def count_active(self) -> int:
        with self._lock:
            return sum(1 for c in self._campaigns.values() if c.active)

    def total_entries(self) -> int:
        with self._lock:
            return sum(len(c.entries) for c in self._campaigns.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._campaigns)

    def _require(self, tenant_id: str) -> Campaign:
        campaign = self._campaigns.get(tenant_id)
        if campaign is None:
            raise CampaignNotFoundError(tenant_id)
        return campaign
