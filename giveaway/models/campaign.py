"""Giveaway campaign model and its activation state machine."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum


class CampaignState(str, Enum):
    """Activation states of a tenant's giveaway."""

    UNINITIALIZED = "uninitialized"
    INACTIVE = "provisioned_inactive"
    ACTIVE = "active"


class AppendResult(str, Enum):
    """Outcome of offering a redemption to a campaign."""

    APPENDED = "appended"
    NO_CAMPAIGN = "no_campaign"
    REWARD_MISMATCH = "reward_mismatch"
    INACTIVE = "inactive"
    DUPLICATE = "duplicate"


class CampaignStateMachine:
    """Valid activation transitions.

    - UNINITIALIZED -> INACTIVE (reward provisioned)
    - INACTIVE -> ACTIVE (start)
    - ACTIVE -> INACTIVE (stop)

    There is no terminal state; a campaign may be started and stopped any
    number of times and keeps accumulating entries across windows.
    """

    TRANSITIONS: dict[CampaignState, set[CampaignState]] = {
        CampaignState.UNINITIALIZED: {CampaignState.INACTIVE},
        CampaignState.INACTIVE: {CampaignState.ACTIVE},
        CampaignState.ACTIVE: {CampaignState.INACTIVE},
    }

    @classmethod
    def can_transition(cls, current: CampaignState, new: CampaignState) -> bool:
        return new in cls.TRANSITIONS.get(current, set())


@dataclass(frozen=True)
class Entry:
    """One accepted redemption. Never edited after it is appended."""

    username: str
    user_id: str
    redemption_id: str
    reward_id: str
    reward_cost: int
    redeemed_at: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CampaignStats:
    """Aggregate view of a campaign for the operator dashboard."""

    active: bool
    total_entries: int
    unique_participants: int
    total_points_spent: int
    recent_entries: list[Entry]


@dataclass
class Campaign:
    """Giveaway scoped to a single reward id."""

    tenant_id: str
    reward_id: str
    active: bool = False
    entries: list[Entry] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    _redemption_ids: set[str] = field(default_factory=set, repr=False)

    @property
    def state(self) -> CampaignState:
        return CampaignState.ACTIVE if self.active else CampaignState.INACTIVE

    def start(self) -> bool:
        """Open the campaign for entries. Returns False if it was already active."""
        if not CampaignStateMachine.can_transition(self.state, CampaignState.ACTIVE):
            return False
        self.active = True
        return True

    def stop(self) -> bool:
        """Close the campaign. Returns False if it was already inactive."""
        if not CampaignStateMachine.can_transition(self.state, CampaignState.INACTIVE):
            return False
        self.active = False
        return True

    def append(self, entry: Entry) -> AppendResult:
        """Append *entry* if the campaign accepts it.

        Redemption ids already seen are dropped so an at-least-once redelivery
        does not count twice.
        """
        if entry.reward_id != self.reward_id:
            return AppendResult.REWARD_MISMATCH
        if not self.active:
            return AppendResult.INACTIVE
        if entry.redemption_id in self._redemption_ids:
            return AppendResult.DUPLICATE
        self._redemption_ids.add(entry.redemption_id)
        self.entries.append(entry)
        return AppendResult.APPENDED

    def clear(self) -> int:
        """Drop every entry. Returns how many were removed."""
        removed = len(self.entries)
        self.entries.clear()
        self._redemption_ids.clear()
        return removed

    def stats(self, recent_limit: int = 20) -> CampaignStats:
        recent = self.entries[-recent_limit:] if recent_limit > 0 else []
        return CampaignStats(
            active=self.active,
            total_entries=len(self.entries),
            unique_participants=len({e.user_id for e in self.entries}),
            total_points_spent=sum(e.reward_cost for e in self.entries),
            recent_entries=list(recent),
        )
