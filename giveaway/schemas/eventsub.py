"""Twitch EventSub webhook schemas.

Pydantic models for the three webhook message types and the event bodies the
dispatcher understands.

References:
- https://dev.twitch.tv/docs/eventsub/handling-webhook-events/
- https://dev.twitch.tv/docs/eventsub/eventsub-reference/
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Request headers set by Twitch on every webhook delivery
HEADER_MESSAGE_ID = "Twitch-Eventsub-Message-Id"
HEADER_MESSAGE_TIMESTAMP = "Twitch-Eventsub-Message-Timestamp"
HEADER_MESSAGE_SIGNATURE = "Twitch-Eventsub-Message-Signature"
HEADER_MESSAGE_TYPE = "Twitch-Eventsub-Message-Type"


class MessageType(str, Enum):
    """Values of the Twitch-Eventsub-Message-Type header."""

    VERIFICATION = "webhook_callback_verification"
    NOTIFICATION = "notification"
    REVOCATION = "revocation"


class SubscriptionType(str, Enum):
    """EventSub subscription types handled by the dispatcher."""

    REDEMPTION_ADD = "channel.channel_points_custom_reward_redemption.add"
    REDEMPTION_UPDATE = "channel.channel_points_custom_reward_redemption.update"

    # Forwarded to viewers as-is, no giveaway effect
    FOLLOW = "channel.follow"
    SUBSCRIBE = "channel.subscribe"
    SUBSCRIPTION_GIFT = "channel.subscription.gift"
    RAID = "channel.raid"
    CHEER = "channel.cheer"


FORWARDED_TYPES: frozenset[str] = frozenset(
    {
        SubscriptionType.FOLLOW.value,
        SubscriptionType.SUBSCRIBE.value,
        SubscriptionType.SUBSCRIPTION_GIFT.value,
        SubscriptionType.RAID.value,
        SubscriptionType.CHEER.value,
    }
)


class _EventSubModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Subscription(_EventSubModel):
    """The ``subscription`` object present on every message type."""

    id: str
    type: str
    version: str = "1"
    status: str = ""
    condition: dict[str, Any] = Field(default_factory=dict)
    created_at: str | None = None


class ChallengeMessage(_EventSubModel):
    """webhook_callback_verification: prove we own the callback URL."""

    challenge: str
    subscription: Subscription


class NotificationMessage(_EventSubModel):
    """notification: an event for an active subscription."""

    subscription: Subscription
    event: dict[str, Any]

    @property
    def subscription_type(self) -> str:
        return self.subscription.type

    @property
    def tenant_id(self) -> str | None:
        """Broadcaster the event belongs to, from the event body or the condition."""
        for source in (self.event, self.subscription.condition):
            for key in ("broadcaster_user_id", "to_broadcaster_user_id"):
                value = source.get(key)
                if value:
                    return str(value)
        return None


class RevocationMessage(_EventSubModel):
    """revocation: Twitch terminated the subscription; ``status`` holds the reason."""

    subscription: Subscription

    @property
    def reason(self) -> str:
        return self.subscription.status


@dataclass
class UnknownMessage:
    """A message type this service does not know; kept so it can be logged."""

    message_type: str
    payload: dict[str, Any] = field(default_factory=dict)


EventSubMessage = ChallengeMessage | NotificationMessage | RevocationMessage | UnknownMessage

_MESSAGE_MODELS: dict[str, type[BaseModel]] = {
    MessageType.VERIFICATION.value: ChallengeMessage,
    MessageType.NOTIFICATION.value: NotificationMessage,
    MessageType.REVOCATION.value: RevocationMessage,
}


def parse_message(message_type: str, payload: Any) -> EventSubMessage:
    """Build the typed message for *message_type*.

    Raises:
        pydantic.ValidationError: payload does not match the envelope for a
            known message type.
        ValueError: payload is not a JSON object.
    """
    if not isinstance(payload, dict):
        raise ValueError("EventSub payload must be a JSON object")
    model = _MESSAGE_MODELS.get(message_type)
    if model is None:
        return UnknownMessage(message_type=message_type, payload=payload)
    return model.model_validate(payload)  # type: ignore[return-value]


# ============================================
# Event bodies
# ============================================


class RedemptionReward(_EventSubModel):
    id: str
    title: str = ""
    cost: int = Field(default=0, ge=0)
    prompt: str = ""


class RedemptionEvent(_EventSubModel):
    """Body of channel_points_custom_reward_redemption.add / .update."""

    id: str
    broadcaster_user_id: str
    broadcaster_user_login: str = ""
    broadcaster_user_name: str = ""
    user_id: str
    user_login: str = ""
    user_name: str
    user_input: str = ""
    status: str = "unfulfilled"
    reward: RedemptionReward
    redeemed_at: str
