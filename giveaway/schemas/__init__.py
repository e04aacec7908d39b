"""Wire schemas for inbound webhooks."""

from .eventsub import (
    FORWARDED_TYPES,
    HEADER_MESSAGE_ID,
    HEADER_MESSAGE_SIGNATURE,
    HEADER_MESSAGE_TIMESTAMP,
    HEADER_MESSAGE_TYPE,
    ChallengeMessage,
    EventSubMessage,
    MessageType,
    NotificationMessage,
    RedemptionEvent,
    RedemptionReward,
    RevocationMessage,
    Subscription,
    SubscriptionType,
    UnknownMessage,
    parse_message,
)

__all__ = [
    "FORWARDED_TYPES",
    "HEADER_MESSAGE_ID",
    "HEADER_MESSAGE_SIGNATURE",
    "HEADER_MESSAGE_TIMESTAMP",
    "HEADER_MESSAGE_TYPE",
    "ChallengeMessage",
    "EventSubMessage",
    "MessageType",
    "NotificationMessage",
    "RedemptionEvent",
    "RedemptionReward",
    "RevocationMessage",
    "Subscription",
    "SubscriptionType",
    "UnknownMessage",
    "parse_message",
]
