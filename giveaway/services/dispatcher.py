"""EventSub message dispatcher.

Takes a verified message and decides what it means for local state:

- webhook_callback_verification: echo the challenge, touch nothing
- notification: route on subscription type
    - redemption.add    -> append an Entry, broadcast ``entry_added``
    - redemption.update -> broadcast ``redemption_status_changed`` (entries untouched)
    - follow/subscribe/raid/... -> broadcast ``channel_event``
    - anything else     -> log and drop
- revocation: tell the owning tenant's viewers via ``subscription_revoked``

Nothing here performs network I/O, and dropped events are never reported to
the sender as errors; Twitch retries non-2xx responses and eventually revokes
the subscription.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from pydantic import ValidationError

from giveaway.models.campaign import AppendResult, Entry
from giveaway.repositories.campaign import CampaignRegistry
from giveaway.repositories.session import SessionRegistry
from giveaway.schemas.eventsub import (
    FORWARDED_TYPES,
    ChallengeMessage,
    EventSubMessage,
    NotificationMessage,
    RedemptionEvent,
    RevocationMessage,
    SubscriptionType,
)
from giveaway.services.broadcast import BroadcastService, utc_timestamp

logger = logging.getLogger(__name__)

ACK_BODY = "OK"


class DispatchOutcome(str, Enum):
    CHALLENGE = "challenge"
    ENTRY_ADDED = "entry_added"
    STATUS_CHANGED = "status_changed"
    FORWARDED = "forwarded"
    REVOKED = "revoked"
    DROPPED = "dropped"


@dataclass
class DispatchResult:
    outcome: DispatchOutcome
    body: str = ACK_BODY
    reason: str = ""


class MessageDispatcher:
    """Applies verified EventSub messages to campaign state and fans them out."""

    def __init__(
        self,
        sessions: SessionRegistry,
        campaigns: CampaignRegistry,
        broadcaster: BroadcastService,
    ) -> None:
        self.sessions = sessions
        self.campaigns = campaigns
        self.broadcaster = broadcaster
        self._notification_handlers: dict[str, Callable[[NotificationMessage], DispatchResult]] = {
            SubscriptionType.REDEMPTION_ADD.value: self._handle_redemption_add,
            SubscriptionType.REDEMPTION_UPDATE.value: self._handle_redemption_update,
        }

    def dispatch(self, message: EventSubMessage) -> DispatchResult:
        if isinstance(message, ChallengeMessage):
            logger.info(
                f"Webhook verification for {message.subscription.type} "
                f"(subscription {message.subscription.id})"
            )
            return DispatchResult(DispatchOutcome.CHALLENGE, body=message.challenge)

        if isinstance(message, NotificationMessage):
            return self._dispatch_notification(message)

        if isinstance(message, RevocationMessage):
            return self._handle_revocation(message)

        logger.warning(f"Ignoring unknown EventSub message type: {message.message_type}")
        return _dropped("unknown_message_type")

    # ==================== Notifications ====================

    def _dispatch_notification(self, message: NotificationMessage) -> DispatchResult:
        sub_type = message.subscription_type
        handler = self._notification_handlers.get(sub_type)
        if handler is not None:
            return handler(message)
        if sub_type in FORWARDED_TYPES:
            return self._forward(message)

        logger.info(f"Unhandled notification type {sub_type}, dropping")
        return _dropped("unrecognized_subtype")

    def _handle_redemption_add(self, message: NotificationMessage) -> DispatchResult:
        event = _parse_redemption(message)
        if event is None:
            return _dropped("malformed_event")

        tenant_id = event.broadcaster_user_id
        entry = Entry(
            username=event.user_name,
            user_id=event.user_id,
            redemption_id=event.id,
            reward_id=event.reward.id,
            reward_cost=event.reward.cost,
            redeemed_at=event.redeemed_at,
        )

        result = self.campaigns.add_entry(tenant_id, entry)
        if result is not AppendResult.APPENDED:
            _log_rejected_entry(tenant_id, entry, result)
            return _dropped(result.value)

        self.broadcaster.broadcast(tenant_id, {"type": "entry_added", **entry.to_dict()})

        session = self.sessions.get(tenant_id)
        channel = session.label if session else tenant_id
        logger.info(f"New giveaway entry for {channel}: {entry.username}")
        return DispatchResult(DispatchOutcome.ENTRY_ADDED)

    def _handle_redemption_update(self, message: NotificationMessage) -> DispatchResult:
        event = _parse_redemption(message)
        if event is None:
            return _dropped("malformed_event")

        self.broadcaster.broadcast(
            event.broadcaster_user_id,
            {
                "type": "redemption_status_changed",
                "redemption_id": event.id,
                "user_id": event.user_id,
                "username": event.user_name,
                "reward_id": event.reward.id,
                "status": event.status,
                "redeemed_at": event.redeemed_at,
            },
        )
        logger.debug(f"Redemption {event.id} is now {event.status}")
        return DispatchResult(DispatchOutcome.STATUS_CHANGED)

    def _forward(self, message: NotificationMessage) -> DispatchResult:
        tenant_id = message.tenant_id
        if tenant_id is None:
            logger.warning(f"No broadcaster on {message.subscription_type} notification, dropping")
            return _dropped("no_tenant")

        self.broadcaster.broadcast(
            tenant_id,
            {
                "type": "channel_event",
                "subscription_type": message.subscription_type,
                "event": message.event,
                "timestamp": utc_timestamp(),
            },
        )
        return DispatchResult(DispatchOutcome.FORWARDED)

    # ==================== Revocation ====================

    def _handle_revocation(self, message: RevocationMessage) -> DispatchResult:
        subscription = message.subscription
        logger.warning(f"Subscription revoked: {subscription.id} ({message.reason})")

        session = self.sessions.find_by_subscription(subscription.id)
        if session is None:
            logger.info(f"No session owns revoked subscription {subscription.id}")
            return _dropped("unknown_subscription")

        self.broadcaster.broadcast(
            session.tenant_id,
            {
                "type": "subscription_revoked",
                "subscription_id": subscription.id,
                "subscription_type": subscription.type,
                "reason": message.reason,
                "timestamp": utc_timestamp(),
            },
        )
        return DispatchResult(DispatchOutcome.REVOKED)


def _dropped(reason: str) -> DispatchResult:
    return DispatchResult(DispatchOutcome.DROPPED, reason=reason)


def _parse_redemption(message: NotificationMessage) -> RedemptionEvent | None:
    try:
        return RedemptionEvent.model_validate(message.event)
    except ValidationError as e:
        logger.warning(f"Malformed {message.subscription_type} event, dropping: {e}")
        return None


def _log_rejected_entry(tenant_id: str, entry: Entry, result: AppendResult) -> None:
    if result is AppendResult.NO_CAMPAIGN:
        logger.info(f"No giveaway found for tenant {tenant_id}")
    elif result is AppendResult.REWARD_MISMATCH:
        logger.info(f"Redemption for different reward: {entry.reward_id}")
    elif result is AppendResult.INACTIVE:
        logger.info(f"Giveaway for tenant {tenant_id} is not active, ignoring {entry.username}")
    elif result is AppendResult.DUPLICATE:
        logger.info(f"Duplicate delivery of redemption {entry.redemption_id}, ignoring")
