"""Services layer - Business logic

This module provides service classes for handling business logic.
Services are initialized with their dependencies and accessed through dependency injection.
"""

from .broadcast import BroadcastService, format_sse
from .dispatcher import DispatchOutcome, DispatchResult, MessageDispatcher
from .giveaway_service import GiveawayService
from .signature import SignatureVerifier, Verdict, VerificationResult
from .twitch_api import TokenExchangeResult, TwitchAPIClient

__all__ = [
    "BroadcastService",
    "DispatchOutcome",
    "DispatchResult",
    "GiveawayService",
    "MessageDispatcher",
    "SignatureVerifier",
    "TokenExchangeResult",
    "TwitchAPIClient",
    "Verdict",
    "VerificationResult",
    "format_sse",
]
