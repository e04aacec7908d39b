"""In-memory registries. State lives for the lifetime of the process."""

from .campaign import CampaignRegistry
from .connection import ConnectionRegistry
from .session import SessionRegistry

__all__ = [
    "CampaignRegistry",
    "ConnectionRegistry",
    "SessionRegistry",
]
