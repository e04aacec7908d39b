"""API Routers package

This package contains all API route handlers.
Routers are organized by feature domain.
"""

from . import auth_router, events_router, giveaway_router, rewards_router, webhook_router

__all__ = [
    "auth_router",
    "events_router",
    "giveaway_router",
    "rewards_router",
    "webhook_router",
]
