"""Twitch channel points giveaway relay.

Receives EventSub webhooks, tracks per-broadcaster giveaways in memory and
streams entries to dashboards over Server-Sent Events.
"""

__version__ = "1.0.0"
