"""Domain exceptions.

Routers translate these into HTTP responses; the webhook pipeline never raises
them to the sender (drops are logged instead).
"""


class GiveawayError(Exception):
    """Base class for giveaway domain errors."""


class SessionNotFoundError(GiveawayError):
    """No session is registered for the tenant."""

    def __init__(self, tenant_id: str) -> None:
        super().__init__(f"No session for tenant {tenant_id}")
        self.tenant_id = tenant_id


class InvalidSessionError(GiveawayError):
    """The caller's access token does not match the stored session."""


class CampaignNotFoundError(GiveawayError):
    """No campaign has been provisioned for the tenant."""

    def __init__(self, tenant_id: str) -> None:
        super().__init__(f"No giveaway provisioned for tenant {tenant_id}")
        self.tenant_id = tenant_id


class ConnectionWriteError(GiveawayError):
    """A frame could not be queued on a live connection."""


class UpstreamError(GiveawayError):
    """A Twitch API call failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
