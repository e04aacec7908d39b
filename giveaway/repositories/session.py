"""In-memory registry of broadcaster sessions."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace

from giveaway.core.errors import SessionNotFoundError
from giveaway.models.session import TenantSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Keyed store of TenantSession by tenant id. Nothing here expires."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, TenantSession] = {}

    def create(self, session: TenantSession) -> TenantSession:
        """Insert or replace the session for ``session.tenant_id``."""
        with self._lock:
            previous = self._sessions.get(session.tenant_id)
            self._sessions[session.tenant_id] = session
        if previous is not None:
            logger.debug(f"Replaced session for tenant {session.tenant_id}")
        return session

    def get(self, tenant_id: str) -> TenantSession | None:
        with self._lock:
            return self._sessions.get(tenant_id)

    def update(self, tenant_id: str, **changes) -> TenantSession:
        """Apply field changes (e.g. reward_id, subscription_id) to a session."""
        with self._lock:
            session = self._sessions.get(tenant_id)
            if session is None:
                raise SessionNotFoundError(tenant_id)
            updated = replace(session, **changes)
            self._sessions[tenant_id] = updated
            return updated

    def delete(self, tenant_id: str) -> bool:
        """Remove a session. Returns True if one existed."""
        with self._lock:
            return self._sessions.pop(tenant_id, None) is not None

    def find_by_subscription(self, subscription_id: str) -> TenantSession | None:
        """Find the session bound to an EventSub subscription id."""
        if not subscription_id:
            return None
        with self._lock:
            for session in self._sessions.values():
                if session.subscription_id == subscription_id:
                    return session
        return None

    def list_all(self) -> list[TenantSession]:
        with self._lock:
            return list(self._sessions.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
