"""Registry of open live-update connections, bucketed by tenant."""

from __future__ import annotations

import threading

from giveaway.models.connection import LiveConnection


class ConnectionRegistry:
    """Tenant -> connections map with O(1) register/unregister by token.

    Readers get snapshots, so callers may unregister while iterating.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_token: dict[str, LiveConnection] = {}
        self._by_tenant: dict[str, dict[str, LiveConnection]] = {}

    def register(self, connection: LiveConnection) -> str:
        with self._lock:
            self._by_token[connection.token] = connection
            self._by_tenant.setdefault(connection.tenant_id, {})[connection.token] = connection
        return connection.token

    def unregister(self, token: str) -> LiveConnection | None:
        """Remove a connection. Returns it, or None if it was already gone."""
        with self._lock:
            connection = self._by_token.pop(token, None)
            if connection is None:
                return None
            bucket = self._by_tenant.get(connection.tenant_id)
            if bucket is not None:
                bucket.pop(token, None)
                if not bucket:
                    del self._by_tenant[connection.tenant_id]
            return connection

    def get(self, token: str) -> LiveConnection | None:
        with self._lock:
            return self._by_token.get(token)

    def snapshot(self, tenant_id: str) -> list[LiveConnection]:
        with self._lock:
            return list(self._by_tenant.get(tenant_id, {}).values())

    def all_connections(self) -> list[LiveConnection]:
        with self._lock:
            return list(self._by_token.values())

    def count(self, tenant_id: str | None = None) -> int:
        with self._lock:
            if tenant_id is None:
                return len(self._by_token)
            return len(self._by_tenant.get(tenant_id, {}))
