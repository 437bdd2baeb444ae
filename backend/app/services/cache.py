"""Leave cache: a version counter that tells clients when to refetch, plus a
TTL store for directory lookups made while serving leave operations.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

CacheListener = Callable[[int, "uuid.UUID | None"], None]


@dataclass
class _Entry:
    value: Any
    expires_at: float


class LeaveCache:
    """Application-owned leave cache.

    ``version`` increases on every invalidation. Listeners are called with the
    new version and the affected employee (None for a global invalidation).
    The cache carries no locking semantics.
    """

    def __init__(self, ttl_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._version = 0
        self._employee_versions: dict[uuid.UUID, int] = {}
        self._entries: dict[str, _Entry] = {}
        self._listeners: list[CacheListener] = []

    @property
    def version(self) -> int:
        return self._version

    def employee_version(self, employee_id: uuid.UUID) -> int:
        """Version at which the employee's leave data last changed (0 if never)."""
        return self._employee_versions.get(employee_id, 0)

    def subscribe(self, listener: CacheListener) -> Callable[[], None]:
        """Register a listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def invalidate(self, employee_id: uuid.UUID | None = None) -> int:
        """Bump the version and drop cached lookups.

        With an employee id only that employee's entries are dropped.
        """
        self._version += 1
        if employee_id is None:
            self._entries.clear()
        else:
            self._employee_versions[employee_id] = self._version
            prefix = f"{employee_id}:"
            for key in [k for k in self._entries if k.startswith(prefix)]:
                del self._entries[key]

        for listener in list(self._listeners):
            try:
                listener(self._version, employee_id)
            except Exception:
                logger.exception("Leave cache listener failed")
        return self._version

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = _Entry(value=value, expires_at=self._clock() + self.ttl_seconds)

    async def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        """Return a cached value, awaiting ``loader()`` on a miss.

        None results are not cached.
        """
        cached = self.get(key)
        if cached is not None:
            return cached
        value = await loader()
        if value is not None:
            self.set(key, value)
        return value
