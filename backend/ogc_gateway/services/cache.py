"""Cache drivers storing map engine responses.

The mediation layer only needs to know whether a driver is configured and
to read or write whole responses by key. Keys are scoped by repository
and project so that projects sharing layer names never share tiles.
"""

from __future__ import annotations

import hashlib
import threading
import time
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ogc_gateway.core import config
    from ogc_gateway.db import models as db_models

MEMORY_DRIVER = "memory"
DEFAULT_MAX_ENTRIES = 10000


class CacheDriverProtocol(Protocol):
    """Protocol interface for response caches."""

    def get(self, key: str) -> db_models.OGCResponse | None: ...

    def set(
        self,
        key: str,
        response: db_models.OGCResponse,
        ttl: int,
    ) -> None: ...


class InMemoryCacheDriver(CacheDriverProtocol):
    """Process-local cache with per-entry expiry.

    Entries are lost when the process exits. Suitable for tests, single
    worker deployments and local development. Expired entries are purged
    on every write, and the oldest entries are evicted once
    ``max_entries`` is reached.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        """Initialize an empty cache holding at most ``max_entries``."""
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        # Insertion order is write order, oldest first.
        self._store: dict[str, tuple[float, db_models.OGCResponse]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> db_models.OGCResponse | None:
        """Return the cached response, or None when missing or expired."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            expires_at, response = entry
            if expires_at <= time.monotonic():
                del self._store[key]
                return None
            return response

    def set(
        self,
        key: str,
        response: db_models.OGCResponse,
        ttl: int,
    ) -> None:
        """Store ``response`` for ``ttl`` seconds."""
        with self._lock:
            now = time.monotonic()
            self._purge_expired(now)
            self._store.pop(key, None)
            while len(self._store) >= self.max_entries:
                del self._store[next(iter(self._store))]
            self._store[key] = (now + ttl, response)

    def _purge_expired(self, now: float) -> None:
        expired = [
            key for key, (expires_at, _) in self._store.items() if expires_at <= now
        ]
        for key in expired:
            del self._store[key]

    def __len__(self) -> int:
        return len(self._store)


def cache_key(
    repository_key: str,
    project_key: str,
    params: Mapping[str, str | None],
) -> str:
    """Build a cache key from the project and the outbound parameters.

    Parameter order does not change the key. Identity parameters are part
    of the key since the engine may render differently per user.
    """
    canonical = "&".join(
        f"{name}={value}"
        for name, value in sorted(params.items())
        if value is not None
    )
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return f"{repository_key}/{project_key}/{digest}"


def get_cache_driver(settings: config.Settings) -> CacheDriverProtocol | None:
    """Factory function to create the configured cache driver.

    Args:
        settings: Application settings naming the cache driver.

    Returns:
        InMemoryCacheDriver for the "memory" driver, None when no cache
        driver is configured.

    Raises:
        ValueError: If the driver name is unknown.
    """
    if not settings.cache_driver:
        return None
    if settings.cache_driver.lower() == MEMORY_DRIVER:
        return InMemoryCacheDriver(max_entries=settings.cache_max_entries)
    raise ValueError(f"Unknown cache driver: {settings.cache_driver}")
