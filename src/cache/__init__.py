"""Read-model cache used by the directory services.

The cache is advisory: the database stays the source of truth and any
failure talking to the cache backend is logged and swallowed.
"""
from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Dict, Iterable, Optional, Tuple

from src.config import CacheConfig

__all__ = [
    "LocalCache",
    "ModerationCache",
    "NullCache",
    "build_cache_client",
    "id_key",
    "list_key",
    "slug_key",
]

logger = logging.getLogger(__name__)


def id_key(resource_type: str, entity_id: Any) -> str:
    return f"{resource_type}:{entity_id}"


def slug_key(resource_type: str, slug: str) -> str:
    return f"{resource_type}:slug:{slug}"


def list_key(resource_type: str) -> str:
    return f"{resource_type}:list"


class NullCache:
    """Client that stores nothing."""

    def get(self, key: str) -> Optional[bytes]:
        return None

    def set(self, key: str, value: str, ex: Optional[int] = None) -> None:
        return None

    def delete(self, *keys: str) -> int:
        return 0


class LocalCache:
    """Process-local client mimicking the subset of the redis API we use."""

    def __init__(self) -> None:
        self._store: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at <= time.monotonic():
                del self._store[key]
                return None
            return value

    def set(self, key: str, value: str, ex: Optional[int] = None) -> None:
        expires_at = time.monotonic() + ex if ex else None
        with self._lock:
            self._store[key] = (value, expires_at)

    def delete(self, *keys: str) -> int:
        removed = 0
        with self._lock:
            for key in keys:
                if self._store.pop(key, None) is not None:
                    removed += 1
        return removed

    def clear(self) -> None:
        with self._lock:
            self._store.clear()


def build_cache_client(config: CacheConfig) -> Any:
    """Create a cache client based on ``config.backend``."""
    if config.backend == "none":
        return NullCache()
    if config.backend == "redis":
        import redis

        return redis.from_url(config.redis_url)
    return LocalCache()


class ModerationCache:
    """JSON cache with best-effort semantics over a redis-like client."""

    def __init__(self, client: Any, *, ttl: int = 300, prefix: str = "") -> None:
        self.client = client
        self.ttl = ttl
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self.client.get(self._key(key))
        except Exception:
            logger.warning("Cache get failed for key %s", key, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding undecodable cache entry %s", key)
            return None

    def set(self, key: str, value: Any) -> None:
        try:
            self.client.set(self._key(key), json.dumps(value), ex=self.ttl or None)
        except Exception:
            logger.warning("Cache set failed for key %s", key, exc_info=True)

    def invalidate(self, keys: Iterable[str]) -> None:
        unique_keys = [self._key(key) for key in dict.fromkeys(keys)]
        if not unique_keys:
            return
        try:
            self.client.delete(*unique_keys)
        except Exception:
            logger.warning("Cache invalidation failed for %s", unique_keys, exc_info=True)
