import redis

from src.cache import (
    LocalCache,
    ModerationCache,
    NullCache,
    build_cache_client,
    id_key,
    list_key,
    slug_key,
)
from src.config import CacheConfig

from conftest import BrokenCache, RecordingCache


def test_key_derivation():
    assert id_key("organizers", "abc") == "organizers:abc"
    assert slug_key("special-series", "golden-trail") == "special-series:slug:golden-trail"
    assert list_key("events") == "events:list"


def test_local_cache_expires_entries(monkeypatch):
    now = {"value": 100.0}
    monkeypatch.setattr("src.cache.time.monotonic", lambda: now["value"])
    client = LocalCache()
    client.set("a", "1", ex=10)
    client.set("b", "2")

    now["value"] = 109.0
    assert client.get("a") == "1"
    now["value"] = 110.0
    assert client.get("a") is None
    assert client.get("b") == "2"


def test_moderation_cache_round_trips_json_with_prefix():
    client = RecordingCache()
    cache = ModerationCache(client, ttl=30, prefix="trail:")

    cache.set("organizers:1", {"slug": "trail-fest", "dependents_count": 0})

    assert client.get("trail:organizers:1") is not None
    assert cache.get("organizers:1") == {"slug": "trail-fest", "dependents_count": 0}

    cache.invalidate(["organizers:1", "organizers:list", "organizers:1"])
    assert client.deleted == ["trail:organizers:1", "trail:organizers:list"]
    assert cache.get("organizers:1") is None


def test_moderation_cache_discards_garbage():
    client = LocalCache()
    client.set("organizers:1", "{not json")
    assert ModerationCache(client).get("organizers:1") is None


def test_moderation_cache_swallows_backend_errors(caplog):
    cache = ModerationCache(BrokenCache())

    assert cache.get("organizers:1") is None
    cache.set("organizers:1", {"id": "1"})
    cache.invalidate(["organizers:1"])

    assert "Cache invalidation failed" in caplog.text


def test_build_cache_client_backends():
    assert isinstance(build_cache_client(CacheConfig(backend="none")), NullCache)
    assert isinstance(build_cache_client(CacheConfig(backend="memory")), LocalCache)
    client = build_cache_client(
        CacheConfig(backend="redis", redis_url="redis://localhost:6399/3")
    )
    assert isinstance(client, redis.Redis)
