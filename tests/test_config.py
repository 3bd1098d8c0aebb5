import pytest

from src.config import get_config


@pytest.fixture(autouse=True)
def fresh_config():
    get_config.cache_clear()
    yield
    get_config.cache_clear()


def test_defaults(monkeypatch):
    for var in ("CACHE_BACKEND", "CACHE_TTL", "SLUG_POLICY", "DEFAULT_PAGE_SIZE", "LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)

    config = get_config()

    assert config.cache.backend == "memory"
    assert config.cache.ttl == 300
    assert config.catalog.slug_policy == "conflict"
    assert config.catalog.default_page_size == 20
    assert config.log_level == "INFO"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("CACHE_BACKEND", "Redis")
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379/2")
    monkeypatch.setenv("CACHE_TTL", "120")
    monkeypatch.setenv("CACHE_KEY_PREFIX", "trail:")
    monkeypatch.setenv("SLUG_POLICY", "suffix")
    monkeypatch.setenv("JWT_ALGORITHM", "HS512")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = get_config()

    assert config.cache.backend == "redis"
    assert config.cache.redis_url == "redis://cache:6379/2"
    assert config.cache.ttl == 120
    assert config.cache.key_prefix == "trail:"
    assert config.catalog.slug_policy == "suffix"
    assert config.auth.jwt_algorithm == "HS512"
    assert config.log_level == "DEBUG"


def test_invalid_values_fall_back(monkeypatch):
    monkeypatch.setenv("CACHE_BACKEND", "memcached")
    monkeypatch.setenv("CACHE_TTL", "soon")
    monkeypatch.setenv("SLUG_POLICY", "random")
    monkeypatch.setenv("MAX_PAGE_SIZE", "10")
    monkeypatch.setenv("DEFAULT_PAGE_SIZE", "50")

    config = get_config()

    assert config.cache.backend == "memory"
    assert config.cache.ttl == 300
    assert config.catalog.slug_policy == "conflict"
    assert config.catalog.max_page_size == 10
    assert config.catalog.default_page_size == 10
