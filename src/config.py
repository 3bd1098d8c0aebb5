"""Centralised configuration management for the directory service."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

SLUG_POLICIES = {"conflict", "suffix"}
CACHE_BACKENDS = {"memory", "redis", "none"}


@dataclass(frozen=True)
class CacheConfig:
    """Settings for the read-model cache."""

    backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"
    ttl: int = 300
    key_prefix: str = ""


@dataclass(frozen=True)
class AuthConfig:
    """Settings used to decode bearer tokens issued upstream."""

    jwt_secret: str = "dev-change-this-secret-for-local-use-only"
    jwt_algorithm: str = "HS256"


@dataclass(frozen=True)
class CatalogConfig:
    """Behaviour shared by every moderated resource type."""

    slug_policy: str = "conflict"
    default_page_size: int = 20
    max_page_size: int = 100


@dataclass(frozen=True)
class AppConfig:
    """Aggregate application configuration."""

    cache: CacheConfig = field(default_factory=CacheConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    log_level: str = "INFO"


def _get_int(var: str, default: int) -> int:
    value = os.getenv(var)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_choice(var: str, choices: set, default: str) -> str:
    value = (os.getenv(var) or "").strip().lower()
    return value if value in choices else default


def _load_cache_config() -> CacheConfig:
    return CacheConfig(
        backend=_get_choice("CACHE_BACKEND", CACHE_BACKENDS, "memory"),
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        ttl=max(0, _get_int("CACHE_TTL", 300)),
        key_prefix=os.getenv("CACHE_KEY_PREFIX", ""),
    )


def _load_auth_config() -> AuthConfig:
    secret: Optional[str] = (os.getenv("JWT_SECRET") or "").strip()
    algorithm = (os.getenv("JWT_ALGORITHM") or "").strip()
    return AuthConfig(
        jwt_secret=secret or "dev-change-this-secret-for-local-use-only",
        jwt_algorithm=algorithm or "HS256",
    )


def _load_catalog_config() -> CatalogConfig:
    max_page_size = max(1, _get_int("MAX_PAGE_SIZE", 100))
    default_page_size = min(max(1, _get_int("DEFAULT_PAGE_SIZE", 20)), max_page_size)
    return CatalogConfig(
        slug_policy=_get_choice("SLUG_POLICY", SLUG_POLICIES, "conflict"),
        default_page_size=default_page_size,
        max_page_size=max_page_size,
    )


@lru_cache()
def get_config() -> AppConfig:
    """Return the lazily initialised application configuration."""

    return AppConfig(
        cache=_load_cache_config(),
        auth=_load_auth_config(),
        catalog=_load_catalog_config(),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
