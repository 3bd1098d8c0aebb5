"""Utilities for accessing services within Flask request context."""
from __future__ import annotations

from flask import current_app, g

from src.cache import ModerationCache, build_cache_client
from src.config import get_config
from src.database import get_session
from src.services.lifecycle import ModeratedEntityService
from src.services.resources import RESOURCE_TYPES, ResourceType

SERVICE_KEYS = {f"service:{resource.name}" for resource in RESOURCE_TYPES}


def get_db_session():
    if "db_session" not in g:
        g.db_session = get_session()
    return g.db_session


def get_cache() -> ModerationCache:
    if "cache" not in g:
        config = get_config().cache
        g.cache = ModerationCache(
            _get_cache_client(),
            ttl=config.ttl,
            prefix=config.key_prefix,
        )
    return g.cache


def get_entity_service(resource: ResourceType) -> ModeratedEntityService:
    key = f"service:{resource.name}"
    if key not in g:
        service = ModeratedEntityService(
            get_db_session(),
            resource,
            cache=get_cache(),
            config=get_config().catalog,
        )
        setattr(g, key, service)
    return getattr(g, key)


def cleanup_services(exception):
    session = g.pop("db_session", None)
    for key in SERVICE_KEYS:
        g.pop(key, None)
    g.pop("cache", None)
    g.pop("actor", None)
    if session is not None:
        try:
            if exception is not None:
                session.rollback()
        finally:
            session.close()


def _get_cache_client():
    factory = current_app.config.get("CACHE_CLIENT_FACTORY")
    if callable(factory):
        return factory()
    client = current_app.config.get("CACHE_CLIENT")
    if client is not None:
        return client
    if "moderation_cache_client" not in current_app.extensions:
        current_app.extensions["moderation_cache_client"] = build_cache_client(
            get_config().cache
        )
    return current_app.extensions["moderation_cache_client"]
