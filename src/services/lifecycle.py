"""Lifecycle of moderated directory entities.

One :class:`ModeratedEntityService` instance serves one resource type
(organizers, special series, events). It ties together slug assignment,
the moderation workflow, authorization and cache invalidation:

* ``create`` derives the slug from the name and picks the initial status
  from the actor's role (admins publish directly, everybody else drafts).
* ``update`` edits content fields and re-derives the slug when the name
  changes; it never changes the status.
* ``approve`` and ``reject`` move drafts to ``PUBLISHED``/``CANCELLED``.
* ``delete`` removes an entity nobody references anymore.

Every write runs in a single transaction. Failures roll the session back
before the error propagates, so the stored row is exactly as it was.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from math import ceil
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.cache import ModerationCache, id_key, list_key, slug_key
from src.config import CatalogConfig
from src.models import utcnow
from src.repositories.moderated import ModeratedRepository
from src.services.errors import (
    HasDependentsError,
    NotFoundError,
    PersistenceError,
    SlugConflictError,
    UnauthenticatedError,
    ValidationError,
)
from src.services.moderation import (
    ANONYMOUS,
    Actor,
    Status,
    can_view,
    ensure_can_delete,
    ensure_can_edit,
    ensure_can_moderate,
    initial_status,
    transition,
)
from src.services.resources import (
    ResourceType,
    serialize_datetime,
    serialize_entity,
    serialize_summary,
    validate_payload,
)
from src.services.slugs import assign_unique_slug, normalize

__all__ = ["ModeratedEntityService"]

logger = logging.getLogger(__name__)

SORT_FIELDS = {"name", "created_at"}
SORT_ORDERS = {"asc", "desc"}
TRUE_VALUES = {"1", "true", "yes", "on"}


class ModeratedEntityService:
    """High level operations for one moderated resource type."""

    def __init__(
        self,
        session: Session,
        resource: ResourceType,
        *,
        cache: ModerationCache,
        config: Optional[CatalogConfig] = None,
    ) -> None:
        self.session = session
        self.resource = resource
        self.cache = cache
        self.config = config or CatalogConfig()
        self.repository = ModeratedRepository(
            session,
            resource.model,
            dependent_columns=resource.dependent_columns,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def check_slug(self, slug: str) -> Dict[str, Any]:
        candidate = normalize(slug)
        return {
            "slug": candidate,
            "available": self.repository.find_by_slug(candidate) is None,
        }

    def get(self, entity_id: str, actor: Actor = ANONYMOUS) -> Dict[str, Any]:
        key = id_key(self.resource.name, entity_id)
        payload = self.cache.get(key)
        if payload is None:
            payload = self._serialize_detail(self._load(entity_id))
            self.cache.set(key, payload)
        return self._visible(payload, actor)

    def get_by_slug(self, slug: str, actor: Actor = ANONYMOUS) -> Dict[str, Any]:
        key = slug_key(self.resource.name, slug)
        payload = self.cache.get(key)
        if payload is None:
            entity = self.repository.find_by_slug(slug)
            if entity is None:
                raise NotFoundError(f"{self.resource.label} introuvable.")
            payload = self._serialize_detail(entity)
            self.cache.set(key, payload)
        return self._visible(payload, actor)

    def list(
        self, filters: Optional[Dict[str, Any]] = None, actor: Actor = ANONYMOUS
    ) -> Dict[str, Any]:
        filters = dict(filters or {})
        page, limit = self._parse_pagination(filters)
        options = self._parse_list_options(filters)
        mine = options.pop("mine")
        status = options.pop("status")

        if mine and not actor.is_authenticated:
            raise UnauthenticatedError()

        statuses: Optional[List[str]] = [status] if status else None
        if mine:
            options["created_by_id"] = actor.id
        elif not actor.is_admin:
            if status and status != Status.PUBLISHED:
                return self._page([], 0, page, limit)
            statuses = [Status.PUBLISHED]

        cacheable = (
            not mine
            and not status
            and not actor.is_admin
            and not filters
            and page == 1
            and limit == self.config.default_page_size
            and options == self._default_list_options()
        )
        if cacheable:
            cached = self.cache.get(list_key(self.resource.name))
            if cached is not None:
                return cached

        result = self._query_page(statuses=statuses, page=page, limit=limit, **options)
        if cacheable:
            self.cache.set(list_key(self.resource.name), result)
        return result

    def list_pending(
        self, actor: Actor, filters: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        ensure_can_moderate(actor)
        filters = dict(filters or {})
        page, limit = self._parse_pagination(filters)
        return self._query_page(
            statuses=[Status.DRAFT],
            page=page,
            limit=limit,
            sort_by="created_at",
            sort_order="asc",
        )

    def history(self, entity_id: str, actor: Actor) -> List[Dict[str, Any]]:
        entity = self._load(entity_id)
        ensure_can_edit(entity, actor)
        logs = self.repository.list_logs(self.resource.name, entity.id)
        return [self._serialize_log(log) for log in logs]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def create(self, payload: Dict[str, Any], actor: Actor) -> Dict[str, Any]:
        if not actor.is_authenticated:
            raise UnauthenticatedError()

        clean = validate_payload(self.resource, payload, partial=False)
        self._ensure_references(clean, actor)
        slug = assign_unique_slug(
            clean["name"],
            self.repository.find_by_slug,
            policy=self.config.slug_policy,
        )
        status = initial_status(actor)
        now = utcnow()

        with self._transaction(slug):
            entity = self.repository.insert(
                {
                    **clean,
                    "slug": slug,
                    "status": status,
                    "created_by_id": actor.id,
                    "created_at": now,
                    "updated_at": now,
                }
            )

        self.cache.invalidate([list_key(self.resource.name), *self._parent_keys(entity)])
        logger.info(
            "%s created: %s (%s) with status %s",
            self.resource.label,
            entity.id,
            slug,
            status,
        )
        return self._serialize(entity, dependents_count=0)

    def update(
        self, entity_id: str, payload: Dict[str, Any], actor: Actor
    ) -> Dict[str, Any]:
        entity = self._load(entity_id)
        ensure_can_edit(entity, actor)
        clean = validate_payload(self.resource, payload, partial=True)
        self._ensure_references(clean, actor)

        previous_slug = entity.slug
        previous_parents = self._parent_keys(entity)
        new_slug = previous_slug
        if "name" in clean and normalize(clean["name"]) != previous_slug:
            new_slug = assign_unique_slug(
                clean["name"],
                self.repository.find_by_slug,
                exclude_id=entity.id,
                policy=self.config.slug_policy,
            )
            clean["slug"] = new_slug

        with self._transaction(new_slug):
            entity = self.repository.update(entity, {**clean, "updated_at": utcnow()})

        self.cache.invalidate(
            [
                id_key(self.resource.name, entity.id),
                slug_key(self.resource.name, previous_slug),
                slug_key(self.resource.name, new_slug),
                list_key(self.resource.name),
                *previous_parents,
                *self._parent_keys(entity),
            ]
        )
        logger.info("%s updated: %s", self.resource.label, entity.id)
        return self._serialize(entity)

    def approve(
        self, entity_id: str, actor: Actor, notes: Optional[str] = None
    ) -> Dict[str, Any]:
        return self._moderate(entity_id, "approve", actor, notes)

    def reject(
        self, entity_id: str, actor: Actor, notes: Optional[str] = None
    ) -> Dict[str, Any]:
        return self._moderate(entity_id, "reject", actor, notes)

    def delete(self, entity_id: str, actor: Actor) -> None:
        entity = self._load(entity_id)
        ensure_can_delete(actor)

        dependents = self.repository.count_dependents(entity.id)
        if dependents:
            raise HasDependentsError(dependents)

        slug = entity.slug
        parents = self._parent_keys(entity)
        with self._transaction(dependents_of=entity_id):
            self.repository.delete(entity)

        self.cache.invalidate(
            [
                id_key(self.resource.name, entity_id),
                slug_key(self.resource.name, slug),
                list_key(self.resource.name),
                *parents,
            ]
        )
        logger.info("%s deleted: %s", self.resource.label, entity_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _moderate(
        self, entity_id: str, action: str, actor: Actor, notes: Optional[str]
    ) -> Dict[str, Any]:
        entity = self._load(entity_id)
        previous_status = entity.status
        new_status = transition(previous_status, action, actor)
        if notes is not None and not isinstance(notes, str):
            raise ValidationError({"notes": ["Doit être une chaîne de caractères."]})

        with self._transaction():
            entity = self.repository.update(
                entity, {"status": new_status, "updated_at": utcnow()}
            )
            self.repository.log_transition(
                resource_type=self.resource.name,
                entity_id=entity.id,
                previous_status=previous_status,
                new_status=new_status,
                actor_id=actor.id,
                notes=notes,
            )

        self.cache.invalidate(
            [
                id_key(self.resource.name, entity.id),
                slug_key(self.resource.name, entity.slug),
                list_key(self.resource.name),
                *self._parent_keys(entity),
            ]
        )
        logger.info(
            "%s %s: %s (%s -> %s) by %s",
            self.resource.label,
            "approved" if action == "approve" else "rejected",
            entity.id,
            previous_status,
            new_status,
            actor.id,
        )
        return self._serialize(entity)

    @contextmanager
    def _transaction(
        self, slug: Optional[str] = None, *, dependents_of: Optional[str] = None
    ) -> Iterator[None]:
        try:
            yield
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            reason = str(exc.orig).lower()
            # Storage constraints settle check-then-write races.
            if slug is not None and "slug" in reason:
                raise SlugConflictError(slug) from exc
            if dependents_of is not None and "foreign key" in reason:
                count = self.repository.count_dependents(dependents_of)
                raise HasDependentsError(max(count, 1)) from exc
            logger.exception("Integrity error while writing %s", self.resource.name)
            raise PersistenceError() from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Database error while writing %s", self.resource.name)
            raise PersistenceError() from exc
        except Exception:
            self.session.rollback()
            raise

    def _load(self, entity_id: str):
        entity = self.repository.find_by_id(entity_id)
        if entity is None:
            raise NotFoundError(f"{self.resource.label} introuvable.")
        return entity

    def _visible(self, payload: Dict[str, Any], actor: Actor) -> Dict[str, Any]:
        # Hidden drafts answer 404 so their existence does not leak.
        if not can_view(payload, actor):
            raise NotFoundError(f"{self.resource.label} introuvable.")
        return payload

    def _ensure_references(self, clean: Dict[str, Any], actor: Actor) -> None:
        errors: Dict[str, List[str]] = {}
        for field, parent in self.resource.references.items():
            value = clean.get(field)
            if value is None:
                continue
            # A parent hidden from the actor is reported like a missing one.
            row = self.session.get(parent.model, value)
            if row is None or not can_view(row, actor):
                errors.setdefault(field, []).append("Référence inconnue.")
        if errors:
            raise ValidationError(errors)

    def _parent_keys(self, entity: Any) -> List[str]:
        # Parents embed their dependents in cached read models.
        keys: List[str] = []
        for field, parent in self.resource.references.items():
            parent_id = getattr(entity, field, None)
            if parent_id is None:
                continue
            keys += [id_key(parent.name, parent_id), list_key(parent.name)]
            row = self.session.get(parent.model, parent_id)
            if row is not None:
                keys.append(slug_key(parent.name, row.slug))
        return keys

    def _query_page(
        self,
        *,
        statuses: Optional[List[str]],
        page: int,
        limit: int,
        **options: Any,
    ) -> Dict[str, Any]:
        entities, total = self.repository.list(
            statuses=statuses,
            offset=(page - 1) * limit,
            limit=limit,
            **options,
        )
        return self._page([self._serialize(entity) for entity in entities], total, page, limit)

    @staticmethod
    def _page(data: List[Dict[str, Any]], total: int, page: int, limit: int) -> Dict[str, Any]:
        return {
            "data": data,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": ceil(total / limit) if total else 0,
            },
        }

    def _parse_pagination(self, filters: Dict[str, Any]) -> tuple:
        errors: Dict[str, List[str]] = {}
        page = self._parse_positive_int(filters.pop("page", None), 1, "page", errors)
        limit = self._parse_positive_int(
            filters.pop("limit", None), self.config.default_page_size, "limit", errors
        )
        if errors:
            raise ValidationError(errors)
        return page, min(limit, self.config.max_page_size)

    @staticmethod
    def _parse_positive_int(
        value: Any, default: int, field: str, errors: Dict[str, List[str]]
    ) -> int:
        if value is None or value == "":
            return default
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            errors.setdefault(field, []).append("Doit être un entier positif.")
            return default
        if parsed < 1:
            errors.setdefault(field, []).append("Doit être un entier positif.")
            return default
        return parsed

    def _default_list_options(self) -> Dict[str, Any]:
        return {
            "search": None,
            "country": None,
            "sort_by": "name",
            "sort_order": "asc",
            "extra_filters": {},
        }

    def _parse_list_options(self, filters: Dict[str, Any]) -> Dict[str, Any]:
        errors: Dict[str, List[str]] = {}
        options = self._default_list_options()

        search = self._clean_filter(filters.pop("search", None))
        if search:
            options["search"] = search

        country = self._clean_filter(filters.pop("country", None))
        if country:
            options["country"] = country.upper()

        status = self._clean_filter(filters.pop("status", None))
        if status:
            status = status.upper()
            if status not in Status.ALL:
                errors.setdefault("status", []).append("Statut inconnu.")
        options["status"] = status

        sort_by = self._clean_filter(filters.pop("sort_by", None))
        if sort_by:
            if sort_by not in SORT_FIELDS:
                errors.setdefault("sort_by", []).append("Tri inconnu.")
            else:
                options["sort_by"] = sort_by

        sort_order = self._clean_filter(filters.pop("sort_order", None))
        if sort_order:
            if sort_order.lower() not in SORT_ORDERS:
                errors.setdefault("sort_order", []).append("Ordre inconnu (asc|desc).")
            else:
                options["sort_order"] = sort_order.lower()

        mine = filters.pop("mine", None)
        options["mine"] = mine is True or (
            isinstance(mine, str) and mine.strip().lower() in TRUE_VALUES
        )

        for field in self.resource.list_filters:
            value = self._clean_filter(filters.pop(field, None))
            if value:
                options["extra_filters"][field] = value

        if errors:
            raise ValidationError(errors)
        return options

    @staticmethod
    def _clean_filter(value: Any) -> Optional[str]:
        if value is None:
            return None
        if not isinstance(value, str):
            value = str(value)
        value = value.strip()
        return value or None

    def _serialize(self, entity: Any, dependents_count: Optional[int] = None) -> Dict[str, Any]:
        if dependents_count is None:
            dependents_count = self.repository.count_dependents(entity.id)
        return serialize_entity(entity, dependents_count=dependents_count)

    def _serialize_detail(self, entity: Any) -> Dict[str, Any]:
        payload = self._serialize(entity)
        if self.resource.dependents_key:
            dependents = self.repository.list_dependents(
                entity.id, statuses=[Status.PUBLISHED]
            )
            payload[self.resource.dependents_key] = [
                serialize_summary(row) for row in dependents
            ]
        return payload

    @staticmethod
    def _serialize_log(log) -> Dict[str, Any]:
        return {
            "id": log.id,
            "previous_status": log.previous_status,
            "new_status": log.new_status,
            "actor_id": log.actor_id,
            "notes": log.notes,
            "created_at": serialize_datetime(log.created_at),
        }
