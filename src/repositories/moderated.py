"""Persistence operations shared by every moderated resource type."""
from __future__ import annotations

from typing import Any, Dict, Generic, Iterable, List, Optional, Sequence, Tuple, Type, TypeVar

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from src.models import ModerationLog

__all__ = ["ModeratedRepository"]

M = TypeVar("M")

SORTABLE_COLUMNS = {"name", "created_at", "updated_at"}


class ModeratedRepository(Generic[M]):
    """Repository bound to one moderated model.

    ``dependent_columns`` lists the foreign key columns of child tables that
    reference this model; they back :meth:`count_dependents` and
    :meth:`list_dependents`.
    """

    def __init__(
        self,
        session: Session,
        model: Type[M],
        *,
        dependent_columns: Iterable[Any] = (),
    ) -> None:
        self.session = session
        self.model = model
        self.dependent_columns = tuple(dependent_columns)

    def find_by_id(self, entity_id: str) -> Optional[M]:
        return self.session.get(self.model, entity_id)

    def find_by_slug(self, slug: str) -> Optional[M]:
        query = select(self.model).where(self.model.slug == slug)
        return self.session.scalars(query).first()

    def insert(self, values: Dict[str, Any]) -> M:
        entity = self.model(**values)
        self.session.add(entity)
        self.session.flush()
        self.session.refresh(entity)
        return entity

    def update(self, entity: M, values: Dict[str, Any]) -> M:
        for field, value in values.items():
            setattr(entity, field, value)
        self.session.flush()
        self.session.refresh(entity)
        return entity

    def delete(self, entity: M) -> None:
        self.session.delete(entity)
        self.session.flush()

    def count_dependents(self, entity_id: str) -> int:
        total = 0
        for column in self.dependent_columns:
            query = select(func.count()).where(column == entity_id)
            total += self.session.scalar(query) or 0
        return total

    def list_dependents(
        self, entity_id: str, *, statuses: Optional[Sequence[str]] = None
    ) -> List[Any]:
        rows: List[Any] = []
        for column in self.dependent_columns:
            model = column.class_
            query = select(model).where(column == entity_id)
            if statuses:
                query = query.where(model.status.in_(list(statuses)))
            query = query.order_by(model.name.asc(), model.id.asc())
            rows.extend(self.session.scalars(query).all())
        return rows

    def list(
        self,
        *,
        statuses: Optional[Sequence[str]] = None,
        search: Optional[str] = None,
        country: Optional[str] = None,
        created_by_id: Optional[str] = None,
        extra_filters: Optional[Dict[str, Any]] = None,
        sort_by: str = "name",
        sort_order: str = "asc",
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[Sequence[M], int]:
        conditions = []
        if statuses:
            conditions.append(self.model.status.in_(list(statuses)))
        if search:
            pattern = f"%{search.casefold()}%"
            conditions.append(
                or_(
                    func.lower(self.model.name).like(pattern),
                    func.lower(func.coalesce(self.model.description, "")).like(pattern),
                )
            )
        if country:
            conditions.append(self.model.country == country)
        if created_by_id:
            conditions.append(self.model.created_by_id == created_by_id)
        for field, value in (extra_filters or {}).items():
            conditions.append(getattr(self.model, field) == value)

        if sort_by not in SORTABLE_COLUMNS:
            sort_by = "name"
        column = getattr(self.model, sort_by)
        ordering = column.desc() if sort_order == "desc" else column.asc()

        count_query = select(func.count()).select_from(self.model)
        query = select(self.model)
        if conditions:
            count_query = count_query.where(*conditions)
            query = query.where(*conditions)
        total = self.session.scalar(count_query) or 0

        query = (
            query.order_by(ordering, self.model.id.asc())
            .offset(offset)
            .limit(limit)
        )
        return self.session.scalars(query).all(), total

    def log_transition(
        self,
        *,
        resource_type: str,
        entity_id: str,
        previous_status: str,
        new_status: str,
        actor_id: str,
        notes: Optional[str],
    ) -> ModerationLog:
        log = ModerationLog(
            resource_type=resource_type,
            entity_id=entity_id,
            previous_status=previous_status,
            new_status=new_status,
            actor_id=actor_id,
            notes=notes,
        )
        self.session.add(log)
        self.session.flush()
        self.session.refresh(log)
        return log

    def list_logs(self, resource_type: str, entity_id: str) -> Sequence[ModerationLog]:
        query = (
            select(ModerationLog)
            .where(
                ModerationLog.resource_type == resource_type,
                ModerationLog.entity_id == entity_id,
            )
            .order_by(ModerationLog.created_at.asc())
        )
        return self.session.scalars(query).all()
