"""Role-gated moderation workflow shared by every directory resource."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from src.services.errors import InvalidTransitionError, UnauthorizedError

__all__ = [
    "Actor",
    "Role",
    "Status",
    "ANONYMOUS",
    "can_view",
    "ensure_can_delete",
    "ensure_can_edit",
    "ensure_can_moderate",
    "initial_status",
    "transition",
]


class Status:
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    CANCELLED = "CANCELLED"

    ALL = (DRAFT, PUBLISHED, CANCELLED)


class Role:
    ADMIN = "ADMIN"
    ORGANIZER = "ORGANIZER"
    ATHLETE = "ATHLETE"

    ALL = (ADMIN, ORGANIZER, ATHLETE)


@dataclass(frozen=True)
class Actor:
    """The authenticated user performing an operation."""

    id: Optional[str] = None
    role: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.id)

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and self.role == Role.ADMIN

    def owns(self, entity: Any) -> bool:
        return self.is_authenticated and _field(entity, "created_by_id") == self.id


ANONYMOUS = Actor()

# Only drafts are reviewed; published and cancelled entities are terminal.
TRANSITIONS: Dict[str, Dict[str, str]] = {
    "approve": {Status.DRAFT: Status.PUBLISHED},
    "reject": {Status.DRAFT: Status.CANCELLED},
}


def initial_status(actor: Actor) -> str:
    return Status.PUBLISHED if actor.is_admin else Status.DRAFT


def ensure_can_moderate(actor: Actor) -> None:
    if not actor.is_admin:
        raise UnauthorizedError("Seul un administrateur peut modérer ce contenu.")


def transition(current_status: str, action: str, actor: Actor) -> str:
    """Return the status reached by applying ``action``.

    The role guard runs before the state guard: a non-admin learns nothing
    about the entity's status.
    """
    ensure_can_moderate(actor)
    try:
        targets = TRANSITIONS[action]
    except KeyError as exc:
        raise ValueError(f"Unknown moderation action: {action}") from exc
    if current_status not in targets:
        raise InvalidTransitionError(current_status, action)
    return targets[current_status]


def ensure_can_edit(entity: Any, actor: Actor) -> None:
    if actor.is_admin or actor.owns(entity):
        return
    raise UnauthorizedError("Seul le créateur ou un administrateur peut modifier ce contenu.")


def ensure_can_delete(actor: Actor) -> None:
    if not actor.is_admin:
        raise UnauthorizedError("Seul un administrateur peut supprimer ce contenu.")


def can_view(entity: Any, actor: Actor) -> bool:
    """Published entities are public; others are limited to admins and their creator."""
    if _field(entity, "status") == Status.PUBLISHED:
        return True
    return actor.is_admin or actor.owns(entity)


def _field(entity: Any, name: str) -> Any:
    # Cached read models are plain dicts, freshly loaded ones are ORM rows.
    if isinstance(entity, Mapping):
        return entity.get(name)
    return getattr(entity, name, None)
