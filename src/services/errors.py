"""Exceptions raised by the moderation services.

Each exception carries the HTTP status the route layer answers with, so the
blueprints can translate them with a single error handler.
"""
from __future__ import annotations

from typing import Dict, List, Optional

__all__ = [
    "DirectoryError",
    "HasDependentsError",
    "InvalidNameError",
    "InvalidTransitionError",
    "NotFoundError",
    "PersistenceError",
    "SlugConflictError",
    "UnauthenticatedError",
    "UnauthorizedError",
    "ValidationError",
]


class DirectoryError(Exception):
    """Base class for every error surfaced to API clients."""

    status_code = 500
    default_message = "Erreur interne."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DirectoryError):
    """Raised when incoming payload validation fails."""

    status_code = 400
    default_message = "Validation échouée."

    def __init__(self, errors: Dict[str, List[str]], message: Optional[str] = None):
        super().__init__(message)
        self.errors = errors


class InvalidNameError(ValidationError):
    """Raised when a name normalizes to an empty slug."""

    def __init__(self, name: str):
        super().__init__(
            {"name": ["Le nom doit contenir au moins un caractère alphanumérique."]}
        )
        self.name = name


class UnauthenticatedError(DirectoryError):
    status_code = 401
    default_message = "Authentification requise."


class UnauthorizedError(DirectoryError):
    """Raised when the actor lacks the role or ownership an operation needs."""

    status_code = 403
    default_message = "Action non autorisée."


class NotFoundError(DirectoryError):
    status_code = 404
    default_message = "Ressource introuvable."


class SlugConflictError(DirectoryError):
    """Raised when the slug derived from a name already belongs to another entity."""

    status_code = 409
    default_message = "Ce nom est déjà utilisé."

    def __init__(self, slug: str, message: Optional[str] = None):
        super().__init__(message)
        self.slug = slug


class InvalidTransitionError(DirectoryError):
    """Raised when an invalid status transition is requested."""

    status_code = 409

    def __init__(self, current_status: str, action: str):
        super().__init__(
            f"Action '{action}' impossible depuis le statut {current_status}."
        )
        self.current_status = current_status
        self.action = action


class HasDependentsError(DirectoryError):
    status_code = 409

    def __init__(self, count: int):
        super().__init__(
            f"Suppression impossible: {count} élément(s) dépendant(s) existent."
        )
        self.count = count


class PersistenceError(DirectoryError):
    status_code = 500
    default_message = "Erreur de persistance. On respire, on relance."
