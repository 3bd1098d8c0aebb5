"""Resolve the acting user from the bearer token issued by the auth service."""
from __future__ import annotations

from typing import Any, Dict

import jwt
from flask import g, request

from src.config import AuthConfig, get_config
from src.services.errors import UnauthenticatedError
from src.services.moderation import ANONYMOUS, Actor, Role

__all__ = ["decode_actor", "get_current_actor", "require_actor"]


def _extract_bearer_token(authorization: str) -> str:
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2:
        raise UnauthenticatedError("En-tête Authorization invalide.")
    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer" or not token:
        raise UnauthenticatedError("Authorization doit être: Bearer <token>.")
    return token


def decode_actor(token: str, config: AuthConfig) -> Actor:
    try:
        claims: Dict[str, Any] = jwt.decode(
            token, config.jwt_secret, algorithms=[config.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError as exc:
        raise UnauthenticatedError("Jeton expiré.") from exc
    except jwt.InvalidTokenError as exc:
        raise UnauthenticatedError("Jeton invalide.") from exc

    subject = claims.get("sub") or claims.get("id")
    if not subject:
        raise UnauthenticatedError("Jeton sans identifiant utilisateur.")
    role = str(claims.get("role") or "").strip().upper()
    return Actor(id=str(subject), role=role if role in Role.ALL else None)


def get_current_actor() -> Actor:
    """Return the actor of the current request, anonymous without a token."""
    if "actor" not in g:
        authorization = request.headers.get("Authorization", "")
        if authorization.strip():
            g.actor = decode_actor(
                _extract_bearer_token(authorization), get_config().auth
            )
        else:
            g.actor = ANONYMOUS
    return g.actor


def require_actor() -> Actor:
    actor = get_current_actor()
    if not actor.is_authenticated:
        raise UnauthenticatedError()
    return actor
