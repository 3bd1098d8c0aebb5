"""Slug derivation and uniqueness checks."""
from __future__ import annotations

import re
import unicodedata
from typing import Any, Callable, Optional

from src.models import SLUG_MAX_LENGTH
from src.services.errors import InvalidNameError, SlugConflictError

__all__ = ["assign_unique_slug", "normalize", "SlugLookup"]

NON_ALNUM_PATTERN = re.compile(r"[^a-z0-9]+")

SlugLookup = Callable[[str], Optional[Any]]


def _strip_diacritics(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def _truncate(slug: str, max_length: int) -> str:
    if len(slug) <= max_length:
        return slug
    return slug[:max_length].rstrip("-")


def normalize(name: str, *, max_length: int = SLUG_MAX_LENGTH) -> str:
    """Derive a URL-safe slug from a display name.

    ``"Club Deportivo Montaña"`` becomes ``"club-deportivo-montana"``.
    Already normalized input is returned unchanged.
    """
    if not isinstance(name, str):
        raise InvalidNameError(str(name))
    ascii_name = _strip_diacritics(name.lower()).lower()
    slug = NON_ALNUM_PATTERN.sub("-", ascii_name).strip("-")
    slug = _truncate(slug, max_length)
    if not slug:
        raise InvalidNameError(name)
    return slug


def assign_unique_slug(
    name: str,
    lookup: SlugLookup,
    *,
    exclude_id: Optional[Any] = None,
    policy: str = "conflict",
    max_length: int = SLUG_MAX_LENGTH,
) -> str:
    """Return a slug for ``name`` that no other entity holds.

    ``lookup`` returns the entity currently owning a slug, or ``None``. An
    entity whose ``id`` equals ``exclude_id`` is the one being renamed and
    never counts as a conflict.

    With the ``conflict`` policy a taken slug raises
    :class:`SlugConflictError`; with ``suffix`` the slug gets ``-2``,
    ``-3``... appended until it is free.
    """
    candidate = normalize(name, max_length=max_length)
    if _is_free(candidate, lookup, exclude_id):
        return candidate
    if policy != "suffix":
        raise SlugConflictError(candidate)

    counter = 2
    while True:
        suffix = f"-{counter}"
        suffixed = _truncate(candidate, max_length - len(suffix)) + suffix
        if _is_free(suffixed, lookup, exclude_id):
            return suffixed
        counter += 1


def _is_free(slug: str, lookup: SlugLookup, exclude_id: Optional[Any]) -> bool:
    existing = lookup(slug)
    if existing is None:
        return True
    return exclude_id is not None and getattr(existing, "id", None) == exclude_id
