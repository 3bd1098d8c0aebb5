"""Declarations of the resource types sharing the moderation lifecycle."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from src.models import NAME_MAX_LENGTH, Event, Organizer, SpecialSeries
from src.services.errors import ValidationError

__all__ = [
    "EVENTS",
    "FieldRule",
    "ORGANIZERS",
    "RESOURCE_TYPES",
    "ResourceType",
    "SPECIAL_SERIES",
    "serialize_datetime",
    "serialize_entity",
    "serialize_summary",
    "validate_payload",
]

NAME_MIN_LENGTH = 2
URL_MAX_LENGTH = 500
URL_PATTERN = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)
COUNTRY_PATTERN = re.compile(r"^[A-Za-z]{2,3}$")
READ_ONLY_FIELDS = ("id", "slug", "status", "created_by_id", "created_at", "updated_at")
SUMMARY_FIELDS = ("id", "name", "slug", "city", "country", "logo_url", "status")


def clean_name(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Champ requis (string non vide).")
    name = value.strip()
    if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        raise ValueError(
            f"Doit contenir entre {NAME_MIN_LENGTH} et {NAME_MAX_LENGTH} caractères."
        )
    return name


def clean_optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("Doit être une chaîne de caractères.")
    return value.strip() or None


def clean_country(value: Any) -> str:
    if not isinstance(value, str) or not COUNTRY_PATTERN.match(value.strip()):
        raise ValueError("Code pays ISO attendu (2 ou 3 lettres).")
    return value.strip().upper()


def clean_url(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError("URL invalide.")
    url = value.strip()
    if len(url) > URL_MAX_LENGTH or not URL_PATTERN.match(url):
        raise ValueError("URL http(s) valide attendue.")
    return url


def clean_city(value: Any) -> Optional[str]:
    city = clean_optional_text(value)
    if city is not None and len(city) > 120:
        raise ValueError("Ne doit pas dépasser 120 caractères.")
    return city


def clean_reference(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError("Identifiant invalide.")
    return value.strip()


@dataclass(frozen=True)
class FieldRule:
    """Validation rule for one writable content field.

    ``clean`` raises :class:`ValueError` with a user-facing message.
    """

    name: str
    clean: Callable[[Any], Any]
    required: bool = False


@dataclass(frozen=True)
class ResourceType:
    """Everything that differs between two moderated resource types.

    ``references`` maps a foreign key field to the resource type it points to.
    ``dependents_key`` names the list of published dependents embedded in
    detail reads.
    """

    name: str
    item_key: str
    label: str
    model: type
    fields: Tuple[FieldRule, ...]
    dependent_columns: Tuple[Any, ...] = ()
    references: Dict[str, "ResourceType"] = field(default_factory=dict)
    list_filters: Tuple[str, ...] = ()
    dependents_key: Optional[str] = None


PROFILE_FIELDS: Tuple[FieldRule, ...] = (
    FieldRule("name", clean_name, required=True),
    FieldRule("description", clean_optional_text),
    FieldRule("country", clean_country, required=True),
    FieldRule("website", clean_url),
    FieldRule("instagram_url", clean_url),
    FieldRule("facebook_url", clean_url),
    FieldRule("twitter_url", clean_url),
    FieldRule("youtube_url", clean_url),
    FieldRule("logo_url", clean_url),
)

ORGANIZERS = ResourceType(
    name="organizers",
    item_key="organizer",
    label="Organisateur",
    model=Organizer,
    fields=PROFILE_FIELDS,
    dependent_columns=(Event.organizer_id,),
    dependents_key="events",
)

SPECIAL_SERIES = ResourceType(
    name="special-series",
    item_key="special_series",
    label="Série spéciale",
    model=SpecialSeries,
    fields=PROFILE_FIELDS,
    dependent_columns=(Event.special_series_id,),
    dependents_key="events",
)

EVENTS = ResourceType(
    name="events",
    item_key="event",
    label="Événement",
    model=Event,
    fields=PROFILE_FIELDS
    + (
        FieldRule("city", clean_city),
        FieldRule("organizer_id", clean_reference),
        FieldRule("special_series_id", clean_reference),
    ),
    references={"organizer_id": ORGANIZERS, "special_series_id": SPECIAL_SERIES},
    list_filters=("organizer_id", "special_series_id", "city"),
)

RESOURCE_TYPES: Tuple[ResourceType, ...] = (ORGANIZERS, SPECIAL_SERIES, EVENTS)


def validate_payload(
    resource: ResourceType, payload: Any, *, partial: bool
) -> Dict[str, Any]:
    """Return the cleaned content fields of ``payload``.

    On creation (``partial=False``) required fields must be present. Fields
    owned by the lifecycle (slug, status, ...) are never writable. Unknown
    keys are ignored.
    """
    if not isinstance(payload, dict):
        raise ValidationError(
            {"_schema": ["Payload JSON invalide: un objet JSON (type dict) est requis."]}
        )

    errors: Dict[str, List[str]] = {}
    clean: Dict[str, Any] = {}

    for read_only in READ_ONLY_FIELDS:
        if read_only in payload:
            errors.setdefault(read_only, []).append("Champ en lecture seule.")

    for rule in resource.fields:
        if rule.name not in payload:
            if rule.required and not partial:
                errors.setdefault(rule.name, []).append("Champ requis.")
            continue
        value = payload[rule.name]
        if value is None and rule.required:
            errors.setdefault(rule.name, []).append("Champ requis.")
            continue
        try:
            clean[rule.name] = rule.clean(value)
        except ValueError as exc:
            errors.setdefault(rule.name, []).append(str(exc))

    if errors:
        raise ValidationError(errors)
    return clean


def serialize_datetime(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def serialize_entity(entity: Any, *, dependents_count: int = 0) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    for column in entity.__table__.columns:
        value = getattr(entity, column.key)
        if isinstance(value, datetime):
            value = serialize_datetime(value)
        payload[column.key] = value
    payload["dependents_count"] = dependents_count
    return payload


def serialize_summary(entity: Any) -> Dict[str, Any]:
    return {name: getattr(entity, name, None) for name in SUMMARY_FIELDS}
