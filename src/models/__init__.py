"""SQLAlchemy models for the trail directory domain."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database import Base

MODERATION_STATUSES = ("DRAFT", "PUBLISHED", "CANCELLED")
SLUG_MAX_LENGTH = 120
NAME_MAX_LENGTH = 100


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class TimestampMixin:
    """Mixin providing created/updated timestamps.

    ``updated_at`` is bumped explicitly by the lifecycle service so that a
    rolled back operation never touches it.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class ModeratedMixin(TimestampMixin):
    """Columns shared by every resource going through moderation."""

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False)
    slug: Mapped[str] = mapped_column(String(SLUG_MAX_LENGTH), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(
        Enum(*MODERATION_STATUSES, name="moderation_status"),
        nullable=False,
        default="DRAFT",
        index=True,
    )
    created_by_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    country: Mapped[Optional[str]] = mapped_column(String(3))
    website: Mapped[Optional[str]] = mapped_column(String(500))
    instagram_url: Mapped[Optional[str]] = mapped_column(String(500))
    facebook_url: Mapped[Optional[str]] = mapped_column(String(500))
    twitter_url: Mapped[Optional[str]] = mapped_column(String(500))
    youtube_url: Mapped[Optional[str]] = mapped_column(String(500))
    logo_url: Mapped[Optional[str]] = mapped_column(String(500))


class Organizer(ModeratedMixin, Base):
    __tablename__ = "organizers"

    events: Mapped[List["Event"]] = relationship(
        "Event", back_populates="organizer", passive_deletes="all"
    )


class SpecialSeries(ModeratedMixin, Base):
    __tablename__ = "special_series"

    events: Mapped[List["Event"]] = relationship(
        "Event", back_populates="special_series", passive_deletes="all"
    )


class Event(ModeratedMixin, Base):
    __tablename__ = "events"

    city: Mapped[Optional[str]] = mapped_column(String(120))
    organizer_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("organizers.id", ondelete="RESTRICT"), index=True
    )
    special_series_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("special_series.id", ondelete="RESTRICT"), index=True
    )

    organizer: Mapped[Optional[Organizer]] = relationship(
        "Organizer", back_populates="events"
    )
    special_series: Mapped[Optional[SpecialSeries]] = relationship(
        "SpecialSeries", back_populates="events"
    )


class ModerationLog(Base):
    __tablename__ = "moderation_logs"
    __table_args__ = (
        Index("ix_moderation_logs_entity", "resource_type", "entity_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    resource_type: Mapped[str] = mapped_column(String(40), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    previous_status: Mapped[str] = mapped_column(String(20), nullable=False)
    new_status: Mapped[str] = mapped_column(String(20), nullable=False)
    actor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


__all__ = [
    "Event",
    "MODERATION_STATUSES",
    "ModerationLog",
    "NAME_MAX_LENGTH",
    "Organizer",
    "SLUG_MAX_LENGTH",
    "SpecialSeries",
]
