"""Moderated directory tables: organizers, special series, events."""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "202610190001"
down_revision = None
branch_labels = None
depends_on = None

MODERATION_STATUSES = ("DRAFT", "PUBLISHED", "CANCELLED")


def _timestamp_columns():
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def _moderated_columns(status_enum):
    return [
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("slug", sa.String(length=120), nullable=False, unique=True),
        sa.Column("status", status_enum, nullable=False, server_default="DRAFT"),
        sa.Column("created_by_id", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("country", sa.String(length=3), nullable=True),
        sa.Column("website", sa.String(length=500), nullable=True),
        sa.Column("instagram_url", sa.String(length=500), nullable=True),
        sa.Column("facebook_url", sa.String(length=500), nullable=True),
        sa.Column("twitter_url", sa.String(length=500), nullable=True),
        sa.Column("youtube_url", sa.String(length=500), nullable=True),
        sa.Column("logo_url", sa.String(length=500), nullable=True),
        *_timestamp_columns(),
    ]


def _moderated_indexes(table: str) -> None:
    op.create_index(f"ix_{table}_status", table, ["status"])
    op.create_index(f"ix_{table}_created_by_id", table, ["created_by_id"])


def upgrade() -> None:
    status_enum = sa.Enum(*MODERATION_STATUSES, name="moderation_status")
    status_enum.create(op.get_bind(), checkfirst=True)

    op.create_table("organizers", *_moderated_columns(status_enum))
    _moderated_indexes("organizers")

    op.create_table("special_series", *_moderated_columns(status_enum))
    _moderated_indexes("special_series")

    op.create_table(
        "events",
        *_moderated_columns(status_enum),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column(
            "organizer_id",
            sa.String(length=36),
            sa.ForeignKey("organizers.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column(
            "special_series_id",
            sa.String(length=36),
            sa.ForeignKey("special_series.id", ondelete="RESTRICT"),
            nullable=True,
        ),
    )
    _moderated_indexes("events")
    op.create_index("ix_events_organizer_id", "events", ["organizer_id"])
    op.create_index("ix_events_special_series_id", "events", ["special_series_id"])

    op.create_table(
        "moderation_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("resource_type", sa.String(length=40), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=False),
        sa.Column("previous_status", sa.String(length=20), nullable=False),
        sa.Column("new_status", sa.String(length=20), nullable=False),
        sa.Column("actor_id", sa.String(length=64), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index(
        "ix_moderation_logs_entity", "moderation_logs", ["resource_type", "entity_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_moderation_logs_entity", table_name="moderation_logs")
    op.drop_table("moderation_logs")
    op.drop_table("events")
    op.drop_table("special_series")
    op.drop_table("organizers")
    sa.Enum(name="moderation_status").drop(op.get_bind(), checkfirst=True)
