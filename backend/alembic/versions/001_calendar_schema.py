"""Calendar schema: events, occurrences, bands and lineups.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

STATUS_CHECK = "status IN ('draft', 'scheduled', 'live', 'past', 'archived')"


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Events: one-off happenings and weekly templates
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("org_id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("short_description", sa.String(500), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_url", sa.String(1024), nullable=True),
        sa.Column("event_type", sa.String(100), nullable=True),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_weekly", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("day_of_week", sa.SmallInteger(), nullable=True),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("publish_start_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("publish_end_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(20), nullable=True),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="check_event_day_of_week"),
        sa.CheckConstraint(STATUS_CHECK, name="check_event_status"),
        sa.CheckConstraint(
            "(is_weekly AND day_of_week IS NOT NULL AND starts_at IS NULL AND ends_at IS NULL)"
            " OR (NOT is_weekly AND starts_at IS NOT NULL AND ends_at IS NOT NULL)",
            name="check_event_schedule_mode",
        ),
    )
    op.create_index("ix_events_id", "events", ["id"])
    # Every query is org-scoped and listings sort by start
    op.create_index("ix_events_org_starts_at", "events", ["org_id", "starts_at"])

    # Occurrences. The unique key is what makes materialization idempotent
    # under concurrent callers: INSERT ... ON CONFLICT DO NOTHING relies on it.
    op.create_table(
        "event_instances",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("instance_date", sa.Date(), nullable=False),
        sa.Column("custom_description", sa.Text(), nullable=True),
        sa.Column("custom_image_url", sa.String(1024), nullable=True),
        sa.Column("status", sa.String(20), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("event_id", "instance_date", name="uq_event_instance_date"),
        sa.CheckConstraint(STATUS_CHECK, name="check_instance_status"),
    )
    op.create_index("ix_event_instances_id", "event_instances", ["id"])

    op.create_table(
        "bands",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("org_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_url", sa.String(1024), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_bands_id", "bands", ["id"])
    op.create_index("ix_bands_org_name", "bands", ["org_id", "name"])

    op.create_table(
        "event_bands",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("band_id", sa.Integer(), sa.ForeignKey("bands.id", ondelete="CASCADE"), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.UniqueConstraint("event_id", "band_id", name="uq_event_band"),
        sa.CheckConstraint('"order" >= 0', name="check_event_band_order"),
    )
    op.create_index("ix_event_bands_event_id", "event_bands", ["event_id"])
    op.create_index("ix_event_bands_band_id", "event_bands", ["band_id"])

    op.create_table(
        "event_instance_bands",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "instance_id", sa.Integer(),
            sa.ForeignKey("event_instances.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("band_id", sa.Integer(), sa.ForeignKey("bands.id", ondelete="CASCADE"), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.UniqueConstraint("instance_id", "band_id", name="uq_instance_band"),
        sa.CheckConstraint('"order" >= 0', name="check_instance_band_order"),
    )
    op.create_index("ix_event_instance_bands_instance_id", "event_instance_bands", ["instance_id"])
    op.create_index("ix_event_instance_bands_band_id", "event_instance_bands", ["band_id"])


def downgrade() -> None:
    op.drop_table("event_instance_bands")
    op.drop_table("event_bands")
    op.drop_table("bands")
    op.drop_table("event_instances")
    op.drop_table("events")
