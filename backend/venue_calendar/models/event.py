"""
Event model: a one-off happening or a weekly recurrence template.

Key design decisions:
- One-off events carry full `starts_at`/`ends_at` timestamps.
- Weekly templates carry `day_of_week` (0 = Sunday) plus time-of-day in
  `start_time`/`end_time`; their `starts_at`/`ends_at` stay NULL.
- `status` holds an explicit override (draft, archived) or the derived value
  stamped at the last write. Readers re-derive; see services.status.
- Every lookup filters on `org_id`, indexed together with the sort key.
"""

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, Index, Integer, SmallInteger, String, Text, Time,
)

from venue_calendar.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    org_id = Column(String(64), nullable=False)
    title = Column(String(255), nullable=False)
    short_description = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(1024), nullable=True)
    event_type = Column(String(100), nullable=True)

    # One-off schedule
    starts_at = Column(DateTime(timezone=True), nullable=True)
    ends_at = Column(DateTime(timezone=True), nullable=True)

    # Weekly schedule
    is_weekly = Column(Boolean, nullable=False, default=False)
    day_of_week = Column(SmallInteger, nullable=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)

    # Publication window
    publish_start_at = Column(DateTime(timezone=True), nullable=True)
    publish_end_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(20), nullable=True)
    is_featured = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="check_event_day_of_week"),
        CheckConstraint(
            "status IN ('draft', 'scheduled', 'live', 'past', 'archived')",
            name="check_event_status",
        ),
        # Weekly templates never hold concrete dates; one-offs always do
        CheckConstraint(
            "(is_weekly AND day_of_week IS NOT NULL AND starts_at IS NULL AND ends_at IS NULL)"
            " OR (NOT is_weekly AND starts_at IS NOT NULL AND ends_at IS NOT NULL)",
            name="check_event_schedule_mode",
        ),
        Index("ix_events_org_starts_at", "org_id", "starts_at"),
    )

    def __repr__(self) -> str:
        mode = f"weekly/{self.day_of_week}" if self.is_weekly else "one-off"
        return f"<Event(id={self.id}, org={self.org_id}, title={self.title}, {mode})>"
