"""
EventInstance: one materialized calendar occurrence of a weekly Event.

Rows are only created by the recurrence materializer. The unique constraint
on (event_id, instance_date) is the idempotency key; concurrent materializers
race on it and the loser's insert becomes a no-op.
"""

from sqlalchemy import CheckConstraint, Column, Date, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from venue_calendar.db.base import Base, TimestampMixin


class EventInstance(Base, TimestampMixin):
    __tablename__ = "event_instances"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    instance_date = Column(Date, nullable=False)
    custom_description = Column(Text, nullable=True)
    custom_image_url = Column(String(1024), nullable=True)
    status = Column(String(20), nullable=True)

    event = relationship("Event", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("event_id", "instance_date", name="uq_event_instance_date"),
        CheckConstraint(
            "status IN ('draft', 'scheduled', 'live', 'past', 'archived')",
            name="check_instance_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<EventInstance(id={self.id}, event={self.event_id}, date={self.instance_date})>"
