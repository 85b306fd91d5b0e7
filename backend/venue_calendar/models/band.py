"""
Performers and their lineup assignments.

Lineup rows carry a dense, zero-based `order`. Writers always replace the
whole set for an owner, so no code path patches a single position.
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from venue_calendar.db.base import Base, TimestampMixin


class Band(Base, TimestampMixin):
    __tablename__ = "bands"

    id = Column(Integer, primary_key=True, index=True)
    org_id = Column(String(64), nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String(1024), nullable=True)

    __table_args__ = (
        Index("ix_bands_org_name", "org_id", "name"),
    )

    def __repr__(self) -> str:
        return f"<Band(id={self.id}, org={self.org_id}, name={self.name})>"


class EventBand(Base):
    """Template lineup: the band plays every occurrence unless overridden."""

    __tablename__ = "event_bands"

    id = Column(Integer, primary_key=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    band_id = Column(Integer, ForeignKey("bands.id", ondelete="CASCADE"), nullable=False, index=True)
    order = Column(Integer, nullable=False, default=0)

    band = relationship("Band", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("event_id", "band_id", name="uq_event_band"),
        CheckConstraint('"order" >= 0', name="check_event_band_order"),
    )


class EventInstanceBand(Base):
    """Lineup for one specific occurrence."""

    __tablename__ = "event_instance_bands"

    id = Column(Integer, primary_key=True)
    instance_id = Column(
        Integer, ForeignKey("event_instances.id", ondelete="CASCADE"), nullable=False, index=True
    )
    band_id = Column(Integer, ForeignKey("bands.id", ondelete="CASCADE"), nullable=False, index=True)
    order = Column(Integer, nullable=False, default=0)

    band = relationship("Band", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("instance_id", "band_id", name="uq_instance_band"),
        CheckConstraint('"order" >= 0', name="check_instance_band_order"),
    )
