"""
Publication status derivation.

Status is a function of the stored override, the publication window and the
current instant. `now` advances without any write, so persisted status values
are only a cache; every read path calls `compute_status` again.

Rules, first match wins:
    archived override          -> archived
    draft override             -> draft
    now < publish_start_at     -> scheduled
    now > publish_end_at       -> past
    otherwise                  -> live
"""

from datetime import datetime, timezone
from enum import Enum
from typing import NamedTuple, Optional


class EventStatus(str, Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    LIVE = "live"
    PAST = "past"
    ARCHIVED = "archived"


OVERRIDE_STATUSES = frozenset({EventStatus.DRAFT, EventStatus.ARCHIVED})


class PublicationWindow(NamedTuple):
    explicit_status: Optional[str] = None
    publish_start_at: Optional[datetime] = None
    publish_end_at: Optional[datetime] = None


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps (e.g. read back from SQLite) as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def override_of(stored_status: Optional[str]) -> Optional[EventStatus]:
    """Return the stored status if it is an explicit override, else None."""
    if stored_status in (EventStatus.DRAFT.value, EventStatus.ARCHIVED.value):
        return EventStatus(stored_status)
    return None


def compute_status(window: PublicationWindow, now: datetime) -> EventStatus:
    override = override_of(window.explicit_status)
    if override is not None:
        return override

    if window.publish_start_at is not None and now < window.publish_start_at:
        return EventStatus.SCHEDULED

    if window.publish_end_at is not None and now > window.publish_end_at:
        return EventStatus.PAST

    return EventStatus.LIVE


def event_window(event) -> PublicationWindow:
    return PublicationWindow(
        explicit_status=event.status,
        publish_start_at=as_utc(event.publish_start_at),
        publish_end_at=as_utc(event.publish_end_at),
    )


def instance_window(instance, event) -> PublicationWindow:
    # Instances have no window of their own; they inherit the template's.
    return PublicationWindow(
        explicit_status=instance.status,
        publish_start_at=as_utc(event.publish_start_at),
        publish_end_at=as_utc(event.publish_end_at),
    )
