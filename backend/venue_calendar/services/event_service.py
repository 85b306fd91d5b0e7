"""
Org-scoped event and occurrence store access.

Every lookup filters on org_id; an event owned by another org is reported
exactly like a missing one. Schedule-mode rules are enforced here on the
merged (stored + submitted) state so updates that switch modes are checked
as a whole.
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from venue_calendar.models.event import Event
from venue_calendar.models.event_instance import EventInstance
from venue_calendar.schemas.event import EventCreate, EventUpdate, InstanceUpdate
from venue_calendar.services.exceptions import EventValidationError, NotFound
from venue_calendar.services.status import (
    EventStatus, OVERRIDE_STATUSES, PublicationWindow, as_utc, compute_status, override_of,
)
from venue_calendar.core.logging import get_logger

logger = get_logger(__name__)

NON_NULLABLE_FIELDS = ("title", "is_weekly", "is_featured")


def _resolve_schedule(values: dict, submitted: frozenset = frozenset()) -> dict:
    """
    Validate and normalize schedule fields in place for the active mode.

    `submitted` names the fields present in the request. On a weekly template
    a submitted starts_at/ends_at sets the time of day unless the matching
    start_time/end_time was submitted too.
    """
    for key in ("starts_at", "ends_at", "publish_start_at", "publish_end_at"):
        values[key] = as_utc(values.get(key))

    if values.get("is_weekly"):
        if values.get("day_of_week") is None:
            raise EventValidationError("day_of_week is required for weekly events", field="day_of_week")
        # Only the time of day is meaningful on a weekly template
        for stamp, clock in (("starts_at", "start_time"), ("ends_at", "end_time")):
            if values.get(stamp) is None:
                continue
            if clock not in submitted or values.get(clock) is None:
                values[clock] = values[stamp].time()
        values["starts_at"] = None
        values["ends_at"] = None
    else:
        if values.get("starts_at") is None:
            raise EventValidationError("starts_at is required for one-time events", field="starts_at")
        if values.get("ends_at") is None:
            raise EventValidationError("ends_at is required for one-time events", field="ends_at")
        if values["ends_at"] < values["starts_at"]:
            raise EventValidationError("ends_at must not be before starts_at", field="ends_at")
        values["day_of_week"] = None
        values["start_time"] = None
        values["end_time"] = None

    start, end = values.get("publish_start_at"), values.get("publish_end_at")
    if start is not None and end is not None and end < start:
        raise EventValidationError("publish_end_at must not be before publish_start_at", field="publish_end_at")
    return values


def _stored_status(
    requested: Optional[EventStatus],
    current_override: Optional[EventStatus],
    values: dict,
    now: datetime,
    status_requested: bool,
) -> str:
    """
    Pick the value persisted in `status`.

    Overrides (draft, archived) are stored as-is. Anything else stores the
    derived value as a cache. Asking for `live` publishes immediately by
    pulling a future or missing publish_start_at back to `now`.
    """
    if status_requested:
        if requested in OVERRIDE_STATUSES:
            return requested.value
        if requested == EventStatus.LIVE:
            start = values.get("publish_start_at")
            if start is None or start > now:
                values["publish_start_at"] = now
    elif current_override is not None:
        return current_override.value

    window = PublicationWindow(None, values.get("publish_start_at"), values.get("publish_end_at"))
    return compute_status(window, now).value


async def create_event(db: AsyncSession, org_id: str, event_data: EventCreate, now: datetime) -> Event:
    values = event_data.model_dump()
    requested = values.pop("status")
    _resolve_schedule(values, frozenset(event_data.model_fields_set))
    values["status"] = _stored_status(requested, None, values, now, status_requested=requested is not None)

    event = Event(org_id=org_id, **values)
    db.add(event)
    await db.flush()
    await db.refresh(event)

    logger.info(
        "event_created",
        event_id=event.id,
        org_id=org_id,
        title=event.title,
        is_weekly=event.is_weekly,
        status=event.status,
    )
    return event


async def get_event(db: AsyncSession, org_id: str, event_id: int) -> Event:
    result = await db.execute(
        select(Event).where(Event.id == event_id, Event.org_id == org_id)
    )
    event = result.scalar_one_or_none()
    if not event:
        raise NotFound("Event", event_id)
    return event


async def list_events(db: AsyncSession, org_id: str) -> tuple[list[Event], int]:
    """Events for an org, newest one-offs first, weekly templates last."""
    result = await db.execute(
        select(Event)
        .where(Event.org_id == org_id)
        .order_by(Event.starts_at.desc().nulls_last(), Event.id.asc())
    )
    events = list(result.scalars().all())
    return events, len(events)


async def update_event(
    db: AsyncSession,
    org_id: str,
    event_id: int,
    event_data: EventUpdate,
    now: datetime,
) -> Event:
    event = await get_event(db, org_id, event_id)
    changes = event_data.model_dump(exclude_unset=True)

    for key in NON_NULLABLE_FIELDS:
        if key in changes and changes[key] is None:
            raise EventValidationError(f"{key} cannot be null", field=key)

    status_requested = "status" in changes
    requested = changes.pop("status", None)

    values = {
        "is_weekly": event.is_weekly,
        "day_of_week": event.day_of_week,
        "starts_at": event.starts_at,
        "ends_at": event.ends_at,
        "start_time": event.start_time,
        "end_time": event.end_time,
        "publish_start_at": event.publish_start_at,
        "publish_end_at": event.publish_end_at,
    }
    values.update(changes)
    _resolve_schedule(values, frozenset(changes))
    values["status"] = _stored_status(
        requested, override_of(event.status), values, now, status_requested=status_requested,
    )

    for key, value in values.items():
        setattr(event, key, value)

    await db.flush()
    await db.refresh(event)

    logger.info(
        "event_updated",
        event_id=event.id,
        org_id=org_id,
        fields=sorted(changes) + (["status"] if status_requested else []),
        status=event.status,
    )
    return event


async def archive_event(db: AsyncSession, org_id: str, event_id: int) -> Event:
    event = await get_event(db, org_id, event_id)
    event.status = EventStatus.ARCHIVED.value
    await db.flush()
    await db.refresh(event)

    logger.info("event_archived", event_id=event.id, org_id=org_id)
    return event


async def delete_event(db: AsyncSession, org_id: str, event_id: int) -> None:
    """Delete an event; occurrences and lineups go with it (ON DELETE CASCADE)."""
    event = await get_event(db, org_id, event_id)
    await db.delete(event)
    await db.flush()

    logger.info("event_deleted", event_id=event_id, org_id=org_id)


async def list_instances(
    db: AsyncSession,
    org_id: str,
    event_id: int,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
) -> tuple[Event, list[EventInstance]]:
    event = await get_event(db, org_id, event_id)

    query = select(EventInstance).where(EventInstance.event_id == event.id)
    if from_date is not None:
        query = query.where(EventInstance.instance_date >= from_date)
    if to_date is not None:
        query = query.where(EventInstance.instance_date <= to_date)

    result = await db.execute(query.order_by(EventInstance.instance_date.asc()))
    return event, list(result.scalars().all())


async def get_instance(db: AsyncSession, org_id: str, event_id: int, instance_id: int) -> EventInstance:
    """Fetch an occurrence, requiring it to belong to the event and the event to the org."""
    result = await db.execute(
        select(EventInstance)
        .join(Event, EventInstance.event_id == Event.id)
        .where(
            EventInstance.id == instance_id,
            EventInstance.event_id == event_id,
            Event.org_id == org_id,
        )
    )
    instance = result.scalar_one_or_none()
    if not instance:
        raise NotFound("Instance", instance_id)
    return instance


async def update_instance(
    db: AsyncSession,
    org_id: str,
    event_id: int,
    instance_id: int,
    instance_data: InstanceUpdate,
    now: datetime,
) -> EventInstance:
    instance = await get_instance(db, org_id, event_id, instance_id)
    changes = instance_data.model_dump(exclude_unset=True)

    if "custom_description" in changes:
        instance.custom_description = changes["custom_description"]
    if "custom_image_url" in changes:
        instance.custom_image_url = changes["custom_image_url"]
    if "status" in changes:
        requested = changes["status"]
        if requested in OVERRIDE_STATUSES:
            instance.status = requested.value
        else:
            event = instance.event
            window = PublicationWindow(None, as_utc(event.publish_start_at), as_utc(event.publish_end_at))
            instance.status = compute_status(window, now).value

    await db.flush()
    await db.refresh(instance)

    logger.info(
        "instance_updated",
        instance_id=instance.id,
        event_id=event_id,
        fields=sorted(changes),
    )
    return instance


async def delete_instance(db: AsyncSession, org_id: str, event_id: int, instance_id: int) -> None:
    instance = await get_instance(db, org_id, event_id, instance_id)
    await db.delete(instance)
    await db.flush()

    logger.info("instance_deleted", instance_id=instance_id, event_id=event_id)
