"""
Upcoming occurrences that still need editorial work.

Weekly nights are usually published as a bare template; staff fill in a
description or lineup per date. This scan lists the next few days' public
occurrences that still lack either, so the back office can prompt for them.
"""

from datetime import date, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from venue_calendar.models.band import EventBand, EventInstanceBand
from venue_calendar.models.event import Event
from venue_calendar.models.event_instance import EventInstance
from venue_calendar.services.status import (
    EventStatus, compute_status, event_window, instance_window,
)

PUBLIC_STATUSES = frozenset({EventStatus.LIVE, EventStatus.SCHEDULED})


async def find_instances_needing_attention(
    db: AsyncSession,
    org_id: str,
    today: date,
    now: datetime,
    lookahead_days: int,
) -> list[tuple[EventInstance, Event, list[str]]]:
    horizon = today + timedelta(days=lookahead_days)
    result = await db.execute(
        select(EventInstance, Event)
        .join(Event, EventInstance.event_id == Event.id)
        .where(
            Event.org_id == org_id,
            Event.is_weekly.is_(True),
            EventInstance.instance_date >= today,
            EventInstance.instance_date <= horizon,
        )
        .order_by(EventInstance.instance_date.asc(), EventInstance.id.asc())
    )
    rows = result.all()
    if not rows:
        return []

    instance_ids = [instance.id for instance, _ in rows]
    event_ids = {event.id for _, event in rows}

    with_own_lineup = set((await db.execute(
        select(EventInstanceBand.instance_id)
        .where(EventInstanceBand.instance_id.in_(instance_ids))
        .distinct()
    )).scalars().all())
    with_template_lineup = set((await db.execute(
        select(EventBand.event_id)
        .where(EventBand.event_id.in_(event_ids))
        .distinct()
    )).scalars().all())

    items = []
    for instance, event in rows:
        if compute_status(event_window(event), now) not in PUBLIC_STATUSES:
            continue
        if compute_status(instance_window(instance, event), now) not in PUBLIC_STATUSES:
            continue

        missing = []
        if not (instance.custom_description or event.description):
            missing.append("description")
        if instance.id not in with_own_lineup and event.id not in with_template_lineup:
            missing.append("lineup")
        if missing:
            items.append((instance, event, missing))
    return items
