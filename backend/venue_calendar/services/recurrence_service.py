"""
Recurrence materialization: expand a weekly template into concrete
EventInstance rows over a date window.

CONCURRENCY STRATEGY: Insert-or-skip on a unique key
=====================================================

Problem:
  Two staff members generate the same month for the same weekly event at
  once. "SELECT then INSERT" lets both see the date as free and both insert.

Solution:
  `event_instances` has UNIQUE (event_id, instance_date). Each candidate
  date is written with

      INSERT ... ON CONFLICT (event_id, instance_date) DO NOTHING RETURNING *

  A returned row means this call created the occurrence; no row means it
  already existed (from an earlier run or a concurrent one). Neither case is
  an error, so the operation is safe to repeat over any overlapping windows.

Failure mode:
  All inserts of one call run in the request transaction: a storage error
  rolls back the whole batch and propagates. Re-running the same window
  afterwards is always safe, so retry is left to the caller.
"""

import re
from datetime import date, datetime, timedelta
from typing import Iterator, Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from venue_calendar.core.config import get_settings
from venue_calendar.core.logging import get_logger
from venue_calendar.core.metrics import materialize_latency, record_materialization
from venue_calendar.models.event import Event
from venue_calendar.models.event_instance import EventInstance
from venue_calendar.services.exceptions import (
    InvalidDateFormat, InvalidRange, NotRecurring, UnsupportedBackend,
)
from venue_calendar.services.status import PublicationWindow, as_utc, compute_status

logger = get_logger(__name__)
settings = get_settings()

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
ONE_DAY = timedelta(days=1)

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def parse_calendar_date(field: str, value) -> date:
    """Parse a strict YYYY-MM-DD calendar date."""
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise InvalidDateFormat(field, value)
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise InvalidDateFormat(field, value)


def weekday_index(day: date) -> int:
    """Day of week with 0 = Sunday ... 6 = Saturday."""
    return day.isoweekday() % 7


def iter_weekday_dates(start: date, end: date, day_of_week: int) -> Iterator[date]:
    """Yield every date in [start, end] falling on day_of_week."""
    current = start
    while current <= end:
        if weekday_index(current) == day_of_week:
            yield current
        current += ONE_DAY


async def _insert_if_absent(
    db: AsyncSession,
    event_id: int,
    instance_date: date,
    status: str,
) -> Optional[EventInstance]:
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_INSERTS.get(dialect)
    if insert is None:
        raise UnsupportedBackend(dialect)

    stmt = (
        insert(EventInstance)
        .values(event_id=event_id, instance_date=instance_date, status=status)
        .on_conflict_do_nothing(index_elements=["event_id", "instance_date"])
        .returning(EventInstance)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def materialize_instances(
    db: AsyncSession,
    event: Event,
    start_date: str,
    end_date: str,
    now: datetime,
) -> list[EventInstance]:
    """
    Create the missing occurrences of `event` between start_date and
    end_date (inclusive). Returns only the rows created by this call.
    """
    if not event.is_weekly or event.day_of_week is None:
        raise NotRecurring(event.id)

    start = parse_calendar_date("start_date", start_date)
    end = parse_calendar_date("end_date", end_date)
    if end < start:
        raise InvalidRange(f"end_date {end_date} is before start_date {start_date}")

    span_days = (end - start).days + 1
    if span_days > settings.MATERIALIZE_MAX_DAYS:
        raise InvalidRange(
            f"Date range spans {span_days} days; at most {settings.MATERIALIZE_MAX_DAYS} are allowed"
        )

    # New occurrences have no override; they inherit the template's window
    window = PublicationWindow(None, as_utc(event.publish_start_at), as_utc(event.publish_end_at))
    initial_status = compute_status(window, now).value

    created: list[EventInstance] = []
    skipped = 0
    with materialize_latency.time():
        for day in iter_weekday_dates(start, end, event.day_of_week):
            instance = await _insert_if_absent(db, event.id, day, initial_status)
            if instance is None:
                skipped += 1
            else:
                created.append(instance)

    record_materialization(len(created), skipped)
    logger.info(
        "instances_materialized",
        event_id=event.id,
        org_id=event.org_id,
        start_date=start.isoformat(),
        end_date=end.isoformat(),
        created=len(created),
        skipped=skipped,
    )
    return created
