"""
Event endpoints: template/one-off CRUD and template lineups.
Event listings are cached per org; status is re-derived on every read.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from venue_calendar.api.deps import get_now
from venue_calendar.core.logging import get_logger
from venue_calendar.core.security import require_org_access
from venue_calendar.db.session import get_db
from venue_calendar.schemas.band import LineupEntry, LineupRequest
from venue_calendar.schemas.event import EventCreate, EventListResponse, EventResponse, EventUpdate
from venue_calendar.services import event_service, lineup_service
from venue_calendar.services.cache_service import (
    get_cached_events, invalidate_event_cache, set_cached_events,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/orgs/{org_id}/events", tags=["Events"])


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Create a one-off event or a weekly template."""
    event = await event_service.create_event(db, org_id, event_data, now)
    await invalidate_event_cache(org_id)
    return EventResponse.from_model(event, now)


@router.get("/", response_model=EventListResponse)
async def list_events_endpoint(
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """
    List the org's events.
    Stored fields may come from Redis; status is always computed against `now`.
    """
    cached = await get_cached_events(org_id)
    if cached:
        logger.info("events_list_cache_hit", org_id=org_id)
        listing = EventListResponse(**cached)
        return listing.model_copy(update={
            "events": [event.with_status(now) for event in listing.events],
            "cached": True,
        })

    events, total = await event_service.list_events(db, org_id)
    listing = EventListResponse(
        events=[EventResponse.from_model(event, now) for event in events],
        total=total,
    )
    await set_cached_events(org_id, listing.model_dump(mode="json"))
    return listing


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: int,
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    event = await event_service.get_event(db, org_id, event_id)
    return EventResponse.from_model(event, now)


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: int,
    event_data: EventUpdate,
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Partially update an event. Switching schedule mode is validated as a whole."""
    event = await event_service.update_event(db, org_id, event_id, event_data, now)
    await invalidate_event_cache(org_id)
    return EventResponse.from_model(event, now)


@router.post("/{event_id}/archive", response_model=EventResponse)
async def archive_event_endpoint(
    event_id: int,
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    event = await event_service.archive_event(db, org_id, event_id)
    await invalidate_event_cache(org_id)
    return EventResponse.from_model(event, now)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event_endpoint(
    event_id: int,
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
):
    """Delete an event together with its occurrences and lineups."""
    await event_service.delete_event(db, org_id, event_id)
    await invalidate_event_cache(org_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{event_id}/bands", response_model=list[LineupEntry])
async def get_event_lineup_endpoint(
    event_id: int,
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
):
    return await lineup_service.get_event_lineup(db, org_id, event_id)


@router.put("/{event_id}/bands", response_model=list[LineupEntry])
async def set_event_lineup_endpoint(
    event_id: int,
    lineup: LineupRequest,
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
):
    """Replace the template lineup. Order of `band_ids` is the display order."""
    return await lineup_service.set_event_lineup(db, org_id, event_id, lineup.band_ids)
