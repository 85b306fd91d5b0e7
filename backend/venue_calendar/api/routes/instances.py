"""
Occurrence endpoints: materialization, per-date edits and lineups.
"""

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from venue_calendar.api.deps import get_now
from venue_calendar.core.config import get_settings
from venue_calendar.core.security import require_org_access
from venue_calendar.db.session import get_db
from venue_calendar.schemas.band import EffectiveLineupResponse, LineupEntry, LineupRequest
from venue_calendar.schemas.event import (
    AttentionItem, InstanceResponse, InstanceUpdate, MaterializeRequest, MaterializeResponse,
)
from venue_calendar.services import attention_service, event_service, lineup_service
from venue_calendar.services.recurrence_service import materialize_instances

settings = get_settings()
router = APIRouter(prefix="/orgs/{org_id}", tags=["Instances"])


@router.get("/events/{event_id}/instances/", response_model=list[InstanceResponse])
async def list_instances_endpoint(
    event_id: int,
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Occurrences of an event ordered by date, optionally bounded."""
    event, instances = await event_service.list_instances(db, org_id, event_id, from_date, to_date)
    return [InstanceResponse.from_model(instance, event, now) for instance in instances]


@router.post("/events/{event_id}/instances/materialize", response_model=MaterializeResponse)
async def materialize_instances_endpoint(
    event_id: int,
    body: MaterializeRequest,
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """
    Generate the weekly occurrences between start_date and end_date.

    Dates that already have an occurrence are skipped, so overlapping or
    repeated requests are safe. Only newly created occurrences are returned.
    """
    event = await event_service.get_event(db, org_id, event_id)
    created = await materialize_instances(db, event, body.start_date, body.end_date, now)
    return MaterializeResponse(
        created=len(created),
        instances=[InstanceResponse.from_model(instance, event, now) for instance in created],
    )


@router.get("/events/{event_id}/instances/{instance_id}", response_model=InstanceResponse)
async def get_instance_endpoint(
    event_id: int,
    instance_id: int,
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    instance = await event_service.get_instance(db, org_id, event_id, instance_id)
    return InstanceResponse.from_model(instance, instance.event, now)


@router.patch("/events/{event_id}/instances/{instance_id}", response_model=InstanceResponse)
async def update_instance_endpoint(
    event_id: int,
    instance_id: int,
    instance_data: InstanceUpdate,
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Set per-date overrides: description, image, status."""
    instance = await event_service.update_instance(db, org_id, event_id, instance_id, instance_data, now)
    return InstanceResponse.from_model(instance, instance.event, now)


@router.delete("/events/{event_id}/instances/{instance_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_instance_endpoint(
    event_id: int,
    instance_id: int,
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
):
    await event_service.delete_instance(db, org_id, event_id, instance_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/events/{event_id}/instances/{instance_id}/bands", response_model=list[LineupEntry])
async def get_instance_lineup_endpoint(
    event_id: int,
    instance_id: int,
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
):
    return await lineup_service.get_instance_lineup(db, org_id, event_id, instance_id)


@router.put("/events/{event_id}/instances/{instance_id}/bands", response_model=list[LineupEntry])
async def set_instance_lineup_endpoint(
    event_id: int,
    instance_id: int,
    lineup: LineupRequest,
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
):
    """Replace this date's lineup. An empty list clears it."""
    return await lineup_service.set_instance_lineup(db, org_id, event_id, instance_id, lineup.band_ids)


@router.get("/events/{event_id}/instances/{instance_id}/lineup", response_model=EffectiveLineupResponse)
async def get_effective_lineup_endpoint(
    event_id: int,
    instance_id: int,
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
):
    """What plays on this date: its own lineup if set, otherwise the template's."""
    source, rows = await lineup_service.get_effective_lineup(db, org_id, event_id, instance_id)
    return EffectiveLineupResponse(
        source=source,
        bands=[LineupEntry.model_validate(row) for row in rows],
    )


@router.get("/instances/attention", response_model=list[AttentionItem])
async def list_attention_endpoint(
    lookahead_days: Optional[int] = Query(None, ge=0, le=60),
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Upcoming public occurrences still missing a description or a lineup."""
    days = settings.ATTENTION_LOOKAHEAD_DAYS if lookahead_days is None else lookahead_days
    items = await attention_service.find_instances_needing_attention(
        db, org_id, today=now.date(), now=now, lookahead_days=days,
    )
    return [
        AttentionItem(
            event_id=event.id,
            event_title=event.title,
            instance=InstanceResponse.from_model(instance, event, now),
            missing=missing,
        )
        for instance, event, missing in items
    ]
