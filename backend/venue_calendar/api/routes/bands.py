"""
Band endpoints: the org's performer catalog.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from venue_calendar.api.deps import get_now
from venue_calendar.core.security import require_org_access
from venue_calendar.db.session import get_db
from venue_calendar.schemas.band import BandCreate, BandEventSummary, BandResponse, BandUpdate
from venue_calendar.services import band_service
from venue_calendar.services.status import compute_status, event_window

router = APIRouter(prefix="/orgs/{org_id}/bands", tags=["Bands"])


@router.get("/", response_model=list[BandResponse])
async def list_bands_endpoint(
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
):
    return await band_service.list_bands(db, org_id)


@router.post("/", response_model=BandResponse, status_code=status.HTTP_201_CREATED)
async def create_band_endpoint(
    band_data: BandCreate,
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
):
    return await band_service.create_band(db, org_id, band_data)


@router.get("/{band_id}", response_model=BandResponse)
async def get_band_endpoint(
    band_id: int,
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
):
    return await band_service.get_band(db, org_id, band_id)


@router.patch("/{band_id}", response_model=BandResponse)
async def update_band_endpoint(
    band_id: int,
    band_data: BandUpdate,
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
):
    return await band_service.update_band(db, org_id, band_id, band_data)


@router.delete("/{band_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_band_endpoint(
    band_id: int,
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
):
    """Delete a band; it disappears from every lineup, which are re-packed."""
    await band_service.delete_band(db, org_id, band_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{band_id}/events", response_model=list[BandEventSummary])
async def list_band_events_endpoint(
    band_id: int,
    org_id: str = Depends(require_org_access),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    events = await band_service.list_band_events(db, org_id, band_id)
    return [
        BandEventSummary(
            id=event.id,
            title=event.title,
            is_weekly=event.is_weekly,
            day_of_week=event.day_of_week,
            starts_at=event.starts_at,
            status=compute_status(event_window(event), now),
        )
        for event in events
    ]
