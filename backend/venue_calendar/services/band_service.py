"""
Band (performer) catalog for an org.
"""

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from venue_calendar.core.logging import get_logger
from venue_calendar.models.band import Band, EventBand, EventInstanceBand
from venue_calendar.models.event import Event
from venue_calendar.models.event_instance import EventInstance
from venue_calendar.schemas.band import BandCreate, BandUpdate
from venue_calendar.services.exceptions import EventValidationError, NotFound

logger = get_logger(__name__)


def _clean_text(value):
    if value is None:
        return None
    return value.strip() or None


async def list_bands(db: AsyncSession, org_id: str) -> list[Band]:
    result = await db.execute(
        select(Band).where(Band.org_id == org_id).order_by(Band.name.asc(), Band.id.asc())
    )
    return list(result.scalars().all())


async def create_band(db: AsyncSession, org_id: str, band_data: BandCreate) -> Band:
    name = band_data.name.strip()
    if not name:
        raise EventValidationError("Band name is required", field="name")

    band = Band(
        org_id=org_id,
        name=name,
        description=_clean_text(band_data.description),
        image_url=_clean_text(band_data.image_url),
    )
    db.add(band)
    await db.flush()
    await db.refresh(band)

    logger.info("band_created", band_id=band.id, org_id=org_id, name=band.name)
    return band


async def get_band(db: AsyncSession, org_id: str, band_id: int) -> Band:
    result = await db.execute(
        select(Band).where(Band.id == band_id, Band.org_id == org_id)
    )
    band = result.scalar_one_or_none()
    if not band:
        raise NotFound("Band", band_id)
    return band


async def update_band(db: AsyncSession, org_id: str, band_id: int, band_data: BandUpdate) -> Band:
    band = await get_band(db, org_id, band_id)
    changes = band_data.model_dump(exclude_unset=True)

    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            raise EventValidationError("Band name cannot be empty", field="name")
        band.name = name
    if "description" in changes:
        band.description = _clean_text(changes["description"])
    if "image_url" in changes:
        band.image_url = _clean_text(changes["image_url"])

    await db.flush()
    await db.refresh(band)

    logger.info("band_updated", band_id=band.id, org_id=org_id, fields=sorted(changes))
    return band


async def _compact_orders(db: AsyncSession, model, owner_column, owner_ids: set[int]) -> None:
    """Renumber `order` to 0..N-1 for each owner after rows were removed."""
    for owner_id in owner_ids:
        result = await db.execute(
            select(model).where(owner_column == owner_id).order_by(model.order.asc(), model.id.asc())
        )
        for position, row in enumerate(result.scalars().all()):
            if row.order != position:
                row.order = position


async def delete_band(db: AsyncSession, org_id: str, band_id: int) -> None:
    """Delete a band and drop it from every lineup it appears on."""
    band = await get_band(db, org_id, band_id)

    event_ids = set((await db.execute(
        select(EventBand.event_id).where(EventBand.band_id == band.id)
    )).scalars().all())
    instance_ids = set((await db.execute(
        select(EventInstanceBand.instance_id).where(EventInstanceBand.band_id == band.id)
    )).scalars().all())

    await db.execute(delete(EventBand).where(EventBand.band_id == band.id))
    await db.execute(delete(EventInstanceBand).where(EventInstanceBand.band_id == band.id))
    await db.delete(band)
    await db.flush()

    await _compact_orders(db, EventBand, EventBand.event_id, event_ids)
    await _compact_orders(db, EventInstanceBand, EventInstanceBand.instance_id, instance_ids)
    await db.flush()

    logger.info(
        "band_deleted",
        band_id=band_id,
        org_id=org_id,
        event_lineups=len(event_ids),
        instance_lineups=len(instance_ids),
    )


async def list_band_events(db: AsyncSession, org_id: str, band_id: int) -> list[Event]:
    """Events the band plays, via the template lineup or any occurrence lineup."""
    band = await get_band(db, org_id, band_id)

    template_event_ids = select(EventBand.event_id).where(EventBand.band_id == band.id)
    occurrence_event_ids = (
        select(EventInstance.event_id)
        .join(EventInstanceBand, EventInstanceBand.instance_id == EventInstance.id)
        .where(EventInstanceBand.band_id == band.id)
    )

    result = await db.execute(
        select(Event)
        .where(
            Event.org_id == org_id,
            or_(Event.id.in_(template_event_ids), Event.id.in_(occurrence_event_ids)),
        )
        .order_by(Event.starts_at.desc().nulls_last(), Event.id.asc())
    )
    return list(result.scalars().all())
