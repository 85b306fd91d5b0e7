"""
Lineup assignment for weekly templates and single occurrences.

Writes are full replacements: validate every band id first, then delete the
owner's rows and insert one row per band with `order` = list position. The
request transaction makes the delete and insert visible together, so readers
never see a half-replaced lineup, and `order` stays a dense 0..N-1 sequence.

Effective lineup of an occurrence: instance-level rows, when there are any,
replace the template lineup outright; otherwise the template lineup applies.
"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from venue_calendar.core.logging import get_logger
from venue_calendar.core.metrics import record_lineup_replacement
from venue_calendar.models.band import Band, EventBand, EventInstanceBand
from venue_calendar.services.event_service import get_event, get_instance
from venue_calendar.services.exceptions import CrossTenantReference, EventValidationError

logger = get_logger(__name__)


async def _validate_band_ids(db: AsyncSession, org_id: str, band_ids: list[int]) -> None:
    if len(set(band_ids)) != len(band_ids):
        raise EventValidationError("band_ids must not contain duplicates", field="band_ids")
    if not band_ids:
        return

    result = await db.execute(
        select(Band.id).where(Band.id.in_(band_ids), Band.org_id == org_id)
    )
    owned = set(result.scalars().all())
    # Unknown ids and other orgs' ids look the same to the caller
    foreign = [band_id for band_id in band_ids if band_id not in owned]
    if foreign:
        raise CrossTenantReference("band", foreign)


async def _read_lineup(db: AsyncSession, model, owner_column, owner_id: int) -> list:
    result = await db.execute(
        select(model)
        .where(owner_column == owner_id)
        .order_by(model.order.asc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def _replace_lineup(db: AsyncSession, model, owner_column, owner_id: int, band_ids: list[int]) -> list:
    await db.execute(delete(model).where(owner_column == owner_id))
    db.add_all([
        model(**{owner_column.key: owner_id}, band_id=band_id, order=position)
        for position, band_id in enumerate(band_ids)
    ])
    await db.flush()
    return await _read_lineup(db, model, owner_column, owner_id)


async def get_event_lineup(db: AsyncSession, org_id: str, event_id: int) -> list[EventBand]:
    event = await get_event(db, org_id, event_id)
    return await _read_lineup(db, EventBand, EventBand.event_id, event.id)


async def set_event_lineup(
    db: AsyncSession,
    org_id: str,
    event_id: int,
    band_ids: list[int],
) -> list[EventBand]:
    """Replace the template lineup played on every occurrence."""
    event = await get_event(db, org_id, event_id)
    await _validate_band_ids(db, org_id, band_ids)

    lineup = await _replace_lineup(db, EventBand, EventBand.event_id, event.id, band_ids)

    record_lineup_replacement("event")
    logger.info("event_lineup_replaced", event_id=event.id, org_id=org_id, band_ids=band_ids)
    return lineup


async def get_instance_lineup(
    db: AsyncSession,
    org_id: str,
    event_id: int,
    instance_id: int,
) -> list[EventInstanceBand]:
    instance = await get_instance(db, org_id, event_id, instance_id)
    return await _read_lineup(db, EventInstanceBand, EventInstanceBand.instance_id, instance.id)


async def set_instance_lineup(
    db: AsyncSession,
    org_id: str,
    event_id: int,
    instance_id: int,
    band_ids: list[int],
) -> list[EventInstanceBand]:
    """
    Replace the lineup of one occurrence. An empty list clears it.

    Band ids are validated before anything is deleted, so a rejected request
    leaves the previous lineup untouched.
    """
    instance = await get_instance(db, org_id, event_id, instance_id)
    await _validate_band_ids(db, org_id, band_ids)

    lineup = await _replace_lineup(
        db, EventInstanceBand, EventInstanceBand.instance_id, instance.id, band_ids,
    )

    record_lineup_replacement("instance")
    logger.info(
        "instance_lineup_replaced",
        instance_id=instance.id,
        event_id=event_id,
        org_id=org_id,
        band_ids=band_ids,
    )
    return lineup


async def get_effective_lineup(
    db: AsyncSession,
    org_id: str,
    event_id: int,
    instance_id: int,
) -> tuple[str, list]:
    """Return ("instance" | "event", rows) for what plays on this occurrence."""
    instance = await get_instance(db, org_id, event_id, instance_id)
    own = await _read_lineup(db, EventInstanceBand, EventInstanceBand.instance_id, instance.id)
    if own:
        return "instance", own
    return "event", await _read_lineup(db, EventBand, EventBand.event_id, instance.event_id)
