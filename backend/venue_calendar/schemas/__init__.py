from venue_calendar.schemas.event import (
    EventCreate, EventUpdate, EventResponse, EventListResponse,
    InstanceUpdate, InstanceResponse, MaterializeRequest, MaterializeResponse, AttentionItem,
)
from venue_calendar.schemas.band import (
    BandCreate, BandUpdate, BandResponse, LineupRequest, LineupEntry,
    EffectiveLineupResponse, BandEventSummary,
)

__all__ = [
    "EventCreate", "EventUpdate", "EventResponse", "EventListResponse",
    "InstanceUpdate", "InstanceResponse", "MaterializeRequest", "MaterializeResponse", "AttentionItem",
    "BandCreate", "BandUpdate", "BandResponse", "LineupRequest", "LineupEntry",
    "EffectiveLineupResponse", "BandEventSummary",
]
