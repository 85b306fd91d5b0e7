from venue_calendar.models.event import Event
from venue_calendar.models.event_instance import EventInstance
from venue_calendar.models.band import Band, EventBand, EventInstanceBand

__all__ = ["Event", "EventInstance", "Band", "EventBand", "EventInstanceBand"]
