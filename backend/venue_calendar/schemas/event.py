"""
Pydantic schemas for event and occurrence request/response validation.

Schedule-mode rules (weekly vs one-off) depend on the stored row during
updates, so they are checked in the event service, not here.
"""

from datetime import date, datetime, time
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from venue_calendar.services.status import (
    EventStatus, PublicationWindow, as_utc, compute_status, event_window, instance_window, override_of,
)


def _blank_to_none(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class EventBase(BaseModel):
    short_description: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=1024)
    event_type: Optional[str] = Field(None, max_length=100)
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    publish_start_at: Optional[datetime] = None
    publish_end_at: Optional[datetime] = None

    @field_validator("short_description", "description", "image_url", "event_type", mode="before")
    @classmethod
    def _strip_optional_text(cls, value):
        return _blank_to_none(value)


class EventCreate(EventBase):
    title: str = Field(..., min_length=1, max_length=255)
    is_weekly: bool = False
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    status: Optional[EventStatus] = None
    is_featured: bool = False

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, value):
        return value.strip() if isinstance(value, str) else value


class EventUpdate(EventBase):
    """Partial update; only fields present in the request body are applied."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    is_weekly: Optional[bool] = None
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    status: Optional[EventStatus] = None
    is_featured: Optional[bool] = None

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, value):
        return value.strip() if isinstance(value, str) else value


class EventResponse(BaseModel):
    id: int
    org_id: str
    title: str
    short_description: Optional[str]
    description: Optional[str]
    image_url: Optional[str]
    event_type: Optional[str]
    is_weekly: bool
    day_of_week: Optional[int]
    starts_at: Optional[datetime]
    ends_at: Optional[datetime]
    start_time: Optional[time]
    end_time: Optional[time]
    publish_start_at: Optional[datetime]
    publish_end_at: Optional[datetime]
    status: Optional[EventStatus] = None
    status_override: Optional[EventStatus] = None
    is_featured: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @classmethod
    def from_model(cls, event, now: datetime) -> "EventResponse":
        response = cls.model_validate(event)
        return response.model_copy(update={
            "status": compute_status(event_window(event), now),
            "status_override": override_of(event.status),
        })

    def with_status(self, now: datetime) -> "EventResponse":
        """Re-derive status, e.g. for a payload served from cache."""
        window = PublicationWindow(
            explicit_status=self.status_override.value if self.status_override else None,
            publish_start_at=as_utc(self.publish_start_at),
            publish_end_at=as_utc(self.publish_end_at),
        )
        return self.model_copy(update={"status": compute_status(window, now)})


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    cached: bool = False


class InstanceUpdate(BaseModel):
    custom_description: Optional[str] = None
    custom_image_url: Optional[str] = Field(None, max_length=1024)
    status: Optional[EventStatus] = None

    @field_validator("custom_description", "custom_image_url", mode="before")
    @classmethod
    def _strip_optional_text(cls, value):
        return _blank_to_none(value)


class InstanceResponse(BaseModel):
    id: int
    event_id: int
    instance_date: date
    custom_description: Optional[str]
    custom_image_url: Optional[str]
    status: Optional[EventStatus] = None
    status_override: Optional[EventStatus] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @classmethod
    def from_model(cls, instance, event, now: datetime) -> "InstanceResponse":
        response = cls.model_validate(instance)
        return response.model_copy(update={
            "status": compute_status(instance_window(instance, event), now),
            "status_override": override_of(instance.status),
        })


class MaterializeRequest(BaseModel):
    # Plain strings: malformed dates are a domain error (400), not a 422
    start_date: str
    end_date: str


class MaterializeResponse(BaseModel):
    created: int
    instances: list[InstanceResponse]


class AttentionItem(BaseModel):
    event_id: int
    event_title: str
    instance: InstanceResponse
    missing: list[str]
