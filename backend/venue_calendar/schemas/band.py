"""
Pydantic schemas for performers and lineups.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

from venue_calendar.services.status import EventStatus


class BandCreate(BaseModel):
    name: str = Field(..., max_length=200)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=1024)


class BandUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=1024)


class BandResponse(BaseModel):
    id: int
    org_id: str
    name: str
    description: Optional[str]
    image_url: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class LineupRequest(BaseModel):
    band_ids: list[int] = Field(default_factory=list)


class LineupEntry(BaseModel):
    band_id: int
    order: int
    band: BandResponse

    model_config = {"from_attributes": True}


class EffectiveLineupResponse(BaseModel):
    source: Literal["instance", "event"]
    bands: list[LineupEntry]


class BandEventSummary(BaseModel):
    id: int
    title: str
    is_weekly: bool
    day_of_week: Optional[int]
    starts_at: Optional[datetime]
    status: EventStatus
