"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from venue_calendar.api.routes import events, instances, bands

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(events.router)
api_router.include_router(instances.router)
api_router.include_router(bands.router)
