"""
Quality standard: Query filtering.
Reason: Segmented reads of the current session (category, city, map-ready).
"""
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from occitanie_hub.schemas.event import AggregationStats, Category
from occitanie_hub.routers.dependencies import get_controller
from occitanie_hub.services.controller import EventController
from occitanie_hub.services.manager import get_event_stats

router = APIRouter(prefix="/events", tags=["Events"])


@router.get("/")
async def list_events(
    category: Optional[Category] = Query(None, description="Filter by category"),
    city: Optional[str] = Query(None, description="Filter by city name (partial, case-insensitive)"),
    mappable: bool = Query(False, description="Only events that can be placed on the map"),
    controller: EventController = Depends(get_controller),
):
    """Returns the events of the current session with optional filters."""
    events = controller.mappable_events if mappable else controller.events

    if category:
        events = [e for e in events if e.category == category]
    if city:
        events = [e for e in events if city.lower() in e.city.lower()]

    return {
        "total": len(events),
        "filters": {"category": category, "city": city, "mappable": mappable},
        "status": controller.status,
        "error": controller.error,
        "last_update": controller.last_update,
        "data": events,
    }


@router.get("/stats", response_model=AggregationStats)
async def event_stats(controller: EventController = Depends(get_controller)):
    return controller.stats or get_event_stats([])


@router.post("/refresh", status_code=status.HTTP_202_ACCEPTED)
async def refresh_events(background_tasks: BackgroundTasks, controller: EventController = Depends(get_controller)):
    """Schedules a new aggregation run, unless one is already in flight."""
    if controller.loading:
        return {"started": False, "status": controller.status}
    background_tasks.add_task(controller.refresh_events)
    return {"started": True, "status": controller.status}
