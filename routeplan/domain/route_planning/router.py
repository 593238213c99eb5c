"""Route planning router - FastAPI endpoints for route days"""

import logging
from datetime import date
from typing import Callable, Optional, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ...database import get_db
from .errors import EmptyRouteError, InvalidScheduleInput, PersistenceError, RecordNotFound
from .schemas import (
    CompleteRouteRequest,
    CountResponse,
    HomeUpdate,
    LocationUpdate,
    NavigationResponse,
    OperationalItemCreate,
    OperationalItemUpdate,
    PlannedDateUpdate,
    RescheduleRequest,
    RouteDayResponse,
    RouteSequenceUpdate,
    StorePlanResponse,
    VisitTimeUpdate,
    route_day_response,
)
from .service import RoutePlanningService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/route-planning", tags=["Route Planning"])

T = TypeVar("T")


def get_route_planning_service(db: Session = Depends(get_db)) -> RoutePlanningService:
    """Dependency injection for RoutePlanningService"""
    return RoutePlanningService(db)


def _run(operation: Callable[..., T], *args, **kwargs) -> T:
    """Call a service operation and map route planning errors to HTTP errors"""
    try:
        return operation(*args, **kwargs)
    except InvalidScheduleInput as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except RecordNotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except EmptyRouteError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


# ============================================================================
# ROUTE DAY
# ============================================================================


@router.get("/days/{manager_id}/{planned_date}", response_model=RouteDayResponse)
async def get_route_day(
    manager_id: str,
    planned_date: date,
    region: Optional[str] = Query(None),
    service: RoutePlanningService = Depends(get_route_planning_service),
):
    """Build the timeline for one manager's route day"""
    return route_day_response(_run(service.get_day, manager_id, planned_date, region))


@router.delete("/days/{manager_id}/{planned_date}", response_model=RouteDayResponse)
async def reset_route_day(
    manager_id: str,
    planned_date: date,
    region: Optional[str] = Query(None),
    service: RoutePlanningService = Depends(get_route_planning_service),
):
    """Remove all visit times and operational items for the day"""
    return route_day_response(_run(service.reset_day, manager_id, planned_date, region))


@router.put(
    "/days/{manager_id}/{planned_date}/visit-times/{store_id}", response_model=RouteDayResponse
)
async def set_visit_time(
    manager_id: str,
    planned_date: date,
    store_id: str,
    data: VisitTimeUpdate,
    region: Optional[str] = Query(None),
    service: RoutePlanningService = Depends(get_route_planning_service),
):
    day = _run(
        service.set_visit_time,
        manager_id,
        planned_date,
        region,
        store_id,
        data.startTime,
        data.endTime,
    )
    return route_day_response(day)


@router.delete(
    "/days/{manager_id}/{planned_date}/visit-times/{store_id}", response_model=RouteDayResponse
)
async def clear_visit_time(
    manager_id: str,
    planned_date: date,
    store_id: str,
    region: Optional[str] = Query(None),
    service: RoutePlanningService = Depends(get_route_planning_service),
):
    day = _run(service.clear_visit_time, manager_id, planned_date, region, store_id)
    return route_day_response(day)


@router.post(
    "/days/{manager_id}/{planned_date}/operational-items", response_model=RouteDayResponse
)
async def create_operational_item(
    manager_id: str,
    planned_date: date,
    data: OperationalItemCreate,
    region: Optional[str] = Query(None),
    service: RoutePlanningService = Depends(get_route_planning_service),
):
    day = _run(
        service.create_operational_item,
        manager_id,
        planned_date,
        region,
        title=data.title,
        start_time=data.startTime,
        duration_minutes=data.durationMinutes,
        location=data.location,
    )
    return route_day_response(day)


@router.patch(
    "/days/{manager_id}/{planned_date}/operational-items/{item_id}",
    response_model=RouteDayResponse,
)
async def update_operational_item(
    manager_id: str,
    planned_date: date,
    item_id: str,
    data: OperationalItemUpdate,
    region: Optional[str] = Query(None),
    service: RoutePlanningService = Depends(get_route_planning_service),
):
    day = _run(
        service.update_operational_item,
        manager_id,
        planned_date,
        region,
        item_id,
        title=data.title,
        start_time=data.startTime,
        duration_minutes=data.durationMinutes,
        location=data.location,
    )
    return route_day_response(day)


@router.delete(
    "/days/{manager_id}/{planned_date}/operational-items/{item_id}",
    response_model=RouteDayResponse,
)
async def delete_operational_item(
    manager_id: str,
    planned_date: date,
    item_id: str,
    region: Optional[str] = Query(None),
    service: RoutePlanningService = Depends(get_route_planning_service),
):
    day = _run(service.delete_operational_item, manager_id, planned_date, region, item_id)
    return route_day_response(day)


@router.post(
    "/days/{manager_id}/{planned_date}/visits/{store_id}/complete",
    response_model=RouteDayResponse,
)
async def mark_visit_complete(
    manager_id: str,
    planned_date: date,
    store_id: str,
    region: Optional[str] = Query(None),
    service: RoutePlanningService = Depends(get_route_planning_service),
):
    day = _run(service.mark_visit_complete, manager_id, planned_date, region, store_id)
    return route_day_response(day)


# ============================================================================
# EXPORTS
# ============================================================================


@router.get("/days/{manager_id}/{planned_date}/calendar.ics")
async def export_calendar(
    manager_id: str,
    planned_date: date,
    region: Optional[str] = Query(None),
    service: RoutePlanningService = Depends(get_route_planning_service),
):
    """Download the day as an iCalendar file"""
    filename, content = _run(service.export_calendar, manager_id, planned_date, region)
    return Response(
        content=content,
        media_type="text/calendar; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/days/{manager_id}/{planned_date}/navigation", response_model=NavigationResponse)
async def get_navigation_link(
    manager_id: str,
    planned_date: date,
    region: Optional[str] = Query(None),
    service: RoutePlanningService = Depends(get_route_planning_service),
):
    """Directions link through the stores not yet visited"""
    url = _run(service.navigation_link, manager_id, planned_date, region)
    return NavigationResponse(url=url)


# ============================================================================
# ROUTE PLAN MAINTENANCE
# ============================================================================


@router.put("/sequence", response_model=CountResponse)
async def update_route_sequence(
    data: RouteSequenceUpdate,
    service: RoutePlanningService = Depends(get_route_planning_service),
):
    updated = _run(service.update_route_sequence, data.storeIds)
    return CountResponse(message="Route order saved", updatedCount=updated)


@router.put("/stores/{store_id}/location")
async def update_store_location(
    store_id: str,
    data: LocationUpdate,
    service: RoutePlanningService = Depends(get_route_planning_service),
):
    store = _run(service.update_store_location, store_id, data.latitude, data.longitude)
    return {"id": store.id, "latitude": store.latitude, "longitude": store.longitude}


@router.put("/stores/{store_id}/planned-date", response_model=StorePlanResponse)
async def set_planned_date(
    store_id: str,
    data: PlannedDateUpdate,
    service: RoutePlanningService = Depends(get_route_planning_service),
):
    """Put a store on a route day, or take it off with plannedDate null"""
    store = _run(service.set_planned_date, store_id, data.plannedDate, data.managerId)
    return StorePlanResponse(
        id=store.id,
        plannedDate=store.planned_date,
        managerId=store.manager_user_id,
        routeSequence=store.route_sequence,
    )


@router.put("/managers/{manager_id}/home")
async def update_manager_home(
    manager_id: str,
    data: HomeUpdate,
    service: RoutePlanningService = Depends(get_route_planning_service),
):
    manager = _run(
        service.update_manager_home, manager_id, data.homeAddress, data.latitude, data.longitude
    )
    return {
        "id": manager.id,
        "homeAddress": manager.home_address,
        "latitude": manager.home_latitude,
        "longitude": manager.home_longitude,
    }


@router.post("/reschedule", response_model=CountResponse)
async def reschedule_route(
    data: RescheduleRequest,
    service: RoutePlanningService = Depends(get_route_planning_service),
):
    updated = _run(service.reschedule_route, data.storeIds, data.newDate)
    return CountResponse(message=f"Route moved to {data.newDate.isoformat()}", updatedCount=updated)


@router.post("/complete", response_model=CountResponse)
async def complete_route(
    data: CompleteRouteRequest,
    service: RoutePlanningService = Depends(get_route_planning_service),
):
    updated = _run(service.complete_route, data.storeIds)
    return CountResponse(message="Route completed", updatedCount=updated)
