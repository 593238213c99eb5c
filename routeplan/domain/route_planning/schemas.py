"""Route planning schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import format_clock_time, parse_clock_time
from .types import (
    ArriveHomeItem,
    LeaveHomeItem,
    OperationalTimelineItem,
    RouteDay,
    TravelItem,
    VisitItem,
)


def _check_clock(v):
    if v is None:
        return v
    return format_clock_time(parse_clock_time(v))


class VisitTimeUpdate(BaseModel):
    """Manual start/end for a store visit (HH:MM)"""

    startTime: str
    endTime: str

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_time(cls, v):
        return _check_clock(v)


class OperationalItemCreate(BaseModel):
    title: str
    location: Optional[str] = None
    startTime: str
    durationMinutes: int

    @field_validator("startTime")
    @classmethod
    def validate_time(cls, v):
        return _check_clock(v)


class OperationalItemUpdate(BaseModel):
    title: Optional[str] = None
    location: Optional[str] = None
    startTime: Optional[str] = None
    durationMinutes: Optional[int] = None

    @field_validator("startTime")
    @classmethod
    def validate_time(cls, v):
        return _check_clock(v)


class RouteSequenceUpdate(BaseModel):
    storeIds: list[str]


class LocationUpdate(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class HomeUpdate(BaseModel):
    homeAddress: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class PlannedDateUpdate(BaseModel):
    """plannedDate null takes the store off its route"""

    plannedDate: Optional[date] = None
    managerId: Optional[str] = None


class StorePlanResponse(BaseModel):
    id: str
    plannedDate: Optional[date] = None
    managerId: Optional[str] = None
    routeSequence: Optional[int] = None


class RescheduleRequest(BaseModel):
    storeIds: list[str]
    newDate: date


class CompleteRouteRequest(BaseModel):
    storeIds: list[str]


class TimelineItemResponse(BaseModel):
    """One timeline row; fields not relevant to the kind are null.

    start/end are HH:MM for display; startAt/endAt carry the full date, which
    differs from the planned date once the day runs past midnight.
    """

    kind: str
    label: str
    start: str
    end: Optional[str] = None
    startAt: datetime
    endAt: Optional[datetime] = None
    storeId: Optional[str] = None
    overrideId: Optional[str] = None
    completed: Optional[bool] = None
    originId: Optional[str] = None
    destinationId: Optional[str] = None
    originLabel: Optional[str] = None
    destinationLabel: Optional[str] = None
    distanceMiles: Optional[float] = None
    durationMinutes: Optional[int] = None
    operationalItemId: Optional[str] = None
    location: Optional[str] = None
    address: Optional[str] = None


class RouteSummaryResponse(BaseModel):
    totalDistanceMiles: float
    totalTravelMinutes: int
    visitCount: int
    operationalCount: int
    routeWindow: str
    missingCoordinatesCount: int
    nextPendingStoreId: Optional[str] = None


class RouteDayResponse(BaseModel):
    managerId: str
    managerName: str
    plannedDate: date
    region: Optional[str] = None
    hasHome: bool
    items: list[TimelineItemResponse] = Field(default_factory=list)
    excludedStoreIds: list[str] = Field(default_factory=list)
    completedStoreIds: list[str] = Field(default_factory=list)
    summary: RouteSummaryResponse


class NavigationResponse(BaseModel):
    url: str


class CountResponse(BaseModel):
    message: str
    updatedCount: int


def timeline_item_response(item) -> TimelineItemResponse:
    data = {
        "kind": item.kind.value,
        "label": item.label,
        "start": format_clock_time(item.start),
        "end": format_clock_time(item.end) if item.end else None,
        "startAt": item.start,
        "endAt": item.end,
    }
    if isinstance(item, VisitItem):
        data.update(
            storeId=item.waypoint.id,
            overrideId=item.override_id,
            completed=item.completed,
            durationMinutes=item.duration_minutes,
            address=item.waypoint.address,
        )
    elif isinstance(item, TravelItem):
        data.update(
            originId=item.origin_id,
            destinationId=item.destination_id,
            originLabel=item.origin_label,
            destinationLabel=item.destination_label,
            distanceMiles=round(item.distance_miles, 2),
            durationMinutes=item.duration_minutes,
        )
    elif isinstance(item, OperationalTimelineItem):
        data.update(
            operationalItemId=item.item.id,
            location=item.item.location,
            durationMinutes=item.item.duration_minutes,
        )
    elif isinstance(item, (LeaveHomeItem, ArriveHomeItem)):
        data.update(address=item.address)
    return TimelineItemResponse(**data)


def route_day_response(day: RouteDay) -> RouteDayResponse:
    summary = day.summary
    return RouteDayResponse(
        managerId=day.manager_user_id,
        managerName=day.manager_name,
        plannedDate=day.planned_date,
        region=day.region,
        hasHome=day.home is not None,
        items=[timeline_item_response(item) for item in day.timeline.items],
        excludedStoreIds=day.timeline.excluded_waypoint_ids,
        completedStoreIds=sorted(day.completed_store_ids),
        summary=RouteSummaryResponse(
            totalDistanceMiles=summary.total_distance_miles,
            totalTravelMinutes=summary.total_travel_minutes,
            visitCount=summary.visit_count,
            operationalCount=summary.operational_count,
            routeWindow=summary.route_window,
            missingCoordinatesCount=summary.missing_coordinates_count,
            nextPendingStoreId=summary.next_pending_store_id,
        ),
    )
