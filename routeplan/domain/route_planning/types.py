"""Route planning domain types - the in-memory shape of a route day"""

from datetime import date, datetime, time
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ...shared.validators import is_valid_coordinate


class Waypoint(BaseModel):
    """A store to visit, in the order supplied by the caller"""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    postcode: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return is_valid_coordinate(self.latitude, self.longitude)

    @property
    def label(self) -> str:
        """Store name with postcode, e.g. "Doncaster (DN1 1SW)" """
        return f"{self.name} ({self.postcode})" if self.postcode else self.name


class HomeBase(BaseModel):
    """Where the manager leaves from and returns to"""

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    address: str = "Home"


class VisitOverride(BaseModel):
    """Persisted manual start/end for one store's visit"""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    store_id: str
    start_time: time
    end_time: time


class OperationalItem(BaseModel):
    """Persisted commitment with no store attached (meeting, admin block)"""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    location: Optional[str] = None
    start_time: time
    duration_minutes: int = Field(..., ge=1)


class TimelineItemKind(str, Enum):
    LEAVE_HOME = "leave_home"
    VISIT = "visit"
    TRAVEL = "travel"
    OPERATIONAL = "operational"
    ARRIVE_HOME = "arrive_home"


class _TimelineItemBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: Optional[datetime] = None
    label: str


class LeaveHomeItem(_TimelineItemBase):
    kind: Literal[TimelineItemKind.LEAVE_HOME] = TimelineItemKind.LEAVE_HOME
    address: str


class VisitItem(_TimelineItemBase):
    kind: Literal[TimelineItemKind.VISIT] = TimelineItemKind.VISIT
    waypoint: Waypoint
    override_id: Optional[str] = None
    completed: bool = False

    @property
    def duration_minutes(self) -> int:
        if self.end is None:
            return 0
        return int((self.end - self.start).total_seconds() // 60)


class TravelItem(_TimelineItemBase):
    """
    Leg between two locations. origin_id / destination_id are store ids;
    None means the manager's home base.
    """

    kind: Literal[TimelineItemKind.TRAVEL] = TimelineItemKind.TRAVEL
    origin_id: Optional[str] = None
    destination_id: Optional[str] = None
    origin_label: str
    destination_label: str
    distance_miles: float
    duration_minutes: int


class OperationalTimelineItem(_TimelineItemBase):
    kind: Literal[TimelineItemKind.OPERATIONAL] = TimelineItemKind.OPERATIONAL
    item: OperationalItem


class ArriveHomeItem(_TimelineItemBase):
    kind: Literal[TimelineItemKind.ARRIVE_HOME] = TimelineItemKind.ARRIVE_HOME
    address: str


TimelineItem = Annotated[
    Union[LeaveHomeItem, VisitItem, TravelItem, OperationalTimelineItem, ArriveHomeItem],
    Field(discriminator="kind"),
]


class TimelineBuild(BaseModel):
    """Result of one timeline build: the ordered items plus excluded stores"""

    model_config = ConfigDict(frozen=True)

    items: list[TimelineItem] = Field(default_factory=list)
    excluded_waypoint_ids: list[str] = Field(default_factory=list)

    @property
    def excluded_count(self) -> int:
        return len(self.excluded_waypoint_ids)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def visits(self) -> list[VisitItem]:
        return [item for item in self.items if isinstance(item, VisitItem)]

    def travel_legs(self) -> list[TravelItem]:
        return [item for item in self.items if isinstance(item, TravelItem)]


class RouteSummary(BaseModel):
    """Headline figures for a route day"""

    total_distance_miles: float = 0.0
    total_travel_minutes: int = 0
    visit_count: int = 0
    operational_count: int = 0
    route_window: str = "Not set"
    missing_coordinates_count: int = 0
    next_pending_store_id: Optional[str] = None


class RouteDay(BaseModel):
    """A built route day for one (manager, date, region)"""

    model_config = ConfigDict(frozen=True)

    manager_user_id: str
    manager_name: str = ""
    planned_date: date
    region: Optional[str] = None
    home: Optional[HomeBase] = None
    waypoints: list[Waypoint] = Field(default_factory=list)
    timeline: TimelineBuild
    completed_store_ids: frozenset[str] = frozenset()
    summary: RouteSummary
