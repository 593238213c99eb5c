"""Route planning errors - mapped to HTTP responses in router.py"""


class RoutePlanningError(Exception):
    """Base class for route planning failures"""


class InvalidScheduleInput(RoutePlanningError, ValueError):
    """Input defect rejected before anything is written"""


class RecordNotFound(RoutePlanningError):
    """Store, manager or operational item does not exist in this route day"""


class PersistenceError(RoutePlanningError):
    """A save or delete failed; the day was not rebuilt"""


class EmptyRouteError(RoutePlanningError):
    """Nothing to navigate: no remaining stores with coordinates"""
