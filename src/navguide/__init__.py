"""Turn-by-turn guidance core: route progress, off-route detection and rerouting."""

from .directions import MapboxDirectionsClient
from .exceptions import InvalidTransition, NavigationError, RoutingFailure
from .interfaces import RenderSink, RoutingService
from .models import (
    Coord,
    Destination,
    Maneuver,
    NavigationMode,
    NavigationState,
    PositionSample,
    Route,
    RouteStep,
    TransitionEvent,
)
from .nav_config import NavConfig
from .nav_logger import NavLogger
from .navigator import NavigationSession
from .rerouter import Rerouter
from .route_tracker import RouteTracker

__all__ = [
    "Coord",
    "Destination",
    "InvalidTransition",
    "Maneuver",
    "MapboxDirectionsClient",
    "NavConfig",
    "NavLogger",
    "NavigationError",
    "NavigationMode",
    "NavigationSession",
    "NavigationState",
    "PositionSample",
    "RenderSink",
    "Rerouter",
    "Route",
    "RouteStep",
    "RouteTracker",
    "RoutingFailure",
    "RoutingService",
    "TransitionEvent",
]
