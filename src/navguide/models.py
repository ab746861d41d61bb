# models.py
# Shared data structures and enums used across all modules.

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


# ---------------------------------------------------------------------------
# Coordinate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Coord:
    """Immutable geographic coordinate (WGS84, decimal degrees)."""
    lat: float
    lon: float

    def to_list(self) -> list:
        return [self.lat, self.lon]


# ---------------------------------------------------------------------------
# Position fix
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PositionSample:
    """A single fix delivered by the location source."""
    coord: Coord
    timestamp: float                   # seconds, non-decreasing
    accuracy: Optional[float] = None   # metres
    heading: Optional[float] = None    # degrees, 0 = north, clockwise
    speed: Optional[float] = None      # m/s


# ---------------------------------------------------------------------------
# Route
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Maneuver:
    type: str                          # "depart" | "turn" | "merge" | "arrive" | ...
    location: Coord
    modifier: Optional[str] = None     # "left" | "slight right" | ...


@dataclass(frozen=True)
class RouteStep:
    """A single navigation instruction in a route."""
    distance: float                    # metres
    duration: float                    # seconds
    instruction: str
    maneuver: Maneuver

    def __post_init__(self) -> None:
        if self.distance < 0 or self.duration < 0:
            raise ValueError("Step distance and duration must be >= 0")

    def to_dict(self) -> dict:
        return {
            "distance": self.distance,
            "duration": self.duration,
            "instruction": self.instruction,
            "maneuver": {
                "type": self.maneuver.type,
                "modifier": self.maneuver.modifier,
                "location": self.maneuver.location.to_list(),
            },
        }

    @staticmethod
    def from_dict(d: dict) -> "RouteStep":
        m = d["maneuver"]
        return RouteStep(
            distance=d["distance"],
            duration=d["duration"],
            instruction=d.get("instruction", ""),
            maneuver=Maneuver(
                type=m["type"],
                modifier=m.get("modifier"),
                location=Coord(*m["location"]),
            ),
        )


@dataclass(frozen=True)
class Route:
    """
    A computed route. Immutable: a reroute builds a new Route.

    The sum of step distances is expected to be close to `distance` but
    steps may be a coarser decomposition of the same path.
    """
    distance: float                    # metres
    duration: float                    # seconds
    steps: Tuple[RouteStep, ...]
    geometry: Tuple[Coord, ...]

    def __post_init__(self) -> None:
        # Accept lists from callers but store tuples
        object.__setattr__(self, "steps", tuple(self.steps))
        object.__setattr__(self, "geometry", tuple(self.geometry))
        if not self.steps:
            raise ValueError("A route needs at least one step")
        if len(self.geometry) < 2:
            raise ValueError("Route geometry needs at least two coordinates")

    @property
    def last_step_index(self) -> int:
        return len(self.steps) - 1

    def to_dict(self) -> dict:
        return {
            "distance": self.distance,
            "duration": self.duration,
            "steps": [s.to_dict() for s in self.steps],
            "geometry": [c.to_list() for c in self.geometry],
        }

    @staticmethod
    def from_dict(d: dict) -> "Route":
        return Route(
            distance=d["distance"],
            duration=d["duration"],
            steps=tuple(RouteStep.from_dict(s) for s in d["steps"]),
            geometry=tuple(Coord(*c) for c in d["geometry"]),
        )


@dataclass(frozen=True)
class Destination:
    coord: Coord
    name: str = "Destination"


# ---------------------------------------------------------------------------
# Navigation status
# ---------------------------------------------------------------------------

class NavigationMode(Enum):
    IDLE    = "idle"
    PREVIEW = "preview"
    ACTIVE  = "active"


class TransitionEvent(Enum):
    PREVIEW        = "preview"
    STARTED        = "started"
    PROGRESS       = "progress"
    STEP_ADVANCED  = "step_advanced"
    OFF_ROUTE      = "off_route"
    BACK_ON_ROUTE  = "back_on_route"
    REROUTING      = "rerouting"
    REROUTED       = "rerouted"
    ARRIVED        = "arrived"
    CANCELLED      = "cancelled"


@dataclass
class NavigationState:
    """Everything a render sink needs to draw the current guidance."""
    mode: NavigationMode = NavigationMode.IDLE
    route: Optional[Route] = None
    destination: Optional[Destination] = None
    origin: Optional[Coord] = None
    current_step_index: int = 0
    distance_to_next_maneuver: float = 0.0   # metres
    is_off_route: bool = False
    is_rerouting: bool = False
    eta: Optional[datetime] = None
    remaining_distance: float = 0.0          # metres
    remaining_duration: float = 0.0          # seconds
    heading: Optional[float] = field(default=None, compare=False)

    @property
    def current_step(self) -> Optional[RouteStep]:
        if self.route and 0 <= self.current_step_index < len(self.route.steps):
            return self.route.steps[self.current_step_index]
        return None

    @property
    def next_step(self) -> Optional[RouteStep]:
        if self.route and self.current_step_index + 1 < len(self.route.steps):
            return self.route.steps[self.current_step_index + 1]
        return None

    @property
    def current_instruction(self) -> str:
        step = self.current_step
        return step.instruction if step else ""

    def copy(self) -> "NavigationState":
        return dataclasses.replace(self)
