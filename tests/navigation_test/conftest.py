import asyncio
from datetime import datetime
from typing import List, Optional, Sequence

import pytest

from navguide.exceptions import RoutingFailure
from navguide.interfaces import RoutingService
from navguide.models import Coord, Destination, Maneuver, PositionSample, Route, RouteStep
from navguide.nav_config import NavConfig

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0)


def build_route(steps, geometry: Optional[Sequence[Coord]] = None) -> Route:
    """steps: iterable of (distance, duration, (lat, lon) of the maneuver)."""
    route_steps = tuple(
        RouteStep(
            distance=d,
            duration=t,
            instruction=f"Instruction {i}",
            maneuver=Maneuver(type="turn", modifier="left", location=Coord(*loc)),
        )
        for i, (d, t, loc) in enumerate(steps)
    )
    if geometry is None:
        # Dense line along the equator from lon 0 to lon 0.01
        geometry = [Coord(0.0, i * 0.0005) for i in range(21)]
    return Route(
        distance=sum(s.distance for s in route_steps),
        duration=sum(s.duration for s in route_steps),
        steps=route_steps,
        geometry=tuple(geometry),
    )


class FakeRoutingService(RoutingService):
    """Records every request; optionally fails or holds the response until released."""

    def __init__(self, route: Optional[Route] = None, fail: bool = False, hold: bool = False):
        self.route = route
        self.fail = fail
        self.hold = hold
        self.calls: List[tuple] = []
        self._gate: Optional[asyncio.Event] = None

    def release(self) -> None:
        if self._gate is not None:
            self._gate.set()

    async def compute_route(self, origin, destination, waypoints=None) -> Route:
        self.calls.append((origin, destination, waypoints))
        if self.hold:
            self._gate = asyncio.Event()
            await self._gate.wait()
        if self.fail:
            raise RoutingFailure("service unavailable")
        return self.route


@pytest.fixture
def fake_router():
    return FakeRoutingService


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def clock(now):
    return lambda: now


@pytest.fixture
def config():
    return NavConfig(reroute_debounce_s=0.2)


@pytest.fixture
def route_factory():
    return build_route


@pytest.fixture
def two_step_route():
    # 1000 m / 120 s; maneuvers at lon 0.004 and lon 0.01
    return build_route([
        (400, 40, (0.0, 0.004)),
        (600, 80, (0.0, 0.01)),
    ])


@pytest.fixture
def three_step_route():
    return build_route([
        (100, 10, (0.0, 0.0009)),
        (200, 20, (0.0, 0.0027)),
        (300, 30, (0.0, 0.0054)),
    ])


@pytest.fixture
def reroute_route():
    return build_route(
        [(300, 30, (0.002, 0.008)), (200, 20, (0.0, 0.01))],
        geometry=[Coord(0.001, 0.005), Coord(0.002, 0.008), Coord(0.0, 0.01)],
    )


@pytest.fixture
def destination():
    return Destination(Coord(0.0, 0.01), "Harbour")


@pytest.fixture
def origin():
    return Coord(0.0, 0.0)


@pytest.fixture
def sample():
    def make(lat: float, lon: float, t: float, heading: Optional[float] = None) -> PositionSample:
        return PositionSample(coord=Coord(lat, lon), timestamp=t, heading=heading)
    return make
