# navigator.py
# Public entry point for the guidance core.
# Owns no business logic, delegates everything to specialist modules.

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional, Sequence, Union

from .exceptions import RoutingFailure
from .interfaces import RenderSink, RoutingService
from .models import (
    Coord,
    Destination,
    NavigationState,
    PositionSample,
    Route,
    TransitionEvent,
)
from .nav_config import NavConfig
from .rerouter import Rerouter
from .route_tracker import RouteTracker

logger = logging.getLogger(__name__)

SinkCallback = Callable[[TransitionEvent, NavigationState], None]


class NavigationSession:
    """
    High-level navigation facade.

    Typical lifecycle:
        session = NavigationSession(MapboxDirectionsClient(config), config)
        session.add_sink(NavLogger(config))
        route = await session.plan(origin, destination.coord)
        session.begin(route, destination, origin)

        # GPS loop:
        session.update(sample)

        session.end()

    Must be driven from the thread running the asyncio event loop; rerouting
    schedules its debounce timer and route requests on that loop.

    Args:
        routing_service: Used for planning and automatic rerouting.
        config:          Optional NavConfig; defaults to NavConfig().
        loop:            Optional event loop; defaults to the running loop.
        clock:           Source of "now" for ETA calculation.
    """

    def __init__(
        self,
        routing_service: RoutingService,
        config: Optional[NavConfig] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.config = config or NavConfig()
        self._service = routing_service

        # Specialist modules
        self._tracker  = RouteTracker(self.config, clock=clock)
        self._rerouter = Rerouter(self._tracker, routing_service, self.config, loop=loop)

    # ------------------------------------------------------------------
    # Route planning
    # ------------------------------------------------------------------

    async def plan(
        self,
        origin: Coord,
        destination: Coord,
        waypoints: Optional[Sequence[Coord]] = None,
    ) -> Route:
        """
        Request the initial route.

        Raises:
            RoutingFailure: "Could not calculate route", chained to the cause.
        """
        logger.info(f"Calculating route: {origin} → {destination}")
        try:
            return await self._service.compute_route(origin, destination, waypoints)
        except RoutingFailure as e:
            logger.warning(f"Route calculation failed: {e}")
            raise RoutingFailure("Could not calculate route") from e

    # ------------------------------------------------------------------
    # Navigation control
    # ------------------------------------------------------------------

    def preview(self, route: Route, destination: Destination, origin: Coord) -> None:
        self._tracker.set_preview_route(route, destination, origin)

    def confirm(self) -> None:
        self._tracker.start_active()

    def begin(self, route: Route, destination: Destination, origin: Coord) -> None:
        """Preview the route and start guidance immediately."""
        self.preview(route, destination, origin)
        self.confirm()
        logger.info(f"Route ready: {len(route.steps)} steps. First: {route.steps[0].instruction}")

    def end(self) -> None:
        """Forcibly end the current navigation session."""
        self._rerouter.cancel_pending()
        self._tracker.cancel()
        logger.info("Navigation stopped by user.")

    def close(self) -> None:
        """End the session and detach the rerouter for good."""
        self.end()
        self._rerouter.close()

    # ------------------------------------------------------------------
    # Render sinks
    # ------------------------------------------------------------------

    def add_sink(self, sink: Union[RenderSink, SinkCallback]) -> Callable[[], None]:
        """
        Push every state change to a render sink.

        Args:
            sink: RenderSink instance or a plain callable(event, state).

        Returns:
            Function that detaches the sink.
        """
        callback = sink.render if isinstance(sink, RenderSink) else sink
        return self._tracker.subscribe(callback)

    # ------------------------------------------------------------------
    # GPS update: call this on every position fix
    # ------------------------------------------------------------------

    def update(self, sample: PositionSample) -> NavigationState:
        """
        Process a new position fix and return the resulting navigation state.

        Args:
            sample: Current position fix.

        Returns:
            Snapshot of the navigation state after the update.
        """
        self._tracker.on_position_sample(sample)
        return self._tracker.state

    # ------------------------------------------------------------------
    # Convenience read-only properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> NavigationState:
        return self._tracker.state

    @property
    def is_active(self) -> bool:
        return self._tracker.is_active

    @property
    def rerouter(self) -> Rerouter:
        return self._rerouter
