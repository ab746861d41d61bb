# rerouter.py
# Debounced automatic rerouting.
# Watches the tracker's off-route flag and asks the routing service for a new
# route once the traveller has been off the route for a while.

import asyncio
import logging
from typing import Optional

from .exceptions import RoutingFailure
from .interfaces import RoutingService
from .models import Coord, Destination, NavigationMode, NavigationState, Route, TransitionEvent
from .nav_config import NavConfig
from .route_tracker import RouteTracker

logger = logging.getLogger(__name__)


class Rerouter:
    """
    Turns a sustained off-route condition into a single route request.

    The debounce timer is armed when the tracker reports off-route and is
    cancelled as soon as the traveller is back on the route or the session
    ends. Only one request is in flight at a time; a response that arrives
    after the session ended (or restarted) is discarded.

    Must be used from the thread running the asyncio event loop.

    Args:
        tracker:         RouteTracker to watch and update.
        routing_service: Service used to compute the new route.
        config:          NavConfig instance (debounce delay).
        loop:            Event loop; defaults to the running loop.
    """

    def __init__(
        self,
        tracker: RouteTracker,
        routing_service: RoutingService,
        config: Optional[NavConfig] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.config = config or NavConfig()
        self._tracker = tracker
        self._service = routing_service
        self._loop = loop
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._generation = 0
        self.reroute_count = 0
        self.failure_count = 0
        self._warned_no_loop = False
        self._unsubscribe = tracker.subscribe(self._on_transition)

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def is_pending(self) -> bool:
        """True while the debounce timer is armed."""
        return self._timer is not None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Tracker events
    # ------------------------------------------------------------------

    def _on_transition(self, event: TransitionEvent, state: NavigationState) -> None:
        if state.mode is not NavigationMode.ACTIVE:
            self.cancel_pending()
            return
        if not state.is_off_route:
            self._cancel_timer()
            return
        if self._timer is None and not self.in_flight and not state.is_rerouting:
            self._arm()

    def _event_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def _arm(self) -> None:
        loop = self._event_loop()
        if loop is None:
            if not self._warned_no_loop:
                logger.warning(
                    "Off route but no event loop is running; automatic rerouting is disabled. "
                    "Drive the session from a coroutine or pass loop= explicitly."
                )
                self._warned_no_loop = True
            return
        delay = self.config.reroute_debounce_s
        self._timer = loop.call_later(delay, self._on_debounce_fired)
        logger.debug(f"Reroute debounce armed ({delay:.1f} s).")

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            logger.debug("Reroute debounce cancelled.")

    def cancel_pending(self) -> None:
        """Forget any pending work of the current session."""
        self._cancel_timer()
        self._generation += 1
        if self.in_flight:
            self._task.cancel()
            logger.info("Pending reroute request abandoned.")
        self._task = None

    # ------------------------------------------------------------------
    # Reroute
    # ------------------------------------------------------------------

    def _on_debounce_fired(self) -> None:
        self._timer = None
        state = self._tracker.state
        if state.mode is not NavigationMode.ACTIVE or not state.is_off_route:
            return
        if self.in_flight or state.is_rerouting:
            return
        if state.destination is None or state.origin is None:
            return

        loop = self._loop or asyncio.get_running_loop()
        self._task = loop.create_task(
            self._reroute(state.origin, state.destination, self._generation)
        )
        logger.info(f"Still off route after {self.config.reroute_debounce_s:.1f} s, rerouting.")
        self._tracker.set_rerouting(True)

    async def _reroute(self, origin: Coord, destination: Destination, generation: int) -> None:
        error: Optional[Exception] = None
        new_route = None
        try:
            new_route = await self._service.compute_route(origin, destination.coord)
        except RoutingFailure as e:
            error = e
        except Exception as e:
            logger.exception("Routing service raised an unexpected error")
            error = e

        if generation != self._generation or self._tracker.mode is not NavigationMode.ACTIVE:
            logger.info("Discarding reroute response for a session that has ended.")
            return

        if error is None and not isinstance(new_route, Route):
            error = RoutingFailure(f"Routing service returned no route ({new_route!r})")

        if error is not None:
            self.failure_count += 1
            logger.warning(f"Reroute failed: {error}")
            self._tracker.set_rerouting(False)
            return

        self.reroute_count += 1
        self._tracker.update_route(new_route)
        logger.info(f"Rerouted ({self.reroute_count} so far).")

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Cancel pending work and stop watching the tracker."""
        self.cancel_pending()
        self._unsubscribe()
