# route_tracker.py
# State machine that tracks a traveller's position against an active route.
# Call set_preview_route() and start_active() once, then on_position_sample()
# on every GPS update.

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from .exceptions import InvalidTransition
from .geo_utils import calculate_bearing, distance, distance_to_polyline
from .models import (
    Coord,
    Destination,
    NavigationMode,
    NavigationState,
    PositionSample,
    Route,
    TransitionEvent,
)
from .nav_config import NavConfig

logger = logging.getLogger(__name__)

Listener = Callable[[TransitionEvent, NavigationState], None]


class RouteTracker:
    """
    Owns the NavigationState of a single session and every transition on it.

    Usage:
        tracker = RouteTracker(config)
        tracker.subscribe(lambda event, state: print(event, state.mode))
        tracker.set_preview_route(route, destination, origin)
        tracker.start_active()

        # Inside GPS loop:
        tracker.on_position_sample(sample)

    Observers receive a snapshot of the state after every change; the live
    object never leaves this class.
    """

    def __init__(
        self,
        config: Optional[NavConfig] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.config = config or NavConfig()
        self._clock = clock
        self._state = NavigationState()
        self._last_sample: Optional[PositionSample] = None
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: TransitionEvent) -> None:
        snapshot = self._state.copy()
        for listener in list(self._listeners):
            try:
                listener(event, snapshot)
            except Exception:
                logger.exception(f"Listener {listener!r} failed on {event.value}")

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> NavigationState:
        return self._state.copy()

    @property
    def mode(self) -> NavigationMode:
        return self._state.mode

    @property
    def is_active(self) -> bool:
        return self._state.mode is NavigationMode.ACTIVE and self._state.route is not None

    # ------------------------------------------------------------------
    # Lifecycle transitions
    # ------------------------------------------------------------------

    def set_preview_route(self, route: Route, destination: Destination, origin: Coord) -> None:
        """Show a route before the traveller confirms it."""
        self._state = NavigationState(
            mode=NavigationMode.PREVIEW,
            route=route,
            destination=destination,
            origin=origin,
        )
        self._load_progress(route)
        self._last_sample = None
        logger.info(
            f"Preview route to {destination.name}: {route.distance:.0f} m, "
            f"{len(route.steps)} steps."
        )
        self._notify(TransitionEvent.PREVIEW)

    def start_active(self) -> None:
        """Confirm the previewed route and begin guidance."""
        if self._state.mode is not NavigationMode.PREVIEW or self._state.route is None:
            raise InvalidTransition(
                f"Cannot start navigation from mode {self._state.mode.value!r} "
                "without a preview route."
            )
        self._state.mode = NavigationMode.ACTIVE
        logger.info("Navigation started.")
        self._notify(TransitionEvent.STARTED)

    def update_route(self, new_route: Route) -> None:
        """Swap in a recomputed route; destination and mode are kept."""
        if self._state.mode is NavigationMode.IDLE:
            raise InvalidTransition("Cannot update the route of an idle session.")
        if not isinstance(new_route, Route):
            raise TypeError(f"Expected a Route, got {type(new_route).__name__}")
        self._state.route = new_route
        self._load_progress(new_route)
        logger.info(f"Route updated: {new_route.distance:.0f} m, {len(new_route.steps)} steps.")
        self._notify(TransitionEvent.REROUTED)

    def cancel(self) -> None:
        """Forcibly end navigation."""
        self._reset(TransitionEvent.CANCELLED)

    def arrive(self) -> None:
        """End navigation at the destination."""
        self._reset(TransitionEvent.ARRIVED)

    def _reset(self, event: TransitionEvent) -> None:
        if self._state.mode is NavigationMode.IDLE:
            return
        self._state = NavigationState(origin=self._state.origin)
        self._last_sample = None
        logger.info(f"Navigation ended ({event.value}).")
        self._notify(event)

    def _load_progress(self, route: Route) -> None:
        state = self._state
        state.current_step_index = 0
        state.distance_to_next_maneuver = route.steps[0].distance
        state.is_off_route = False
        state.is_rerouting = False
        state.remaining_distance = route.distance
        state.remaining_duration = route.duration
        state.eta = self._clock() + timedelta(seconds=route.duration)

    # ------------------------------------------------------------------
    # Flags driven by the rerouter
    # ------------------------------------------------------------------

    def set_rerouting(self, rerouting: bool) -> None:
        if self._state.is_rerouting == rerouting:
            return
        self._state.is_rerouting = rerouting
        self._notify(TransitionEvent.REROUTING)

    def set_off_route(self, off_route: bool) -> None:
        if self._state.is_off_route == off_route:
            return
        self._state.is_off_route = off_route
        self._notify(TransitionEvent.OFF_ROUTE if off_route else TransitionEvent.BACK_ON_ROUTE)

    # ------------------------------------------------------------------
    # Core method: call on every GPS update
    # ------------------------------------------------------------------

    def _is_stale(self, sample: PositionSample) -> bool:
        last = self._last_sample
        if last is None:
            return False
        if sample.timestamp < last.timestamp:
            return True
        return sample.timestamp == last.timestamp and sample.coord == last.coord

    def on_position_sample(self, sample: PositionSample) -> bool:
        """
        Advance guidance with a new position fix.

        Args:
            sample: Current position fix.

        Returns:
            True if the sample was processed, False if it was ignored
            (not navigating, or a stale/duplicate fix).
        """
        state = self._state
        route = state.route
        if state.mode is not NavigationMode.ACTIVE or route is None:
            return False
        if self._is_stale(sample):
            logger.debug(f"Ignoring stale sample at t={sample.timestamp}")
            return False
        self._last_sample = sample
        position = sample.coord

        # 1. Distance to the maneuver of the current step
        measured_index = state.current_step_index
        measured_step = route.steps[measured_index]
        to_maneuver = distance(position, measured_step.maneuver.location)

        # 2. Step advancement, at most one step per sample
        advanced = (
            to_maneuver < self.config.step_advance_threshold_m
            and measured_index < route.last_step_index
        )
        if advanced:
            state.current_step_index = measured_index + 1
            logger.info(
                f"Step {state.current_step_index}/{route.last_step_index}: "
                f"{state.current_instruction}"
            )

        # 3. Arrival
        if state.current_step_index == route.last_step_index and state.destination:
            to_destination = distance(position, state.destination.coord)
            if to_destination < self.config.arrival_threshold_m:
                state.origin = position
                logger.info(f"Arrived at {state.destination.name} ({to_destination:.1f} m).")
                self.arrive()
                return True

        # 4. Off-route test
        was_off_route = state.is_off_route
        to_route = distance_to_polyline(position, route.geometry, self.config.polyline_mode)
        state.is_off_route = to_route > self.config.off_route_threshold_m
        if state.is_off_route and not was_off_route:
            logger.warning(f"Off route: {to_route:.0f} m from the route line.")

        # 5. Derived metrics
        following = route.steps[measured_index + 1:]
        if measured_step.distance > 0:
            fraction = min(to_maneuver / measured_step.distance, 1.0)
        else:
            fraction = 0.0
        state.remaining_distance = to_maneuver + sum(s.distance for s in following)
        state.remaining_duration = (
            measured_step.duration * fraction + sum(s.duration for s in following)
        )
        state.eta = self._clock() + timedelta(seconds=state.remaining_duration)
        state.distance_to_next_maneuver = (
            route.steps[state.current_step_index].distance if advanced else to_maneuver
        )

        # 6. Camera anchor
        state.origin = position
        if sample.heading is not None:
            state.heading = sample.heading
        else:
            state.heading = calculate_bearing(position, state.current_step.maneuver.location)

        if advanced:
            event = TransitionEvent.STEP_ADVANCED
        elif state.is_off_route and not was_off_route:
            event = TransitionEvent.OFF_ROUTE
        elif was_off_route and not state.is_off_route:
            event = TransitionEvent.BACK_ON_ROUTE
        else:
            event = TransitionEvent.PROGRESS
        self._notify(event)
        return True
