# nav_logger.py
# Handles all file I/O for the navigation system.
# Saves the active route and navigation events as JSON.

import json
import os
import logging
from datetime import datetime
from typing import Optional

from .formatting import progress_message
from .interfaces import RenderSink
from .models import NavigationState, Route, TransitionEvent
from .nav_config import NavConfig

# Standard Python logger, configure at app entry point if needed
logger = logging.getLogger(__name__)


class NavLogger(RenderSink):
    """
    Persists route data and navigation events to JSON files.

    Register it as a render sink to get one JSON line per transition and a
    fresh copy of the route every time a route is previewed or replaced.

    Args:
        config: NavConfig instance for file paths and directories.
    """

    def __init__(self, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()
        os.makedirs(self.config.log_dir, exist_ok=True)

    # ------------------------------------------------------------------
    # Route persistence
    # ------------------------------------------------------------------

    def save_route(self, route: Route) -> bool:
        """
        Serialize a route to JSON.

        Args:
            route: Route to save.

        Returns:
            True on success, False on failure.
        """
        filepath = self.config.route_filepath
        try:
            data = {
                "saved_at": datetime.now().isoformat(),
                "step_count": len(route.steps),
                "route": route.to_dict(),
            }
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            logger.info(f"Route saved to {filepath} ({len(route.steps)} steps).")
            return True
        except IOError as e:
            logger.error(f"Failed to save route to {filepath}: {e}")
            return False

    def load_route(self, filepath: Optional[str] = None) -> Optional[Route]:
        """
        Load a previously saved route from JSON.

        Accepts both the wrapper written by save_route() and a bare
        Route.to_dict() document.

        Args:
            filepath: Path override; uses config default if omitted.

        Returns:
            Route, or None if loading failed.
        """
        path = filepath or self.config.route_filepath
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            route = Route.from_dict(data.get("route", data))
            logger.info(f"Route loaded from {path} ({len(route.steps)} steps).")
            return route
        except (IOError, AttributeError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Failed to load route from {path}: {e}")
            return None

    # ------------------------------------------------------------------
    # Session event logging
    # ------------------------------------------------------------------

    def log_event(self, event: TransitionEvent, state: NavigationState) -> None:
        """
        Append a single navigation event to the session log file.

        Args:
            event: What happened.
            state: Snapshot of the navigation state after the transition.
        """
        entry = {
            "timestamp": datetime.now().isoformat(),
            "event": event.value,
            "mode": state.mode.value,
            "lat": state.origin.lat if state.origin else None,
            "lon": state.origin.lon if state.origin else None,
            "step_index": state.current_step_index,
            "distance_to_next": state.distance_to_next_maneuver,
            "remaining_distance": state.remaining_distance,
            "remaining_duration": state.remaining_duration,
            "off_route": state.is_off_route,
            "rerouting": state.is_rerouting,
            "eta": state.eta.isoformat() if state.eta else None,
            "message": progress_message(state),
        }
        try:
            with open(self.config.events_filepath, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except IOError as e:
            logger.error(f"Failed to write event log: {e}")

    def render(self, event: TransitionEvent, state: NavigationState) -> None:
        if event in (TransitionEvent.PREVIEW, TransitionEvent.REROUTED) and state.route:
            self.save_route(state.route)
        self.log_event(event, state)
