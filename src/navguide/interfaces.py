# interfaces.py
# Contracts for the collaborators the guidance core talks to.

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from .models import Coord, NavigationState, Route, TransitionEvent


class RoutingService(ABC):
    """Computes routes; implementations raise RoutingFailure on failure."""

    @abstractmethod
    async def compute_route(
        self,
        origin: Coord,
        destination: Coord,
        waypoints: Optional[Sequence[Coord]] = None,
    ) -> Route:
        """Return a route from origin to destination through the waypoints."""
        pass


class RenderSink(ABC):
    """Receives the full navigation state after every transition."""

    @abstractmethod
    def render(self, event: TransitionEvent, state: NavigationState) -> None:
        """Draw the route, place the destination marker, move the camera."""
        pass
