# directions.py
# Mapbox Directions adapter.
# Sole responsibility: talk to the Directions API over HTTP and return Route
# objects. Handles coordinate ordering (Mapbox uses lon,lat), URL
# construction, timeouts and response parsing. No guidance logic here.

import asyncio
import functools
import logging
from typing import List, Optional, Sequence

import requests

from .exceptions import RoutingFailure
from .interfaces import RoutingService
from .models import Coord, Maneuver, Route, RouteStep
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


def format_coordinates(coords: Sequence[Coord]) -> str:
    """Convert (lat, lon) coordinates to Mapbox format 'lon,lat;lon,lat;...'"""
    return ";".join(f"{c.lon},{c.lat}" for c in coords)


def _coord(lon_lat: Sequence[float]) -> Coord:
    return Coord(lat=float(lon_lat[1]), lon=float(lon_lat[0]))


def parse_directions_response(data: dict) -> Route:
    """
    Convert a Directions API JSON body into a Route.

    Only the first route and its first leg are used.

    Raises:
        RoutingFailure: the body has no usable route.
    """
    if data.get("code") not in (None, "Ok"):
        raise RoutingFailure(f"Directions error: {data.get('message', data.get('code'))}")
    routes = data.get("routes") or []
    if not routes:
        raise RoutingFailure("No route found between these points.")

    route = routes[0]
    try:
        legs = route.get("legs") or []
        raw_steps = legs[0].get("steps", []) if legs else []
        steps: List[RouteStep] = []
        for step in raw_steps:
            maneuver = step["maneuver"]
            steps.append(RouteStep(
                distance=float(step["distance"]),
                duration=float(step["duration"]),
                instruction=maneuver.get("instruction") or "",
                maneuver=Maneuver(
                    type=maneuver["type"],
                    modifier=maneuver.get("modifier"),
                    location=_coord(maneuver["location"]),
                ),
            ))
        geometry = [_coord(c) for c in route["geometry"]["coordinates"]]
        return Route(
            distance=float(route["distance"]),
            duration=float(route["duration"]),
            steps=tuple(steps),
            geometry=tuple(geometry),
        )
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise RoutingFailure(f"Malformed directions response: {e}") from e


class MapboxDirectionsClient(RoutingService):
    """
    Mapbox Directions v5 client.

    Args:
        config:  NavConfig with access token, profile, base URL and timeout.
        session: Optional requests.Session (connection reuse, tests).
    """

    def __init__(self, config: Optional[NavConfig] = None,
                 session: Optional[requests.Session] = None) -> None:
        self.config = config or NavConfig()
        self._session = session or requests.Session()

    def _url(self, coords: Sequence[Coord]) -> str:
        base = self.config.mapbox_base_url.rstrip("/")
        return f"{base}/directions/v5/mapbox/{self.config.mapbox_profile}/{format_coordinates(coords)}"

    def fetch_route(
        self,
        origin: Coord,
        destination: Coord,
        waypoints: Optional[Sequence[Coord]] = None,
    ) -> Route:
        """Blocking request for a route from origin to destination."""
        token = self.config.mapbox_access_token
        if not token:
            raise RoutingFailure("Mapbox access token not configured.")

        coords = [origin, *(waypoints or []), destination]
        params = {
            "access_token": token,
            "geometries": "geojson",
            "steps": "true",
            "overview": "full",
            "alternatives": "false",
        }
        try:
            response = self._session.get(
                self._url(coords), params=params, timeout=self.config.request_timeout_s
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise RoutingFailure(f"Directions request failed: {e}") from e
        except ValueError as e:
            raise RoutingFailure(f"Directions response is not JSON: {e}") from e

        route = parse_directions_response(data)
        logger.info(
            f"Route computed: {route.distance:.0f} m, {route.duration:.0f} s, "
            f"{len(route.steps)} steps."
        )
        return route

    async def compute_route(
        self,
        origin: Coord,
        destination: Coord,
        waypoints: Optional[Sequence[Coord]] = None,
    ) -> Route:
        loop = asyncio.get_running_loop()
        call = functools.partial(self.fetch_route, origin, destination, waypoints)
        return await loop.run_in_executor(None, call)
