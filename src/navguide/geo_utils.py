# geo_utils.py
# Pure mathematical / geographic helper functions.
# No side effects, no imports from other project modules except models.

import math
from typing import Sequence

import numpy as np
from shapely.geometry import LineString, Point

from .models import Coord


EARTH_RADIUS_M = 6_371_000.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in metres.

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Distance in metres.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance(a: Coord, b: Coord) -> float:
    """Great-circle distance between two coordinates in metres."""
    return haversine_distance(a.lat, a.lon, b.lat, b.lon)


def _vertex_distances(point: Coord, polyline: Sequence[Coord]) -> np.ndarray:
    """Haversine distance from point to every vertex, vectorised."""
    coords = np.array([(c.lat, c.lon) for c in polyline], dtype=float)
    lat = np.radians(coords[:, 0])
    lon = np.radians(coords[:, 1])
    p_lat = math.radians(point.lat)
    p_lon = math.radians(point.lon)
    a = (
        np.sin((lat - p_lat) / 2) ** 2
        + math.cos(p_lat) * np.cos(lat) * np.sin((lon - p_lon) / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


def _segment_distance(point: Coord, polyline: Sequence[Coord]) -> float:
    """
    Point-to-segment distance on a local equirectangular projection.

    Good to well under a metre for the few-hundred-metre scale that matters
    for off-route decisions.
    """
    k_lat = math.pi * EARTH_RADIUS_M / 180.0
    k_lon = k_lat * math.cos(math.radians(point.lat))
    line = LineString(
        [((c.lon - point.lon) * k_lon, (c.lat - point.lat) * k_lat) for c in polyline]
    )
    return line.distance(Point(0.0, 0.0))


def distance_to_polyline(point: Coord, polyline: Sequence[Coord], mode: str = "vertex") -> float:
    """
    Minimum distance from a point to a route polyline in metres.

    The default "vertex" mode is the minimum distance to any vertex, not a
    true projection onto the segments, so it over-estimates on long straight
    segments. "segment" projects onto the segments instead.

    Returns:
        Distance in metres, or inf if the polyline has fewer than 2 points.
    """
    if len(polyline) < 2:
        return math.inf
    if mode == "segment":
        return _segment_distance(point, polyline)
    if mode != "vertex":
        raise ValueError(f"Unknown polyline mode: {mode!r}")
    return float(_vertex_distances(point, polyline).min())


def path_length(points: Sequence[Coord]) -> float:
    """Sum of consecutive great-circle distances along a path, in metres."""
    return sum(distance(a, b) for a, b in zip(points, points[1:]))


def calculate_bearing(a: Coord, b: Coord) -> float:
    """
    Forward azimuth (bearing) from a to b in degrees [0, 360).

    Args:
        a: Origin.
        b: Destination.

    Returns:
        Bearing in degrees.
    """
    rlat1, rlon1 = math.radians(a.lat), math.radians(a.lon)
    rlat2, rlon2 = math.radians(b.lat), math.radians(b.lon)
    d_lon = rlon2 - rlon1
    y = math.sin(d_lon) * math.cos(rlat2)
    x = math.cos(rlat1) * math.sin(rlat2) - math.sin(rlat1) * math.cos(rlat2) * math.cos(d_lon)
    return (math.degrees(math.atan2(y, x)) + 360) % 360
