# main.py
# Entry point: simulates a GPS loop feeding positions into NavigationSession.
# In production, replace simulate_fixes() with your real location source.
#
# Usage:
#   navguide --route route.json                      (route saved by NavLogger)
#   navguide --origin 39.9240,32.8453 --destination 39.9210,32.8530
#                                                     (needs MAPBOX_ACCESS_TOKEN)

import argparse
import asyncio
import logging
import sys
import time
from typing import Iterator, List, Optional

from .directions import MapboxDirectionsClient
from .exceptions import RoutingFailure
from .formatting import progress_message
from .geo_utils import distance, path_length
from .models import Coord, Destination, NavigationMode, PositionSample, Route
from .nav_config import NavConfig
from .nav_logger import NavLogger
from .navigator import NavigationSession


def _parse_coord(text: str) -> Coord:
    lat, lon = (float(v) for v in text.split(","))
    return Coord(lat, lon)


def simulate_fixes(route: Route, spacing_m: float = 10.0) -> Iterator[PositionSample]:
    """Walk the route geometry, emitting a fix roughly every spacing_m metres."""
    t = time.time()
    points: List[Coord] = list(route.geometry)
    yield PositionSample(coord=points[0], timestamp=t)
    for a, b in zip(points, points[1:]):
        n = max(1, int(distance(a, b) // spacing_m))
        for i in range(1, n + 1):
            f = i / n
            t += 1.0
            yield PositionSample(
                coord=Coord(a.lat + (b.lat - a.lat) * f, a.lon + (b.lon - a.lon) * f),
                timestamp=t,
            )


async def run(args: argparse.Namespace) -> int:
    overrides = {"log_dir": args.log_dir} if args.log_dir else {}
    config = NavConfig.from_env(**overrides)
    client = MapboxDirectionsClient(config)
    nav_log = NavLogger(config)

    session = NavigationSession(client, config)
    session.add_sink(nav_log)
    session.add_sink(lambda event, state: print(f"  [{event.name}] {progress_message(state)}"))

    route: Optional[Route]
    if args.route:
        route = nav_log.load_route(args.route)
        if route is None:
            print(f"[Main] Could not read route from {args.route}")
            return 1
        origin = route.geometry[0]
        target = args.destination or route.steps[-1].maneuver.location
    else:
        if not (args.origin and args.destination):
            print("[Main] Give --route, or both --origin and --destination.")
            return 2
        origin, target = args.origin, args.destination
        try:
            route = await session.plan(origin, target)
        except RoutingFailure as e:
            print(f"[Main] Could not start navigation: {e}")
            return 1

    session.begin(route, Destination(target, args.name), origin)

    print(f"\n--- GPS Loop Active ({path_length(route.geometry):.0f} m of route line) ---")
    for sample in simulate_fixes(route):
        session.update(sample)
        if session.state.mode is NavigationMode.IDLE:
            print("  ✓  Destination reached. Navigation ended.")
            break
        # Simulate GPS poll interval
        await asyncio.sleep(args.interval)
    else:
        session.end()

    session.close()
    print("\n--- Session complete ---")
    print(f"    Log files written to: {config.log_dir}/")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Simulated turn-by-turn guidance session.")
    parser.add_argument("--route", help="Route JSON file to replay")
    parser.add_argument("--origin", type=_parse_coord, help="lat,lon")
    parser.add_argument("--destination", type=_parse_coord, help="lat,lon")
    parser.add_argument("--name", default="Destination", help="Destination display name")
    parser.add_argument("--interval", type=float, default=0.05, help="Seconds between fixes")
    parser.add_argument("--log-dir", help="Directory for route and event logs")
    args = parser.parse_args(argv)

    # ------------------------------------------------------------------
    # Logging setup: configure once here, all modules inherit
    # ------------------------------------------------------------------
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
