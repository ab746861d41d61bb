# nav_config.py
# All tuneable constants in one place.
# Pass a NavConfig instance to every module that needs settings.

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


# ---------------------------------------------------------------------------
# Guidance thresholds (metres)
# ---------------------------------------------------------------------------

STEP_ADVANCE_THRESHOLD_M: float = 30.0
ARRIVAL_THRESHOLD_M: float = 30.0
OFF_ROUTE_THRESHOLD_M: float = 50.0

REROUTE_DEBOUNCE_S: float = 3.0

POLYLINE_MODES: frozenset = frozenset({"vertex", "segment"})

MAPBOX_BASE_URL: str = "https://api.mapbox.com"


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------

@dataclass
class NavConfig:
    # Progress tracking
    step_advance_threshold_m: float = STEP_ADVANCE_THRESHOLD_M
    arrival_threshold_m: float = ARRIVAL_THRESHOLD_M
    off_route_threshold_m: float = OFF_ROUTE_THRESHOLD_M
    polyline_mode: str = "vertex"          # "vertex" | "segment"

    # Rerouting
    reroute_debounce_s: float = REROUTE_DEBOUNCE_S

    # Directions service
    mapbox_base_url: str = MAPBOX_BASE_URL
    mapbox_profile: str = "driving"
    mapbox_access_token: Optional[str] = None
    request_timeout_s: float = 10.0

    # Logging
    log_dir: str = "."                     # directory for saved JSON files
    route_filename: str = "active_route.json"
    events_filename: str = "nav_session.jsonl"

    def __post_init__(self) -> None:
        if self.polyline_mode not in POLYLINE_MODES:
            raise ValueError(f"Unknown polyline mode: {self.polyline_mode!r}")
        if self.reroute_debounce_s < 0:
            raise ValueError("reroute_debounce_s must be >= 0")

    @property
    def route_filepath(self) -> str:
        return os.path.join(self.log_dir, self.route_filename)

    @property
    def events_filepath(self) -> str:
        return os.path.join(self.log_dir, self.events_filename)

    @classmethod
    def from_env(cls, **overrides) -> "NavConfig":
        """
        Build a config from environment variables (and a .env file if present).

        Recognised variables: MAPBOX_ACCESS_TOKEN, MAPBOX_PROFILE, NAVGUIDE_LOG_DIR.
        Keyword overrides win over the environment.
        """
        load_dotenv()
        values = {}
        token = os.getenv("MAPBOX_ACCESS_TOKEN")
        if token:
            values["mapbox_access_token"] = token
        profile = os.getenv("MAPBOX_PROFILE")
        if profile:
            values["mapbox_profile"] = profile
        log_dir = os.getenv("NAVGUIDE_LOG_DIR")
        if log_dir:
            values["log_dir"] = log_dir
        values.update(overrides)
        return cls(**values)
