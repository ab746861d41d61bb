# formatting.py
# Human-readable distances, durations and status lines.

from .models import NavigationMode, NavigationState


def format_distance(meters: float) -> str:
    if meters < 1000:
        return f"{round(meters)}m"
    return f"{meters / 1000:.2f}km"


def format_duration(seconds: float) -> str:
    seconds = int(seconds)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def progress_message(state: NavigationState) -> str:
    """One-line summary of the guidance state, for logs and consoles."""
    if state.mode is NavigationMode.IDLE:
        return "Navigation is not active."
    if state.mode is NavigationMode.PREVIEW:
        return (
            f"Preview: {format_distance(state.remaining_distance)}, "
            f"{format_duration(state.remaining_duration)}."
        )
    if state.is_rerouting:
        return "Recalculating route..."
    if state.is_off_route:
        return "You are off the route."

    eta = f", ETA {state.eta:%H:%M}" if state.eta else ""
    return (
        f"In {format_distance(state.distance_to_next_maneuver)}: {state.current_instruction} "
        f"({format_distance(state.remaining_distance)} left{eta})"
    )
