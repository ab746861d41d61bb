# exceptions.py
# Error taxonomy for the guidance core.


class NavigationError(Exception):
    """Base class for every error raised by navguide."""
    pass


class RoutingFailure(NavigationError):
    """A route request to the directions service failed."""
    pass


class InvalidTransition(NavigationError):
    """Raised when an operation is not allowed in the current navigation mode."""
    pass
