from . import profiles
from . import trips
from . import trip_requests
from . import reviews
from . import subscriptions

__all__ = [
    "profiles",
    "trips",
    "trip_requests",
    "reviews",
    "subscriptions",
]
