from models.Profile import Profile, ProfileRole, SubscriptionStatus
from models.Trip import Trip, TripStatus
from models.TripRequest import TripRequest, RequestStatus
from models.Review import Review

__all__ = [
    "Profile",
    "ProfileRole",
    "SubscriptionStatus",
    "Trip",
    "TripStatus",
    "TripRequest",
    "RequestStatus",
    "Review",
]
