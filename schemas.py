# schemas.py (Pydantic v2)
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from datetime import date as date_type, time as time_type

from models.Profile import ProfileRole, SubscriptionStatus
from models.Trip import TripStatus
from models.TripRequest import RequestStatus


# ---------- Profiles ----------
class ProfileBase(BaseModel):
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    phone: Optional[str] = None

class ProfileWrite(ProfileBase):
    role: ProfileRole = ProfileRole.PASSENGER

class ProfileUpdate(BaseModel):
    """Partial update; role and subscription fields are not editable here"""
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    phone: Optional[str] = None
    car_brand: Optional[str] = None
    car_model: Optional[str] = None
    car_color: Optional[str] = None
    car_plate: Optional[str] = None

    class Config:
        extra = "forbid"

class VehicleInfo(BaseModel):
    car_brand: Optional[str] = None
    car_model: Optional[str] = None
    car_color: Optional[str] = None
    car_plate: Optional[str] = None

class PublicProfileRead(VehicleInfo):
    """What other users may see: no phone, no subscription details"""
    id: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: ProfileRole
    is_verified: bool
    rating_average: float
    rating_count: int
    trips_completed: int

    class Config:
        from_attributes = True

class ProfileRead(PublicProfileRead):
    phone: Optional[str] = None
    subscription_status: SubscriptionStatus
    subscription_end_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

class SessionRead(BaseModel):
    profile: ProfileRead
    repaired: bool  # True when the profile row had to be recreated

class FCMTokenUpdate(BaseModel):
    fcm_token: str


# ---------- Trips ----------
class TripWrite(BaseModel):
    # Validated by the trip catalog so bad input maps to ValidationError
    from_loc: str = ""
    to_loc: str = ""
    date: Optional[date_type] = None
    time: Optional[time_type] = None
    price: Optional[float] = None
    seats: Optional[int] = None
    features: List[str] = []
    client_token: Optional[str] = None  # idempotency key, e.g. a UUID generated by the app

class DriverSummary(VehicleInfo):
    id: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    rating_average: float
    rating_count: int

    class Config:
        from_attributes = True

class TripRead(BaseModel):
    id: int
    driver_id: str
    from_loc: str
    to_loc: str
    date: date_type
    time: time_type
    price: float
    seats_total: int
    seats_available: int
    status: TripStatus
    features: List[str] = []
    driver_lat: Optional[float] = None
    driver_lng: Optional[float] = None
    created_at: datetime
    driver: Optional[DriverSummary] = None

    class Config:
        from_attributes = True

class TripShareRead(BaseModel):
    text: str
    url: str


# ---------- Trip Requests ----------
class TripRequestWrite(BaseModel):
    passenger_name: Optional[str] = None

class TripRequestRead(BaseModel):
    id: int
    trip_id: int
    passenger_id: str
    passenger_name: str
    status: RequestStatus
    created_at: datetime
    responded_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class TripSummary(BaseModel):
    id: int
    driver_id: str
    from_loc: str
    to_loc: str
    date: date_type
    time: time_type
    price: float
    seats_available: int
    status: TripStatus

    class Config:
        from_attributes = True

class DriverRequestRead(TripRequestRead):
    trip: TripSummary
    passenger_phone: Optional[str] = None  # only once accepted

class DriverContact(VehicleInfo):
    id: str
    full_name: Optional[str] = None
    phone: Optional[str] = None  # only once accepted

class PassengerRequestRead(TripRequestRead):
    trip: TripSummary
    driver: DriverContact

class TicketRead(BaseModel):
    request_id: int
    passenger_name: str
    from_loc: str
    to_loc: str
    date: date_type
    time: time_type
    price: float
    driver: DriverContact


# ---------- Reviews ----------
class ReviewWrite(BaseModel):
    trip_id: int
    reviewee_id: str
    rating: int
    comment: Optional[str] = None

class ReviewRead(BaseModel):
    id: int
    trip_id: int
    reviewer_id: str
    reviewee_id: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

class HistoryTripRead(TripSummary):
    passengers_count: Optional[int] = None  # driver view
    request_id: Optional[int] = None  # passenger view
    has_reviewed: Optional[bool] = None  # passenger view
    driver: Optional[DriverSummary] = None


# ---------- Subscription ----------
class SubscriptionRead(BaseModel):
    id: str
    subscription_status: SubscriptionStatus
    subscription_end_date: Optional[datetime] = None

    class Config:
        from_attributes = True

class PendingPaymentRead(BaseModel):
    id: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    car_plate: Optional[str] = None
    subscription_status: SubscriptionStatus
    updated_at: datetime

    class Config:
        from_attributes = True

class PaymentInstructions(BaseModel):
    price: str
    currency: str = "PEN"
    period_days: int
    yape: str
    plin: str

class AdminStats(BaseModel):
    total_users: int
    drivers: int
    open_trips: int
    pending_payments: int
