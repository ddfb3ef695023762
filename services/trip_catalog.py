"""Trip catalog: publish, list, complete and retire trip offers."""
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from urllib.parse import quote

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import settings
from errors import AuthorizationError, GateError, NotFoundError, StateError, ValidationError
from models.Profile import Profile, ProfileRole, SubscriptionStatus
from models.Trip import Trip, TripStatus
from models.TripRequest import TripRequest, RequestStatus
from schemas import TripRead, TripShareRead, TripWrite
from services.auth import AuthContext, load_profile
from services.change_feed import ChangeEvent, DELETE, INSERT, UPDATE, change_feed, row_snapshot
from services.profiles import profile_event
from services.query_cache import QueryCache
from utils.geocoding_helpers import resolve_coordinates

logger = logging.getLogger("halador.trips")

TRIP_FEATURES = {"ac", "music", "trunk", "pet", "smoke_free"}
PERU_TZ = timezone(timedelta(hours=-5))  # America/Lima, sin horario de verano

TRIP_EVENT_COLUMNS = ("id", "driver_id", "from_loc", "to_loc", "status", "seats_available", "seats_total")
REQUEST_EVENT_COLUMNS = ("id", "trip_id", "passenger_id", "passenger_name", "status")

open_trips_cache = QueryCache(lambda: settings.OPEN_TRIPS_CACHE_SECONDS)
open_trips_cache.bind(change_feed, "trips")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def today_in_peru():
    return datetime.now(PERU_TZ).date()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def trip_event(event_type: str, trip: Trip, old: dict = None) -> None:
    snapshot = row_snapshot(trip, TRIP_EVENT_COLUMNS)
    change_feed.publish(ChangeEvent(
        table="trips",
        event_type=event_type,
        new={} if event_type == DELETE else snapshot,
        old=snapshot if event_type == DELETE else (old or {}),
    ))


def request_event(event_type: str, req: TripRequest, driver_id: str, old: dict = None) -> None:
    snapshot = row_snapshot(req, REQUEST_EVENT_COLUMNS)
    snapshot["driver_id"] = driver_id
    change_feed.publish(ChangeEvent(
        table="trip_requests",
        event_type=event_type,
        new={} if event_type == DELETE else snapshot,
        old=snapshot if event_type == DELETE else (old or {}),
    ))


def validate_trip_payload(payload: TripWrite) -> List[str]:
    """Return the normalised feature list or raise ValidationError."""
    if not payload.from_loc.strip() or not payload.to_loc.strip() or payload.date is None or payload.time is None:
        raise ValidationError("Por favor completa todos los campos")
    if payload.price is None or not math.isfinite(payload.price) or payload.price <= 0:
        raise ValidationError("El precio debe ser mayor a 0")
    if payload.seats is None or payload.seats < 1:
        raise ValidationError("Debe haber al menos 1 asiento")

    unknown = set(payload.features) - TRIP_FEATURES
    if unknown:
        raise ValidationError(f"Características desconocidas: {', '.join(sorted(unknown))}")
    return sorted(set(payload.features))


def check_publish_gate(db: Session, profile: Profile, now: datetime) -> None:
    """Only drivers with an active, unexpired subscription may publish."""
    if profile.role != ProfileRole.DRIVER:
        raise AuthorizationError("Solo los conductores pueden publicar viajes")

    if profile.subscription_status != SubscriptionStatus.ACTIVE:
        raise GateError("Para publicar viajes necesitas una suscripción activa")

    end_date = as_utc(profile.subscription_end_date)
    if end_date is None or end_date <= now:
        # expiry is only enforced here, there is no background job
        logger.info("Subscription of %s expired at %s", profile.id, end_date)
        old = {"subscription_status": profile.subscription_status.value}
        profile.subscription_status = SubscriptionStatus.INACTIVE
        profile.subscription_end_date = None
        db.commit()
        profile_event(UPDATE, profile, old=old)
        raise GateError("Tu suscripción venció. Renueva el pago para publicar")


def _find_by_client_token(db: Session, driver_id: str, client_token: str) -> Optional[Trip]:
    return db.query(Trip).filter(Trip.driver_id == driver_id, Trip.client_token == client_token).first()


def publish_trip(db: Session, auth: AuthContext, payload: TripWrite) -> Trip:
    features = validate_trip_payload(payload)
    profile = load_profile(db, auth)

    if payload.client_token:
        existing = _find_by_client_token(db, profile.id, payload.client_token)
        if existing:
            logger.info("Publish retry for token %s returns trip %s", payload.client_token, existing.id)
            return existing

    check_publish_gate(db, profile, utcnow())

    from_loc = payload.from_loc.strip()
    coords = resolve_coordinates(from_loc, use_geocoder=settings.GEOCODING_ENABLED)
    trip = Trip(
        driver_id=profile.id,
        from_loc=from_loc,
        to_loc=payload.to_loc.strip(),
        date=payload.date,
        time=payload.time,
        price=payload.price,
        seats_total=payload.seats,
        seats_available=payload.seats,
        status=TripStatus.OPEN,
        features=features,
        driver_lat=coords[0] if coords else None,
        driver_lng=coords[1] if coords else None,
        client_token=payload.client_token,
    )
    db.add(trip)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = _find_by_client_token(db, profile.id, payload.client_token) if payload.client_token else None
        if existing is None:
            raise
        return existing
    db.refresh(trip)
    logger.info("Trip %s published by %s (%s -> %s)", trip.id, trip.driver_id, trip.from_loc, trip.to_loc)
    trip_event(INSERT, trip)
    return trip


def _query_open_trips(db: Session, from_city: Optional[str], today) -> List[TripRead]:
    query = db.query(Trip).filter(Trip.status == TripStatus.OPEN, Trip.date >= today)
    if from_city:
        query = query.filter(func.lower(Trip.from_loc) == from_city.strip().lower())
    trips = query.order_by(Trip.date.asc(), Trip.time.asc(), Trip.id.asc()).all()
    return [TripRead.model_validate(t) for t in trips]


def list_open_trips(db: Session, from_city: Optional[str] = None) -> List[TripRead]:
    today = today_in_peru()
    key = ((from_city or "").strip().lower(), today)
    return open_trips_cache.get_or_load(key, lambda: _query_open_trips(db, from_city, today))


def get_trip(db: Session, trip_id: int) -> Trip:
    trip = db.query(Trip).filter(Trip.id == trip_id).first()
    if not trip:
        raise NotFoundError("Viaje no encontrado")
    return trip


def get_owned_trip(db: Session, auth: AuthContext, trip_id: int) -> Trip:
    trip = get_trip(db, trip_id)
    if trip.driver_id != auth.user_id:
        raise AuthorizationError("Este viaje no te pertenece")
    return trip


def list_driver_trips(db: Session, auth: AuthContext) -> List[Trip]:
    return (
        db.query(Trip)
        .filter(Trip.driver_id == auth.user_id)
        .order_by(Trip.created_at.desc(), Trip.id.desc())
        .all()
    )


def delete_trip(db: Session, auth: AuthContext, trip_id: int) -> None:
    """Hard delete; outstanding requests go with the trip."""
    trip = get_owned_trip(db, auth, trip_id)
    if trip.status == TripStatus.COMPLETED:
        raise StateError("Un viaje finalizado no se puede eliminar")

    dropped = [r for r in trip.requests if r.status != RequestStatus.REJECTED]
    dropped_snapshots = [row_snapshot(r, REQUEST_EVENT_COLUMNS) for r in dropped]
    trip_snapshot = row_snapshot(trip, TRIP_EVENT_COLUMNS)

    db.delete(trip)
    db.commit()
    logger.info("Trip %s deleted by %s (%d requests dropped)", trip_id, auth.user_id, len(dropped))

    change_feed.publish(ChangeEvent(table="trips", event_type=DELETE, old=trip_snapshot))
    for snapshot in dropped_snapshots:
        snapshot["driver_id"] = auth.user_id
        change_feed.publish(ChangeEvent(table="trip_requests", event_type=DELETE, old=snapshot))


def complete_trip(db: Session, auth: AuthContext, trip_id: int) -> Trip:
    trip = get_owned_trip(db, auth, trip_id)
    if trip.status not in (TripStatus.OPEN, TripStatus.FULL):
        raise StateError("Solo se pueden finalizar viajes abiertos o llenos")

    old = {"status": trip.status.value}
    trip.status = TripStatus.COMPLETED

    riders = select(TripRequest.passenger_id).where(
        TripRequest.trip_id == trip.id,
        TripRequest.status == RequestStatus.ACCEPTED,
    )
    db.execute(
        update(Profile)
        .where((Profile.id == trip.driver_id) | Profile.id.in_(riders))
        .values(trips_completed=Profile.trips_completed + 1)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(trip)
    logger.info("Trip %s completed", trip.id)
    trip_event(UPDATE, trip, old=old)
    return trip


def _format_price(price: float) -> str:
    return f"{price:.0f}" if float(price).is_integer() else f"{price:.2f}"


def share_trip(trip: Trip) -> TripShareRead:
    text = (
        f"¡Hola! Viajo de {trip.from_loc} a {trip.to_loc} el {trip.date.isoformat()} "
        f"a las {trip.time.strftime('%H:%M')}. Precio: S/ {_format_price(trip.price)}. "
        f"Reserva aquí: {settings.SHARE_BASE_URL}"
    )
    return TripShareRead(text=text, url=f"https://wa.me/?text={quote(text)}")
