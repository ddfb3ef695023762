"""
Request ledger: passenger booking requests against a trip's seat inventory.

Accepting a request is the one contended write in the system. It runs as a
single transaction of conditional UPDATEs so the store serialises concurrent
accepts on the trip row: the seat decrement only matches while
seats_available > 0, and the loser rolls back its status flip.
"""
import logging
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload

from errors import (
    AuthorizationError, CapacityError, DuplicateError, NotFoundError, StateError, ValidationError,
)
from models.Profile import Profile
from models.Trip import Trip, TripStatus
from models.TripRequest import TripRequest, RequestStatus
from schemas import (
    DriverContact, DriverRequestRead, PassengerRequestRead, TicketRead, TripSummary,
)
from services.auth import AuthContext
from services.change_feed import INSERT, UPDATE
from services.trip_catalog import get_trip, request_event, trip_event, utcnow

logger = logging.getLogger("halador.requests")

DEFAULT_PASSENGER_NAME = "Pasajero"


def create_request(
    db: Session,
    auth: Optional[AuthContext],
    trip_id: int,
    passenger_name: Optional[str] = None,
) -> TripRequest:
    """Queue a pending request; seats are only checked when the driver accepts."""
    if auth is None or not auth.user_id:
        raise ValidationError("Inicia sesión para reservar")
    passenger = db.query(Profile).filter(Profile.id == auth.user_id).first()
    if not passenger:
        raise ValidationError("Inicia sesión para reservar")

    trip = get_trip(db, trip_id)
    if trip.driver_id == passenger.id:
        raise ValidationError("No puedes reservar tu propio viaje")
    if trip.status != TripStatus.OPEN:
        raise StateError("Este viaje ya no acepta solicitudes")

    existing = db.query(TripRequest).filter(
        TripRequest.trip_id == trip_id,
        TripRequest.passenger_id == passenger.id,
        TripRequest.status.in_([RequestStatus.PENDING, RequestStatus.ACCEPTED]),
    ).first()
    if existing:
        raise DuplicateError("Ya tienes una solicitud para este viaje")

    name = (passenger_name or "").strip() or passenger.full_name or DEFAULT_PASSENGER_NAME
    req = TripRequest(
        trip_id=trip_id,
        passenger_id=passenger.id,
        passenger_name=name,
        status=RequestStatus.PENDING,
    )
    db.add(req)
    db.commit()
    db.refresh(req)
    logger.info("Request %s created on trip %s by %s", req.id, trip_id, passenger.id)
    request_event(INSERT, req, trip.driver_id)
    return req


def _get_request(db: Session, request_id: int) -> TripRequest:
    req = (
        db.query(TripRequest)
        .options(joinedload(TripRequest.trip))
        .filter(TripRequest.id == request_id)
        .first()
    )
    if not req:
        raise NotFoundError("Solicitud no encontrada")
    return req


def _get_driver_request(db: Session, auth: AuthContext, request_id: int) -> TripRequest:
    req = _get_request(db, request_id)
    if req.trip.driver_id != auth.user_id:
        raise AuthorizationError("Esta solicitud no pertenece a tus viajes")
    if req.status != RequestStatus.PENDING:
        raise StateError("Esta solicitud ya fue respondida")
    return req


def accept_request(db: Session, auth: AuthContext, request_id: int) -> TripRequest:
    req = _get_driver_request(db, auth, request_id)
    trip_id = req.trip_id

    flipped = db.execute(
        update(TripRequest)
        .where(TripRequest.id == request_id, TripRequest.status == RequestStatus.PENDING)
        .values(status=RequestStatus.ACCEPTED, responded_at=utcnow())
        .execution_options(synchronize_session=False)
    ).rowcount
    if not flipped:
        db.rollback()
        raise StateError("Esta solicitud ya fue respondida")

    reserved = db.execute(
        update(Trip)
        .where(
            Trip.id == trip_id,
            Trip.driver_id == auth.user_id,
            Trip.status == TripStatus.OPEN,
            Trip.seats_available > 0,
        )
        .values(seats_available=Trip.seats_available - 1)
        .execution_options(synchronize_session=False)
    ).rowcount
    if not reserved:
        db.rollback()
        raise CapacityError("No quedan asientos disponibles")

    db.execute(
        update(Trip)
        .where(Trip.id == trip_id, Trip.status == TripStatus.OPEN, Trip.seats_available == 0)
        .values(status=TripStatus.FULL)
        .execution_options(synchronize_session=False)
    )
    db.commit()

    db.refresh(req)
    trip = get_trip(db, trip_id)
    logger.info("Request %s accepted; trip %s has %d seats left", request_id, trip_id, trip.seats_available)
    request_event(UPDATE, req, trip.driver_id, old={"status": RequestStatus.PENDING.value})
    trip_event(UPDATE, trip)
    return req


def reject_request(db: Session, auth: AuthContext, request_id: int) -> TripRequest:
    req = _get_driver_request(db, auth, request_id)

    flipped = db.execute(
        update(TripRequest)
        .where(TripRequest.id == request_id, TripRequest.status == RequestStatus.PENDING)
        .values(status=RequestStatus.REJECTED, responded_at=utcnow())
        .execution_options(synchronize_session=False)
    ).rowcount
    if not flipped:
        db.rollback()
        raise StateError("Esta solicitud ya fue respondida")
    db.commit()

    db.refresh(req)
    logger.info("Request %s rejected", request_id)
    request_event(UPDATE, req, auth.user_id, old={"status": RequestStatus.PENDING.value})
    return req


def _driver_contact(driver: Profile, reveal_phone: bool) -> DriverContact:
    return DriverContact(
        id=driver.id,
        full_name=driver.full_name,
        phone=driver.phone if reveal_phone else None,
        car_brand=driver.car_brand,
        car_model=driver.car_model,
        car_color=driver.car_color,
        car_plate=driver.car_plate,
    )


def list_requests_for_driver(db: Session, auth: AuthContext) -> List[DriverRequestRead]:
    rows = (
        db.query(TripRequest)
        .join(Trip, TripRequest.trip_id == Trip.id)
        .options(joinedload(TripRequest.trip), joinedload(TripRequest.passenger))
        .filter(Trip.driver_id == auth.user_id, TripRequest.status != RequestStatus.REJECTED)
        .order_by(TripRequest.created_at.desc(), TripRequest.id.desc())
        .all()
    )

    result = []
    for r in rows:
        accepted = r.status == RequestStatus.ACCEPTED
        result.append(DriverRequestRead(
            id=r.id,
            trip_id=r.trip_id,
            passenger_id=r.passenger_id,
            passenger_name=r.passenger_name,
            status=r.status,
            created_at=r.created_at,
            responded_at=r.responded_at,
            trip=TripSummary.model_validate(r.trip),
            # contacto del pasajero solo tras aceptar
            passenger_phone=r.passenger.phone if accepted and r.passenger else None,
        ))
    return result


def list_requests_for_passenger(db: Session, auth: AuthContext) -> List[PassengerRequestRead]:
    rows = (
        db.query(TripRequest)
        .options(joinedload(TripRequest.trip).joinedload(Trip.driver))
        .filter(TripRequest.passenger_id == auth.user_id)
        .order_by(TripRequest.created_at.desc(), TripRequest.id.desc())
        .all()
    )

    return [
        PassengerRequestRead(
            id=r.id,
            trip_id=r.trip_id,
            passenger_id=r.passenger_id,
            passenger_name=r.passenger_name,
            status=r.status,
            created_at=r.created_at,
            responded_at=r.responded_at,
            trip=TripSummary.model_validate(r.trip),
            driver=_driver_contact(r.trip.driver, r.status == RequestStatus.ACCEPTED),
        )
        for r in rows
    ]


def get_ticket(db: Session, auth: AuthContext, request_id: int) -> TicketRead:
    req = _get_request(db, request_id)
    if req.passenger_id != auth.user_id:
        raise AuthorizationError("Esta solicitud no es tuya")
    if req.status != RequestStatus.ACCEPTED:
        raise StateError("El boleto está disponible cuando el conductor acepta")

    trip = req.trip
    return TicketRead(
        request_id=req.id,
        passenger_name=req.passenger_name,
        from_loc=trip.from_loc,
        to_loc=trip.to_loc,
        date=trip.date,
        time=trip.time,
        price=trip.price,
        driver=_driver_contact(trip.driver, True),
    )
