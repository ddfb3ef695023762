"""Review ledger: post-trip ratings and the reputation they feed."""
import logging
from typing import List

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from errors import AuthorizationError, DuplicateError, ValidationError
from models.Profile import Profile, ProfileRole
from models.Review import Review
from models.Trip import Trip, TripStatus
from models.TripRequest import TripRequest, RequestStatus
from schemas import DriverSummary, HistoryTripRead, ReviewWrite
from services.auth import AuthContext, load_profile
from services.trip_catalog import get_trip

logger = logging.getLogger("halador.reviews")

MIN_RATING = 1
MAX_RATING = 5


def submit_review(db: Session, auth: AuthContext, payload: ReviewWrite) -> Review:
    if not MIN_RATING <= payload.rating <= MAX_RATING:
        raise ValidationError("La calificación debe estar entre 1 y 5")

    trip = get_trip(db, payload.trip_id)
    if trip.status != TripStatus.COMPLETED:
        raise ValidationError("Solo se pueden calificar viajes finalizados")
    if payload.reviewee_id != trip.driver_id:
        raise ValidationError("Solo se puede calificar al conductor del viaje")

    rode = db.query(TripRequest).filter(
        TripRequest.trip_id == trip.id,
        TripRequest.passenger_id == auth.user_id,
        TripRequest.status == RequestStatus.ACCEPTED,
    ).first()
    if not rode:
        raise AuthorizationError("Solo los pasajeros del viaje pueden calificarlo")

    existing = db.query(Review).filter(
        Review.trip_id == trip.id,
        Review.reviewer_id == auth.user_id,
    ).first()
    if existing:
        raise DuplicateError("Ya calificaste este viaje")

    review = Review(
        trip_id=trip.id,
        reviewer_id=auth.user_id,
        reviewee_id=payload.reviewee_id,
        rating=payload.rating,
        comment=(payload.comment or "").strip() or None,
    )
    db.add(review)

    # SET expressions all read the pre-update row
    db.execute(
        update(Profile)
        .where(Profile.id == payload.reviewee_id)
        .values(
            rating_average=(Profile.rating_average * Profile.rating_count + payload.rating)
            / (Profile.rating_count + 1),
            rating_count=Profile.rating_count + 1,
        )
        .execution_options(synchronize_session=False)
    )
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateError("Ya calificaste este viaje") from exc

    db.refresh(review)
    logger.info("Review %s: %s rated %s with %d", review.id, auth.user_id, review.reviewee_id, review.rating)
    return review


def list_history(db: Session, auth: AuthContext) -> List[HistoryTripRead]:
    profile = load_profile(db, auth)

    if profile.role == ProfileRole.DRIVER:
        counts = (
            db.query(TripRequest.trip_id, func.count(TripRequest.id).label("passengers"))
            .filter(TripRequest.status == RequestStatus.ACCEPTED)
            .group_by(TripRequest.trip_id)
            .subquery()
        )
        rows = (
            db.query(Trip, counts.c.passengers)
            .outerjoin(counts, counts.c.trip_id == Trip.id)
            .filter(Trip.driver_id == profile.id, Trip.status == TripStatus.COMPLETED)
            .order_by(Trip.date.desc(), Trip.id.desc())
            .all()
        )
        return [
            HistoryTripRead(
                **_trip_fields(trip),
                passengers_count=count or 0,
            )
            for trip, count in rows
        ]

    requests = (
        db.query(TripRequest)
        .join(Trip, TripRequest.trip_id == Trip.id)
        .options(joinedload(TripRequest.trip).joinedload(Trip.driver))
        .filter(
            TripRequest.passenger_id == profile.id,
            TripRequest.status == RequestStatus.ACCEPTED,
            Trip.status == TripStatus.COMPLETED,
        )
        .order_by(Trip.date.desc(), TripRequest.id.desc())
        .all()
    )
    reviewed = {
        trip_id for (trip_id,) in db.query(Review.trip_id).filter(Review.reviewer_id == profile.id).all()
    }
    return [
        HistoryTripRead(
            **_trip_fields(r.trip),
            request_id=r.id,
            has_reviewed=r.trip_id in reviewed,
            driver=DriverSummary.model_validate(r.trip.driver),
        )
        for r in requests
    ]


def _trip_fields(trip: Trip) -> dict:
    return {
        "id": trip.id,
        "driver_id": trip.driver_id,
        "from_loc": trip.from_loc,
        "to_loc": trip.to_loc,
        "date": trip.date,
        "time": trip.time,
        "price": trip.price,
        "seats_available": trip.seats_available,
        "status": trip.status,
    }
