import asyncio
import functools
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

import settings
from database import SessionLocal, get_db
from errors import PublishTimeoutError
from schemas import TripRead, TripRequestRead, TripRequestWrite, TripShareRead, TripWrite
from services import request_ledger, trip_catalog
from services.auth import AuthContext, get_auth_context

router = APIRouter(prefix="/trips", tags=["Trips"])


def _publish_in_own_session(auth: AuthContext, payload: TripWrite) -> TripRead:
    # runs in a worker thread that may outlive the request after a timeout
    db = SessionLocal()
    try:
        trip = trip_catalog.publish_trip(db, auth, payload)
        return TripRead.model_validate(trip)
    finally:
        db.close()


@router.post("/", response_model=TripRead, status_code=status.HTTP_201_CREATED)
async def publish_trip(payload: TripWrite, auth: AuthContext = Depends(get_auth_context)):
    """
    Publish a trip. The write races a bounded timer; on timeout the trip may
    still be created, so clients retry with the same client_token.
    """
    loop = asyncio.get_running_loop()
    try:
        return await asyncio.wait_for(
            loop.run_in_executor(None, functools.partial(_publish_in_own_session, auth, payload)),
            timeout=settings.PUBLISH_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        raise PublishTimeoutError(
            f"Tiempo de espera agotado ({settings.PUBLISH_TIMEOUT_SECONDS:g}s). Revisa tu conexión."
        )


@router.get("/", response_model=List[TripRead])
def list_open_trips(
    from_city: Optional[str] = Query(None, description="Ciudad de origen"),
    db: Session = Depends(get_db),
):
    return trip_catalog.list_open_trips(db, from_city)


@router.get("/mine", response_model=List[TripRead])
def list_my_trips(auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    return trip_catalog.list_driver_trips(db, auth)


@router.get("/{trip_id}", response_model=TripRead)
def get_trip(trip_id: int, db: Session = Depends(get_db)):
    return trip_catalog.get_trip(db, trip_id)


@router.get("/{trip_id}/share", response_model=TripShareRead)
def share_trip(trip_id: int, db: Session = Depends(get_db)):
    return trip_catalog.share_trip(trip_catalog.get_trip(db, trip_id))


@router.delete("/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_trip(trip_id: int, auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    trip_catalog.delete_trip(db, auth, trip_id)


@router.post("/{trip_id}/complete", response_model=TripRead)
def complete_trip(trip_id: int, auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    """Marcar el viaje como finalizado; habilita las reseñas"""
    return trip_catalog.complete_trip(db, auth, trip_id)


@router.post("/{trip_id}/requests", response_model=TripRequestRead, status_code=status.HTTP_201_CREATED)
def request_seat(
    trip_id: int,
    payload: Optional[TripRequestWrite] = None,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Solicitar un asiento en el viaje"""
    name = payload.passenger_name if payload else None
    return request_ledger.create_request(db, auth, trip_id, name)
