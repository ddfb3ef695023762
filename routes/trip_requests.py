from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database import get_db
from schemas import DriverRequestRead, PassengerRequestRead, TicketRead, TripRequestRead
from services import request_ledger
from services.auth import AuthContext, get_auth_context

router = APIRouter(prefix="/trip-requests", tags=["Trip Requests"])


@router.get("/driver", response_model=List[DriverRequestRead])
def list_driver_requests(auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    """Solicitudes pendientes y aceptadas de mis viajes"""
    return request_ledger.list_requests_for_driver(db, auth)


@router.get("/mine", response_model=List[PassengerRequestRead])
def list_my_requests(auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    return request_ledger.list_requests_for_passenger(db, auth)


@router.post("/{request_id}/accept", response_model=TripRequestRead, status_code=status.HTTP_200_OK)
def accept_request(request_id: int, auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    """Aceptar una solicitud (descuenta un asiento)"""
    return request_ledger.accept_request(db, auth, request_id)


@router.post("/{request_id}/reject", response_model=TripRequestRead, status_code=status.HTTP_200_OK)
def reject_request(request_id: int, auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    """Rechazar una solicitud"""
    return request_ledger.reject_request(db, auth, request_id)


@router.get("/{request_id}/ticket", response_model=TicketRead)
def get_ticket(request_id: int, auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    return request_ledger.get_ticket(db, auth, request_id)
