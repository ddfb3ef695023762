from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database import get_db
from schemas import HistoryTripRead, ReviewRead, ReviewWrite
from services import review_ledger
from services.auth import AuthContext, get_auth_context

router = APIRouter(prefix="/reviews", tags=["Reviews"])
history_router = APIRouter(prefix="/history", tags=["History"])


@router.post("/", response_model=ReviewRead, status_code=status.HTTP_201_CREATED)
def submit_review(payload: ReviewWrite, auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    """Calificar al conductor de un viaje finalizado"""
    return review_ledger.submit_review(db, auth, payload)


@history_router.get("/", response_model=List[HistoryTripRead])
def get_history(auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    """
    Completed trips: a driver sees their own with the passenger count, a
    passenger sees the ones they rode with a has_reviewed flag.
    """
    return review_ledger.list_history(db, auth)
