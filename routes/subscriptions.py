from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from schemas import AdminStats, PaymentInstructions, PendingPaymentRead, SubscriptionRead
from services import subscription_gate
from services.auth import AuthContext, get_auth_context

router = APIRouter(prefix="/subscription", tags=["Subscription"])
admin_router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/payment-info", response_model=PaymentInstructions)
def payment_info():
    """Datos de pago Yape/Plin de la suscripción mensual"""
    return subscription_gate.payment_instructions()


@router.post("/report-payment", response_model=SubscriptionRead)
def report_payment(auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    """El conductor declara haber pagado; queda pendiente de validación"""
    return subscription_gate.report_payment(db, auth)


@admin_router.get("/payments", response_model=List[PendingPaymentRead])
def list_pending_payments(
    q: Optional[str] = Query(None, description="Filtrar por nombre o teléfono"),
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return subscription_gate.list_pending_payments(db, auth, q)


@admin_router.post("/payments/{user_id}/approve", response_model=SubscriptionRead)
def approve_payment(user_id: str, auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    return subscription_gate.approve_payment(db, auth, user_id)


@admin_router.post("/payments/{user_id}/reject", response_model=SubscriptionRead)
def reject_payment(user_id: str, auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    return subscription_gate.reject_payment(db, auth, user_id)


@admin_router.get("/stats", response_model=AdminStats)
def get_stats(auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    return subscription_gate.admin_stats(db, auth)
