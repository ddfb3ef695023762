"""
Subscription gate over Profile.subscription_status.

    inactive --reportPayment--> pending --approve--> active
                                pending --reject---> inactive
    active --(end date passed, checked when publishing)--> inactive

Payments happen off-platform (Yape/Plin); an admin confirms them by hand.
"""
import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

import settings
from errors import AuthorizationError, StateError
from models.Profile import Profile, ProfileRole, SubscriptionStatus
from models.Trip import Trip, TripStatus
from schemas import AdminStats, PaymentInstructions
from services.auth import AuthContext, load_profile, require_role
from services.change_feed import UPDATE
from services.profiles import get_profile, profile_event
from services.trip_catalog import as_utc, utcnow

logger = logging.getLogger("halador.subscriptions")


def _is_expired(profile: Profile) -> bool:
    end_date = as_utc(profile.subscription_end_date)
    return end_date is None or end_date <= utcnow()


def report_payment(db: Session, auth: AuthContext) -> Profile:
    profile = load_profile(db, auth)
    if profile.role != ProfileRole.DRIVER:
        raise AuthorizationError("Solo los conductores necesitan suscripción")

    status = profile.subscription_status
    renewable = status == SubscriptionStatus.ACTIVE and _is_expired(profile)
    if status != SubscriptionStatus.INACTIVE and not renewable:
        if status == SubscriptionStatus.PENDING:
            raise StateError("Tu pago ya está en validación")
        raise StateError("Tu suscripción ya está activa")

    old = {"subscription_status": status.value}
    profile.subscription_status = SubscriptionStatus.PENDING
    db.commit()
    db.refresh(profile)
    logger.info("Payment reported by %s", profile.id)
    profile_event(UPDATE, profile, old=old)
    return profile


def _admin(db: Session, auth: AuthContext) -> Profile:
    admin = load_profile(db, auth)
    require_role(admin, ProfileRole.ADMIN)
    return admin


def _pending_profile(db: Session, user_id: str) -> Profile:
    profile = get_profile(db, user_id)
    if profile.subscription_status != SubscriptionStatus.PENDING:
        raise StateError("Este usuario no tiene un pago pendiente")
    return profile


def approve_payment(db: Session, auth: AuthContext, user_id: str) -> Profile:
    admin = _admin(db, auth)
    profile = _pending_profile(db, user_id)

    old = {"subscription_status": profile.subscription_status.value}
    profile.subscription_status = SubscriptionStatus.ACTIVE
    profile.subscription_end_date = utcnow() + timedelta(days=settings.SUBSCRIPTION_DAYS)
    db.commit()
    db.refresh(profile)
    logger.info("Admin %s approved payment of %s until %s", admin.id, profile.id, profile.subscription_end_date)
    profile_event(UPDATE, profile, old=old)
    return profile


def reject_payment(db: Session, auth: AuthContext, user_id: str) -> Profile:
    admin = _admin(db, auth)
    profile = _pending_profile(db, user_id)

    old = {"subscription_status": profile.subscription_status.value}
    profile.subscription_status = SubscriptionStatus.INACTIVE
    profile.subscription_end_date = None
    db.commit()
    db.refresh(profile)
    logger.info("Admin %s rejected payment of %s", admin.id, profile.id)
    profile_event(UPDATE, profile, old=old)
    return profile


def list_pending_payments(db: Session, auth: AuthContext, q: Optional[str] = None) -> List[Profile]:
    _admin(db, auth)
    query = db.query(Profile).filter(Profile.subscription_status == SubscriptionStatus.PENDING)
    if q:
        pattern = f"%{q.strip()}%"
        query = query.filter(or_(
            Profile.full_name.ilike(pattern),
            Profile.phone.like(pattern),
        ))
    return query.order_by(Profile.updated_at.desc(), Profile.id).all()


def payment_instructions() -> PaymentInstructions:
    return PaymentInstructions(
        price=settings.SUBSCRIPTION_PRICE,
        period_days=settings.SUBSCRIPTION_DAYS,
        yape=settings.PAYMENT_YAPE_NUMBER,
        plin=settings.PAYMENT_PLIN_NUMBER,
    )


def admin_stats(db: Session, auth: AuthContext) -> AdminStats:
    _admin(db, auth)
    return AdminStats(
        total_users=db.query(Profile).count(),
        drivers=db.query(Profile).filter(Profile.role == ProfileRole.DRIVER).count(),
        open_trips=db.query(Trip).filter(Trip.status == TripStatus.OPEN).count(),
        pending_payments=db.query(Profile).filter(
            Profile.subscription_status == SubscriptionStatus.PENDING
        ).count(),
    )
