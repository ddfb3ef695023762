"""
Notification relay: turns change-feed events into push notifications for the
users they concern.
"""
import logging
from typing import List

from database import SessionLocal
from models.Profile import Profile, ProfileRole
from services import fcm_service
from services.change_feed import ChangeEvent, ChangeFeed, DELETE, INSERT, UPDATE, change_feed

logger = logging.getLogger("halador.notifications")

_registered: List = []


def _tokens_for(user_ids) -> List[str]:
    db = SessionLocal()
    try:
        rows = db.query(Profile.fcm_token).filter(
            Profile.id.in_(list(user_ids)),
            Profile.fcm_token.isnot(None),
        ).all()
        return [r[0] for r in rows]
    finally:
        db.close()


def _admin_tokens() -> List[str]:
    db = SessionLocal()
    try:
        rows = db.query(Profile.fcm_token).filter(
            Profile.role == ProfileRole.ADMIN,
            Profile.fcm_token.isnot(None),
        ).all()
        return [r[0] for r in rows]
    finally:
        db.close()


def _push(user_id: str, title: str, body: str, data: dict) -> None:
    for token in _tokens_for([user_id]):
        fcm_service.send_notification(fcm_token=token, title=title, body=body, data=data)


def on_request_created(event: ChangeEvent) -> None:
    row = event.new
    _push(
        row["driver_id"],
        "Nueva solicitud",
        f"¡Nueva solicitud de viaje de {row['passenger_name']}!",
        {"type": "trip_request", "request_id": row["id"], "trip_id": row["trip_id"]},
    )


def on_request_updated(event: ChangeEvent) -> None:
    row = event.new
    if row.get("status") == "accepted":
        title, body = "Solicitud aceptada", "¡Tu conductor aceptó el viaje! 🎉"
    elif row.get("status") == "rejected":
        title, body = "Solicitud rechazada", "Lo sentimos, tu solicitud fue rechazada."
    else:
        return
    _push(
        row["passenger_id"],
        title,
        body,
        {"type": "trip_request_status", "request_id": row["id"], "status": row["status"]},
    )


def on_request_deleted(event: ChangeEvent) -> None:
    row = event.old
    _push(
        row["passenger_id"],
        "Viaje cancelado",
        "El conductor eliminó un viaje que habías solicitado.",
        {"type": "trip_deleted", "trip_id": row["trip_id"]},
    )


def on_profile_updated(event: ChangeEvent) -> None:
    new, old = event.new, event.old
    status = new.get("subscription_status")
    if status == old.get("subscription_status"):
        return
    if status == "active":
        _push(new["id"], "Suscripción", "¡Suscripción Activada! 🚀", {"type": "subscription_active"})
    elif status == "pending":
        tokens = _admin_tokens()
        if tokens:
            fcm_service.send_notification_to_multiple(
                tokens,
                title="Pago reportado",
                body=f"{new.get('full_name') or 'Un conductor'} reportó un pago",
                data={"type": "payment_reported", "user_id": new["id"]},
            )


def register_notification_relay(feed: ChangeFeed = change_feed) -> None:
    if _registered:
        return
    _registered.extend([
        feed.subscribe("trip_requests", INSERT, on_request_created),
        feed.subscribe("trip_requests", UPDATE, on_request_updated),
        feed.subscribe("trip_requests", DELETE, on_request_deleted),
        feed.subscribe("profiles", UPDATE, on_profile_updated),
    ])
    logger.info("Notification relay registered")


def unregister_notification_relay() -> None:
    while _registered:
        _registered.pop().unsubscribe()
