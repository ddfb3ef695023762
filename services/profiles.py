"""Profile store: signup, session repair and owner edits."""
import logging
from typing import Tuple

from sqlalchemy.orm import Session

from errors import DuplicateError, NotFoundError, ValidationError
from models.Profile import Profile, ProfileRole, SubscriptionStatus
from schemas import ProfileUpdate, ProfileWrite
from services.auth import AuthContext
from services.change_feed import ChangeEvent, INSERT, UPDATE, change_feed, row_snapshot

logger = logging.getLogger("halador.profiles")

DEFAULT_FULL_NAME = "Usuario"
PROFILE_EVENT_COLUMNS = ("id", "full_name", "role", "subscription_status", "subscription_end_date")


def profile_event(event_type: str, profile: Profile, old: dict = None) -> None:
    change_feed.publish(ChangeEvent(
        table="profiles",
        event_type=event_type,
        new=row_snapshot(profile, PROFILE_EVENT_COLUMNS),
        old=old or {},
    ))


def register_profile(db: Session, auth: AuthContext, payload: ProfileWrite) -> Profile:
    if payload.role == ProfileRole.ADMIN:
        raise ValidationError("El rol de administrador no se puede elegir al registrarse")

    exists = db.query(Profile).filter(Profile.id == auth.user_id).first()
    if exists:
        raise DuplicateError("El perfil ya existe")

    full_name = (payload.full_name or "").strip() or auth.display_name or DEFAULT_FULL_NAME
    profile = Profile(
        id=auth.user_id,
        full_name=full_name,
        avatar_url=payload.avatar_url,
        phone=payload.phone,
        role=payload.role,
        subscription_status=SubscriptionStatus.INACTIVE,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    profile_event(INSERT, profile)
    return profile


def ensure_profile(db: Session, auth: AuthContext) -> Tuple[Profile, bool]:
    """Return the caller's profile, recreating it as a passenger when missing.

    Run once when a session starts; tolerates identities whose profile row was
    lost on the backend.
    """
    profile = db.query(Profile).filter(Profile.id == auth.user_id).first()
    if profile:
        return profile, False

    logger.warning("User %s has no profile. Regenerating as passenger", auth.user_id)
    profile = Profile(
        id=auth.user_id,
        full_name=auth.display_name or DEFAULT_FULL_NAME,
        avatar_url=None,
        role=ProfileRole.PASSENGER,
        subscription_status=SubscriptionStatus.INACTIVE,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    profile_event(INSERT, profile)
    return profile, True


def update_profile(db: Session, profile: Profile, payload: ProfileUpdate) -> Profile:
    update_data = payload.model_dump(exclude_unset=True)
    if "full_name" in update_data and not (update_data["full_name"] or "").strip():
        raise ValidationError("El nombre no puede estar vacío")
    if profile.role != ProfileRole.DRIVER and any(k.startswith("car_") for k in update_data):
        raise ValidationError("Solo los conductores registran un vehículo")

    for key, value in update_data.items():
        setattr(profile, key, value)

    db.commit()
    db.refresh(profile)
    return profile


def update_fcm_token(db: Session, profile: Profile, token: str) -> Profile:
    profile.fcm_token = token
    db.commit()
    db.refresh(profile)
    return profile


def get_profile(db: Session, user_id: str) -> Profile:
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not profile:
        raise NotFoundError("Usuario no encontrado")
    return profile
