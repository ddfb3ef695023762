"""
Auth context: the authenticated caller, passed explicitly into every handler.
Tokens are Firebase ID tokens verified with firebase_admin.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header
from firebase_admin import auth as firebase_auth
from sqlalchemy.orm import Session

from database import get_db
from errors import AuthenticationError, AuthorizationError, NotFoundError
from models.Profile import Profile, ProfileRole
from services.fcm_service import initialize_firebase_admin

logger = logging.getLogger("halador.auth")


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    display_name: Optional[str] = None
    email: Optional[str] = None


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthenticationError("Falta el token de autenticación")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError("Formato de token inválido")
    return token.strip()


def get_auth_context(authorization: Optional[str] = Header(None)) -> AuthContext:
    token = _bearer_token(authorization)
    if not initialize_firebase_admin():
        raise AuthenticationError("Servicio de autenticación no disponible")
    try:
        claims = firebase_auth.verify_id_token(token)
    except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError,
            firebase_auth.RevokedIdTokenError, firebase_auth.CertificateFetchError) as exc:
        logger.info("Rejected token: %s", exc)
        raise AuthenticationError("Sesión inválida o expirada") from exc
    return AuthContext(
        user_id=claims["uid"],
        display_name=claims.get("name"),
        email=claims.get("email"),
    )


def load_profile(db: Session, auth: AuthContext) -> Profile:
    profile = db.query(Profile).filter(Profile.id == auth.user_id).first()
    if not profile:
        raise NotFoundError("Perfil no encontrado")
    return profile


def get_current_profile(
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
) -> Profile:
    return load_profile(db, auth)


def require_role(profile: Profile, *roles: ProfileRole) -> None:
    if profile.role not in roles:
        raise AuthorizationError("No tienes permiso para esta acción")
