from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database import get_db
from models.Profile import Profile
from schemas import (
    FCMTokenUpdate, ProfileRead, ProfileUpdate, ProfileWrite, PublicProfileRead, SessionRead,
)
from services import profiles
from services.auth import AuthContext, get_auth_context, get_current_profile

router = APIRouter(prefix="/profiles", tags=["Profiles"])
session_router = APIRouter(prefix="/session", tags=["Session"])


@router.post("/", response_model=ProfileRead, status_code=status.HTTP_201_CREATED)
def register_profile(
    payload: ProfileWrite,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Crear el perfil tras el registro en el proveedor de identidad"""
    return profiles.register_profile(db, auth, payload)


@session_router.post("/", response_model=SessionRead)
def start_session(auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    """
    Session initialisation: returns the caller's profile, recreating it as a
    passenger if the row is missing.
    """
    profile, repaired = profiles.ensure_profile(db, auth)
    return SessionRead(profile=ProfileRead.model_validate(profile), repaired=repaired)


@router.get("/me", response_model=ProfileRead)
def get_my_profile(profile: Profile = Depends(get_current_profile)):
    return profile


@router.patch("/me", response_model=ProfileRead)
def update_my_profile(
    payload: ProfileUpdate,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    """
    Update phone, name, avatar or vehicle. Role and subscription are not editable.
    """
    return profiles.update_profile(db, profile, payload)


@router.put("/me/fcm-token", status_code=status.HTTP_200_OK)
def update_fcm_token(
    payload: FCMTokenUpdate,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    """Actualizar el token FCM del usuario"""
    profiles.update_fcm_token(db, profile, payload.fcm_token)
    return {"message": "Token FCM actualizado correctamente"}


@router.get("/{user_id}", response_model=PublicProfileRead)
def get_public_profile(
    user_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return profiles.get_profile(db, user_id)
