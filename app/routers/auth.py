# app/routers/auth.py
from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.deps import get_identity
from app.models.restaurant_profile import RestaurantProfile
from app.models.user import User
from app.models.worker_profile import WORKER_POSITIONS, WorkerProfile
from app.services import accounts
from app.services.sessions import (
    SESSION_COOKIE,
    Identity,
    clear_session_cookie,
    create_session,
    set_session_cookie,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _check_position(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in WORKER_POSITIONS:
        raise ValueError(f"position must be one of: {', '.join(WORKER_POSITIONS)}")
    return value


class SignupPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Literal["worker", "restaurant"]
    name: str = Field(..., min_length=1)
    position: Optional[str] = None
    address: Optional[str] = None
    logo_url: Optional[str] = Field(None, alias="logoUrl")

    @field_validator("position")
    @classmethod
    def validate_position(cls, value: Optional[str]) -> Optional[str]:
        return _check_position(value)


class LoginPayload(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class InviteSignupPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)
    restaurant_name: Optional[str] = Field(None, alias="restaurantName", min_length=1)
    position: Optional[str] = None
    invite_token: str = Field(..., alias="inviteToken", min_length=1)

    @field_validator("position")
    @classmethod
    def validate_position(cls, value: Optional[str]) -> Optional[str]:
        return _check_position(value)


def serialize_user(user: User) -> Dict[str, Any]:
    return {"id": user.id, "email": user.email, "role": user.role}


def serialize_profile(profile: Any) -> Optional[Dict[str, Any]]:
    if isinstance(profile, WorkerProfile):
        return {
            "id": profile.id,
            "user_id": profile.user_id,
            "organization_id": profile.organization_id,
            "name": profile.name,
            "position": profile.position,
            "is_verified": profile.is_verified,
        }
    if isinstance(profile, RestaurantProfile):
        return {
            "id": profile.id,
            "user_id": profile.user_id,
            "organization_id": profile.organization_id,
            "name": profile.name,
            "address": profile.address,
            "logo_url": profile.logo_url,
        }
    return None


def _open_session(response: Response, request: Request, user: User) -> None:
    token = create_session({"user_id": user.id, "role": user.role}, SESSION_COOKIE)
    set_session_cookie(response, token, request, SESSION_COOKIE)


@router.post("/signup")
def signup(
    payload: SignupPayload,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    user, profile = accounts.signup(
        db,
        email=payload.email,
        password=payload.password,
        role=payload.role,
        name=payload.name.strip(),
        position=payload.position,
        address=payload.address,
        logo_url=payload.logo_url,
    )
    _open_session(response, request, user)
    return {"user": serialize_user(user), "profile": serialize_profile(profile)}


@router.post("/login")
def login(
    payload: LoginPayload,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    user = accounts.authenticate(db, payload.email, payload.password)
    _open_session(response, request, user)
    return {"user": serialize_user(user)}


@router.post("/logout")
def logout(request: Request, response: Response):
    clear_session_cookie(response, request, SESSION_COOKIE)
    return {"success": True}


@router.get("/me")
def me(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    user, profile = accounts.get_me(db, identity)
    return {"user": serialize_user(user), "profile": serialize_profile(profile)}


@router.post("/signup-with-invite")
def signup_with_invite(
    payload: InviteSignupPayload,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    user, profile, _invite = accounts.signup_with_invite(
        db,
        token=payload.invite_token,
        email=payload.email,
        password=payload.password,
        name=payload.name.strip(),
        restaurant_name=payload.restaurant_name,
        position=payload.position,
    )
    _open_session(response, request, user)
    return {
        "user": serialize_user(user),
        "profile": serialize_profile(profile),
        "needs_wizard": user.role == "restaurant",
    }
