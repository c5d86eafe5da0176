from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import BadRequestError, NotFoundError
from app.deps import require_super_admin
from app.models.restaurant_profile import RestaurantProfile
from app.models.user import USER_ROLES, User
from app.models.worker_profile import WorkerProfile
from app.services.audit import log_action
from app.services.passwords import hash_password
from app.services.sessions import Identity

router = APIRouter(prefix="/api/admin/users", tags=["admin-users"])


class AdminUserRead(BaseModel):
    id: int
    email: str
    role: str
    is_active: bool
    name: Optional[str]
    organization_id: Optional[int]
    created_at: datetime


class AdminUserUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    role: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = Field(None, alias="isActive")


class AdminUserResetPassword(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_password: str = Field(..., alias="newPassword", min_length=6)


def _profile_fields(db: Session, user: User) -> dict:
    profile = None
    if user.role == "worker":
        profile = db.query(WorkerProfile).filter(WorkerProfile.user_id == user.id).first()
    elif user.role == "restaurant":
        profile = db.query(RestaurantProfile).filter(RestaurantProfile.user_id == user.id).first()
    return {
        "name": profile.name if profile else None,
        "organization_id": profile.organization_id if profile else None,
    }


def _serialize(db: Session, user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "role": user.role,
        "is_active": user.is_active,
        "created_at": user.created_at,
        **_profile_fields(db, user),
    }


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError("User not found", error_code="user_not_found")
    return user


@router.get("", response_model=List[AdminUserRead])
def list_users(
    q: Optional[str] = Query(None, max_length=200),
    _admin: Identity = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    query = db.query(User)
    if q and q.strip():
        query = query.filter(User.email.ilike(f"%{q.strip().lower()}%"))
    users = query.order_by(User.created_at.desc(), User.id.desc()).all()
    return [_serialize(db, user) for user in users]


@router.get("/{user_id}", response_model=AdminUserRead)
def get_user(
    user_id: int,
    _admin: Identity = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    return _serialize(db, _get_user_or_404(db, user_id))


@router.patch("/{user_id}", response_model=AdminUserRead)
def update_user(
    user_id: int,
    payload: AdminUserUpdate,
    admin: Identity = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    target = _get_user_or_404(db, user_id)
    updates = payload.model_dump(exclude_unset=True)

    if payload.role is not None:
        role = payload.role.strip().lower()
        if role not in USER_ROLES:
            raise BadRequestError("Invalid role", error_code="invalid_role")
        target.role = role
        updates["role"] = role

    if payload.is_active is not None:
        if not payload.is_active and target.id == admin.user_id:
            raise BadRequestError("Cannot deactivate your own account", error_code="self_deactivation")
        target.is_active = payload.is_active

    log_action(
        db,
        actor_id=admin.user_id,
        action="UPDATE_USER",
        subject=f"user:{target.id}",
        details={"updates": updates},
    )
    db.commit()
    db.refresh(target)
    return _serialize(db, target)


@router.post("/{user_id}/reset-password")
def reset_password(
    user_id: int,
    payload: AdminUserResetPassword,
    admin: Identity = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    target = _get_user_or_404(db, user_id)
    target.password_hash = hash_password(payload.new_password)
    log_action(
        db,
        actor_id=admin.user_id,
        action="RESET_PASSWORD",
        subject=f"user:{target.id}",
        details="Admin reset user password",
    )
    db.commit()
    return {"message": "Password reset successfully"}
