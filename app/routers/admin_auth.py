from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import NotFoundError
from app.deps import require_super_admin
from app.models.user import User
from app.services import accounts
from app.services.audit import log_action
from app.services.sessions import (
    ADMIN_SESSION_COOKIE,
    Identity,
    build_session_cookie_options,
    clear_session_cookie,
    create_session,
    decode_session,
    identity_from_payload,
    set_session_cookie,
)

router = APIRouter(prefix="/api/admin/auth", tags=["admin-auth"])
logger = logging.getLogger(__name__)


class AdminLoginPayload(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


def _serialize_admin(user: User) -> dict:
    return {"id": user.id, "email": user.email, "role": user.role, "is_active": user.is_active}


@router.post("/login")
def admin_login(
    payload: AdminLoginPayload,
    response: Response,
    request: Request,
    db: Session = Depends(get_db),
):
    user = accounts.authenticate(db, payload.email, payload.password, required_role="super_admin")

    token = create_session({"user_id": user.id, "role": user.role}, ADMIN_SESSION_COOKIE)
    cookie_options = build_session_cookie_options(request)
    logger.info(
        "[AUTH_COOKIE] setting admin_session domain=%s samesite=%s secure=%s",
        cookie_options.get("domain") or "host-only",
        cookie_options["samesite"],
        cookie_options["secure"],
    )
    set_session_cookie(response, token, request, ADMIN_SESSION_COOKIE)

    log_action(db, actor_id=user.id, action="ADMIN_LOGIN", subject="auth", details={"email": user.email})
    db.commit()
    return {"user": _serialize_admin(user)}


@router.post("/logout")
def admin_logout(response: Response, request: Request, db: Session = Depends(get_db)):
    token = request.cookies.get(ADMIN_SESSION_COOKIE)
    identity = identity_from_payload(decode_session(token, ADMIN_SESSION_COOKIE)) if token else None
    if identity is not None:
        log_action(db, actor_id=identity.user_id, action="ADMIN_LOGOUT", subject="auth")
        db.commit()

    clear_session_cookie(response, request, ADMIN_SESSION_COOKIE)
    return {"success": True}


@router.get("/me")
def admin_me(identity: Identity = Depends(require_super_admin), db: Session = Depends(get_db)):
    user = db.query(User).filter(User.id == identity.user_id).first()
    if user is None:
        raise NotFoundError("User not found", error_code="user_not_found")
    return {"user": _serialize_admin(user)}
