# app/deps.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import ForbiddenError, UnauthorizedError
from app.core.request_context import bind_identity
from app.models.user import User
from app.services.sessions import (
    ADMIN_SESSION_COOKIE,
    SESSION_COOKIE,
    Identity,
    decode_session,
    identity_from_payload,
)

logger = logging.getLogger(__name__)

ROLE_DENIED_MESSAGES = {
    "worker": "Worker access required",
    "restaurant": "Restaurant access required",
    "super_admin": "Superadmin access required",
}


def _session_payload(request: Request, cookie_name: str) -> Optional[Dict[str, Any]]:
    """Payload já decodificado pelo SessionMiddleware, ou decodifica o cookie aqui."""
    state_key = "admin_session_payload" if cookie_name == ADMIN_SESSION_COOKIE else "session_payload"
    payload = getattr(request.state, state_key, None)
    if payload is not None:
        return payload

    token = request.cookies.get(cookie_name)
    if not token:
        return None
    return decode_session(token, cookie_name)


def _resolve_identity(request: Request, db: Session, cookie_name: str) -> Identity:
    payload = _session_payload(request, cookie_name)
    identity = identity_from_payload(payload)
    if identity is None:
        raise UnauthorizedError("Not authenticated", error_code="not_authenticated")

    user = db.query(User).filter(User.id == identity.user_id).first()
    if user is None or not user.is_active:
        raise UnauthorizedError("Session is no longer valid", error_code="session_invalid")

    # O papel vem do banco; um cookie antigo não mantém um papel revogado.
    identity = Identity(user_id=user.id, role=user.role)
    request.state.identity = identity
    bind_identity(identity.user_id, identity.role)
    return identity


def _log_access_denied(request: Request, identity: Identity, required_role: str) -> None:
    logger.warning(
        "Access denied (role_denied): user_id=%s user_role=%s required=%s endpoint=%s %s",
        identity.user_id,
        identity.role,
        required_role,
        request.method,
        request.url.path,
    )


def get_identity(request: Request, db: Session = Depends(get_db)) -> Identity:
    return _resolve_identity(request, db, SESSION_COOKIE)


def require_role(role: str):
    def _dependency(request: Request, identity: Identity = Depends(get_identity)) -> Identity:
        if identity.role != role:
            _log_access_denied(request, identity, role)
            raise ForbiddenError(ROLE_DENIED_MESSAGES[role], error_code=f"{role}_required")
        return identity

    return _dependency


require_worker = require_role("worker")
require_restaurant = require_role("restaurant")


def require_super_admin(request: Request, db: Session = Depends(get_db)) -> Identity:
    identity = _resolve_identity(request, db, ADMIN_SESSION_COOKIE)
    if not identity.is_super_admin:
        _log_access_denied(request, identity, "super_admin")
        raise ForbiddenError(ROLE_DENIED_MESSAGES["super_admin"], error_code="super_admin_required")
    return identity
