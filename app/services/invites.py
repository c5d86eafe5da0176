from __future__ import annotations

import logging
import secrets
from datetime import datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy import and_, update
from sqlalchemy.orm import Session

from app.core.config import (
    ADMIN_INVITE_MAX_USES,
    PUBLIC_APP_URL,
    WORKER_INVITE_MAX_USES,
    WORKER_INVITE_TTL_DAYS,
)
from app.core.errors import BadRequestError, ConflictError
from app.models.invite_token import INVITE_TYPES, InviteToken
from app.services.audit import log_action
from app.services.sessions import Identity

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def end_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time(23, 59, 59, 999000))


def generate_invite_token() -> str:
    return secrets.token_urlsafe(24)


def build_invite_url(token: str) -> str:
    return f"{PUBLIC_APP_URL}/signup?invite={token}"


def create_invite(
    db: Session,
    actor: Identity,
    *,
    invite_type: str,
    organization_id: Optional[int] = None,
    max_uses: Optional[int] = None,
    expires_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> InviteToken:
    if invite_type not in INVITE_TYPES:
        raise BadRequestError("Invalid invite type", error_code="invalid_invite_type")
    if invite_type == "worker" and organization_id is None:
        raise BadRequestError("Worker invites require an organization", error_code="organization_required")

    current = now or _now()
    if invite_type == "admin":
        # Convite de gerente vale até o fim do dia (UTC) e para um único cadastro.
        expires_at = expires_at or end_of_day(current)
        max_uses = max_uses or ADMIN_INVITE_MAX_USES
    else:
        expires_at = expires_at or current + timedelta(days=WORKER_INVITE_TTL_DAYS)
        max_uses = max_uses or WORKER_INVITE_MAX_USES

    invite = InviteToken(
        token=generate_invite_token(),
        invite_type=invite_type,
        organization_id=organization_id,
        created_by_user_id=actor.user_id,
        max_uses=max_uses,
        current_uses=0,
        expires_at=expires_at,
        is_active=True,
    )
    db.add(invite)
    db.flush()

    log_action(
        db,
        actor_id=actor.user_id,
        action="ADMIN_INVITE_CREATED" if invite_type == "admin" else "WORKER_INVITE_CREATED",
        subject=f"invite:{invite.id}",
        details={
            "invite_type": invite_type,
            "organization_id": organization_id,
            "expires_at": expires_at,
            "max_uses": max_uses,
        },
    )
    db.commit()
    db.refresh(invite)
    logger.info(
        "invite created invite_id=%s invite_type=%s organization_id=%s",
        invite.id,
        invite_type,
        organization_id,
    )
    return invite


def validate_invite(db: Session, token: str, now: Optional[datetime] = None) -> InviteToken:
    invite = db.query(InviteToken).filter(InviteToken.token == (token or "").strip()).first()
    if invite is None:
        raise BadRequestError("Invalid invite token", error_code="invalid_invite", details={"valid": False})
    if not invite.is_active:
        raise BadRequestError(
            "Invite token is no longer active",
            error_code="invite_inactive",
            details={"valid": False},
        )
    if invite.expires_at is not None and (now or _now()) > invite.expires_at:
        raise BadRequestError("Invite token has expired", error_code="invite_expired", details={"valid": False})
    if invite.max_uses is not None and invite.current_uses >= invite.max_uses:
        raise BadRequestError(
            "Invite token has reached its usage limit",
            error_code="invite_exhausted",
            details={"valid": False},
        )
    return invite


def consume_invite(db: Session, invite: InviteToken) -> None:
    """Count one use inside the caller's transaction; the caller commits."""
    result = db.execute(
        update(InviteToken)
        .where(
            and_(
                InviteToken.id == invite.id,
                InviteToken.is_active.is_(True),
                InviteToken.current_uses < InviteToken.max_uses,
            )
        )
        .values(current_uses=InviteToken.current_uses + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ConflictError("Invite token has reached its usage limit", error_code="invite_exhausted")
