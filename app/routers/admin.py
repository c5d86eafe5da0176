from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.deps import require_super_admin
from app.models.audit_log import AuditLog
from app.models.claim import Claim, Redemption
from app.models.organization import Organization
from app.models.promotion import Promotion
from app.models.user import User
from app.routers.admin_audit import serialize_entry
from app.services.audit import log_action
from app.services.invites import build_invite_url, create_invite
from app.services.promotions import expire_past_due_promotions
from app.services.sessions import Identity

router = APIRouter(prefix="/api/admin", tags=["admin"])

ACTIVITY_DAYS = 30
TOP_RESTAURANTS = 5
RECENT_LOGS = 10


def _daily_counts(db: Session, column, since: datetime) -> Dict[str, int]:
    day = func.date(column)
    rows = db.query(day, func.count()).filter(column >= since).group_by(day).all()
    return {str(value): int(total) for value, total in rows}


def _daily_activity(db: Session, now: datetime) -> List[Dict[str, Any]]:
    since = (now - timedelta(days=ACTIVITY_DAYS - 1)).replace(hour=0, minute=0, second=0, microsecond=0)
    claims = _daily_counts(db, Claim.claimed_at, since)
    redemptions = _daily_counts(db, Redemption.redeemed_at, since)

    activity = []
    for offset in range(ACTIVITY_DAYS):
        key = (since + timedelta(days=offset)).date().isoformat()
        activity.append({"date": key, "claims": claims.get(key, 0), "redemptions": redemptions.get(key, 0)})
    return activity


def _top_restaurants(db: Session) -> List[Dict[str, Any]]:
    rows = (
        db.query(Organization.id, Organization.name, func.count(Redemption.id).label("redemptions"))
        .join(Promotion, Promotion.organization_id == Organization.id)
        .join(Claim, Claim.promotion_id == Promotion.id)
        .join(Redemption, Redemption.claim_id == Claim.id)
        .group_by(Organization.id, Organization.name)
        .order_by(func.count(Redemption.id).desc(), Organization.id.asc())
        .limit(TOP_RESTAURANTS)
        .all()
    )
    return [
        {"organization_id": org_id, "name": name, "redemptions": int(total)}
        for org_id, name, total in rows
    ]


@router.get("/dashboard")
def dashboard(
    _admin: Identity = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    now = datetime.now(timezone.utc).replace(tzinfo=None)

    recent = (
        db.query(AuditLog, User)
        .outerjoin(User, User.id == AuditLog.actor_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(RECENT_LOGS)
        .all()
    )

    return {
        "total_users": db.query(func.count(User.id)).scalar() or 0,
        "total_orgs": db.query(func.count(Organization.id)).scalar() or 0,
        "active_users": db.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar() or 0,
        "recent_logs": [serialize_entry(entry, actor) for entry, actor in recent],
        "promotion_stats": {
            "total": db.query(func.count(Promotion.id)).scalar() or 0,
            "active": db.query(func.count(Promotion.id)).filter(Promotion.status == "active").scalar() or 0,
            "total_claims": db.query(func.count(Claim.id)).scalar() or 0,
            "total_redemptions": db.query(func.count(Redemption.id)).scalar() or 0,
            "total_impressions": int(db.query(func.coalesce(func.sum(Promotion.impressions), 0)).scalar() or 0),
        },
        "daily_activity": _daily_activity(db, now),
        "top_restaurants": _top_restaurants(db),
    }


@router.post("/invites", status_code=status.HTTP_201_CREATED)
def create_admin_invite(
    admin: Identity = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    invite = create_invite(db, admin, invite_type="admin")
    return {
        "id": invite.id,
        "token": invite.token,
        "invite_type": invite.invite_type,
        "max_uses": invite.max_uses,
        "expires_at": invite.expires_at,
        "url": build_invite_url(invite.token),
    }


@router.post("/promotions/expire")
def expire_promotions(
    admin: Identity = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    expired = expire_past_due_promotions(db)
    if expired:
        log_action(
            db,
            actor_id=admin.user_id,
            action="PROMOTIONS_EXPIRED",
            subject="promotions",
            details={"expired": expired},
        )
        db.commit()
    return {"expired": expired}
