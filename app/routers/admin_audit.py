from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.deps import require_super_admin
from app.models.audit_log import AuditLog
from app.models.user import User
from app.services.sessions import Identity

router = APIRouter(prefix="/api/admin/audit-logs", tags=["admin-audit"])


class AuditLogRead(BaseModel):
    id: int
    actor_id: Optional[int]
    actor_email: Optional[str]
    action: str
    subject: str
    details: Optional[Any]
    created_at: datetime


class AuditLogPage(BaseModel):
    logs: List[AuditLogRead]
    total: int
    limit: int
    offset: int


def decode_details(raw: Optional[str]) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def serialize_entry(entry: AuditLog, actor: Optional[User]) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "actor_id": entry.actor_id,
        "actor_email": actor.email if actor else None,
        "action": entry.action,
        "subject": entry.subject,
        "details": decode_details(entry.details),
        "created_at": entry.created_at,
    }


@router.get("", response_model=AuditLogPage)
def list_audit_logs(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    action: Optional[str] = None,
    actor: Optional[str] = None,
    _admin: Identity = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    query = db.query(AuditLog, User).outerjoin(User, User.id == AuditLog.actor_id)

    if action:
        query = query.filter(AuditLog.action == action.strip().upper())
    if actor:
        actor = actor.strip()
        if actor.isdigit():
            query = query.filter(AuditLog.actor_id == int(actor))
        else:
            query = query.filter(User.email.ilike(f"%{actor.lower()}%"))

    total = query.count()
    rows = (
        query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return {
        "logs": [serialize_entry(entry, actor_user) for entry, actor_user in rows],
        "total": total,
        "limit": limit,
        "offset": offset,
    }
