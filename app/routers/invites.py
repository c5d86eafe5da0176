from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.services.invites import validate_invite

router = APIRouter(prefix="/api/invites", tags=["invites"])


@router.get("/validate/{token}")
def validate_invite_token(token: str, db: Session = Depends(get_db)):
    invite = validate_invite(db, token)
    return {
        "valid": True,
        "invite_type": invite.invite_type,
        "organization_id": invite.organization_id,
        "expires_at": invite.expires_at,
    }
