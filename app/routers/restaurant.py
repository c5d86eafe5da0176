from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import ForbiddenError
from app.deps import require_restaurant
from app.services import accounts
from app.services.invites import build_invite_url, create_invite
from app.services.sessions import Identity

router = APIRouter(prefix="/api/restaurant", tags=["restaurant"])


class CompleteWizardPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    address: str = Field(..., min_length=1, max_length=300)
    neighborhood: Optional[str] = Field(None, max_length=120)
    max_employees: int = Field(..., alias="maxEmployees", ge=1, le=1000)
    goals: List[str] = Field(..., min_length=1)

    @field_validator("goals")
    @classmethod
    def validate_goals(cls, value: List[str]) -> List[str]:
        cleaned = [goal.strip() for goal in value if goal and goal.strip()]
        if not cleaned:
            raise ValueError("Please select at least one goal")
        return cleaned


class WorkerInvitePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    max_uses: Optional[int] = Field(None, alias="maxUses", ge=1, le=1000)
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")


@router.get("/wizard-status")
def wizard_status(
    identity: Identity = Depends(require_restaurant),
    db: Session = Depends(get_db),
):
    return accounts.wizard_status(db, identity)


@router.get("/neighborhoods")
def neighborhoods(
    _identity: Identity = Depends(require_restaurant),
    db: Session = Depends(get_db),
):
    return accounts.list_neighborhoods(db)


@router.post("/complete-wizard")
def complete_wizard(
    payload: CompleteWizardPayload,
    identity: Identity = Depends(require_restaurant),
    db: Session = Depends(get_db),
):
    organization = accounts.complete_wizard(
        db,
        identity,
        address=payload.address.strip(),
        neighborhood=payload.neighborhood,
        max_employees=payload.max_employees,
        goals=payload.goals,
    )
    return {
        "success": True,
        "organization": {
            "id": organization.id,
            "name": organization.name,
            "address": organization.address,
            "neighborhood": organization.neighborhood,
            "max_employees": organization.max_employees,
            "goals": organization.goals,
        },
    }


@router.post("/invites", status_code=status.HTTP_201_CREATED)
def create_worker_invite(
    payload: WorkerInvitePayload,
    identity: Identity = Depends(require_restaurant),
    db: Session = Depends(get_db),
):
    profile = accounts.get_restaurant_profile(db, identity)
    if profile.organization_id is None:
        raise ForbiddenError(
            "Complete the onboarding wizard before inviting workers",
            error_code="organization_required",
        )

    expires_at = payload.expires_at
    if expires_at is not None and expires_at.tzinfo is not None:
        expires_at = expires_at.astimezone(timezone.utc).replace(tzinfo=None)

    invite = create_invite(
        db,
        identity,
        invite_type="worker",
        organization_id=profile.organization_id,
        max_uses=payload.max_uses,
        expires_at=expires_at,
    )
    return {
        "id": invite.id,
        "token": invite.token,
        "invite_type": invite.invite_type,
        "organization_id": invite.organization_id,
        "max_uses": invite.max_uses,
        "expires_at": invite.expires_at,
        "url": build_invite_url(invite.token),
    }
