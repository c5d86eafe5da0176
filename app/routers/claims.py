from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.deps import require_restaurant, require_worker
from app.models.claim import Claim, Redemption
from app.services import claims as claim_service
from app.services.sessions import Identity

router = APIRouter(prefix="/api/claims", tags=["claims"])
redemptions_router = APIRouter(prefix="/api/redemptions", tags=["claims"])


class ClaimCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    promotion_id: int = Field(..., alias="promotionId", ge=1)


class RedemptionCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)


def serialize_claim(claim: Claim) -> Dict[str, Any]:
    return {
        "id": claim.id,
        "promotion_id": claim.promotion_id,
        "worker_id": claim.worker_id,
        "code": claim.code,
        "claimed_at": claim.claimed_at,
        "expires_at": claim.expires_at,
        "is_redeemed": claim.is_redeemed,
    }


def serialize_redemption(redemption: Redemption) -> Dict[str, Any]:
    return {
        "id": redemption.id,
        "claim_id": redemption.claim_id,
        "redeemed_by_user_id": redemption.redeemed_by_user_id,
        "redeemed_at": redemption.redeemed_at,
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_claim(
    payload: ClaimCreate,
    identity: Identity = Depends(require_worker),
    db: Session = Depends(get_db),
):
    claim = claim_service.create_claim(db, identity, payload.promotion_id)
    return serialize_claim(claim)


@router.get("")
def list_claims(
    identity: Identity = Depends(require_worker),
    db: Session = Depends(get_db),
):
    now = claim_service.utcnow()
    return [
        {
            **serialize_claim(claim),
            "promotion_title": promotion.title,
            "status": claim_service.claim_status(claim, now),
        }
        for claim, promotion in claim_service.list_worker_claims(db, identity)
    ]


@redemptions_router.post("")
def redeem_code(
    payload: RedemptionCreate,
    identity: Identity = Depends(require_restaurant),
    db: Session = Depends(get_db),
):
    redemption = claim_service.redeem_claim(db, identity, payload.code)
    return serialize_redemption(redemption)
