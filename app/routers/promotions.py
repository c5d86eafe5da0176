from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.deps import require_restaurant
from app.models.organization import Organization
from app.models.promotion import Promotion
from app.services import promotions as promotion_service
from app.services.sessions import Identity

router = APIRouter(prefix="/api/promotions", tags=["promotions"])
restaurant_router = APIRouter(prefix="/api/restaurant/promotions", tags=["promotions"])


class PromotionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    image_url: Optional[str] = Field(None, alias="imageUrl")
    discount_type: str = Field(..., alias="discountType", min_length=1, max_length=30)
    discount_value: str = Field(..., alias="discountValue", min_length=1, max_length=50)
    status: Optional[str] = None
    start_date: Optional[datetime] = Field(None, alias="startDate")
    end_date: Optional[datetime] = Field(None, alias="endDate")
    max_claims: Optional[int] = Field(None, alias="maxClaims", ge=1)


class PromotionUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    image_url: Optional[str] = Field(None, alias="imageUrl")
    discount_type: Optional[str] = Field(None, alias="discountType", min_length=1, max_length=30)
    discount_value: Optional[str] = Field(None, alias="discountValue", min_length=1, max_length=50)
    status: Optional[str] = None
    start_date: Optional[datetime] = Field(None, alias="startDate")
    end_date: Optional[datetime] = Field(None, alias="endDate")
    max_claims: Optional[int] = Field(None, alias="maxClaims", ge=1)


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def serialize_promotion(promotion: Promotion, organization: Optional[Organization] = None) -> Dict[str, Any]:
    data = {
        "id": promotion.id,
        "organization_id": promotion.organization_id,
        "title": promotion.title,
        "description": promotion.description,
        "image_url": promotion.image_url,
        "discount_type": promotion.discount_type,
        "discount_value": promotion.discount_value,
        "status": promotion.status,
        "start_date": promotion.start_date,
        "end_date": promotion.end_date,
        "max_claims": promotion.max_claims,
        "current_claims": promotion.current_claims,
        "impressions": promotion.impressions,
        "created_at": promotion.created_at,
        "updated_at": promotion.updated_at,
    }
    if organization is not None:
        data["organization_name"] = organization.name
        data["organization_address"] = organization.address
        data["organization_logo_url"] = organization.logo_url
    return data


def _dates_to_naive_utc(data: Dict[str, Any]) -> Dict[str, Any]:
    for key in ("start_date", "end_date"):
        if key in data:
            data[key] = _naive_utc(data[key])
    return data


@router.get("")
def list_promotions(db: Session = Depends(get_db)):
    rows = promotion_service.list_active_promotions(db)
    return [serialize_promotion(promotion, organization) for promotion, organization in rows]


@router.get("/{promotion_id}")
def get_promotion(promotion_id: int, db: Session = Depends(get_db)):
    promotion = promotion_service.get_promotion(db, promotion_id)
    return serialize_promotion(promotion, promotion.organization)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_promotion(
    payload: PromotionCreate,
    identity: Identity = Depends(require_restaurant),
    db: Session = Depends(get_db),
):
    data = _dates_to_naive_utc(payload.model_dump())
    promotion = promotion_service.create_promotion(db, identity, data)
    return serialize_promotion(promotion)


@router.patch("/{promotion_id}")
def update_promotion(
    promotion_id: int,
    payload: PromotionUpdate,
    identity: Identity = Depends(require_restaurant),
    db: Session = Depends(get_db),
):
    changes = _dates_to_naive_utc(payload.model_dump(exclude_unset=True))
    promotion = promotion_service.update_promotion(db, identity, promotion_id, changes)
    return serialize_promotion(promotion)


@router.post("/{promotion_id}/impressions", status_code=status.HTTP_204_NO_CONTENT)
def record_impression(promotion_id: int, db: Session = Depends(get_db)):
    promotion_service.increment_impression(db, promotion_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@restaurant_router.get("")
def list_own_promotions(
    identity: Identity = Depends(require_restaurant),
    db: Session = Depends(get_db),
):
    rows = promotion_service.list_organization_promotions(db, identity)
    return [
        {**serialize_promotion(promotion), "redemptions": redemptions}
        for promotion, redemptions in rows
    ]
