from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import BadRequestError, ForbiddenError, NotFoundError
from app.models.claim import Claim, Redemption
from app.models.organization import Organization
from app.models.promotion import PROMOTION_STATUSES, Promotion
from app.models.restaurant_profile import RestaurantProfile
from app.services.audit import log_action
from app.services.sessions import Identity

logger = logging.getLogger(__name__)

# Campos que o restaurante pode editar; contadores ficam de fora.
EDITABLE_FIELDS = (
    "title",
    "description",
    "image_url",
    "discount_type",
    "discount_value",
    "status",
    "start_date",
    "end_date",
    "max_claims",
)
REQUIRED_FIELDS = ("title", "description", "discount_type", "discount_value", "status")


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _validate_status(status: Optional[str]) -> None:
    if status is not None and status not in PROMOTION_STATUSES:
        raise BadRequestError(
            f"Invalid status. Allowed values: {', '.join(PROMOTION_STATUSES)}",
            error_code="invalid_promotion_status",
        )


def _validate_window(start_date: Optional[datetime], end_date: Optional[datetime]) -> None:
    if start_date and end_date and end_date < start_date:
        raise BadRequestError("end_date must be after start_date", error_code="invalid_promotion_window")


def get_restaurant_organization_id(db: Session, identity: Identity) -> int:
    profile = (
        db.query(RestaurantProfile)
        .filter(RestaurantProfile.user_id == identity.user_id)
        .first()
    )
    if profile is None:
        raise NotFoundError("Restaurant profile not found", error_code="restaurant_profile_not_found")
    if profile.organization_id is None:
        raise ForbiddenError(
            "Complete the onboarding wizard before managing promotions",
            error_code="organization_required",
        )
    return profile.organization_id


def list_active_promotions(db: Session) -> List[Tuple[Promotion, Organization]]:
    return (
        db.query(Promotion, Organization)
        .join(Organization, Organization.id == Promotion.organization_id)
        .filter(Promotion.status == "active", Organization.is_active.is_(True))
        .order_by(Promotion.created_at.desc(), Promotion.id.desc())
        .all()
    )


def get_promotion(db: Session, promotion_id: int) -> Promotion:
    promotion = db.query(Promotion).filter(Promotion.id == promotion_id).first()
    if promotion is None:
        raise NotFoundError("Promotion not found", error_code="promotion_not_found")
    return promotion


def create_promotion(db: Session, identity: Identity, data: Dict[str, Any]) -> Promotion:
    organization_id = get_restaurant_organization_id(db, identity)

    status = data.get("status") or "draft"
    _validate_status(status)
    start_date = data.get("start_date") or _now()
    end_date = data.get("end_date")
    _validate_window(start_date, end_date)

    promotion = Promotion(
        organization_id=organization_id,
        title=data["title"],
        description=data["description"],
        image_url=data.get("image_url"),
        discount_type=data["discount_type"],
        discount_value=data["discount_value"],
        status=status,
        start_date=start_date,
        end_date=end_date,
        max_claims=data.get("max_claims"),
        current_claims=0,
        impressions=0,
    )
    db.add(promotion)
    db.flush()

    log_action(
        db,
        actor_id=identity.user_id,
        action="PROMOTION_CREATED",
        subject=f"promotion:{promotion.id}",
        details={"title": promotion.title, "organization_id": organization_id},
    )
    db.commit()
    db.refresh(promotion)
    logger.info(
        "promotion created promotion_id=%s organization_id=%s status=%s",
        promotion.id,
        organization_id,
        promotion.status,
    )
    return promotion


def update_promotion(
    db: Session,
    identity: Identity,
    promotion_id: int,
    changes: Dict[str, Any],
) -> Promotion:
    organization_id = get_restaurant_organization_id(db, identity)
    promotion = (
        db.query(Promotion)
        .filter(Promotion.id == promotion_id, Promotion.organization_id == organization_id)
        .first()
    )
    # Promoção de outra organização responde como inexistente.
    if promotion is None:
        raise NotFoundError("Promotion not found", error_code="promotion_not_found")

    _validate_status(changes.get("status"))
    _validate_window(
        changes.get("start_date", promotion.start_date),
        changes.get("end_date", promotion.end_date),
    )

    applied = {}
    for field in EDITABLE_FIELDS:
        if field in changes:
            if field in REQUIRED_FIELDS and changes[field] is None:
                raise BadRequestError(f"{field} cannot be null", error_code="invalid_promotion_field")
            setattr(promotion, field, changes[field])
            applied[field] = changes[field]

    if applied:
        log_action(
            db,
            actor_id=identity.user_id,
            action="PROMOTION_UPDATED",
            subject=f"promotion:{promotion.id}",
            details={"fields": sorted(applied)},
        )
    db.commit()
    db.refresh(promotion)
    return promotion


def list_organization_promotions(db: Session, identity: Identity) -> List[Tuple[Promotion, int]]:
    organization_id = get_restaurant_organization_id(db, identity)

    redemption_counts = (
        db.query(Claim.promotion_id.label("promotion_id"), func.count(Redemption.id).label("total"))
        .join(Redemption, Redemption.claim_id == Claim.id)
        .group_by(Claim.promotion_id)
        .subquery()
    )
    rows = (
        db.query(Promotion, func.coalesce(redemption_counts.c.total, 0))
        .outerjoin(redemption_counts, redemption_counts.c.promotion_id == Promotion.id)
        .filter(Promotion.organization_id == organization_id)
        .order_by(Promotion.created_at.desc(), Promotion.id.desc())
        .all()
    )
    return [(promotion, int(total or 0)) for promotion, total in rows]


def increment_impression(db: Session, promotion_id: int) -> None:
    """Best-effort view counter: failures are logged, never raised."""
    try:
        db.execute(
            update(Promotion)
            .where(Promotion.id == promotion_id)
            .values(impressions=Promotion.impressions + 1)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("failed to record impression promotion_id=%s", promotion_id, exc_info=True)


def expire_past_due_promotions(db: Session, now: Optional[datetime] = None) -> int:
    current = now or _now()
    result = db.execute(
        update(Promotion)
        .where(
            Promotion.status != "expired",
            Promotion.end_date.is_not(None),
            Promotion.end_date < current,
        )
        .values(status="expired", updated_at=current)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    expired = result.rowcount or 0
    logger.info("promotion expiry sweep expired=%s now=%s", expired, current.isoformat())
    return expired
