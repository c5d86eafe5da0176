"""Claim and redemption lifecycle.

A worker claims a promotion and gets a single-use code that is valid for
``CLAIM_TTL_HOURS``. A restaurant redeems the code at the point of sale.

Claim states: ``active`` (stored as ``is_redeemed = False``), ``redeemed``
(terminal) and ``expired``. Expired is derived from ``expires_at`` at check
time and never written back.

Consistency rules enforced here:

* the claim insert and ``promotions.current_claims + 1`` commit together, and
  the increment is evaluated by the database, not read-modify-written;
* claim codes are unique at the store level; a collision is retried with a
  fresh code;
* a claim flips to redeemed through a conditional UPDATE, so concurrent
  redeemers of the same code get exactly one success.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import (
    CLAIM_CODE_BYTES,
    CLAIM_CODE_MAX_ATTEMPTS,
    CLAIM_POLICY_SINGLE_ACTIVE,
    CLAIM_TTL_HOURS,
)
from app.core.errors import AppException, ConflictError, NotFoundError, RedemptionRejectedError
from app.models.claim import Claim, Redemption
from app.models.promotion import Promotion
from app.models.restaurant_profile import RestaurantProfile
from app.models.worker_profile import WorkerProfile
from app.services.audit import log_action
from app.services.sessions import Identity

logger = logging.getLogger(__name__)

CLAIM_TTL = timedelta(hours=CLAIM_TTL_HOURS)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_claim_code(num_bytes: int = CLAIM_CODE_BYTES) -> str:
    return secrets.token_hex(num_bytes).upper()


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def claim_status(claim: Claim, now: Optional[datetime] = None) -> str:
    if claim.is_redeemed:
        return "redeemed"
    if (now or utcnow()) > claim.expires_at:
        return "expired"
    return "active"


def get_worker_profile(db: Session, identity: Identity) -> WorkerProfile:
    profile = db.query(WorkerProfile).filter(WorkerProfile.user_id == identity.user_id).first()
    if profile is None:
        raise NotFoundError("Worker profile not found", error_code="worker_profile_not_found")
    return profile


def _get_restaurant_profile(db: Session, identity: Identity) -> RestaurantProfile:
    profile = (
        db.query(RestaurantProfile)
        .filter(RestaurantProfile.user_id == identity.user_id)
        .first()
    )
    if profile is None:
        raise NotFoundError("Restaurant profile not found", error_code="restaurant_profile_not_found")
    return profile


def _has_active_claim(db: Session, worker_id: int, promotion_id: int, now: datetime) -> bool:
    return (
        db.query(Claim.id)
        .filter(
            Claim.worker_id == worker_id,
            Claim.promotion_id == promotion_id,
            Claim.is_redeemed.is_(False),
            Claim.expires_at >= now,
        )
        .first()
        is not None
    )


def create_claim(
    db: Session,
    identity: Identity,
    promotion_id: int,
    *,
    now: Optional[datetime] = None,
    code_factory: Callable[[], str] = generate_claim_code,
) -> Claim:
    worker = get_worker_profile(db, identity)

    promotion = db.query(Promotion).filter(Promotion.id == promotion_id).first()
    if promotion is None:
        raise NotFoundError("Promotion not found", error_code="promotion_not_found")

    if CLAIM_POLICY_SINGLE_ACTIVE and _has_active_claim(db, worker.id, promotion.id, now or utcnow()):
        raise ConflictError("Promotion already claimed", error_code="promotion_already_claimed")

    for attempt in range(1, CLAIM_CODE_MAX_ATTEMPTS + 1):
        claimed_at = now or utcnow()
        claim = Claim(
            promotion_id=promotion.id,
            worker_id=worker.id,
            code=code_factory(),
            claimed_at=claimed_at,
            expires_at=claimed_at + CLAIM_TTL,
            is_redeemed=False,
        )
        db.add(claim)
        try:
            db.flush()
            result = db.execute(
                update(Promotion)
                .where(
                    Promotion.id == promotion.id,
                    or_(
                        Promotion.max_claims.is_(None),
                        Promotion.current_claims < Promotion.max_claims,
                    ),
                )
                .values(current_claims=Promotion.current_claims + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                db.rollback()
                raise ConflictError("Promotion fully claimed", error_code="promotion_fully_claimed")
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(
                "claim code collision promotion_id=%s attempt=%s/%s",
                promotion_id,
                attempt,
                CLAIM_CODE_MAX_ATTEMPTS,
            )
            continue

        db.refresh(claim)
        logger.info(
            "claim created claim_id=%s promotion_id=%s worker_id=%s expires_at=%s",
            claim.id,
            claim.promotion_id,
            claim.worker_id,
            claim.expires_at.isoformat(),
        )
        return claim

    logger.error("could not allocate a unique claim code promotion_id=%s", promotion_id)
    raise AppException("Failed to claim promotion", error_code="claim_code_exhausted")


def list_worker_claims(db: Session, identity: Identity) -> List[Tuple[Claim, Promotion]]:
    worker = get_worker_profile(db, identity)
    return (
        db.query(Claim, Promotion)
        .join(Promotion, Promotion.id == Claim.promotion_id)
        .filter(Claim.worker_id == worker.id)
        .order_by(Claim.claimed_at.desc(), Claim.id.desc())
        .all()
    )


def redeem_claim(
    db: Session,
    identity: Identity,
    code: str,
    *,
    now: Optional[datetime] = None,
) -> Redemption:
    normalized = normalize_code(code)
    claim = db.query(Claim).filter(Claim.code == normalized).first() if normalized else None

    # Ordem importa: já resgatado vence expirado.
    if claim is None:
        logger.info("redemption rejected reason=invalid_code")
        raise NotFoundError("Invalid code", error_code="invalid_code")
    if claim.is_redeemed:
        logger.info("redemption rejected reason=already_redeemed claim_id=%s", claim.id)
        raise RedemptionRejectedError("Code already redeemed", error_code="already_redeemed")
    current = now or utcnow()
    if current > claim.expires_at:
        logger.info("redemption rejected reason=expired claim_id=%s", claim.id)
        raise RedemptionRejectedError("Code expired", error_code="expired")

    restaurant = _get_restaurant_profile(db, identity)

    result = db.execute(
        update(Claim)
        .where(Claim.id == claim.id, Claim.is_redeemed.is_(False))
        .values(is_redeemed=True)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        logger.info("redemption rejected reason=already_redeemed claim_id=%s race=true", claim.id)
        raise RedemptionRejectedError("Code already redeemed", error_code="already_redeemed")

    redemption = Redemption(
        claim_id=claim.id,
        redeemed_by_user_id=identity.user_id,
        redeemed_at=current,
    )
    db.add(redemption)
    db.flush()

    promotion = db.query(Promotion).filter(Promotion.id == claim.promotion_id).first()
    worker = db.query(WorkerProfile).filter(WorkerProfile.id == claim.worker_id).first()
    log_action(
        db,
        actor_id=identity.user_id,
        action="PROMOTION_REDEEMED",
        subject=f"redemption:{redemption.id}",
        details={
            "promotion_id": claim.promotion_id,
            "promotion_title": promotion.title if promotion else None,
            "worker_id": claim.worker_id,
            "worker_name": worker.name if worker else None,
            "restaurant_profile_id": restaurant.id,
        },
    )

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise RedemptionRejectedError("Code already redeemed", error_code="already_redeemed")

    db.refresh(redemption)
    logger.info(
        "code redeemed claim_id=%s redemption_id=%s promotion_id=%s",
        claim.id,
        redemption.id,
        claim.promotion_id,
    )
    return redemption
