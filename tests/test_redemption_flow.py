from __future__ import annotations

import json
from datetime import datetime, timedelta

import pytest

from app.core.errors import NotFoundError, RedemptionRejectedError
from app.models.audit_log import AuditLog
from app.models.claim import Claim, Redemption
from app.services import claims
from tests.fixtures_data import create_promotion, create_restaurant, create_worker, identity_for

FROZEN_NOW = datetime(2026, 3, 14, 18, 30, 0)


@pytest.fixture
def claimed(db):
    restaurant_user, restaurant_profile, organization = create_restaurant(db)
    worker_user, worker_profile = create_worker(db)
    promotion = create_promotion(db, organization, title="Staff burger night")
    claim = claims.create_claim(db, identity_for(worker_user), promotion.id, now=FROZEN_NOW)
    return {
        "restaurant": identity_for(restaurant_user),
        "restaurant_profile": restaurant_profile,
        "worker_profile": worker_profile,
        "promotion": promotion,
        "claim": claim,
    }


def test_redeem_marks_claim_and_writes_redemption(db, claimed):
    code = claimed["claim"].code
    redeemed_at = FROZEN_NOW + timedelta(hours=2)

    redemption = claims.redeem_claim(db, claimed["restaurant"], code.lower(), now=redeemed_at)

    assert redemption.claim_id == claimed["claim"].id
    assert redemption.redeemed_by_user_id == claimed["restaurant"].user_id
    assert redemption.redeemed_at == redeemed_at
    db.expire_all()
    assert db.get(Claim, claimed["claim"].id).is_redeemed is True


def test_redeem_records_audit_entry_with_promotion_and_worker(db, claimed):
    redemption = claims.redeem_claim(db, claimed["restaurant"], claimed["claim"].code, now=FROZEN_NOW)

    entry = db.query(AuditLog).filter(AuditLog.action == "PROMOTION_REDEEMED").one()
    details = json.loads(entry.details)
    assert entry.actor_id == claimed["restaurant"].user_id
    assert entry.subject == f"redemption:{redemption.id}"
    assert details["promotion_title"] == "Staff burger night"
    assert details["worker_name"] == claimed["worker_profile"].name


def test_unknown_code_is_invalid(db, claimed):
    with pytest.raises(NotFoundError) as exc:
        claims.redeem_claim(db, claimed["restaurant"], "00000000", now=FROZEN_NOW)

    assert exc.value.message == "Invalid code"
    assert exc.value.error_code == "invalid_code"


def test_second_redemption_is_rejected_as_already_redeemed(db, claimed):
    code = claimed["claim"].code
    claims.redeem_claim(db, claimed["restaurant"], code, now=FROZEN_NOW)

    with pytest.raises(RedemptionRejectedError) as exc:
        claims.redeem_claim(db, claimed["restaurant"], code, now=FROZEN_NOW + timedelta(minutes=1))

    assert exc.value.message == "Code already redeemed"
    assert exc.value.error_code == "already_redeemed"
    assert db.query(Redemption).count() == 1


def test_code_past_expiry_is_rejected_as_expired(db, claimed):
    with pytest.raises(RedemptionRejectedError) as exc:
        claims.redeem_claim(
            db,
            claimed["restaurant"],
            claimed["claim"].code,
            now=FROZEN_NOW + timedelta(hours=24, seconds=1),
        )

    assert exc.value.message == "Code expired"
    assert exc.value.error_code == "expired"
    db.expire_all()
    assert db.get(Claim, claimed["claim"].id).is_redeemed is False


def test_code_is_still_valid_at_exact_expiry_instant(db, claimed):
    redemption = claims.redeem_claim(
        db,
        claimed["restaurant"],
        claimed["claim"].code,
        now=FROZEN_NOW + timedelta(hours=24),
    )

    assert redemption.id is not None


def test_already_redeemed_wins_over_expired(db, claimed):
    code = claimed["claim"].code
    claims.redeem_claim(db, claimed["restaurant"], code, now=FROZEN_NOW)

    with pytest.raises(RedemptionRejectedError) as exc:
        claims.redeem_claim(db, claimed["restaurant"], code, now=FROZEN_NOW + timedelta(days=5))

    assert exc.value.error_code == "already_redeemed"


def test_any_restaurant_can_redeem_a_valid_code(db, claimed):
    other_user, _, _ = create_restaurant(db, email="owner@cantina.io", name="Cantina", with_organization=False)

    redemption = claims.redeem_claim(db, identity_for(other_user), claimed["claim"].code, now=FROZEN_NOW)

    assert redemption.redeemed_by_user_id == other_user.id
