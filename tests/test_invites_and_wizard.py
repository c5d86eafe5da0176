from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from app.core.errors import BadRequestError
from app.models.audit_log import AuditLog
from app.models.invite_token import InviteToken
from app.models.organization import Organization
from app.services import invites
from tests.fixtures_data import (
    DEFAULT_PASSWORD,
    WIZARD_PAYLOAD,
    admin_login_as,
    create_restaurant,
    create_super_admin,
    create_worker,
    identity_for,
    login_as,
)


def test_admin_invite_expires_at_end_of_day_with_single_use(db):
    admin = create_super_admin(db)
    now = datetime(2026, 4, 2, 9, 15, 0)

    invite = invites.create_invite(db, identity_for(admin), invite_type="admin", now=now)

    assert invite.expires_at == datetime(2026, 4, 2, 23, 59, 59, 999000)
    assert invite.max_uses == 1
    assert invite.current_uses == 0
    assert invite.organization_id is None


def test_worker_invite_requires_organization(db):
    restaurant_user, _, _ = create_restaurant(db)

    with pytest.raises(BadRequestError):
        invites.create_invite(db, identity_for(restaurant_user), invite_type="worker")


@pytest.mark.parametrize(
    ("mutation", "error_code", "message"),
    [
        ({"is_active": False}, "invite_inactive", "Invite token is no longer active"),
        ({"expires_at": datetime(2020, 1, 1)}, "invite_expired", "Invite token has expired"),
        ({"current_uses": 1}, "invite_exhausted", "Invite token has reached its usage limit"),
    ],
)
def test_validate_invite_rejections(db, mutation, error_code, message):
    admin = create_super_admin(db)
    invite = invites.create_invite(db, identity_for(admin), invite_type="admin")
    for field, value in mutation.items():
        setattr(invite, field, value)
    db.commit()

    with pytest.raises(BadRequestError) as exc:
        invites.validate_invite(db, invite.token)

    assert exc.value.error_code == error_code
    assert exc.value.message == message
    assert exc.value.details == {"valid": False}


def test_validate_endpoint_reports_valid_and_invalid_tokens(client, db):
    admin = create_super_admin(db)
    invite = invites.create_invite(db, identity_for(admin), invite_type="admin")

    valid = client.get(f"/api/invites/validate/{invite.token}")
    invalid = client.get("/api/invites/validate/not-a-token")

    assert valid.status_code == 200
    assert valid.json()["valid"] is True
    assert valid.json()["invite_type"] == "admin"
    assert invalid.status_code == 400
    assert invalid.json() == {"detail": "Invalid invite token", "code": "invalid_invite", "valid": False}


def test_admin_invite_signup_creates_restaurant_that_needs_wizard(client, db):
    admin = create_super_admin(db)
    admin_login_as(client, admin)
    created = client.post("/api/admin/invites")
    assert created.status_code == 201
    token = created.json()["token"]
    assert created.json()["url"].endswith(f"/signup?invite={token}")

    response = client.post(
        "/api/auth/signup-with-invite",
        json={
            "email": "manager@trattoria.io",
            "password": DEFAULT_PASSWORD,
            "name": "Giulia Rossi",
            "restaurantName": "Trattoria Rossi",
            "inviteToken": token,
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["role"] == "restaurant"
    assert body["profile"]["name"] == "Trattoria Rossi"
    assert body["profile"]["organization_id"] is None
    assert body["needs_wizard"] is True

    db.expire_all()
    invite = db.query(InviteToken).filter(InviteToken.token == token).one()
    assert invite.current_uses == 1

    reused = client.post(
        "/api/auth/signup-with-invite",
        json={
            "email": "second@trattoria.io",
            "password": DEFAULT_PASSWORD,
            "name": "Marco",
            "inviteToken": token,
        },
    )
    assert reused.status_code == 400
    assert reused.json()["code"] == "invite_exhausted"


def test_worker_invite_signup_links_worker_to_organization(client, db):
    restaurant_user, _, organization = create_restaurant(db)
    login_as(client, restaurant_user)
    created = client.post("/api/restaurant/invites", json={"maxUses": 5})
    assert created.status_code == 201
    assert created.json()["organization_id"] == organization.id
    assert created.json()["max_uses"] == 5
    client.cookies.clear()

    response = client.post(
        "/api/auth/signup-with-invite",
        json={
            "email": "line.cook@shiftperks.io",
            "password": DEFAULT_PASSWORD,
            "name": "Caio",
            "position": "cook",
            "inviteToken": created.json()["token"],
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["role"] == "worker"
    assert body["profile"]["organization_id"] == organization.id
    assert body["profile"]["is_verified"] is True
    assert body["needs_wizard"] is False
    assert db.query(AuditLog).filter(AuditLog.action == "SIGNUP_WITH_INVITE").count() == 1


def test_restaurant_without_organization_cannot_invite_workers(client, db):
    restaurant_user, _, _ = create_restaurant(db, with_organization=False)
    login_as(client, restaurant_user)

    response = client.post("/api/restaurant/invites", json={})

    assert response.status_code == 403
    assert response.json()["code"] == "organization_required"


def test_wizard_creates_organization_once(client, db):
    restaurant_user, _, _ = create_restaurant(db, name="Bistro Nove", with_organization=False)
    login_as(client, restaurant_user)

    before = client.get("/api/restaurant/wizard-status")
    completed = client.post("/api/restaurant/complete-wizard", json=WIZARD_PAYLOAD)
    after = client.get("/api/restaurant/wizard-status")
    again = client.post("/api/restaurant/complete-wizard", json=WIZARD_PAYLOAD)

    assert before.json()["needs_wizard"] is True
    assert before.json()["profile"]["name"] == "Bistro Nove"
    assert completed.status_code == 200
    organization = completed.json()["organization"]
    assert organization["name"] == "Bistro Nove's Organization"
    assert organization["max_employees"] == 25
    assert organization["goals"] == ["attract_talent", "retain_staff"]
    assert after.json()["needs_wizard"] is False
    assert again.status_code == 409
    assert db.query(Organization).count() == 1
    assert db.query(AuditLog).filter(AuditLog.action == "WIZARD_COMPLETED").count() == 1


def test_wizard_validates_goals_and_team_size(client, db):
    restaurant_user, _, _ = create_restaurant(db, with_organization=False)
    login_as(client, restaurant_user)

    no_goals = client.post("/api/restaurant/complete-wizard", json={**WIZARD_PAYLOAD, "goals": []})
    blank_goals = client.post("/api/restaurant/complete-wizard", json={**WIZARD_PAYLOAD, "goals": ["  "]})
    too_many = client.post("/api/restaurant/complete-wizard", json={**WIZARD_PAYLOAD, "maxEmployees": 5000})

    assert no_goals.status_code == 422
    assert blank_goals.status_code == 422
    assert too_many.status_code == 422


def test_neighborhoods_lists_distinct_active_values(client, db):
    restaurant_user, _, _ = create_restaurant(db)
    create_restaurant(db, email="owner@cantina.io", name="Cantina")
    login_as(client, restaurant_user)

    response = client.get("/api/restaurant/neighborhoods")

    assert response.status_code == 200
    assert response.json() == ["Consolacao"]


def test_worker_cannot_use_restaurant_routes(client, db):
    worker_user, _ = create_worker(db)
    login_as(client, worker_user)

    response = client.get("/api/restaurant/wizard-status")

    assert response.status_code == 403
    assert response.json()["code"] == "restaurant_required"


def test_worker_invite_defaults_to_thirty_days(db):
    restaurant_user, _, organization = create_restaurant(db)
    now = datetime(2026, 4, 2, 9, 0, 0)

    invite = invites.create_invite(
        db,
        identity_for(restaurant_user),
        invite_type="worker",
        organization_id=organization.id,
        now=now,
    )

    assert invite.expires_at == now + timedelta(days=30)
    assert invite.max_uses == 50
