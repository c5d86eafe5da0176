from __future__ import annotations

from datetime import datetime, timedelta

from app.models.audit_log import AuditLog
from app.models.organization import Organization
from app.models.promotion import Promotion
from app.models.restaurant_profile import RestaurantProfile
from app.models.user import User
from app.services import claims
from app.services.passwords import verify_password
from app.services.sessions import ADMIN_SESSION_COOKIE
from tests.fixtures_data import (
    DEFAULT_PASSWORD,
    admin_login_as,
    create_promotion,
    create_restaurant,
    create_super_admin,
    create_worker,
    identity_for,
    login_as,
)


def test_admin_login_sets_admin_cookie_and_me(client, db):
    create_super_admin(db, email="root@shiftperks.io")

    response = client.post(
        "/api/admin/auth/login",
        json={"email": "root@shiftperks.io", "password": DEFAULT_PASSWORD},
    )

    assert response.status_code == 200
    assert response.json()["user"]["role"] == "super_admin"
    assert ADMIN_SESSION_COOKIE in response.cookies

    me = client.get("/api/admin/auth/me")
    assert me.status_code == 200
    assert me.json()["user"]["email"] == "root@shiftperks.io"
    assert db.query(AuditLog).filter(AuditLog.action == "ADMIN_LOGIN").count() == 1


def test_admin_login_rejects_non_admin_accounts(client, db):
    create_worker(db, email="worker@shiftperks.io")

    response = client.post(
        "/api/admin/auth/login",
        json={"email": "worker@shiftperks.io", "password": DEFAULT_PASSWORD},
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Superadmin access required"


def test_admin_logout_clears_cookie_and_logs(client, db):
    create_super_admin(db, email="root@shiftperks.io")
    login = client.post(
        "/api/admin/auth/login",
        json={"email": "root@shiftperks.io", "password": DEFAULT_PASSWORD},
    )
    assert login.status_code == 200
    assert client.get("/api/admin/auth/me").status_code == 200

    response = client.post("/api/admin/auth/logout")

    assert response.status_code == 200
    assert client.get("/api/admin/auth/me").status_code == 401
    assert db.query(AuditLog).filter(AuditLog.action == "ADMIN_LOGOUT").count() == 1


def test_user_session_cookie_does_not_open_admin_routes(client, db):
    admin = create_super_admin(db)
    login_as(client, admin)

    response = client.get("/api/admin/dashboard")

    assert response.status_code == 401


def test_admin_routes_forbid_other_roles(client, db):
    restaurant_user, _, _ = create_restaurant(db)
    admin_login_as(client, restaurant_user)

    response = client.get("/api/admin/users")

    assert response.status_code == 403
    assert response.json() == {"detail": "Superadmin access required", "code": "super_admin_required"}


def test_admin_lists_searches_and_updates_users(client, db):
    admin = create_super_admin(db)
    worker_user, _ = create_worker(db, email="ana@shiftperks.io", name="Ana")
    create_restaurant(db, email="owner@bistronove.io")
    admin_login_as(client, admin)

    listed = client.get("/api/admin/users")
    searched = client.get("/api/admin/users", params={"q": "ANA@"})
    detail = client.get(f"/api/admin/users/{worker_user.id}")
    updated = client.patch(f"/api/admin/users/{worker_user.id}", json={"isActive": False})
    bad_role = client.patch(f"/api/admin/users/{worker_user.id}", json={"role": "owner"})
    missing = client.get("/api/admin/users/9999")

    assert listed.status_code == 200
    assert len(listed.json()) == 3
    assert [row["email"] for row in searched.json()] == ["ana@shiftperks.io"]
    assert detail.json()["name"] == "Ana"
    assert updated.json()["is_active"] is False
    assert bad_role.status_code == 400
    assert missing.status_code == 404
    assert db.query(AuditLog).filter(AuditLog.action == "UPDATE_USER").count() == 1


def test_admin_cannot_deactivate_self(client, db):
    admin = create_super_admin(db)
    admin_login_as(client, admin)

    response = client.patch(f"/api/admin/users/{admin.id}", json={"isActive": False})

    assert response.status_code == 400
    assert response.json()["code"] == "self_deactivation"


def test_admin_resets_password(client, db):
    admin = create_super_admin(db)
    worker_user, _ = create_worker(db)
    admin_login_as(client, admin)

    response = client.post(
        f"/api/admin/users/{worker_user.id}/reset-password",
        json={"newPassword": "brand-new-pass"},
    )

    assert response.status_code == 200
    db.expire_all()
    assert verify_password("brand-new-pass", db.get(User, worker_user.id).password_hash)
    assert db.query(AuditLog).filter(AuditLog.action == "RESET_PASSWORD").count() == 1


def test_admin_organization_crud(client, db):
    admin = create_super_admin(db)
    restaurant_user, profile, _ = create_restaurant(db, with_organization=False)
    admin_login_as(client, admin)

    created = client.post("/api/admin/organizations", json={"name": "Cantina Central", "maxEmployees": 12})
    organization_id = created.json()["id"]
    profile.organization_id = organization_id
    db.commit()

    updated = client.patch(
        f"/api/admin/organizations/{organization_id}",
        json={"subscriptionStatus": "active", "neighborhood": "Pinheiros"},
    )
    invalid = client.patch(f"/api/admin/organizations/{organization_id}", json={"subscriptionStatus": "gold"})
    listed = client.get("/api/admin/organizations")
    deleted = client.delete(f"/api/admin/organizations/{organization_id}")
    missing = client.get(f"/api/admin/organizations/{organization_id}")

    assert created.status_code == 201
    assert created.json()["subscription_status"] == "trial"
    assert updated.json()["subscription_status"] == "active"
    assert updated.json()["neighborhood"] == "Pinheiros"
    assert invalid.status_code == 400
    assert [row["id"] for row in listed.json()] == [organization_id]
    assert deleted.json() == {"success": True}
    assert missing.status_code == 404

    db.expire_all()
    assert db.query(Organization).count() == 0
    assert db.get(RestaurantProfile, profile.id).organization_id is None
    actions = {entry.action for entry in db.query(AuditLog).all()}
    assert {"CREATE_ORGANIZATION", "UPDATE_ORGANIZATION", "DELETE_ORGANIZATION"} <= actions


def test_audit_log_filters_and_pagination(client, db):
    admin = create_super_admin(db)
    restaurant_user, _, organization = create_restaurant(db)
    promotion = create_promotion(db, organization)
    worker_user, _ = create_worker(db)
    for _ in range(3):
        claim = claims.create_claim(db, identity_for(worker_user), promotion.id)
        claims.redeem_claim(db, identity_for(restaurant_user), claim.code)
    admin_login_as(client, admin)

    page = client.get("/api/admin/audit-logs", params={"action": "promotion_redeemed", "limit": 2})
    by_actor_id = client.get("/api/admin/audit-logs", params={"actor": str(restaurant_user.id)})
    by_actor_email = client.get("/api/admin/audit-logs", params={"actor": "bistronove"})
    too_big = client.get("/api/admin/audit-logs", params={"limit": 1000})

    assert page.status_code == 200
    body = page.json()
    assert body["total"] == 3
    assert body["limit"] == 2
    assert len(body["logs"]) == 2
    assert body["logs"][0]["actor_email"] == "owner@bistronove.io"
    assert body["logs"][0]["details"]["promotion_id"] == promotion.id
    assert by_actor_id.json()["total"] == 3
    assert by_actor_email.json()["total"] == 3
    assert too_big.status_code == 422


def test_dashboard_aggregates(client, db):
    admin = create_super_admin(db)
    restaurant_user, _, organization = create_restaurant(db)
    promotion = create_promotion(db, organization, impressions=7)
    create_promotion(db, organization, status="draft")
    worker_user, _ = create_worker(db)
    claim = claims.create_claim(db, identity_for(worker_user), promotion.id)
    claims.redeem_claim(db, identity_for(restaurant_user), claim.code)
    claims.create_claim(db, identity_for(worker_user), promotion.id)
    admin_login_as(client, admin)

    response = client.get("/api/admin/dashboard")

    assert response.status_code == 200
    body = response.json()
    assert body["total_users"] == 3
    assert body["total_orgs"] == 1
    assert body["active_users"] == 3
    assert body["promotion_stats"] == {
        "total": 2,
        "active": 1,
        "total_claims": 2,
        "total_redemptions": 1,
        "total_impressions": 7,
    }
    assert len(body["daily_activity"]) == 30
    today = body["daily_activity"][-1]
    assert today["claims"] == 2
    assert today["redemptions"] == 1
    assert body["top_restaurants"] == [
        {"organization_id": organization.id, "name": organization.name, "redemptions": 1}
    ]
    assert body["recent_logs"][0]["action"] == "PROMOTION_REDEEMED"


def test_admin_expire_endpoint_sweeps_and_audits(client, db):
    admin = create_super_admin(db)
    _, _, organization = create_restaurant(db)
    stale = create_promotion(db, organization, end_date=datetime.utcnow() - timedelta(days=1))
    admin_login_as(client, admin)

    first = client.post("/api/admin/promotions/expire")
    second = client.post("/api/admin/promotions/expire")

    assert first.json() == {"expired": 1}
    assert second.json() == {"expired": 0}
    db.expire_all()
    assert db.get(Promotion, stale.id).status == "expired"
    assert db.query(AuditLog).filter(AuditLog.action == "PROMOTIONS_EXPIRED").count() == 1


def test_internal_metrics_groups_by_route_template_and_role(client, db):
    admin = create_super_admin(db)
    _, _, organization = create_restaurant(db)
    first = create_promotion(db, organization)
    second = create_promotion(db, organization)

    client.get(f"/api/promotions/{first.id}")
    client.get(f"/api/promotions/{second.id}")
    admin_login_as(client, admin)
    response = client.get("/internal/metrics")

    assert response.status_code == 200
    endpoints = response.json()["endpoints"]
    assert endpoints["GET /api/promotions/{promotion_id}"]["total_requests"] == 2
    assert not any(key.endswith(f"/api/promotions/{first.id}") for key in endpoints)
    assert response.json()["roles"]["anonymous"]["total_requests"] >= 2
