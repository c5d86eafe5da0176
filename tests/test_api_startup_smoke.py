from fastapi.testclient import TestClient


REQUIRED_ROUTES = {
    "/api/auth/signup",
    "/api/auth/login",
    "/api/auth/logout",
    "/api/auth/me",
    "/api/auth/signup-with-invite",
    "/api/invites/validate/{token}",
    "/api/promotions",
    "/api/promotions/{promotion_id}",
    "/api/promotions/{promotion_id}/impressions",
    "/api/restaurant/promotions",
    "/api/claims",
    "/api/redemptions",
    "/api/restaurant/wizard-status",
    "/api/restaurant/complete-wizard",
    "/api/restaurant/neighborhoods",
    "/api/restaurant/invites",
    "/api/admin/auth/login",
    "/api/admin/auth/logout",
    "/api/admin/auth/me",
    "/api/admin/dashboard",
    "/api/admin/invites",
    "/api/admin/promotions/expire",
    "/api/admin/users",
    "/api/admin/users/{user_id}",
    "/api/admin/users/{user_id}/reset-password",
    "/api/admin/organizations",
    "/api/admin/organizations/{organization_id}",
    "/api/admin/audit-logs",
    "/internal/metrics",
}


def test_api_startup_and_router_registration(monkeypatch):
    from app import main

    monkeypatch.setattr(main, "_startup_tasks", lambda: None)

    with TestClient(main.app) as client:
        response = client.get("/")
        health_response = client.get("/health")
        docs_response = client.get("/docs")
        openapi_response = client.get("/openapi.json")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert health_response.json() == {"status": "healthy"}
    assert docs_response.status_code == 200
    assert openapi_response.status_code == 200

    paths = set(main.app.openapi()["paths"])
    assert REQUIRED_ROUTES.issubset(paths)
