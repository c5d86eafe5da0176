from __future__ import annotations

import sqlite3
from pathlib import Path
from uuid import UUID

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core import startup_checks
from app.core.errors import ConflictError, register_exception_handlers


def test_request_id_is_returned_in_response_header(monkeypatch):
    from app import main

    monkeypatch.setattr(main, "_startup_tasks", lambda: None)

    with TestClient(main.app) as client:
        response = client.get("/health")
        echoed = client.get("/health", headers={"X-Request-ID": "req-from-gateway"})

    assert response.status_code == 200
    request_id = response.headers.get("X-Request-ID")
    assert request_id
    UUID(request_id)
    assert echoed.headers.get("X-Request-ID") == "req-from-gateway"


def test_cors_allows_known_origin_and_blocks_unknown_origin(monkeypatch):
    from app import main
    from app.core.config import CORS_ORIGINS

    monkeypatch.setattr(main, "_startup_tasks", lambda: None)

    allowed_origin = CORS_ORIGINS[0]
    blocked_origin = "https://blocked-origin.example"

    with TestClient(main.app) as client:
        allowed_response = client.options(
            "/health",
            headers={
                "origin": allowed_origin,
                "access-control-request-method": "GET",
            },
        )
        blocked_response = client.options(
            "/health",
            headers={
                "origin": blocked_origin,
                "access-control-request-method": "GET",
            },
        )

    assert allowed_response.status_code == 200
    assert allowed_response.headers.get("access-control-allow-origin") == allowed_origin

    assert blocked_response.status_code == 400
    assert blocked_response.headers.get("access-control-allow-origin") is None


def test_production_environment_rejects_sqlite(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setattr(startup_checks, "DATABASE_URL", "sqlite:///./forbidden.db")

    with pytest.raises(RuntimeError, match="SQLite is forbidden"):
        startup_checks.validate_database_environment()


def test_migration_check_fails_when_pending_migration(tmp_path: Path, monkeypatch):
    db_path = tmp_path / "pending.db"
    conn = sqlite3.connect(db_path)
    conn.execute("CREATE TABLE alembic_version (version_num VARCHAR(32) NOT NULL)")
    conn.execute("INSERT INTO alembic_version (version_num) VALUES ('000000000000')")
    conn.commit()
    conn.close()

    from sqlalchemy import create_engine

    monkeypatch.setenv("ENVIRONMENT", "staging")
    monkeypatch.setattr(startup_checks, "DATABASE_URL", "postgresql://perks@db/perks")
    engine = create_engine(f"sqlite:///{db_path}")

    with pytest.raises(RuntimeError, match="Pending migrations"):
        startup_checks.ensure_migrations_applied(
            engine=engine,
            alembic_config_path=Path(__file__).resolve().parents[1] / "alembic.ini",
        )


def test_migration_check_passes_at_head(tmp_path: Path, monkeypatch):
    db_path = tmp_path / "current.db"
    conn = sqlite3.connect(db_path)
    conn.execute("CREATE TABLE alembic_version (version_num VARCHAR(32) NOT NULL)")
    conn.execute("INSERT INTO alembic_version (version_num) VALUES ('0001_create_schema')")
    conn.commit()
    conn.close()

    from sqlalchemy import create_engine

    monkeypatch.setenv("ENVIRONMENT", "staging")
    monkeypatch.setattr(startup_checks, "DATABASE_URL", "postgresql://perks@db/perks")

    startup_checks.ensure_migrations_applied(
        engine=create_engine(f"sqlite:///{db_path}"),
        alembic_config_path=Path(__file__).resolve().parents[1] / "alembic.ini",
    )


def test_errors_share_detail_and_code_shape():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/conflict")
    def conflict():
        raise ConflictError("Promotion fully claimed", error_code="promotion_fully_claimed")

    @app.get("/boom")
    def boom():
        raise ValueError("unexpected")

    client = TestClient(app, raise_server_exceptions=False)
    conflict_response = client.get("/conflict")
    boom_response = client.get("/boom")

    assert conflict_response.status_code == 409
    assert conflict_response.json() == {"detail": "Promotion fully claimed", "code": "promotion_fully_claimed"}
    assert boom_response.status_code == 500
    assert boom_response.json() == {"detail": "Internal server error", "code": "internal_error"}
