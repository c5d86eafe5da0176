from __future__ import annotations

import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from app.models.user import User
from app.services.passwords import hash_password, password_looks_hashed

logger = logging.getLogger(__name__)
BOOTSTRAP_PREFIX = "[ADMIN_BOOTSTRAP]"


def ensure_users_table(engine: Engine) -> None:
    inspector = inspect(engine)
    if not inspector.has_table("users"):
        raise RuntimeError("Table users not found. Run `alembic upgrade head` first.")


def _resolve_password_hash(password: str) -> str:
    if password_looks_hashed(password):
        logger.info("%s password already hashed; storing as-is", BOOTSTRAP_PREFIX)
        return password
    return hash_password(password)


def upsert_super_admin(
    db: Session,
    *,
    email: str,
    password: str | None,
    reset_password: bool = True,
) -> tuple[User, bool]:
    email = email.strip().lower()
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        existing.role = "super_admin"
        existing.is_active = True
        if password and reset_password:
            existing.password_hash = _resolve_password_hash(password)
        db.commit()
        db.refresh(existing)
        return existing, False

    if not password:
        raise ValueError("A password is required to create a new super admin.")

    admin = User(
        email=email,
        password_hash=_resolve_password_hash(password),
        role="super_admin",
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin, True
