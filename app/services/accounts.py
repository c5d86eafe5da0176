"""Accounts and profiles: signup, login, invite signup and the onboarding wizard."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    TooManyRequestsError,
    UnauthorizedError,
)
from app.models.invite_token import InviteToken
from app.models.organization import Organization
from app.models.restaurant_profile import RestaurantProfile
from app.models.user import User
from app.models.worker_profile import WorkerProfile
from app.services.audit import log_action
from app.services.invites import consume_invite, validate_invite
from app.services.login_attempts import check_login_lock, clear_login_attempts, register_failed_login
from app.services.passwords import hash_password, verify_password
from app.services.sessions import Identity

logger = logging.getLogger(__name__)

SIGNUP_ROLES = ("worker", "restaurant")

Profile = Union[WorkerProfile, RestaurantProfile]


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def get_profile(db: Session, user: User) -> Optional[Profile]:
    if user.role == "worker":
        return db.query(WorkerProfile).filter(WorkerProfile.user_id == user.id).first()
    if user.role == "restaurant":
        return db.query(RestaurantProfile).filter(RestaurantProfile.user_id == user.id).first()
    return None


def _ensure_email_available(db: Session, email: str) -> None:
    if get_user_by_email(db, email) is not None:
        raise ConflictError("Email already registered", error_code="email_taken")


def _commit_new_account(db: Session, email: str) -> None:
    try:
        db.commit()
    except IntegrityError:
        # Corrida entre dois cadastros com o mesmo e-mail.
        db.rollback()
        raise ConflictError("Email already registered", error_code="email_taken")


def signup(
    db: Session,
    *,
    email: str,
    password: str,
    role: str,
    name: str,
    position: Optional[str] = None,
    address: Optional[str] = None,
    logo_url: Optional[str] = None,
) -> Tuple[User, Profile]:
    email = normalize_email(email)
    _ensure_email_available(db, email)

    user = User(email=email, password_hash=hash_password(password), role=role, is_active=True)
    db.add(user)
    db.flush()

    profile: Profile
    if role == "worker":
        profile = WorkerProfile(user_id=user.id, name=name, position=position or "other", is_verified=False)
        db.add(profile)
        log_action(
            db,
            actor_id=user.id,
            action="WORKER_ADDED",
            subject=f"worker:{user.id}",
            details={"email": email, "name": name, "position": profile.position},
        )
    else:
        profile = RestaurantProfile(user_id=user.id, name=name, address=address, logo_url=logo_url)
        db.add(profile)
        log_action(
            db,
            actor_id=user.id,
            action="RESTAURANT_ONBOARDED",
            subject=f"restaurant:{user.id}",
            details={"email": email, "name": name, "address": address},
        )

    _commit_new_account(db, email)
    db.refresh(user)
    db.refresh(profile)
    logger.info("signup completed user_id=%s role=%s", user.id, role)
    return user, profile


def authenticate(
    db: Session,
    email: str,
    password: str,
    *,
    required_role: Optional[str] = None,
) -> User:
    """Check credentials with per-email lockout; raises on every failure path."""
    email = normalize_email(email)

    locked, locked_until = check_login_lock(db, email)
    if locked:
        logger.warning("login blocked email=%s locked_until=%s", email, locked_until)
        raise TooManyRequestsError()

    user = get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        _, now_locked = register_failed_login(db, email)
        db.commit()
        logger.warning("login failed email=%s", email)
        if now_locked:
            raise TooManyRequestsError()
        raise UnauthorizedError("Invalid credentials", error_code="invalid_credentials")

    if required_role is not None and user.role != required_role:
        logger.warning("login denied email=%s role=%s required=%s", email, user.role, required_role)
        raise ForbiddenError("Superadmin access required", error_code="super_admin_required")

    if not user.is_active:
        raise ForbiddenError("Account is inactive", error_code="account_inactive")

    clear_login_attempts(db, email)
    db.commit()
    return user


def get_me(db: Session, identity: Identity) -> Tuple[User, Optional[Profile]]:
    user = db.query(User).filter(User.id == identity.user_id).first()
    if user is None:
        raise NotFoundError("User not found", error_code="user_not_found")
    return user, get_profile(db, user)


def signup_with_invite(
    db: Session,
    *,
    token: str,
    email: str,
    password: str,
    name: str,
    restaurant_name: Optional[str] = None,
    position: Optional[str] = None,
) -> Tuple[User, Profile, InviteToken]:
    invite = validate_invite(db, token)
    email = normalize_email(email)
    _ensure_email_available(db, email)

    role = "restaurant" if invite.invite_type == "admin" else "worker"
    user = User(email=email, password_hash=hash_password(password), role=role, is_active=True)
    db.add(user)
    db.flush()

    profile: Profile
    if role == "restaurant":
        # Organização só é criada no wizard.
        profile = RestaurantProfile(user_id=user.id, name=restaurant_name or name)
    else:
        profile = WorkerProfile(
            user_id=user.id,
            organization_id=invite.organization_id,
            name=name,
            position=position or "other",
            is_verified=True,
        )
    db.add(profile)

    try:
        consume_invite(db, invite)
    except ConflictError:
        db.rollback()
        raise

    log_action(
        db,
        actor_id=user.id,
        action="SIGNUP_WITH_INVITE",
        subject=f"user:{user.id}",
        details={"email": email, "name": name, "invite_type": invite.invite_type, "invite_id": invite.id},
    )
    _commit_new_account(db, email)
    db.refresh(user)
    db.refresh(profile)
    logger.info("invite signup completed user_id=%s invite_id=%s role=%s", user.id, invite.id, role)
    return user, profile, invite


def get_restaurant_profile(db: Session, identity: Identity) -> RestaurantProfile:
    profile = (
        db.query(RestaurantProfile)
        .filter(RestaurantProfile.user_id == identity.user_id)
        .first()
    )
    if profile is None:
        raise NotFoundError("Profile not found", error_code="restaurant_profile_not_found")
    return profile


def wizard_status(db: Session, identity: Identity) -> Dict[str, Any]:
    profile = get_restaurant_profile(db, identity)
    return {
        "needs_wizard": profile.organization_id is None,
        "profile": {
            "name": profile.name,
            "address": profile.address,
            "logo_url": profile.logo_url,
        },
    }


def complete_wizard(
    db: Session,
    identity: Identity,
    *,
    address: str,
    max_employees: int,
    goals: List[str],
    neighborhood: Optional[str] = None,
) -> Organization:
    profile = get_restaurant_profile(db, identity)
    if profile.organization_id is not None:
        raise ConflictError("Wizard already completed", error_code="wizard_completed")

    organization = Organization(
        name=f"{profile.name}'s Organization",
        address=address,
        neighborhood=neighborhood,
        logo_url=profile.logo_url,
        max_employees=max_employees,
        goals=list(goals),
        is_active=True,
    )
    db.add(organization)
    db.flush()

    profile.organization_id = organization.id
    if not profile.address:
        profile.address = address

    log_action(
        db,
        actor_id=identity.user_id,
        action="WIZARD_COMPLETED",
        subject=f"organization:{organization.id}",
        details={
            "restaurant_name": profile.name,
            "organization_name": organization.name,
            "max_employees": max_employees,
            "goals": list(goals),
        },
    )
    db.commit()
    db.refresh(organization)
    logger.info("wizard completed organization_id=%s user_id=%s", organization.id, identity.user_id)
    return organization


def list_neighborhoods(db: Session) -> List[str]:
    rows = (
        db.query(Organization.neighborhood)
        .filter(Organization.neighborhood.is_not(None), Organization.is_active.is_(True))
        .distinct()
        .order_by(Organization.neighborhood.asc())
        .all()
    )
    return [row[0] for row in rows if row[0]]
