from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

from fastapi import Request, Response
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from app.core.config import (
    SESSION_COOKIE_DOMAIN,
    SESSION_COOKIE_HTTPONLY,
    SESSION_COOKIE_SAMESITE,
    SESSION_COOKIE_SECURE,
    SESSION_MAX_AGE_SECONDS,
    SESSION_SECRET,
)

SESSION_COOKIE = "session"
ADMIN_SESSION_COOKIE = "admin_session"
SESSION_SALT = "user-session"
ADMIN_SESSION_SALT = "admin-session"


@dataclass(frozen=True)
class Identity:
    """Who is calling, resolved once per request from the signed cookie."""

    user_id: int
    role: str

    @property
    def is_worker(self) -> bool:
        return self.role == "worker"

    @property
    def is_restaurant(self) -> bool:
        return self.role == "restaurant"

    @property
    def is_super_admin(self) -> bool:
        return self.role == "super_admin"


def _serializer(salt: str) -> URLSafeTimedSerializer:
    if not SESSION_SECRET:
        raise RuntimeError("SESSION_SECRET não configurado.")
    return URLSafeTimedSerializer(SESSION_SECRET, salt=salt)


def _salt_for(cookie_name: str) -> str:
    return ADMIN_SESSION_SALT if cookie_name == ADMIN_SESSION_COOKIE else SESSION_SALT


def create_session(payload: Dict[str, Any], cookie_name: str = SESSION_COOKIE) -> str:
    if "exp" not in payload:
        payload = {
            **payload,
            "exp": int(time.time()) + SESSION_MAX_AGE_SECONDS,
        }
    return _serializer(_salt_for(cookie_name)).dumps(payload)


def decode_session(token: str, cookie_name: str = SESSION_COOKIE) -> Optional[Dict[str, Any]]:
    try:
        payload = _serializer(_salt_for(cookie_name)).loads(token, max_age=SESSION_MAX_AGE_SECONDS)
    except (BadSignature, SignatureExpired, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    exp = payload.get("exp")
    if exp is not None:
        try:
            if int(exp) < int(time.time()):
                return None
        except (TypeError, ValueError):
            return None
    return payload


def identity_from_payload(payload: Optional[Dict[str, Any]]) -> Optional[Identity]:
    if not payload:
        return None
    raw_user_id = payload.get("user_id")
    role = payload.get("role")
    if raw_user_id is None or not role:
        return None
    try:
        user_id = int(raw_user_id)
    except (TypeError, ValueError):
        return None
    return Identity(user_id=user_id, role=str(role))


def build_session_cookie_options(request: Request | None = None) -> dict[str, Any]:
    secure = SESSION_COOKIE_SECURE
    samesite = SESSION_COOKIE_SAMESITE

    host = ""
    origin_host = ""
    if request is not None:
        host = (request.headers.get("x-forwarded-host") or request.headers.get("host") or "").lower()
        host = host.split(",")[0].strip().split(":")[0]

        origin = (request.headers.get("origin") or "").strip()
        if origin:
            origin_host = (urlsplit(origin).hostname or "").lower()

    is_local_request = host in {"", "localhost", "127.0.0.1", "testserver"}
    is_cross_site_request = bool(origin_host and host and origin_host != host)

    # Em hosts públicos, nunca emitir cookie inseguro.
    if not is_local_request:
        secure = True

    # Frontend e API em domínios distintos exigem SameSite=None.
    if is_cross_site_request and secure:
        samesite = "none"

    # Browsers rejeitam SameSite=None sem Secure.
    if samesite == "none" and not secure:
        samesite = "lax"

    return {
        "domain": SESSION_COOKIE_DOMAIN,
        "httponly": SESSION_COOKIE_HTTPONLY,
        "samesite": samesite,
        "path": "/",
        "secure": secure,
    }


def set_session_cookie(
    response: Response,
    token: str,
    request: Request | None = None,
    cookie_name: str = SESSION_COOKIE,
) -> None:
    response.set_cookie(
        key=cookie_name,
        value=token,
        max_age=SESSION_MAX_AGE_SECONDS,
        **build_session_cookie_options(request),
    )


def clear_session_cookie(
    response: Response,
    request: Request | None = None,
    cookie_name: str = SESSION_COOKIE,
) -> None:
    response.delete_cookie(
        key=cookie_name,
        **build_session_cookie_options(request),
    )
