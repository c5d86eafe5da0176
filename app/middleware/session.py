from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware

from app.services.sessions import ADMIN_SESSION_COOKIE, SESSION_COOKIE, decode_session


class SessionMiddleware(BaseHTTPMiddleware):
    """Centralized session decoding from the HTTP-only cookies."""

    async def dispatch(self, request, call_next):
        request.state.session_payload = None
        request.state.admin_session_payload = None
        request.state.identity = None

        token = request.cookies.get(SESSION_COOKIE)
        if token:
            request.state.session_payload = decode_session(token, SESSION_COOKIE)

        if request.url.path.startswith("/api/admin") or request.url.path.startswith("/internal"):
            admin_token = request.cookies.get(ADMIN_SESSION_COOKIE)
            if admin_token:
                request.state.admin_session_payload = decode_session(admin_token, ADMIN_SESSION_COOKIE)

        return await call_next(request)
