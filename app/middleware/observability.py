from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.metrics import request_metrics
from app.core.request_context import bind_identity, end_request, start_request

logger = logging.getLogger(__name__)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        context_token = start_request(request_id)

        status_code = 500
        method = request.method

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            endpoint = _route_template(request)
            user_id, user_role = _extract_identity(request)
            duration_ms = round((time.perf_counter() - start) * 1000, 2)

            bind_identity(user_id, user_role)
            request_metrics.observe(
                endpoint=endpoint,
                method=method,
                status_code=status_code,
                duration_ms=duration_ms,
                role=user_role,
            )

            logger.info(
                "request completed",
                extra={
                    "request_id": request_id,
                    "user_id": user_id,
                    "user_role": user_role,
                    "endpoint": endpoint,
                    "method": method,
                    "status_code": status_code,
                    "duration_ms": duration_ms,
                },
            )

            if "response" in locals():
                response.headers["X-Request-ID"] = request_id

            end_request(context_token)


def _route_template(request: Request) -> str:
    # /api/promotions/{promotion_id} em vez de um path por id
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path or request.url.path


def _extract_identity(request: Request) -> tuple[str | None, str | None]:
    identity = getattr(request.state, "identity", None)
    if identity is None:
        return None, None
    return str(identity.user_id), identity.role
