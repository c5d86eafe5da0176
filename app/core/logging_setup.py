from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime, timezone

from app.core.request_context import current_context

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Códigos de resgate, cookies de sessão e senhas nunca vão para o log em claro.
_SENSITIVE_PATTERNS = [
    re.compile(r"(\b(?:session|admin_session|cookie)\s*[:=]\s*)([^\s\";]+)", re.IGNORECASE),
    re.compile(r"(\b(?:token|code)\s*[:=]\s*)([^\s\",}]+)", re.IGNORECASE),
    re.compile(r"(\b(?:password|secret)\s*[:=]\s*)([^\s\",}]+)", re.IGNORECASE),
]

_CONTEXT_FIELDS = ("request_id", "user_id", "user_role")
_HTTP_FIELDS = ("endpoint", "method", "status_code")


def mask_sensitive(value: str) -> str:
    for pattern in _SENSITIVE_PATTERNS:
        value = pattern.sub(r"\1***", value)
    return value


class JsonFormatter(logging.Formatter):
    """Uma linha JSON por registro, com o contexto da requisição atual.

    Campos passados via ``extra=`` têm precedência sobre o contexto; o
    middleware usa isso no log de fim de requisição.
    """

    def format(self, record: logging.LogRecord) -> str:
        context = current_context().as_log_fields()
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
        }
        for field in _CONTEXT_FIELDS:
            payload[field] = getattr(record, field, None) or context[field]
        payload["message"] = mask_sensitive(record.getMessage())
        payload["duration_ms"] = getattr(record, "duration_ms", None)
        for field in _HTTP_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload["exc_info"] = mask_sensitive(self.formatException(record.exc_info))
        return json.dumps(payload, ensure_ascii=False)


def configure_logging() -> None:
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(LOG_LEVEL)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(logger_name).setLevel(LOG_LEVEL)
