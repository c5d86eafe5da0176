"""Contexto por requisição lido pelo formatter de log.

Um único ``RequestContext`` imutável por requisição. O middleware abre o
contexto com o request id, a dependência de sessão acrescenta a identidade
e o middleware fecha tudo no fim.
"""
from __future__ import annotations

from contextvars import ContextVar, Token
from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True)
class RequestContext:
    request_id: str | None = None
    user_id: str | None = None
    user_role: str | None = None

    def as_log_fields(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "user_id": self.user_id,
            "user_role": self.user_role,
        }


_EMPTY = RequestContext()
_CURRENT: ContextVar[RequestContext] = ContextVar("shiftperks_request_context", default=_EMPTY)


def current_context() -> RequestContext:
    return _CURRENT.get()


def start_request(request_id: str) -> Token:
    return _CURRENT.set(RequestContext(request_id=request_id))


def bind_identity(user_id: int | str | None, role: str | None) -> None:
    # Anônimo não sobrescreve uma identidade já resolvida.
    if user_id is None and role is None:
        return
    _CURRENT.set(
        replace(
            _CURRENT.get(),
            user_id=str(user_id) if user_id is not None else None,
            user_role=role,
        )
    )


def end_request(token: Token | None = None) -> None:
    if token is not None:
        _CURRENT.reset(token)
    else:
        _CURRENT.set(_EMPTY)
