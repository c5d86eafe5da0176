from __future__ import annotations

import json
from typing import Any, Mapping, Optional, Union

from sqlalchemy.orm import Session

from app.models.audit_log import AuditLog


def log_action(
    db: Session,
    *,
    actor_id: Optional[int],
    action: str,
    subject: str,
    details: Optional[Union[Mapping[str, Any], str]] = None,
) -> AuditLog:
    """Append an audit entry to the caller's transaction (the caller commits)."""
    if details is None or isinstance(details, str):
        encoded = details
    else:
        encoded = json.dumps(dict(details), default=str)

    entry = AuditLog(
        actor_id=actor_id,
        action=action,
        subject=subject,
        details=encoded,
    )
    db.add(entry)
    return entry
