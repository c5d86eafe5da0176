from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.metrics import request_metrics
from app.deps import require_super_admin
from app.services.sessions import Identity

router = APIRouter(prefix="/internal/metrics", tags=["internal-metrics"])


@router.get("")
def metrics(_admin: Identity = Depends(require_super_admin)):
    return {
        "endpoints": request_metrics.snapshot(),
        "roles": request_metrics.snapshot_per_role(),
    }
