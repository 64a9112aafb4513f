from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from cwc_connect.core.dependencies import get_employee_store
from cwc_connect.services.employee_store import EmployeeStore

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check(store: EmployeeStore = Depends(get_employee_store)):  # noqa: B008
    return {
        "status": "OK",
        "message": "CWC Connect Backend is running",
        "database": "connected" if await store.ensure_available() else "disconnected",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
