from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status

from cwc_connect.core.config import settings
from cwc_connect.core.dependencies import (
    get_directory_service,
    get_employee_store,
    get_sync_engine,
    get_sync_scheduler,
)
from cwc_connect.models.employee import DataSource, DirectoryEntry
from cwc_connect.services.directory_service import DirectoryService
from cwc_connect.services.employee_store import EmployeeStore, StoreUnavailableError
from cwc_connect.services.sync_engine import SyncEngine, SyncInProgressError, SyncScheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/employees", tags=["employees"])


@router.get("", response_model=list[DirectoryEntry])
async def list_employees(service: DirectoryService = Depends(get_directory_service)):  # noqa: B008
    try:
        return await service.list_directory()
    except StoreUnavailableError as err:
        logger.warning("Employee listing requested while store unavailable: %s", err)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Employee database is currently not available",
        ) from err
    except Exception as err:
        logger.exception("Failed to list employees")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch employees",
        ) from err


@router.get("/sync/manual")
async def sync_manual(engine: SyncEngine = Depends(get_sync_engine)):  # noqa: B008
    try:
        result = await engine.run_cycle()
    except SyncInProgressError as err:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Sync already in progress",
        ) from err
    except Exception as err:
        logger.exception("Manual sync failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Sync failed",
        ) from err

    logger.info("Manual sync finished from %s", result.source.value)
    return {"message": "Database synced successfully!"}


@router.get("/sync/api")
async def sync_api(engine: SyncEngine = Depends(get_sync_engine)):  # noqa: B008
    if not settings.roster_api_configured:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                "CWC API not configured. Please set UPDATE_API, API_USERNAME, "
                "and API_PASSWORD environment variables."
            ),
        )
    return await sync_manual(engine)


@router.get("/sync/status")
async def sync_status(
    store: EmployeeStore = Depends(get_employee_store),  # noqa: B008
    scheduler: SyncScheduler = Depends(get_sync_scheduler),  # noqa: B008
):
    try:
        total = await store.count()
        sources = {}
        for key, source in (("api", DataSource.API), ("excel", DataSource.EXCEL)):
            sources[key] = {
                "count": await store.count(source),
                "lastUpdate": await store.latest_update(source),
            }
    except Exception as err:
        logger.exception("Failed to get sync status")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get sync status: {err}",
        ) from err

    if scheduler.next_run_at is not None:
        next_sync = scheduler.next_run_at.isoformat()
    else:
        next_sync = f"Every {settings.SYNC_INTERVAL_HOURS:g} hours"

    return {
        "status": "OK",
        "totalEmployees": total,
        "dataSources": sources,
        "cwcApiConfig": {
            "updateAPI": settings.UPDATE_API or "Not configured",
            "hasCredentials": bool(settings.API_USERNAME and settings.API_PASSWORD),
            "username": settings.API_USERNAME or "Not configured",
        },
        "nextScheduledSync": next_sync,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
