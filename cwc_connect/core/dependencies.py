from __future__ import annotations

from cwc_connect.core.config import settings
from cwc_connect.services.directory_service import DirectoryService
from cwc_connect.services.employee_store import EmployeeStore, employee_store
from cwc_connect.services.reply_generator import reply_generator
from cwc_connect.services.roster_api_client import roster_api_client
from cwc_connect.services.source_selector import SourceSelector
from cwc_connect.services.sync_engine import SyncEngine, SyncScheduler

directory_service = DirectoryService(employee_store, reply_generator)
sync_engine = SyncEngine(employee_store, SourceSelector.from_settings(settings, roster_api_client))
sync_scheduler = SyncScheduler(
    sync_engine,
    interval=settings.SYNC_INTERVAL_HOURS * 3600,
    run_on_start=settings.SYNC_ON_STARTUP,
)


def get_employee_store() -> EmployeeStore:
    return employee_store


def get_directory_service() -> DirectoryService:
    return directory_service


def get_sync_engine() -> SyncEngine:
    return sync_engine


def get_sync_scheduler() -> SyncScheduler:
    return sync_scheduler
