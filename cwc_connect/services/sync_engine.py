from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from cwc_connect.models.employee import DataSource, Employee, SyncResult
from cwc_connect.services.employee_store import EmployeeStore, StoreUnavailableError
from cwc_connect.services.record_normalizer import normalize_api_record
from cwc_connect.services.source_merger import normalize_key
from cwc_connect.services.source_selector import SourceSelector

logger = logging.getLogger(__name__)


class SyncInProgressError(Exception):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def deduplicate_by_mobile(
    employees: list[Employee],
    source: DataSource,
    now: datetime,
) -> list[Employee]:
    """Drop records without a mobile and keep the last record seen per mobile."""
    unique: dict[str, Employee] = {}
    for employee in employees:
        key = normalize_key(employee.mobile)
        if not key:
            continue
        unique[key] = employee.model_copy(update={"mobile": key, "last_updated": now, "data_source": source})
    return list(unique.values())


class SyncEngine:
    def __init__(
        self,
        store: EmployeeStore,
        selector: SourceSelector,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.selector = selector
        self._clock = clock
        self._lock = asyncio.Lock()
        self.last_result: SyncResult | None = None

    @property
    def in_progress(self) -> bool:
        return self._lock.locked()

    async def run_cycle(self, *, dry_run: bool = False) -> SyncResult:
        if self._lock.locked():
            raise SyncInProgressError("A sync cycle is already running")

        async with self._lock:
            return await self._run(dry_run=dry_run)

    async def _run(self, *, dry_run: bool) -> SyncResult:
        if not dry_run and not self.store.is_available() and not await self.store.check_connection():
            raise StoreUnavailableError("Employee store is not available")

        selection = await self.selector.select()
        source = selection.source
        logger.info("Data source: %s, total rows: %d", source.value, len(selection.records))

        if source is DataSource.API:
            employees = [normalize_api_record(raw) for raw in selection.records]
            logger.info("Normalized API data: %d records", len(employees))
        else:
            employees = list(selection.records)

        unique = deduplicate_by_mobile(employees, source, self._clock())
        logger.info("Rows with unique mobile: %d", len(unique))

        new_count = 0
        updated_count = 0
        failed_count = 0
        if not dry_run:
            for employee in unique:
                try:
                    if await self.store.upsert(employee):
                        new_count += 1
                    else:
                        updated_count += 1
                except StoreUnavailableError:
                    raise
                except Exception:
                    logger.exception("Failed to upsert employee record %s", employee.name or "<unnamed>")
                    failed_count += 1

        result = SyncResult(
            source=source,
            total_records=len(unique),
            new_count=new_count,
            updated_count=updated_count,
            failed_count=failed_count,
        )
        logger.info(
            "%s sync complete: %d records, %d new, %d updated, %d failed%s",
            source.value,
            result.total_records,
            result.new_count,
            result.updated_count,
            result.failed_count,
            " (dry run)" if dry_run else "",
        )
        if not dry_run:
            self.last_result = result
        return result


class SyncScheduler:
    """Runs a sync cycle at start-up and then every ``interval`` seconds."""

    def __init__(self, engine: SyncEngine, interval: float, *, run_on_start: bool = True) -> None:
        self.engine = engine
        self.interval = interval
        self.run_on_start = run_on_start
        self.next_run_at: datetime | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info("Sync scheduled every %.1f hours", self.interval / 3600)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        self.next_run_at = None

    async def _loop(self) -> None:
        if self.run_on_start:
            await self.run_once("Initial")
        while True:
            self.next_run_at = _utcnow() + timedelta(seconds=self.interval)
            await asyncio.sleep(self.interval)
            await self.run_once("Scheduled")

    async def run_once(self, label: str) -> SyncResult | None:
        try:
            result = await self.engine.run_cycle()
        except SyncInProgressError:
            logger.info("%s sync skipped: a cycle is already running", label)
            return None
        except Exception:
            logger.exception("%s sync failed", label)
            return None
        logger.info("%s sync completed", label)
        return result
