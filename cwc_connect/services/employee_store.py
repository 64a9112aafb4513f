"""Cosmos DB employee store.

Documents carry ``id = document_id(mobile)`` so the container itself enforces
one record per mobile number. Raw mobile values may hold characters Cosmos
rejects in ids (``/``, ``\\``, ``?``, ``#``), hence the hashed id. The
container must be provisioned with partition key ``/id``.
"""

from __future__ import annotations

import hashlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from azure.core.exceptions import ServiceRequestError, ServiceResponseError
from azure.cosmos.aio import CosmosClient
from azure.cosmos.exceptions import CosmosResourceExistsError

from cwc_connect.core.config import Settings
from cwc_connect.models.employee import DataSource, Employee

logger = logging.getLogger(__name__)

# Internal fields that never leave the store layer
_METADATA_FIELDS = frozenset({"id", "_rid", "_self", "_etag", "_attachments", "_ts"})

_MATCHABLE_FIELDS = frozenset({"name", "designation", "organisationUnit"})

ELIGIBLE_CLAUSE = (
    "IS_STRING(c.floor) AND LENGTH(TRIM(c.floor)) > 0 "
    "AND IS_STRING(c.roomNumber) AND LENGTH(TRIM(c.roomNumber)) > 0"
)


class StoreUnavailableError(Exception):
    pass


@dataclass(frozen=True)
class FieldMatch:
    """Case-insensitive predicate on one stored field.

    ``exact`` compares the whole value, otherwise ``value`` may appear anywhere.
    """

    field: str
    value: str
    exact: bool = False


def build_eligible_query(matches: tuple[FieldMatch, ...]) -> tuple[str, list[dict[str, Any]]]:
    params: list[dict[str, Any]] = []
    clauses: list[str] = []
    for i, match in enumerate(matches):
        if match.field not in _MATCHABLE_FIELDS:
            raise ValueError(f"Field not searchable: {match.field}")
        name = f"@v{i}"
        func = "STRINGEQUALS" if match.exact else "CONTAINS"
        clauses.append(f"{func}(c.{match.field}, {name}, true)")
        params.append({"name": name, "value": match.value})

    query = f"SELECT * FROM c WHERE {ELIGIBLE_CLAUSE}"
    if clauses:
        query += " AND (" + " OR ".join(clauses) + ")"
    return query, params


def document_to_employee(raw: dict[str, Any]) -> Employee:
    data = {k: v for k, v in raw.items() if k not in _METADATA_FIELDS and v is not None}
    return Employee.model_validate(data)


def document_id(mobile: str) -> str:
    return hashlib.sha256(mobile.strip().encode("utf-8")).hexdigest()


def employee_to_document(employee: Employee) -> dict[str, Any]:
    doc = employee.model_dump(mode="json", by_alias=True)
    doc["id"] = document_id(employee.mobile)
    return doc


class EmployeeStore:
    def __init__(self, reconnect_interval: float = 30.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.client: CosmosClient | None = None
        self.container: Any = None
        self.initialized: bool = False
        self.connected: bool = False
        self.reconnect_interval = reconnect_interval
        self._clock = clock
        self._last_probe: float | None = None

    async def initialize(self, settings: Settings) -> None:
        if self.initialized:
            return

        if not settings.store_configured:
            logger.warning("Cosmos DB credentials missing, store not initialized")
            return

        if settings.COSMOS_DB_CONNECTION_STRING:
            self.client = CosmosClient.from_connection_string(settings.COSMOS_DB_CONNECTION_STRING)
        else:
            self.client = CosmosClient(settings.COSMOS_DB_ENDPOINT, settings.COSMOS_DB_KEY)
        self.reconnect_interval = settings.STORE_RECONNECT_INTERVAL_SECONDS
        container_name = settings.COSMOS_DB_EMPLOYEES_CONTAINER
        db = self.client.get_database_client(settings.COSMOS_DB_DATABASE)
        self.container = db.get_container_client(container_name)
        self.initialized = True
        logger.info("EmployeeStore initialized (container=%s)", container_name)

        await self.check_connection()

    async def close(self) -> None:
        if self.client:
            await self.client.close()
            self.client = None
            self.container = None
            self.initialized = False
            self.connected = False

    def is_available(self) -> bool:
        return self.initialized and self.connected

    async def ensure_available(self) -> bool:
        """Like ``is_available`` but re-probes a dropped connection.

        Probes are spaced at least ``reconnect_interval`` seconds apart.
        """
        if self.is_available():
            return True
        if not self.initialized:
            return False
        if self._last_probe is not None and self._clock() - self._last_probe < self.reconnect_interval:
            return False
        if await self.check_connection():
            logger.info("Cosmos DB connection restored")
        return self.connected

    async def check_connection(self) -> bool:
        self._last_probe = self._clock()
        if not self.container:
            self.connected = False
            return False
        try:
            async for _ in self.container.query_items(
                query="SELECT VALUE COUNT(1) FROM c",
                enable_cross_partition_query=True,
            ):
                break
            self.connected = True
        except Exception:
            logger.exception("Cosmos DB connection check failed")
            self.connected = False
        return self.connected

    async def _query(self, query: str, parameters: list[dict[str, Any]] | None = None) -> list[Any]:
        if not self.container:
            raise StoreUnavailableError("Employee store is not initialized")

        items: list[Any] = []
        try:
            async for item in self.container.query_items(
                query=query,
                parameters=parameters or [],
                enable_cross_partition_query=True,
            ):
                items.append(item)
        except (ServiceRequestError, ServiceResponseError) as e:
            self.connected = False
            self._last_probe = None
            raise StoreUnavailableError(f"Employee store unreachable: {e}") from e
        return items

    async def find_eligible(self, *matches: FieldMatch) -> list[Employee]:
        """Directory-eligible employees matching any of ``matches`` (all when none given)."""
        query, params = build_eligible_query(matches)
        return [document_to_employee(item) for item in await self._query(query, params)]

    async def upsert(self, employee: Employee) -> bool:
        """Insert or overwrite the record for ``employee.mobile``. Returns True when inserted."""
        if not self.container:
            raise StoreUnavailableError("Employee store is not initialized")
        if not employee.mobile:
            raise ValueError("Employee mobile is required for persistence")

        doc = employee_to_document(employee)
        try:
            try:
                await self.container.create_item(body=doc)
                return True
            except CosmosResourceExistsError:
                await self.container.replace_item(item=doc["id"], body=doc)
                return False
        except (ServiceRequestError, ServiceResponseError) as e:
            self.connected = False
            self._last_probe = None
            raise StoreUnavailableError(f"Employee store unreachable: {e}") from e

    async def count(self, data_source: DataSource | None = None) -> int:
        if data_source is None:
            rows = await self._query("SELECT VALUE COUNT(1) FROM c")
        else:
            rows = await self._query(
                "SELECT VALUE COUNT(1) FROM c WHERE c.dataSource = @source",
                [{"name": "@source", "value": data_source.value}],
            )
        return int(rows[0]) if rows else 0

    async def latest_update(self, data_source: DataSource) -> datetime | None:
        rows = await self._query(
            "SELECT VALUE MAX(c.lastUpdated) FROM c WHERE c.dataSource = @source",
            [{"name": "@source", "value": data_source.value}],
        )
        if not rows or not rows[0]:
            return None
        return datetime.fromisoformat(rows[0])


employee_store = EmployeeStore()
