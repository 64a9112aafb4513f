from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from azure.core.exceptions import ServiceRequestError
from azure.cosmos.exceptions import CosmosResourceExistsError

from cwc_connect.models.employee import DataSource, Employee
from cwc_connect.services.employee_store import (
    ELIGIBLE_CLAUSE,
    EmployeeStore,
    FieldMatch,
    StoreUnavailableError,
    build_eligible_query,
    document_id,
    document_to_employee,
    employee_to_document,
)

SAMPLE_COSMOS_DOC = {
    "id": "9876543210",
    "organisationUnit": "Design (N&W)",
    "name": "Jane Doe",
    "designation": "DIRECTOR",
    "email": "jane.doe@cwc.gov.in",
    "floor": "3rd Floor",
    "roomNumber": "301",
    "landline": "011-2610",
    "department": "Hydrology",
    "unit": "HQ",
    "mobile": "9876543210",
    "lastUpdated": "2026-10-18T06:00:00Z",
    "dataSource": "Excel",
    "_rid": "abc==",
    "_self": "dbs/abc/colls/def/docs/ghi/",
    "_etag": '"0000"',
    "_attachments": "attachments/",
    "_ts": 1792303200,
}


def _store_with_items(*items) -> tuple[EmployeeStore, list[dict]]:
    store = EmployeeStore()
    store.initialized = True
    store.connected = True
    calls: list[dict] = []

    async def mock_query_items(**kwargs):
        calls.append(kwargs)
        for item in items:
            yield item

    mock_container = MagicMock()
    mock_container.query_items = mock_query_items
    store.container = mock_container
    return store, calls


def test_document_to_employee_maps_fields_and_drops_metadata():
    result = document_to_employee(SAMPLE_COSMOS_DOC)

    assert isinstance(result, Employee)
    assert result.organisation_unit == "Design (N&W)"
    assert result.name == "Jane Doe"
    assert result.room_number == "301"
    assert result.department == "Hydrology"
    assert result.mobile == "9876543210"
    assert result.last_updated == datetime(2026, 10, 18, 6, 0, tzinfo=timezone.utc)
    assert result.data_source is DataSource.EXCEL


def test_document_to_employee_tolerates_nulls():
    result = document_to_employee({"id": "1", "name": "Only Name", "floor": None})

    assert result.name == "Only Name"
    assert result.floor == ""


def test_employee_to_document_is_keyed_by_mobile():
    doc = employee_to_document(Employee(name="Jane Doe", mobile="555", room_number="301"))

    assert doc["id"] == document_id("555")
    assert doc["mobile"] == "555"
    assert doc["roomNumber"] == "301"
    assert "room_number" not in doc


def test_build_query_without_matches_lists_all_eligible():
    query, params = build_eligible_query(())

    assert query == f"SELECT * FROM c WHERE {ELIGIBLE_CLAUSE}"
    assert params == []


def test_build_query_combines_matches_with_or():
    query, params = build_eligible_query(
        (FieldMatch("name", "jane"), FieldMatch("organisationUnit", "jane"), FieldMatch("designation", "x", exact=True))
    )

    assert "(CONTAINS(c.name, @v0, true) OR CONTAINS(c.organisationUnit, @v1, true) " in query
    assert "STRINGEQUALS(c.designation, @v2, true))" in query
    assert [p["value"] for p in params] == ["jane", "jane", "x"]


def test_build_query_rejects_unknown_fields():
    with pytest.raises(ValueError):
        build_eligible_query((FieldMatch("department", "x"),))


@pytest.mark.anyio
async def test_find_eligible_returns_employees():
    store, calls = _store_with_items(SAMPLE_COSMOS_DOC)

    results = await store.find_eligible(FieldMatch("name", "Jane Doe", exact=True))

    assert [e.name for e in results] == ["Jane Doe"]
    assert calls[0]["parameters"] == [{"name": "@v0", "value": "Jane Doe"}]
    assert "STRINGEQUALS(c.name, @v0, true)" in calls[0]["query"]


@pytest.mark.anyio
async def test_find_eligible_transport_error_marks_store_unavailable():
    store = EmployeeStore()
    store.initialized = True
    store.connected = True

    async def failing_query_items(**kwargs):
        raise ServiceRequestError("connection refused")
        yield

    store.container = MagicMock()
    store.container.query_items = failing_query_items

    with pytest.raises(StoreUnavailableError):
        await store.find_eligible()

    assert store.is_available() is False


@pytest.mark.anyio
async def test_find_eligible_not_initialized():
    with pytest.raises(StoreUnavailableError):
        await EmployeeStore().find_eligible()


@pytest.mark.anyio
async def test_upsert_inserts_new_record():
    store = EmployeeStore()
    store.container = MagicMock()
    store.container.create_item = AsyncMock()
    store.container.replace_item = AsyncMock()

    created = await store.upsert(Employee(name="Jane Doe", mobile="555"))

    assert created is True
    assert store.container.create_item.call_args.kwargs["body"]["id"] == document_id("555")
    store.container.replace_item.assert_not_awaited()


@pytest.mark.anyio
async def test_upsert_replaces_existing_record():
    store = EmployeeStore()
    store.container = MagicMock()
    store.container.create_item = AsyncMock(side_effect=CosmosResourceExistsError(status_code=409, message="exists"))
    store.container.replace_item = AsyncMock()

    created = await store.upsert(Employee(name="Jane Doe", mobile="555", designation="DIRECTOR"))

    assert created is False
    kwargs = store.container.replace_item.call_args.kwargs
    assert kwargs["item"] == document_id("555")
    assert kwargs["body"]["designation"] == "DIRECTOR"


@pytest.mark.anyio
async def test_upsert_requires_mobile():
    store = EmployeeStore()
    store.container = MagicMock()

    with pytest.raises(ValueError):
        await store.upsert(Employee(name="No Phone"))


@pytest.mark.anyio
async def test_count_by_source():
    store, calls = _store_with_items(7)

    assert await store.count(DataSource.API) == 7
    assert calls[0]["parameters"] == [{"name": "@source", "value": "API"}]


@pytest.mark.anyio
async def test_latest_update_parses_timestamp():
    store, _ = _store_with_items("2026-10-18T06:00:00Z")

    assert await store.latest_update(DataSource.EXCEL) == datetime(2026, 10, 18, 6, 0, tzinfo=timezone.utc)


@pytest.mark.anyio
async def test_latest_update_none_when_empty():
    store, _ = _store_with_items()

    assert await store.latest_update(DataSource.API) is None


@pytest.mark.anyio
async def test_check_connection_success():
    store, _ = _store_with_items(42)
    store.connected = False

    assert await store.check_connection() is True
    assert store.is_available() is True


@pytest.mark.anyio
async def test_check_connection_not_initialized():
    store = EmployeeStore()

    assert await store.check_connection() is False
    assert store.is_available() is False


def test_document_id_is_safe_for_slashed_mobiles():
    doc_id = document_id("9811111111/9722222222")

    assert not any(ch in doc_id for ch in "/\\?#")
    assert doc_id == document_id(" 9811111111/9722222222 ")
    assert doc_id != document_id("9811111111")


@pytest.mark.anyio
async def test_upsert_accepts_mobile_with_slash():
    store = EmployeeStore()
    store.container = MagicMock()
    store.container.create_item = AsyncMock()

    assert await store.upsert(Employee(name="Jane Doe", mobile="9811111111/9722222222")) is True

    body = store.container.create_item.call_args.kwargs["body"]
    assert "/" not in body["id"]
    assert body["mobile"] == "9811111111/9722222222"


def _flaky_store(now: list[float]) -> tuple[EmployeeStore, dict]:
    store = EmployeeStore(reconnect_interval=30.0, clock=lambda: now[0])
    store.initialized = True
    store.connected = True
    state = {"down": True, "calls": 0}

    async def query_items(**kwargs):
        state["calls"] += 1
        if state["down"]:
            raise ServiceRequestError("connection reset")
        yield 1

    store.container = MagicMock()
    store.container.query_items = query_items
    return store, state


@pytest.mark.anyio
async def test_ensure_available_reconnects_after_transport_error():
    now = [100.0]
    store, state = _flaky_store(now)

    with pytest.raises(StoreUnavailableError):
        await store.count()
    assert store.is_available() is False

    state["down"] = False
    assert await store.ensure_available() is True
    assert store.is_available() is True


@pytest.mark.anyio
async def test_ensure_available_spaces_out_failed_probes():
    now = [100.0]
    store, state = _flaky_store(now)
    store.connected = False

    assert await store.ensure_available() is False
    assert state["calls"] == 1

    now[0] += 10
    assert await store.ensure_available() is False
    assert state["calls"] == 1

    state["down"] = False
    now[0] += 30
    assert await store.ensure_available() is True
    assert state["calls"] == 2


@pytest.mark.anyio
async def test_ensure_available_without_initialization():
    store = EmployeeStore()

    assert await store.ensure_available() is False
