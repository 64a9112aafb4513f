from __future__ import annotations

from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.testclient import TestClient

from cwc_connect.main import app
from cwc_connect.models.employee import Employee
from cwc_connect.services.employee_store import (
    EmployeeStore,
    FieldMatch,
    document_to_employee,
    employee_to_document,
)


def _field_matches(doc: dict[str, Any], match: FieldMatch) -> bool:
    value = str(doc.get(match.field) or "").lower()
    if match.exact:
        return value == match.value.lower()
    return match.value.lower() in value


class InMemoryEmployeeStore(EmployeeStore):
    """EmployeeStore with the Cosmos query semantics evaluated in memory."""

    def __init__(self, employees: list[Employee] | None = None) -> None:
        super().__init__()
        self.initialized = True
        self.connected = True
        self.docs: dict[str, dict[str, Any]] = {}
        self.queries: list[tuple[FieldMatch, ...]] = []
        for employee in employees or []:
            self.docs[employee.mobile] = employee_to_document(employee)

    async def check_connection(self) -> bool:
        return self.connected

    async def find_eligible(self, *matches: FieldMatch) -> list[Employee]:
        self.queries.append(matches)
        results: list[Employee] = []
        for doc in self.docs.values():
            if not (str(doc.get("floor") or "").strip() and str(doc.get("roomNumber") or "").strip()):
                continue
            if matches and not any(_field_matches(doc, m) for m in matches):
                continue
            results.append(document_to_employee(doc))
        return results

    async def upsert(self, employee: Employee) -> bool:
        created = employee.mobile not in self.docs
        self.docs[employee.mobile] = employee_to_document(employee)
        return created


def make_employee(name: str, mobile: str, **fields: Any) -> Employee:
    data: dict[str, Any] = {
        "designation": "ENGINEER",
        "organisation_unit": "Design Directorate",
        "floor": "3rd Floor",
        "room_number": "301",
        "email": f"{name.split()[0].lower()}@cwc.gov.in" if name.strip() else "",
        "department": "Hidden Dept",
    }
    data.update(fields)
    return Employee(name=name, mobile=mobile, **data)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def memory_store():
    return InMemoryEmployeeStore()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def employee_factory():
    return make_employee


@pytest.fixture
def store_factory():
    return InMemoryEmployeeStore
