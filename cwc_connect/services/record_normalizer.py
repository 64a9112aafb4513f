from __future__ import annotations

import logging
from typing import Any

from cwc_connect.models.employee import Employee

logger = logging.getLogger(__name__)

# Canonical field → roster API aliases, first non-empty value wins
_API_ALIASES: list[tuple[str, tuple[str, ...]]] = [
    ("organisation_unit", ("OrganisationUnit", "organisation_unit", "unit")),
    ("name", ("EmpName", "employee_name", "name", "EmployeeName")),
    ("designation", ("Designation", "designation", "role")),
    ("email", ("Email", "email", "emailId")),
    ("floor", ("Floor", "floor", "location")),
    ("room_number", ("RoomNo", "room_no", "roomNumber")),
    ("landline", ("Landline", "landline", "phone")),
    ("department", ("Department", "department", "dept")),
    ("unit", ("Unit", "unit", "workUnit")),
    ("mobile", ("Mobile", "mobile", "mobileNumber", "phone_number")),
]

_WRAPPER_KEYS = ("data", "employees")


def _first_value(raw: dict[str, Any], aliases: tuple[str, ...]) -> str:
    for key in aliases:
        value = raw.get(key)
        if value is None:
            continue
        text = str(value)
        if text:
            return text
    return ""


def unwrap_api_payload(payload: Any) -> list[Any]:
    """Return the record list from a roster API response of unknown shape."""
    if isinstance(payload, list):
        return payload
    if payload is None:
        return []

    logger.warning("Roster API payload is not a list, attempting to extract records")
    if isinstance(payload, dict):
        for key in _WRAPPER_KEYS:
            wrapped = payload.get(key)
            if wrapped:
                return wrapped if isinstance(wrapped, list) else [wrapped]
    return [payload] if payload else []


def normalize_api_record(raw: Any) -> Employee:
    if not isinstance(raw, dict):
        return Employee()
    data = {field: _first_value(raw, aliases) for field, aliases in _API_ALIASES}
    return Employee(**data)


def normalize_api_records(payload: Any) -> list[Employee]:
    return [normalize_api_record(raw) for raw in unwrap_api_payload(payload)]
