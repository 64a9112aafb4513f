"""Join the eOffice roster with the telephone directory on mobile number.

The lookup is a linear scan per roster row (first directory match wins), so a
merge costs O(roster × directory). That is fine for a few thousand rows; index
the directory by normalized key if volumes grow beyond that.
"""

from __future__ import annotations

import logging
from typing import Any

from cwc_connect.models.employee import Employee

logger = logging.getLogger(__name__)

ROSTER_KEY_FIELDS = ("Mobile", "mobile")
DIRECTORY_KEY_FIELDS = ("MOBILE", "mobile")


def normalize_key(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _cell(row: dict[str, Any], *keys: str) -> str:
    for key in keys:
        text = normalize_key(row.get(key))
        if text:
            return text
    return ""


def find_directory_match(key: str, directory_rows: list[dict[str, Any]]) -> dict[str, Any] | None:
    for row in directory_rows:
        if _cell(row, *DIRECTORY_KEY_FIELDS) == key:
            return row
    return None


def merge_sources(
    roster_rows: list[dict[str, Any]],
    directory_rows: list[dict[str, Any]],
) -> list[Employee]:
    logger.info("Roster rows: %d, directory rows: %d", len(roster_rows), len(directory_rows))

    merged: list[Employee] = []
    for roster in roster_rows:
        key = _cell(roster, *ROSTER_KEY_FIELDS)
        name = _cell(roster, "Employee Name", "Name")
        match = find_directory_match(key, directory_rows)

        if match is None:
            logger.warning("EXCLUDED: no directory match for mobile %r", key)
            continue

        floor = _cell(match, "LOCN")
        if not floor:
            logger.warning("EXCLUDED: no location info for %s", name or key)
            continue

        room = _cell(match, "PABX")
        if not room:
            logger.warning("EXCLUDED: no room number for %s", name or key)
            continue

        merged.append(
            Employee(
                organisation_unit=_cell(roster, "Organisation Unit"),
                name=name,
                designation=_cell(roster, "Designation"),
                email=_cell(roster, "E-mail"),
                floor=floor,
                room_number=room,
                landline=_cell(match, "OFFICE"),
                department=_cell(match, "DESIGNATION"),
                unit=_cell(roster, "Post"),
                mobile=key or _cell(match, *DIRECTORY_KEY_FIELDS),
            )
        )

    logger.info(
        "Merged %d directory employees with room numbers, excluded %d",
        len(merged),
        len(roster_rows) - len(merged),
    )
    return merged
