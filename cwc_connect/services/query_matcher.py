"""Layered employee lookup for free-text chat questions.

Tiers run in order and the first one that yields anything wins:

1. the whole question is a known designation ("director", "deputy director")
2. the whole question equals a name, else appears inside one
3. each capitalised name candidate appears inside a name
4. the designation keyword equals a designation
5. the lowercased question appears inside a name or organisation unit

Every tier only sees directory-eligible employees. Results keep the order in
which they were found (tier, then candidate, then store order), except that
exact full-name matches are moved to the front.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from cwc_connect.models.employee import Employee
from cwc_connect.services.employee_store import EmployeeStore, FieldMatch, StoreUnavailableError

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"[A-Z][a-z]+ [A-Z][a-z]+|[A-Z][a-z]+")
DESIGNATION_PATTERN = re.compile(r"(director|engineer|assistant|deputy|chief|member|chairman)", re.IGNORECASE)
EXACT_DESIGNATIONS = ("director", "deputy director")


@dataclass(frozen=True)
class QueryEntities:
    names: list[str] = field(default_factory=list)
    designation: str | None = None
    query: str = ""
    full_query: str = ""


def extract_entities(question: str) -> QueryEntities:
    designation = DESIGNATION_PATTERN.search(question)
    return QueryEntities(
        names=NAME_PATTERN.findall(question),
        designation=designation.group(1) if designation else None,
        query=question.lower(),
        full_query=question.strip(),
    )


def rank_matches(employees: list[Employee], full_query: str) -> list[Employee]:
    """Keep eligible employees once each, exact full-name matches first."""
    seen: set[str] = set()
    unique: list[Employee] = []
    for employee in employees:
        if not employee.is_directory_eligible or employee.mobile in seen:
            continue
        seen.add(employee.mobile)
        unique.append(employee)

    target = full_query.lower()
    # sorted() is stable, so non-exact matches keep discovery order
    return sorted(unique, key=lambda e: e.name.lower() != target)


class QueryMatcher:
    def __init__(self, store: EmployeeStore) -> None:
        self.store = store

    async def match(self, question: str) -> list[Employee]:
        return await self.match_entities(extract_entities(question))

    async def match_entities(self, entities: QueryEntities) -> list[Employee]:
        if not await self.store.ensure_available():
            raise StoreUnavailableError("Employee store is not available")

        designation_query = entities.full_query.lower()
        if designation_query in EXACT_DESIGNATIONS:
            found = await self.store.find_eligible(FieldMatch("designation", designation_query, exact=True))
            if found:
                return rank_matches(found, entities.full_query)

        employees: list[Employee] = []

        if entities.full_query:
            employees = await self.store.find_eligible(FieldMatch("name", entities.full_query, exact=True))
            if not employees:
                employees = await self.store.find_eligible(FieldMatch("name", entities.full_query))

        if not employees:
            for name in entities.names:
                employees.extend(await self.store.find_eligible(FieldMatch("name", name)))

        if not employees and entities.designation:
            employees = await self.store.find_eligible(FieldMatch("designation", entities.designation, exact=True))

        if not employees and entities.query:
            employees = await self.store.find_eligible(
                FieldMatch("name", entities.query),
                FieldMatch("organisationUnit", entities.query),
            )

        ranked = rank_matches(employees, entities.full_query)
        logger.debug("Matched %d employees for %r", len(ranked), entities.full_query)
        return ranked
