from __future__ import annotations

import logging
from dataclasses import dataclass

from cwc_connect.models.employee import DirectoryEntry, Employee
from cwc_connect.services.employee_store import EmployeeStore, StoreUnavailableError
from cwc_connect.services.query_matcher import QueryMatcher
from cwc_connect.services.reply_generator import ReplyGenerator

logger = logging.getLogger(__name__)

NO_MATCH_REPLY = (
    'I couldn\'t find any employees matching "{question}". Try searching by:\n'
    '- Full name (e.g., "Amitabh Tiwari")\n'
    '- Designation (e.g., "Director", "Engineer")\n'
    "- Organization unit\n\n"
    "You can also browse the organizational structure using the menu button."
)

STORE_UNAVAILABLE_REPLY = (
    "Sorry, the employee database is currently not available. Here are some things you can do:\n\n"
    "1. Use the organizational structure menu to browse positions\n"
    "2. Try again in a few moments\n"
    "3. Contact the reception desk for immediate assistance\n\n"
    "CWC Connect will automatically reconnect to the database when it becomes available."
)


@dataclass
class DirectoryAnswer:
    reply: str
    match_count: int
    store_available: bool


def format_employees(employees: list[Employee]) -> str:
    if not employees:
        return "No employees found matching your query."

    parts: list[str] = [f"Found {len(employees)} employee(s):", ""]
    for i, emp in enumerate(employees):
        parts.append(f"{i + 1}. {emp.name}")
        parts.append(f"   Designation: {emp.designation or 'Not specified'}")
        if emp.organisation_unit:
            parts.append(f"   Unit: {emp.organisation_unit}")
        if emp.floor.strip():
            parts.append(f"   Location: {emp.floor}")
        if emp.room_number.strip():
            parts.append(f"   Room/Ext: {emp.room_number}")
        if emp.email:
            parts.append(f"   Email: {emp.email}")
        if emp.landline.strip():
            parts.append(f"   Phone: {emp.landline}")
        parts.append("")

    return "\n".join(parts) + "\n"


class DirectoryService:
    def __init__(self, store: EmployeeStore, reply_generator: ReplyGenerator) -> None:
        self.store = store
        self.matcher = QueryMatcher(store)
        self.reply_generator = reply_generator

    async def list_directory(self) -> list[DirectoryEntry]:
        if not await self.store.ensure_available():
            raise StoreUnavailableError("Employee store is not available")

        employees = await self.store.find_eligible()
        return [emp.to_entry() for emp in employees if emp.is_directory_eligible]

    async def answer_query(self, question: str) -> DirectoryAnswer:
        if not await self.store.ensure_available():
            return DirectoryAnswer(reply=STORE_UNAVAILABLE_REPLY, match_count=0, store_available=False)

        try:
            employees = await self.matcher.match(question)
        except StoreUnavailableError:
            logger.exception("Employee search failed")
            return DirectoryAnswer(reply=STORE_UNAVAILABLE_REPLY, match_count=0, store_available=False)

        logger.info("Found %d employees for query: %s", len(employees), question)
        if not employees:
            return DirectoryAnswer(
                reply=NO_MATCH_REPLY.format(question=question),
                match_count=0,
                store_available=True,
            )

        summary = format_employees(employees)
        reply = await self.reply_generator.rephrase(question, summary)
        return DirectoryAnswer(reply=reply or summary, match_count=len(employees), store_available=True)
