"""Employee models for the Cosmos DB directory collection."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DataSource(str, Enum):
    EXCEL = "Excel"
    API = "API"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DirectoryEntry(_CamelModel):
    """Employee fields that may leave the service."""

    organisation_unit: str = ""
    name: str = ""
    designation: str = ""
    email: str = ""
    floor: str = ""
    room_number: str = ""
    landline: str = ""
    unit: str = ""

    @property
    def is_directory_eligible(self) -> bool:
        return bool(self.floor.strip()) and bool(self.room_number.strip())


class Employee(DirectoryEntry):
    """Canonical employee record as persisted, keyed by mobile."""

    department: str = ""
    mobile: str = ""
    last_updated: datetime | None = None
    data_source: DataSource | None = None

    def to_entry(self) -> DirectoryEntry:
        return DirectoryEntry.model_validate(self.model_dump(include=set(DirectoryEntry.model_fields)))


class SyncResult(_CamelModel):
    source: DataSource
    total_records: int
    new_count: int
    updated_count: int
    failed_count: int = 0
