from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from cwc_connect.core.config import Settings
from cwc_connect.models.employee import DataSource
from cwc_connect.services.record_normalizer import unwrap_api_payload
from cwc_connect.services.roster_api_client import RosterApiClient, RosterApiError
from cwc_connect.services.source_merger import merge_sources
from cwc_connect.services.spreadsheet_reader import read_first_sheet

logger = logging.getLogger(__name__)


class SourceUnavailableError(Exception):
    pass


@dataclass
class SourceSelection:
    """Records for one sync cycle.

    API records are raw payload items; spreadsheet records are already merged
    ``Employee`` instances.
    """

    records: list[Any]
    source: DataSource


class SourceSelector:
    def __init__(
        self,
        api_client: RosterApiClient,
        data_dir: Path,
        roster_file: str,
        directory_file: str,
        reader: Callable[[Path], list[dict[str, Any]]] = read_first_sheet,
    ) -> None:
        self.api_client = api_client
        self.data_dir = data_dir
        self.roster_file = roster_file
        self.directory_file = directory_file
        self._reader = reader

    @classmethod
    def from_settings(cls, settings: Settings, api_client: RosterApiClient) -> SourceSelector:
        return cls(
            api_client=api_client,
            data_dir=Path(settings.DATA_DIR),
            roster_file=settings.ROSTER_FILE,
            directory_file=settings.DIRECTORY_FILE,
        )

    async def select(self) -> SourceSelection:
        records = await self._try_api()
        if records:
            logger.info("Using roster API data source: %d records", len(records))
            return SourceSelection(records=records, source=DataSource.API)

        try:
            logger.info("Using Excel data source from %s", self.data_dir)
            return SourceSelection(records=await self._read_spreadsheets(), source=DataSource.EXCEL)
        except Exception as e:
            raise SourceUnavailableError(f"Both roster API and Excel data sources failed: {e}") from e

    async def _try_api(self) -> list[Any]:
        if not self.api_client.initialized:
            logger.info("Roster API not configured, using Excel")
            return []

        try:
            payload = await self.api_client.fetch_records()
        except RosterApiError as e:
            logger.warning("Roster API unavailable, falling back to Excel: %s", e)
            return []

        records = [item for item in unwrap_api_payload(payload) if isinstance(item, dict)]
        if not records:
            logger.warning("Roster API returned empty or invalid data, falling back to Excel")
        return records

    async def _read_spreadsheets(self) -> list[Any]:
        roster_rows = await asyncio.to_thread(self._reader, self.data_dir / self.roster_file)
        directory_rows = await asyncio.to_thread(self._reader, self.data_dir / self.directory_file)
        return merge_sources(roster_rows, directory_rows)
