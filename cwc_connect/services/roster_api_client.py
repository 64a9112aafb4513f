from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp

from cwc_connect.core.config import Settings

logger = logging.getLogger(__name__)

USER_AGENT = "CWC-Connect-App"


class RosterApiError(Exception):
    pass


class RosterApiClient:
    """eOffice roster API client with fixed-delay retries.

    A fetch makes ``retry_count + 1`` attempts with the same delay between
    each. Only a 200 response with a JSON body counts as success.
    """

    def __init__(self, sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep) -> None:
        self.initialized = False
        self.url = ""
        self.username = ""
        self.password = ""
        self.timeout = 30.0
        self.retry_count = 3
        self.retry_delay = 5.0
        self._sleep = sleep

    async def initialize(self, settings: Settings) -> None:
        if self.initialized:
            return

        if not settings.roster_api_configured:
            logger.warning("Roster API credentials missing — spreadsheets will be used")
            return

        self.url = settings.UPDATE_API
        self.username = settings.API_USERNAME
        self.password = settings.API_PASSWORD
        self.timeout = settings.API_TIMEOUT_SECONDS
        self.retry_count = settings.API_RETRY_COUNT
        self.retry_delay = settings.API_RETRY_DELAY_SECONDS
        self.initialized = True

    async def close(self) -> None:
        self.initialized = False
        self.url = ""
        self.username = ""
        self.password = ""

    async def fetch_records(self) -> Any:
        if not self.initialized:
            raise RuntimeError("RosterApiClient not initialized")

        attempts = self.retry_count + 1
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            try:
                return await self._fetch_once()
            except (aiohttp.ClientError, asyncio.TimeoutError, RosterApiError, ValueError) as e:
                last_error = e
                logger.warning("Roster API fetch failed (attempt %d/%d): %s", attempt, attempts, e)

            if attempt < attempts:
                logger.info("Retrying in %.0f seconds... (%d/%d)", self.retry_delay, attempt, self.retry_count)
                await self._sleep(self.retry_delay)

        raise RosterApiError(
            f"Roster API fetch from {self.url} failed after {attempts} attempts: {last_error}"
        ) from last_error

    async def _fetch_once(self) -> Any:
        headers = {"Content-Type": "application/json", "User-Agent": USER_AGENT}
        auth = aiohttp.BasicAuth(self.username, self.password)

        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(self.url, headers=headers, auth=auth) as response:
                if response.status == 200:
                    data = await response.json(content_type=None)
                    logger.info("Roster API fetch successful")
                    return data

                error_text = await response.text()
                raise RosterApiError(f"Roster API returned {response.status} - {error_text}")


roster_api_client = RosterApiClient()
