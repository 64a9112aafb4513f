#!/usr/bin/env python3
"""Run one employee sync cycle outside the web server.

Run from the repository root:

    python3 scripts/sync_employees.py [--dry-run] [--verbose]

Uses the same configuration as the server (.env / environment). The roster
API is tried first when UPDATE_API, API_USERNAME and API_PASSWORD are set,
otherwise the two spreadsheets under DATA_DIR are merged. With --dry-run the
sources are read and reconciled but nothing is written to Cosmos DB.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from cwc_connect.core.config import Settings  # noqa: E402
from cwc_connect.models.employee import SyncResult  # noqa: E402
from cwc_connect.services.employee_store import EmployeeStore  # noqa: E402
from cwc_connect.services.roster_api_client import RosterApiClient  # noqa: E402
from cwc_connect.services.source_selector import SourceSelector  # noqa: E402
from cwc_connect.services.sync_engine import SyncEngine  # noqa: E402

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Synchronize employees from the roster API or Excel files into Cosmos DB",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Read and reconcile sources without writing to the database",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    return parser.parse_args(argv)


async def sync(args: argparse.Namespace, settings: Settings | None = None) -> SyncResult:
    settings = settings or Settings()

    store = EmployeeStore()
    api_client = RosterApiClient()
    try:
        if not args.dry_run:
            await store.initialize(settings)
        await api_client.initialize(settings)

        engine = SyncEngine(store, SourceSelector.from_settings(settings, api_client))
        result = await engine.run_cycle(dry_run=args.dry_run)
    finally:
        await store.close()
        await api_client.close()

    logger.info("=" * 50)
    logger.info("Sync complete! Source: %s", result.source.value)
    logger.info("Unique records: %d", result.total_records)
    logger.info("New: %d, updated: %d, failed: %d", result.new_count, result.updated_count, result.failed_count)
    if args.dry_run:
        logger.info("[DRY RUN] No records were written.")
    return result


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(message)s")

    try:
        asyncio.run(sync(args))
    except Exception:
        logger.exception("Sync failed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
