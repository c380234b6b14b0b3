"""Convert every stored grid to the current ``employee_entries`` schema.

Run once after upgrading; the service refuses to read rows in older shapes.
Safe to re-run: rows already in the current schema are skipped.
"""

from __future__ import annotations

import asyncio
import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.timesheet_grid.timesheet_grid.common.logging_utils import setup_logging
from src.timesheet_grid.timesheet_grid.database.connection import DBConfig, DatabaseConnection
from src.timesheet_grid.timesheet_grid.persistence.migration import migrate_all
from src.timesheet_grid.timesheet_grid.persistence.mysql_grid_repository import MySQLGridRepository


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    conn = DatabaseConnection(DBConfig.from_mapping(settings.DB_CONFIG))
    migrated, skipped = asyncio.run(migrate_all(MySQLGridRepository(conn)))
    print(f"OK: migrated {migrated} grid(s), {skipped} already current")


if __name__ == "__main__":
    main()
