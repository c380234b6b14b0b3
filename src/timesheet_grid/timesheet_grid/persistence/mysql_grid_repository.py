from __future__ import annotations

import json
import logging
import uuid
from datetime import date
from typing import Any, Dict, Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, load_json_column, run_blocking, to_float
from ..grids.model import GridWrite, PersistedGrid
from .repository import BuildWrite, GridRepository
from .serializer import require_canonical

logger = logging.getLogger(__name__)

_COLUMNS = """
    grid_id, store_id, zone_id, period_start, period_end, employee_entries,
    total_hours, employee_count, grid_title, notes, created_by, created_at, updated_at
"""


def _entries_json(entries: dict[str, Any]) -> str:
    return json.dumps(entries, ensure_ascii=False, sort_keys=True, allow_nan=False)


def _to_grid(r: Dict[str, Any]) -> PersistedGrid:
    entries = load_json_column(r.get("employee_entries"))
    require_canonical(entries)
    return PersistedGrid(
        id=str(r["grid_id"]),
        store_id=str(r["store_id"]),
        zone_id=r.get("zone_id"),
        period_start=r["period_start"],
        period_end=r["period_end"],
        employee_entries=entries,
        total_hours=to_float(r.get("total_hours")),
        employee_count=int(r.get("employee_count") or 0),
        grid_title=r.get("grid_title"),
        notes=r.get("notes"),
        created_by=r.get("created_by"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLGridRepository(GridRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    async def get_by_id(self, grid_id: str) -> Optional[PersistedGrid]:
        return await run_blocking(self._get_by_id, str(grid_id))

    def _get_by_id(self, grid_id: str) -> Optional[PersistedGrid]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM timesheet_grids WHERE grid_id=%s", (grid_id,))
            r = fetchone(cur)
            return _to_grid(r) if r else None

    async def find_by_key(self, *, store_id: str, period_start: date, period_end: date) -> Optional[PersistedGrid]:
        return await run_blocking(self._find_by_key, str(store_id), period_start, period_end)

    def _find_by_key(self, store_id: str, period_start: date, period_end: date) -> Optional[PersistedGrid]:
        with db_cursor(self._conn_factory) as (_, cur):
            r = self._select_key(cur, store_id, period_start, period_end, lock=False)
            return _to_grid(r) if r else None

    async def list_for_store_between(self, *, store_id: str, start: date, end: date) -> Sequence[PersistedGrid]:
        return await run_blocking(self._list_for_store_between, str(store_id), start, end)

    def _list_for_store_between(self, store_id: str, start: date, end: date) -> list[PersistedGrid]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM timesheet_grids
                WHERE store_id=%s AND period_start <= %s AND period_end >= %s
                ORDER BY period_start ASC, period_end ASC
                """,
                (store_id, end, start),
            )
            return [_to_grid(r) for r in fetchall(cur)]

    @staticmethod
    def _select_key(cur, store_id: str, period_start: date, period_end: date, *, lock: bool):
        cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM timesheet_grids
            WHERE store_id=%s AND period_start=%s AND period_end=%s
            {"FOR UPDATE" if lock else ""}
            """,
            (store_id, period_start, period_end),
        )
        return fetchone(cur)

    async def upsert_merge(
        self, *, store_id: str, period_start: date, period_end: date, build: BuildWrite
    ) -> tuple[PersistedGrid, bool]:
        return await run_blocking(self._upsert_merge, str(store_id), period_start, period_end, build)

    def _upsert_merge(
        self, store_id: str, period_start: date, period_end: date, build: BuildWrite
    ) -> tuple[PersistedGrid, bool]:
        # One transaction: lock the key (or its gap), build from what is stored, write.
        with db_cursor(self._conn_factory) as (_, cur):
            current = self._select_key(cur, store_id, period_start, period_end, lock=True)
            existing = _to_grid(current) if current else None
            created = False

            if existing is None:
                try:
                    self._insert(cur, build(None))
                    created = True
                except mysql.connector.IntegrityError as exc:
                    if exc.errno != errorcode.ER_DUP_ENTRY:
                        raise
                    # A concurrent save inserted the key after our lookup; merge into its row.
                    logger.info("Grid %s %s..%s inserted concurrently; merging", store_id, period_start, period_end)
                    current = self._select_key(cur, store_id, period_start, period_end, lock=True)
                    if current is None:
                        raise
                    existing = _to_grid(current)

            if existing is not None:
                self._update(cur, existing.id, build(existing))

            row = self._select_key(cur, store_id, period_start, period_end, lock=False)
            return _to_grid(row), created

    @staticmethod
    def _insert(cur, values: GridWrite) -> None:
        cur.execute(
            """
            INSERT INTO timesheet_grids(
                grid_id, store_id, zone_id, period_start, period_end, employee_entries,
                total_hours, employee_count, grid_title, notes, created_by
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            (
                str(uuid.uuid4()),
                values.store_id,
                values.zone_id,
                values.period_start,
                values.period_end,
                _entries_json(values.employee_entries),
                values.total_hours,
                values.employee_count,
                values.grid_title,
                values.notes,
                values.created_by,
            ),
        )

    @staticmethod
    def _update(cur, grid_id: str, values: GridWrite) -> None:
        cur.execute(
            """
            UPDATE timesheet_grids
            SET zone_id=COALESCE(%s, zone_id),
                employee_entries=%s,
                total_hours=%s,
                employee_count=%s,
                grid_title=%s,
                notes=COALESCE(%s, notes)
            WHERE grid_id=%s
            """,
            (
                values.zone_id,
                _entries_json(values.employee_entries),
                values.total_hours,
                values.employee_count,
                values.grid_title,
                values.notes,
                grid_id,
            ),
        )

    async def list_raw_entries(self) -> Sequence[tuple[str, Any]]:
        return await run_blocking(self._list_raw_entries)

    def _list_raw_entries(self) -> list[tuple[str, Any]]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT grid_id, employee_entries FROM timesheet_grids ORDER BY created_at ASC")
            return [(str(r["grid_id"]), load_json_column(r.get("employee_entries"))) for r in fetchall(cur)]

    async def replace_entries(
        self, *, grid_id: str, employee_entries: dict[str, Any], total_hours: float, employee_count: int
    ) -> bool:
        return await run_blocking(self._replace_entries, str(grid_id), employee_entries, total_hours, employee_count)

    def _replace_entries(self, grid_id: str, employee_entries: dict[str, Any], total_hours: float, employee_count: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE timesheet_grids
                SET employee_entries=%s, total_hours=%s, employee_count=%s
                WHERE grid_id=%s
                """,
                (_entries_json(employee_entries), total_hours, employee_count, grid_id),
            )
            return cur.rowcount > 0
