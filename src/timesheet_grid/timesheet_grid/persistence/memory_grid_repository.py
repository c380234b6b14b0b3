from __future__ import annotations

import asyncio
import copy
import uuid
from dataclasses import replace
from datetime import date
from typing import Any, Optional, Sequence

from ..common.datetime_utils import now_local
from ..grids.model import PersistedGrid
from .repository import BuildWrite, GridRepository
from .serializer import require_canonical


class InMemoryGridRepository(GridRepository):
    """Process-local grid store for tests, demos and local runs.

    The key index mirrors the unique (store, period) constraint of the SQL
    table; a single lock serializes upserts.
    """

    def __init__(self, rows: Sequence[PersistedGrid] = ()):
        self._rows: dict[str, PersistedGrid] = {}
        self._by_key: dict[tuple[str, date, date], str] = {}
        self._lock = asyncio.Lock()
        for row in rows:
            self._put(row)

    def _put(self, row: PersistedGrid) -> None:
        self._rows[row.id] = row
        self._by_key[(row.store_id, row.period_start, row.period_end)] = row.id

    def __len__(self) -> int:
        return len(self._rows)

    @staticmethod
    def _checked(row: Optional[PersistedGrid]) -> Optional[PersistedGrid]:
        if row is not None:
            require_canonical(row.employee_entries)
        return row

    async def get_by_id(self, grid_id: str) -> Optional[PersistedGrid]:
        return self._checked(self._rows.get(grid_id))

    async def find_by_key(self, *, store_id: str, period_start: date, period_end: date) -> Optional[PersistedGrid]:
        grid_id = self._by_key.get((store_id, period_start, period_end))
        return self._checked(self._rows.get(grid_id)) if grid_id else None

    async def list_for_store_between(self, *, store_id: str, start: date, end: date) -> Sequence[PersistedGrid]:
        rows = [
            r for r in self._rows.values()
            if r.store_id == store_id and r.period_start <= end and start <= r.period_end
        ]
        return sorted(rows, key=lambda r: (r.period_start, r.period_end))

    async def upsert_merge(
        self, *, store_id: str, period_start: date, period_end: date, build: BuildWrite
    ) -> tuple[PersistedGrid, bool]:
        async with self._lock:
            existing = await self.find_by_key(store_id=store_id, period_start=period_start, period_end=period_end)
            values = build(existing)
            now = now_local()

            if existing is None:
                row = PersistedGrid(
                    id=str(uuid.uuid4()),
                    store_id=values.store_id,
                    zone_id=values.zone_id,
                    period_start=values.period_start,
                    period_end=values.period_end,
                    employee_entries=copy.deepcopy(values.employee_entries),
                    total_hours=values.total_hours,
                    employee_count=values.employee_count,
                    grid_title=values.grid_title,
                    notes=values.notes,
                    created_by=values.created_by,
                    created_at=now,
                    updated_at=now,
                )
                self._put(row)
                return row, True

            row = replace(
                existing,
                zone_id=values.zone_id or existing.zone_id,
                employee_entries=copy.deepcopy(values.employee_entries),
                total_hours=values.total_hours,
                employee_count=values.employee_count,
                grid_title=values.grid_title,
                notes=values.notes or existing.notes,
                updated_at=now,
            )
            self._put(row)
            return row, False

    async def list_raw_entries(self) -> Sequence[tuple[str, Any]]:
        return [(r.id, r.employee_entries) for r in self._rows.values()]

    async def replace_entries(
        self, *, grid_id: str, employee_entries: dict[str, Any], total_hours: float, employee_count: int
    ) -> bool:
        row = self._rows.get(grid_id)
        if row is None:
            return False
        self._put(
            replace(
                row,
                employee_entries=employee_entries,
                total_hours=total_hours,
                employee_count=employee_count,
                updated_at=now_local(),
            )
        )
        return True
