from __future__ import annotations

from datetime import date
from typing import Any, Callable, Optional, Protocol, Sequence

from ..grids.model import GridWrite, PersistedGrid

# Receives the row currently stored for the key (None when absent) and
# returns the values to write.
BuildWrite = Callable[[Optional[PersistedGrid]], GridWrite]


class GridRepository(Protocol):
    async def get_by_id(self, grid_id: str) -> Optional[PersistedGrid]:
        raise NotImplementedError

    async def find_by_key(self, *, store_id: str, period_start: date, period_end: date) -> Optional[PersistedGrid]:
        raise NotImplementedError

    async def list_for_store_between(self, *, store_id: str, start: date, end: date) -> Sequence[PersistedGrid]:
        """Grids of one store whose period intersects [start, end]."""

        raise NotImplementedError

    async def upsert_merge(
        self, *, store_id: str, period_start: date, period_end: date, build: BuildWrite
    ) -> tuple[PersistedGrid, bool]:
        """Atomically read the row for the key, build its new values and write them.

        Returns (row, created).
        """

        raise NotImplementedError

    async def list_raw_entries(self) -> Sequence[tuple[str, Any]]:
        """(grid_id, undecoded employee_entries) for every row; used by the migration."""

        raise NotImplementedError

    async def replace_entries(
        self, *, grid_id: str, employee_entries: dict[str, Any], total_hours: float, employee_count: int
    ) -> bool:
        raise NotImplementedError
