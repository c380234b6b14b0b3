from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Optional, Sequence

from ..common.datetime_utils import month_end, month_start, months_covered
from ..core.enums import ConflictType
from ..core.exceptions import DuplicationConflictError, StorageError
from ..grids.model import GridEntry, PersistedGrid
from ..persistence.repository import GridRepository
from .model import NO_DUPLICATE, DuplicationCheckResult, GridSummary

logger = logging.getLogger(__name__)

# Higher wins when a candidate collides with several persisted grids.
_PRIORITY = {
    ConflictType.EXACT_PERIOD: 3,
    ConflictType.OVERLAPPING_PERIOD: 2,
    ConflictType.SAME_MONTH: 1,
    ConflictType.NONE: 0,
}

_RESULT_MESSAGES = {
    ConflictType.EXACT_PERIOD: "A timesheet already exists for this period.",
    ConflictType.OVERLAPPING_PERIOD: "A timesheet with an overlapping period already exists.",
    ConflictType.SAME_MONTH: "A timesheet already exists for this month. Only one timesheet per month is allowed per store.",
}


def classify_conflict(start: date, end: date, existing_start: date, existing_end: date) -> ConflictType:
    if start == existing_start and end == existing_end:
        return ConflictType.EXACT_PERIOD
    if start <= existing_end and existing_start <= end:
        return ConflictType.OVERLAPPING_PERIOD
    if months_covered(start, end) & months_covered(existing_start, existing_end):
        return ConflictType.SAME_MONTH
    return ConflictType.NONE


def conflict_message(conflict_type: ConflictType, store_name: Optional[str] = None) -> str:
    """User-facing explanation of a conflict, optionally naming the store."""

    store = f" at {store_name}" if store_name else ""
    if conflict_type is ConflictType.EXACT_PERIOD:
        return f"A timesheet already exists for the same period{store}. You can edit the existing timesheet instead of creating a new one."
    if conflict_type is ConflictType.SAME_MONTH:
        return f"A timesheet already exists for this month{store}. Only one timesheet per month is allowed per store. You can edit the existing timesheet."
    if conflict_type is ConflictType.OVERLAPPING_PERIOD:
        return f"A timesheet with an overlapping period already exists{store}. Check the existing timesheets."
    return f"A similar timesheet already exists{store}."


class DuplicateDetector:
    def __init__(self, grids: GridRepository):
        self._grids = grids

    async def check_for_duplicate(
        self,
        store_id: str,
        start_date: date,
        end_date: date,
        candidate_entries: Sequence[GridEntry] = (),
        exclude_grid_id: Optional[str] = None,
    ) -> DuplicationCheckResult:
        """Compare the candidate period against persisted grids of the same store.

        The lookup window is widened to whole months so same-month grids that
        do not intersect the period are still found. Storage failures raise
        StorageError; they are never reported as "no duplicate".
        """

        window_start, window_end = month_start(start_date), month_end(end_date)
        try:
            rows = await self._grids.list_for_store_between(
                store_id=store_id, start=window_start, end=window_end
            )
        except StorageError:
            logger.exception("Duplicate lookup failed for store %s", store_id)
            raise

        logger.debug(
            "Checking %d persisted grid(s) of store %s against %s..%s (%d candidate entries)",
            len(rows), store_id, start_date, end_date, len(candidate_entries),
        )

        best_type, best_row = self._pick(rows, start_date, end_date, exclude_grid_id)
        if best_row is None:
            return NO_DUPLICATE

        logger.info(
            "Duplicate grid %s (%s) for store %s, period %s..%s",
            best_row.id, best_type.value, store_id, start_date, end_date,
        )
        return DuplicationCheckResult(
            has_duplicate=True,
            conflict_type=best_type,
            existing=GridSummary.of(best_row),
            message=_RESULT_MESSAGES[best_type],
            can_edit=True,
        )

    async def ensure_no_duplicate(self, store_id: str, start_date: date, end_date: date, **kwargs) -> None:
        result = await self.check_for_duplicate(store_id, start_date, end_date, **kwargs)
        if result.has_duplicate:
            raise DuplicationConflictError(result)

    @staticmethod
    def _pick(
        rows: Iterable[PersistedGrid], start: date, end: date, exclude_grid_id: Optional[str]
    ) -> tuple[ConflictType, Optional[PersistedGrid]]:
        best_type, best_row = ConflictType.NONE, None
        for row in rows:
            if exclude_grid_id and row.id == exclude_grid_id:
                continue
            conflict = classify_conflict(start, end, row.period_start, row.period_end)
            if _PRIORITY[conflict] > _PRIORITY[best_type]:
                best_type, best_row = conflict, row
        return best_type, best_row
