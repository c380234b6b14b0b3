from __future__ import annotations

from ..common.datetime_utils import date_key, generate_date_range
from ..persistence.serializer import deserialize_entries
from .model import DayCell, PersistedGrid, TimesheetGrid


def to_editable_grid(row: PersistedGrid) -> TimesheetGrid:
    """Expand a stored sparse grid into one with a cell for every date in its period."""

    entries = deserialize_entries(row.employee_entries)
    for entry in entries:
        for day in generate_date_range(row.period_start, row.period_end):
            entry.days.setdefault(date_key(day), DayCell())
        entry.days = dict(sorted(entry.days.items()))

    return TimesheetGrid(
        id=row.id,
        store_id=row.store_id,
        zone_id=row.zone_id,
        period_start=row.period_start,
        period_end=row.period_end,
        entries=entries,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
