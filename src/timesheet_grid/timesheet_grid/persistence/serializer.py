"""Canonical sparse JSON for the ``employee_entries`` column.

Shape::

    {"schema_version": 3,
     "employees": {"<employee_id>": {"name": str, "position": str,
                                      "days": {"YYYY-MM-DD": {...cell...}}}}}

Empty cells are never stored. Reads accept nothing but this shape; older
payloads are converted once by :mod:`.migration`.
"""

from __future__ import annotations

import copy
from datetime import date
from typing import Any, Mapping, Sequence

from ..core.constants import GRID_SCHEMA_VERSION
from ..core.exceptions import StorageError
from ..grids.model import DayCell, GridEntry

SCHEMA_KEY = "schema_version"
EMPLOYEES_KEY = "employees"


def empty_payload() -> dict[str, Any]:
    return {SCHEMA_KEY: GRID_SCHEMA_VERSION, EMPLOYEES_KEY: {}}


def is_canonical(payload: Any) -> bool:
    return (
        isinstance(payload, Mapping)
        and payload.get(SCHEMA_KEY) == GRID_SCHEMA_VERSION
        and isinstance(payload.get(EMPLOYEES_KEY), Mapping)
    )


def require_canonical(payload: Any) -> Mapping[str, Any]:
    if not is_canonical(payload):
        raise StorageError("Stored timesheet grid is not in the current schema; run the grid migration")
    return payload


def _sparse_days(days: Mapping[str, DayCell]) -> dict[str, dict[str, Any]]:
    return {key: cell.to_dict() for key, cell in sorted(days.items()) if not cell.is_empty()}


def serialize_entries(entries: Sequence[GridEntry]) -> dict[str, Any]:
    payload = empty_payload()
    for entry in entries:
        payload[EMPLOYEES_KEY][entry.employee_id] = {
            "name": entry.employee_name,
            "position": entry.position,
            "days": _sparse_days(entry.days),
        }
    return payload


def deserialize_entries(payload: Any) -> list[GridEntry]:
    employees = require_canonical(payload)[EMPLOYEES_KEY]
    return [
        GridEntry(
            employee_id=str(emp_id),
            employee_name=str(record.get("name") or ""),
            position=str(record.get("position") or ""),
            days={str(k): DayCell.from_dict(v) for k, v in (record.get("days") or {}).items()},
        )
        for emp_id, record in employees.items()
    ]


def merge_entries(existing: Any, entries: Sequence[GridEntry]) -> dict[str, Any]:
    """Lay candidate cells over a stored payload.

    Per employee and date, a non-empty candidate cell replaces the stored
    one and an empty candidate cell removes it. Dates and employees the
    candidate does not mention are kept as stored. The input is not mutated.
    """

    merged = copy.deepcopy(dict(require_canonical(existing)))
    merged[EMPLOYEES_KEY] = dict(merged[EMPLOYEES_KEY])
    employees = merged[EMPLOYEES_KEY]

    for entry in entries:
        record = dict(employees.get(entry.employee_id) or {"name": "", "position": "", "days": {}})
        if entry.employee_name:
            record["name"] = entry.employee_name
        if entry.position:
            record["position"] = entry.position

        days = dict(record.get("days") or {})
        for key, cell in entry.days.items():
            if cell.is_empty():
                days.pop(key, None)
            else:
                days[key] = cell.to_dict()
        record["days"] = dict(sorted(days.items()))
        employees[entry.employee_id] = record

    return merged


def compute_totals(payload: Any) -> tuple[float, int]:
    """(total hours, employee count) of a canonical payload."""

    employees = require_canonical(payload)[EMPLOYEES_KEY]
    total = 0.0
    for record in employees.values():
        for cell in (record.get("days") or {}).values():
            total += float(cell.get("hours") or 0)
    return round(total, 2), len(employees)


def build_grid_title(period_start: date, employee_count: int) -> str:
    return f"{period_start.strftime('%B %Y')} - {employee_count} employees"
