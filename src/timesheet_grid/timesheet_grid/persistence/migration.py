from __future__ import annotations

import logging
import re
from typing import Any, Mapping

from ..core.constants import DEFAULT_CELL_STATUS
from ..core.exceptions import ValidationError
from ..grids.model import DayCell
from .repository import GridRepository
from .serializer import EMPLOYEES_KEY, compute_totals, empty_payload, is_canonical

logger = logging.getLogger(__name__)

DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Status sentinels written by older clients for "nothing selected".
LEGACY_DEFAULT_STATUSES = {"", "alege", "none", DEFAULT_CELL_STATUS}


def _legacy_cell(raw: Any) -> DayCell:
    if not isinstance(raw, Mapping):
        raise ValidationError(f"Unexpected legacy cell: {raw!r}")

    status = str(raw.get("status") or "")
    if status in LEGACY_DEFAULT_STATUSES:
        status = DEFAULT_CELL_STATUS

    interval = raw.get("timeInterval") or raw.get("time_interval") or ""
    hours = raw.get("hours")
    # Some rows carry the interval in the hours field ("10-18").
    if isinstance(hours, str) and "-" in hours:
        interval = interval or hours
        hours = None

    return DayCell.create(str(interval), status=status, notes=str(raw.get("notes") or ""), hours=hours)


def _add_cell(out: dict[str, Any], emp_id: str, day_key: str, raw: Any) -> None:
    cell = _legacy_cell(raw)
    if cell.is_empty():
        return
    record = out[EMPLOYEES_KEY].setdefault(emp_id, {"name": "", "position": "", "days": {}})
    record["days"][day_key] = cell.to_dict()


def _from_metadata_shape(payload: Mapping[str, Any]) -> dict[str, Any]:
    out = empty_payload()
    for emp_id, meta in (payload.get("_employees") or {}).items():
        meta = meta if isinstance(meta, Mapping) else {}
        out[EMPLOYEES_KEY][str(emp_id)] = {
            "name": str(meta.get("name") or meta.get("full_name") or ""),
            "position": str(meta.get("position") or ""),
            "days": {},
        }

    for key, by_employee in payload.items():
        if key.startswith("_") or not DATE_KEY_RE.match(key) or not isinstance(by_employee, Mapping):
            continue
        for emp_id, raw in by_employee.items():
            _add_cell(out, str(emp_id), key, raw)
    return out


def _from_flat_shape(payload: Mapping[str, Any]) -> dict[str, Any]:
    out = empty_payload()
    for emp_id, record in payload.items():
        if not isinstance(record, Mapping):
            continue
        out[EMPLOYEES_KEY][str(emp_id)] = {
            "name": str(record.get("name") or ""),
            "position": str(record.get("position") or ""),
            "days": {},
        }
        for key, raw in (record.get("days") or {}).items():
            _add_cell(out, str(emp_id), str(key), raw)
    return out


def migrate_employee_entries(payload: Any) -> dict[str, Any]:
    """Convert a stored ``employee_entries`` value to the canonical schema.

    Handles the per-employee map and the metadata-plus-per-date map written
    by earlier versions. Canonical payloads are returned unchanged.
    """

    if is_canonical(payload):
        return payload
    if payload is None:
        return empty_payload()
    if not isinstance(payload, Mapping):
        raise ValidationError("employee_entries must be a JSON object")

    if "_employees" in payload or "_grid_metadata" in payload:
        migrated = _from_metadata_shape(payload)
    else:
        migrated = _from_flat_shape(payload)

    for record in migrated[EMPLOYEES_KEY].values():
        record["days"] = dict(sorted(record["days"].items()))
    return migrated


async def migrate_all(grids: GridRepository) -> tuple[int, int]:
    """Rewrite every non-canonical row of ``grids`` in place.

    Returns (migrated, already_canonical). Rows that cannot be converted are
    logged and left untouched.
    """

    migrated = skipped = 0
    for grid_id, raw in await grids.list_raw_entries():
        if is_canonical(raw):
            skipped += 1
            continue
        try:
            payload = migrate_employee_entries(raw)
        except ValidationError:
            logger.exception("Grid %s could not be migrated", grid_id)
            continue

        total_hours, employee_count = compute_totals(payload)
        await grids.replace_entries(
            grid_id=grid_id,
            employee_entries=payload,
            total_hours=total_hours,
            employee_count=employee_count,
        )
        migrated += 1
        logger.info("Migrated grid %s (%d employees)", grid_id, employee_count)

    return migrated, skipped
