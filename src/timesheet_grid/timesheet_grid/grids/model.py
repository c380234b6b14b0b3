from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Mapping, Optional

from ..common.datetime_utils import DateLike, date_key, generate_date_range, normalize_period_date
from ..common.validators import coerce_hours, require_mapping, require_non_empty
from ..core.constants import DEFAULT_CELL_STATUS
from .intervals import parse_time_interval


@dataclass
class DayCell:
    """One employee's record for one calendar date."""

    time_interval: str = ""
    start_time: str = ""
    end_time: str = ""
    hours: float = 0.0
    status: str = DEFAULT_CELL_STATUS
    notes: str = ""

    @classmethod
    def create(
        cls,
        time_interval: str = "",
        *,
        status: str = DEFAULT_CELL_STATUS,
        notes: str = "",
        hours: Optional[float] = None,
    ) -> "DayCell":
        """Build a cell, deriving start/end/hours from the interval when it parses.

        Explicit hours win only when no interval is given (partial absences
        are recorded as hours alone).
        """

        interval = (time_interval or "").strip()
        parsed = parse_time_interval(interval)
        if parsed is not None:
            return cls(
                time_interval=interval,
                start_time=parsed.start_time,
                end_time=parsed.end_time,
                hours=parsed.hours,
                status=status or DEFAULT_CELL_STATUS,
                notes=notes or "",
            )
        return cls(
            time_interval=interval,
            hours=coerce_hours(hours) if hours is not None else 0.0,
            status=status or DEFAULT_CELL_STATUS,
            notes=notes or "",
        )

    def is_empty(self) -> bool:
        return (
            self.hours <= 0
            and self.status == DEFAULT_CELL_STATUS
            and not self.notes.strip()
            and not self.time_interval.strip()
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "timeInterval": self.time_interval,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "hours": self.hours,
            "status": self.status,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "DayCell":
        raw = require_mapping(raw, "day")
        interval = str(raw.get("timeInterval") or "")
        cell = cls.create(
            interval,
            status=str(raw.get("status") or DEFAULT_CELL_STATUS),
            notes=str(raw.get("notes") or ""),
            hours=raw.get("hours"),
        )
        if parse_time_interval(interval) is None:
            # Keep whatever the client derived for an interval we could not parse.
            cell.start_time = str(raw.get("startTime") or "")
            cell.end_time = str(raw.get("endTime") or "")
        return cell


@dataclass
class GridEntry:
    employee_id: str
    employee_name: str = ""
    position: str = ""
    days: dict[str, DayCell] = field(default_factory=dict)

    def total_hours(self) -> float:
        return round(sum(c.hours for c in self.days.values()), 2)

    def to_dict(self) -> dict[str, Any]:
        return {
            "employeeId": self.employee_id,
            "employeeName": self.employee_name,
            "position": self.position,
            "days": {k: c.to_dict() for k, c in sorted(self.days.items())},
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "GridEntry":
        raw = require_mapping(raw, "entry")
        days = require_mapping(raw.get("days") or {}, "days")
        return cls(
            employee_id=require_non_empty(raw.get("employeeId"), "employeeId"),
            employee_name=str(raw.get("employeeName") or ""),
            position=str(raw.get("position") or ""),
            days={str(k): DayCell.from_dict(v) for k, v in days.items()},
        )


@dataclass
class TimesheetGrid:
    """One attendance grid: one store, one inclusive period, many employees.

    Period boundaries may hold raw client values until the engine normalizes
    them; ``id`` is set once the grid has been persisted.
    """

    store_id: str
    period_start: DateLike
    period_end: DateLike
    entries: list[GridEntry] = field(default_factory=list)
    zone_id: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def normalized(self) -> "TimesheetGrid":
        return replace(
            self,
            period_start=normalize_period_date(self.period_start),
            period_end=normalize_period_date(self.period_end),
        )

    def date_range(self) -> list[date]:
        return generate_date_range(
            normalize_period_date(self.period_start),
            normalize_period_date(self.period_end),
        )

    def employee_ids(self) -> list[str]:
        return [e.employee_id for e in self.entries]

    def to_dict(self) -> dict[str, Any]:
        def _fmt(value: Any) -> Any:
            return date_key(value) if isinstance(value, date) else value

        return {
            "id": self.id,
            "storeId": self.store_id,
            "zoneId": self.zone_id,
            "startDate": _fmt(self.period_start),
            "endDate": _fmt(self.period_end),
            "entries": [e.to_dict() for e in self.entries],
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "TimesheetGrid":
        """Build a grid from the JSON payload sent by the grid UI.

        Dates are kept as sent so that setup validation can report them.
        """

        raw = require_mapping(raw, "grid")
        entries = raw.get("entries") or []
        if not isinstance(entries, list):
            # Also accept the legacy {employeeId: entry} shape.
            entries = list(require_mapping(entries, "entries").values())
        return cls(
            id=raw.get("id") or None,
            store_id=str(raw.get("storeId") or ""),
            zone_id=raw.get("zoneId") or None,
            period_start=raw.get("startDate") or "",
            period_end=raw.get("endDate") or "",
            entries=[GridEntry.from_dict(e) for e in entries],
        )


@dataclass(frozen=True)
class PersistedGrid:
    """Row of the grid store, with ``employee_entries`` in the canonical sparse schema."""

    id: str
    store_id: str
    zone_id: Optional[str]
    period_start: date
    period_end: date
    employee_entries: dict[str, Any]
    total_hours: float
    employee_count: int
    grid_title: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class GridWrite:
    """Column values for an insert or update of the grid row for one key."""

    store_id: str
    zone_id: Optional[str]
    period_start: date
    period_end: date
    employee_entries: dict[str, Any]
    total_hours: float
    employee_count: int
    grid_title: str
    notes: Optional[str] = None
    created_by: Optional[str] = None
