from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Iterable, Optional, Sequence

from ..catalog.model import AbsenceCatalog
from ..common.datetime_utils import (
    DateLike,
    date_key,
    generate_date_range,
    is_weekend,
    normalize_period_date,
    period_length_days,
)
from ..core.constants import MAX_PERIOD_DAYS
from ..core.enums import SetupField, Severity
from ..core.exceptions import ValidationError
from ..grids.model import GridEntry
from .cell_validator import CellValidationContext, suggest_fix, validate_cell

logger = logging.getLogger(__name__)

RestrictionFn = Callable[[str, date], bool]


def _never_restricted(employee_id: str, day: date) -> bool:
    return False


@dataclass(frozen=True)
class CellError:
    employee_id: str
    date: str
    message: str
    employee_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        fix = suggest_fix(self.message)
        return {
            "employeeId": self.employee_id,
            "employeeName": self.employee_name,
            "date": self.date,
            "error": self.message,
            "suggestedFix": fix.to_dict() if fix else None,
        }


@dataclass(frozen=True)
class CellWarning:
    employee_id: str
    date: str
    message: str
    employee_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "employeeId": self.employee_id,
            "employeeName": self.employee_name,
            "date": self.date,
            "warning": self.message,
        }


@dataclass(frozen=True)
class CellInfo:
    employee_id: str
    date: str
    message: str
    employee_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "employeeId": self.employee_id,
            "employeeName": self.employee_name,
            "date": self.date,
            "info": self.message,
        }


@dataclass(frozen=True)
class SetupError:
    field: SetupField
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field.value, "message": self.message}


@dataclass(frozen=True)
class GridSetupContext:
    store_id: Optional[str]
    employee_count: int
    start_date: Optional[DateLike]
    end_date: Optional[DateLike]


@dataclass(frozen=True)
class GridValidationResult:
    is_valid: bool
    errors: tuple[CellError, ...] = ()
    warnings: tuple[CellWarning, ...] = ()
    infos: tuple[CellInfo, ...] = ()
    setup_errors: tuple[SetupError, ...] = ()

    @property
    def can_save(self) -> bool:
        return self.is_valid

    def to_dict(self) -> dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "canSave": self.can_save,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "infos": [i.to_dict() for i in self.infos],
            "setupErrors": [s.to_dict() for s in self.setup_errors],
        }


def _parse_setup_date(value: Optional[DateLike]) -> Optional[date]:
    if value is None or value == "":
        return None
    try:
        return normalize_period_date(value)
    except ValidationError:
        return None


def validate_grid_setup(ctx: GridSetupContext) -> list[SetupError]:
    """Preconditions that must hold before any cell is looked at."""

    errors: list[SetupError] = []

    if not ctx.store_id or not str(ctx.store_id).strip():
        errors.append(SetupError(SetupField.STORE, "Store must be selected before creating a timesheet"))

    if ctx.employee_count < 1:
        errors.append(SetupError(SetupField.EMPLOYEES, "At least one employee must be selected"))

    start = _parse_setup_date(ctx.start_date)
    end = _parse_setup_date(ctx.end_date)
    if start is None or end is None:
        errors.append(SetupError(SetupField.DATE_RANGE, "Invalid date format"))
    elif start >= end:
        errors.append(SetupError(SetupField.DATE_RANGE, "End date must be after start date"))
    elif period_length_days(start, end) > MAX_PERIOD_DAYS:
        errors.append(
            SetupError(SetupField.DATE_RANGE, f"Timesheet period cannot exceed {MAX_PERIOD_DAYS} days")
        )

    return errors


def _range_from_setup(ctx: GridSetupContext) -> list[date]:
    return generate_date_range(normalize_period_date(ctx.start_date), normalize_period_date(ctx.end_date))


def validate_grid(
    entries: Sequence[GridEntry],
    date_range: Optional[Iterable[date]],
    catalog: AbsenceCatalog,
    setup_context: GridSetupContext,
    *,
    restriction_for: RestrictionFn = _never_restricted,
) -> GridValidationResult:
    """Validate a whole grid.

    Setup errors short-circuit: no cell is checked when any precondition
    fails. Otherwise every populated cell inside the period is validated and
    all findings are collected; informational notes (weekend work, a catalog
    that has not loaded) are reported apart from warnings and never block. Cells keyed outside the period are errors.
    """

    setup_errors = validate_grid_setup(setup_context)
    if setup_errors:
        logger.info("Grid setup invalid: %s", "; ".join(e.message for e in setup_errors))
        return GridValidationResult(is_valid=False, setup_errors=tuple(setup_errors))

    days = list(date_range) if date_range is not None else _range_from_setup(setup_context)
    in_range = {date_key(d) for d in days}

    errors: list[CellError] = []
    warnings: list[CellWarning] = []
    infos: list[CellInfo] = []

    for entry in entries:
        for key in sorted(set(entry.days) - in_range):
            errors.append(
                CellError(entry.employee_id, key, "Date is outside the timesheet period", entry.employee_name)
            )

        for day in days:
            key = date_key(day)
            cell = entry.days.get(key)
            if cell is None:
                continue

            result = validate_cell(
                CellValidationContext(
                    time_interval=cell.time_interval,
                    status=cell.status,
                    hours=cell.hours,
                    catalog=catalog,
                    is_weekend=is_weekend(day),
                    is_delegation_restricted=restriction_for(entry.employee_id, day),
                    employee_id=entry.employee_id,
                    cell_date=day,
                    notes=cell.notes,
                )
            )
            if result.severity is Severity.ERROR:
                errors.append(CellError(entry.employee_id, key, result.message or "", entry.employee_name))
            elif result.severity is Severity.WARNING:
                warnings.append(CellWarning(entry.employee_id, key, result.message or "", entry.employee_name))
            elif result.severity is Severity.INFO:
                infos.append(CellInfo(entry.employee_id, key, result.message or "", entry.employee_name))

    if errors:
        logger.info("Grid validation found %d error(s), %d warning(s)", len(errors), len(warnings))

    return GridValidationResult(
        is_valid=not errors,
        errors=tuple(errors),
        warnings=tuple(warnings),
        infos=tuple(infos),
    )


def setup_context_for(store_id: Optional[str], entries: Sequence[GridEntry], start: Any, end: Any) -> GridSetupContext:
    return GridSetupContext(store_id=store_id, employee_count=len(entries), start_date=start, end_date=end)
