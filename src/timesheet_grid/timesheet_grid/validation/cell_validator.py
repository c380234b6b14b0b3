from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Optional

from ..catalog.model import AbsenceCatalog
from ..core.constants import (
    DEFAULT_CELL_STATUS,
    MAX_HOURS_PARTIAL_ABSENCE,
    MAX_HOURS_PER_SHIFT,
    MIN_HOURS_PER_SHIFT,
)
from ..core.enums import Severity, StatusMembership
from ..grids.intervals import parse_time_interval

logger = logging.getLogger(__name__)

INVALID_FORMAT_MESSAGE = 'Invalid time format. Use "10-12" or "9:30-17:30"'
DELEGATION_MESSAGE = "Cannot edit timesheet after employee delegation date"
INTERNAL_ERROR_MESSAGE = "Internal validation error occurred"


@dataclass(frozen=True)
class CellValidationContext:
    time_interval: str = ""
    status: str = DEFAULT_CELL_STATUS
    hours: float = 0.0
    catalog: AbsenceCatalog = field(default_factory=AbsenceCatalog.pending)
    is_weekend: bool = False
    is_delegation_restricted: bool = False
    employee_id: Optional[str] = None
    cell_date: Optional[date] = None
    notes: str = ""

    @property
    def has_working_time(self) -> bool:
        return self.hours > 0 or bool((self.time_interval or "").strip())


@dataclass(frozen=True)
class CellValidationResult:
    is_valid: bool
    message: Optional[str] = None
    severity: Optional[Severity] = None

    @classmethod
    def ok(cls) -> "CellValidationResult":
        return cls(True)

    @classmethod
    def error(cls, message: str) -> "CellValidationResult":
        return cls(False, message, Severity.ERROR)

    @classmethod
    def warning(cls, message: str) -> "CellValidationResult":
        # Warnings never block a save.
        return cls(True, message, Severity.WARNING)

    @classmethod
    def info(cls, message: str) -> "CellValidationResult":
        return cls(True, message, Severity.INFO)


VALID = CellValidationResult.ok()


def _check_delegation(ctx: CellValidationContext) -> CellValidationResult:
    if not ctx.is_delegation_restricted:
        return VALID
    if ctx.has_working_time or (ctx.status or DEFAULT_CELL_STATUS) != DEFAULT_CELL_STATUS:
        return CellValidationResult.error(DELEGATION_MESSAGE)
    return VALID


def _check_time_format(ctx: CellValidationContext) -> CellValidationResult:
    interval = (ctx.time_interval or "").strip()
    if not interval:
        return VALID

    parsed = parse_time_interval(interval)
    if parsed is None:
        return CellValidationResult.error(INVALID_FORMAT_MESSAGE)
    if parsed.hours > MAX_HOURS_PER_SHIFT:
        return CellValidationResult.error(f"Shift cannot exceed {MAX_HOURS_PER_SHIFT} hours")
    if parsed.hours < MIN_HOURS_PER_SHIFT:
        return CellValidationResult.error("Shift must be at least 30 minutes")
    return VALID


def _check_hours_absence(ctx: CellValidationContext) -> CellValidationResult:
    if ctx.has_working_time and ctx.catalog.is_full_day_absence(ctx.status):
        name = ctx.catalog.display_name(ctx.status)
        return CellValidationResult.error(f"Cannot have working hours with {name}")
    return VALID


def _check_partial_hours(ctx: CellValidationContext) -> CellValidationResult:
    if not ctx.catalog.is_partial_hours_absence(ctx.status):
        return VALID

    name = ctx.catalog.display_name(ctx.status)
    if ctx.hours <= 0:
        return CellValidationResult.error(f"{name} requires working hours")
    if ctx.hours > MAX_HOURS_PARTIAL_ABSENCE:
        return CellValidationResult.warning(f"{name} cannot exceed {MAX_HOURS_PARTIAL_ABSENCE} hours")
    return VALID


def _check_status_membership(ctx: CellValidationContext) -> CellValidationResult:
    status = ctx.status or DEFAULT_CELL_STATUS
    membership = ctx.catalog.membership(status)
    if membership is StatusMembership.PENDING_CATALOG:
        return CellValidationResult.info("Loading absence types...")
    if membership is StatusMembership.INVALID:
        available = ", ".join(ctx.catalog.codes()) or "none loaded"
        return CellValidationResult.error(f"Invalid status: {status}. Available: {available}")
    return VALID


def _check_weekend_work(ctx: CellValidationContext) -> CellValidationResult:
    if ctx.is_weekend and ctx.hours > 0:
        return CellValidationResult.info("Weekend work detected")
    return VALID


RuleFn = Callable[[CellValidationContext], CellValidationResult]

# Evaluated in this order; the first error or warning wins.
RULES: dict[str, RuleFn] = {
    "delegation": _check_delegation,
    "time_format": _check_time_format,
    "hours_absence": _check_hours_absence,
    "partial_hours": _check_partial_hours,
    "status_membership": _check_status_membership,
    "weekend_work": _check_weekend_work,
}


def validate_cell(ctx: CellValidationContext) -> CellValidationResult:
    """Run every cell rule in priority order.

    Stops at the first error or warning. Informational findings (catalog not
    loaded yet, weekend work) do not stop the chain; the first one is
    returned when nothing more serious turned up. A delegation-restricted
    cell that passes the delegation rule is accepted as is.
    """

    first_info: Optional[CellValidationResult] = None
    try:
        for name, rule in RULES.items():
            result = rule(ctx)
            if result.severity in (Severity.ERROR, Severity.WARNING):
                return result
            if result.severity is Severity.INFO and first_info is None:
                first_info = result
            if name == "delegation" and ctx.is_delegation_restricted:
                return VALID
    except Exception:
        logger.exception(
            "Cell validation failed for employee=%s date=%s", ctx.employee_id, ctx.cell_date
        )
        return CellValidationResult.error(INTERNAL_ERROR_MESSAGE)

    return first_info or VALID


def check_rule(rule_name: str, ctx: CellValidationContext) -> CellValidationResult:
    """Run a single named rule, e.g. to re-check one column after an edit."""
    rule = RULES.get(rule_name)
    if rule is None:
        return CellValidationResult.error(f"Unknown validation rule: {rule_name}")
    try:
        return rule(ctx)
    except Exception:
        logger.exception("Validation rule %s failed", rule_name)
        return CellValidationResult.error("Error checking validation rule")


@dataclass(frozen=True)
class SuggestedFix:
    action: str
    description: str

    def to_dict(self) -> dict:
        return {"action": self.action, "description": self.description}


_FIXES: tuple[tuple[str, SuggestedFix], ...] = (
    ("Cannot have working hours with", SuggestedFix("clear_hours", "Clear working hours to keep absence status")),
    ("requires working hours", SuggestedFix("add_hours", "Add working hours or change to full-day absence")),
    ("Invalid time format", SuggestedFix("fix_format", 'Use format like "10-12" or "9:30-17:30"')),
    ("delegation date", SuggestedFix("contact_admin", "Contact administrator to modify timesheet after delegation")),
    ("exceed 16 hours", SuggestedFix("reduce_hours", "Reduce shift duration to maximum 16 hours")),
    ("cannot exceed 8 hours", SuggestedFix("reduce_hours", "Reduce partial absence to maximum 8 hours")),
    ("at least 30 minutes", SuggestedFix("increase_hours", "Extend the shift to at least 30 minutes")),
    ("Invalid status", SuggestedFix("choose_status", "Pick a status from the absence list")),
)


def suggest_fix(message: Optional[str]) -> Optional[SuggestedFix]:
    if not message:
        return None
    for needle, fix in _FIXES:
        if needle in message:
            return fix
    return None
