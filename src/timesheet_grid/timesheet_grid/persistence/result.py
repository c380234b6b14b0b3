from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..core.constants import GRID_LEVEL_ERROR_ID
from ..core.enums import SaveState
from ..duplicates.model import DuplicationCheckResult
from ..validation.grid_validator import GridValidationResult


@dataclass(frozen=True)
class EmployeeSaveOutcome:
    employee_id: str
    employee_name: str
    is_update: bool
    effective_hours: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "employeeId": self.employee_id,
            "employeeName": self.employee_name,
            "isUpdate": self.is_update,
            "effectiveHours": self.effective_hours,
        }


@dataclass(frozen=True)
class SaveError:
    employee_id: str
    error: str
    employee_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"employeeId": self.employee_id, "employeeName": self.employee_name, "error": self.error}


@dataclass(frozen=True)
class SaveResult:
    success: bool
    session_id: Optional[str]
    saved: tuple[EmployeeSaveOutcome, ...] = ()
    errors: tuple[SaveError, ...] = ()
    grid_id: Optional[str] = None
    state_reached: SaveState = SaveState.IDLE
    cancelled: bool = False
    duplication_check: Optional[DuplicationCheckResult] = None
    validation: Optional[GridValidationResult] = None

    @property
    def success_count(self) -> int:
        return len(self.saved)

    @property
    def failure_count(self) -> int:
        return len(self.errors)

    @property
    def created_count(self) -> int:
        return sum(1 for s in self.saved if not s.is_update)

    @property
    def updated_count(self) -> int:
        return sum(1 for s in self.saved if s.is_update)

    @property
    def is_duplicate_blocked(self) -> bool:
        return self.duplication_check is not None and self.duplication_check.has_duplicate

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "sessionId": self.session_id,
            "gridId": self.grid_id,
            "stateReached": self.state_reached.value,
            "cancelled": self.cancelled,
            "successCount": self.success_count,
            "failureCount": self.failure_count,
            "createdCount": self.created_count,
            "updatedCount": self.updated_count,
            "savedTimesheets": [s.to_dict() for s in self.saved],
            "errors": [e.to_dict() for e in self.errors],
            "duplicationCheck": self.duplication_check.to_dict() if self.duplication_check else None,
            "validation": self.validation.to_dict() if self.validation else None,
        }


@dataclass
class SaveResultBuilder:
    session_id: Optional[str]
    state_reached: SaveState = SaveState.IDLE
    _saved: list[EmployeeSaveOutcome] = field(default_factory=list)
    _errors: list[SaveError] = field(default_factory=list)

    def reached(self, state: SaveState) -> "SaveResultBuilder":
        self.state_reached = state
        return self

    def add_saved(self, employee_id: str, employee_name: str, *, is_update: bool, effective_hours: float = 0.0) -> "SaveResultBuilder":
        self._saved.append(EmployeeSaveOutcome(employee_id, employee_name, is_update, effective_hours))
        return self

    def add_error(self, employee_id: str, error: str, employee_name: str = "") -> "SaveResultBuilder":
        self._errors.append(SaveError(employee_id, error, employee_name))
        return self

    def add_grid_error(self, error: str) -> "SaveResultBuilder":
        return self.add_error(GRID_LEVEL_ERROR_ID, error, "Grid")

    def build(self, *, grid_id: Optional[str] = None, **extra: Any) -> SaveResult:
        return SaveResult(
            success=not self._errors,
            session_id=self.session_id,
            saved=tuple(self._saved),
            errors=tuple(self._errors),
            grid_id=grid_id,
            state_reached=self.state_reached,
            **extra,
        )

    # Shortcuts for results that never reach storage.

    @classmethod
    def validation_failed(
        cls, session_id: Optional[str], validation: GridValidationResult, *, state: SaveState = SaveState.VALIDATING
    ) -> SaveResult:
        builder = cls(session_id, state)
        for s in validation.setup_errors:
            builder.add_grid_error(s.message)
        for e in validation.errors:
            builder.add_error(e.employee_id, f"{e.date}: {e.message}", e.employee_name)
        return builder.build(validation=validation)

    @classmethod
    def duplicate_blocked(cls, session_id: Optional[str], check: DuplicationCheckResult) -> SaveResult:
        builder = cls(session_id, SaveState.CHECKING_DUPLICATE)
        builder.add_grid_error(check.message or "A timesheet already exists for this period")
        return builder.build(duplication_check=check)

    @classmethod
    def failure(cls, session_id: Optional[str], message: str, *, state: SaveState = SaveState.IDLE) -> SaveResult:
        return cls(session_id, state).add_grid_error(message).build()

    @classmethod
    def cancelled_result(cls, session_id: Optional[str], *, state: SaveState = SaveState.VALIDATING) -> SaveResult:
        return cls(session_id, state).add_grid_error("Save cancelled").build(cancelled=True)
