from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from ..common.datetime_utils import date_key
from ..core.enums import ConflictType, DuplicateResolution
from ..grids.model import PersistedGrid


@dataclass(frozen=True)
class GridSummary:
    """What the user is shown about the persisted grid a candidate collides with."""

    id: str
    store_id: str
    period_start: date
    period_end: date
    total_hours: float
    employee_count: int
    grid_title: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def of(cls, grid: PersistedGrid) -> "GridSummary":
        return cls(
            id=grid.id,
            store_id=grid.store_id,
            period_start=grid.period_start,
            period_end=grid.period_end,
            total_hours=grid.total_hours,
            employee_count=grid.employee_count,
            grid_title=grid.grid_title,
            created_at=grid.created_at,
            updated_at=grid.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "storeId": self.store_id,
            "periodStart": date_key(self.period_start),
            "periodEnd": date_key(self.period_end),
            "totalHours": self.total_hours,
            "employeeCount": self.employee_count,
            "gridTitle": self.grid_title,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class DuplicationCheckResult:
    has_duplicate: bool
    conflict_type: ConflictType = ConflictType.NONE
    existing: Optional[GridSummary] = None
    message: Optional[str] = None
    can_edit: bool = False

    @property
    def resolutions(self) -> list[DuplicateResolution]:
        if not self.has_duplicate:
            return []
        options = [DuplicateResolution.CHOOSE_DIFFERENT_PERIOD, DuplicateResolution.FORCE_CREATE]
        if self.can_edit:
            options.insert(0, DuplicateResolution.EDIT_EXISTING)
        return options

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasDuplicate": self.has_duplicate,
            "conflictType": self.conflict_type.value,
            "existingTimesheet": self.existing.to_dict() if self.existing else None,
            "message": self.message,
            "canEdit": self.can_edit,
            "resolutions": [r.value for r in self.resolutions],
        }


NO_DUPLICATE = DuplicationCheckResult(has_duplicate=False)
