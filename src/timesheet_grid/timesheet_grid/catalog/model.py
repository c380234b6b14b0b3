from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from ..core.constants import DEFAULT_CELL_STATUS, FULL_DAY_ABSENCE_HOURS
from ..core.enums import StatusMembership


@dataclass(frozen=True)
class AbsenceType:
    """A non-working status code a cell may carry.

    requires_hours=True marks a partial-day absence (the cell must also carry
    hours); False marks a full-day absence (the cell must not).
    """

    code: str
    name: str
    requires_hours: bool
    sort_order: int = 0
    is_active: bool = True
    description: Optional[str] = None


class AbsenceCatalog:
    """Ordered, read-only view over the active absence types.

    An empty catalog means "not loaded yet": membership checks report
    PENDING_CATALOG instead of rejecting unknown codes.
    """

    def __init__(self, types: Iterable[AbsenceType] = ()):
        active = [t for t in types if t.is_active]
        self._types = tuple(sorted(active, key=lambda t: t.sort_order))
        self._by_code = {t.code: t for t in self._types}

    @classmethod
    def pending(cls) -> "AbsenceCatalog":
        return cls(())

    @property
    def is_loaded(self) -> bool:
        return bool(self._types)

    def __len__(self) -> int:
        return len(self._types)

    def __iter__(self) -> Iterator[AbsenceType]:
        return iter(self._types)

    def __contains__(self, code: object) -> bool:
        return code in self._by_code

    def get(self, code: str) -> Optional[AbsenceType]:
        return self._by_code.get(code)

    def codes(self) -> list[str]:
        return [t.code for t in self._types]

    def membership(self, code: str) -> StatusMembership:
        if code == DEFAULT_CELL_STATUS or code in self._by_code:
            return StatusMembership.VALID
        if not self.is_loaded:
            return StatusMembership.PENDING_CATALOG
        return StatusMembership.INVALID

    def is_full_day_absence(self, code: str) -> bool:
        absence = self._by_code.get(code)
        return absence is not None and not absence.requires_hours

    def is_partial_hours_absence(self, code: str) -> bool:
        absence = self._by_code.get(code)
        return absence is not None and absence.requires_hours

    def display_name(self, code: str) -> str:
        if code == DEFAULT_CELL_STATUS:
            return "Unset"
        absence = self._by_code.get(code)
        return absence.name if absence else code

    def effective_hours(self, status: str, hours: float) -> float:
        """Hours a cell counts for: explicit hours, or a full day for full-day absences."""
        if self.is_full_day_absence(status):
            return float(FULL_DAY_ABSENCE_HOURS)
        return hours or 0.0
