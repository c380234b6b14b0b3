from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.enums import DelegationStatus


@dataclass(frozen=True)
class Delegation:
    """Temporary reassignment of an employee from one store to another."""

    delegation_id: str
    employee_id: str
    from_store_id: str
    to_store_id: str
    valid_from: date
    valid_until: Optional[date]
    status: DelegationStatus = DelegationStatus.ACTIVE

    def covers(self, day: date) -> bool:
        if self.status in (DelegationStatus.REVOKED, DelegationStatus.PENDING):
            return False
        if day < self.valid_from:
            return False
        return self.valid_until is None or day <= self.valid_until
