from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Iterable, Optional

from .model import Delegation
from .repository import DelegationRepository

logger = logging.getLogger(__name__)


class DelegationRestrictions:
    """Answers "is this employee's cell locked on this date?" for one store.

    A cell is locked once the employee has been delegated away from the store
    and stays locked until the delegation ends.
    """

    def __init__(self, delegations: Iterable[Delegation] = ()):
        self._by_employee: dict[str, list[Delegation]] = defaultdict(list)
        for d in delegations:
            self._by_employee[str(d.employee_id)].append(d)

    def is_restricted(self, employee_id: str, day: date) -> bool:
        return any(d.covers(day) for d in self._by_employee.get(str(employee_id), ()))

    def delegated_employee_ids(self) -> set[str]:
        return set(self._by_employee)


class DelegationService:
    def __init__(self, delegations: Optional[DelegationRepository] = None):
        self._delegations = delegations

    async def restrictions_for(self, *, store_id: str, start: date, end: date) -> DelegationRestrictions:
        if self._delegations is None or not store_id:
            return DelegationRestrictions()

        rows = await self._delegations.list_away_from_store(store_id=store_id, start=start, end=end)
        if rows:
            logger.info("Store %s has %d delegation(s) overlapping %s..%s", store_id, len(rows), start, end)
        return DelegationRestrictions(rows)
