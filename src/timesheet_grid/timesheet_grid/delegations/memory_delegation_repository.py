from __future__ import annotations

from datetime import date
from typing import Iterable, Sequence

from .model import Delegation
from .repository import DelegationRepository


class InMemoryDelegationRepository(DelegationRepository):
    def __init__(self, delegations: Iterable[Delegation] = ()):
        self._delegations = list(delegations)

    async def list_away_from_store(self, *, store_id: str, start: date, end: date) -> Sequence[Delegation]:
        return [
            d for d in self._delegations
            if d.from_store_id == store_id
            and d.valid_from <= end
            and (d.valid_until is None or d.valid_until >= start)
        ]
