from __future__ import annotations

from datetime import date
from typing import Protocol, Sequence

from .model import Delegation


class DelegationRepository(Protocol):
    async def list_away_from_store(self, *, store_id: str, start: date, end: date) -> Sequence[Delegation]:
        """Delegations moving employees out of store_id that overlap [start, end]."""

        raise NotImplementedError
