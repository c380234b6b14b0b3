from __future__ import annotations

from typing import Protocol, Sequence

from .model import AbsenceType


class AbsenceTypeRepository(Protocol):
    async def list_active(self) -> Sequence[AbsenceType]:
        """Active absence types ordered by sort_order."""

        raise NotImplementedError
