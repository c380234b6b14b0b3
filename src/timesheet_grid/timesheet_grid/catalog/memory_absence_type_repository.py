from __future__ import annotations

from typing import Iterable, Sequence

from .model import AbsenceType
from .repository import AbsenceTypeRepository


class InMemoryAbsenceTypeRepository(AbsenceTypeRepository):
    def __init__(self, types: Iterable[AbsenceType] = ()):
        self._types = list(types)

    async def list_active(self) -> Sequence[AbsenceType]:
        return sorted((t for t in self._types if t.is_active), key=lambda t: (t.sort_order, t.code))
