from __future__ import annotations

from typing import Mapping, Protocol, Sequence

from .model import Employee


class EmployeeDirectory(Protocol):
    async def get_many(self, employee_ids: Sequence[str]) -> Mapping[str, Employee]:
        """Resolve ids to directory records; unknown ids are simply absent."""

        raise NotImplementedError
