from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from .model import Employee
from .repository import EmployeeDirectory


class InMemoryEmployeeDirectory(EmployeeDirectory):
    def __init__(self, employees: Iterable[Employee] = ()):
        self._store = {e.employee_id: e for e in employees}

    def add(self, employee: Employee) -> None:
        self._store[employee.employee_id] = employee

    async def get_many(self, employee_ids: Sequence[str]) -> Mapping[str, Employee]:
        return {i: self._store[i] for i in employee_ids if i in self._store}
