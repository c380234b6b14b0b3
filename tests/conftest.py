from __future__ import annotations

from datetime import date

import pytest

from src.timesheet_grid.timesheet_grid.catalog.defaults import DEFAULT_ABSENCE_TYPES
from src.timesheet_grid.timesheet_grid.catalog.memory_absence_type_repository import InMemoryAbsenceTypeRepository
from src.timesheet_grid.timesheet_grid.catalog.model import AbsenceCatalog
from src.timesheet_grid.timesheet_grid.catalog.service import AbsenceCatalogService
from src.timesheet_grid.timesheet_grid.delegations.memory_delegation_repository import InMemoryDelegationRepository
from src.timesheet_grid.timesheet_grid.delegations.service import DelegationService
from src.timesheet_grid.timesheet_grid.employees.memory_employee_directory import InMemoryEmployeeDirectory
from src.timesheet_grid.timesheet_grid.employees.model import Employee
from src.timesheet_grid.timesheet_grid.grids.model import DayCell, GridEntry, TimesheetGrid
from src.timesheet_grid.timesheet_grid.persistence.engine import GridPersistenceEngine
from src.timesheet_grid.timesheet_grid.persistence.memory_grid_repository import InMemoryGridRepository

EMPLOYEES = [
    Employee("emp-001", "Ana Popescu", "Cashier", "store-01", "zone-north"),
    Employee("emp-002", "Mihai Ionescu", "Store manager", "store-01", "zone-north"),
    Employee("emp-003", "Elena Dumitru", "Sales associate", "store-02", "zone-south"),
]


def _make_grid(cells_by_employee=None, *, store_id="store-01", start="2025-03-01", end="2025-03-31", grid_id=None):
    """Grid for March 2025; cells_by_employee maps employee id -> {date key: DayCell}."""
    cells_by_employee = cells_by_employee if cells_by_employee is not None else {"emp-001": {}}
    return TimesheetGrid(
        store_id=store_id,
        period_start=start,
        period_end=end,
        entries=[GridEntry(emp_id, days=dict(days)) for emp_id, days in cells_by_employee.items()],
        id=grid_id,
    )


def _work(interval: str) -> DayCell:
    return DayCell.create(interval)


@pytest.fixture
def catalog():
    return AbsenceCatalog(DEFAULT_ABSENCE_TYPES)


@pytest.fixture
def grids_repo():
    return InMemoryGridRepository()


@pytest.fixture
def directory():
    return InMemoryEmployeeDirectory(EMPLOYEES)


@pytest.fixture
def delegations_repo():
    return InMemoryDelegationRepository()


@pytest.fixture
def engine(grids_repo, directory, delegations_repo):
    return GridPersistenceEngine(
        grids_repo,
        AbsenceCatalogService(InMemoryAbsenceTypeRepository(DEFAULT_ABSENCE_TYPES)),
        employees=directory,
        delegations=DelegationService(delegations_repo),
    )


@pytest.fixture
def march():
    return date(2025, 3, 1), date(2025, 3, 31)


@pytest.fixture
def make_grid():
    return _make_grid


@pytest.fixture
def work():
    return _work


@pytest.fixture
def employees():
    return list(EMPLOYEES)
