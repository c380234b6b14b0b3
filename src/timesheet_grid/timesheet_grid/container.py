from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .catalog.memory_absence_type_repository import InMemoryAbsenceTypeRepository
from .catalog.model import AbsenceType
from .catalog.mysql_absence_type_repository import MySQLAbsenceTypeRepository
from .catalog.repository import AbsenceTypeRepository
from .catalog.service import AbsenceCatalogService
from .database.connection import DBConfig, DatabaseConnection
from .delegations.memory_delegation_repository import InMemoryDelegationRepository
from .delegations.model import Delegation
from .delegations.mysql_delegation_repository import MySQLDelegationRepository
from .delegations.repository import DelegationRepository
from .delegations.service import DelegationService
from .duplicates.detector import DuplicateDetector
from .employees.memory_employee_directory import InMemoryEmployeeDirectory
from .employees.model import Employee
from .employees.mysql_employee_repository import MySQLEmployeeDirectory
from .employees.repository import EmployeeDirectory
from .persistence.engine import GridPersistenceEngine
from .persistence.memory_grid_repository import InMemoryGridRepository
from .persistence.mysql_grid_repository import MySQLGridRepository
from .persistence.repository import GridRepository


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    absence_types_repo: AbsenceTypeRepository
    employees_repo: EmployeeDirectory
    delegations_repo: DelegationRepository
    grids_repo: GridRepository

    catalog_service: AbsenceCatalogService
    delegation_service: DelegationService
    duplicate_detector: DuplicateDetector
    engine: GridPersistenceEngine


def _assemble(
    conn: Optional[DatabaseConnection],
    absence_types_repo: AbsenceTypeRepository,
    employees_repo: EmployeeDirectory,
    delegations_repo: DelegationRepository,
    grids_repo: GridRepository,
) -> Container:
    catalog_service = AbsenceCatalogService(absence_types_repo)
    delegation_service = DelegationService(delegations_repo)
    duplicate_detector = DuplicateDetector(grids_repo)
    engine = GridPersistenceEngine(
        grids_repo,
        catalog_service,
        employees=employees_repo,
        delegations=delegation_service,
        detector=duplicate_detector,
    )

    return Container(
        conn=conn,
        absence_types_repo=absence_types_repo,
        employees_repo=employees_repo,
        delegations_repo=delegations_repo,
        grids_repo=grids_repo,
        catalog_service=catalog_service,
        delegation_service=delegation_service,
        duplicate_detector=duplicate_detector,
        engine=engine,
    )


def build_container(*, db_config: dict) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))
    return _assemble(
        conn,
        MySQLAbsenceTypeRepository(conn),
        MySQLEmployeeDirectory(conn),
        MySQLDelegationRepository(conn),
        MySQLGridRepository(conn),
    )


def build_memory_container(
    *,
    absence_types: Iterable[AbsenceType] = (),
    employees: Iterable[Employee] = (),
    delegations: Iterable[Delegation] = (),
) -> Container:
    """Container backed by in-memory repositories (tests, demos, STORAGE_BACKEND=memory)."""

    return _assemble(
        None,
        InMemoryAbsenceTypeRepository(absence_types),
        InMemoryEmployeeDirectory(employees),
        InMemoryDelegationRepository(delegations),
        InMemoryGridRepository(),
    )
