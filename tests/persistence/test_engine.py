from __future__ import annotations

import asyncio
from datetime import date

import pytest

from src.timesheet_grid.timesheet_grid.catalog.memory_absence_type_repository import InMemoryAbsenceTypeRepository
from src.timesheet_grid.timesheet_grid.catalog.service import AbsenceCatalogService
from src.timesheet_grid.timesheet_grid.core.enums import ConflictType, SaveState
from src.timesheet_grid.timesheet_grid.core.exceptions import CancellationNotAllowedError, StorageError, ValidationError
from src.timesheet_grid.timesheet_grid.delegations.model import Delegation
from src.timesheet_grid.timesheet_grid.employees.memory_employee_directory import InMemoryEmployeeDirectory
from src.timesheet_grid.timesheet_grid.grids.model import DayCell, TimesheetGrid
from src.timesheet_grid.timesheet_grid.persistence.engine import GENERIC_SAVE_ERROR, GridPersistenceEngine, SaveOptions
from src.timesheet_grid.timesheet_grid.persistence.memory_grid_repository import InMemoryGridRepository


def two_employee_grid(make_grid, work, **kwargs):
    return make_grid(
        {
            "emp-001": {"2025-03-03": work("9-17"), "2025-03-04": work("9-13")},
            "emp-002": {"2025-03-03": work("22-06")},
        },
        **kwargs,
    )


@pytest.mark.asyncio
async def test_first_save_creates_one_row(engine, grids_repo, make_grid, work):
    result = await engine.save_timesheet_grid(two_employee_grid(make_grid, work), SaveOptions(created_by="u-1"))

    assert result.success
    assert result.created_count == 2
    assert result.updated_count == 0
    assert result.state_reached is SaveState.PERSISTING
    assert len(grids_repo) == 1

    row = await grids_repo.get_by_id(result.grid_id)
    assert row.period_start == date(2025, 3, 1)
    assert row.period_end == date(2025, 3, 31)
    assert row.total_hours == 20.0
    assert row.employee_count == 2
    assert row.grid_title == "March 2025 - 2 employees"
    assert row.created_by == "u-1"
    assert row.notes == f"Grid session: {result.session_id}"


@pytest.mark.asyncio
async def test_names_and_zone_come_from_directory(engine, grids_repo, make_grid, work):
    result = await engine.save_timesheet_grid(two_employee_grid(make_grid, work))

    row = await grids_repo.get_by_id(result.grid_id)
    assert row.zone_id == "zone-north"
    assert row.employee_entries["employees"]["emp-001"]["name"] == "Ana Popescu"
    assert row.employee_entries["employees"]["emp-002"]["position"] == "Store manager"
    assert [s.employee_name for s in result.saved] == ["Ana Popescu", "Mihai Ionescu"]


@pytest.mark.asyncio
async def test_saving_the_same_grid_twice_updates(engine, grids_repo, make_grid, work):
    first = await engine.save_timesheet_grid(two_employee_grid(make_grid, work))
    second = await engine.save_timesheet_grid(two_employee_grid(make_grid, work, grid_id=first.grid_id))

    assert second.success
    assert second.grid_id == first.grid_id
    assert second.updated_count == 2
    assert second.created_count == 0
    assert len(grids_repo) == 1
    assert (await grids_repo.get_by_id(first.grid_id)).total_hours == 20.0


@pytest.mark.asyncio
async def test_second_save_merges_cells(engine, grids_repo, make_grid, work):
    first = await engine.save_timesheet_grid(two_employee_grid(make_grid, work))

    edit = make_grid(
        {
            "emp-001": {
                "2025-03-04": work("10-12"),
                "2025-03-05": DayCell.create(status="CO"),
                "2025-03-06": work("8-12"),
            }
        },
        grid_id=first.grid_id,
    )
    second = await engine.save_timesheet_grid(edit)

    assert second.success
    assert [(s.employee_id, s.is_update) for s in second.saved] == [("emp-001", True)]

    row = await grids_repo.get_by_id(first.grid_id)
    ana = row.employee_entries["employees"]["emp-001"]["days"]
    assert ana["2025-03-03"]["hours"] == 8.0
    assert ana["2025-03-04"]["hours"] == 2.0
    assert ana["2025-03-05"]["status"] == "CO"
    assert ana["2025-03-06"]["hours"] == 4.0
    assert row.employee_entries["employees"]["emp-002"]["days"]["2025-03-03"]["hours"] == 8.0
    assert row.total_hours == 22.0
    assert row.employee_count == 2


@pytest.mark.asyncio
async def test_empty_cell_clears_stored_cell(engine, grids_repo, make_grid, work):
    first = await engine.save_timesheet_grid(two_employee_grid(make_grid, work))

    await engine.save_timesheet_grid(make_grid({"emp-001": {"2025-03-04": DayCell()}}, grid_id=first.grid_id))

    row = await grids_repo.get_by_id(first.grid_id)
    assert "2025-03-04" not in row.employee_entries["employees"]["emp-001"]["days"]
    assert row.total_hours == 16.0


@pytest.mark.asyncio
async def test_new_grid_for_same_key_is_blocked_as_duplicate(engine, grids_repo, make_grid, work):
    await engine.save_timesheet_grid(two_employee_grid(make_grid, work))

    result = await engine.save_timesheet_grid(make_grid({"emp-001": {"2025-03-10": work("9-17")}}))

    assert not result.success
    assert result.is_duplicate_blocked
    assert result.duplication_check.conflict_type is ConflictType.EXACT_PERIOD
    assert result.state_reached is SaveState.CHECKING_DUPLICATE
    row = (await grids_repo.list_for_store_between(store_id="store-01", start=date(2025, 3, 1), end=date(2025, 3, 31)))[0]
    assert "2025-03-10" not in row.employee_entries["employees"]["emp-001"]["days"]


@pytest.mark.asyncio
async def test_same_month_grid_is_blocked(engine, grids_repo, make_grid, work):
    await engine.save_timesheet_grid(make_grid({"emp-001": {"2025-03-03": work("9-17")}}, end="2025-03-10"))

    result = await engine.save_timesheet_grid(
        make_grid({"emp-001": {"2025-03-20": work("9-17")}}, start="2025-03-15", end="2025-03-31")
    )

    assert result.duplication_check.conflict_type is ConflictType.SAME_MONTH
    assert len(grids_repo) == 1


@pytest.mark.asyncio
async def test_force_create_merges_into_the_existing_row(engine, grids_repo, make_grid, work):
    first = await engine.save_timesheet_grid(two_employee_grid(make_grid, work))

    forced = await engine.save_timesheet_grid(
        make_grid({"emp-001": {"2025-03-10": work("9-17")}}), SaveOptions(force_create=True)
    )

    assert forced.success
    assert forced.grid_id == first.grid_id
    assert forced.saved[0].is_update
    assert forced.duplication_check is None
    assert len(grids_repo) == 1
    assert (await grids_repo.get_by_id(first.grid_id)).total_hours == 28.0


@pytest.mark.asyncio
async def test_period_boundaries_are_normalized(engine, grids_repo, make_grid, work):
    grid = make_grid(
        {"emp-001": {"2025-03-03": work("9-17")}},
        start="2025-03-01T00:00:00.000Z",
        end="2025-03-31T23:59:59.999Z",
    )

    result = await engine.save_timesheet_grid(grid)

    row = await grids_repo.find_by_key(store_id="store-01", period_start=date(2025, 3, 1), period_end=date(2025, 3, 31))
    assert row.id == result.grid_id


@pytest.mark.asyncio
async def test_invalid_cells_never_reach_storage(engine, grids_repo, make_grid, work):
    grid = make_grid({"emp-001": {"2025-03-03": DayCell.create("9-17", status="CO")}})

    result = await engine.save_timesheet_grid(grid)

    assert not result.success
    assert result.state_reached is SaveState.VALIDATING
    assert result.validation.errors[0].message == "Cannot have working hours with Annual leave"
    assert result.errors[0].employee_id == "emp-001"
    assert len(grids_repo) == 0
    assert not engine.is_saving(result.session_id)


@pytest.mark.asyncio
async def test_setup_errors_never_reach_storage(engine, grids_repo, make_grid, work):
    grid = make_grid({"emp-001": {"2025-03-03": work("garbage")}}, end="2025-04-15")

    result = await engine.save_timesheet_grid(grid)

    assert not result.success
    assert result.validation.setup_errors[0].message == "Timesheet period cannot exceed 31 days"
    assert result.validation.errors == ()
    assert len(grids_repo) == 0


@pytest.mark.asyncio
async def test_unknown_employee_blocks_whole_save(engine, grids_repo, make_grid, work):
    grid = make_grid({"emp-001": {"2025-03-03": work("9-17")}, "emp-404": {"2025-03-03": work("9-17")}})

    result = await engine.save_timesheet_grid(grid)

    assert not result.success
    assert [e.employee_id for e in result.errors] == ["emp-404"]
    assert len(grids_repo) == 0


@pytest.mark.asyncio
async def test_delegated_employee_cells_are_locked(engine, delegations_repo, make_grid, work):
    delegations_repo._delegations.append(
        Delegation("d-1", "emp-001", "store-01", "store-02", date(2025, 3, 10), None)
    )

    blocked = await engine.save_timesheet_grid(make_grid({"emp-001": {"2025-03-12": work("9-17")}}))
    allowed = await engine.save_timesheet_grid(make_grid({"emp-001": {"2025-03-05": work("9-17")}}))

    assert blocked.validation.errors[0].message == "Cannot edit timesheet after employee delegation date"
    assert allowed.success


@pytest.mark.asyncio
async def test_skip_validation_persists_as_given(engine, grids_repo, make_grid):
    grid = make_grid({"emp-001": {"2025-03-03": DayCell.create(status="XX")}})

    result = await engine.save_timesheet_grid(grid, skip_validation=True)

    assert result.success
    assert result.validation is None
    assert len(grids_repo) == 1


@pytest.mark.asyncio
async def test_unloaded_catalog_does_not_block(grids_repo, directory, make_grid):
    engine = GridPersistenceEngine(
        grids_repo, AbsenceCatalogService(InMemoryAbsenceTypeRepository()), employees=directory
    )

    result = await engine.save_timesheet_grid(make_grid({"emp-001": {"2025-03-03": DayCell.create(status="XX")}}))

    assert result.success


@pytest.mark.asyncio
async def test_full_day_absence_counts_as_working_day(engine, make_grid, work):
    grid = make_grid({"emp-001": {"2025-03-03": work("9-13"), "2025-03-04": DayCell.create(status="CO")}})

    result = await engine.save_timesheet_grid(grid)

    assert result.saved[0].effective_hours == 12.0


class FailingGridRepository(InMemoryGridRepository):
    def __init__(self, exc):
        super().__init__()
        self._exc = exc

    async def upsert_merge(self, **kwargs):
        raise self._exc


@pytest.mark.asyncio
async def test_storage_failure_returns_failed_result(directory, make_grid, work):
    engine = GridPersistenceEngine(
        FailingGridRepository(StorageError("Lock wait timeout exceeded")),
        AbsenceCatalogService(InMemoryAbsenceTypeRepository()),
        employees=directory,
    )

    result = await engine.save_timesheet_grid(make_grid({"emp-001": {"2025-03-03": work("9-17")}}))

    assert not result.success
    assert result.saved == ()
    assert result.errors[0].error == "Lock wait timeout exceeded"
    assert result.state_reached is SaveState.PERSISTING


@pytest.mark.asyncio
async def test_unexpected_failure_returns_generic_error(directory, make_grid, work):
    engine = GridPersistenceEngine(
        FailingGridRepository(RuntimeError("boom")),
        AbsenceCatalogService(InMemoryAbsenceTypeRepository()),
        employees=directory,
    )

    result = await engine.save_timesheet_grid(make_grid({"emp-001": {"2025-03-03": work("9-17")}}))

    assert not result.success
    assert result.errors[0].error == GENERIC_SAVE_ERROR
    assert result.errors[0].employee_id == "grid"


class SlowDirectory(InMemoryEmployeeDirectory):
    def __init__(self, employees):
        super().__init__(employees)
        self.release = asyncio.Event()

    async def get_many(self, employee_ids):
        await self.release.wait()
        return await super().get_many(employee_ids)


class SlowGridRepository(InMemoryGridRepository):
    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()

    async def upsert_merge(self, **kwargs):
        await self.release.wait()
        return await super().upsert_merge(**kwargs)


async def wait_for_state(engine, session_id, state):
    for _ in range(100):
        if engine.session_state(session_id) is state:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"session never reached {state}")


@pytest.mark.asyncio
async def test_cancel_during_validation_stops_before_storage(grids_repo, employees, make_grid, work):
    directory = SlowDirectory(employees)
    engine = GridPersistenceEngine(
        grids_repo, AbsenceCatalogService(InMemoryAbsenceTypeRepository()), employees=directory
    )
    options = SaveOptions(grid_session_id="session-1")

    task = asyncio.create_task(engine.save_timesheet_grid(make_grid({"emp-001": {"2025-03-03": work("9-17")}}), options))
    await wait_for_state(engine, "session-1", SaveState.VALIDATING)

    assert engine.is_saving("session-1")
    assert engine.request_cancel("session-1") is True
    directory.release.set()
    result = await task

    assert not result.success
    assert result.cancelled
    assert len(grids_repo) == 0
    assert not engine.is_saving("session-1")


@pytest.mark.asyncio
async def test_cancel_refused_while_persisting(directory, make_grid, work):
    grids = SlowGridRepository()
    engine = GridPersistenceEngine(
        grids, AbsenceCatalogService(InMemoryAbsenceTypeRepository()), employees=directory
    )
    options = SaveOptions(grid_session_id="session-2")

    task = asyncio.create_task(engine.save_timesheet_grid(make_grid({"emp-001": {"2025-03-03": work("9-17")}}), options))
    await wait_for_state(engine, "session-2", SaveState.PERSISTING)

    with pytest.raises(CancellationNotAllowedError):
        engine.request_cancel("session-2")

    grids.release.set()
    result = await task

    assert result.success
    assert len(grids) == 1
    assert engine.session_state("session-2") is SaveState.IDLE


def test_cancel_with_nothing_running(engine):
    assert engine.request_cancel("idle-session") is False
    assert not engine.is_saving("idle-session")


@pytest.mark.asyncio
async def test_validate_without_saving(engine, grids_repo, make_grid, work):
    result = await engine.validate(make_grid({"emp-001": {"2025-03-03": work("10-10")}}))

    assert not result.is_valid
    assert result.errors[0].message == "Shift must be at least 30 minutes"
    assert len(grids_repo) == 0


@pytest.mark.asyncio
async def test_check_duplication_excludes_grid_being_edited(engine, make_grid, work):
    first = await engine.save_timesheet_grid(two_employee_grid(make_grid, work))

    assert (await engine.check_duplication(make_grid())).has_duplicate
    assert not (await engine.check_duplication(make_grid(grid_id=first.grid_id))).has_duplicate


@pytest.mark.asyncio
async def test_load_grid_for_edit_fills_every_day(engine, make_grid, work):
    first = await engine.save_timesheet_grid(two_employee_grid(make_grid, work))

    grid = await engine.load_grid_for_edit(first.grid_id)

    assert grid.id == first.grid_id
    assert [e.employee_id for e in grid.entries] == ["emp-001", "emp-002"]
    ana = grid.entries[0]
    assert len(ana.days) == 31
    assert ana.days["2025-03-03"].hours == 8.0
    assert ana.days["2025-03-20"].is_empty()
    assert await engine.load_grid_for_edit("missing") is None


class BrokenDirectory(InMemoryEmployeeDirectory):
    async def get_many(self, employee_ids):
        raise RuntimeError("directory down")


class BrokenLookupRepository(InMemoryGridRepository):
    async def list_for_store_between(self, **kwargs):
        raise ValueError("bad JSON column")


@pytest.mark.asyncio
async def test_directory_failure_returns_generic_error(grids_repo, employees, make_grid, work):
    engine = GridPersistenceEngine(
        grids_repo, AbsenceCatalogService(InMemoryAbsenceTypeRepository()), employees=BrokenDirectory(employees)
    )

    result = await engine.save_timesheet_grid(make_grid({"emp-001": {"2025-03-03": work("9-17")}}))

    assert not result.success
    assert [e.error for e in result.errors] == [GENERIC_SAVE_ERROR]
    assert result.state_reached is SaveState.VALIDATING
    assert len(grids_repo) == 0
    assert not engine.is_saving(result.session_id)


@pytest.mark.asyncio
async def test_duplicate_lookup_failure_returns_generic_error(directory, make_grid, work):
    grids = BrokenLookupRepository()
    engine = GridPersistenceEngine(grids, AbsenceCatalogService(InMemoryAbsenceTypeRepository()), employees=directory)

    result = await engine.save_timesheet_grid(make_grid({"emp-001": {"2025-03-03": work("9-17")}}))

    assert not result.success
    assert [e.error for e in result.errors] == [GENERIC_SAVE_ERROR]
    assert result.state_reached is SaveState.CHECKING_DUPLICATE
    assert len(grids) == 0


@pytest.mark.asyncio
async def test_finished_sessions_are_forgotten(engine, make_grid, work):
    for n in range(20):
        result = await engine.save_timesheet_grid(
            make_grid({"emp-001": {"2025-03-03": work("9-17")}}, store_id=f"store-{n:02d}")
        )
        assert result.success

    assert engine._sessions == {}


def test_cancel_for_unknown_session_is_not_tracked(engine):
    assert engine.request_cancel("never-started") is False
    assert "never-started" not in engine._sessions


def test_non_finite_hours_are_rejected():
    payload = {
        "storeId": "store-01",
        "startDate": "2025-03-01",
        "endDate": "2025-03-31",
        "entries": [{"employeeId": "emp-001", "days": {"2025-03-03": {"hours": "nan", "status": "CO"}}}],
    }

    with pytest.raises(ValidationError):
        TimesheetGrid.from_dict(payload)


@pytest.mark.asyncio
async def test_resaving_unchanged_grid_without_id_is_blocked(engine, grids_repo, make_grid, work):
    first = await engine.save_timesheet_grid(two_employee_grid(make_grid, work))

    again = await engine.save_timesheet_grid(two_employee_grid(make_grid, work))
    edited = await engine.save_timesheet_grid(two_employee_grid(make_grid, work, grid_id=first.grid_id))

    assert again.is_duplicate_blocked
    assert again.duplication_check.existing.id == first.grid_id
    assert edited.success
    assert (await grids_repo.get_by_id(first.grid_id)).total_hours == 20.0
