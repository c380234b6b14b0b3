from __future__ import annotations

from datetime import date

from src.timesheet_grid.timesheet_grid.catalog.model import AbsenceCatalog
from src.timesheet_grid.timesheet_grid.common.datetime_utils import generate_date_range
from src.timesheet_grid.timesheet_grid.core.enums import SetupField
from src.timesheet_grid.timesheet_grid.grids.model import DayCell, GridEntry
from src.timesheet_grid.timesheet_grid.validation.grid_validator import (
    GridSetupContext,
    setup_context_for,
    validate_grid,
    validate_grid_setup,
)


def run(entries, catalog, start, end, store_id="store-01", **kwargs):
    setup = setup_context_for(store_id, entries, start, end)
    return validate_grid(entries, generate_date_range(start, end), catalog, setup, **kwargs)


def test_period_over_31_days_reports_setup_error_only(catalog):
    entries = [GridEntry("emp-001", days={"2025-03-03": DayCell.create("garbage")})]

    result = run(entries, catalog, date(2025, 3, 1), date(2025, 4, 15))

    assert not result.is_valid
    assert [s.field for s in result.setup_errors] == [SetupField.DATE_RANGE]
    assert result.setup_errors[0].message == "Timesheet period cannot exceed 31 days"
    assert result.errors == ()
    assert result.warnings == ()


def test_period_of_exactly_31_elapsed_days_is_allowed(catalog):
    result = run([GridEntry("emp-001")], catalog, date(2025, 1, 1), date(2025, 2, 1))
    assert result.is_valid


def test_setup_errors_are_collected_together():
    errors = validate_grid_setup(GridSetupContext(store_id="", employee_count=0, start_date="x", end_date="2025-03-31"))

    assert [e.field for e in errors] == [SetupField.STORE, SetupField.EMPLOYEES, SetupField.DATE_RANGE]
    assert errors[2].message == "Invalid date format"


def test_end_must_be_after_start():
    errors = validate_grid_setup(
        GridSetupContext(store_id="store-01", employee_count=1, start_date="2025-03-10", end_date="2025-03-10")
    )
    assert [e.message for e in errors] == ["End date must be after start date"]


def test_setup_accepts_iso_timestamps():
    errors = validate_grid_setup(
        GridSetupContext(
            store_id="store-01",
            employee_count=1,
            start_date="2025-03-01T00:00:00.000Z",
            end_date="2025-03-31T23:59:59.000Z",
        )
    )
    assert errors == []


def test_collects_every_cell_finding(catalog, march):
    start, end = march
    entries = [
        GridEntry(
            "emp-001",
            "Ana Popescu",
            days={
                "2025-03-03": DayCell.create("9-17", status="CO"),
                "2025-03-04": DayCell.create("9-17"),
                "2025-03-05": DayCell.create("8-17", status="PH"),
            },
        ),
        GridEntry("emp-002", days={"2025-03-03": DayCell.create("10-10")}),
    ]

    result = run(entries, catalog, start, end)

    assert not result.is_valid
    assert not result.can_save
    assert [(e.employee_id, e.date) for e in result.errors] == [("emp-001", "2025-03-03"), ("emp-002", "2025-03-03")]
    assert result.errors[0].employee_name == "Ana Popescu"
    assert [(w.employee_id, w.date) for w in result.warnings] == [("emp-001", "2025-03-05")]


def test_warnings_and_weekend_info_do_not_block(catalog, march):
    start, end = march
    entries = [
        GridEntry(
            "emp-001",
            days={
                "2025-03-01": DayCell.create("9-17"),  # Saturday
                "2025-03-05": DayCell.create("8-17", status="PH"),
            },
        )
    ]

    result = run(entries, catalog, start, end)

    assert result.is_valid
    assert result.can_save
    assert len(result.warnings) == 1
    assert [(i.date, i.message) for i in result.infos] == [("2025-03-01", "Weekend work detected")]
    assert result.to_dict()["infos"][0]["info"] == "Weekend work detected"


def test_pending_catalog_is_reported_as_info(march):
    start, end = march
    entries = [GridEntry("emp-001", days={"2025-03-03": DayCell.create(status="XX")})]

    result = run(entries, AbsenceCatalog.pending(), start, end)

    assert result.is_valid
    assert result.errors == ()
    assert [i.message for i in result.infos] == ["Loading absence types..."]


def test_date_outside_period_is_an_error(catalog, march):
    start, end = march
    entries = [GridEntry("emp-001", days={"2025-04-02": DayCell.create("9-17")})]

    result = run(entries, catalog, start, end)

    assert not result.is_valid
    assert result.errors[0].date == "2025-04-02"
    assert result.errors[0].message == "Date is outside the timesheet period"


def test_restriction_callable_is_consulted_per_cell(catalog, march):
    start, end = march
    entries = [
        GridEntry(
            "emp-001",
            days={"2025-03-03": DayCell.create("9-17"), "2025-03-20": DayCell.create("9-17")},
        )
    ]

    result = run(entries, catalog, start, end, restriction_for=lambda emp, day: day >= date(2025, 3, 15))

    assert [e.date for e in result.errors] == ["2025-03-20"]
    assert result.errors[0].message == "Cannot edit timesheet after employee delegation date"


def test_date_range_derived_from_setup_when_omitted(catalog):
    entries = [GridEntry("emp-001", days={"2025-03-03": DayCell.create("abc")})]
    setup = setup_context_for("store-01", entries, "2025-03-01", "2025-03-31")

    result = validate_grid(entries, None, catalog, setup)

    assert len(result.errors) == 1


def test_to_dict_includes_suggested_fix(catalog, march):
    start, end = march
    entries = [GridEntry("emp-001", days={"2025-03-03": DayCell.create("9-17", status="CO")})]

    payload = run(entries, catalog, start, end).to_dict()

    assert payload["canSave"] is False
    assert payload["errors"][0]["suggestedFix"]["action"] == "clear_hours"
