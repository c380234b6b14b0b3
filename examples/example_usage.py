"""Example: drive the engine directly (no Flask, no database).

Saves a two-employee grid, then saves a correction for one cell and shows
that the second save merged into the same stored grid.
"""

import asyncio
from datetime import date

from src.timesheet_grid.timesheet_grid.catalog.defaults import DEFAULT_ABSENCE_TYPES
from src.timesheet_grid.timesheet_grid.container import build_memory_container
from src.timesheet_grid.timesheet_grid.employees.model import Employee
from src.timesheet_grid.timesheet_grid.grids.model import DayCell, GridEntry, TimesheetGrid
from src.timesheet_grid.timesheet_grid.persistence.engine import SaveOptions


async def main():
    container = build_memory_container(
        absence_types=DEFAULT_ABSENCE_TYPES,
        employees=[
            Employee("emp-001", "Ana Popescu", "Cashier", "store-01", "zone-north"),
            Employee("emp-002", "Mihai Ionescu", "Store manager", "store-01", "zone-north"),
        ],
    )
    engine = container.engine

    grid = TimesheetGrid(
        store_id="store-01",
        period_start="2025-03-01",
        period_end="2025-03-31",
        entries=[
            GridEntry("emp-001", days={"2025-03-03": DayCell.create("9-17"), "2025-03-04": DayCell.create(status="CO")}),
            GridEntry("emp-002", days={"2025-03-03": DayCell.create("22-06")}),
        ],
    )
    first = await engine.save_timesheet_grid(grid, SaveOptions(created_by="demo"))
    print("first save:", first.success, "created:", first.created_count)

    correction = TimesheetGrid(
        store_id="store-01",
        period_start=date(2025, 3, 1),
        period_end=date(2025, 3, 31),
        entries=[GridEntry("emp-001", days={"2025-03-05": DayCell.create("10-14")})],
        id=first.grid_id,
    )
    second = await engine.save_timesheet_grid(correction)
    print("second save:", second.success, "updated:", second.updated_count)

    stored = await container.grids_repo.get_by_id(first.grid_id)
    print(stored.grid_title, "| total hours:", stored.total_hours)


if __name__ == "__main__":
    asyncio.run(main())
