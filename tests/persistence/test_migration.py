from __future__ import annotations

from datetime import date

import pytest

from src.timesheet_grid.timesheet_grid.grids.model import PersistedGrid
from src.timesheet_grid.timesheet_grid.persistence.memory_grid_repository import InMemoryGridRepository
from src.timesheet_grid.timesheet_grid.persistence.migration import migrate_all, migrate_employee_entries
from src.timesheet_grid.timesheet_grid.persistence.serializer import serialize_entries

FLAT = {
    "emp-001": {
        "name": "Ana Popescu",
        "position": "Cashier",
        "days": {
            "2025-03-03": {"timeInterval": "9-17", "hours": 8, "status": "alege", "notes": ""},
            "2025-03-04": {"timeInterval": "", "hours": 0, "status": "alege", "notes": ""},
            "2025-03-05": {"hours": "10-14", "status": "alege"},
        },
    }
}

WITH_METADATA = {
    "_grid_metadata": {"version": "2.0", "storeId": "store-01"},
    "_employees": {
        "emp-001": {"id": "emp-001", "name": "Ana Popescu", "position": "Cashier"},
        "emp-002": {"id": "emp-002", "full_name": "Mihai Ionescu"},
    },
    "2025-03-03": {
        "emp-001": {"employee_id": "emp-001", "timeInterval": "9-17", "hours": 8, "status": "alege"},
        "emp-002": {"employee_id": "emp-002", "timeInterval": "", "hours": 0, "status": "CO"},
    },
}


def test_flat_shape():
    out = migrate_employee_entries(FLAT)

    days = out["employees"]["emp-001"]["days"]
    assert out["schema_version"] == 3
    assert out["employees"]["emp-001"]["position"] == "Cashier"
    assert sorted(days) == ["2025-03-03", "2025-03-05"]
    assert days["2025-03-03"]["status"] == "unset"
    assert days["2025-03-05"]["hours"] == 4.0
    assert days["2025-03-05"]["timeInterval"] == "10-14"


def test_metadata_shape():
    out = migrate_employee_entries(WITH_METADATA)

    assert set(out["employees"]) == {"emp-001", "emp-002"}
    assert out["employees"]["emp-002"]["name"] == "Mihai Ionescu"
    assert out["employees"]["emp-001"]["days"]["2025-03-03"]["hours"] == 8.0
    assert out["employees"]["emp-002"]["days"]["2025-03-03"]["status"] == "CO"


def test_canonical_payload_is_returned_unchanged():
    payload = serialize_entries([])
    assert migrate_employee_entries(payload) is payload


def row(grid_id, entries):
    return PersistedGrid(
        id=grid_id,
        store_id="store-01",
        zone_id=None,
        period_start=date(2025, 3, 1),
        period_end=date(2025, 3, 31),
        employee_entries=entries,
        total_hours=0.0,
        employee_count=0,
    )


@pytest.mark.asyncio
async def test_migrate_all_rewrites_legacy_rows():
    repo = InMemoryGridRepository([row("legacy", WITH_METADATA), row("current", serialize_entries([]))])

    migrated, skipped = await migrate_all(repo)

    assert (migrated, skipped) == (1, 1)
    fixed = await repo.get_by_id("legacy")
    assert fixed.total_hours == 8.0
    assert fixed.employee_count == 2

    assert await migrate_all(repo) == (0, 2)
