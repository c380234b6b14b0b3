from __future__ import annotations

from typing import Mapping, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, run_blocking
from .model import Employee
from .repository import EmployeeDirectory


class MySQLEmployeeDirectory(EmployeeDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    async def get_many(self, employee_ids: Sequence[str]) -> Mapping[str, Employee]:
        ids = [str(i) for i in dict.fromkeys(employee_ids)]
        if not ids:
            return {}
        return await run_blocking(self._get_many, ids)

    def _get_many(self, ids: list[str]) -> dict[str, Employee]:
        placeholders = ",".join(["%s"] * len(ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT employee_id, full_name, position, employee_code, store_id, zone_id, is_active
                FROM employees
                WHERE employee_id IN ({placeholders})
                """,
                tuple(ids),
            )
            out: dict[str, Employee] = {}
            for r in fetchall(cur):
                out[str(r["employee_id"])] = Employee(
                    employee_id=str(r["employee_id"]),
                    full_name=r["full_name"],
                    position=r.get("position"),
                    store_id=r.get("store_id"),
                    zone_id=r.get("zone_id"),
                    employee_code=r.get("employee_code"),
                    is_active=bool(r.get("is_active", True)),
                )
            return out
