from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, run_blocking
from .model import AbsenceType
from .repository import AbsenceTypeRepository


class MySQLAbsenceTypeRepository(AbsenceTypeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    async def list_active(self) -> Sequence[AbsenceType]:
        return await run_blocking(self._list_active)

    def _list_active(self) -> list[AbsenceType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT code, name, description, requires_hours, sort_order, is_active
                FROM absence_types
                WHERE is_active=1
                ORDER BY sort_order ASC, code ASC
                """
            )
            return [
                AbsenceType(
                    code=r["code"],
                    name=r["name"],
                    requires_hours=bool(r["requires_hours"]),
                    sort_order=int(r.get("sort_order") or 0),
                    is_active=bool(r.get("is_active", True)),
                    description=r.get("description"),
                )
                for r in fetchall(cur)
            ]
