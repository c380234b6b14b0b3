from __future__ import annotations

from datetime import date
from typing import Sequence

from ..core.enums import DelegationStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, run_blocking
from .model import Delegation
from .repository import DelegationRepository


class MySQLDelegationRepository(DelegationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    async def list_away_from_store(self, *, store_id: str, start: date, end: date) -> Sequence[Delegation]:
        return await run_blocking(self._list_away_from_store, str(store_id), start, end)

    def _list_away_from_store(self, store_id: str, start: date, end: date) -> list[Delegation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT delegation_id, employee_id, from_store_id, to_store_id,
                       valid_from, valid_until, status
                FROM delegations
                WHERE from_store_id=%s
                  AND valid_from <= %s
                  AND (valid_until IS NULL OR valid_until >= %s)
                ORDER BY valid_from ASC
                """,
                (store_id, end, start),
            )
            return [
                Delegation(
                    delegation_id=str(r["delegation_id"]),
                    employee_id=str(r["employee_id"]),
                    from_store_id=str(r["from_store_id"]),
                    to_store_id=str(r["to_store_id"]),
                    valid_from=r["valid_from"],
                    valid_until=r.get("valid_until"),
                    status=DelegationStatus(r["status"]),
                )
                for r in fetchall(cur)
            ]
