from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Employee:
    """Directory record used to fill in grid entries."""

    employee_id: str
    full_name: str
    position: Optional[str] = None
    store_id: Optional[str] = None
    zone_id: Optional[str] = None
    employee_code: Optional[str] = None
    is_active: bool = True
