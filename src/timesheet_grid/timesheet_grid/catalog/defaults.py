"""Absence types used when no database is attached (memory backend, demos).

Kept in step with database/seed.sql.
"""

from .model import AbsenceType

DEFAULT_ABSENCE_TYPES = (
    AbsenceType("CO", "Annual leave", requires_hours=False, sort_order=10),
    AbsenceType("CM", "Medical leave", requires_hours=False, sort_order=20),
    AbsenceType("ZL", "Day off", requires_hours=False, sort_order=30),
    AbsenceType("AN", "Unexcused absence", requires_hours=False, sort_order=40),
    AbsenceType("PH", "Partial leave", requires_hours=True, sort_order=50),
)
