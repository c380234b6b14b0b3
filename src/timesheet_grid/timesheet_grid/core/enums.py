from __future__ import annotations

from enum import Enum


class Severity(str, Enum):
    """How a cell validation finding is surfaced to the caller."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class StatusMembership(str, Enum):
    """Outcome of looking a status code up in the absence catalog.

    PENDING_CATALOG means the catalog has not been loaded yet, so membership
    cannot be decided and must not block the save.
    """

    VALID = "valid"
    INVALID = "invalid"
    PENDING_CATALOG = "pending_catalog"


class SetupField(str, Enum):
    STORE = "store"
    EMPLOYEES = "employees"
    DATE_RANGE = "dateRange"


class ConflictType(str, Enum):
    """Relationship between a candidate period and a persisted one (same store)."""

    EXACT_PERIOD = "exact_period"
    OVERLAPPING_PERIOD = "overlapping_period"
    SAME_MONTH = "same_month"
    NONE = "none"


class DuplicateResolution(str, Enum):
    """Choices offered to the user when a duplicate grid is detected."""

    EDIT_EXISTING = "edit_existing"
    CHOOSE_DIFFERENT_PERIOD = "choose_different_period"
    FORCE_CREATE = "force_create"


class SaveState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    CHECKING_DUPLICATE = "checking_duplicate"
    PERSISTING = "persisting"


class DelegationStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"
    PENDING = "pending"
