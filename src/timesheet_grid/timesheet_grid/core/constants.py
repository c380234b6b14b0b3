"""Constants and defaults.

Note: Keep business thresholds here to avoid magic numbers spread across validators.
"""

DEFAULT_CELL_STATUS = "unset"

MAX_HOURS_PER_SHIFT = 16
MIN_HOURS_PER_SHIFT = 0.5
MAX_HOURS_PARTIAL_ABSENCE = 8
MAX_PERIOD_DAYS = 31

DATE_KEY_FORMAT = "%Y-%m-%d"
GRID_SCHEMA_VERSION = 3
GRID_LEVEL_ERROR_ID = "grid"

# Full-day absences count as a normal working day in effective-hours totals.
FULL_DAY_ABSENCE_HOURS = 8
