from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

# "10-12", "9:30-17:30", "22-06" (overnight)
TIME_INTERVAL_RE = re.compile(r"^(\d{1,2}(?::\d{2})?)-(\d{1,2}(?::\d{2})?)$")

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class ParsedInterval:
    start_time: str
    end_time: str
    hours: float

    @property
    def is_overnight(self) -> bool:
        return _to_minutes(self.end_time) < _to_minutes(self.start_time)


def _normalize(part: str) -> Optional[str]:
    hours_s, _, minutes_s = part.partition(":")
    hours = int(hours_s)
    minutes = int(minutes_s) if minutes_s else 0
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return None
    return f"{hours:02d}:{minutes:02d}"


def _to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def parse_time_interval(interval: Optional[str]) -> Optional[ParsedInterval]:
    """Parse a free-form "start-end" interval.

    Returns None for empty or unparsable input. The duration is
    (end - start) mod 24h, so an end before the start is an overnight shift.
    Duration bounds are not enforced here; see the cell validator.
    """

    text = (interval or "").strip().replace(" ", "")
    if not text:
        return None

    match = TIME_INTERVAL_RE.match(text)
    if not match:
        return None

    start = _normalize(match.group(1))
    end = _normalize(match.group(2))
    if start is None or end is None:
        return None

    diff = (_to_minutes(end) - _to_minutes(start)) % MINUTES_PER_DAY
    return ParsedInterval(start_time=start, end_time=end, hours=round(diff / 60, 2))
