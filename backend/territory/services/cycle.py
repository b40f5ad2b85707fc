from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from territory.core.constants import CYCLE_DAYS
from territory.core.time_utils import format_utc_date_key, start_of_utc_day


@dataclass(frozen=True)
class CycleWindow:
    cycle_key: str    # UTC Monday 'YYYY-MM-DD'
    start: datetime   # inclusive
    end: datetime     # exclusive

    def contains(self, at: datetime) -> bool:
        return self.start <= at < self.end


def weekly_cycle(at: datetime) -> CycleWindow:
    """Return the Monday-to-Monday UTC window containing `at`.

    Monday 00:00:00 UTC belongs to the cycle it starts.
    Example: 2025-12-28T12:34:56Z (Sunday) -> cycle_key '2025-12-22'.
    """
    day_start = start_of_utc_day(at)
    # Monday = 0 .. Sunday = 6
    start = day_start - timedelta(days=day_start.weekday())
    end = start + timedelta(days=CYCLE_DAYS)
    return CycleWindow(cycle_key=format_utc_date_key(start), start=start, end=end)


def cycle_from_key(cycle_key: str) -> CycleWindow:
    """Inverse of weekly_cycle(...).cycle_key; the key must name a Monday."""
    try:
        day = datetime.strptime(cycle_key, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    except (TypeError, ValueError):
        raise ValueError(f"cycle_key must be YYYY-MM-DD, got {cycle_key!r}")
    if day.weekday() != 0:
        raise ValueError(f"cycle_key must be a Monday, got {cycle_key}")
    return weekly_cycle(day)
