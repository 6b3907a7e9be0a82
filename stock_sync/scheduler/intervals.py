"""Named recurrence intervals for the durable triggers."""

from typing import NamedTuple

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR
WEEK = 7 * DAY

DEFAULT_INTERVAL = "hourly"


class Interval(NamedTuple):
    seconds: int
    display: str


# Operator-selectable sync cadences, in display order.
SYNC_INTERVALS: dict[str, Interval] = {
    "5min": Interval(5 * MINUTE, "Every 5 Minutes"),
    "15min": Interval(15 * MINUTE, "Every 15 Minutes"),
    "30min": Interval(30 * MINUTE, "Every 30 Minutes"),
    "hourly": Interval(HOUR, "Hourly"),
    "2hours": Interval(2 * HOUR, "Every 2 Hours"),
    "4hours": Interval(4 * HOUR, "Every 4 Hours"),
    "6hours": Interval(6 * HOUR, "Every 6 Hours"),
    "12hours": Interval(12 * HOUR, "Every 12 Hours"),
    "daily": Interval(DAY, "Daily"),
    "2days": Interval(2 * DAY, "Every 2 Days"),
    "weekly": Interval(WEEK, "Weekly"),
}

# Internal cadences, never offered to the operator.
SYSTEM_INTERVALS: dict[str, Interval] = {
    "watchdog": Interval(4 * HOUR, "Every 4 Hours (Watchdog)"),
    "license_check": Interval(DAY, "Daily (License Check)"),
}

ALL_INTERVALS: dict[str, Interval] = {**SYNC_INTERVALS, **SYSTEM_INTERVALS}


def is_sync_interval(key: str) -> bool:
    return key in SYNC_INTERVALS


def interval_seconds(key: str) -> int:
    """Seconds for a registered key; unknown keys fall back to hourly."""
    interval = ALL_INTERVALS.get(key)
    return interval.seconds if interval else HOUR


def interval_display(key: str) -> str:
    interval = ALL_INTERVALS.get(key)
    return interval.display if interval else key
