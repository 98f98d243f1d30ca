"""Day and segment vocabulary shared by every planning component."""
from __future__ import annotations

from datetime import date
from typing import Dict, Tuple

from .errors import MalformedInputError

__all__ = [
    "MONDAY",
    "TUESDAY",
    "WEDNESDAY",
    "THURSDAY",
    "FRIDAY",
    "SATURDAY",
    "SUNDAY",
    "ALL_DAYS",
    "OPERATING_DAYS",
    "MORNING",
    "MIDDAY",
    "AFTERNOON",
    "SEGMENTS",
    "WORKING",
    "BREAK",
    "OFF",
    "STATUSES",
    "DEFAULT_DAY_HOURS",
    "day_name",
    "segments_for",
]


MONDAY = "monday"
TUESDAY = "tuesday"
WEDNESDAY = "wednesday"
THURSDAY = "thursday"
FRIDAY = "friday"
SATURDAY = "saturday"
SUNDAY = "sunday"

# Index matches date.weekday(): 0 = Monday .. 6 = Sunday.
ALL_DAYS: Tuple[str, ...] = (MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY, SUNDAY)
OPERATING_DAYS: Tuple[str, ...] = ALL_DAYS[:6]

MORNING = "morning"
MIDDAY = "midday"
AFTERNOON = "afternoon"
SEGMENTS: Tuple[str, ...] = (MORNING, MIDDAY, AFTERNOON)

WORKING = "working"
BREAK = "break"
OFF = "off"
STATUSES: Tuple[str, ...] = (WORKING, BREAK, OFF)

_SEGMENTS_BY_DAY: Dict[str, Tuple[str, ...]] = {
    **{day: SEGMENTS for day in OPERATING_DAYS[:5]},
    SATURDAY: (MORNING,),
    SUNDAY: (),
}

# Fallback hours of a calendar day when no schedule was recorded for its week.
DEFAULT_DAY_HOURS: Dict[str, float] = {
    **{day: 7.0 for day in OPERATING_DAYS[:5]},
    SATURDAY: 6.0,
    SUNDAY: 0.0,
}


def day_name(day: date) -> str:
    return ALL_DAYS[day.weekday()]


def segments_for(day: str) -> Tuple[str, ...]:
    """Return the ordered segments a *day* name can hold (empty for Sunday)."""

    try:
        return _SEGMENTS_BY_DAY[day]
    except KeyError:
        raise MalformedInputError(f"Unknown day name: {day!r}") from None

