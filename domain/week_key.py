"""Canonical week identity: one Monday per calendar date, per agent."""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterator, Tuple

from .errors import MalformedInputError

__all__ = [
    "canonical_monday",
    "canonical_week_key",
    "parse_week_key",
    "parse_date",
    "iter_days",
    "span_days",
]


def canonical_monday(day: date) -> date:
    """Return the Monday of the Monday-to-Sunday span containing *day*.

    Sunday goes back six days, never forward to the next Monday.
    """

    if isinstance(day, datetime):
        day = day.date()
    return day - timedelta(days=day.weekday())


def canonical_week_key(agent_id: str, day: date) -> str:
    monday = canonical_monday(day)
    return f"{agent_id}_{monday.year:04d}-{monday.month:02d}-{monday.day:02d}"


def parse_week_key(key: str) -> Tuple[str, date]:
    """Split a week key into ``(agent_id, monday)``.

    Agent identifiers may themselves contain underscores, so the date is
    taken from the last separator.
    """

    agent_id, sep, raw = key.rpartition("_")
    if not sep or not agent_id:
        raise MalformedInputError(f"Not a week key: {key!r}")
    monday = parse_date(raw)
    if monday.weekday() != 0:
        raise MalformedInputError(f"Week key {key!r} is not anchored on a Monday")
    return agent_id, monday


def parse_date(value) -> date:
    """Coerce ``YYYY-MM-DD`` strings (or dates) into a calendar date.

    Components are parsed as plain integers so no timezone shift can move
    the day.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parts = str(value).strip().split("-")
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        raise MalformedInputError(f"Invalid date: {value!r}")
    year, month, day = (int(part) for part in parts)
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise MalformedInputError(f"Invalid date: {value!r}") from exc


def iter_days(start: date, end: date) -> Iterator[date]:
    """Return every calendar day from *start* to *end*, both inclusive.

    A reversed range fails here, before the caller consumes anything.
    """

    if end < start:
        raise MalformedInputError(f"End date {end.isoformat()} precedes start date {start.isoformat()}")
    return _walk(start, end)


def span_days(start: date, end: date, *, exclude_sundays: bool = False) -> int:
    """Inclusive number of days between *start* and *end*.

    With *exclude_sundays* the Sundays of the range are not counted.
    """

    days = iter_days(start, end)
    if exclude_sundays:
        return sum(1 for day in days if day.weekday() != 6)
    return (end - start).days + 1


def _walk(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
