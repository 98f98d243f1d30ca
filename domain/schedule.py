"""Weekly schedule grid used across rules and services."""
from __future__ import annotations

import math
from typing import Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from . import days
from .errors import MalformedInputError
from .models import ScheduleSlot, clock_minutes

SlotKey = Tuple[str, str]

# (status, start, end) per segment of the standard week.
DEFAULT_TEMPLATE: Dict[str, Dict[str, Tuple[str, str, str]]] = {
    **{
        day: {
            days.MORNING: (days.WORKING, "08:00", "12:00"),
            days.MIDDAY: (days.BREAK, "12:00", "13:00"),
            days.AFTERNOON: (days.WORKING, "13:00", "17:00"),
        }
        for day in days.OPERATING_DAYS[:5]
    },
    days.SATURDAY: {days.MORNING: (days.WORKING, "08:00", "13:00")},
}

LAYOUT: Tuple[SlotKey, ...] = tuple(
    (day, segment) for day in days.OPERATING_DAYS for segment in days.segments_for(day)
)
_ORDER = {key: idx for idx, key in enumerate(LAYOUT)}


def round_half_hour(hours: float) -> float:
    """Round to the nearest half hour, halves going up."""

    return math.floor(hours * 2 + 0.5) / 2


class ScheduleGrid(Mapping[SlotKey, ScheduleSlot]):
    """All slots of one agent for one canonical week.

    Grids are treated as values: every mutation helper returns a new grid so
    a week is always replaced as a whole.
    """

    def __init__(self, slots: Iterable[ScheduleSlot] = (), *, week_key: Optional[str] = None) -> None:
        self._slots: Dict[SlotKey, ScheduleSlot] = {}
        self._week_key = week_key
        for slot in slots:
            if slot.key in self._slots:
                raise MalformedInputError(f"Duplicate slot {slot.day}/{slot.segment}")
            self._slots[slot.key] = slot

    # -- Mapping protocol ---------------------------------------------------------
    def __getitem__(self, key: SlotKey) -> ScheduleSlot:
        return self._slots[key]

    def __iter__(self) -> Iterator[SlotKey]:
        return iter(sorted(self._slots, key=_ORDER.__getitem__))

    def __len__(self) -> int:
        return len(self._slots)

    def __repr__(self) -> str:
        return f"ScheduleGrid(week_key={self._week_key!r}, slots={len(self)})"

    # -- Core helpers -------------------------------------------------------------
    @property
    def week_key(self) -> Optional[str]:
        return self._week_key

    def slots(self) -> List[ScheduleSlot]:
        return [self._slots[key] for key in self]

    def slots_on(self, day: str) -> List[ScheduleSlot]:
        return [slot for slot in self.slots() if slot.day == day]

    def slot(self, day: str, segment: str) -> Optional[ScheduleSlot]:
        return self._slots.get((day, segment))

    def missing_slots(self) -> List[SlotKey]:
        return [key for key in LAYOUT if key not in self._slots]

    def is_complete(self) -> bool:
        return not self.missing_slots()

    def validate(self) -> "ScheduleGrid":
        missing = self.missing_slots()
        if missing:
            labels = ", ".join(f"{day}/{segment}" for day, segment in missing)
            raise MalformedInputError(f"Grid {self._week_key or ''} is incomplete: missing {labels}")
        return self

    # -- Mutation utilities -------------------------------------------------------
    def copy(self, *, week_key: Optional[str] = None) -> "ScheduleGrid":
        return ScheduleGrid(self.slots(), week_key=week_key or self._week_key)

    def with_slot(self, slot: ScheduleSlot) -> "ScheduleGrid":
        slots = dict(self._slots)
        slots[slot.key] = slot
        return ScheduleGrid(slots.values(), week_key=self._week_key)

    def map_day(self, day: str, update: Callable[[ScheduleSlot], ScheduleSlot]) -> "ScheduleGrid":
        return ScheduleGrid(
            (update(slot) if slot.day == day else slot for slot in self.slots()),
            week_key=self._week_key,
        )

    # -- Serialisation ------------------------------------------------------------
    def to_payload(self) -> List[Dict[str, Optional[str]]]:
        return [slot.to_dict() for slot in self.slots()]

    @classmethod
    def from_payload(cls, payload: Iterable[Mapping], *, week_key: Optional[str] = None) -> "ScheduleGrid":
        return cls((ScheduleSlot.from_dict(item) for item in payload), week_key=week_key)


def default_grid(week_key: Optional[str] = None) -> ScheduleGrid:
    return ScheduleGrid(
        (
            ScheduleSlot(day=day, segment=segment, status=status, start=start, end=end)
            for day, segments in DEFAULT_TEMPLATE.items()
            for segment, (status, start, end) in segments.items()
        ),
        week_key=week_key,
    )


def get_or_default(store: Mapping[str, ScheduleGrid], week_key: str) -> ScheduleGrid:
    """Return the stored grid for *week_key* or a fresh default one."""

    grid = store.get(week_key)
    if grid is None:
        return default_grid(week_key)
    return grid


def set_slot(
    grid: ScheduleGrid,
    day: str,
    segment: str,
    status: str,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> ScheduleGrid:
    """Return a copy of *grid* with one slot replaced.

    Omitted times keep the slot's current times.
    """

    current = grid.slot(day, segment)
    if current is not None:
        start = start if start is not None else current.start
        end = end if end is not None else current.end
    return grid.with_slot(ScheduleSlot(day=day, segment=segment, status=status, start=start, end=end))


def total_worked_hours(grid: ScheduleGrid) -> float:
    minutes = sum(slot.minutes() for slot in grid.values() if slot.status == days.WORKING and slot.is_timed)
    return round_half_hour(minutes / 60)


def template_status(day: str, segment: str) -> Optional[str]:
    entry = DEFAULT_TEMPLATE.get(day, {}).get(segment)
    return entry[0] if entry else None


def keeps_template_times(grid: ScheduleGrid, day: str) -> bool:
    """Whether every slot of *day* still has the standard template times.

    Statuses are not compared, so a template day taken as leave still
    qualifies.
    """

    template = DEFAULT_TEMPLATE.get(day, {})
    slots = grid.slots_on(day)
    if len(slots) != len(template):
        return False
    for slot in slots:
        entry = template.get(slot.segment)
        if entry is None or (slot.start, slot.end) != entry[1:]:
            return False
    return True


def scheduled_hours_on(
    grid: ScheduleGrid,
    day: str,
    *,
    within: Optional[Tuple[str, str]] = None,
) -> float:
    """Hours scheduled on *day*, whatever the slot status, breaks excluded.

    Leave turns every slot of a day ``off`` without changing its times, so
    this figure stays the same before and after a leave is applied. An
    ``off`` slot sitting on a template break still counts as a break. With
    *within* only the part of each slot inside that clock range counts.
    """

    total = 0
    for slot in grid.slots_on(day):
        if slot.status == days.BREAK or not slot.is_timed:
            continue
        if slot.status == days.OFF and template_status(day, slot.segment) == days.BREAK:
            continue
        start, end = clock_minutes(slot.start), clock_minutes(slot.end)  # type: ignore[arg-type]
        if within is not None:
            start = max(start, clock_minutes(within[0]))
            end = min(end, clock_minutes(within[1]))
        total += max(0, end - start)
    return round_half_hour(total / 60)


__all__ = [
    "DEFAULT_TEMPLATE",
    "LAYOUT",
    "ScheduleGrid",
    "default_grid",
    "get_or_default",
    "keeps_template_times",
    "round_half_hour",
    "scheduled_hours_on",
    "set_slot",
    "template_status",
    "total_worked_hours",
]
