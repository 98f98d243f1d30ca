"""Derive statistics from weekly grids."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Mapping

from domain import days
from domain.schedule import ScheduleGrid, default_grid, round_half_hour, total_worked_hours
from domain.week_key import canonical_week_key
from rules.propagation import year_mondays


@dataclass
class WeekHours:
    week_key: str
    monday: date
    recorded: bool
    by_day: Dict[str, float]
    total: float


def worked_hours_by_day(grid: ScheduleGrid) -> Dict[str, float]:
    hours: Dict[str, float] = {}
    for day in days.OPERATING_DAYS:
        minutes = sum(slot.minutes() for slot in grid.slots_on(day) if slot.status == days.WORKING)
        hours[day] = round_half_hour(minutes / 60)
    return hours


def hours_by_week(agent_id: str, grids: Mapping[str, ScheduleGrid], target_year: int) -> List[WeekHours]:
    rows: List[WeekHours] = []
    for _, monday in year_mondays(target_year):
        key = canonical_week_key(agent_id, monday)
        grid = grids.get(key)
        recorded = grid is not None
        if grid is None:
            grid = default_grid(key)
        rows.append(
            WeekHours(
                week_key=key,
                monday=monday,
                recorded=recorded,
                by_day=worked_hours_by_day(grid),
                total=total_worked_hours(grid),
            )
        )
    return rows
