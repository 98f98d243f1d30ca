"""Repeat-weekly propagation of a template grid across a year."""
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Dict, Iterator, Mapping, Tuple

from config import CONFIG
from domain.schedule import ScheduleGrid
from domain.week_key import canonical_monday, canonical_week_key

logger = logging.getLogger(__name__)


def _weeks(config: Mapping) -> int:
    return int(config.get("propagation", {}).get("weeks_per_year", CONFIG["propagation"]["weeks_per_year"]))


def year_mondays(target_year: int, config: Mapping | None = None) -> Iterator[Tuple[int, date]]:
    """Yield ``(offset, monday)`` for each week offset from 1 January.

    The first Monday can fall in December of the previous year when
    1 January is not a Monday.
    """

    config = config or CONFIG
    start = date(target_year, 1, 1)
    for offset in range(_weeks(config)):
        yield offset, canonical_monday(start + timedelta(days=7 * offset))


def propagate_weekly(
    agent_id: str,
    template_grid: ScheduleGrid,
    effective_from: date,
    target_year: int,
    config: Mapping | None = None,
) -> Dict[str, ScheduleGrid]:
    """Copy *template_grid* into every week of *target_year* from *effective_from* on.

    Weeks whose Monday precedes the Monday of *effective_from* are skipped,
    so past weeks are never overwritten. Keys come back in ascending order.
    """

    config = config or CONFIG
    template_grid.validate()
    effective_monday = canonical_monday(effective_from)
    written: Dict[str, ScheduleGrid] = {}
    skipped = 0
    for _, monday in year_mondays(target_year, config):
        if monday < effective_monday:
            skipped += 1
            continue
        key = canonical_week_key(agent_id, monday)
        written[key] = template_grid.copy(week_key=key)
    logger.info(
        "Propagated template for %s into %d week(s) of %d (%d past week(s) skipped)",
        agent_id,
        len(written),
        target_year,
        skipped,
    )
    return written


def repeated_weeks(agent_id: str, grids: Mapping[str, ScheduleGrid], target_year: int, config: Mapping | None = None) -> int:
    return sum(
        1
        for _, monday in year_mondays(target_year, config)
        if canonical_week_key(agent_id, monday) in grids
    )


def is_repeated(agent_id: str, grids: Mapping[str, ScheduleGrid], target_year: int, config: Mapping | None = None) -> bool:
    """Whether *agent_id* has a repeated schedule for *target_year*.

    Approximate on purpose: it is enough that most weeks of the year (40 of
    52 by default) hold an entry, whatever their content.
    """

    config = config or CONFIG
    threshold = int(
        config.get("propagation", {}).get("repeated_threshold", CONFIG["propagation"]["repeated_threshold"])
    )
    return repeated_weeks(agent_id, grids, target_year, config) >= threshold


__all__ = ["is_repeated", "propagate_weekly", "repeated_weeks", "year_mondays"]
