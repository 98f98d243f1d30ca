"""Turn approved leave requests into weekly grid mutations."""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Mapping

from config import CONFIG
from domain import days
from domain.errors import MalformedInputError
from domain.models import LeaveRequest, ScheduleSlot
from domain.schedule import ScheduleGrid, get_or_default, template_status
from domain.week_key import canonical_week_key, iter_days
from rules.balances import days_count

logger = logging.getLogger(__name__)


def submit_leave_request(record: Mapping[str, Any], *, today: date, config: Mapping | None = None) -> LeaveRequest:
    """Validate a new request from the agent-facing side and return it pending.

    Requests starting before *today* are rejected.
    """

    config = config or CONFIG
    request = LeaveRequest.from_record({**record, "status": "pending", "days_count": None})
    if request.start_date < today:
        raise MalformedInputError(f"Leave {request.id} starts in the past ({request.start_date.isoformat()})")
    request.days_count = days_count(
        request.start_date,
        request.end_date,
        exclude_sundays=bool(config.get("days_count_exclude_sundays", False)),
    )
    return request


def _blocks_partially(request: LeaveRequest, config: Mapping) -> bool:
    types = {t.casefold() for t in config.get("partial_day_leave_types", CONFIG["partial_day_leave_types"])}
    return request.has_time_range and request.leave_type.casefold() in types


def _mark_off(slot: ScheduleSlot, request: LeaveRequest, partial: bool) -> ScheduleSlot:
    if partial and not slot.overlaps(request.start_time, request.end_time):  # type: ignore[arg-type]
        return slot
    return slot.with_status(days.OFF)


def apply_approved_leave(
    agent_id: str,
    request: LeaveRequest,
    grids_by_week_key: Mapping[str, ScheduleGrid],
    config: Mapping | None = None,
) -> Dict[str, ScheduleGrid]:
    """Return a copy of *grids_by_week_key* with the leave days set to ``off``.

    Every week touched is fetched (or defaulted) once and replaced whole;
    the input mapping is left untouched. Applying the same request twice
    gives the same grids.
    """

    config = config or CONFIG
    if not request.is_approved:
        raise MalformedInputError(f"Leave {request.id} is {request.status}, only approved leave can be applied")
    partial = _blocks_partially(request, config)
    # Validates the range before anything is written.
    calendar_days = list(iter_days(request.start_date, request.end_date))

    updated: Dict[str, ScheduleGrid] = dict(grids_by_week_key)
    touched: Dict[str, ScheduleGrid] = {}
    for day in calendar_days:
        name = days.day_name(day)
        if name == days.SUNDAY:
            continue
        week_key = canonical_week_key(agent_id, day)
        grid = touched.get(week_key)
        if grid is None:
            grid = get_or_default(grids_by_week_key, week_key).copy(week_key=week_key)
        touched[week_key] = grid.map_day(name, lambda slot: _mark_off(slot, request, partial))
        logger.debug("Leave %s: %s %s set off in %s", request.id, name, day.isoformat(), week_key)

    updated.update(touched)
    logger.info(
        "Applied %s leave %s for %s over %d week(s)",
        request.leave_type,
        request.id,
        agent_id,
        len(touched),
    )
    return updated


def cancel_leave(
    agent_id: str,
    request: LeaveRequest,
    grids_by_week_key: Mapping[str, ScheduleGrid],
    config: Mapping | None = None,
) -> Dict[str, ScheduleGrid]:
    """Put the ``off`` slots of the leave's days back to their template status.

    Slots outside the standard template go back to ``working``. Weeks
    without a recorded grid are skipped rather than created.
    """

    config = config or CONFIG
    partial = _blocks_partially(request, config)
    calendar_days = list(iter_days(request.start_date, request.end_date))

    def restore(slot: ScheduleSlot) -> ScheduleSlot:
        if slot.status != days.OFF:
            return slot
        if partial and not slot.overlaps(request.start_time, request.end_time):  # type: ignore[arg-type]
            return slot
        return slot.with_status(template_status(slot.day, slot.segment) or days.WORKING)

    updated: Dict[str, ScheduleGrid] = dict(grids_by_week_key)
    touched: Dict[str, ScheduleGrid] = {}
    for day in calendar_days:
        name = days.day_name(day)
        week_key = canonical_week_key(agent_id, day)
        grid = touched.get(week_key)
        if grid is None:
            grid = grids_by_week_key.get(week_key)
        if name == days.SUNDAY or grid is None:
            continue
        touched[week_key] = grid.map_day(name, restore)

    updated.update(touched)
    logger.info("Cancelled leave %s for %s over %d week(s)", request.id, agent_id, len(touched))
    return updated


__all__ = ["apply_approved_leave", "cancel_leave", "submit_leave_request"]
