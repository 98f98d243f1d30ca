"""Entitlements and leave balances replayed from approved requests."""
from __future__ import annotations

import math
import unicodedata
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from config import CONFIG
from domain import days
from domain.models import Agent, Balance, LeaveRequest, PENDING, clock_minutes
from domain.schedule import ScheduleGrid, keeps_template_times, round_half_hour, scheduled_hours_on
from domain.week_key import canonical_week_key, iter_days, span_days

RTT = "rtt"
FORMATION = "formation"
ANNUAL_LEAVE = "annual_leave"
SICK_CHILD = "sick_child"
CATEGORIES = (RTT, ANNUAL_LEAVE, FORMATION, SICK_CHILD)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _normalize_role(role: Optional[str]) -> str:
    decomposed = unicodedata.normalize("NFKD", role or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.strip().lower().replace(" ", "_").replace("-", "_")


def calculate_rtt(weekly_hours: float, config: Mapping | None = None) -> int:
    """RTT hours for a contract of *weekly_hours* (step function, no interpolation)."""
    config = config or CONFIG
    steps = config.get("entitlements", {}).get("rtt_steps", CONFIG["entitlements"]["rtt_steps"])
    for step in sorted(steps, key=lambda item: item["min_weekly_hours"], reverse=True):
        if weekly_hours >= step["min_weekly_hours"]:
            return int(step["hours"])
    return 0


def calculate_formation_hours(weekly_hours: float, role: Optional[str], config: Mapping | None = None) -> int:
    config = config or CONFIG
    entitlements = config.get("entitlements", {})
    roles = {_normalize_role(r) for r in entitlements.get("formation_roles", CONFIG["entitlements"]["formation_roles"])}
    if _normalize_role(role) not in roles:
        return 0
    ratio = float(entitlements.get("formation_ratio", CONFIG["entitlements"]["formation_ratio"]))
    return _round_half_up(weekly_hours * ratio)


def days_count(start: date, end: date, *, exclude_sundays: bool = False) -> int:
    """Inclusive day span recorded on a request when it is created."""
    return span_days(start, end, exclude_sundays=exclude_sundays)


def working_hours_for_day(
    agent_id: str,
    day: date,
    grids: Mapping[str, ScheduleGrid],
    *,
    within: Optional[Tuple[str, str]] = None,
) -> float:
    """Hours a calendar *day* is worth when it is taken as leave.

    A recorded day whose times were edited gives its actual scheduled
    hours. Otherwise, including a day still on template times, Monday-Friday
    count 7h, Saturday 6h and Sunday 0h.
    """

    name = days.day_name(day)
    grid = grids.get(canonical_week_key(agent_id, day))
    if grid is not None and not keeps_template_times(grid, name):
        return scheduled_hours_on(grid, name, within=within)
    default = days.DEFAULT_DAY_HOURS[name]
    if within is None or not default:
        return default
    span = round_half_hour((clock_minutes(within[1]) - clock_minutes(within[0])) / 60)
    return min(default, span)


def hours_for_request(agent_id: str, request: LeaveRequest, grids: Mapping[str, ScheduleGrid]) -> float:
    within = (request.start_time, request.end_time) if request.has_time_range else None
    return sum(
        working_hours_for_day(agent_id, day, grids, within=within)  # type: ignore[arg-type]
        for day in iter_days(request.start_date, request.end_date)
    )


def category_of(leave_type: str, config: Mapping | None = None) -> Optional[str]:
    config = config or CONFIG
    mapping = config.get("leave_categories", CONFIG["leave_categories"])
    if leave_type in mapping:
        return mapping[leave_type]
    folded = {key.casefold(): value for key, value in mapping.items()}
    return folded.get((leave_type or "").casefold())


def entitlement_totals(agent: Agent, config: Mapping | None = None) -> Dict[str, float]:
    """Derived entitlement per category, recorded overrides taking precedence."""
    config = config or CONFIG
    entitlements = config.get("entitlements", {})

    def pick(override: Optional[float], derived: float) -> float:
        return derived if override is None else override

    return {
        RTT: pick(agent.rtt_hours, calculate_rtt(agent.weekly_hours, config)),
        ANNUAL_LEAVE: pick(
            agent.annual_leave_days,
            entitlements.get("annual_leave_days", CONFIG["entitlements"]["annual_leave_days"]),
        ),
        FORMATION: pick(agent.formation_hours, calculate_formation_hours(agent.weekly_hours, agent.role, config)),
        SICK_CHILD: pick(
            agent.sick_child_days,
            entitlements.get("sick_child_days", CONFIG["entitlements"]["sick_child_days"]),
        ),
    }


def belongs_to(agent: Agent, request: LeaveRequest) -> bool:
    ref = request.agent_ref
    return not ref or ref in {agent.id, agent.name}


def leave_summary(
    agent: Agent,
    approved_requests: Iterable[LeaveRequest],
    grids: Mapping[str, ScheduleGrid],
    config: Mapping | None = None,
) -> Dict[str, Balance]:
    """Total/used/remaining per category for *agent*.

    Usage is recomputed from the request list every time, so the same
    approved request is never deducted twice. Over-usage floors the
    remaining balance at zero.
    """

    config = config or CONFIG
    hour_categories = set(config.get("hour_categories", CONFIG["hour_categories"]))
    used: Dict[str, float] = {category: 0 for category in CATEGORIES}
    for request in approved_requests:
        if not request.is_approved or not belongs_to(agent, request):
            continue
        category = category_of(request.leave_type, config)
        if category not in used:
            continue
        if category in hour_categories:
            used[category] += hours_for_request(agent.id, request, grids)
        else:
            used[category] += request.days_count or 0

    totals = entitlement_totals(agent, config)
    return {
        category: Balance(
            total=totals[category],
            used=used[category],
            unit="hours" if category in hour_categories else "days",
        )
        for category in CATEGORIES
    }


def day_totals(agent: Agent, requests: Iterable[LeaveRequest]) -> Dict[str, int]:
    """Days taken and days awaiting a decision, across all leave types."""
    totals = {"approved_days": 0, "pending_days": 0}
    for request in requests:
        if not belongs_to(agent, request):
            continue
        if request.is_approved:
            totals["approved_days"] += request.days_count or 0
        elif request.status == PENDING:
            totals["pending_days"] += request.days_count or 0
    return totals


__all__: List[str] = [
    "RTT",
    "FORMATION",
    "ANNUAL_LEAVE",
    "SICK_CHILD",
    "CATEGORIES",
    "calculate_rtt",
    "calculate_formation_hours",
    "category_of",
    "day_totals",
    "days_count",
    "entitlement_totals",
    "hours_for_request",
    "leave_summary",
    "working_hours_for_day",
]
