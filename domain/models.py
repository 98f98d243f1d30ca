"""Domain dataclasses for staff planning."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Dict, Mapping, Optional

from . import days
from .errors import MalformedInputError
from .week_key import parse_date, span_days

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"
LEAVE_STATUSES = (PENDING, APPROVED, REJECTED)

# Spellings used by the leave-request collaborator.
_STATUS_ALIASES = {
    "en_attente": PENDING,
    "approuve": APPROVED,
    "approuvé": APPROVED,
    "refuse": REJECTED,
    "refusé": REJECTED,
}


def clock_minutes(value: str) -> int:
    """Return minutes since midnight for an ``HH:MM`` clock time."""

    parts = str(value).strip().split(":")
    if len(parts) < 2 or not all(part.isdigit() for part in parts[:2]):
        raise MalformedInputError(f"Invalid clock time: {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if hours > 24 or minutes > 59 or (hours == 24 and minutes):
        raise MalformedInputError(f"Invalid clock time: {value!r}")
    return hours * 60 + minutes


def normalize_status(value: str) -> str:
    status = str(value or PENDING).strip().lower()
    status = _STATUS_ALIASES.get(status, status)
    if status not in LEAVE_STATUSES:
        raise MalformedInputError(f"Unknown leave status: {value!r}")
    return status


@dataclass(frozen=True)
class ScheduleSlot:
    day: str
    segment: str
    status: str
    start: Optional[str] = None
    end: Optional[str] = None

    def __post_init__(self) -> None:
        if self.segment not in days.segments_for(self.day):
            raise MalformedInputError(f"{self.day} has no {self.segment!r} segment")
        if self.status not in days.STATUSES:
            raise MalformedInputError(f"Unknown slot status: {self.status!r}")
        for value in (self.start, self.end):
            if value is not None:
                clock_minutes(value)

    @property
    def key(self) -> tuple[str, str]:
        return self.day, self.segment

    @property
    def is_timed(self) -> bool:
        return bool(self.start) and bool(self.end)

    def minutes(self) -> int:
        if not self.is_timed:
            return 0
        return max(0, clock_minutes(self.end) - clock_minutes(self.start))  # type: ignore[arg-type]

    def overlaps(self, start: str, end: str) -> bool:
        if not self.is_timed:
            return False
        return clock_minutes(self.start) < clock_minutes(end) and clock_minutes(self.end) > clock_minutes(start)  # type: ignore[arg-type]

    def with_status(self, status: str) -> "ScheduleSlot":
        return replace(self, status=status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            "segment": self.segment,
            "status": self.status,
            "start": self.start,
            "end": self.end,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ScheduleSlot":
        try:
            return cls(
                day=str(payload["day"]).lower(),
                segment=str(payload["segment"]).lower(),
                status=str(payload["status"]).lower(),
                start=payload.get("start") or None,
                end=payload.get("end") or None,
            )
        except KeyError as exc:
            raise MalformedInputError(f"Slot is missing field {exc.args[0]!r}") from exc


@dataclass
class Agent:
    id: str
    name: str = ""
    weekly_hours: float = 35
    role: str = ""
    # Recorded overrides; None falls back to the derived entitlement.
    rtt_hours: Optional[float] = None
    annual_leave_days: Optional[float] = None
    formation_hours: Optional[float] = None
    sick_child_days: Optional[float] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any], default_weekly_hours: float = 35) -> "Agent":
        """Build an agent from a collaborator record (snake or camel case)."""

        def pick(*names: str) -> Any:
            for name in names:
                if record.get(name) is not None:
                    return record[name]
            return None

        weekly_hours = pick("weekly_hours", "weeklyHours", "work_hours_per_week")
        return cls(
            id=str(record["id"]),
            name=str(pick("name", "full_name") or ""),
            weekly_hours=float(weekly_hours if weekly_hours is not None else default_weekly_hours),
            role=str(pick("role") or ""),
            rtt_hours=_optional_float(pick("rtt_hours", "rttDays")),
            annual_leave_days=_optional_float(pick("annual_leave_days", "congésAnnuel")),
            formation_hours=_optional_float(pick("formation_hours", "heuresFormation")),
            sick_child_days=_optional_float(pick("sick_child_days", "enfantMalade")),
        )


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


@dataclass
class LeaveRequest:
    id: str
    leave_type: str
    start_date: date
    end_date: date
    status: str = PENDING
    agent_id: Optional[str] = None
    employee_name: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    days_count: Optional[int] = None
    reason: str = ""
    comment: str = ""

    def __post_init__(self) -> None:
        self.start_date = parse_date(self.start_date)
        self.end_date = parse_date(self.end_date)
        self.status = normalize_status(self.status)
        if self.end_date < self.start_date:
            raise MalformedInputError(
                f"Leave {self.id}: end date {self.end_date.isoformat()} precedes start date {self.start_date.isoformat()}"
            )
        if bool(self.start_time) != bool(self.end_time):
            raise MalformedInputError(f"Leave {self.id}: time range needs both a start and an end")
        if self.start_time and clock_minutes(self.end_time) <= clock_minutes(self.start_time):  # type: ignore[arg-type]
            raise MalformedInputError(f"Leave {self.id}: time range ends before it starts")
        if self.days_count is None:
            self.days_count = span_days(self.start_date, self.end_date)

    @property
    def agent_ref(self) -> str:
        return self.agent_id or self.employee_name or ""

    @property
    def is_approved(self) -> bool:
        return self.status == APPROVED

    @property
    def has_time_range(self) -> bool:
        return bool(self.start_time and self.end_time)

    def decide(self, status: str, comment: str = "") -> "LeaveRequest":
        """Move a pending request to its terminal state."""

        target = normalize_status(status)
        if self.status != PENDING:
            raise MalformedInputError(f"Leave {self.id} is already {self.status}")
        if target == PENDING:
            raise MalformedInputError(f"Leave {self.id} can only be approved or rejected")
        return replace(self, status=target, comment=comment or self.comment)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "LeaveRequest":
        try:
            return cls(
                id=str(record.get("id", "")),
                leave_type=str(record.get("leave_type") or record["type"]),
                start_date=record["start_date"],
                end_date=record["end_date"],
                status=record.get("status", PENDING),
                agent_id=record.get("agent_id"),
                employee_name=record.get("employee_name"),
                start_time=record.get("start_time") or None,
                end_time=record.get("end_time") or None,
                days_count=record.get("days_count"),
                reason=record.get("reason") or "",
                comment=record.get("comment") or record.get("comments") or "",
            )
        except KeyError as exc:
            raise MalformedInputError(f"Leave request is missing field {exc.args[0]!r}") from exc

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "leave_type": self.leave_type,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "status": self.status,
            "agent_id": self.agent_id,
            "employee_name": self.employee_name,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "days_count": self.days_count,
            "reason": self.reason,
            "comment": self.comment,
        }


@dataclass(frozen=True)
class Balance:
    total: float
    used: float = 0
    unit: str = field(default="hours", compare=False)

    @property
    def remaining(self) -> float:
        return max(0, self.total - self.used)

    def as_dict(self) -> Dict[str, Any]:
        return {"total": self.total, "used": self.used, "remaining": self.remaining, "unit": self.unit}


__all__ = [
    "PENDING",
    "APPROVED",
    "REJECTED",
    "LEAVE_STATUSES",
    "Agent",
    "Balance",
    "LeaveRequest",
    "ScheduleSlot",
    "clock_minutes",
    "normalize_status",
]
