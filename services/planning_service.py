"""High level orchestration of schedule edits, leave and balances."""
from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from config import CONFIG
from domain.errors import RemoteStoreError
from domain.models import Agent, Balance, LeaveRequest
from domain.schedule import ScheduleGrid, set_slot
from domain.week_key import canonical_week_key
from rules import balances, leave, propagation
from services.reconciliation import ReconciliationStore, SaveReceipt

logger = logging.getLogger(__name__)


class PlanningService:
    def __init__(self, store: ReconciliationStore, config: Mapping | None = None) -> None:
        self.store = store
        self.config = config or CONFIG

    # ------------------------------------------------------------------
    async def refresh(self, agent_id: str) -> Optional[RemoteStoreError]:
        """Pull the agent's remote grids; report a failure instead of raising."""
        try:
            await self.store.load(agent_id)
        except RemoteStoreError as exc:
            return exc
        return None

    def grids(self, agent_id: str) -> Dict[str, ScheduleGrid]:
        return self.store.snapshot(agent_id)

    def week(self, agent_id: str, day: date) -> Tuple[str, ScheduleGrid]:
        week_key = canonical_week_key(agent_id, day)
        return week_key, self.store.grid_for(agent_id, week_key)

    def is_recorded(self, agent_id: str, day: date) -> bool:
        return self.store.get(agent_id, canonical_week_key(agent_id, day)) is not None

    # ------------------------------------------------------------------
    def save_week(self, agent_id: str, day: date, grid: ScheduleGrid) -> SaveReceipt:
        week_key = canonical_week_key(agent_id, day)
        return self.store.save(agent_id, week_key, grid)

    def edit_slot(
        self,
        agent_id: str,
        day: date,
        day_name: str,
        segment: str,
        status: str,
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> SaveReceipt:
        week_key, grid = self.week(agent_id, day)
        return self.store.save(agent_id, week_key, set_slot(grid, day_name, segment, status, start, end))

    def apply_leave(self, agent_id: str, request: LeaveRequest) -> List[SaveReceipt]:
        before = self.store.snapshot(agent_id)
        updated = leave.apply_approved_leave(agent_id, request, before, self.config)
        return self.store.save_all(agent_id, _touched(before, updated))

    def cancel_leave(self, agent_id: str, request: LeaveRequest) -> List[SaveReceipt]:
        before = self.store.snapshot(agent_id)
        updated = leave.cancel_leave(agent_id, request, before, self.config)
        return self.store.save_all(agent_id, _touched(before, updated))

    def repeat_weekly(
        self,
        agent_id: str,
        template: ScheduleGrid,
        effective_from: date,
        target_year: int,
    ) -> List[SaveReceipt]:
        grids = propagation.propagate_weekly(agent_id, template, effective_from, target_year, self.config)
        return self.store.save_all(agent_id, grids)

    def is_repeated(self, agent_id: str, target_year: int) -> bool:
        return propagation.is_repeated(agent_id, self.store.snapshot(agent_id), target_year, self.config)

    # ------------------------------------------------------------------
    def balances(self, agent: Agent, requests: Iterable[LeaveRequest]) -> Dict[str, Balance]:
        approved = [request for request in requests if request.is_approved]
        return balances.leave_summary(agent, approved, self.store.snapshot(agent.id), self.config)


def _touched(before: Mapping[str, ScheduleGrid], updated: Mapping[str, ScheduleGrid]) -> Dict[str, ScheduleGrid]:
    return {key: grid for key, grid in updated.items() if before.get(key) is not grid}


async def confirm_all(receipts: Iterable[SaveReceipt]) -> List[RemoteStoreError]:
    errors: List[RemoteStoreError] = []
    for receipt in receipts:
        error = await receipt.confirm()
        if error is not None:
            errors.append(error)
    return errors


__all__ = ["PlanningService", "confirm_all"]
