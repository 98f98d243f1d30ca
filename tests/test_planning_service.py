import asyncio
from datetime import date

import pytest

from adapters.repository import AsyncPlanningRepository, PlanningRepository
from domain import days
from domain.models import Agent, LeaveRequest
from domain.schedule import default_grid, set_slot
from rules.balances import RTT
from services.planning_service import PlanningService, confirm_all
from services.reconciliation import ReconciliationStore


@pytest.fixture()
def repo(tmp_path):
    return PlanningRepository(tmp_path / "planning.db")


def make_service(repo):
    return PlanningService(ReconciliationStore(AsyncPlanningRepository(repo)))


def test_edit_slot_persists_week(repo):
    service = make_service(repo)

    async def scenario():
        receipt = service.edit_slot("a1", date(2025, 3, 5), "wednesday", "afternoon", days.OFF)
        return await confirm_all([receipt])

    assert asyncio.run(scenario()) == []
    stored = repo.fetch_week("a1", "a1_2025-03-03")
    assert stored.slot("wednesday", "afternoon").status == days.OFF
    assert service.is_recorded("a1", date(2025, 3, 9))
    assert not service.is_recorded("a1", date(2025, 3, 10))


def test_apply_leave_saves_only_touched_weeks(repo):
    service = make_service(repo)
    request = LeaveRequest(id="l1", leave_type="CA", start_date="2025-03-07", end_date="2025-03-10", status="approved")

    async def scenario():
        await confirm_all([service.save_week("a1", date(2025, 2, 24), default_grid())])
        receipts = service.apply_leave("a1", request)
        await confirm_all(receipts)
        return [receipt.week_key for receipt in receipts]

    assert asyncio.run(scenario()) == ["a1_2025-03-03", "a1_2025-03-10"]
    assert sorted(repo.fetch_agent("a1")) == ["a1_2025-02-24", "a1_2025-03-03", "a1_2025-03-10"]


def test_balances_stay_the_same_once_leave_is_applied(repo):
    service = make_service(repo)
    agent = Agent(id="a1", weekly_hours=38, role="medecin")
    requests = [
        LeaveRequest(id="r1", leave_type="RTT", start_date="2025-03-04", end_date="2025-03-04", status="approved"),
        LeaveRequest(id="r2", leave_type="RTT", start_date="2025-03-08", end_date="2025-03-08", status="approved"),
        LeaveRequest(id="r3", leave_type="RTT", start_date="2025-03-11", end_date="2025-03-11"),
    ]
    assert service.balances(agent, requests)[RTT].used == 13

    async def scenario():
        for request in requests[:2]:
            await confirm_all(service.apply_leave("a1", request))

    asyncio.run(scenario())
    assert service.is_recorded("a1", date(2025, 3, 4))
    assert service.balances(agent, requests)[RTT].used == 13
    assert service.balances(agent, requests)[RTT].remaining == 113


def test_edited_day_uses_its_own_hours(repo):
    service = make_service(repo)
    agent = Agent(id="a1", weekly_hours=38)
    request = LeaveRequest(id="r1", leave_type="RTT", start_date="2025-03-05", end_date="2025-03-05", status="approved")

    async def scenario():
        await confirm_all([service.edit_slot("a1", date(2025, 3, 5), "wednesday", "afternoon", days.WORKING, "13:00", "14:00")])

    asyncio.run(scenario())
    assert service.balances(agent, [request])[RTT].used == 5



def test_refresh_reports_remote_failure(repo, tmp_path):
    service = make_service(repo)
    repo.path = tmp_path / "gone" / "planning.db"

    async def scenario():
        return await service.refresh("a1")

    error = asyncio.run(scenario())
    assert error is not None
    assert service.grids("a1") == {}


def test_repeat_weekly_then_is_repeated(repo):
    service = make_service(repo)
    template = set_slot(default_grid(), "saturday", "morning", days.OFF)

    async def scenario():
        return await confirm_all(service.repeat_weekly("a1", template, date(2025, 1, 1), 2025))

    assert asyncio.run(scenario()) == []
    assert service.is_repeated("a1", 2025)
    assert len(repo.fetch_agent("a1")) == 52
