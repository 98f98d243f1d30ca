from datetime import date

import pytest

from adapters.config_loader import merge_config
from domain import days
from domain.errors import MalformedInputError
from domain.models import LeaveRequest
from domain.schedule import default_grid, set_slot
from rules.leave import apply_approved_leave, cancel_leave, submit_leave_request

WEEK = "a1_2025-03-03"
NEXT_WEEK = "a1_2025-03-10"


def approved(leave_type, start, end, **extra):
    return LeaveRequest(id="l1", leave_type=leave_type, start_date=start, end_date=end, status="approved", **extra)


def statuses(grid, day):
    return [slot.status for slot in grid.slots_on(day)]


def test_three_day_leave_marks_only_those_days_off():
    result = apply_approved_leave("a1", approved("CA", "2025-03-03", "2025-03-05"), {})
    grid = result[WEEK]
    for day in ("monday", "tuesday", "wednesday"):
        assert statuses(grid, day) == [days.OFF] * 3
    reference = default_grid()
    for day in ("thursday", "friday", "saturday"):
        assert grid.slots_on(day) == reference.slots_on(day)


def test_applying_twice_is_idempotent():
    request = approved("CA", "2025-03-03", "2025-03-05")
    once = apply_approved_leave("a1", request, {})
    twice = apply_approved_leave("a1", request, once)
    assert once == twice


def test_input_mapping_is_not_mutated():
    original = {WEEK: default_grid(WEEK)}
    apply_approved_leave("a1", approved("CA", "2025-03-03", "2025-03-03"), original)
    assert statuses(original[WEEK], "monday") == [days.WORKING, days.BREAK, days.WORKING]


def test_leave_spanning_two_weeks_touches_both():
    existing = set_slot(default_grid(NEXT_WEEK), "thursday", "morning", days.OFF)
    result = apply_approved_leave("a1", approved("CA", "2025-03-07", "2025-03-11"), {NEXT_WEEK: existing})
    assert set(result) == {WEEK, NEXT_WEEK}
    assert statuses(result[WEEK], "friday") == [days.OFF] * 3
    assert statuses(result[WEEK], "saturday") == [days.OFF]
    assert statuses(result[WEEK], "thursday") == [days.WORKING, days.BREAK, days.WORKING]
    assert statuses(result[NEXT_WEEK], "tuesday") == [days.OFF] * 3
    # Slots outside the leave keep their recorded state.
    assert result[NEXT_WEEK].slot("thursday", "morning").status == days.OFF
    assert result[NEXT_WEEK].slot("wednesday", "morning").status == days.WORKING


def test_sunday_only_leave_changes_nothing_visible():
    result = apply_approved_leave("a1", approved("CA", "2025-03-09", "2025-03-09"), {})
    assert result == {}


def test_rtt_time_range_blocks_overlapping_segments_only():
    request = approved("RTT", "2025-03-04", "2025-03-04", start_time="08:00", end_time="12:00")
    grid = apply_approved_leave("a1", request, {})[WEEK]
    assert statuses(grid, "tuesday") == [days.OFF, days.BREAK, days.WORKING]


def test_time_range_on_other_leave_types_blocks_whole_day():
    request = approved("CA", "2025-03-04", "2025-03-04", start_time="08:00", end_time="12:00")
    grid = apply_approved_leave("a1", request, {})[WEEK]
    assert statuses(grid, "tuesday") == [days.OFF] * 3


def test_partial_day_types_come_from_config():
    config = merge_config({"partial_day_leave_types": ["RTT", "CF"]})
    request = approved("CF", "2025-03-04", "2025-03-04", start_time="13:00", end_time="17:00")
    grid = apply_approved_leave("a1", request, {}, config)[WEEK]
    assert statuses(grid, "tuesday") == [days.WORKING, days.BREAK, days.OFF]


def test_only_approved_requests_can_be_applied():
    request = LeaveRequest(id="l1", leave_type="CA", start_date="2025-03-03", end_date="2025-03-03")
    with pytest.raises(MalformedInputError):
        apply_approved_leave("a1", request, {})


def test_reversed_range_is_rejected_before_any_change():
    with pytest.raises(MalformedInputError):
        approved("CA", "2025-03-05", "2025-03-03")


def test_cancel_restores_template_statuses():
    request = approved("CA", "2025-03-03", "2025-03-04")
    applied = apply_approved_leave("a1", request, {})
    restored = cancel_leave("a1", request, applied)
    assert restored[WEEK] == default_grid()


def test_cancel_skips_weeks_without_grid():
    request = approved("CA", "2025-03-07", "2025-03-11")
    assert cancel_leave("a1", request, {}) == {}


def test_submit_rejects_past_dates():
    record = {"id": "n1", "type": "CA", "start_date": "2025-03-03", "end_date": "2025-03-05"}
    with pytest.raises(MalformedInputError):
        submit_leave_request(record, today=date(2025, 3, 4))


def test_submit_returns_pending_request_with_day_count():
    record = {
        "id": "n1",
        "type": "CA",
        "start_date": "2025-03-03",
        "end_date": "2025-03-09",
        "status": "approved",
    }
    request = submit_leave_request(record, today=date(2025, 3, 1))
    assert request.status == "pending"
    assert request.days_count == 7
    config = merge_config({"days_count_exclude_sundays": True})
    assert submit_leave_request(record, today=date(2025, 3, 1), config=config).days_count == 6


def test_partial_day_types_ignore_case():
    request = approved("rtt", "2025-03-04", "2025-03-04", start_time="13:00", end_time="17:00")
    grid = apply_approved_leave("a1", request, {})[WEEK]
    assert statuses(grid, "tuesday") == [days.WORKING, days.BREAK, days.OFF]
