import io

from openpyxl import load_workbook

from adapters.report.csv_writer import write_balances
from adapters.report.xlsx_writer import write_year
from domain import days
from domain.models import Agent, Balance
from domain.schedule import default_grid, set_slot
from services.statistics import hours_by_week, worked_hours_by_day


def test_worked_hours_by_day():
    grid = set_slot(default_grid(), "monday", "afternoon", days.OFF)
    hours = worked_hours_by_day(grid)
    assert hours["monday"] == 4
    assert hours["tuesday"] == 8
    assert hours["saturday"] == 5


def test_hours_by_week_marks_recorded_weeks():
    grids = {"a1_2025-03-03": set_slot(default_grid(), "monday", "morning", days.OFF)}
    rows = hours_by_week("a1", grids, 2025)
    assert len(rows) == 52
    recorded = [row for row in rows if row.recorded]
    assert [row.week_key for row in recorded] == ["a1_2025-03-03"]
    assert recorded[0].total == 41
    assert rows[0].total == 45


def test_write_year_xlsx(tmp_path):
    path = write_year(tmp_path / "planning.xlsx", "a1", {}, 2025)
    sheet = load_workbook(path).active
    assert sheet.title == "2025"
    assert sheet.cell(row=1, column=1).value == "Week"
    assert sheet.cell(row=2, column=1).value == "a1_2024-12-30"
    assert sheet.cell(row=2, column=9).value == 45
    assert sheet.max_row == 53


def test_write_balances_csv():
    buffer = io.StringIO()
    write_balances(buffer, Agent(id="a1", name="Alice"), {"rtt": Balance(total=126, used=7)})
    lines = buffer.getvalue().splitlines()
    assert lines[0] == "agent_id,agent,category,unit,total,used,remaining"
    assert lines[1] == "a1,Alice,rtt,hours,126,7,119"
