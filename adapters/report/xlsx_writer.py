"""Excel report writer."""
from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Mapping

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill

from domain import days
from domain.schedule import ScheduleGrid
from services.statistics import hours_by_week

HEADER_FONT = Font(bold=True)
CENTER = Alignment(horizontal="center", vertical="center")
DEFAULTED_FILL = PatternFill(fill_type="solid", start_color="EEEEEE", end_color="EEEEEE")


def write_year(
    target: str | Path | BinaryIO,
    agent_id: str,
    grids: Mapping[str, ScheduleGrid],
    year: int,
    *,
    title: str | None = None,
) -> str | Path | BinaryIO:
    """One row per canonical week of *year*, worked hours per day.

    Weeks with no recorded grid show the default template, greyed out.
    """

    wb = Workbook()
    ws = wb.active
    ws.title = title or f"{year}"

    headers = ["Week", "Starts"] + [day.capitalize() for day in days.OPERATING_DAYS] + ["Total"]
    for col, label in enumerate(headers, start=1):
        cell = ws.cell(row=1, column=col, value=label)
        cell.font = HEADER_FONT
        cell.alignment = CENTER

    for row_idx, week in enumerate(hours_by_week(agent_id, grids, year), start=2):
        values = [week.week_key, week.monday.isoformat()]
        values += [week.by_day[day] for day in days.OPERATING_DAYS]
        values.append(week.total)
        for col, value in enumerate(values, start=1):
            cell = ws.cell(row=row_idx, column=col, value=value)
            if col > 2:
                cell.alignment = CENTER
            if not week.recorded:
                cell.fill = DEFAULTED_FILL

    if isinstance(target, (str, Path)):
        target = Path(target)
    wb.save(target)
    return target
