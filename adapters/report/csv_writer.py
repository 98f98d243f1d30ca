"""CSV report helpers."""
from __future__ import annotations

import csv
from pathlib import Path
from typing import Mapping, TextIO

from domain.models import Agent, Balance


def write_balances(target: str | Path | TextIO, agent: Agent, balances: Mapping[str, Balance]) -> str | Path | TextIO:
    """Write one row per balance category for *agent*."""

    def _write(handle: TextIO) -> None:
        writer = csv.writer(handle)
        writer.writerow(["agent_id", "agent", "category", "unit", "total", "used", "remaining"])
        for category, balance in balances.items():
            writer.writerow([agent.id, agent.name, category, balance.unit, balance.total, balance.used, balance.remaining])

    if isinstance(target, (str, Path)):
        path = Path(target)
        with path.open("w", newline="", encoding="utf-8") as handle:
            _write(handle)
        return path
    _write(target)
    return target
