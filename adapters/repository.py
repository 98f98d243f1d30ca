"""SQLite repository for storing weekly plannings."""
from __future__ import annotations

import asyncio
import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from domain.errors import RemoteStoreError
from domain.schedule import ScheduleGrid


class PlanningRepository:
    """Row store keyed by ``(agent_id, week)`` holding a JSON grid."""

    def __init__(self, path: str | Path = "planning.db") -> None:
        self.path = Path(path)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.path)

    def _ensure_schema(self) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS agent_plannings (
                        agent_id TEXT NOT NULL,
                        week TEXT NOT NULL,
                        planning TEXT NOT NULL,
                        updated_at TEXT NOT NULL,
                        PRIMARY KEY (agent_id, week)
                    )
                    """
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise RemoteStoreError(f"Cannot prepare planning store at {self.path}: {exc}") from exc

    def upsert(self, agent_id: str, week_key: str, grid: ScheduleGrid) -> str:
        updated_at = datetime.now(timezone.utc).isoformat()
        blob = json.dumps(grid.to_payload(), ensure_ascii=False)
        try:
            with self._connect() as conn:
                conn.execute(
                    "INSERT INTO agent_plannings(agent_id, week, planning, updated_at) VALUES (?, ?, ?, ?) "
                    "ON CONFLICT(agent_id, week) DO UPDATE SET planning=excluded.planning, updated_at=excluded.updated_at",
                    (agent_id, week_key, blob, updated_at),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise RemoteStoreError(f"Cannot write {week_key}: {exc}", week_key=week_key) from exc
        return updated_at

    def fetch_agent(self, agent_id: str) -> Dict[str, ScheduleGrid]:
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    "SELECT week, planning FROM agent_plannings WHERE agent_id = ? ORDER BY week",
                    (agent_id,),
                )
                rows = cursor.fetchall()
        except sqlite3.Error as exc:
            raise RemoteStoreError(f"Cannot read plannings of {agent_id}: {exc}") from exc
        return {
            week: ScheduleGrid.from_payload(json.loads(blob), week_key=week)
            for week, blob in rows
        }

    def fetch_week(self, agent_id: str, week_key: str) -> Optional[ScheduleGrid]:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT planning FROM agent_plannings WHERE agent_id = ? AND week = ?",
                    (agent_id, week_key),
                ).fetchone()
        except sqlite3.Error as exc:
            raise RemoteStoreError(f"Cannot read {week_key}: {exc}", week_key=week_key) from exc
        if row is None:
            return None
        return ScheduleGrid.from_payload(json.loads(row[0]), week_key=week_key)


class AsyncPlanningRepository:
    """Awaitable facade running :class:`PlanningRepository` calls off the event loop."""

    def __init__(self, repository: PlanningRepository) -> None:
        self.repository = repository

    async def fetch_agent(self, agent_id: str) -> Dict[str, ScheduleGrid]:
        return await asyncio.to_thread(self.repository.fetch_agent, agent_id)

    async def upsert(self, agent_id: str, week_key: str, grid: ScheduleGrid) -> None:
        await asyncio.to_thread(self.repository.upsert, agent_id, week_key, grid)
