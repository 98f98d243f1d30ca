"""Local cache of weekly grids reconciled with the durable remote store.

Reads merge the remote snapshot into the cache, remote entries winning per
week key. Writes update the cache at once and push to the remote store in a
background task; the returned :class:`SaveReceipt` is the only way to learn
whether the remote write went through. Conflicts are resolved per whole grid,
never per slot.
"""
from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Protocol, Set, Tuple

from domain.errors import MalformedInputError, RemoteStoreError
from domain.schedule import ScheduleGrid, get_or_default
from domain.week_key import parse_week_key

logger = logging.getLogger(__name__)

PendingKey = Tuple[str, str]


class RemoteStore(Protocol):
    async def fetch_agent(self, agent_id: str) -> Dict[str, ScheduleGrid]:
        ...

    async def upsert(self, agent_id: str, week_key: str, grid: ScheduleGrid) -> None:
        ...


def merge(local: Mapping[str, ScheduleGrid], remote: Mapping[str, ScheduleGrid]) -> Dict[str, ScheduleGrid]:
    """Remote grids replace local ones key by key; local-only keys stay."""

    merged = dict(local)
    merged.update(remote)
    return merged


@dataclass
class SaveReceipt:
    agent_id: str
    week_key: str
    grid: ScheduleGrid
    task: "asyncio.Task[Optional[RemoteStoreError]]" = field(repr=False)

    @property
    def ok(self) -> bool:
        """The local cache was updated; always true once a receipt exists."""
        return True

    @property
    def settled(self) -> bool:
        return self.task.done()

    async def confirm(self) -> Optional[RemoteStoreError]:
        """Wait for the remote write and return its error, if any."""
        return await self.task


class ReconciliationStore:
    def __init__(self, remote: RemoteStore) -> None:
        self.remote = remote
        self._cache: Dict[str, Dict[str, ScheduleGrid]] = {}
        self._pending: Set[PendingKey] = set()
        self._latest: Dict[PendingKey, int] = {}
        self._inflight: Set[asyncio.Task] = set()
        self._sequence = itertools.count(1)

    # -- Reads --------------------------------------------------------------------
    def snapshot(self, agent_id: str) -> Dict[str, ScheduleGrid]:
        return dict(self._cache.get(agent_id, {}))

    def get(self, agent_id: str, week_key: str) -> Optional[ScheduleGrid]:
        return self._cache.get(agent_id, {}).get(week_key)

    def grid_for(self, agent_id: str, week_key: str) -> ScheduleGrid:
        return get_or_default(self._cache.get(agent_id, {}), week_key)

    async def load(self, agent_id: str) -> Dict[str, ScheduleGrid]:
        """Fetch the agent's grids remotely and fold them into the cache.

        On failure the cache is left as it was and :class:`RemoteStoreError`
        is raised.
        """

        try:
            remote_grids = await self.remote.fetch_agent(agent_id)
        except RemoteStoreError:
            logger.warning("Remote load failed for %s, keeping cached grids", agent_id)
            raise
        except (OSError, TimeoutError) as exc:
            logger.warning("Remote load failed for %s: %s", agent_id, exc)
            raise RemoteStoreError(f"Cannot load plannings of {agent_id}: {exc}") from exc

        local = self._cache.get(agent_id, {})
        merged = merge(local, remote_grids)
        self._cache[agent_id] = merged
        for week_key in remote_grids:
            self._pending.discard((agent_id, week_key))
        logger.info(
            "Loaded %d remote grid(s) for %s, %d local-only kept",
            len(remote_grids),
            agent_id,
            len(set(local) - set(remote_grids)),
        )
        return dict(merged)

    # -- Writes -------------------------------------------------------------------
    def save(self, agent_id: str, week_key: str, grid: ScheduleGrid) -> SaveReceipt:
        """Replace the cached grid and start the remote write without awaiting it.

        Must be called from a running event loop.
        """

        key_agent, _ = parse_week_key(week_key)
        if key_agent != agent_id:
            raise MalformedInputError(f"Week key {week_key!r} does not belong to {agent_id!r}")
        grid = grid.copy(week_key=week_key).validate()
        loop = asyncio.get_running_loop()

        self._cache.setdefault(agent_id, {})[week_key] = grid
        pending_key = (agent_id, week_key)
        sequence = next(self._sequence)
        self._latest[pending_key] = sequence
        self._pending.add(pending_key)

        task = loop.create_task(self._write(agent_id, week_key, grid, sequence))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return SaveReceipt(agent_id=agent_id, week_key=week_key, grid=grid, task=task)

    def save_all(self, agent_id: str, grids: Mapping[str, ScheduleGrid]) -> List[SaveReceipt]:
        """Save several weeks in ascending week order.

        Every grid is validated first so a bad one stops the batch before any
        week is written. There is no rollback once writes have started.
        """

        ordered = sorted(grids.items(), key=lambda item: parse_week_key(item[0])[1])
        for _, grid in ordered:
            grid.validate()
        return [self.save(agent_id, week_key, grid) for week_key, grid in ordered]

    async def _write(self, agent_id: str, week_key: str, grid: ScheduleGrid, sequence: int) -> Optional[RemoteStoreError]:
        pending_key = (agent_id, week_key)
        try:
            await self.remote.upsert(agent_id, week_key, grid)
        except RemoteStoreError as exc:
            error = exc
        except (OSError, TimeoutError) as exc:
            error = RemoteStoreError(f"Cannot write {week_key}: {exc}", week_key=week_key)
        else:
            if self._latest.get(pending_key) == sequence:
                self._pending.discard(pending_key)
            logger.debug("Remote write of %s confirmed", week_key)
            return None
        if error.week_key is None:
            error.week_key = week_key
        logger.warning("Remote write of %s failed, local copy kept: %s", week_key, error)
        return error

    async def flush(self) -> List[RemoteStoreError]:
        """Await every outstanding remote write and return the failures."""

        results = await asyncio.gather(*list(self._inflight))
        return [error for error in results if error is not None]

    def pending_keys(self, agent_id: Optional[str] = None) -> List[str]:
        """Week keys whose latest local version is not known to be remote."""

        return sorted(key for owner, key in self._pending if agent_id is None or owner == agent_id)


__all__ = ["ReconciliationStore", "RemoteStore", "SaveReceipt", "merge"]
