"""Exceptions raised by the planning engine."""
from __future__ import annotations


class PlanningError(Exception):
    """Base class for planning engine errors."""


class MalformedInputError(PlanningError, ValueError):
    """Raised before any mutation when dates, times or grids are invalid."""


class RemoteStoreError(PlanningError):
    """Raised when the durable store cannot be read or written.

    The local cache stays valid when this is raised; retrying is left to the
    caller.
    """

    def __init__(self, message: str, *, week_key: str | None = None) -> None:
        super().__init__(message)
        self.week_key = week_key


__all__ = ["PlanningError", "MalformedInputError", "RemoteStoreError"]
