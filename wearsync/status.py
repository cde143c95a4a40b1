"""Engine-wide status tracking."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from core.logging import get_logger
from core.observable import StateCell

__all__ = ["Status", "StatusStateMachine"]


class Status(str, Enum):
    IDLE = "Idle"
    SYNCING = "Syncing"
    CONNECTION_LOST = "ConnectionLost"


class StatusStateMachine:
    """Drive :class:`Status` transitions from device call outcomes.

    ``SYNCING`` is only entered for commits and the initial load. Any
    successful device call returns the machine to ``IDLE``; any failure moves
    it to ``CONNECTION_LOST``.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._cell: StateCell[Status] = StateCell(Status.IDLE, name="status")
        self._log = logger or get_logger("engine.status")

    @property
    def cell(self) -> StateCell[Status]:
        return self._cell

    @property
    def current(self) -> Status:
        return self._cell.value

    def begin_sync(self) -> None:
        self._transition(Status.SYNCING, "sync")

    def record_success(self, source: str) -> None:
        self._transition(Status.IDLE, source)

    def record_failure(self, source: str) -> None:
        self._transition(Status.CONNECTION_LOST, source)

    def _transition(self, status: Status, source: str) -> None:
        previous = self._cell.value
        if self._cell.set(status):
            self._log.info("status %s -> %s source=%s", previous.value, status.value, source)
