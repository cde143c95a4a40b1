"""Periodic reconciliation against the device."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

from core.device import DeviceManager
from core.logging import get_logger
from core.observable import StateCell

from .reconciler import device_view, reconcile
from .status import StatusStateMachine
from .store import CapabilityStateStore

__all__ = ["Poller"]


class Poller:
    """Issue reconciliation ticks on a fixed interval while enabled.

    Ticks share ``lock`` with every other outbound device call, so a poll
    never interleaves with an apply.
    """

    def __init__(
        self,
        device: DeviceManager,
        store: CapabilityStateStore,
        status: StatusStateMachine,
        lock: asyncio.Lock,
        ongoing_exercise: StateCell[bool],
        *,
        interval_s: float,
        enabled: bool = True,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._device = device
        self._store = store
        self._status = status
        self._lock = lock
        self._ongoing_exercise = ongoing_exercise
        self.interval_s = max(0.0, float(interval_s))
        self._enabled = bool(enabled)
        self._attached = False
        self._closed = False
        self._task: Optional[asyncio.Task[None]] = None
        self._ticks = 0
        self._log = logger or get_logger("engine.poller")

    # ------------------------------------------------------------------
    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        # outside a running loop the start is deferred to the next attach() or tick()
        value = bool(value)
        if value == self._enabled:
            return
        self._enabled = value
        self._log.info("periodic updates %s", "enabled" if value else "disabled")
        if value:
            self._maybe_start()
        else:
            self._cancel()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def ticks(self) -> int:
        return self._ticks

    def attach(self) -> None:
        """Allow the background loop to run; called once the engine started."""

        self._attached = True
        self._maybe_start()

    async def close(self) -> None:
        self._closed = True
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    # ------------------------------------------------------------------
    async def tick(self) -> bool:
        """Load the device state once and merge it into the store.

        Returns ``True`` when the device answered.
        """

        self._maybe_start()
        async with self._lock:
            self._ticks += 1
            try:
                snapshot = await self._device.load_current_capability_states()
                exercise = await self._device.is_ongoing_exercise()
            except Exception as exc:
                self._log.warning("poll status=failed error=%s", exc)
                self._status.record_failure("poll")
                return False

            current = self._store.entries()
            merged = reconcile(current, self._store.pending, snapshot)
            self._store.replace(merged, device_view(current.keys(), snapshot))
            self._ongoing_exercise.set(bool(exercise))
            self._status.record_success("poll")
            self._log.debug(
                "poll status=ok reported=%d pending=%d exercise=%s",
                len(snapshot),
                len(self._store.pending),
                bool(exercise),
            )
            return True

    # ------------------------------------------------------------------
    def _maybe_start(self) -> None:
        if not (self._attached and self._enabled) or self._closed or self.running:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._log.debug("no running event loop; poller start deferred")
            return
        self._task = loop.create_task(self._run(), name="capability-poller")

    def _cancel(self) -> None:
        task = self._task
        self._task = None
        if task is not None:
            task.cancel()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_s)
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                self._log.exception("poll tick crashed")
