"""Push pending local edits to the device."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

from core.capabilities import DEFAULT_STATE, CapabilityRegistry, CapabilityState, DataType
from core.device import DeviceManager
from core.logging import get_logger

from .status import StatusStateMachine
from .store import CapabilityStateStore
from .telemetry import TelemetryEventKind, TelemetryLogger

__all__ = ["Committer"]


class Committer:
    """Execute user-initiated applies and resets as single device transactions."""

    def __init__(
        self,
        device: DeviceManager,
        registry: CapabilityRegistry,
        store: CapabilityStateStore,
        status: StatusStateMachine,
        lock: asyncio.Lock,
        telemetry: TelemetryLogger,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._device = device
        self._registry = registry
        self._store = store
        self._status = status
        self._lock = lock
        self._telemetry = telemetry
        self._log = logger or get_logger("engine.committer")

    async def apply(self) -> bool:
        """Push every pending edit; return ``True`` when the device accepted them.

        On failure the pending edits and local values are left untouched so a
        later call retries the same transaction.
        """

        self._telemetry.log(TelemetryEventKind.EMULATOR_BOUND)
        async with self._lock:
            self._status.begin_sync()
            pending = self._store.pending
            pushed: Dict[DataType, CapabilityState] = {
                data_type: self._store.entry(data_type).capability_state
                for data_type in self._registry.ids
                if data_type in pending
            }
            if not pushed:
                self._log.debug("apply skipped; nothing pending")
                return self._succeed("apply")

            enabled = {data_type: state.enabled for data_type, state in pushed.items()}
            overrides = {
                data_type: state.override_value
                for data_type, state in pushed.items()
                if self._registry.get(data_type).overridable
            }
            try:
                await self._device.set_capabilities(enabled)
                if overrides:
                    await self._device.set_overrides(overrides)
            except Exception as exc:
                return self._fail("apply", exc)

            synced = self._store.acknowledge(pushed)
            self._log.info("apply status=ok pushed=%d synced=%d", len(pushed), len(synced))
            return self._succeed("apply")

    async def reset(self) -> bool:
        """Restore the device defaults and confirm them for every capability.

        Callers stage the default state locally before invoking this.
        """

        self._telemetry.log(TelemetryEventKind.EMULATOR_BOUND)
        async with self._lock:
            self._status.begin_sync()
            try:
                await self._device.clear_overrides()
            except Exception as exc:
                return self._fail("reset", exc)

            self._store.acknowledge({data_type: DEFAULT_STATE for data_type in self._registry.ids})
            self._log.info("reset status=ok")
            return self._succeed("reset")

    # ------------------------------------------------------------------
    def _succeed(self, source: str) -> bool:
        self._status.record_success(source)
        self._telemetry.log(TelemetryEventKind.APPLY_CHANGES_SUCCESS)
        return True

    def _fail(self, source: str, exc: Exception) -> bool:
        self._log.warning(
            "%s status=failed pending=%d error=%s", source, len(self._store.pending), exc
        )
        self._status.record_failure(source)
        self._telemetry.log(TelemetryEventKind.APPLY_CHANGES_FAILURE)
        return False
