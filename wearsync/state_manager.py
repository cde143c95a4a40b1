"""Public facade of the capability synchronization engine."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from enum import Enum
from typing import TYPE_CHECKING, FrozenSet, List, Optional, Union

from core.capabilities import (
    Capability,
    CapabilityEntry,
    CapabilityRegistry,
    CapabilityState,
    DataType,
)
from core.device import DeviceManager, EventTrigger
from core.logging import get_logger
from core.observable import StateCell

from .committer import Committer
from .poller import Poller
from .status import Status, StatusStateMachine
from .store import CapabilityStateStore
from .telemetry import TelemetryLogger, TelemetrySink

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .config import EngineConfig

__all__ = [
    "CapabilityNotOverridableError",
    "EngineClosedError",
    "Preset",
    "StateManager",
]

CapabilityRef = Union[Capability, DataType]


class Preset(str, Enum):
    ALL = "ALL"
    STANDARD = "STANDARD"
    CUSTOM = "CUSTOM"


class CapabilityNotOverridableError(ValueError):
    """Raised when an override value is written to a non-overridable capability."""


class EngineClosedError(RuntimeError):
    """Raised when a closed :class:`StateManager` is used."""


class StateManager:
    """Keep a local, editable view of device capabilities in sync with the device.

    Edits are staged optimistically and pushed with :meth:`apply_changes`.
    While periodic updates run, out-of-band device changes are merged into
    entries that carry no pending edit. Device failures never raise from this
    API; they surface through :attr:`status` instead.

    Usage::

        async with StateManager(device, telemetry.append, poll_interval_s=1.0) as manager:
            manager.set_capability_enabled(capability, False)
            await manager.apply_changes()
    """

    def __init__(
        self,
        device_manager: DeviceManager,
        telemetry: Optional[TelemetrySink] = None,
        poll_interval_s: float = 5.0,
        *,
        registry: Optional[CapabilityRegistry] = None,
        run_periodic_updates: bool = True,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._device = device_manager
        self._log = logger or get_logger("engine.state_manager")
        self._registry = registry or _registry_for(device_manager)
        if isinstance(telemetry, TelemetryLogger):
            self._telemetry = telemetry
        else:
            self._telemetry = TelemetryLogger(telemetry)

        self._lock = asyncio.Lock()
        self._store = CapabilityStateStore(self._registry.ids)
        self._status = StatusStateMachine()
        self._preset: StateCell[Preset] = StateCell(Preset.CUSTOM, name="preset")
        self._ongoing_exercise: StateCell[bool] = StateCell(False, name="ongoing_exercise")
        self._poller = Poller(
            device_manager,
            self._store,
            self._status,
            self._lock,
            self._ongoing_exercise,
            interval_s=poll_interval_s,
            enabled=run_periodic_updates,
        )
        self._committer = Committer(
            device_manager,
            self._registry,
            self._store,
            self._status,
            self._lock,
            self._telemetry,
        )
        self._started = False
        self._closed = False

    @classmethod
    def from_config(
        cls,
        device_manager: DeviceManager,
        config: "EngineConfig",
        telemetry: Optional[TelemetrySink] = None,
        *,
        registry: Optional[CapabilityRegistry] = None,
    ) -> "StateManager":
        return cls(
            device_manager,
            telemetry,
            config.poll_interval_s,
            registry=registry,
            run_periodic_updates=config.run_periodic_updates,
        )

    # ------------------------------------------------------------------
    # lifecycle
    async def start(self) -> "StateManager":
        """Seed the entries from the device and launch periodic updates."""

        self._ensure_open()
        if self._started:
            return self
        self._started = True
        self._status.begin_sync()
        if not await self._poller.tick():
            self._log.warning("initial load failed; starting from defaults")
        self._poller.attach()
        return self

    async def close(self) -> None:
        """Stop periodic updates; later calls raise :class:`EngineClosedError`."""

        if self._closed:
            return
        self._closed = True
        await self._poller.close()
        self._log.info("state manager closed")

    async def __aenter__(self) -> "StateManager":
        return await self.start()

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # queries
    @property
    def capabilities_list(self) -> List[Capability]:
        return list(self._registry.capabilities)

    @property
    def registry(self) -> CapabilityRegistry:
        return self._registry

    def get_state(self, capability: CapabilityRef) -> StateCell[CapabilityEntry]:
        return self._store.cell(self._resolve(capability).data_type)

    @property
    def preset(self) -> StateCell[Preset]:
        return self._preset

    @property
    def status(self) -> StateCell[Status]:
        return self._status.cell

    @property
    def ongoing_exercise(self) -> StateCell[bool]:
        return self._ongoing_exercise

    @property
    def pending(self) -> FrozenSet[DataType]:
        """Ids with local edits the device has not acknowledged yet."""

        return self._store.pending

    @property
    def run_periodic_updates(self) -> bool:
        return self._poller.enabled

    @run_periodic_updates.setter
    def run_periodic_updates(self, value: bool) -> None:
        self._poller.enabled = value

    # ------------------------------------------------------------------
    # local edits
    def set_capability_enabled(self, capability: CapabilityRef, enabled: bool) -> None:
        self._ensure_open()
        data_type = self._resolve(capability).data_type
        current = self._store.entry(data_type).capability_state
        self._store.stage(data_type, replace(current, enabled=bool(enabled)))

    def set_override_value(self, capability: CapabilityRef, value: Optional[float]) -> None:
        """Stage an override value; ``None`` clears it.

        The capability must be overridable when *value* is not ``None``,
        otherwise :class:`CapabilityNotOverridableError` is raised.
        """

        self._ensure_open()
        resolved = self._resolve(capability)
        if value is not None and not resolved.overridable:
            raise CapabilityNotOverridableError(
                f"capability {resolved.data_type.value} does not accept override values"
            )
        current = self._store.entry(resolved.data_type).capability_state
        override = None if value is None else float(value)
        self._store.stage(resolved.data_type, replace(current, override_value=override))

    def set_preset(self, preset: Union[Preset, str]) -> None:
        """Select *preset*; ``ALL`` and ``STANDARD`` restage every capability."""

        self._ensure_open()
        preset = Preset(preset)
        self._preset.set(preset)
        if preset is Preset.CUSTOM:
            return
        for capability in self._registry:
            enabled = preset is Preset.ALL or capability.is_standard
            self._store.stage(capability.data_type, CapabilityState(enabled=enabled, override_value=None))
        self._log.info("preset %s staged for %d capabilities", preset.value, len(self._registry))

    # ------------------------------------------------------------------
    # device operations
    async def apply_changes(self) -> bool:
        """Push pending edits; returns ``True`` when the device accepted them."""

        self._ensure_open()
        return await self._committer.apply()

    async def reset(self) -> bool:
        """Return to the ``ALL`` preset without overrides, on the device too."""

        self._ensure_open()
        self.set_preset(Preset.ALL)
        return await self._committer.reset()

    async def force_update_state(self) -> bool:
        """Run one reconciliation tick now, independent of the periodic timer."""

        self._ensure_open()
        return await self._poller.tick()

    async def trigger_event(self, trigger: EventTrigger) -> None:
        self._ensure_open()
        async with self._lock:
            try:
                await self._device.trigger_event(trigger)
            except Exception as exc:
                self._log.warning("trigger key=%s status=failed error=%s", trigger.key, exc)
                self._status.record_failure("trigger")
                return
            self._log.info("trigger key=%s status=ok", trigger.key)
            self._status.record_success("trigger")

    async def is_whs_version_supported(self) -> bool:
        """Ask the device whether its health services version is supported.

        Any failure is reported as ``False``.
        """

        self._ensure_open()
        async with self._lock:
            try:
                supported = await self._device.is_version_supported()
            except Exception as exc:
                self._log.warning("version check status=failed error=%s", exc)
                self._status.record_failure("version")
                return False
            self._status.record_success("version")
            return bool(supported)

    # ------------------------------------------------------------------
    def _resolve(self, capability: CapabilityRef) -> Capability:
        data_type = capability.data_type if isinstance(capability, Capability) else DataType(capability)
        return self._registry.get(data_type)

    def _ensure_open(self) -> None:
        if self._closed:
            raise EngineClosedError("state manager is closed")


def _registry_for(device_manager: DeviceManager) -> CapabilityRegistry:
    capabilities = getattr(device_manager, "capabilities", None)
    if capabilities:
        return CapabilityRegistry(capabilities)
    return CapabilityRegistry.default()
