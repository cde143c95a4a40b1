"""In-memory device used by the test-suite and the command-line demo."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List, Mapping, Optional

from core.capabilities import DEFAULT_CAPABILITIES, Capability, CapabilityState, DataType
from core.device import DeviceConnectionError, EventTrigger
from core.logging import get_logger

__all__ = ["FakeDeviceManager"]


class FakeDeviceManager:
    """Device manager backed by dictionaries instead of a real transport.

    Only capabilities that were written at least once are reported by
    :meth:`load_current_capability_states`, mirroring a device content
    provider that stores explicit values only.
    """

    def __init__(
        self,
        capabilities: Iterable[Capability] = DEFAULT_CAPABILITIES,
        *,
        latency_s: float = 0.0,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.capabilities: List[Capability] = list(capabilities)
        self.latency_s = latency_s
        self.fail_state = False
        self.active_exercise = False
        self.version_supported = True
        self.clear_overrides_invocations = 0
        self.triggered_events: List[EventTrigger] = []
        self.calls: List[str] = []
        self._enabled: Dict[DataType, bool] = {}
        self._overrides: Dict[DataType, Optional[float]] = {}
        self._log = logger or get_logger("device.fake")

    # ------------------------------------------------------------------
    async def load_current_capability_states(self) -> Dict[DataType, CapabilityState]:
        await self._call("load_current_capability_states")
        return self.snapshot()

    async def set_capabilities(self, capabilities: Mapping[DataType, bool]) -> None:
        await self._call("set_capabilities")
        self.write_capabilities(capabilities)

    async def set_overrides(self, overrides: Mapping[DataType, Optional[float]]) -> None:
        await self._call("set_overrides")
        self.write_overrides(overrides)

    async def clear_overrides(self) -> None:
        await self._call("clear_overrides")
        self.clear_overrides_invocations += 1
        self.clear_content_provider()

    async def is_ongoing_exercise(self) -> bool:
        await self._call("is_ongoing_exercise")
        return self.active_exercise

    async def trigger_event(self, trigger: EventTrigger) -> None:
        await self._call("trigger_event")
        self.triggered_events.append(trigger)

    async def is_version_supported(self) -> bool:
        await self._call("is_version_supported")
        return self.version_supported

    # ------------------------------------------------------------------
    # direct manipulation, simulating changes made on the device itself
    def snapshot(self) -> Dict[DataType, CapabilityState]:
        reported = set(self._enabled) | set(self._overrides)
        return {
            data_type: CapabilityState(
                enabled=self._enabled.get(data_type, True),
                override_value=self._overrides.get(data_type),
            )
            for data_type in reported
        }

    def write_capabilities(self, capabilities: Mapping[DataType, bool]) -> None:
        self._enabled.update({data_type: bool(flag) for data_type, flag in capabilities.items()})

    def write_overrides(self, overrides: Mapping[DataType, Optional[float]]) -> None:
        self._overrides.update(overrides)

    def clear_content_provider(self) -> None:
        self._enabled.clear()
        self._overrides.clear()

    async def _call(self, name: str) -> None:
        self.calls.append(name)
        if self.latency_s:
            await asyncio.sleep(self.latency_s)
        if self.fail_state:
            self._log.debug("fake device call=%s status=failed", name)
            raise DeviceConnectionError(f"{name}: device unreachable")
