"""Contract between the synchronization engine and a device session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Protocol

from .capabilities import CapabilityState, DataType

__all__ = ["DeviceConnectionError", "DeviceManager", "EventTrigger"]


class DeviceConnectionError(RuntimeError):
    """Raised by device managers when the device cannot be reached."""


@dataclass(frozen=True, slots=True)
class EventTrigger:
    """Fire-and-forget signal forwarded to the device (e.g. a fall event)."""

    key: str
    label: str


class DeviceManager(Protocol):
    """Minimal asynchronous surface the engine needs from a device session.

    Every coroutine may raise (typically :class:`DeviceConnectionError`) when
    the device is unreachable.
    """

    async def load_current_capability_states(self) -> Mapping[DataType, CapabilityState]: ...

    async def set_capabilities(self, capabilities: Mapping[DataType, bool]) -> None: ...

    async def set_overrides(self, overrides: Mapping[DataType, Optional[float]]) -> None: ...

    async def clear_overrides(self) -> None:
        """Restore the device defaults: every capability enabled, no overrides."""
        ...

    async def is_ongoing_exercise(self) -> bool: ...

    async def trigger_event(self, trigger: EventTrigger) -> None: ...

    async def is_version_supported(self) -> bool: ...
