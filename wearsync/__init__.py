"""Capability state synchronization engine for wearable health services devices."""

from .config import EngineConfig
from .fake_device import FakeDeviceManager
from .state_manager import (
    CapabilityNotOverridableError,
    EngineClosedError,
    Preset,
    StateManager,
)
from .status import Status

__all__ = [
    "CapabilityNotOverridableError",
    "EngineClosedError",
    "EngineConfig",
    "FakeDeviceManager",
    "Preset",
    "StateManager",
    "Status",
]
