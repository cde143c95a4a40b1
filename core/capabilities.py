"""Capability catalog and the value types exchanged with devices."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, Optional, Tuple

__all__ = [
    "DataType",
    "Capability",
    "CapabilityState",
    "CapabilityEntry",
    "CapabilityRegistry",
    "DEFAULT_STATE",
    "DEFAULT_CAPABILITIES",
]


class DataType(str, Enum):
    """Identifiers of the data types a health services device can report."""

    HEART_RATE_BPM = "HEART_RATE_BPM"
    LOCATION = "LOCATION"
    STEPS = "STEPS"
    DISTANCE = "DISTANCE"
    SPEED = "SPEED"
    PACE = "PACE"
    TOTAL_CALORIES = "TOTAL_CALORIES"
    FLOORS = "FLOORS"
    ELEVATION_GAIN = "ELEVATION_GAIN"
    ELEVATION_LOSS = "ELEVATION_LOSS"
    ABSOLUTE_ELEVATION = "ABSOLUTE_ELEVATION"
    STEPS_PER_MINUTE = "STEPS_PER_MINUTE"


@dataclass(frozen=True, slots=True)
class Capability:
    """Static description of one capability; identity is ``data_type``."""

    data_type: DataType
    label: str
    unit: str
    overridable: bool = False
    is_standard: bool = False


@dataclass(frozen=True, slots=True)
class CapabilityState:
    enabled: bool = True
    override_value: Optional[float] = None


DEFAULT_STATE = CapabilityState(enabled=True, override_value=None)


@dataclass(frozen=True, slots=True)
class CapabilityEntry:
    """Local view of a capability plus whether the device confirmed it."""

    capability_state: CapabilityState = DEFAULT_STATE
    synced: bool = True


class CapabilityRegistry:
    """Immutable, ordered catalog of the capabilities known to the engine."""

    def __init__(self, capabilities: Iterable[Capability]) -> None:
        ordered: Tuple[Capability, ...] = tuple(capabilities)
        index: Dict[DataType, Capability] = {}
        for capability in ordered:
            if capability.data_type in index:
                raise ValueError(f"duplicate capability {capability.data_type.value}")
            index[capability.data_type] = capability
        self._capabilities = ordered
        self._index = index

    @classmethod
    def default(cls) -> "CapabilityRegistry":
        return cls(DEFAULT_CAPABILITIES)

    @property
    def capabilities(self) -> Tuple[Capability, ...]:
        return self._capabilities

    @property
    def ids(self) -> Tuple[DataType, ...]:
        return tuple(capability.data_type for capability in self._capabilities)

    def get(self, data_type: DataType) -> Capability:
        """Return the capability for *data_type*; raises ``KeyError`` if unknown."""

        try:
            return self._index[data_type]
        except KeyError:
            raise KeyError(f"unknown capability {data_type!r}") from None

    def standard(self) -> Tuple[Capability, ...]:
        return tuple(capability for capability in self._capabilities if capability.is_standard)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, Capability):
            return self._index.get(item.data_type) == item
        return item in self._index

    def __iter__(self) -> Iterator[Capability]:
        return iter(self._capabilities)

    def __len__(self) -> int:
        return len(self._capabilities)


DEFAULT_CAPABILITIES: Tuple[Capability, ...] = (
    Capability(DataType.HEART_RATE_BPM, "Heart rate", "bpm", overridable=True, is_standard=True),
    Capability(DataType.LOCATION, "Location", "", overridable=False, is_standard=True),
    Capability(DataType.STEPS, "Steps", "steps", overridable=True, is_standard=True),
    Capability(DataType.DISTANCE, "Distance", "m", overridable=True, is_standard=True),
    Capability(DataType.SPEED, "Speed", "m/s", overridable=True, is_standard=True),
    Capability(DataType.PACE, "Pace", "min/km", overridable=True, is_standard=False),
    Capability(DataType.TOTAL_CALORIES, "Total calories", "kcal", overridable=True, is_standard=True),
    Capability(DataType.FLOORS, "Floors", "floors", overridable=True, is_standard=False),
    Capability(DataType.ELEVATION_GAIN, "Elevation gain", "m", overridable=True, is_standard=False),
    Capability(DataType.ELEVATION_LOSS, "Elevation loss", "m", overridable=True, is_standard=False),
    Capability(DataType.ABSOLUTE_ELEVATION, "Absolute elevation", "m", overridable=True, is_standard=False),
    Capability(DataType.STEPS_PER_MINUTE, "Steps per minute", "steps/min", overridable=True, is_standard=False),
)
