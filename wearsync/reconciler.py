"""Merge device snapshots into the local capability view."""

from __future__ import annotations

from typing import AbstractSet, Dict, Iterable, Mapping, Optional

from core.capabilities import DEFAULT_STATE, CapabilityEntry, CapabilityState, DataType

__all__ = ["device_view", "reconcile"]


def device_view(
    ids: Iterable[DataType],
    snapshot: Mapping[DataType, CapabilityState],
) -> Dict[DataType, CapabilityState]:
    """Return the state the device holds for every id in *ids*.

    Ids missing from *snapshot* are reported at their default state, since
    devices drop custom values on reset.
    """

    return {data_type: snapshot.get(data_type, DEFAULT_STATE) for data_type in ids}


def reconcile(
    current: Mapping[DataType, CapabilityEntry],
    pending: AbstractSet[DataType],
    snapshot: Optional[Mapping[DataType, CapabilityState]],
) -> Dict[DataType, CapabilityEntry]:
    """Compute the next entries after loading *snapshot* from the device.

    ``snapshot`` is ``None`` when the load failed, in which case *current* is
    returned unchanged. Entries with pending local edits keep their value and
    their synced flag can only drop, when the device no longer holds the
    local value; every other entry adopts the device value and is marked
    synced.
    """

    if snapshot is None:
        return dict(current)

    confirmed = device_view(current.keys(), snapshot)
    merged: Dict[DataType, CapabilityEntry] = {}
    for data_type, entry in current.items():
        if data_type not in pending:
            merged[data_type] = CapabilityEntry(confirmed[data_type], synced=True)
        elif entry.synced and entry.capability_state != confirmed[data_type]:
            merged[data_type] = CapabilityEntry(entry.capability_state, synced=False)
        else:
            merged[data_type] = entry
    return merged
