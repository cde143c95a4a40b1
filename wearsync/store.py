"""Per-capability observable state with pending-edit bookkeeping."""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, List, Mapping, Set

from core.capabilities import DEFAULT_STATE, CapabilityEntry, CapabilityState, DataType
from core.observable import StateCell

__all__ = ["CapabilityStateStore"]


class CapabilityStateStore:
    """Holds one :class:`StateCell` per capability.

    Alongside the published entries the store remembers the last state the
    device confirmed for each capability and the ids that carry local edits
    not yet pushed. An entry is synced when its local state equals the
    confirmed one.
    """

    def __init__(self, ids: Iterable[DataType]) -> None:
        self._cells: Dict[DataType, StateCell[CapabilityEntry]] = {}
        self._confirmed: Dict[DataType, CapabilityState] = {}
        for data_type in ids:
            self._cells[data_type] = StateCell(CapabilityEntry(DEFAULT_STATE, True), name=data_type.value)
            self._confirmed[data_type] = DEFAULT_STATE
        self._pending: Set[DataType] = set()

    # ------------------------------------------------------------------
    def cell(self, data_type: DataType) -> StateCell[CapabilityEntry]:
        try:
            return self._cells[data_type]
        except KeyError:
            raise KeyError(f"unknown capability {data_type!r}") from None

    def entry(self, data_type: DataType) -> CapabilityEntry:
        return self.cell(data_type).value

    def entries(self) -> Dict[DataType, CapabilityEntry]:
        return {data_type: cell.value for data_type, cell in self._cells.items()}

    def confirmed(self, data_type: DataType) -> CapabilityState:
        return self._confirmed[data_type]

    @property
    def pending(self) -> FrozenSet[DataType]:
        return frozenset(self._pending)

    # ------------------------------------------------------------------
    def stage(self, data_type: DataType, state: CapabilityState) -> CapabilityEntry:
        """Record a local edit and publish it immediately."""

        cell = self.cell(data_type)
        self._pending.add(data_type)
        entry = CapabilityEntry(state, synced=state == self._confirmed[data_type])
        cell.set(entry)
        return entry

    def replace(
        self,
        entries: Mapping[DataType, CapabilityEntry],
        confirmed: Mapping[DataType, CapabilityState],
    ) -> None:
        """Publish reconciled *entries* and remember the *confirmed* device view."""

        self._confirmed.update((k, v) for k, v in confirmed.items() if k in self._cells)
        for data_type, entry in entries.items():
            self.cell(data_type).set(entry)

    def acknowledge(self, pushed: Mapping[DataType, CapabilityState]) -> List[DataType]:
        """Mark ids whose *pushed* state the device accepted.

        Ids edited again after the push was collected stay pending and keep
        their synced flag relative to the new confirmed value. Returns the ids
        that are now synced.
        """

        synced: List[DataType] = []
        for data_type, state in pushed.items():
            cell = self.cell(data_type)
            self._confirmed[data_type] = state
            local = cell.value.capability_state
            if local == state:
                self._pending.discard(data_type)
                synced.append(data_type)
            cell.set(CapabilityEntry(local, synced=local == state))
        return synced
