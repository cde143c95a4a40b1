"""Telemetry event kinds and the logger the engine reports them through."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from .async_bridge import BackgroundDispatcher

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .cloud import CloudTelemetrySink

__all__ = ["TelemetryEventKind", "TelemetryLogger", "TelemetrySink"]

_log = logging.getLogger(__name__)


class TelemetryEventKind(str, Enum):
    EMULATOR_BOUND = "EMULATOR_BOUND"
    APPLY_CHANGES_SUCCESS = "APPLY_CHANGES_SUCCESS"
    APPLY_CHANGES_FAILURE = "APPLY_CHANGES_FAILURE"


TelemetrySink = Callable[[TelemetryEventKind], None]


class TelemetryLogger:
    """Forward telemetry events to a local sink and, optionally, the cloud.

    Cloud deliveries run on a :class:`BackgroundDispatcher` so a slow ingest
    endpoint never stalls an apply.
    """

    def __init__(
        self,
        sink: Optional[TelemetrySink] = None,
        *,
        cloud: Optional["CloudTelemetrySink"] = None,
        dispatcher: Optional[BackgroundDispatcher] = None,
    ) -> None:
        self._sink = sink
        self._cloud = cloud
        self._dispatcher = dispatcher
        if cloud is not None and dispatcher is None:
            self._dispatcher = BackgroundDispatcher()

    def __call__(self, kind: TelemetryEventKind) -> None:
        self.log(kind)

    def log(self, kind: TelemetryEventKind) -> None:
        _log.debug("telemetry event=%s", kind.value)
        if self._sink is not None:
            try:
                self._sink(kind)
            except Exception:
                _log.exception("telemetry sink failed event=%s", kind.value)
        cloud = self._cloud
        if cloud is not None and self._dispatcher is not None:
            self._dispatcher.enqueue(lambda: cloud.send(kind))

    def close(self) -> None:
        if self._dispatcher is not None:
            self._dispatcher.close()
        if self._cloud is not None:
            self._cloud.close()
