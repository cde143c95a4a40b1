"""Telemetry emitted by the synchronization engine."""

from .events import TelemetryEventKind, TelemetryLogger, TelemetrySink

__all__ = ["TelemetryEventKind", "TelemetryLogger", "TelemetrySink"]
