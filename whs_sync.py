"""Command-line driver running the sync engine against the in-memory device."""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Dict, List, Optional, Sequence, Tuple

from core.capabilities import DataType
from core.logging import configure_logging
from wearsync import (
    CapabilityNotOverridableError,
    EngineConfig,
    FakeDeviceManager,
    Preset,
    StateManager,
    Status,
)
from wearsync.telemetry import TelemetryEventKind, TelemetryLogger
from wearsync.telemetry.cloud import create_cloud_sink


def _parse_override(text: str) -> Tuple[DataType, float]:
    name, sep, value = text.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"expected ID=VALUE, got {text!r}")
    try:
        return DataType(name.strip().upper()), float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _parse_data_type(text: str) -> DataType:
    try:
        return DataType(text.strip().upper())
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    config = EngineConfig.from_env()
    parser = argparse.ArgumentParser(
        description="Stage capability edits, apply them and watch the device state"
    )
    parser.add_argument(
        "--preset",
        choices=[preset.value.lower() for preset in Preset],
        default=None,
        help="Preset to select before applying",
    )
    parser.add_argument("--disable", type=_parse_data_type, nargs="*", default=[], help="Capabilities to disable")
    parser.add_argument(
        "--override",
        type=_parse_override,
        nargs="*",
        default=[],
        help="Override values as ID=VALUE",
    )
    parser.add_argument("--poll-interval", type=float, default=config.poll_interval_s, help="Seconds between polls")
    parser.add_argument("--duration", type=float, default=0.0, help="Seconds to keep polling after applying")
    parser.add_argument("--fail", action="store_true", help="Simulate an unreachable device")
    parser.add_argument("--log-level", default=config.log_level, help="Logging level")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace, config: Optional[EngineConfig] = None) -> Status:
    """Drive one engine session and print the resulting entries."""

    config = config or EngineConfig.from_env()
    device = FakeDeviceManager()
    device.fail_state = args.fail
    events: List[TelemetryEventKind] = []
    telemetry = TelemetryLogger(events.append, cloud=create_cloud_sink(config))

    try:
        async with StateManager(device, telemetry, args.poll_interval) as manager:
            if args.preset:
                manager.set_preset(args.preset.upper())
            for data_type in args.disable:
                manager.set_capability_enabled(data_type, False)
            overrides: Dict[DataType, float] = dict(args.override)
            for data_type, value in overrides.items():
                manager.set_override_value(data_type, value)
            await manager.apply_changes()
            if args.duration > 0:
                await asyncio.sleep(args.duration)

            for capability in manager.capabilities_list:
                entry = manager.get_state(capability).value
                state = entry.capability_state
                print(
                    f"{capability.data_type.value:<20} enabled={state.enabled!s:<5} "
                    f"override={state.override_value!s:<6} synced={entry.synced}"
                )
            status = manager.status.value
            print(f"status={status.value} telemetry={','.join(kind.value for kind in events)}")
            return status
    finally:
        telemetry.close()


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    try:
        status = asyncio.run(run(args))
    except CapabilityNotOverridableError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    return 0 if status is Status.IDLE else 1


if __name__ == "__main__":  # pragma: no cover - convenience wrapper
    sys.exit(main())
