"""Environment-driven engine configuration."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

__all__ = ["EngineConfig"]

_log = logging.getLogger(__name__)

MIN_POLL_INTERVAL_S = 0.05
_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}
_TELEMETRY_INCOMPLETE_WARNED = False


def _coerce_float(value: Optional[str], default: float, *, name: str) -> float:
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        _log.warning("Invalid %s value: %r", name, value)
        return default


def _coerce_int(value: Optional[str], default: int, *, name: str) -> int:
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        _log.warning("Invalid %s value: %r", name, value)
        return default
    return max(0, parsed)


def _coerce_bool(value: Optional[str], default: bool, *, name: str) -> bool:
    if not value:
        return default
    lowered = value.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    _log.warning("Invalid %s value: %r", name, value)
    return default


@dataclass(slots=True)
class EngineConfig:
    poll_interval_s: float = 5.0
    run_periodic_updates: bool = True
    log_level: str = "INFO"
    telemetry_base_url: Optional[str] = None
    telemetry_api_key: Optional[str] = None
    telemetry_timeout_s: float = 2.0
    telemetry_max_retries: int = 3

    @property
    def telemetry_enabled(self) -> bool:
        return bool(self.telemetry_base_url and self.telemetry_api_key)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """Build a configuration from ``WEARSYNC_*`` environment variables."""

        global _TELEMETRY_INCOMPLETE_WARNED

        env = os.environ if environ is None else environ
        poll = _coerce_float(env.get("WEARSYNC_POLL_INTERVAL_S"), 5.0, name="WEARSYNC_POLL_INTERVAL_S")
        if poll < MIN_POLL_INTERVAL_S:
            _log.warning("Poll interval %.3fs too small; using %.2fs", poll, MIN_POLL_INTERVAL_S)
            poll = MIN_POLL_INTERVAL_S

        base_url = env.get("WEARSYNC_TELEMETRY_BASE_URL") or None
        api_key = env.get("WEARSYNC_TELEMETRY_API_KEY") or None
        if bool(base_url) != bool(api_key):
            if not _TELEMETRY_INCOMPLETE_WARNED:
                _log.warning("Incomplete telemetry configuration; cloud telemetry disabled")
                _TELEMETRY_INCOMPLETE_WARNED = True
            base_url = api_key = None

        return cls(
            poll_interval_s=poll,
            run_periodic_updates=_coerce_bool(
                env.get("WEARSYNC_PERIODIC_UPDATES"), True, name="WEARSYNC_PERIODIC_UPDATES"
            ),
            log_level=(env.get("WEARSYNC_LOG_LEVEL") or "INFO").upper(),
            telemetry_base_url=base_url,
            telemetry_api_key=api_key,
            telemetry_timeout_s=_coerce_float(
                env.get("WEARSYNC_TELEMETRY_TIMEOUT_S"), 2.0, name="WEARSYNC_TELEMETRY_TIMEOUT_S"
            ),
            telemetry_max_retries=_coerce_int(
                env.get("WEARSYNC_TELEMETRY_MAX_RETRIES"), 3, name="WEARSYNC_TELEMETRY_MAX_RETRIES"
            ),
        )
