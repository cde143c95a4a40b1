from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

import requests

from .events import TelemetryEventKind

if TYPE_CHECKING:  # pragma: no cover - typing only
    from wearsync.config import EngineConfig

INGEST_PATH = "/v1/events/ingest"

_OUTCOMES = {
    TelemetryEventKind.EMULATOR_BOUND: "bound",
    TelemetryEventKind.APPLY_CHANGES_SUCCESS: "success",
    TelemetryEventKind.APPLY_CHANGES_FAILURE: "failure",
}


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Capped exponential backoff between delivery attempts."""

    max_retries: int = 3
    initial_delay_s: float = 0.1
    max_delay_s: float = 1.0

    def delays(self) -> Iterator[float]:
        delay = self.initial_delay_s
        for _ in range(max(0, self.max_retries)):
            yield delay
            delay = min(delay * 2, self.max_delay_s)


class _Verdict(enum.Enum):
    ACCEPTED = "accepted"
    RETRY = "retry"
    REJECTED = "rejected"


def _classify(status: int) -> _Verdict:
    if 200 <= status < 300:
        return _Verdict.ACCEPTED
    if 500 <= status < 600:
        return _Verdict.RETRY
    return _Verdict.REJECTED


class CloudTelemetrySink:
    """Forward engine telemetry events to an HTTP ingest endpoint.

    Server errors and transport failures are retried according to
    ``retry``; any other non-2xx answer drops the event. ``send`` never
    raises so it can run on the background dispatcher.
    """

    def __init__(
        self,
        session: requests.Session,
        base_url: str,
        api_key: str,
        timeout_s: float = 2.0,
        max_retries: int = 3,
        *,
        retry: Optional[RetryPolicy] = None,
    ) -> None:
        self._log = logging.getLogger(__name__)
        self._session = session
        self.url = base_url.rstrip("/") + INGEST_PATH
        self.timeout_s = timeout_s
        self.retry = retry or RetryPolicy(max_retries=max_retries)
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    @property
    def max_retries(self) -> int:
        return self.retry.max_retries

    def payload(self, kind: TelemetryEventKind) -> Dict[str, Any]:
        return {"kind": kind.value, "outcome": _OUTCOMES[kind], "ts": time.time()}

    def send(self, kind: TelemetryEventKind) -> bool:
        """Deliver *kind*; return ``True`` once the endpoint accepted it."""

        payload = self.payload(kind)
        backoff = self.retry.delays()
        while True:
            try:
                verdict = self._attempt(payload)
            except requests.RequestException as exc:
                verdict, reason = _Verdict.RETRY, repr(exc)
            else:
                reason = "server error"
            if verdict is _Verdict.ACCEPTED:
                return True
            if verdict is _Verdict.REJECTED:
                return False
            delay = next(backoff, None)
            if delay is None:
                self._log.error("telemetry ingest failed after retries: kind=%s %s", kind.value, reason)
                return False
            self._log.debug("telemetry ingest retry in %.2fs: %s", delay, reason)
            time.sleep(delay)

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    def _attempt(self, payload: Dict[str, Any]) -> _Verdict:
        response = self._session.post(
            self.url,
            json=payload,
            headers=self._headers,
            timeout=self.timeout_s,
        )
        verdict = _classify(response.status_code)
        if verdict is _Verdict.REJECTED:
            self._log.warning(
                "telemetry ingest non-2xx: %s %s",
                response.status_code,
                (response.text or "")[:200],
            )
        return verdict


def create_cloud_sink(config: "EngineConfig") -> Optional[CloudTelemetrySink]:
    """Create a cloud sink when *config* carries both URL and API key."""

    if not config.telemetry_enabled:
        return None
    return CloudTelemetrySink(
        requests.Session(),
        config.telemetry_base_url,  # type: ignore[arg-type]
        config.telemetry_api_key,  # type: ignore[arg-type]
        timeout_s=config.telemetry_timeout_s,
        max_retries=config.telemetry_max_retries,
    )


__all__ = ["CloudTelemetrySink", "RetryPolicy", "create_cloud_sink"]
