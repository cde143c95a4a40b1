"""Bounded background queue for blocking telemetry deliveries."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Optional

_log = logging.getLogger(__name__)

_STOP = object()


class BackgroundDispatcher:
    """Run callables on a daemon worker so callers never block on I/O."""

    def __init__(self, *, maxsize: int = 1000, name: str = "TelemetryDispatch") -> None:
        self._q: "queue.Queue[object]" = queue.Queue(maxsize=maxsize)
        self._name = name
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self.dropped = 0

    def _ensure_started(self) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._thread = threading.Thread(target=self._worker, name=self._name, daemon=True)
            self._thread.start()

    def _worker(self) -> None:
        while True:
            fn = self._q.get()
            try:
                if fn is _STOP:
                    return
                fn()  # type: ignore[operator]
            except Exception:
                _log.exception("telemetry task failed")
            finally:
                self._q.task_done()

    def enqueue(self, fn: Callable[[], None]) -> None:
        """Schedule *fn*; drop it with a warning when the queue is full."""

        if fn is None:
            return
        self._ensure_started()
        try:
            self._q.put_nowait(fn)
        except queue.Full:
            self.dropped += 1
            _log.warning("telemetry queue full; dropping event (%d drops)", self.dropped)

    def join(self) -> None:
        """Block until every queued callable has run."""

        self._q.join()

    def close(self, timeout: float = 1.0) -> None:
        thread = self._thread
        if thread is None:
            return
        try:
            self._q.put(_STOP, timeout=timeout)
        except queue.Full:
            _log.warning("telemetry queue full; worker not stopped cleanly")
            return
        thread.join(timeout=timeout)
        self._thread = None


__all__ = ["BackgroundDispatcher"]
