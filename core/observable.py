"""Replay-latest observable cells used to publish engine state."""

from __future__ import annotations

import asyncio
import threading
from typing import AsyncIterator, Callable, Generic, List, Optional, TypeVar

from .logging import get_logger

__all__ = ["StateCell"]

T = TypeVar("T")

Listener = Callable[[T], None]

_log = get_logger("core.observable")


class StateCell(Generic[T]):
    """Single-writer, multi-reader value holder.

    New subscribers receive the current value immediately, then every change.
    Setting a value equal to the current one is not re-published.
    """

    def __init__(self, value: T, *, name: str = "") -> None:
        self._value = value
        self._name = name
        self._listeners: List[Listener[T]] = []
        self._lock = threading.Lock()

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"StateCell({self._name or '?'}={self._value!r})"

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> bool:
        """Publish *value*; return ``True`` if it differed from the current one."""

        with self._lock:
            if value == self._value:
                return False
            self._value = value
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(value)
            except Exception:
                _log.exception("listener failed cell=%s", self._name)
        return True

    def subscribe(self, listener: Listener[T]) -> Callable[[], None]:
        """Register *listener* and return a callable removing it again."""

        with self._lock:
            self._listeners.append(listener)
            current = self._value
        listener(current)

        def _unsubscribe() -> None:
            with self._lock:
                try:
                    self._listeners.remove(listener)
                except ValueError:
                    pass

        return _unsubscribe

    async def stream(self) -> AsyncIterator[T]:
        """Yield the current value and then each subsequent change."""

        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[T] = asyncio.Queue()
        unsubscribe = self.subscribe(lambda value: loop.call_soon_threadsafe(queue.put_nowait, value))
        try:
            while True:
                yield await queue.get()
        finally:
            unsubscribe()

    async def wait_for(self, predicate: Callable[[T], bool], timeout: Optional[float] = None) -> T:
        """Wait until a published value satisfies *predicate* and return it.

        Raises :class:`asyncio.TimeoutError` when *timeout* elapses first.
        """

        loop = asyncio.get_running_loop()
        future: asyncio.Future[T] = loop.create_future()

        def _check(value: T) -> None:
            if not future.done() and predicate(value):
                future.set_result(value)

        unsubscribe = self.subscribe(lambda value: loop.call_soon_threadsafe(_check, value))
        try:
            return await asyncio.wait_for(future, timeout)
        finally:
            unsubscribe()

    async def wait_for_value(self, expected: T, timeout: Optional[float] = None) -> T:
        return await self.wait_for(lambda value: value == expected, timeout)
