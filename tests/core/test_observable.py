import asyncio
import logging

import pytest

from core.observable import StateCell


def test_subscribe_replays_latest_then_changes():
    cell = StateCell(1, name="counter")
    seen: list[int] = []
    unsubscribe = cell.subscribe(seen.append)
    assert seen == [1]

    assert cell.set(2) is True
    assert cell.set(2) is False
    cell.set(3)
    assert seen == [1, 2, 3]

    unsubscribe()
    cell.set(4)
    assert seen == [1, 2, 3]
    assert cell.value == 4


def test_failing_listener_does_not_block_others(caplog):
    cell = StateCell("a", name="letters")
    seen: list[str] = []

    def broken(value: str) -> None:
        if value != "a":
            raise RuntimeError("boom")

    cell.subscribe(broken)
    cell.subscribe(seen.append)
    caplog.set_level(logging.ERROR)
    cell.set("b")
    assert seen == ["a", "b"]
    assert any("cell=letters" in record.message for record in caplog.records)


def test_stream_yields_current_value_first():
    async def scenario() -> list[int]:
        cell = StateCell(0)
        received: list[int] = []

        async def consume() -> None:
            async for value in cell.stream():
                received.append(value)
                if value == 2:
                    return

        task = asyncio.create_task(consume())
        await asyncio.sleep(0)
        cell.set(1)
        cell.set(2)
        await asyncio.wait_for(task, 1.0)
        return received

    assert asyncio.run(scenario()) == [0, 1, 2]


def test_wait_for_value_and_timeout():
    async def scenario() -> None:
        cell = StateCell(False)
        loop = asyncio.get_running_loop()
        loop.call_later(0.01, cell.set, True)
        assert await cell.wait_for_value(True, timeout=1.0) is True
        assert await cell.wait_for(lambda value: value, timeout=0.1) is True
        with pytest.raises(asyncio.TimeoutError):
            await cell.wait_for_value(False, timeout=0.05)

    asyncio.run(scenario())


def test_wait_for_sees_transient_values():
    async def scenario() -> str:
        cell = StateCell("idle")
        waiter = asyncio.create_task(cell.wait_for_value("syncing", timeout=1.0))
        await asyncio.sleep(0)
        cell.set("syncing")
        cell.set("idle")
        return await waiter

    assert asyncio.run(scenario()) == "syncing"
