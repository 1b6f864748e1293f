import asyncio

import pytest

from papertrade.commons.locks import KeyedLocks


@pytest.mark.asyncio
async def test_same_key_runs_one_at_a_time():
    locks = KeyedLocks()
    events = []

    async def worker(name: str):
        async with locks.hold(("trader-1", "USD")):
            events.append(f"{name}-in")
            await asyncio.sleep(0.01)
            events.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert events in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])


@pytest.mark.asyncio
async def test_different_keys_do_not_block():
    locks = KeyedLocks()
    inside = asyncio.Event()
    release = asyncio.Event()

    async def holder():
        async with locks.hold(("trader-1", "USD")):
            inside.set()
            await release.wait()

    task = asyncio.create_task(holder())
    await inside.wait()

    async with locks.hold(("trader-1", "HKD")):
        assert locks.is_locked(("trader-1", "USD"))

    release.set()
    await task


@pytest.mark.asyncio
async def test_lock_released_after_error():
    locks = KeyedLocks()

    with pytest.raises(RuntimeError):
        async with locks.hold("portfolio-1"):
            raise RuntimeError("boom")

    assert not locks.is_locked("portfolio-1")
    async with locks.hold("portfolio-1"):
        pass


@pytest.mark.asyncio
async def test_idle_keys_are_dropped():
    locks = KeyedLocks()
    async with locks.hold("k"):
        pass

    assert "k" not in locks._locks


@pytest.mark.asyncio
async def test_hold_many_holds_every_key():
    locks = KeyedLocks()
    keys = [("portfolio", 1), ("portfolio", 2), ("portfolio", 1)]

    async with locks.hold_many(keys):
        assert locks.is_locked(("portfolio", 1))
        assert locks.is_locked(("portfolio", 2))

    assert not locks.is_locked(("portfolio", 1))
    assert not locks.is_locked(("portfolio", 2))
