"""Tests for KeyedLock."""
import asyncio

import pytest

from anonchat.realtime.locks import KeyedLock


class TestKeyedLock:
    @pytest.mark.asyncio
    async def test_same_key_is_serialized(self):
        locks = KeyedLock()
        order = []

        async def worker(name):
            async with locks.hold("room"):
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert order == ["a-in", "a-out", "b-in", "b-out"]

    @pytest.mark.asyncio
    async def test_different_keys_do_not_block_each_other(self):
        locks = KeyedLock()
        entered = asyncio.Event()

        async with locks.hold("room-1"):
            async def other():
                async with locks.hold("room-2"):
                    entered.set()

            await asyncio.wait_for(other(), timeout=1)

        assert entered.is_set()

    @pytest.mark.asyncio
    async def test_idle_lock_is_dropped(self):
        locks = KeyedLock()
        async with locks.hold("room"):
            assert "room" in locks
            assert len(locks) == 1
        assert "room" not in locks
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_lock_kept_while_waiters_remain(self):
        locks = KeyedLock()
        release = asyncio.Event()

        async def holder():
            async with locks.hold("room"):
                await release.wait()

        async def waiter():
            async with locks.hold("room"):
                pass

        first = asyncio.create_task(holder())
        await asyncio.sleep(0)
        second = asyncio.create_task(waiter())
        await asyncio.sleep(0)
        assert "room" in locks

        release.set()
        await asyncio.gather(first, second)
        assert "room" not in locks

    @pytest.mark.asyncio
    async def test_keep_predicate_retains_live_keys(self):
        live = {"room"}
        locks = KeyedLock(keep=lambda key: key in live)

        async with locks.hold("room"):
            pass
        assert "room" in locks

        live.clear()
        async with locks.hold("room"):
            pass
        assert "room" not in locks

    @pytest.mark.asyncio
    async def test_lock_released_when_body_raises(self):
        locks = KeyedLock()
        with pytest.raises(RuntimeError):
            async with locks.hold("room"):
                raise RuntimeError("boom")

        async with locks.hold("room"):
            pass
        assert len(locks) == 0
