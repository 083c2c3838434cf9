"""
分布式锁测试
Distributed Lock Tests

作者: lx
日期: 2025-06-18
描述: Redis分布式锁的获取、释放、续期、超时，以及本地锁提供者的串行化
"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import asyncio

import pytest

from common.database.distributed_lock import (
    DistributedLock, DistributedLockError, LocalLockProvider, LockTimeoutError,
    RedisLockProvider, distributed_lock, owner_lock_key
)


def test_owner_lock_key():
    assert owner_lock_key("player_1", "S1") == "formation:S1:player_1"


class TestDistributedLock:
    """Redis分布式锁测试"""

    @pytest.mark.asyncio
    async def test_acquire_and_release(self, mock_redis):
        lock = DistributedLock(mock_redis, "test", auto_renewal=False)

        assert await lock.acquire()
        assert mock_redis.data["lock:test"] == lock.lock_value
        assert await mock_redis.ttl("lock:test") > 0

        assert await lock.release()
        assert await mock_redis.get("lock:test") is None

    @pytest.mark.asyncio
    async def test_contended_lock_times_out(self, mock_redis):
        holder = DistributedLock(mock_redis, "busy", auto_renewal=False)
        await holder.acquire()

        waiter = DistributedLock(mock_redis, "busy", retry_delay=0.01, max_retries=3, auto_renewal=False)
        with pytest.raises(LockTimeoutError):
            await waiter.acquire()

        await holder.release()
        assert await waiter.acquire()
        await waiter.release()

    @pytest.mark.asyncio
    async def test_only_owner_releases(self, mock_redis):
        lock = DistributedLock(mock_redis, "owned", auto_renewal=False)
        await lock.acquire()

        # 锁被其他持有者替换
        mock_redis.data["lock:owned"] = "someone-else"
        assert not await lock.release()
        assert mock_redis.data["lock:owned"] == "someone-else"

    @pytest.mark.asyncio
    async def test_renew(self, mock_redis):
        lock = DistributedLock(mock_redis, "renew", timeout=5, auto_renewal=False)
        await lock.acquire()

        assert await lock.renew(60)
        assert await mock_redis.ttl("lock:renew") > 5
        await lock.release()
        assert not await lock.renew()

    @pytest.mark.asyncio
    async def test_redis_failure(self, mock_redis):
        """Redis不可用时抛出锁错误"""
        mock_redis.fail = True
        with pytest.raises(DistributedLockError):
            await DistributedLock(mock_redis, "down", auto_renewal=False).acquire()

    @pytest.mark.asyncio
    async def test_context_manager(self, mock_redis):
        async with distributed_lock(mock_redis, "ctx", auto_renewal=False) as lock:
            assert lock.acquired
            assert await mock_redis.get("lock:ctx") == lock.lock_value
        assert await mock_redis.get("lock:ctx") is None

    @pytest.mark.asyncio
    async def test_auto_renewal_task_is_cancelled(self, mock_redis):
        lock = DistributedLock(mock_redis, "auto", timeout=3)
        await lock.acquire()
        assert lock.renewal_task is not None
        await lock.release()
        assert lock.renewal_task.done()


class TestLockProviders:
    """锁提供者测试"""

    @pytest.mark.asyncio
    async def test_local_lock_serializes_same_key(self):
        """同一键的临界区串行执行"""
        provider = LocalLockProvider()
        inside = 0
        overlaps = []

        async def worker():
            nonlocal inside
            async with provider.lock("formation:S1:p1"):
                inside += 1
                overlaps.append(inside)
                await asyncio.sleep(0.01)
                inside -= 1

        await asyncio.gather(*(worker() for _ in range(5)))
        assert overlaps == [1, 1, 1, 1, 1]
        assert provider.active_keys() == 0

    @pytest.mark.asyncio
    async def test_local_lock_keys_independent(self):
        """不同键互不阻塞"""
        provider = LocalLockProvider()
        async with provider.lock("a"):
            await asyncio.wait_for(_enter(provider, "b"), timeout=1)
            assert provider.active_keys() == 1

    @pytest.mark.asyncio
    async def test_local_lock_released_on_error(self):
        provider = LocalLockProvider()
        with pytest.raises(ValueError):
            async with provider.lock("a"):
                raise ValueError("boom")
        assert provider.active_keys() == 0

    @pytest.mark.asyncio
    async def test_redis_provider(self, mock_redis):
        provider = RedisLockProvider(mock_redis, auto_renewal=False, retry_delay=0.01)
        async with provider.lock("formation:S1:p1"):
            assert "lock:formation:S1:p1" in mock_redis.data
        assert "lock:formation:S1:p1" not in mock_redis.data

    @pytest.mark.asyncio
    async def test_redis_provider_serializes(self, mock_redis):
        provider = RedisLockProvider(mock_redis, auto_renewal=False, retry_delay=0.005, max_retries=200)
        order = []

        async def worker(name):
            async with provider.lock("shared"):
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))
        assert order in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])


async def _enter(provider, key):
    async with provider.lock(key):
        return True
