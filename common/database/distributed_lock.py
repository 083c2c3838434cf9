"""
分布式锁实现
用于串行化同一玩家的阵容修改（保证同一玩家同时只有一个激活阵容）
作者: lx
日期: 2025-06-18
"""
import asyncio
import time
import uuid
from abc import ABC, abstractmethod
from typing import Optional, Dict, AsyncIterator
from contextlib import asynccontextmanager
import logging

logger = logging.getLogger(__name__)


class DistributedLockError(Exception):
    """分布式锁相关错误"""
    pass


class DeadlockError(DistributedLockError):
    """死锁错误"""
    pass


class LockTimeoutError(DistributedLockError):
    """锁超时错误"""
    pass


def owner_lock_key(owner_id: str, server_id: str) -> str:
    """玩家维度的锁键"""
    return f"formation:{server_id}:{owner_id}"


class DistributedLock:
    """基于Redis的分布式锁"""

    # Lua脚本用于原子释放锁
    RELEASE_SCRIPT = """
        if redis.call("get", KEYS[1]) == ARGV[1] then
            return redis.call("del", KEYS[1])
        else
            return 0
        end
    """

    # Lua脚本用于原子续期锁
    RENEW_SCRIPT = """
        if redis.call("get", KEYS[1]) == ARGV[1] then
            return redis.call("expire", KEYS[1], ARGV[2])
        else
            return 0
        end
    """

    def __init__(
        self,
        redis_client,
        lock_key: str,
        timeout: float = 30.0,
        retry_delay: float = 0.1,
        max_retries: int = 10,
        auto_renewal: bool = True
    ):
        """
        初始化分布式锁

        Args:
            redis_client: Redis客户端（redis.asyncio.Redis 或兼容接口）
            lock_key: 锁的键名
            timeout: 锁超时时间(秒)
            retry_delay: 重试间隔时间(秒)
            max_retries: 最大重试次数
            auto_renewal: 是否自动续期
        """
        self.redis_client = redis_client
        self.lock_key = f"lock:{lock_key}"
        self.timeout = timeout
        self.retry_delay = retry_delay
        self.max_retries = max_retries
        self.auto_renewal = auto_renewal

        # 唯一标识符，用于确保只有锁的持有者才能释放锁
        self.lock_value = str(uuid.uuid4())
        self.acquired = False
        self.renewal_task: Optional[asyncio.Task] = None

        # 死锁检测
        self.acquire_start_time: Optional[float] = None
        self.deadlock_detection_timeout = timeout * 3  # 3倍超时时间检测死锁

    async def acquire(self) -> bool:
        """
        获取锁

        Returns:
            bool: 是否成功获取锁

        Raises:
            LockTimeoutError: 获取锁超时
            DeadlockError: 检测到死锁
            DistributedLockError: Redis访问失败
        """
        self.acquire_start_time = time.time()

        for attempt in range(self.max_retries + 1):
            try:
                # 使用SET命令的原子操作获取锁
                result = await self.redis_client.set(
                    self.lock_key,
                    self.lock_value,
                    ex=max(1, int(self.timeout)),
                    nx=True  # 只在键不存在时设置
                )
            except Exception as e:
                logger.error(f"获取锁时发生错误: {self.lock_key}, {e}")
                raise DistributedLockError(f"获取锁失败: {e}") from e

            if result:
                self.acquired = True

                # 启动自动续期任务
                if self.auto_renewal:
                    self.renewal_task = asyncio.create_task(
                        self._auto_renewal()
                    )

                logger.debug(f"成功获取锁: {self.lock_key}")
                return True

            # 检查死锁
            if (time.time() - self.acquire_start_time) > self.deadlock_detection_timeout:
                raise DeadlockError(f"死锁检测: {self.lock_key}")

            # 等待重试
            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay)

        # 超时后仍未获取到锁
        total_wait_time = time.time() - self.acquire_start_time
        raise LockTimeoutError(
            f"获取锁超时: {self.lock_key}, 等待时间: {total_wait_time:.2f}s"
        )

    async def release(self) -> bool:
        """
        释放锁

        Returns:
            bool: 是否成功释放锁
        """
        if not self.acquired:
            return True

        # 停止自动续期任务
        if self.renewal_task and not self.renewal_task.done():
            self.renewal_task.cancel()
            try:
                await self.renewal_task
            except asyncio.CancelledError:
                pass

        self.acquired = False

        try:
            # 使用Lua脚本原子释放锁
            result = await self.redis_client.eval(
                self.RELEASE_SCRIPT,
                1,
                self.lock_key,
                self.lock_value
            )
        except Exception as e:
            logger.error(f"释放锁时发生错误: {self.lock_key}, {e}")
            return False

        if result == 1:
            logger.debug(f"成功释放锁: {self.lock_key}")
            return True

        logger.warning(f"锁已被其他进程释放或过期: {self.lock_key}")
        return False

    async def renew(self, extend_time: Optional[float] = None) -> bool:
        """
        手动续期锁

        Args:
            extend_time: 延长时间(秒)，默认使用初始超时时间

        Returns:
            bool: 是否成功续期
        """
        if not self.acquired:
            return False

        extend_time = extend_time or self.timeout

        try:
            result = await self.redis_client.eval(
                self.RENEW_SCRIPT,
                1,
                self.lock_key,
                self.lock_value,
                max(1, int(extend_time))
            )
        except Exception as e:
            logger.error(f"续期锁时发生错误: {self.lock_key}, {e}")
            return False

        if result == 1:
            logger.debug(f"成功续期锁: {self.lock_key}, 延长: {extend_time}s")
            return True

        logger.warning(f"续期失败，锁可能已过期: {self.lock_key}")
        self.acquired = False
        return False

    async def _auto_renewal(self) -> None:
        """自动续期锁的后台任务"""
        renewal_interval = self.timeout / 3  # 每1/3超时时间续期一次

        while self.acquired:
            try:
                await asyncio.sleep(renewal_interval)

                if self.acquired and not await self.renew():
                    logger.error(f"自动续期失败: {self.lock_key}")
                    break

            except asyncio.CancelledError:
                break

    async def __aenter__(self):
        """异步上下文管理器入口"""
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """异步上下文管理器出口"""
        await self.release()


@asynccontextmanager
async def distributed_lock(
    redis_client,
    lock_key: str,
    timeout: float = 30.0,
    **kwargs
):
    """分布式锁的便捷异步上下文管理器"""
    lock = DistributedLock(redis_client, lock_key, timeout=timeout, **kwargs)
    try:
        await lock.acquire()
        yield lock
    finally:
        await lock.release()


class LockProvider(ABC):
    """按键加锁的锁提供者"""

    @abstractmethod
    def lock(self, key: str) -> AsyncIterator[None]:
        """返回指定键的异步上下文管理器"""


class LocalLockProvider(LockProvider):
    """
    进程内锁提供者

    每个键一个 asyncio.Lock，等待者清零后回收，不同键之间互不阻塞
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    @asynccontextmanager
    async def lock(self, key: str):
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._holders[key] = self._holders.get(key, 0) + 1

        try:
            async with lock:
                logger.debug(f"获取本地锁: {key}")
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                self._locks.pop(key, None)

    def active_keys(self) -> int:
        """当前持有或等待中的键数量"""
        return len(self._locks)


class RedisLockProvider(LockProvider):
    """基于Redis分布式锁的锁提供者，用于多进程部署"""

    def __init__(self, redis_client, **lock_options):
        """
        Args:
            redis_client: redis.asyncio.Redis 实例
            **lock_options: 透传给 DistributedLock 的参数
        """
        self.redis_client = redis_client
        self.lock_options = lock_options

    @asynccontextmanager
    async def lock(self, key: str):
        async with distributed_lock(self.redis_client, key, **self.lock_options):
            yield
