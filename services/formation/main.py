"""
阵容服务主程序
Formation Service Main

作者: lx
日期: 2025-06-20
描述: 按部署方式装配阵容服务：加载数值配置，选择存储（内存/MongoDB）和玩家锁（本地/Redis）
"""
import logging
from dataclasses import dataclass
from typing import Optional

from common.config import ConfigLoader
from common.database.core import DatabaseConfig, MongoClient, RedisClient
from common.database.distributed_lock import LocalLockProvider, LockProvider, RedisLockProvider
from common.database.repositories import (
    FormationRepository, InMemoryFormationRepository, MongoFormationRepository
)

from .providers import InMemoryRosterProvider, InMemoryStageProgressProvider, RosterProvider, StageProgressProvider
from .services import BattleSetupService, FormationService

logger = logging.getLogger(__name__)


@dataclass
class ServiceConfig:
    """服务配置"""
    config_dir: str = "json"
    storage: str = "memory"     # memory / mongo
    lock: str = "local"         # local / redis
    log_level: str = "INFO"


class FormationApp:
    """阵容服务装配器"""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        roster_provider: Optional[RosterProvider] = None,
        progress_provider: Optional[StageProgressProvider] = None
    ):
        self.config = config or ServiceConfig()
        self.roster_provider = roster_provider or InMemoryRosterProvider()
        self.progress_provider = progress_provider or InMemoryStageProgressProvider()

        self.config_loader: Optional[ConfigLoader] = None
        self.mongo_client: Optional[MongoClient] = None
        self.redis_client: Optional[RedisClient] = None
        self.formation_service: Optional[FormationService] = None
        self.battle_setup_service: Optional[BattleSetupService] = None

    async def _build_repository(self) -> FormationRepository:
        if self.config.storage == "memory":
            return InMemoryFormationRepository()
        if self.config.storage == "mongo":
            self.mongo_client = MongoClient(DatabaseConfig.MONGO_CONFIG)
            await self.mongo_client.connect()
            repository = MongoFormationRepository(self.mongo_client)
            await repository.ensure_indexes()
            return repository
        raise ValueError(f"Unknown storage: {self.config.storage}")

    async def _build_lock_provider(self) -> LockProvider:
        if self.config.lock == "local":
            return LocalLockProvider()
        if self.config.lock == "redis":
            self.redis_client = RedisClient(DatabaseConfig.REDIS_CONFIG)
            await self.redis_client.connect()
            return RedisLockProvider(self.redis_client.client, **DatabaseConfig.LOCK_CONFIG)
        raise ValueError(f"Unknown lock provider: {self.config.lock}")

    async def start(self) -> None:
        """启动服务"""
        logging.basicConfig(level=getattr(logging, self.config.log_level.upper(), logging.INFO))

        self.config_loader = ConfigLoader(self.config.config_dir)
        loaded = await self.config_loader.load()
        if not loaded:
            logger.info("使用默认数值配置")

        repository = await self._build_repository()
        lock_provider = await self._build_lock_provider()

        self.formation_service = FormationService(
            repository=repository,
            roster_provider=self.roster_provider,
            lock_provider=lock_provider
        )
        self.battle_setup_service = BattleSetupService(
            self.formation_service,
            progress_provider=self.progress_provider
        )
        logger.info(f"阵容服务已启动: storage={self.config.storage} lock={self.config.lock}")

    async def stop(self) -> None:
        """停止服务，释放数据库连接"""
        if self.mongo_client:
            await self.mongo_client.disconnect()
            self.mongo_client = None
        if self.redis_client:
            await self.redis_client.disconnect()
            self.redis_client = None
        logger.info("阵容服务已停止")
