"""
数据库层模块
Database Layer Module

提供阵容数据的持久化访问和玩家维度的串行化锁
作者: lx
日期: 2025-06-20
"""
from .core.redis_client import RedisClient
from .core.mongo_client import MongoClient
from .core.config import DatabaseConfig
from .models import FormationModel, RosterSlot
from .repositories import (
    FormationRepository, InMemoryFormationRepository, MongoFormationRepository
)
from .distributed_lock import (
    DistributedLock, DistributedLockError, LockProvider, LocalLockProvider,
    RedisLockProvider, owner_lock_key
)

__all__ = [
    'RedisClient',
    'MongoClient',
    'DatabaseConfig',
    'FormationModel',
    'RosterSlot',
    'FormationRepository',
    'InMemoryFormationRepository',
    'MongoFormationRepository',
    'DistributedLock',
    'DistributedLockError',
    'LockProvider',
    'LocalLockProvider',
    'RedisLockProvider',
    'owner_lock_key'
]
