"""
核心模块
作者: lx
日期: 2025-06-20
"""
from .redis_client import RedisClient
from .mongo_client import MongoClient
from .config import DatabaseConfig

__all__ = ['RedisClient', 'MongoClient', 'DatabaseConfig']
