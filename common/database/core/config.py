"""
数据库配置
定义数据库连接和锁的行为配置
作者: lx
日期: 2025-06-20
"""
import os


class DatabaseConfig:
    """数据库配置类"""

    # Redis配置
    REDIS_CONFIG = {
        "host": os.getenv("REDIS_HOST", "localhost"),
        "port": int(os.getenv("REDIS_PORT", "6379")),
        "db": int(os.getenv("REDIS_DB", "0")),
        "password": os.getenv("REDIS_PASSWORD"),
        "pool_size": 100,
    }

    # MongoDB配置
    MONGO_CONFIG = {
        "uri": os.getenv("MONGO_URI", "mongodb://localhost:27017"),
        "database": os.getenv("MONGO_DATABASE", "formation_db"),
        "max_pool_size": 100,
        "min_pool_size": 10
    }

    # 玩家锁配置
    LOCK_CONFIG = {
        "timeout": 10.0,       # 锁超时(秒)
        "retry_delay": 0.05,   # 重试间隔(秒)
        "max_retries": 100,
        "auto_renewal": False
    }
