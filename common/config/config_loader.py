"""
配置加载器模块
Configuration Loader Module

作者: lx
日期: 2025-06-18
描述: 启动时加载阵容数值配置，配置缓存在内存，支持按文件哈希热更新和版本管理
"""

import json
import asyncio
from pathlib import Path
from typing import Dict, List, Any, Optional, Callable
from datetime import datetime
import logging
import hashlib
from dataclasses import dataclass

from pydantic import ValidationError as PydanticValidationError

from .base_config import ConfigManager, FormationBalanceConfig, get_config_manager

# 设置日志
logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "formation_balance.json"


@dataclass
class ConfigVersion:
    """配置版本信息"""
    version: str
    timestamp: datetime
    file_hash: str
    file_path: str


class ConfigLoader:
    """配置加载器"""

    def __init__(
        self,
        config_dir: str = "json",
        file_name: str = DEFAULT_CONFIG_FILE,
        config_manager: Optional[ConfigManager] = None
    ):
        """初始化配置加载器

        Args:
            config_dir: 配置文件目录
            file_name: 数值配置文件名
            config_manager: 配置管理器，默认使用全局实例
        """
        self.config_dir = Path(config_dir)
        self.file_name = file_name

        # 配置管理器
        self.config_manager = config_manager or get_config_manager()

        # 配置版本管理
        self.current_version: Optional[ConfigVersion] = None
        self._reload_callbacks: List[Callable[[FormationBalanceConfig], None]] = []

        # 加载状态
        self._is_loaded = False
        self._loading_lock = asyncio.Lock()

    @property
    def config_path(self) -> Path:
        return self.config_dir / self.file_name

    @property
    def is_loaded(self) -> bool:
        return self._is_loaded

    async def load(self) -> bool:
        """加载数值配置

        文件不存在时保留默认配置并返回False；文件内容不合法时抛出异常，
        当前生效配置保持不变。

        Returns:
            是否从文件加载成功
        """
        async with self._loading_lock:
            path = self.config_path
            if not path.exists():
                logger.warning(f"配置文件不存在，使用默认数值配置: {path}")
                return False

            raw = path.read_bytes()
            file_hash = hashlib.md5(raw).hexdigest()

            try:
                data = json.loads(raw.decode("utf-8"))
                balance = self.config_manager.load_balance(data)
            except (json.JSONDecodeError, PydanticValidationError) as e:
                logger.error(f"加载配置文件失败 {path}: {e}")
                raise

            self.current_version = ConfigVersion(
                version=balance.version,
                timestamp=datetime.now(),
                file_hash=file_hash,
                file_path=str(path)
            )
            self._is_loaded = True

            logger.info(f"数值配置加载完成: {path} version={self.current_version.version}")

        self._notify_reload(balance)
        return True

    async def reload_if_changed(self) -> bool:
        """文件哈希变化时重新加载

        Returns:
            是否发生了重新加载
        """
        path = self.config_path
        if not path.exists():
            return False

        file_hash = hashlib.md5(path.read_bytes()).hexdigest()
        if self.current_version and self.current_version.file_hash == file_hash:
            return False

        logger.info(f"检测到配置文件变化，重新加载: {path}")
        return await self.load()

    def add_reload_callback(self, callback: Callable[[FormationBalanceConfig], None]) -> None:
        """添加配置重载回调"""
        self._reload_callbacks.append(callback)

    def remove_reload_callback(self, callback: Callable[[FormationBalanceConfig], None]) -> None:
        """移除配置重载回调"""
        if callback in self._reload_callbacks:
            self._reload_callbacks.remove(callback)

    def _notify_reload(self, balance: FormationBalanceConfig) -> None:
        for callback in self._reload_callbacks:
            try:
                callback(balance)
            except Exception as e:
                logger.error(f"配置重载回调执行失败: {e}", exc_info=True)

    def get_version_info(self) -> Dict[str, Any]:
        """获取配置版本信息"""
        if not self.current_version:
            return {"loaded": False, "path": str(self.config_path)}
        return {
            "loaded": True,
            "path": self.current_version.file_path,
            "version": self.current_version.version,
            "hash": self.current_version.file_hash,
            "timestamp": self.current_version.timestamp.isoformat()
        }
