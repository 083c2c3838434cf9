"""
关卡进度提供者
Stage Progress Provider

作者: lx
日期: 2025-06-20
描述: 战斗预览需要的关卡挑战记录（次数、胜场、最佳用时）和玩家当前关卡
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

StageKey = Tuple[str, str, int, int, str]


@dataclass
class StageProgress:
    """单个关卡的挑战记录"""
    attempts: int = 0
    victories: int = 0
    best_time: int = 0      # 最佳通关用时(秒)，0表示未通关

    def can_skip(self, required_victories: int = 3) -> bool:
        """胜场达到要求后可扫荡"""
        return self.victories >= required_victories

    def to_dict(self, required_victories: int = 3) -> Dict[str, Any]:
        return {
            "attempts": self.attempts,
            "victories": self.victories,
            "best_time": self.best_time,
            "can_skip": self.can_skip(required_victories),
        }


class StageProgressProvider(ABC):
    """关卡进度提供者接口"""

    @abstractmethod
    async def get_progress(
        self,
        owner_id: str,
        server_id: str,
        world_id: int,
        level_id: int,
        difficulty: str
    ) -> StageProgress:
        """获取关卡挑战记录，没有记录时返回空记录"""

    @abstractmethod
    async def get_current_stage(self, owner_id: str, server_id: str) -> Optional[Tuple[int, int]]:
        """获取玩家当前所在的 (世界ID, 关卡ID)"""


class InMemoryStageProgressProvider(StageProgressProvider):
    """内存关卡进度，用于单进程部署和测试"""

    def __init__(self):
        self._progress: Dict[StageKey, StageProgress] = {}
        self._current: Dict[Tuple[str, str], Tuple[int, int]] = {}

    async def get_progress(
        self,
        owner_id: str,
        server_id: str,
        world_id: int,
        level_id: int,
        difficulty: str
    ) -> StageProgress:
        progress = self._progress.get((owner_id, server_id, world_id, level_id, difficulty))
        if progress is None:
            return StageProgress()
        return StageProgress(progress.attempts, progress.victories, progress.best_time)

    async def get_current_stage(self, owner_id: str, server_id: str) -> Optional[Tuple[int, int]]:
        return self._current.get((owner_id, server_id))

    def set_current_stage(self, owner_id: str, server_id: str, world_id: int, level_id: int) -> None:
        self._current[(owner_id, server_id)] = (world_id, level_id)

    def record_attempt(
        self,
        owner_id: str,
        server_id: str,
        world_id: int,
        level_id: int,
        difficulty: str,
        victory: bool,
        battle_time: int = 0
    ) -> StageProgress:
        """
        记录一次挑战

        Args:
            victory: 是否胜利
            battle_time: 战斗用时(秒)，只有胜利时参与最佳用时统计

        Returns:
            更新后的记录
        """
        key = (owner_id, server_id, world_id, level_id, difficulty)
        progress = self._progress.setdefault(key, StageProgress())
        progress.attempts += 1
        if victory:
            progress.victories += 1
            if battle_time > 0 and (progress.best_time == 0 or battle_time < progress.best_time):
                progress.best_time = battle_time
        return progress
