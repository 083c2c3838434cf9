"""
阵容服务外部依赖
Formation Service Providers

作者: lx
日期: 2025-06-20
描述: 英雄数据和关卡进度的提供者接口及内存实现
"""

from .roster_provider import (
    RosterProvider,
    InMemoryRosterProvider,
    load_owned_heroes
)

from .progress_provider import (
    StageProgress,
    StageProgressProvider,
    InMemoryStageProgressProvider
)

__all__ = [
    "RosterProvider",
    "InMemoryRosterProvider",
    "load_owned_heroes",
    "StageProgress",
    "StageProgressProvider",
    "InMemoryStageProgressProvider"
]
