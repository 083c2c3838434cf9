"""
阵容业务服务
Formation Business Services

作者: lx
日期: 2025-06-20
描述: 阵容管理和战斗准备两个对外服务，以及统一的结果封装
"""

from .results import (
    FormationResult,
    FormationStats,
    FormationView,
    PreviewResult,
    BattlePreview,
    ArenaPreview,
    TemporaryFormationPreview,
    PlayerFormationSummary,
    CombatantSummary,
    StageInfo
)

from .formation_service import FormationService, coerce_slots
from .battle_setup_service import BattleSetupService

__all__ = [
    "FormationResult",
    "FormationStats",
    "FormationView",
    "PreviewResult",
    "BattlePreview",
    "ArenaPreview",
    "TemporaryFormationPreview",
    "PlayerFormationSummary",
    "CombatantSummary",
    "StageInfo",
    "FormationService",
    "coerce_slots",
    "BattleSetupService"
]
