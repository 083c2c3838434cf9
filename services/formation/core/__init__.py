"""
阵容服务核心模块
Formation Service Core Module

作者: lx
日期: 2025-06-20
描述: 阵容校验、元素羁绊、战力计算、战斗预估等纯计算组件
"""

from .heroes import (
    HeroRole,
    HeroElement,
    BaseStats,
    HeroTemplate,
    RosterEntry,
    OwnedHero,
    OwnedRoster,
    DAMAGE_ROLES
)

from .roster_validator import (
    RosterSlotValidator,
    ValidationResult,
    ValidationOptions
)

from .synergy import (
    ElementBonus,
    SynergyDetail,
    SynergyResult,
    SynergyBonusResolver,
    ZERO_BONUS,
    get_element_bonus,
    calculate_formation_synergies
)

from .power import (
    PowerScorer,
    calculate_hero_power
)

from .battle_estimator import (
    BattleOutcomeEstimator,
    Difficulty,
    EnemyType,
    EnemyUnit,
    EnemyPreview,
    VictoryEstimation,
    parse_difficulty,
    get_enemy_type,
    generate_enemy_preview,
    estimate_victory
)

__all__ = [
    # Heroes
    "HeroRole",
    "HeroElement",
    "BaseStats",
    "HeroTemplate",
    "RosterEntry",
    "OwnedHero",
    "OwnedRoster",
    "DAMAGE_ROLES",

    # Validator
    "RosterSlotValidator",
    "ValidationResult",
    "ValidationOptions",

    # Synergy
    "ElementBonus",
    "SynergyDetail",
    "SynergyResult",
    "SynergyBonusResolver",
    "ZERO_BONUS",
    "get_element_bonus",
    "calculate_formation_synergies",

    # Power
    "PowerScorer",
    "calculate_hero_power",

    # Battle estimation
    "BattleOutcomeEstimator",
    "Difficulty",
    "EnemyType",
    "EnemyUnit",
    "EnemyPreview",
    "VictoryEstimation",
    "parse_difficulty",
    "get_enemy_type",
    "generate_enemy_preview",
    "estimate_victory"
]
