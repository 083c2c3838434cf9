"""
战斗结果预估
Battle Outcome Estimator

作者: lx
日期: 2025-06-20
描述: 关卡敌人战力生成、战力比胜率分档、难度标签和建议，全部为确定性纯计算
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from common.config import BattleEstimationConfig, get_balance
from common.exceptions import ErrorCode, ValidationError
from common.utils.tables import ThresholdTable, round_half_up


class Difficulty(str, Enum):
    """关卡难度"""
    NORMAL = "Normal"
    HARD = "Hard"
    NIGHTMARE = "Nightmare"


class EnemyType(str, Enum):
    """敌人类型"""
    NORMAL = "normal"
    ELITE = "elite"
    BOSS = "boss"


_ENEMY_NAME_PREFIX = {
    EnemyType.NORMAL: "",
    EnemyType.ELITE: "Elite ",
    EnemyType.BOSS: "Boss ",
}


def parse_difficulty(value: Union[Difficulty, str, None]) -> Difficulty:
    """
    解析难度

    Raises:
        ValidationError: 未知难度
    """
    if isinstance(value, Difficulty):
        return value
    try:
        return Difficulty(value)
    except ValueError:
        raise ValidationError(
            ErrorCode.INVALID_DIFFICULTY,
            f"Invalid difficulty: {value}. Must be one of: "
            f"{', '.join(d.value for d in Difficulty)}"
        )


@dataclass
class EnemyUnit:
    """敌人单位预览"""
    position: int
    name: str
    enemy_type: str
    level: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": self.position,
            "name": self.name,
            "enemy_type": self.enemy_type,
            "level": self.level,
        }


@dataclass
class EnemyPreview:
    """关卡敌人预览"""
    count: int
    average_level: int
    total_power: int
    enemy_type: str
    composition: List[EnemyUnit] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "average_level": self.average_level,
            "total_power": self.total_power,
            "enemy_type": self.enemy_type,
            "composition": [unit.to_dict() for unit in self.composition],
        }


@dataclass
class VictoryEstimation:
    """胜率预估"""
    victory_chance: int
    difficulty: str
    power_difference: int
    power_ratio: float
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "victory_chance": self.victory_chance,
            "difficulty": self.difficulty,
            "power_difference": self.power_difference,
            "power_ratio": round(self.power_ratio, 4),
            "recommendations": list(self.recommendations),
        }


class BattleOutcomeEstimator:
    """战斗结果预估器"""

    def __init__(self, config: Optional[BattleEstimationConfig] = None):
        """
        Args:
            config: 预估配置，默认使用当前生效的数值配置
        """
        self.config = config or get_balance().battle
        self._victory_ladder = ThresholdTable(self.config.victory_ladder, default=self.config.min_victory_chance)
        self._difficulty_bands = ThresholdTable(self.config.difficulty_bands, default=self.config.lowest_difficulty)

    def get_enemy_type(self, level_id: int) -> EnemyType:
        """关卡敌人类型: 整十关为Boss，整五关为精英"""
        if level_id % self.config.boss_level_interval == 0:
            return EnemyType.BOSS
        if level_id % self.config.elite_level_interval == 0:
            return EnemyType.ELITE
        return EnemyType.NORMAL

    def enemy_count(self, world_id: int) -> int:
        return self.config.base_enemy_count + world_id // self.config.worlds_per_extra_enemy

    def level_multiplier(self, world_id: int, level_id: int) -> float:
        return 1 + world_id * self.config.world_multiplier + level_id * self.config.level_multiplier

    def generate_enemy_preview(
        self,
        world_id: int,
        level_id: int,
        difficulty: Union[Difficulty, str] = Difficulty.NORMAL
    ) -> EnemyPreview:
        """
        生成关卡敌人预览

        Args:
            world_id: 世界ID
            level_id: 关卡ID
            difficulty: 难度

        Returns:
            敌人数量、平均等级、总战力和站位组成
        """
        difficulty = parse_difficulty(difficulty)
        enemy_type = self.get_enemy_type(level_id)
        count = self.enemy_count(world_id)

        difficulty_multiplier = self.config.difficulty_multipliers.get(difficulty.value, 1.0)
        type_multiplier = self.config.enemy_type_multipliers.get(enemy_type.value, 1.0)

        total_power = round_half_up(
            self.config.base_enemy_power * count
            * self.level_multiplier(world_id, level_id)
            * difficulty_multiplier
            * type_multiplier
        )
        average_level = math.floor(
            self.config.enemy_base_level + count * self.config.enemy_level_per_enemy * type_multiplier
        )

        prefix = _ENEMY_NAME_PREFIX[enemy_type]
        composition = [
            EnemyUnit(
                position=index + 1,
                name=f"{prefix}Enemy {index + 1}",
                enemy_type=enemy_type.value,
                level=average_level
            )
            for index in range(count)
        ]

        return EnemyPreview(
            count=count,
            average_level=average_level,
            total_power=total_power,
            enemy_type=enemy_type.value,
            composition=composition
        )

    def base_victory_chance(self, power_ratio: float) -> int:
        """按战力比查胜率档位"""
        return self._victory_ladder.lookup(power_ratio)

    def difficulty_label(self, victory_chance: int) -> str:
        """按胜率查难度标签"""
        return self._difficulty_bands.lookup(victory_chance)

    def estimate_victory(
        self,
        player_power: int,
        enemy_power: int,
        hero_count: int,
        previous_victories: int = 0
    ) -> VictoryEstimation:
        """
        预估胜率

        Args:
            player_power: 玩家阵容战力
            enemy_power: 敌方战力
            hero_count: 玩家上阵英雄数
            previous_victories: 该关卡历史胜利次数

        Returns:
            胜率、难度标签、战力差百分比和建议
        """
        config = self.config
        ratio = player_power / max(enemy_power, 1)
        power_difference = round_half_up((ratio - 1) * 100)

        chance = self.base_victory_chance(ratio)

        if previous_victories > 0:
            chance = min(config.victory_chance_cap, chance + previous_victories * config.victory_bonus_per_win)

        # 阵容不满时按人数打折，用整数百分比计算避免浮点误差
        if 0 < hero_count < config.full_team_size:
            factor = config.incomplete_team_base_pct + hero_count * config.incomplete_team_per_hero_pct
            chance = chance * factor // 100

        recommendations: List[str] = []
        if ratio < config.upgrade_ratio:
            recommendations.append("Upgrade your heroes before attempting this level")
        if hero_count < config.full_team_size:
            recommendations.append(
                f"Add {config.full_team_size - hero_count} more hero(es) to your formation"
            )
        if ratio < config.farm_ratio:
            recommendations.append("Consider farming previous levels for resources")
        if previous_victories == 0 and ratio < config.first_attempt_ratio:
            recommendations.append("First attempt on this level - be prepared for a challenge")

        return VictoryEstimation(
            victory_chance=int(chance),
            difficulty=self.difficulty_label(chance),
            power_difference=power_difference,
            power_ratio=ratio,
            recommendations=recommendations
        )

    def is_warning_difficulty(self, difficulty: str) -> bool:
        return difficulty in self.config.warn_difficulties


def get_enemy_type(level_id: int) -> EnemyType:
    """按当前配置判断关卡敌人类型"""
    return BattleOutcomeEstimator().get_enemy_type(level_id)


def generate_enemy_preview(
    world_id: int,
    level_id: int,
    difficulty: Union[Difficulty, str] = Difficulty.NORMAL
) -> EnemyPreview:
    """按当前配置生成敌人预览"""
    return BattleOutcomeEstimator().generate_enemy_preview(world_id, level_id, difficulty)


def estimate_victory(
    player_power: int,
    enemy_power: int,
    hero_count: int,
    previous_victories: int = 0
) -> VictoryEstimation:
    """按当前配置预估胜率"""
    return BattleOutcomeEstimator().estimate_victory(player_power, enemy_power, hero_count, previous_victories)
