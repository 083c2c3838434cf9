"""
配置基类模块
Configuration Base Classes Module

作者: lx
日期: 2025-06-18
描述: 阵容与战斗预估的数值配置（羁绊加成表、战力公式、阵容规则、胜率档位）及配置管理器
"""

from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from typing import Dict, List, Tuple, Optional
from datetime import datetime


class BaseConfig(BaseModel):
    """配置基类"""

    model_config = ConfigDict(
        # 禁止额外字段
        extra="forbid",
        # 使用枚举值
        use_enum_values=True,
        # 允许属性验证
        validate_assignment=True
    )


class ElementBonusConfig(BaseConfig):
    """单档羁绊加成（百分比）"""
    hp_pct: int = Field(default=0, description="生命加成%", ge=0)
    atk_pct: int = Field(default=0, description="攻击加成%", ge=0)
    def_pct: int = Field(default=0, description="防御加成%", ge=0)


def _uniform_bonus(value: int) -> ElementBonusConfig:
    return ElementBonusConfig(hp_pct=value, atk_pct=value, def_pct=value)


class SynergyConfig(BaseConfig):
    """元素羁绊配置"""
    standard: Dict[int, ElementBonusConfig] = Field(
        default_factory=lambda: {
            2: _uniform_bonus(5),
            3: _uniform_bonus(10),
            4: _uniform_bonus(15),
            5: _uniform_bonus(25),
        },
        description="普通元素加成表"
    )
    rare: Dict[int, ElementBonusConfig] = Field(
        default_factory=lambda: {
            2: _uniform_bonus(8),
            3: _uniform_bonus(15),
            4: _uniform_bonus(22),
            5: _uniform_bonus(35),
        },
        description="稀有元素加成表"
    )
    standard_elements: List[str] = Field(
        default_factory=lambda: ["Fire", "Water", "Wind", "Electric"],
        description="普通元素"
    )
    rare_elements: List[str] = Field(
        default_factory=lambda: ["Light", "Dark"],
        description="稀有元素"
    )
    min_count: int = Field(default=2, description="触发羁绊的最少同元素英雄数", ge=2)

    @field_validator("standard", "rare")
    @classmethod
    def _check_thresholds(cls, table: Dict[int, ElementBonusConfig]) -> Dict[int, ElementBonusConfig]:
        if not table:
            raise ValueError("bonus table cannot be empty")
        if any(threshold < 2 for threshold in table):
            raise ValueError("bonus thresholds must be >= 2")
        return dict(sorted(table.items()))

    @model_validator(mode="after")
    def _check_rare_dominates(self) -> "SynergyConfig":
        if set(self.standard) != set(self.rare):
            raise ValueError("standard and rare tiers must share the same thresholds")
        for threshold, standard_bonus in self.standard.items():
            rare_bonus = self.rare[threshold]
            if not (
                rare_bonus.hp_pct > standard_bonus.hp_pct
                and rare_bonus.atk_pct > standard_bonus.atk_pct
                and rare_bonus.def_pct > standard_bonus.def_pct
            ):
                raise ValueError(f"rare tier must exceed standard tier at threshold {threshold}")
        overlap = set(self.standard_elements) & set(self.rare_elements)
        if overlap:
            raise ValueError(f"elements cannot be both standard and rare: {sorted(overlap)}")
        return self


class PowerFormulaConfig(BaseConfig):
    """战力公式配置"""
    level_growth: float = Field(default=0.08, description="每级属性成长", gt=0)
    star_growth: float = Field(default=0.15, description="每星属性成长", gt=0)
    atk_weight: float = Field(default=1.0, description="攻击权重", ge=0)
    def_weight: float = Field(default=2.0, description="防御权重", ge=0)
    hp_divisor: float = Field(default=10.0, description="生命折算除数", gt=0)


class FormationRulesConfig(BaseConfig):
    """阵容规则配置"""
    max_slots: int = Field(default=5, description="阵容最大人数", ge=1)
    min_position: int = Field(default=1, description="最小站位")
    max_position: int = Field(default=5, description="最大站位")
    front_line_positions: List[int] = Field(default_factory=lambda: [1, 2], description="前排站位")
    back_line_positions: List[int] = Field(default_factory=lambda: [3, 4, 5], description="后排站位")
    max_formations: int = Field(default=10, description="每个玩家的阵容上限", ge=1)
    capacity_warning_margin: int = Field(default=2, description="接近上限时的预警余量", ge=0)
    name_max_length: int = Field(default=30, description="阵容名称最大长度", ge=1)
    invalid_name_chars: str = Field(default="<>/\\", description="阵容名称禁用字符")
    copy_suffix: str = Field(default=" (Copy)", description="复制阵容的名称后缀")

    # 阵容搭配建议的触发人数
    tank_warning_min_heroes: int = Field(default=3, ge=1)
    support_warning_min_heroes: int = Field(default=4, ge=1)
    dps_warning_min_heroes: int = Field(default=3, ge=1)
    line_warning_min_heroes: int = Field(default=3, ge=1)
    dps_heavy_threshold: int = Field(default=4, ge=1)

    @model_validator(mode="after")
    def _check_positions(self) -> "FormationRulesConfig":
        if self.min_position > self.max_position:
            raise ValueError("min_position cannot exceed max_position")
        lines = self.front_line_positions + self.back_line_positions
        if len(set(lines)) != len(lines):
            raise ValueError("front line and back line positions overlap")
        return self


class BattleEstimationConfig(BaseConfig):
    """战斗预估配置"""

    # 关卡敌人生成
    base_enemy_power: int = Field(default=500, description="单个敌人基础战力", ge=0)
    base_enemy_count: int = Field(default=3, description="基础敌人数量", ge=1)
    worlds_per_extra_enemy: int = Field(default=5, description="每多少个世界增加一个敌人", ge=1)
    world_multiplier: float = Field(default=0.15, description="世界系数", ge=0)
    level_multiplier: float = Field(default=0.05, description="关卡系数", ge=0)
    difficulty_multipliers: Dict[str, float] = Field(
        default_factory=lambda: {"Normal": 1.0, "Hard": 2.0, "Nightmare": 4.0},
        description="难度倍率"
    )
    enemy_type_multipliers: Dict[str, float] = Field(
        default_factory=lambda: {"normal": 1.0, "elite": 1.2, "boss": 1.5},
        description="敌人类型倍率"
    )
    boss_level_interval: int = Field(default=10, description="Boss关间隔", ge=1)
    elite_level_interval: int = Field(default=5, description="精英关间隔", ge=1)
    enemy_base_level: int = Field(default=20, description="敌人基础等级", ge=1)
    enemy_level_per_enemy: int = Field(default=2, description="每个敌人增加的等级", ge=0)

    # 胜率档位: (战力比下界, 胜率)
    victory_ladder: List[Tuple[float, int]] = Field(
        default_factory=lambda: [
            (1.5, 95), (1.3, 85), (1.15, 75), (1.0, 65),
            (0.9, 50), (0.75, 35), (0.6, 20),
        ],
        description="战力比胜率档位"
    )
    min_victory_chance: int = Field(default=10, description="最低胜率", ge=0, le=100)
    victory_bonus_per_win: int = Field(default=2, description="每次历史胜利增加的胜率", ge=0)
    victory_chance_cap: int = Field(default=95, description="历史胜利加成后的胜率上限", ge=0, le=100)

    # 阵容不满时的惩罚: floor(胜率 * (base + 人数 * per_hero) / 100)
    full_team_size: int = Field(default=5, ge=1)
    incomplete_team_base_pct: int = Field(default=85, ge=0, le=100)
    incomplete_team_per_hero_pct: int = Field(default=3, ge=0)

    # 难度档位: (胜率下界, 难度标签)
    difficulty_bands: List[Tuple[int, str]] = Field(
        default_factory=lambda: [(85, "very_easy"), (70, "easy"), (50, "medium"), (30, "hard")],
        description="难度档位"
    )
    lowest_difficulty: str = Field(default="very_hard", description="最低档难度标签")
    warn_difficulties: List[str] = Field(default_factory=lambda: ["hard", "very_hard"])

    # 建议阈值
    upgrade_ratio: float = Field(default=0.9, description="低于此战力比建议升级英雄")
    farm_ratio: float = Field(default=0.75, description="低于此战力比建议刷前置关卡")
    first_attempt_ratio: float = Field(default=1.0, description="首次挑战提示的战力比")
    recommended_min_chance: int = Field(default=60, description="推荐挑战的最低胜率")
    min_recommended_heroes: int = Field(default=3, description="少于此人数给出警告")
    can_skip_victories: int = Field(default=3, description="可扫荡所需胜利次数")

    @field_validator("victory_ladder", "difficulty_bands")
    @classmethod
    def _check_unique_thresholds(cls, ladder: List[Tuple]) -> List[Tuple]:
        thresholds = [item[0] for item in ladder]
        if len(set(thresholds)) != len(thresholds):
            raise ValueError(f"duplicate thresholds: {thresholds}")
        return ladder

    @field_validator("difficulty_multipliers", "enemy_type_multipliers")
    @classmethod
    def _check_multipliers(cls, multipliers: Dict[str, float]) -> Dict[str, float]:
        if any(value <= 0 for value in multipliers.values()):
            raise ValueError("multipliers must be positive")
        return multipliers


class FormationBalanceConfig(BaseConfig):
    """阵容系统数值总配置"""
    version: str = Field(default="1", description="配置版本号")
    synergy: SynergyConfig = Field(default_factory=SynergyConfig)
    power: PowerFormulaConfig = Field(default_factory=PowerFormulaConfig)
    rules: FormationRulesConfig = Field(default_factory=FormationRulesConfig)
    battle: BattleEstimationConfig = Field(default_factory=BattleEstimationConfig)


class ConfigManager:
    """配置管理器"""

    def __init__(self):
        """初始化配置管理器"""
        self._balance = FormationBalanceConfig()

        # 配置加载时间戳，用于热更新检测
        self._load_timestamp: Optional[datetime] = None

    def get_balance(self) -> FormationBalanceConfig:
        """获取当前生效的数值配置"""
        return self._balance

    def load_balance(self, data: Dict) -> FormationBalanceConfig:
        """加载数值配置

        Args:
            data: 配置字典，缺省字段使用默认值

        Returns:
            校验后的配置对象

        Raises:
            pydantic.ValidationError: 配置不合法时抛出，当前配置保持不变
        """
        balance = FormationBalanceConfig.model_validate(data)
        self._balance = balance
        self._load_timestamp = datetime.now()
        return balance

    def reset(self) -> None:
        """恢复默认配置"""
        self._balance = FormationBalanceConfig()
        self._load_timestamp = None

    @property
    def load_timestamp(self) -> Optional[datetime]:
        return self._load_timestamp


# 全局配置管理器实例
config_manager = ConfigManager()


def get_config_manager() -> ConfigManager:
    """获取全局配置管理器实例

    Returns:
        全局配置管理器实例
    """
    return config_manager


def get_balance() -> FormationBalanceConfig:
    """获取当前生效的数值配置"""
    return config_manager.get_balance()
