"""
战力计算
Power Scorer

作者: lx
日期: 2025-06-20
描述: 英雄战力和阵容总战力的确定性计算，纯函数，可并发调用
"""
from typing import Iterable, Optional, Sequence

from common.config import PowerFormulaConfig, get_balance
from common.database.models import RosterSlot
from common.utils.tables import round_half_up

from .heroes import BaseStats, OwnedHero, OwnedRoster


class PowerScorer:
    """战力计算器"""

    def __init__(self, formula: Optional[PowerFormulaConfig] = None):
        self.formula = formula or get_balance().power

    def stat_multiplier(self, level: int, stars: int) -> float:
        """属性倍率 = 等级成长 * 星级成长"""
        return (
            (1 + (level - 1) * self.formula.level_growth)
            * (1 + (stars - 1) * self.formula.star_growth)
        )

    def hero_power(self, base_stats: BaseStats, level: int, stars: int) -> int:
        """
        计算单个英雄战力

        Args:
            base_stats: 基础属性
            level: 等级
            stars: 星级

        Returns:
            非负整数战力
        """
        multiplier = self.stat_multiplier(level, stars)
        raw = (
            base_stats.atk * self.formula.atk_weight * multiplier
            + base_stats.def_ * self.formula.def_weight * multiplier
            + base_stats.hp / self.formula.hp_divisor * multiplier
        )
        return max(0, round_half_up(raw))

    def owned_hero_power(self, hero: OwnedHero) -> int:
        """玩家英雄战力，缺少模板数据时为0"""
        if hero.template is None:
            return 0
        return self.hero_power(hero.template.base_stats, hero.entry.level, hero.entry.stars)

    def formation_power(self, slots: Sequence[RosterSlot], roster: OwnedRoster) -> int:
        """阵容总战力，空位和无法解析的英雄计0"""
        total = 0
        for slot in slots:
            hero = roster.get(slot.hero_ref)
            if hero is not None:
                total += self.owned_hero_power(hero)
        return total

    def quick_power(self, heroes: Iterable[OwnedHero]) -> int:
        """一组英雄的战力之和"""
        return sum(self.owned_hero_power(hero) for hero in heroes)


def calculate_hero_power(base_stats: BaseStats, level: int, stars: int) -> int:
    """按当前配置计算英雄战力"""
    return PowerScorer().hero_power(base_stats, level, stars)
