"""
元素羁绊计算
Element Synergy Resolver

作者: lx
日期: 2025-06-20
描述: 同元素英雄达到数量门槛时获得属性百分比加成。普通元素和稀有元素各有一张阈值表，
      按"最近下界"规则查表；整队只生效生命加成最高的那个元素的加成
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from common.config import ElementBonusConfig, SynergyConfig, get_balance
from common.utils.tables import ThresholdTable


@dataclass(frozen=True)
class ElementBonus:
    """属性加成（百分比）"""
    hp_pct: int = 0
    atk_pct: int = 0
    def_pct: int = 0

    @classmethod
    def from_config(cls, config: ElementBonusConfig) -> "ElementBonus":
        return cls(hp_pct=config.hp_pct, atk_pct=config.atk_pct, def_pct=config.def_pct)

    def is_zero(self) -> bool:
        return self.hp_pct == 0 and self.atk_pct == 0 and self.def_pct == 0

    def to_dict(self) -> Dict[str, int]:
        return {"hp": self.hp_pct, "atk": self.atk_pct, "def": self.def_pct}


ZERO_BONUS = ElementBonus()


@dataclass
class SynergyDetail:
    """单个元素的羁绊明细"""
    element: str
    count: int
    bonus: ElementBonus
    is_rare: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "element": self.element,
            "count": self.count,
            "bonus": self.bonus.to_dict(),
            "is_rare": self.is_rare,
        }


@dataclass
class SynergyResult:
    """阵容羁绊结果: bonuses 为实际生效的加成，details 列出所有达标元素"""
    bonuses: ElementBonus = ZERO_BONUS
    details: List[SynergyDetail] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bonuses": self.bonuses.to_dict(),
            "details": [detail.to_dict() for detail in self.details],
        }


class SynergyBonusResolver:
    """元素羁绊查表"""

    def __init__(self, config: Optional[SynergyConfig] = None):
        """
        Args:
            config: 羁绊配置，默认使用当前生效的数值配置
        """
        self.config = config or get_balance().synergy
        self._standard = ThresholdTable(
            ((threshold, ElementBonus.from_config(bonus)) for threshold, bonus in self.config.standard.items()),
            default=ZERO_BONUS
        )
        self._rare = ThresholdTable(
            ((threshold, ElementBonus.from_config(bonus)) for threshold, bonus in self.config.rare.items()),
            default=ZERO_BONUS
        )
        self._rare_elements = frozenset(self.config.rare_elements)

    def is_rare(self, element: str) -> bool:
        return element in self._rare_elements

    def get_element_bonus(self, element: str, count: int) -> ElementBonus:
        """
        查询元素加成

        Args:
            element: 元素名
            count: 阵容中该元素的英雄数量

        Returns:
            不超过 count 的最大门槛对应的加成，不足最低门槛时为零加成
        """
        table = self._rare if self.is_rare(element) else self._standard
        return table.lookup(count)

    def calculate_formation_synergies(self, element_counts: Mapping[str, int]) -> SynergyResult:
        """
        计算整队羁绊

        Args:
            element_counts: 元素 -> 英雄数量

        Returns:
            生命加成最高的元素加成作为生效加成（相同时保留先出现的），明细列出全部达标元素
        """
        result = SynergyResult()

        for element, count in element_counts.items():
            if count < self.config.min_count:
                continue

            bonus = self.get_element_bonus(element, count)
            result.details.append(SynergyDetail(
                element=element,
                count=count,
                bonus=bonus,
                is_rare=self.is_rare(element)
            ))

            # 不同元素的加成不叠加，只取最高的一个
            if bonus.hp_pct > result.bonuses.hp_pct:
                result.bonuses = bonus

        return result


def get_element_bonus(element: str, count: int) -> ElementBonus:
    """按当前配置查询元素加成"""
    return SynergyBonusResolver().get_element_bonus(element, count)


def calculate_formation_synergies(element_counts: Mapping[str, int]) -> SynergyResult:
    """按当前配置计算整队羁绊"""
    return SynergyBonusResolver().calculate_formation_synergies(element_counts)
