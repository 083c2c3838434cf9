"""
英雄数据定义
Hero Data Definitions

作者: lx
日期: 2025-06-20
描述: 阵容计算用到的英雄模板、玩家英雄实例以及职业/元素枚举
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union


class HeroRole(str, Enum):
    """英雄职业"""
    TANK = "Tank"               # 坦克
    DPS_MELEE = "DPS Melee"     # 近战输出
    DPS_RANGED = "DPS Ranged"   # 远程输出
    SUPPORT = "Support"         # 辅助


class HeroElement(str, Enum):
    """英雄元素"""
    FIRE = "Fire"
    WATER = "Water"
    WIND = "Wind"
    ELECTRIC = "Electric"
    LIGHT = "Light"
    DARK = "Dark"


DAMAGE_ROLES = (HeroRole.DPS_MELEE.value, HeroRole.DPS_RANGED.value)


def enum_value(value: Union[Enum, str]) -> str:
    """枚举取值，普通字符串原样返回"""
    return value.value if isinstance(value, Enum) else value


@dataclass(frozen=True)
class BaseStats:
    """英雄基础属性"""
    hp: int = 0       # 生命值
    atk: int = 0      # 攻击力
    def_: int = 0     # 防御力

    def to_dict(self) -> Dict[str, int]:
        return {"hp": self.hp, "atk": self.atk, "def": self.def_}


@dataclass(frozen=True)
class HeroTemplate:
    """英雄模板（静态配置数据）"""

    hero_id: str
    name: str
    role: str
    element: str
    base_stats: BaseStats = field(default_factory=BaseStats)
    rarity: str = "Common"

    def __post_init__(self):
        # 统一存储为字符串，便于和配置中的元素名直接比较
        object.__setattr__(self, "role", enum_value(self.role))
        object.__setattr__(self, "element", enum_value(self.element))


@dataclass
class RosterEntry:
    """玩家拥有的英雄实例"""

    instance_id: str
    hero_id: str
    level: int = 1
    stars: int = 1
    equipped: bool = False


@dataclass
class OwnedHero:
    """英雄实例及其模板，模板缺失时为None"""

    entry: RosterEntry
    template: Optional[HeroTemplate] = None

    @property
    def instance_id(self) -> str:
        return self.entry.instance_id

    @property
    def has_template(self) -> bool:
        return self.template is not None

    def to_dict(self, position: Optional[int] = None, power: Optional[int] = None) -> Dict[str, Any]:
        """转换为展示用字典"""
        data: Dict[str, Any] = {
            "instance_id": self.entry.instance_id,
            "hero_id": self.entry.hero_id,
            "level": self.entry.level,
            "stars": self.entry.stars,
        }
        if self.template is not None:
            data.update({
                "name": self.template.name,
                "role": self.template.role,
                "element": self.template.element,
                "rarity": self.template.rarity,
                "base_stats": self.template.base_stats.to_dict(),
            })
        if position is not None:
            data["position"] = position
        if power is not None:
            data["power"] = power
        return data


# 玩家英雄表: 实例ID -> 英雄
OwnedRoster = Dict[str, OwnedHero]
