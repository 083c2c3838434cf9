"""
英雄数据提供者
Roster Provider

作者: lx
日期: 2025-06-20
描述: 阵容模块对英雄系统的只读依赖：英雄模板查询和玩家英雄列表查询
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Tuple

from ..core.heroes import HeroTemplate, OwnedHero, OwnedRoster, RosterEntry

logger = logging.getLogger(__name__)


class RosterProvider(ABC):
    """英雄数据提供者接口"""

    @abstractmethod
    async def get_hero(self, hero_id: str) -> Optional[HeroTemplate]:
        """获取英雄模板，不存在返回None"""

    @abstractmethod
    async def get_owner_roster(self, owner_id: str, server_id: str) -> Optional[List[RosterEntry]]:
        """获取玩家拥有的英雄，玩家不存在返回None"""


class InMemoryRosterProvider(RosterProvider):
    """内存英雄数据，用于单进程部署和测试"""

    def __init__(self, heroes: Optional[Iterable[HeroTemplate]] = None):
        self._heroes: Dict[str, HeroTemplate] = {}
        self._rosters: Dict[Tuple[str, str], List[RosterEntry]] = {}
        for hero in heroes or ():
            self.add_hero(hero)

    def add_hero(self, hero: HeroTemplate) -> None:
        self._heroes[hero.hero_id] = hero

    def add_owner(
        self,
        owner_id: str,
        server_id: str,
        entries: Optional[Iterable[RosterEntry]] = None
    ) -> None:
        """登记玩家（可以没有英雄）"""
        self._rosters[(owner_id, server_id)] = list(entries or ())

    def add_roster_entry(self, owner_id: str, server_id: str, entry: RosterEntry) -> None:
        self._rosters.setdefault((owner_id, server_id), []).append(entry)

    async def get_hero(self, hero_id: str) -> Optional[HeroTemplate]:
        return self._heroes.get(hero_id)

    async def get_owner_roster(self, owner_id: str, server_id: str) -> Optional[List[RosterEntry]]:
        entries = self._rosters.get((owner_id, server_id))
        if entries is None:
            return None
        return list(entries)


async def load_owned_heroes(
    provider: RosterProvider,
    owner_id: str,
    server_id: str
) -> Optional[OwnedRoster]:
    """
    加载玩家英雄表并关联英雄模板

    Args:
        provider: 英雄数据提供者
        owner_id: 玩家ID
        server_id: 服务器ID

    Returns:
        实例ID -> 英雄，玩家不存在返回None
    """
    entries = await provider.get_owner_roster(owner_id, server_id)
    if entries is None:
        return None

    hero_ids = list(dict.fromkeys(entry.hero_id for entry in entries))
    templates = await asyncio.gather(*(provider.get_hero(hero_id) for hero_id in hero_ids))
    template_map = dict(zip(hero_ids, templates))

    missing = [hero_id for hero_id, template in template_map.items() if template is None]
    if missing:
        logger.warning(f"英雄模板缺失: owner={owner_id} heroes={missing}")

    return {
        entry.instance_id: OwnedHero(entry=entry, template=template_map.get(entry.hero_id))
        for entry in entries
    }
