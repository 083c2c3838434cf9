"""
测试配置文件
Test Configuration File

作者: lx
日期: 2025-06-20
描述: pytest fixtures、内存英雄数据、Mock MongoDB集合、Mock Redis客户端
"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import copy
import time
from typing import Any, Dict, List, Optional

import pytest

from common.config import get_config_manager
from common.database.distributed_lock import LocalLockProvider
from common.database.models import RosterSlot
from common.database.repositories import InMemoryFormationRepository
from services.formation.core.heroes import BaseStats, HeroTemplate, RosterEntry
from services.formation.providers import InMemoryRosterProvider, InMemoryStageProgressProvider
from services.formation.services import BattleSetupService, FormationService

OWNER = "player_1"
OPPONENT = "player_2"
EMPTY_OWNER = "player_empty"
SERVER = "S1"


# ---------- 英雄数据 ----------

HERO_TEMPLATES = [
    HeroTemplate("H_TANK", "Ironwall", "Tank", "Fire", BaseStats(hp=1000, atk=100, def_=100), "Rare"),
    HeroTemplate("H_WARRIOR", "Blade", "DPS Melee", "Fire", BaseStats(hp=800, atk=150, def_=50), "Common"),
    HeroTemplate("H_ARCHER", "Swift", "DPS Ranged", "Water", BaseStats(hp=600, atk=200, def_=30), "Common"),
    HeroTemplate("H_PRIEST", "Dawn", "Support", "Light", BaseStats(hp=700, atk=80, def_=40), "Epic"),
    HeroTemplate("H_MAGE", "Ember", "DPS Ranged", "Fire", BaseStats(hp=500, atk=220, def_=20), "Rare"),
    HeroTemplate("H_KNIGHT", "Bulwark", "Tank", "Water", BaseStats(hp=1200, atk=90, def_=120), "Epic"),
    HeroTemplate("H_SHADOW", "Dusk", "DPS Melee", "Dark", BaseStats(hp=650, atk=180, def_=40), "Legendary"),
]

# 1级1星战力: tank 400, warrior 330, archer 320, priest 230, mage 310, knight 450, shadow 325
HERO_POWER = {
    "inst_tank": 400,
    "inst_warrior": 330,
    "inst_archer": 320,
    "inst_priest": 230,
    "inst_mage": 310,
    "inst_knight": 450,
    "inst_shadow": 325,
}


def build_roster_provider() -> InMemoryRosterProvider:
    """构造测试用英雄数据"""
    provider = InMemoryRosterProvider(HERO_TEMPLATES)
    provider.add_owner(OWNER, SERVER, [
        RosterEntry("inst_tank", "H_TANK", equipped=True),
        RosterEntry("inst_warrior", "H_WARRIOR", equipped=True),
        RosterEntry("inst_archer", "H_ARCHER", equipped=True),
        RosterEntry("inst_priest", "H_PRIEST"),
        RosterEntry("inst_mage", "H_MAGE"),
        RosterEntry("inst_knight", "H_KNIGHT"),
        RosterEntry("inst_shadow", "H_SHADOW"),
        RosterEntry("inst_ghost", "H_MISSING"),
    ])
    provider.add_owner(OPPONENT, SERVER, [
        RosterEntry("opp_knight", "H_KNIGHT", level=10, stars=3),
        RosterEntry("opp_mage", "H_MAGE", level=10, stars=3),
        RosterEntry("opp_priest", "H_PRIEST", level=10, stars=3),
    ])
    provider.add_owner(EMPTY_OWNER, SERVER)
    return provider


def make_slots(*refs: str) -> List[RosterSlot]:
    """按顺序生成 1..n 号站位"""
    return [RosterSlot(position=index + 1, hero_ref=ref) for index, ref in enumerate(refs)]


FULL_TEAM = ("inst_tank", "inst_knight", "inst_archer", "inst_priest", "inst_mage")


@pytest.fixture(autouse=True)
def reset_balance():
    """每个测试使用默认数值配置"""
    get_config_manager().reset()
    yield
    get_config_manager().reset()


@pytest.fixture
def roster_provider():
    return build_roster_provider()


@pytest.fixture
def repository():
    return InMemoryFormationRepository()


@pytest.fixture
def progress_provider():
    return InMemoryStageProgressProvider()


@pytest.fixture
def events():
    """事件回调收集器"""
    received = []

    async def sink(event: str, payload: Dict[str, Any]) -> None:
        received.append((event, payload))

    sink.received = received
    return sink


@pytest.fixture
def formation_service(repository, roster_provider, events):
    return FormationService(
        repository=repository,
        roster_provider=roster_provider,
        lock_provider=LocalLockProvider(),
        event_sink=events
    )


@pytest.fixture
def battle_service(formation_service, progress_provider):
    return BattleSetupService(formation_service, progress_provider=progress_provider)


# ---------- Mock MongoDB ----------

def _matches(document: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, expected in query.items():
        value = document.get(key)
        if isinstance(expected, dict) and "$ne" in expected:
            if value == expected["$ne"]:
                return False
        elif value != expected:
            return False
    return True


class MockResult:
    """模拟写操作结果"""

    def __init__(self, matched_count: int = 0, modified_count: int = 0, deleted_count: int = 0):
        self.matched_count = matched_count
        self.modified_count = modified_count
        self.deleted_count = deleted_count


class MockCursor:
    """模拟Motor游标"""

    def __init__(self, documents: List[Dict[str, Any]]):
        self._documents = documents

    def sort(self, keys):
        # 从最后一个排序键开始做稳定排序，None 视为最小值
        for key, direction in reversed(keys):
            self._documents.sort(
                key=lambda d: (d.get(key) is not None, d.get(key) if d.get(key) is not None else 0),
                reverse=direction == -1
            )
        return self

    async def to_list(self, length: Optional[int] = None):
        return list(self._documents if length is None else self._documents[:length])


class MockCollection:
    """模拟Motor集合，只实现阵容仓库用到的操作"""

    def __init__(self):
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.indexes: List[Any] = []

    async def create_index(self, keys):
        self.indexes.append(keys)
        return "_".join(f"{key}_{direction}" for key, direction in keys)

    async def find_one(self, query):
        for document in self.documents.values():
            if _matches(document, query):
                return copy.deepcopy(document)
        return None

    def find(self, query):
        return MockCursor([copy.deepcopy(d) for d in self.documents.values() if _matches(d, query)])

    async def count_documents(self, query):
        return sum(1 for d in self.documents.values() if _matches(d, query))

    async def insert_one(self, document):
        if document["_id"] in self.documents:
            raise ValueError(f"duplicate key: {document['_id']}")
        self.documents[document["_id"]] = copy.deepcopy(document)

    async def replace_one(self, query, document):
        for key, existing in self.documents.items():
            if _matches(existing, query):
                self.documents[key] = copy.deepcopy(document)
                return MockResult(matched_count=1, modified_count=1)
        return MockResult()

    async def delete_one(self, query):
        for key, existing in list(self.documents.items()):
            if _matches(existing, query):
                del self.documents[key]
                return MockResult(deleted_count=1)
        return MockResult()

    def _apply(self, document, update):
        for key, value in update.get("$set", {}).items():
            document[key] = value
        for key, value in update.get("$inc", {}).items():
            document[key] = document.get(key, 0) + value

    async def update_many(self, query, update):
        modified = 0
        for document in self.documents.values():
            if _matches(document, query):
                self._apply(document, update)
                modified += 1
        return MockResult(matched_count=modified, modified_count=modified)

    async def update_one(self, query, update):
        for document in self.documents.values():
            if _matches(document, query):
                self._apply(document, update)
                return MockResult(matched_count=1, modified_count=1)
        return MockResult()


class MockMongoClient:
    """模拟 MongoClient 的集合访问"""

    def __init__(self):
        self.collections: Dict[str, MockCollection] = {}

    def __getitem__(self, name: str) -> MockCollection:
        return self.collections.setdefault(name, MockCollection())


@pytest.fixture
def mock_mongo():
    return MockMongoClient()


# ---------- Mock Redis ----------

class MockRedis:
    """模拟redis.asyncio客户端，支持分布式锁用到的命令"""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.expires: Dict[str, float] = {}
        self.fail = False

    def _purge(self, key: str) -> None:
        expire_at = self.expires.get(key)
        if expire_at is not None and expire_at <= time.time():
            self.data.pop(key, None)
            self.expires.pop(key, None)

    async def set(self, key, value, ex=None, nx=False):
        if self.fail:
            raise ConnectionError("redis unavailable")
        self._purge(key)
        if nx and key in self.data:
            return None
        self.data[key] = value
        if ex is not None:
            self.expires[key] = time.time() + ex
        return True

    async def get(self, key):
        self._purge(key)
        return self.data.get(key)

    async def ttl(self, key):
        self._purge(key)
        if key not in self.data:
            return -2
        if key not in self.expires:
            return -1
        return int(self.expires[key] - time.time())

    async def eval(self, script, numkeys, key, value, *args):
        self._purge(key)
        if self.data.get(key) != value:
            return 0
        if "expire" in script:
            self.expires[key] = time.time() + int(args[0])
            return 1
        del self.data[key]
        self.expires.pop(key, None)
        return 1


@pytest.fixture
def mock_redis():
    return MockRedis()
