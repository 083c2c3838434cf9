"""
阵容数据Repository
提供阵容的读写接口，包含"同一玩家只有一个激活阵容"的原子切换
作者: lx
日期: 2025-06-20
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from ..core.mongo_client import MongoClient
from ..models.formation_model import FormationModel

logger = logging.getLogger(__name__)


def sort_formations(formations: List[FormationModel]) -> List[FormationModel]:
    """
    阵容排序：激活阵容在前，其次按最后使用时间倒序，再按创建时间倒序

    未使用过的阵容排在使用过的之后
    """
    ordered = sorted(formations, key=lambda f: f.created_at, reverse=True)
    ordered = sorted(
        ordered,
        key=lambda f: (f.last_used_at is not None, f.last_used_at or datetime.min),
        reverse=True
    )
    return sorted(ordered, key=lambda f: not f.is_active)


class FormationRepository(ABC):
    """阵容仓库基类"""

    @abstractmethod
    async def get(self, owner_id: str, server_id: str, formation_id: str) -> Optional[FormationModel]:
        """按ID获取玩家的阵容"""

    @abstractmethod
    async def find_by_name(
        self,
        owner_id: str,
        server_id: str,
        name: str,
        exclude_id: Optional[str] = None
    ) -> Optional[FormationModel]:
        """按名称查找阵容，exclude_id 用于更新时排除自身"""

    @abstractmethod
    async def list_by_owner(self, owner_id: str, server_id: str) -> List[FormationModel]:
        """获取玩家的所有阵容（已排序）"""

    @abstractmethod
    async def count_by_owner(self, owner_id: str, server_id: str) -> int:
        """统计玩家的阵容数量"""

    @abstractmethod
    async def get_active(self, owner_id: str, server_id: str) -> Optional[FormationModel]:
        """获取玩家当前激活的阵容"""

    @abstractmethod
    async def insert(self, formation: FormationModel) -> FormationModel:
        """新增阵容"""

    @abstractmethod
    async def save(self, formation: FormationModel) -> FormationModel:
        """保存阵容（整体覆盖）"""

    @abstractmethod
    async def delete(self, owner_id: str, server_id: str, formation_id: str) -> bool:
        """删除阵容"""

    @abstractmethod
    async def deactivate_all(
        self,
        owner_id: str,
        server_id: str,
        exclude_id: Optional[str] = None
    ) -> int:
        """取消玩家所有阵容的激活状态，返回受影响数量"""

    @abstractmethod
    async def activate_exclusive(
        self,
        owner_id: str,
        server_id: str,
        formation_id: str,
        used_at: datetime
    ) -> Optional[FormationModel]:
        """
        激活指定阵容并取消其余阵容的激活状态

        调用方需持有该玩家的锁，保证切换过程不被并发打断
        """


class InMemoryFormationRepository(FormationRepository):
    """内存阵容仓库，用于单进程部署和测试"""

    def __init__(self):
        self._formations: Dict[str, FormationModel] = {}
        self._lock = asyncio.Lock()

    def _owned(self, owner_id: str, server_id: str) -> List[FormationModel]:
        return [
            f for f in self._formations.values()
            if f.owner_id == owner_id and f.server_id == server_id
        ]

    async def get(self, owner_id: str, server_id: str, formation_id: str) -> Optional[FormationModel]:
        formation = self._formations.get(formation_id)
        if formation is None or formation.owner_id != owner_id or formation.server_id != server_id:
            return None
        return formation.model_copy(deep=True)

    async def find_by_name(
        self,
        owner_id: str,
        server_id: str,
        name: str,
        exclude_id: Optional[str] = None
    ) -> Optional[FormationModel]:
        for formation in self._owned(owner_id, server_id):
            if formation.name == name and formation.formation_id != exclude_id:
                return formation.model_copy(deep=True)
        return None

    async def list_by_owner(self, owner_id: str, server_id: str) -> List[FormationModel]:
        return [f.model_copy(deep=True) for f in sort_formations(self._owned(owner_id, server_id))]

    async def count_by_owner(self, owner_id: str, server_id: str) -> int:
        return len(self._owned(owner_id, server_id))

    async def get_active(self, owner_id: str, server_id: str) -> Optional[FormationModel]:
        for formation in self._owned(owner_id, server_id):
            if formation.is_active:
                return formation.model_copy(deep=True)
        return None

    async def insert(self, formation: FormationModel) -> FormationModel:
        async with self._lock:
            if formation.formation_id in self._formations:
                raise KeyError(f"Formation already exists: {formation.formation_id}")
            self._formations[formation.formation_id] = formation.model_copy(deep=True)
        return formation

    async def save(self, formation: FormationModel) -> FormationModel:
        async with self._lock:
            if formation.formation_id not in self._formations:
                raise KeyError(f"Formation not found: {formation.formation_id}")
            self._formations[formation.formation_id] = formation.model_copy(deep=True)
        return formation

    async def delete(self, owner_id: str, server_id: str, formation_id: str) -> bool:
        async with self._lock:
            formation = self._formations.get(formation_id)
            if formation is None or formation.owner_id != owner_id or formation.server_id != server_id:
                return False
            del self._formations[formation_id]
            return True

    async def deactivate_all(
        self,
        owner_id: str,
        server_id: str,
        exclude_id: Optional[str] = None
    ) -> int:
        async with self._lock:
            return self._deactivate_unlocked(owner_id, server_id, exclude_id)

    def _deactivate_unlocked(self, owner_id: str, server_id: str, exclude_id: Optional[str]) -> int:
        changed = 0
        for formation in self._owned(owner_id, server_id):
            if formation.is_active and formation.formation_id != exclude_id:
                formation.is_active = False
                formation.touch()
                changed += 1
        return changed

    async def activate_exclusive(
        self,
        owner_id: str,
        server_id: str,
        formation_id: str,
        used_at: datetime
    ) -> Optional[FormationModel]:
        async with self._lock:
            target = self._formations.get(formation_id)
            if target is None or target.owner_id != owner_id or target.server_id != server_id:
                return None

            # 取消其余阵容和激活目标阵容在同一个临界区内完成
            self._deactivate_unlocked(owner_id, server_id, formation_id)
            target.is_active = True
            target.last_used_at = used_at
            target.touch()
            return target.model_copy(deep=True)


class MongoFormationRepository(FormationRepository):
    """基于MongoDB的阵容仓库"""

    def __init__(self, mongo_client: MongoClient, collection_name: str = "formations"):
        """
        初始化仓库

        Args:
            mongo_client: MongoDB客户端
            collection_name: 集合名称
        """
        self.mongo = mongo_client
        self.collection_name = collection_name

    @property
    def collection(self):
        return self.mongo[self.collection_name]

    async def ensure_indexes(self) -> None:
        """创建阵容集合索引"""
        for keys in FormationModel.Meta.indexes:
            await self.collection.create_index(keys)
        logger.info(f"阵容集合索引已就绪: {self.collection_name}")

    @staticmethod
    def _owner_filter(owner_id: str, server_id: str) -> dict:
        return {"owner_id": owner_id, "server_id": server_id}

    async def get(self, owner_id: str, server_id: str, formation_id: str) -> Optional[FormationModel]:
        query = self._owner_filter(owner_id, server_id)
        query["_id"] = formation_id
        document = await self.collection.find_one(query)
        return FormationModel.from_document(document) if document else None

    async def find_by_name(
        self,
        owner_id: str,
        server_id: str,
        name: str,
        exclude_id: Optional[str] = None
    ) -> Optional[FormationModel]:
        query = self._owner_filter(owner_id, server_id)
        query["name"] = name
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        document = await self.collection.find_one(query)
        return FormationModel.from_document(document) if document else None

    async def list_by_owner(self, owner_id: str, server_id: str) -> List[FormationModel]:
        cursor = self.collection.find(self._owner_filter(owner_id, server_id)).sort(
            [("is_active", -1), ("last_used_at", -1), ("created_at", -1)]
        )
        documents = await cursor.to_list(length=None)
        return [FormationModel.from_document(document) for document in documents]

    async def count_by_owner(self, owner_id: str, server_id: str) -> int:
        return await self.collection.count_documents(self._owner_filter(owner_id, server_id))

    async def get_active(self, owner_id: str, server_id: str) -> Optional[FormationModel]:
        query = self._owner_filter(owner_id, server_id)
        query["is_active"] = True
        document = await self.collection.find_one(query)
        return FormationModel.from_document(document) if document else None

    async def insert(self, formation: FormationModel) -> FormationModel:
        await self.collection.insert_one(formation.to_document())
        return formation

    async def save(self, formation: FormationModel) -> FormationModel:
        result = await self.collection.replace_one(
            {"_id": formation.formation_id},
            formation.to_document()
        )
        if result.matched_count == 0:
            raise KeyError(f"Formation not found: {formation.formation_id}")
        return formation

    async def delete(self, owner_id: str, server_id: str, formation_id: str) -> bool:
        query = self._owner_filter(owner_id, server_id)
        query["_id"] = formation_id
        result = await self.collection.delete_one(query)
        return result.deleted_count > 0

    async def deactivate_all(
        self,
        owner_id: str,
        server_id: str,
        exclude_id: Optional[str] = None
    ) -> int:
        query = self._owner_filter(owner_id, server_id)
        query["is_active"] = True
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        result = await self.collection.update_many(
            query,
            {"$set": {"is_active": False, "updated_at": datetime.now()}, "$inc": {"version": 1}}
        )
        return result.modified_count

    async def activate_exclusive(
        self,
        owner_id: str,
        server_id: str,
        formation_id: str,
        used_at: datetime
    ) -> Optional[FormationModel]:
        await self.deactivate_all(owner_id, server_id, exclude_id=formation_id)

        query = self._owner_filter(owner_id, server_id)
        query["_id"] = formation_id
        result = await self.collection.update_one(
            query,
            {
                "$set": {"is_active": True, "last_used_at": used_at, "updated_at": datetime.now()},
                "$inc": {"version": 1}
            }
        )
        if result.matched_count == 0:
            return None
        return await self.get(owner_id, server_id, formation_id)
