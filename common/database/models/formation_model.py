"""
阵容数据模型
纯数据定义，不包含任何业务逻辑
作者: mrkingu
日期: 2025-06-20
"""
import random
import string
import time
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from .base_document import BaseDocument

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_formation_id() -> str:
    """生成阵容ID: FORM_<毫秒时间戳>_<9位随机字符>"""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"FORM_{int(time.time() * 1000)}_{suffix}"


class RosterSlot(BaseModel):
    """阵容槽位：站位 + 英雄实例引用"""

    position: int = Field(..., description="站位")
    hero_ref: str = Field(..., description="英雄实例ID")


class FormationModel(BaseDocument):
    """阵容数据模型"""

    formation_id: str = Field(default_factory=generate_formation_id, alias="_id", description="阵容ID")
    owner_id: str = Field(..., description="玩家ID")
    server_id: str = Field(..., description="服务器ID")
    name: str = Field(..., description="阵容名称")
    slots: List[RosterSlot] = Field(default_factory=list, description="阵容槽位")
    is_active: bool = Field(default=False, description="是否为当前使用阵容")
    last_used_at: Optional[datetime] = Field(default=None, description="最后使用时间")

    class Meta:
        """元数据配置"""
        collection = "formations"

        # 索引定义
        indexes = [
            [("owner_id", 1), ("server_id", 1), ("name", 1)],
            [("owner_id", 1), ("server_id", 1), ("is_active", 1)],
        ]

    def is_empty(self) -> bool:
        return len(self.slots) == 0

    def is_full(self, max_slots: int = 5) -> bool:
        return len(self.slots) >= max_slots

    def hero_refs(self) -> List[str]:
        return [slot.hero_ref for slot in self.slots]

    def to_document(self) -> dict:
        """转换为MongoDB文档"""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_document(cls, document: dict) -> "FormationModel":
        """从MongoDB文档构造"""
        return cls.model_validate(document)
