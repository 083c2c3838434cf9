"""
文档基类
所有MongoDB文档的基类，只包含基础字段
作者: mrkingu
日期: 2025-06-20
"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime


class BaseDocument(BaseModel):
    """基础文档类 - 只包含数据定义"""

    model_config = ConfigDict(
        validate_assignment=True,
        populate_by_name=True
    )

    # 基础字段
    created_at: datetime = Field(default_factory=datetime.now, description="创建时间")
    updated_at: datetime = Field(default_factory=datetime.now, description="更新时间")
    version: int = Field(default=1, description="版本号")

    def touch(self) -> None:
        """标记文档已修改：刷新更新时间并递增版本号"""
        self.updated_at = datetime.now()
        self.version += 1
