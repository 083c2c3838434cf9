"""
具体仓库实现模块
作者: lx
日期: 2025-06-20
"""
from .formation_repository import (
    FormationRepository,
    InMemoryFormationRepository,
    MongoFormationRepository,
    sort_formations
)

__all__ = [
    'FormationRepository',
    'InMemoryFormationRepository',
    'MongoFormationRepository',
    'sort_formations'
]
