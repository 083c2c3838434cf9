"""
数据模型模块
作者: lx
日期: 2025-06-20
"""
from .base_document import BaseDocument
from .formation_model import FormationModel, RosterSlot, generate_formation_id

__all__ = [
    'BaseDocument',
    'FormationModel', 'RosterSlot', 'generate_formation_id',
]
