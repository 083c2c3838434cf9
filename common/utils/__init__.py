"""
统一工具模块
作者: lx
日期: 2025-06-20
"""
from .error_handler import ErrorHandler, service_result
from .tables import ThresholdTable, round_half_up

__all__ = [
    # 错误处理
    'ErrorHandler', 'service_result',
    # 查表与取整
    'ThresholdTable', 'round_half_up'
]
