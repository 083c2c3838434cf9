"""
阵容服务模块
Formation Service Module

作者: lx
日期: 2025-06-20
描述: 阵容编成、战力与羁绊计算、开战前胜率预估
"""

__version__ = "1.0.0"
