"""
配置管理模块
Configuration Module

作者: lx
日期: 2025-06-18
描述: 阵容数值配置的定义、加载和管理
"""

from .base_config import (
    BaseConfig, ElementBonusConfig, SynergyConfig, PowerFormulaConfig,
    FormationRulesConfig, BattleEstimationConfig, FormationBalanceConfig,
    ConfigManager, config_manager, get_config_manager, get_balance
)
from .config_loader import (
    ConfigLoader, ConfigVersion
)

__all__ = [
    # 配置类
    'BaseConfig',
    'ElementBonusConfig',
    'SynergyConfig',
    'PowerFormulaConfig',
    'FormationRulesConfig',
    'BattleEstimationConfig',
    'FormationBalanceConfig',

    # 配置管理器
    'ConfigManager',
    'config_manager',
    'get_config_manager',
    'get_balance',

    # 配置加载器
    'ConfigLoader',
    'ConfigVersion'
]
