"""
阵容服务返回结果
Formation Service Results

作者: lx
日期: 2025-06-20
描述: 统一的成功/失败结果封装，以及阵容属性统计、战斗预览等只读视图
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from common.database.models import FormationModel, RosterSlot
from common.exceptions import GameException

from ..core.battle_estimator import EnemyPreview, VictoryEstimation
from ..core.roster_validator import ValidationResult
from ..core.synergy import SynergyResult


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _slots_to_dict(slots: List[RosterSlot]) -> List[Dict[str, Any]]:
    return [slot.model_dump() for slot in slots]


@dataclass
class FormationStats:
    """阵容属性统计"""
    total_power: int = 0
    hero_count: int = 0
    role_distribution: Dict[str, int] = field(default_factory=dict)
    element_distribution: Dict[str, int] = field(default_factory=dict)
    average_level: float = 0.0
    average_stars: float = 0.0
    front_line_count: int = 0
    back_line_count: int = 0
    synergies: SynergyResult = field(default_factory=SynergyResult)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_power": self.total_power,
            "hero_count": self.hero_count,
            "role_distribution": dict(self.role_distribution),
            "element_distribution": dict(self.element_distribution),
            "average_level": self.average_level,
            "average_stars": self.average_stars,
            "front_line_count": self.front_line_count,
            "back_line_count": self.back_line_count,
            "synergies": self.synergies.to_dict(),
        }


@dataclass
class FormationView:
    """阵容展示视图"""
    formation_id: str
    name: str
    slots: List[RosterSlot]
    is_active: bool
    last_used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    heroes: Optional[List[Dict[str, Any]]] = None
    stats: Optional[FormationStats] = None

    @classmethod
    def from_model(
        cls,
        formation: FormationModel,
        heroes: Optional[List[Dict[str, Any]]] = None,
        stats: Optional[FormationStats] = None
    ) -> "FormationView":
        return cls(
            formation_id=formation.formation_id,
            name=formation.name,
            slots=list(formation.slots),
            is_active=formation.is_active,
            last_used_at=formation.last_used_at,
            created_at=formation.created_at,
            updated_at=formation.updated_at,
            heroes=heroes,
            stats=stats
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "formation_id": self.formation_id,
            "name": self.name,
            "slots": _slots_to_dict(self.slots),
            "is_active": self.is_active,
            "last_used_at": _isoformat(self.last_used_at),
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }
        if self.heroes is not None:
            data["heroes"] = self.heroes
        if self.stats is not None:
            data["stats"] = self.stats.to_dict()
        return data


@dataclass
class FormationResult:
    """阵容操作结果"""
    success: bool
    formation: Optional[FormationView] = None
    formations: Optional[List[FormationView]] = None
    stats: Optional[FormationStats] = None
    validation: Optional[ValidationResult] = None
    error: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def ok(cls, **kwargs) -> "FormationResult":
        return cls(success=True, **kwargs)

    @classmethod
    def failure(cls, error: GameException) -> "FormationResult":
        return cls(
            success=False,
            validation=error.validation,
            error=error.message,
            code=error.code
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success}
        if self.formation is not None:
            data["formation"] = self.formation.to_dict()
        if self.formations is not None:
            data["formations"] = [formation.to_dict() for formation in self.formations]
        if self.stats is not None:
            data["stats"] = self.stats.to_dict()
        if self.validation is not None:
            data["validation"] = self.validation.to_dict()
        if self.error is not None:
            data["error"] = self.error
            data["code"] = self.code
        return data


@dataclass
class StageInfo:
    """关卡信息"""
    world_id: int
    level_id: int
    difficulty: str
    enemy_type: str
    recommended: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "world_id": self.world_id,
            "level_id": self.level_id,
            "difficulty": self.difficulty,
            "enemy_type": self.enemy_type,
            "recommended": self.recommended,
        }


@dataclass
class PlayerFormationSummary:
    """参战阵容概要，source 为 active（激活阵容）或 equipped（已装备英雄）"""
    slots: List[RosterSlot] = field(default_factory=list)
    heroes: List[Dict[str, Any]] = field(default_factory=list)
    total_power: int = 0
    source: str = "active"
    formation_id: Optional[str] = None
    name: Optional[str] = None
    stats: Optional[FormationStats] = None

    @property
    def hero_count(self) -> int:
        return len(self.heroes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "formation_id": self.formation_id,
            "name": self.name,
            "source": self.source,
            "slots": _slots_to_dict(self.slots),
            "heroes": self.heroes,
            "total_power": self.total_power,
            "stats": self.stats.to_dict() if self.stats else None,
        }


@dataclass
class BattlePreview:
    """关卡战斗预览"""
    stage: StageInfo
    player_formation: PlayerFormationSummary
    enemies: EnemyPreview
    estimation: VictoryEstimation
    progress: Dict[str, Any]
    can_start: bool
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage.to_dict(),
            "player_formation": self.player_formation.to_dict(),
            "enemies": self.enemies.to_dict(),
            "estimation": self.estimation.to_dict(),
            "progress": dict(self.progress),
            "can_start": self.can_start,
            "warnings": list(self.warnings),
        }


@dataclass
class CombatantSummary:
    """竞技场对战一方的概要"""
    owner_id: str
    power: int
    formation: Optional[FormationView] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner_id": self.owner_id,
            "power": self.power,
            "formation": self.formation.to_dict() if self.formation else None,
        }


@dataclass
class ArenaPreview:
    """玩家对战预览"""
    player: CombatantSummary
    opponent: CombatantSummary
    estimation: VictoryEstimation
    can_start: bool
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player": self.player.to_dict(),
            "opponent": self.opponent.to_dict(),
            "estimation": self.estimation.to_dict(),
            "can_start": self.can_start,
            "warnings": list(self.warnings),
        }


@dataclass
class TemporaryFormationPreview:
    """临时阵容校验预览"""
    validation: ValidationResult
    stats: FormationStats
    heroes: List[Dict[str, Any]] = field(default_factory=list)
    estimation: Optional[VictoryEstimation] = None

    @property
    def valid(self) -> bool:
        return self.validation.valid

    def to_dict(self) -> Dict[str, Any]:
        data = self.validation.to_dict()
        data.update({
            "stats": self.stats.to_dict(),
            "heroes": self.heroes,
            "estimation": self.estimation.to_dict() if self.estimation else None,
        })
        return data


@dataclass
class PreviewResult:
    """战斗预览结果"""
    success: bool
    preview: Optional[Any] = None
    validation: Optional[ValidationResult] = None
    error: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def ok(cls, preview: Any, validation: Optional[ValidationResult] = None) -> "PreviewResult":
        return cls(success=True, preview=preview, validation=validation)

    @classmethod
    def failure(cls, error: GameException) -> "PreviewResult":
        return cls(
            success=False,
            validation=error.validation,
            error=error.message,
            code=error.code
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success}
        if self.preview is not None:
            data["preview"] = self.preview.to_dict()
        if self.validation is not None:
            data["validation"] = self.validation.to_dict()
        if self.error is not None:
            data["error"] = self.error
            data["code"] = self.code
        return data
