"""
阵容校验器
Roster Slot Validator

作者: lx
日期: 2025-06-20
描述: 阵容槽位的结构校验、归属校验、名称校验、数量上限校验，以及阵容搭配建议。
      所有可预期的违规都以 ValidationResult 返回，不抛出异常
"""
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from common.config import FormationRulesConfig, get_balance
from common.database.models import RosterSlot

from .heroes import DAMAGE_ROLES, HeroRole, OwnedRoster


@dataclass
class ValidationResult:
    """校验结果，warnings 只做提示，不影响 valid"""

    valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.valid = False

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors), "warnings": list(self.warnings)}


@dataclass
class ValidationOptions:
    """校验选项"""

    allow_empty: bool = True            # 是否允许空阵容
    check_ownership: bool = True        # 是否检查英雄归属（需要提供玩家英雄表）
    check_availability: bool = False    # 是否检查与当前激活阵容的英雄重叠


def _duplicates(values: Sequence[Any]) -> List[Any]:
    """按首次重复出现的顺序返回重复值"""
    counts = Counter(values)
    seen = []
    for value in values:
        if counts[value] > 1 and value not in seen:
            seen.append(value)
    return seen


class RosterSlotValidator:
    """阵容槽位校验器"""

    def __init__(self, rules: Optional[FormationRulesConfig] = None):
        """
        Args:
            rules: 阵容规则，默认读取当前生效的数值配置
        """
        self._rules = rules

    @property
    def rules(self) -> FormationRulesConfig:
        return self._rules or get_balance().rules

    def validate_structure(
        self,
        slots: Sequence[RosterSlot],
        options: Optional[ValidationOptions] = None,
        roster: Optional[OwnedRoster] = None,
        active_slots: Optional[Sequence[RosterSlot]] = None
    ) -> ValidationResult:
        """
        校验阵容槽位

        Args:
            slots: 候选槽位列表
            options: 校验选项
            roster: 玩家英雄表，提供时才做归属校验和搭配建议
            active_slots: 当前激活阵容的槽位，用于英雄重叠提示

        Returns:
            校验结果
        """
        options = options or ValidationOptions()
        rules = self.rules
        result = ValidationResult()

        if not slots and not options.allow_empty:
            result.add_error("Formation cannot be empty")
            return result

        if len(slots) > rules.max_slots:
            result.add_error(f"Formation cannot have more than {rules.max_slots} heroes")

        for slot in slots:
            if slot.position < rules.min_position or slot.position > rules.max_position:
                result.add_error(
                    f"Invalid position {slot.position}. "
                    f"Must be between {rules.min_position} and {rules.max_position}"
                )
            if not slot.hero_ref or not slot.hero_ref.strip():
                result.add_error(f"Invalid hero reference for position {slot.position}")

        duplicate_positions = _duplicates([slot.position for slot in slots])
        if duplicate_positions:
            result.add_error(
                f"Duplicate positions found: {', '.join(str(p) for p in duplicate_positions)}"
            )

        duplicate_refs = _duplicates([slot.hero_ref for slot in slots])
        if duplicate_refs:
            result.add_error(f"Same hero used multiple times: {', '.join(duplicate_refs)}")

        if roster is not None and options.check_ownership:
            for slot in slots:
                owned = roster.get(slot.hero_ref)
                if owned is None:
                    result.add_error(f"Hero {slot.hero_ref} is not owned by player")
                elif not owned.has_template:
                    result.add_error(f"Hero {slot.hero_ref} data not found")

        if options.check_availability and active_slots:
            active_refs = {slot.hero_ref for slot in active_slots}
            shared = [slot for slot in slots if slot.hero_ref in active_refs]
            if shared:
                result.add_warning(
                    f"{len(shared)} hero(es) are in the active formation and will be moved"
                )

        if roster is not None and slots:
            for warning in self.check_team_composition(slots, roster):
                result.add_warning(warning)

        return result

    def check_team_composition(self, slots: Sequence[RosterSlot], roster: OwnedRoster) -> List[str]:
        """
        阵容搭配建议

        Args:
            slots: 槽位列表
            roster: 玩家英雄表

        Returns:
            提示信息列表
        """
        rules = self.rules
        warnings: List[str] = []
        filled = len(slots)
        if filled == 0:
            return warnings

        roles: Counter = Counter()
        tanks_in_back = 0
        for slot in slots:
            owned = roster.get(slot.hero_ref)
            if owned is None or owned.template is None:
                continue
            roles[owned.template.role] += 1
            if owned.template.role == HeroRole.TANK.value and self.is_back_line(slot.position):
                tanks_in_back += 1

        damage_dealers = sum(roles[role] for role in DAMAGE_ROLES)

        if roles[HeroRole.TANK.value] == 0 and filled >= rules.tank_warning_min_heroes:
            warnings.append("No tank in formation - front line may be vulnerable")

        if roles[HeroRole.SUPPORT.value] == 0 and filled >= rules.support_warning_min_heroes:
            warnings.append("No support in formation - limited healing/buffs")

        if damage_dealers == 0 and filled >= rules.dps_warning_min_heroes:
            warnings.append("No DPS in formation - low damage output")

        if filled == rules.max_slots and damage_dealers >= rules.dps_heavy_threshold:
            warnings.append("Formation is very DPS-heavy - may lack survivability")

        front = sum(1 for slot in slots if self.is_front_line(slot.position))
        back = sum(1 for slot in slots if self.is_back_line(slot.position))

        if front == 0 and filled >= rules.line_warning_min_heroes:
            warnings.append("No heroes in front line (positions 1-2)")

        if back == 0 and filled >= rules.line_warning_min_heroes:
            warnings.append("No heroes in back line (positions 3-5)")

        if tanks_in_back > 0:
            warnings.append("Tank(s) placed in back line - consider moving to front")

        return warnings

    def validate_name(self, name: Optional[str]) -> ValidationResult:
        """校验阵容名称（按去除首尾空白后的结果判断）"""
        rules = self.rules
        result = ValidationResult()

        if not name or not isinstance(name, str):
            result.add_error("Formation name is required")
            return result

        trimmed = name.strip()
        if not trimmed:
            result.add_error("Formation name cannot be empty")

        if len(trimmed) > rules.name_max_length:
            result.add_error(f"Formation name cannot exceed {rules.name_max_length} characters")

        if any(char in trimmed for char in rules.invalid_name_chars):
            result.add_error("Formation name contains invalid characters")

        return result

    def check_capacity(self, current: int, limit: Optional[int] = None) -> ValidationResult:
        """
        检查玩家是否还能新建阵容

        Args:
            current: 当前阵容数量
            limit: 阵容上限，默认读取配置

        Returns:
            达到上限为错误，接近上限为提示
        """
        rules = self.rules
        limit = rules.max_formations if limit is None else limit
        result = ValidationResult()

        if current >= limit:
            result.add_error(f"Maximum number of formations reached ({limit})")
        elif current >= limit - rules.capacity_warning_margin:
            result.add_warning(f"Approaching maximum formations ({current}/{limit})")

        return result

    def is_front_line(self, position: int) -> bool:
        return position in self.rules.front_line_positions

    def is_back_line(self, position: int) -> bool:
        return position in self.rules.back_line_positions

    def get_position_zone(self, position: int) -> str:
        """站位所在区域: front / back / invalid"""
        if self.is_front_line(position):
            return "front"
        if self.is_back_line(position):
            return "back"
        return "invalid"
