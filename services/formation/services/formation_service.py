"""
阵容业务逻辑服务
Formation Business Logic Service

作者: lx
日期: 2025-06-20
描述: 阵容的创建、修改、删除、激活、复制和查询。所有修改操作按玩家加锁串行执行，
      保证同一玩家任意时刻最多只有一个激活阵容
"""
import logging
from collections import Counter
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from common.config import FormationRulesConfig, get_balance
from common.database.distributed_lock import LocalLockProvider, LockProvider, owner_lock_key
from common.database.models import FormationModel, RosterSlot
from common.database.repositories import FormationRepository
from common.exceptions import (
    CapacityError, ConflictError, ErrorCode, NotFoundError, StateError, ValidationError
)
from common.utils.error_handler import service_result
from common.utils.tables import round_half_up

from ..core.heroes import OwnedRoster
from ..core.power import PowerScorer
from ..core.roster_validator import RosterSlotValidator, ValidationOptions, ValidationResult
from ..core.synergy import SynergyBonusResolver
from ..providers.roster_provider import RosterProvider, load_owned_heroes
from .results import FormationResult, FormationStats, FormationView

logger = logging.getLogger(__name__)

EventSink = Callable[[str, Dict[str, Any]], Awaitable[None]]
SlotInput = Union[RosterSlot, Dict[str, Any]]


def coerce_slots(slots: Optional[Sequence[SlotInput]]) -> List[RosterSlot]:
    """
    将外部传入的槽位转换为 RosterSlot

    Raises:
        ValidationError: 槽位格式不合法
    """
    if slots is None:
        return []
    try:
        return [
            slot if isinstance(slot, RosterSlot) else RosterSlot.model_validate(slot)
            for slot in slots
        ]
    except PydanticValidationError as e:
        raise ValidationError(ErrorCode.INVALID_FORMATION, f"Invalid slot data: {e.error_count()} error(s)") from e


class FormationService:
    """阵容业务逻辑服务"""

    def __init__(
        self,
        repository: FormationRepository,
        roster_provider: RosterProvider,
        lock_provider: Optional[LockProvider] = None,
        event_sink: Optional[EventSink] = None,
        rules: Optional[FormationRulesConfig] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        """
        初始化阵容服务

        Args:
            repository: 阵容仓库
            roster_provider: 英雄数据提供者
            lock_provider: 玩家锁提供者，默认进程内锁
            event_sink: 事件回调(事件名, 数据)，用于任务/活动进度统计
            rules: 阵容规则，默认读取当前生效的数值配置
            clock: 时间函数
        """
        self.repository = repository
        self.roster_provider = roster_provider
        self.lock_provider = lock_provider or LocalLockProvider()
        self.event_sink = event_sink
        self._rules = rules
        self._clock = clock

    @property
    def rules(self) -> FormationRulesConfig:
        return self._rules or get_balance().rules

    @property
    def validator(self) -> RosterSlotValidator:
        return RosterSlotValidator(self.rules)

    # ---------- 内部工具 ----------

    async def _require_roster(self, owner_id: str, server_id: str) -> OwnedRoster:
        roster = await load_owned_heroes(self.roster_provider, owner_id, server_id)
        if roster is None:
            raise NotFoundError(ErrorCode.PLAYER_NOT_FOUND, "Player", owner_id)
        return roster

    async def _require_formation(self, owner_id: str, server_id: str, formation_id: str) -> FormationModel:
        formation = await self.repository.get(owner_id, server_id, formation_id)
        if formation is None:
            raise NotFoundError(ErrorCode.FORMATION_NOT_FOUND, "Formation", formation_id)
        return formation

    async def _check_capacity(self, owner_id: str, server_id: str) -> ValidationResult:
        current = await self.repository.count_by_owner(owner_id, server_id)
        capacity = self.validator.check_capacity(current, self.rules.max_formations)
        if not capacity.valid:
            raise CapacityError(
                capacity.errors[0],
                limit=self.rules.max_formations,
                current=current,
                validation=capacity
            )
        return capacity

    def _check_name(self, name: Optional[str]) -> str:
        validation = self.validator.validate_name(name)
        if not validation.valid:
            raise ValidationError(ErrorCode.INVALID_NAME, validation.errors[0], validation=validation)
        return name.strip()

    async def _check_name_available(
        self,
        owner_id: str,
        server_id: str,
        name: str,
        exclude_id: Optional[str] = None
    ) -> None:
        existing = await self.repository.find_by_name(owner_id, server_id, name, exclude_id=exclude_id)
        if existing is not None:
            raise ConflictError(
                ErrorCode.DUPLICATE_NAME,
                "A formation with this name already exists",
                data={"name": name}
            )

    def _check_slots(self, slots: List[RosterSlot], roster: OwnedRoster) -> ValidationResult:
        validation = self.validator.validate_structure(
            slots,
            ValidationOptions(allow_empty=True, check_ownership=True),
            roster=roster
        )
        if not validation.valid:
            raise ValidationError(ErrorCode.INVALID_FORMATION, validation.errors[0], validation=validation)
        return validation

    async def _emit(self, event: str, payload: Dict[str, Any]) -> None:
        """发送进度事件，失败不影响主流程"""
        if self.event_sink is None:
            return
        try:
            await self.event_sink(event, payload)
        except Exception as e:
            logger.warning(f"阵容事件发送失败: {event} {payload} - {e}", exc_info=True)

    def heroes_in_formation(self, slots: Sequence[RosterSlot], roster: OwnedRoster) -> List[Dict[str, Any]]:
        """阵容中的英雄展示数据，按站位排序"""
        scorer = PowerScorer(get_balance().power)
        heroes = []
        for slot in sorted(slots, key=lambda s: s.position):
            owned = roster.get(slot.hero_ref)
            if owned is None:
                continue
            heroes.append(owned.to_dict(position=slot.position, power=scorer.owned_hero_power(owned)))
        return heroes

    def _view(
        self,
        formation: FormationModel,
        roster: OwnedRoster,
        with_heroes: bool = False
    ) -> FormationView:
        heroes = self.heroes_in_formation(formation.slots, roster) if with_heroes else None
        return FormationView.from_model(formation, heroes=heroes)

    # ---------- 统计 ----------

    def calculate_formation_stats(self, slots: Sequence[RosterSlot], roster: OwnedRoster) -> FormationStats:
        """
        计算阵容属性统计

        Args:
            slots: 阵容槽位
            roster: 玩家英雄表

        Returns:
            战力、职业/元素分布、平均等级星级、前后排人数和羁绊
        """
        balance = get_balance()
        scorer = PowerScorer(balance.power)
        validator = RosterSlotValidator(self.rules)

        roles: Counter = Counter()
        elements: Counter = Counter()
        total_level = 0
        total_stars = 0
        hero_count = 0
        front = 0
        back = 0

        for slot in slots:
            owned = roster.get(slot.hero_ref)
            if owned is None:
                continue

            hero_count += 1
            total_level += owned.entry.level
            total_stars += owned.entry.stars

            if validator.is_front_line(slot.position):
                front += 1
            elif validator.is_back_line(slot.position):
                back += 1

            if owned.template is not None:
                roles[owned.template.role] += 1
                elements[owned.template.element] += 1

        def average(total: int) -> float:
            if hero_count == 0:
                return 0.0
            return round_half_up(total / hero_count * 10) / 10

        return FormationStats(
            total_power=scorer.formation_power(slots, roster),
            hero_count=hero_count,
            role_distribution=dict(roles),
            element_distribution=dict(elements),
            average_level=average(total_level),
            average_stars=average(total_stars),
            front_line_count=front,
            back_line_count=back,
            synergies=SynergyBonusResolver(balance.synergy).calculate_formation_synergies(elements)
        )

    # ---------- 修改操作 ----------

    @service_result(FormationResult.failure)
    async def create_formation(
        self,
        owner_id: str,
        server_id: str,
        name: str,
        slots: Optional[Sequence[SlotInput]] = None,
        set_active: bool = False
    ) -> FormationResult:
        """
        创建阵容

        Args:
            owner_id: 玩家ID
            server_id: 服务器ID
            name: 阵容名称
            slots: 槽位列表，允许为空
            set_active: 是否设为激活阵容

        Returns:
            阵容、属性统计和校验提示
        """
        slot_list = coerce_slots(slots)

        async with self.lock_provider.lock(owner_lock_key(owner_id, server_id)):
            formation, roster, validation = await self._create_locked(
                owner_id, server_id, name, slot_list, set_active
            )

        return await self._created_result(formation, roster, validation)

    async def _create_locked(
        self,
        owner_id: str,
        server_id: str,
        name: str,
        slot_list: List[RosterSlot],
        set_active: bool
    ):
        """调用方需持有玩家锁"""
        roster = await self._require_roster(owner_id, server_id)
        capacity = await self._check_capacity(owner_id, server_id)
        clean_name = self._check_name(name)
        await self._check_name_available(owner_id, server_id, clean_name)
        validation = self._check_slots(slot_list, roster)
        validation.warnings = capacity.warnings + validation.warnings

        formation = FormationModel(
            owner_id=owner_id,
            server_id=server_id,
            name=clean_name,
            slots=slot_list
        )
        await self.repository.insert(formation)

        if set_active:
            # 新阵容写入成功后再切换激活，写入失败时原激活阵容保持不变
            formation = await self.repository.activate_exclusive(
                owner_id, server_id, formation.formation_id, self._clock()
            )

        return formation, roster, validation

    async def _created_result(
        self,
        formation: FormationModel,
        roster: OwnedRoster,
        validation: ValidationResult
    ) -> FormationResult:
        owner_id = formation.owner_id
        server_id = formation.server_id
        stats = self.calculate_formation_stats(formation.slots, roster)
        await self._emit("formation_created", {
            "owner_id": owner_id,
            "server_id": server_id,
            "formation_id": formation.formation_id
        })

        logger.info(f"阵容已创建: \"{formation.name}\" owner={owner_id} active={formation.is_active}")
        return FormationResult.ok(
            formation=self._view(formation, roster),
            stats=stats,
            validation=validation
        )

    @service_result(FormationResult.failure)
    async def update_formation(
        self,
        owner_id: str,
        server_id: str,
        formation_id: str,
        name: Optional[str] = None,
        slots: Optional[Sequence[SlotInput]] = None
    ) -> FormationResult:
        """
        修改阵容，只校验传入的字段

        Args:
            owner_id: 玩家ID
            server_id: 服务器ID
            formation_id: 阵容ID
            name: 新名称
            slots: 新槽位

        Returns:
            修改后的阵容和属性统计
        """
        slot_list = coerce_slots(slots) if slots is not None else None
        validation = None

        async with self.lock_provider.lock(owner_lock_key(owner_id, server_id)):
            formation = await self._require_formation(owner_id, server_id, formation_id)
            roster = await self._require_roster(owner_id, server_id)

            if name is not None:
                clean_name = self._check_name(name)
                await self._check_name_available(owner_id, server_id, clean_name, exclude_id=formation_id)
                formation.name = clean_name

            if slot_list is not None:
                validation = self._check_slots(slot_list, roster)
                formation.slots = slot_list

            formation.touch()
            await self.repository.save(formation)

        logger.info(f"阵容已更新: \"{formation.name}\" owner={owner_id}")
        return FormationResult.ok(
            formation=self._view(formation, roster),
            stats=self.calculate_formation_stats(formation.slots, roster),
            validation=validation
        )

    @service_result(FormationResult.failure)
    async def delete_formation(self, owner_id: str, server_id: str, formation_id: str) -> FormationResult:
        """删除阵容，激活中的阵容不能删除"""
        async with self.lock_provider.lock(owner_lock_key(owner_id, server_id)):
            formation = await self._require_formation(owner_id, server_id, formation_id)
            if formation.is_active:
                raise StateError(
                    ErrorCode.CANNOT_DELETE_ACTIVE,
                    "Cannot delete active formation. Set another formation as active first.",
                    data={"formation_id": formation_id}
                )
            await self.repository.delete(owner_id, server_id, formation_id)

        logger.info(f"阵容已删除: \"{formation.name}\" owner={owner_id}")
        return FormationResult.ok(formation=FormationView.from_model(formation))

    @service_result(FormationResult.failure)
    async def activate_formation(self, owner_id: str, server_id: str, formation_id: str) -> FormationResult:
        """
        激活阵容

        同一玩家的其他阵容在同一次操作中取消激活；重复激活只刷新最后使用时间

        Args:
            owner_id: 玩家ID
            server_id: 服务器ID
            formation_id: 阵容ID

        Returns:
            激活后的阵容和属性统计
        """
        async with self.lock_provider.lock(owner_lock_key(owner_id, server_id)):
            formation = await self._require_formation(owner_id, server_id, formation_id)
            if formation.is_empty():
                raise StateError(
                    ErrorCode.EMPTY_FORMATION,
                    "Cannot activate empty formation",
                    data={"formation_id": formation_id}
                )
            roster = await self._require_roster(owner_id, server_id)

            was_active = formation.is_active
            activated = await self.repository.activate_exclusive(
                owner_id, server_id, formation_id, self._clock()
            )
            if activated is None:
                raise NotFoundError(ErrorCode.FORMATION_NOT_FOUND, "Formation", formation_id)

        if not was_active:
            await self._emit("formation_activated", {
                "owner_id": owner_id,
                "server_id": server_id,
                "formation_id": formation_id
            })
            logger.info(f"阵容已激活: \"{activated.name}\" owner={owner_id}")

        return FormationResult.ok(
            formation=self._view(activated, roster),
            stats=self.calculate_formation_stats(activated.slots, roster)
        )

    @service_result(FormationResult.failure)
    async def duplicate_formation(
        self,
        owner_id: str,
        server_id: str,
        formation_id: str,
        new_name: Optional[str] = None
    ) -> FormationResult:
        """
        复制阵容

        名称冲突时依次追加数字后缀，复制出的阵容不激活

        Args:
            owner_id: 玩家ID
            server_id: 服务器ID
            formation_id: 源阵容ID
            new_name: 新名称，默认 "<原名> (Copy)"

        Returns:
            新阵容的创建结果
        """
        async with self.lock_provider.lock(owner_lock_key(owner_id, server_id)):
            source = await self._require_formation(owner_id, server_id, formation_id)
            await self._check_capacity(owner_id, server_id)

            base_name = new_name.strip() if new_name else f"{source.name}{self.rules.copy_suffix}"
            final_name = base_name
            counter = 1
            while await self.repository.find_by_name(owner_id, server_id, final_name) is not None:
                final_name = f"{base_name} {counter}"
                counter += 1

            logger.debug(f"复制阵容: {formation_id} -> \"{final_name}\"")
            formation, roster, validation = await self._create_locked(
                owner_id,
                server_id,
                final_name,
                [slot.model_copy() for slot in source.slots],
                set_active=False
            )

        return await self._created_result(formation, roster, validation)

    # ---------- 查询操作 ----------

    @service_result(FormationResult.failure)
    async def get_formation(self, owner_id: str, server_id: str, formation_id: str) -> FormationResult:
        """获取阵容详情（含英雄数据和属性统计）"""
        formation = await self._require_formation(owner_id, server_id, formation_id)
        roster = await self._require_roster(owner_id, server_id)
        return FormationResult.ok(
            formation=self._view(formation, roster, with_heroes=True),
            stats=self.calculate_formation_stats(formation.slots, roster)
        )

    @service_result(FormationResult.failure)
    async def list_formations(self, owner_id: str, server_id: str) -> FormationResult:
        """获取玩家全部阵容：激活的在前，其次按最后使用时间、创建时间倒序"""
        roster = await self._require_roster(owner_id, server_id)
        formations = await self.repository.list_by_owner(owner_id, server_id)
        return FormationResult.ok(formations=[
            FormationView.from_model(formation, stats=self.calculate_formation_stats(formation.slots, roster))
            for formation in formations
        ])

    @service_result(FormationResult.failure)
    async def get_active_formation(self, owner_id: str, server_id: str) -> FormationResult:
        """获取玩家当前激活的阵容"""
        formation = await self.repository.get_active(owner_id, server_id)
        if formation is None:
            raise NotFoundError(ErrorCode.NO_ACTIVE_FORMATION, "Active formation")
        roster = await self._require_roster(owner_id, server_id)
        return FormationResult.ok(
            formation=self._view(formation, roster, with_heroes=True),
            stats=self.calculate_formation_stats(formation.slots, roster)
        )

    @service_result(FormationResult.failure)
    async def validate_formation(
        self,
        owner_id: str,
        server_id: str,
        slots: Sequence[SlotInput]
    ) -> FormationResult:
        """
        保存前完整校验阵容（不允许为空，检查归属和与激活阵容的英雄重叠）

        Returns:
            校验结果放在 validation 中，不合法时 success 为 False
        """
        slot_list = coerce_slots(slots)
        roster = await self._require_roster(owner_id, server_id)
        active = await self.repository.get_active(owner_id, server_id)

        validation = self.validator.validate_structure(
            slot_list,
            ValidationOptions(allow_empty=False, check_ownership=True, check_availability=True),
            roster=roster,
            active_slots=active.slots if active else None
        )

        if not validation.valid:
            return FormationResult(
                success=False,
                validation=validation,
                error=validation.errors[0],
                code=ErrorCode.INVALID_FORMATION
            )
        return FormationResult.ok(
            validation=validation,
            stats=self.calculate_formation_stats(slot_list, roster)
        )
