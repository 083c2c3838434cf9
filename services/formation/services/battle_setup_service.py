"""
战斗准备服务
Battle Setup Service

作者: lx
日期: 2025-06-20
描述: 开战前的预览：关卡战斗预览、玩家对战预览、临时阵容校验和快速开战
"""
import asyncio
import logging
from typing import List, Optional, Sequence, Union

from common.config import get_balance
from common.database.models import RosterSlot
from common.exceptions import ErrorCode, NotFoundError, ValidationError
from common.utils.error_handler import service_result

from ..core.battle_estimator import BattleOutcomeEstimator, Difficulty, parse_difficulty
from ..core.heroes import OwnedRoster
from ..core.power import PowerScorer
from ..core.roster_validator import ValidationOptions
from ..providers.progress_provider import InMemoryStageProgressProvider, StageProgressProvider
from ..providers.roster_provider import load_owned_heroes
from .formation_service import FormationService, SlotInput, coerce_slots
from .results import (
    ArenaPreview, BattlePreview, CombatantSummary, FormationView,
    PlayerFormationSummary, PreviewResult, StageInfo, TemporaryFormationPreview
)

logger = logging.getLogger(__name__)


def _check_stage(world_id: int, level_id: int) -> None:
    if not isinstance(world_id, int) or not isinstance(level_id, int) or world_id < 1 or level_id < 1:
        raise ValidationError(
            ErrorCode.INVALID_STAGE,
            f"Invalid stage: world={world_id} level={level_id}"
        )


class BattleSetupService:
    """战斗准备服务"""

    def __init__(
        self,
        formation_service: FormationService,
        progress_provider: Optional[StageProgressProvider] = None
    ):
        """
        初始化战斗准备服务

        Args:
            formation_service: 阵容服务，复用其仓库、英雄数据和属性统计
            progress_provider: 关卡进度提供者，默认内存实现
        """
        self.formation_service = formation_service
        self.progress_provider = progress_provider or InMemoryStageProgressProvider()

    @property
    def repository(self):
        return self.formation_service.repository

    @property
    def roster_provider(self):
        return self.formation_service.roster_provider

    async def _require_roster(self, owner_id: str, server_id: str, code: str = ErrorCode.PLAYER_NOT_FOUND) -> OwnedRoster:
        roster = await load_owned_heroes(self.roster_provider, owner_id, server_id)
        if roster is None:
            resource = "Opponent" if code == ErrorCode.OPPONENT_NOT_FOUND else "Player"
            raise NotFoundError(code, resource, owner_id)
        return roster

    async def _player_formation(self, owner_id: str, server_id: str, roster: OwnedRoster) -> PlayerFormationSummary:
        """激活阵容；没有激活阵容时退回到已装备的英雄"""
        service = self.formation_service
        active = await self.repository.get_active(owner_id, server_id)

        if active is not None:
            stats = service.calculate_formation_stats(active.slots, roster)
            return PlayerFormationSummary(
                formation_id=active.formation_id,
                name=active.name,
                slots=list(active.slots),
                heroes=service.heroes_in_formation(active.slots, roster),
                total_power=stats.total_power,
                stats=stats,
                source="active"
            )

        equipped = [hero for hero in roster.values() if hero.entry.equipped][:service.rules.max_slots]
        slots = [
            RosterSlot(position=index + 1, hero_ref=hero.instance_id)
            for index, hero in enumerate(equipped)
        ]
        return PlayerFormationSummary(
            slots=slots,
            heroes=service.heroes_in_formation(slots, roster),
            total_power=PowerScorer(get_balance().power).quick_power(equipped),
            source="equipped"
        )

    @service_result(PreviewResult.failure)
    async def preview_stage_battle(
        self,
        owner_id: str,
        server_id: str,
        world_id: int,
        level_id: int,
        difficulty: Union[Difficulty, str] = Difficulty.NORMAL
    ) -> PreviewResult:
        """
        关卡战斗预览

        Args:
            owner_id: 玩家ID
            server_id: 服务器ID
            world_id: 世界ID
            level_id: 关卡ID
            difficulty: 难度 Normal / Hard / Nightmare

        Returns:
            关卡信息、参战阵容、敌人预览、胜率预估、挑战记录和提示
        """
        difficulty = parse_difficulty(difficulty)
        _check_stage(world_id, level_id)

        battle_config = get_balance().battle
        estimator = BattleOutcomeEstimator(battle_config)

        roster = await self._require_roster(owner_id, server_id)
        player_formation = await self._player_formation(owner_id, server_id, roster)
        enemies = estimator.generate_enemy_preview(world_id, level_id, difficulty)
        progress = await self.progress_provider.get_progress(
            owner_id, server_id, world_id, level_id, difficulty.value
        )

        estimation = estimator.estimate_victory(
            player_formation.total_power,
            enemies.total_power,
            player_formation.hero_count,
            progress.victories
        )

        slot_count = len(player_formation.slots)
        can_start = slot_count > 0
        warnings: List[str] = []
        if not can_start:
            warnings.append("No heroes in formation - please equip heroes first")
        elif slot_count < battle_config.min_recommended_heroes:
            warnings.append(
                f"Formation has less than {battle_config.min_recommended_heroes} heroes - battle will be harder"
            )
        if estimator.is_warning_difficulty(estimation.difficulty):
            warnings.append(f"This level is {estimation.difficulty} for your current power")

        preview = BattlePreview(
            stage=StageInfo(
                world_id=world_id,
                level_id=level_id,
                difficulty=difficulty.value,
                enemy_type=enemies.enemy_type,
                recommended=estimation.victory_chance >= battle_config.recommended_min_chance
            ),
            player_formation=player_formation,
            enemies=enemies,
            estimation=estimation,
            progress=progress.to_dict(battle_config.can_skip_victories),
            can_start=can_start,
            warnings=warnings
        )

        logger.debug(
            f"关卡预览: owner={owner_id} stage={world_id}-{level_id} {difficulty.value} "
            f"chance={estimation.victory_chance}"
        )
        return PreviewResult.ok(preview)

    @service_result(PreviewResult.failure)
    async def preview_opponent_battle(self, owner_id: str, server_id: str, opponent_id: str) -> PreviewResult:
        """
        玩家对战预览

        Args:
            owner_id: 玩家ID
            server_id: 服务器ID
            opponent_id: 对手玩家ID

        Returns:
            双方战力、激活阵容和胜率预估
        """
        roster, opponent_roster = await asyncio.gather(
            self._require_roster(owner_id, server_id),
            self._require_roster(opponent_id, server_id, ErrorCode.OPPONENT_NOT_FOUND)
        )
        player_active, opponent_active = await asyncio.gather(
            self.repository.get_active(owner_id, server_id),
            self.repository.get_active(opponent_id, server_id)
        )

        service = self.formation_service
        player_power = service.calculate_formation_stats(player_active.slots, roster).total_power \
            if player_active else 0
        opponent_power = service.calculate_formation_stats(opponent_active.slots, opponent_roster).total_power \
            if opponent_active else 0
        player_slots = len(player_active.slots) if player_active else 0

        estimator = BattleOutcomeEstimator(get_balance().battle)
        estimation = estimator.estimate_victory(player_power, opponent_power, player_slots, 0)

        warnings: List[str] = []
        if player_active is None:
            warnings.append("No active formation - please set up a formation first")
        if opponent_active is None:
            warnings.append("Opponent has no active formation")
        if estimator.is_warning_difficulty(estimation.difficulty):
            warnings.append(f"This opponent is {estimation.difficulty} for your current power")

        preview = ArenaPreview(
            player=CombatantSummary(
                owner_id=owner_id,
                power=player_power,
                formation=FormationView.from_model(player_active) if player_active else None
            ),
            opponent=CombatantSummary(
                owner_id=opponent_id,
                power=opponent_power,
                formation=FormationView.from_model(opponent_active) if opponent_active else None
            ),
            estimation=estimation,
            can_start=player_slots > 0 and opponent_power > 0,
            warnings=warnings
        )
        return PreviewResult.ok(preview)

    @service_result(PreviewResult.failure)
    async def validate_temporary_formation(
        self,
        owner_id: str,
        server_id: str,
        slots: Sequence[SlotInput],
        world_id: Optional[int] = None,
        level_id: Optional[int] = None,
        difficulty: Optional[Union[Difficulty, str]] = None
    ) -> PreviewResult:
        """
        校验临时阵容（不保存），给出属性统计和可选的关卡胜率预估

        Args:
            owner_id: 玩家ID
            server_id: 服务器ID
            slots: 候选槽位
            world_id: 世界ID，和 level_id 同时提供时才做胜率预估
            level_id: 关卡ID
            difficulty: 难度，默认 Normal

        Returns:
            预览结果，阵容不合法时 success 为 False 但仍带有完整预览
        """
        slot_list = coerce_slots(slots)
        stage_given = world_id is not None and level_id is not None
        if stage_given:
            stage_difficulty = parse_difficulty(difficulty or Difficulty.NORMAL)
            _check_stage(world_id, level_id)

        service = self.formation_service
        roster = await self._require_roster(owner_id, server_id)

        validation = service.validator.validate_structure(
            slot_list,
            ValidationOptions(allow_empty=False, check_ownership=True),
            roster=roster
        )
        stats = service.calculate_formation_stats(slot_list, roster)

        estimation = None
        if stage_given:
            estimator = BattleOutcomeEstimator(get_balance().battle)
            enemies = estimator.generate_enemy_preview(world_id, level_id, stage_difficulty)
            estimation = estimator.estimate_victory(stats.total_power, enemies.total_power, stats.hero_count, 0)

        preview = TemporaryFormationPreview(
            validation=validation,
            stats=stats,
            heroes=service.heroes_in_formation(slot_list, roster),
            estimation=estimation
        )

        if not validation.valid:
            return PreviewResult(
                success=False,
                preview=preview,
                validation=validation,
                error=validation.errors[0],
                code=ErrorCode.INVALID_FORMATION
            )
        return PreviewResult.ok(preview, validation=validation)

    async def quick_setup(
        self,
        owner_id: str,
        server_id: str,
        world_id: Optional[int] = None,
        level_id: Optional[int] = None
    ) -> PreviewResult:
        """
        快速开战：未指定关卡时使用玩家当前关卡，都没有时从 1-1 开始，难度固定 Normal
        """
        if world_id is None or level_id is None:
            current = await self.progress_provider.get_current_stage(owner_id, server_id)
            current_world, current_level = current or (1, 1)
            world_id = world_id if world_id is not None else current_world
            level_id = level_id if level_id is not None else current_level

        return await self.preview_stage_battle(owner_id, server_id, world_id, level_id, Difficulty.NORMAL)
