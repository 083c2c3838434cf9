"""
战斗结果预估测试
Battle Outcome Estimator Tests

作者: lx
日期: 2025-06-20
描述: 敌人战力生成、胜率分档、历史胜利加成、阵容不满惩罚和建议
"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from common.config import BattleEstimationConfig
from common.exceptions import ErrorCode, ValidationError
from services.formation.core.battle_estimator import (
    BattleOutcomeEstimator, Difficulty, EnemyType,
    estimate_victory, generate_enemy_preview, get_enemy_type, parse_difficulty
)


@pytest.fixture
def estimator():
    return BattleOutcomeEstimator(BattleEstimationConfig())


class TestEnemyGeneration:
    """测试敌人生成"""

    @pytest.mark.parametrize("level_id, expected", [
        (1, EnemyType.NORMAL), (5, EnemyType.ELITE), (10, EnemyType.BOSS),
        (15, EnemyType.ELITE), (20, EnemyType.BOSS), (7, EnemyType.NORMAL),
    ])
    def test_enemy_type(self, level_id, expected):
        assert get_enemy_type(level_id) == expected

    def test_first_stage(self, estimator):
        """1-1 普通: 3个敌人，倍率 1 + 0.15 + 0.05"""
        preview = estimator.generate_enemy_preview(1, 1, "Normal")
        assert preview.count == 3
        assert estimator.level_multiplier(1, 1) == pytest.approx(1.2)
        assert preview.total_power == 1800
        assert preview.enemy_type == "normal"
        assert preview.average_level == 26

    def test_enemy_count_grows_every_five_worlds(self, estimator):
        assert estimator.enemy_count(4) == 3
        assert estimator.enemy_count(5) == 4
        assert estimator.enemy_count(12) == 5

    def test_boss_nightmare(self, estimator):
        """5-10 噩梦Boss: 500*4*(1+0.75+0.5)*4*1.5"""
        preview = estimator.generate_enemy_preview(5, 10, Difficulty.NIGHTMARE)
        assert preview.count == 4
        assert preview.total_power == 27000
        assert preview.enemy_type == "boss"
        assert preview.average_level == 32
        assert [unit.name for unit in preview.composition] == [
            "Boss Enemy 1", "Boss Enemy 2", "Boss Enemy 3", "Boss Enemy 4"
        ]

    def test_elite_hard(self, estimator):
        """2-5 困难精英: 500*3*1.55*2*1.2"""
        preview = estimator.generate_enemy_preview(2, 5, "Hard")
        assert preview.total_power == 5580
        assert preview.average_level == 27

    def test_deterministic(self):
        assert generate_enemy_preview(3, 7).to_dict() == generate_enemy_preview(3, 7).to_dict()

    def test_invalid_difficulty(self, estimator):
        with pytest.raises(ValidationError) as exc_info:
            estimator.generate_enemy_preview(1, 1, "Insane")
        assert exc_info.value.code == ErrorCode.INVALID_DIFFICULTY

    def test_parse_difficulty(self):
        assert parse_difficulty("Hard") is Difficulty.HARD
        assert parse_difficulty(Difficulty.NORMAL) is Difficulty.NORMAL
        with pytest.raises(ValidationError):
            parse_difficulty(None)


class TestVictoryEstimation:
    """测试胜率预估"""

    def test_overwhelming_power(self, estimator):
        """战力远超敌人，满编"""
        estimation = estimator.estimate_victory(5000, 1800, 5, 0)
        assert estimation.victory_chance == 95
        assert estimation.difficulty == "very_easy"
        assert estimation.power_difference == 178
        assert estimation.recommendations == []

    @pytest.mark.parametrize("ratio, expected", [
        (1.5, 95), (1.3, 85), (1.15, 75), (1.0, 65), (0.9, 50),
        (0.75, 35), (0.6, 20), (0.59, 10), (0.0, 10),
    ])
    def test_ladder(self, estimator, ratio, expected):
        """档位边界取下界"""
        assert estimator.base_victory_chance(ratio) == expected

    def test_ladder_boundaries_with_integer_powers(self, estimator):
        assert estimator.estimate_victory(1500, 1000, 5).victory_chance == 95
        assert estimator.estimate_victory(1499, 1000, 5).victory_chance == 85
        assert estimator.estimate_victory(1000, 1000, 5).victory_chance == 65
        assert estimator.estimate_victory(999, 1000, 5).victory_chance == 50

    def test_empty_formation(self, estimator):
        """战力为0"""
        estimation = estimator.estimate_victory(0, 1800, 0, 0)
        assert estimation.victory_chance == 10
        assert estimation.difficulty == "very_hard"
        assert "Add 5 more hero(es) to your formation" in estimation.recommendations

    def test_incomplete_team_penalty(self, estimator):
        """3人: 胜率 * 0.94 向下取整"""
        # 1.3 档 85 + 历史胜利 2 次 (85 + 4 = 89)，再乘 0.94 = 83.66
        assert estimator.estimate_victory(1300, 1000, 3, 2).victory_chance == 83
        # 1.15 档 75，+ 1 次胜利 = 77 -> 72.38
        assert estimator.estimate_victory(1150, 1000, 3, 1).victory_chance == 72

    def test_penalty_of_eighty(self, estimator, monkeypatch):
        """80 * 0.94 = 75.2 -> 75"""
        monkeypatch.setattr(estimator, "base_victory_chance", lambda ratio: 80)
        assert estimator.estimate_victory(1000, 1000, 3, 0).victory_chance == 75

    def test_penalty_is_exact_for_four_heroes(self, estimator):
        """50 * 0.97 = 48.5，不受浮点误差影响"""
        assert estimator.estimate_victory(900, 1000, 4).victory_chance == 48

    def test_victory_bonus_capped(self, estimator):
        estimation = estimator.estimate_victory(1300, 1000, 5, 10)
        assert estimation.victory_chance == 95

    def test_zero_enemy_power(self, estimator):
        estimation = estimator.estimate_victory(100, 0, 5)
        assert estimation.power_ratio == 100
        assert estimation.victory_chance == 95

    @pytest.mark.parametrize("chance, label", [
        (95, "very_easy"), (85, "very_easy"), (84, "easy"), (70, "easy"),
        (69, "medium"), (50, "medium"), (49, "hard"), (30, "hard"), (29, "very_hard"), (0, "very_hard"),
    ])
    def test_difficulty_bands(self, estimator, chance, label):
        assert estimator.difficulty_label(chance) == label

    def test_recommendations(self, estimator):
        """战力不足且阵容不满的首次挑战"""
        estimation = estimator.estimate_victory(700, 1000, 2, 0)
        assert estimation.recommendations == [
            "Upgrade your heroes before attempting this level",
            "Add 3 more hero(es) to your formation",
            "Consider farming previous levels for resources",
            "First attempt on this level - be prepared for a challenge",
        ]

    def test_first_attempt_notice_only_without_victories(self, estimator):
        estimation = estimator.estimate_victory(950, 1000, 5, 1)
        assert estimation.recommendations == []

    def test_module_function(self):
        assert estimate_victory(5000, 1800, 5).to_dict()["victory_chance"] == 95
