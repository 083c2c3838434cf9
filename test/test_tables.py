"""
查表工具测试
Threshold Table Tests

作者: lx
日期: 2025-06-20
"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from common.utils.tables import ThresholdTable, round_half_up


class TestThresholdTable:
    """最近下界查表"""

    def test_lookup(self):
        table = ThresholdTable([(5, "c"), (2, "a"), (3, "b")], default="none")
        assert table.thresholds == [2, 3, 5]
        assert table.lookup(1) == "none"
        assert table.lookup(2) == "a"
        assert table.lookup(4) == "b"
        assert table.lookup(100) == "c"
        assert len(table) == 3

    def test_float_thresholds(self):
        table = ThresholdTable([(1.0, 65), (1.15, 75)], default=10)
        assert table.lookup(1.1499) == 65
        assert table.lookup(1.15) == 75

    def test_duplicate_thresholds(self):
        with pytest.raises(ValueError):
            ThresholdTable([(2, "a"), (2, "b")])


class TestRoundHalfUp:
    """四舍五入"""

    @pytest.mark.parametrize("value, expected", [
        (0.5, 1), (1.5, 2), (2.5, 3), (2.4999, 2), (894.4, 894), (0, 0),
    ])
    def test_round(self, value, expected):
        assert round_half_up(value) == expected
