"""
阈值查表工具
作者: lx
日期: 2025-06-20
描述: 有序阈值表的"最近下界"查找，以及四舍五入取整
"""
from bisect import bisect_right
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Generic, Iterable, List, Optional, Tuple, TypeVar

T = TypeVar("T")


class ThresholdTable(Generic[T]):
    """
    有序阈值表

    查找规则: 在所有 <= value 的阈值中取最大的一个，对应的值即为结果；
    没有任何阈值满足时返回默认值。新增档位只需要改数据，不需要改代码。
    """

    def __init__(self, entries: Iterable[Tuple[float, T]], default: Optional[T] = None):
        pairs = sorted(entries, key=lambda item: item[0])
        thresholds = [threshold for threshold, _ in pairs]
        if len(set(thresholds)) != len(thresholds):
            raise ValueError(f"Duplicate thresholds: {thresholds}")

        self._thresholds: List[float] = thresholds
        self._values: List[T] = [value for _, value in pairs]
        self.default = default

    def lookup(self, value: float) -> Optional[T]:
        """
        查找最近下界对应的值

        Args:
            value: 查询值

        Returns:
            命中的值，未命中返回默认值
        """
        index = bisect_right(self._thresholds, value)
        if index == 0:
            return self.default
        return self._values[index - 1]

    @property
    def thresholds(self) -> List[float]:
        return list(self._thresholds)

    def items(self) -> List[Tuple[float, T]]:
        return list(zip(self._thresholds, self._values))

    def __len__(self) -> int:
        return len(self._thresholds)

    def __repr__(self) -> str:
        return f"ThresholdTable({self.items()!r}, default={self.default!r})"


def round_half_up(value: Any) -> int:
    """
    四舍五入到整数（0.5向上取整）

    先转成字符串再构造Decimal，按十进制字面值取整，.5 边界不受二进制浮点表示影响
    """
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


__all__ = ["ThresholdTable", "round_half_up"]
