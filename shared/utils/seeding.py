"""确定性随机源（Mulberry32）。

要求：
- 同一 seed 在任何进程/机器上产生完全相同的序列；
- 随机性只来自“时间桶 → seed”，独立实例无需通信即可得到一致结果。

注意：各实例之间的时钟偏差会让它们落入不同时间桶，从而失去一致性。
"""

from __future__ import annotations

_MASK32 = 0xFFFFFFFF
_GOLDEN = 0x6D2B79F5
_DENOM = 4294967296.0


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK32


def mulberry32(state: int) -> tuple[float, int]:
    """纯函数：给定累加器状态，返回 ([0,1) 随机数, 推进后的状态)。"""
    state = (int(state) + _GOLDEN) & _MASK32
    t = state
    t = _imul(t ^ (t >> 15), t | 1)
    t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
    value = ((t ^ (t >> 14)) & _MASK32) / _DENOM
    return value, state


def bucket_seed(ts_ms: int, granularity_ms: int) -> int:
    """时间桶 seed：`floor(ts_ms / granularity_ms)`。"""
    if granularity_ms <= 0:
        raise ValueError("granularity_ms must be > 0")
    return int(ts_ms) // int(granularity_ms)


class SeededRandom:
    """`mulberry32` 的薄封装：显式持有累加器。"""

    def __init__(self, seed: int):
        self.seed = int(seed) & _MASK32

    @classmethod
    def for_bucket(cls, ts_ms: int, granularity_ms: int) -> "SeededRandom":
        return cls(bucket_seed(ts_ms, granularity_ms))

    def next(self) -> float:
        value, self.seed = mulberry32(self.seed)
        return value

    def next_centered(self) -> float:
        """[-0.5, 0.5)"""
        return self.next() - 0.5
