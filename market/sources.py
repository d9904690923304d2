"""外部价格源契约。

真实行情适配器只需实现 `price_at(ts_ms)`：给定时间点返回当前价格，
取不到新值时返回 None，由 session 沿用上一次的价格继续运行。
"""

from __future__ import annotations

from bisect import bisect_right
from typing import Mapping, Protocol


class PriceSource(Protocol):
    """价格源协议。"""

    def price_at(self, ts_ms: int) -> float | None:
        ...


class ScriptedPriceSource:
    """按时间表回放价格（离线开发/测试用）。

    `prices` 为 {ts_ms: price}；`price_at` 只在时间点恰好有报价时返回，
    `hold_last=True` 时返回不晚于 ts 的最近报价。
    """

    def __init__(self, prices: Mapping[int, float | None], *, hold_last: bool = False):
        self._prices = {int(k): (None if v is None else float(v)) for k, v in prices.items()}
        self._keys = sorted(self._prices)
        self.hold_last = hold_last
        self.requests = 0

    def price_at(self, ts_ms: int) -> float | None:
        self.requests += 1
        if not self.hold_last:
            return self._prices.get(int(ts_ms))
        idx = bisect_right(self._keys, int(ts_ms))
        if idx == 0:
            return None
        return self._prices[self._keys[idx - 1]]
