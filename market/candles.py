"""K 线聚合：按固定时长把价格 tick 聚合成 OHLC。"""

from __future__ import annotations

from collections import deque
from typing import Iterable

from shared.models.models import Candle


def align(ts_ms: int, duration_ms: int) -> int:
    """时间槽起点：`floor(ts / duration) * duration`。"""
    return (int(ts_ms) // int(duration_ms)) * int(duration_ms)


class CandleAggregator:
    """进行中 K 线 + 有界历史（最旧的先淘汰）。

    跨越时长边界的那个 tick 先并入旧 K 线的 high/low/close，
    旧 K 线随即完成，新 K 线以该价格开盘（open = high = low = close）。
    """

    def __init__(
        self,
        *,
        duration_ms: int,
        max_history: int,
        start_ts: int,
        open_price: float,
        history: Iterable[Candle] = (),
    ):
        if duration_ms <= 0:
            raise ValueError("duration_ms must be > 0")
        if max_history <= 0:
            raise ValueError("max_history must be > 0")
        self.duration_ms = int(duration_ms)
        self.history: deque[Candle] = deque(maxlen=int(max_history))
        for candle in history:
            self._append(candle)

        self._ts = align(start_ts, self.duration_ms)
        if self.history and self._ts <= self.history[-1].timestamp:
            raise ValueError("current candle must start after the last historical candle")
        self._open = self._high = self._low = self._close = float(open_price)

    def _append(self, candle: Candle) -> None:
        if self.history and candle.timestamp <= self.history[-1].timestamp:
            raise ValueError(
                f"candle timestamps must be strictly increasing: {candle.timestamp} <= {self.history[-1].timestamp}"
            )
        self.history.append(candle)

    @property
    def current(self) -> Candle:
        return Candle(
            timestamp=self._ts,
            open=self._open,
            high=self._high,
            low=self._low,
            close=self._close,
        )

    def update(self, ts_ms: int, price: float) -> bool:
        """并入一个 tick；返回是否完成了一根 K 线。"""
        price = float(price)
        self._high = max(self._high, price)
        self._low = min(self._low, price)
        self._close = price

        bucket = align(ts_ms, self.duration_ms)
        if bucket <= self._ts:
            return False

        self._append(self.current)
        self._ts = bucket
        self._open = self._high = self._low = self._close = price
        return True

    def finalized(self) -> list[Candle]:
        return list(self.history)
