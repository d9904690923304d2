"""确定性价格模拟器（XAU/USD 风格随机游走 + K 线聚合）。

- 每个 tick 的随机数只由 tick 时间桶决定：`floor(now_ms / update_interval_ms)`；
- 趋势（有界、缓慢衰减）+ 动量 + 偶发波动放大 + 向基准价均值回归；
- 价格夹在 [price_floor, price_ceiling]。

两个配置相同、从同一时刻开始、在同一 tick 桶内观察的实例，
产生完全相同的价格与 K 线序列。时钟偏差会破坏这一点。
"""

from __future__ import annotations

import math
from typing import Callable

from market.candles import CandleAggregator
from market.history import seed_history
from shared.config.schema import MarketConfig
from shared.models.models import Candle, PriceUpdate
from shared.utils.logging import setup_logger
from shared.utils.seeding import SeededRandom, bucket_seed

PriceCallback = Callable[[PriceUpdate, bool], None]


class PriceSimulator:
    """价格模拟器；会话内创建一次，生命周期与会话一致。"""

    def __init__(self, config: MarketConfig | None = None, *, now_ms: int, logger=None):
        self.config = config or MarketConfig()
        self.logger = logger or setup_logger("price-sim")

        self.base_price = float(self.config.initial_price)
        self.current_price = self.base_price
        self.trend = 0.0
        self.momentum = 0.0
        self.tick_count = 0
        self.last_tick_ts: int | None = None
        self._subscribers: list[PriceCallback] = []

        history = seed_history(now_ms, self.config.history_candles, self.config)
        if history:
            self.current_price = history[-1].close
        self.candles = CandleAggregator(
            duration_ms=self.config.candle_duration_ms,
            max_history=self.config.max_history,
            start_ts=now_ms,
            open_price=self.current_price,
            history=history,
        )

    # ------------------------------------------------------------------
    # 价格生成
    # ------------------------------------------------------------------
    def generate_next_price(self, now_ms: int) -> float:
        cfg = self.config
        rng = SeededRandom(bucket_seed(now_ms, cfg.update_interval_ms))

        self.trend += rng.next_centered() * cfg.trend_step
        self.trend *= cfg.trend_decay
        self.trend = max(-cfg.trend_limit, min(cfg.trend_limit, self.trend))

        self.momentum = self.momentum * cfg.momentum_decay + rng.next_centered() * cfg.momentum_weight

        multiplier = cfg.spike_multiplier if rng.next() < cfg.spike_probability else 1.0

        deviation = (self.current_price - self.base_price) / self.base_price
        reversion = -deviation * cfg.mean_reversion

        random_component = self.momentum * cfg.volatility * multiplier
        change = self.current_price * (self.trend + random_component + reversion)
        new_price = self.current_price + change

        return max(cfg.price_floor, min(cfg.price_ceiling, new_price))

    def tick(self, now_ms: int) -> tuple[PriceUpdate, bool]:
        """推进一个 tick：生成新价格、更新 K 线并通知订阅者。"""
        return self.apply_price(now_ms, self.generate_next_price(now_ms))

    def apply_price(self, now_ms: int, price: float) -> tuple[PriceUpdate, bool]:
        """并入一个价格（模拟生成或外部行情），返回 (更新, 是否完成新 K 线)。"""
        if not math.isfinite(price) or price <= 0:
            raise ValueError(f"price must be finite and > 0, got {price}")
        self.tick_count += 1
        self.last_tick_ts = int(now_ms)
        self.current_price = float(price)
        is_new_candle = self.candles.update(now_ms, self.current_price)
        if is_new_candle:
            last = self.candles.history[-1]
            self.logger.debug(
                "Candle closed ts=%s o=%.2f h=%.2f l=%.2f c=%.2f",
                last.timestamp,
                last.open,
                last.high,
                last.low,
                last.close,
            )

        update = PriceUpdate(price=self.current_price, timestamp=int(now_ms), candle=self.candles.current)
        for cb in list(self._subscribers):
            cb(update, is_new_candle)
        return update, is_new_candle

    # ------------------------------------------------------------------
    # 订阅与读取
    # ------------------------------------------------------------------
    def current_update(self) -> PriceUpdate:
        """当前状态（尚未产生新 tick 时时间戳取进行中 K 线的起点）。"""
        ts = self.last_tick_ts if self.last_tick_ts is not None else self.candles.current.timestamp
        return PriceUpdate(price=self.current_price, timestamp=ts, candle=self.candles.current)

    def subscribe(self, callback: PriceCallback) -> Callable[[], None]:
        """注册回调，并立即推送一次当前状态（is_new_candle=False）。"""
        self._subscribers.append(callback)
        callback(self.current_update(), False)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def get_current_price(self) -> float:
        return self.current_price

    def get_price_history(self) -> list[Candle]:
        """已完成的 K 线（副本）。"""
        return self.candles.finalized()

    def get_latest_candle(self) -> Candle:
        return self.candles.current
