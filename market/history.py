"""确定性历史 K 线。

每根历史 K 线直接用自己的起点毫秒时间戳作为 seed（按 32 位截断），所有实例启动时得到同一段历史，
指标在会话开始时就已可用。
"""

from __future__ import annotations

from market.candles import align
from shared.config.schema import MarketConfig
from shared.models.models import Candle
from shared.utils.seeding import SeededRandom


def seed_history(now_ms: int, count: int, config: MarketConfig) -> list[Candle]:
    duration = int(config.candle_duration_ms)
    price = float(config.initial_price)
    candles: list[Candle] = []

    for i in range(count, 0, -1):
        ts = align(now_ms - i * duration, duration)
        rng = SeededRandom(ts)

        open_ = price
        vol = config.volatility * (1 + rng.next() * 2)
        change1 = rng.next_centered() * 2 * vol * price
        change2 = rng.next_centered() * 2 * vol * price
        change3 = rng.next_centered() * 2 * vol * price

        close = open_ + change1
        high = max(open_, close) + abs(change2) * 0.5
        low = min(open_, close) - abs(change3) * 0.5
        candles.append(Candle(timestamp=ts, open=open_, high=high, low=low, close=close))

        # 下一根开盘价带一点确定性漂移
        price = close * (1 + rng.next_centered() * 0.001)
        price = max(config.price_floor, min(config.price_ceiling, price))

    return candles
