"""指标快照：从已完成 K 线历史计算 EMA20 / EMA50 / RSI14。

只在新 K 线完成时重算（由 session 负责调度），计算本身无副作用。
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

import pandas as pd

from algo.factors.ema import EMAFactor, ema
from algo.factors.rsi import RSIFactor, rsi
from shared.models.models import Candle, IndicatorSnapshot


class Factor(Protocol):
    """逐根 K 线指标列：`compute(df)` 在 K 线 DataFrame 上追加一列并返回 df。"""

    name: str
    params: Mapping[str, Any]

    def compute(self, df: pd.DataFrame) -> pd.DataFrame:
        ...


DEFAULT_FACTORS: tuple[Factor, ...] = (
    EMAFactor(period=20, out_col="ema20"),
    EMAFactor(period=50, out_col="ema50"),
    RSIFactor(period=14, out_col="rsi14"),
)


def compute_indicators(candles: Sequence[Candle]) -> IndicatorSnapshot:
    if not candles:
        return IndicatorSnapshot()
    closes = [c.close for c in candles]
    return IndicatorSnapshot(
        ema20=ema(closes, 20),
        ema50=ema(closes, 50),
        rsi14=rsi(closes, 14),
    )


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    """K 线 → DataFrame（ts 为 UTC datetime，便于导出/下游渲染）。"""
    df = pd.DataFrame(
        [c.to_dict() for c in candles],
        columns=["timestamp", "open", "high", "low", "close"],
    )
    df["ts"] = pd.to_datetime(df["timestamp"], unit="ms", utc=True)
    return df


def apply_factors(df: pd.DataFrame, factors: Sequence[Factor]) -> pd.DataFrame:
    for f in factors:
        df = f.compute(df)
    return df


def indicator_frame(candles: Sequence[Candle], factors: Sequence[Factor] = DEFAULT_FACTORS) -> pd.DataFrame:
    """K 线 + 逐根指标列；最后一行与 `compute_indicators` 的结果一致。"""
    return apply_factors(candles_to_frame(candles), factors)
