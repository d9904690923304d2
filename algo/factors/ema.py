"""EMA 因子。"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

import numpy as np
import pandas as pd


def ema(closes: Sequence[float], period: int) -> float | None:
    """指数移动平均（只取最终值）。

    以前 `period` 个收盘价的算术平均作为种子，之后按
    `ema = (close - ema) * 2 / (period + 1) + ema` 递推。
    历史不足 `period` 时返回 None。
    """
    if period <= 0:
        raise ValueError("EMA period must be > 0")
    if len(closes) < period:
        return None

    value = sum(float(c) for c in closes[:period]) / period
    k = 2.0 / (period + 1)
    for close in closes[period:]:
        value = (float(close) - value) * k + value
    return value


def ema_series(closes: Sequence[float], period: int) -> np.ndarray:
    """逐点 EMA；前 `period - 1` 个位置为 NaN。"""
    out = np.full(len(closes), np.nan, dtype=float)
    if len(closes) < period:
        return out

    value = float(np.mean(np.asarray(closes[:period], dtype=float)))
    out[period - 1] = value
    k = 2.0 / (period + 1)
    for i in range(period, len(closes)):
        value = (float(closes[i]) - value) * k + value
        out[i] = value
    return out


@dataclass(frozen=True)
class EMAFactor:
    """指数移动平均（EMA，SMA 种子版本）。"""

    period: int = 20
    price_col: str = "close"
    out_col: str | None = None
    name: str = "ema"
    params: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.period <= 0:
            raise ValueError("EMA period must be > 0")
        object.__setattr__(
            self,
            "params",
            {
                "period": self.period,
                "price_col": self.price_col,
                "out_col": self.out_col,
            },
        )

    def compute(self, df: pd.DataFrame) -> pd.DataFrame:
        if self.price_col not in df.columns:
            raise ValueError(f"EMAFactor requires column: {self.price_col}")
        out = self.out_col or f"ema_{self.period}"
        values = df[self.price_col].astype(float).to_list()
        df[out] = ema_series(values, self.period)
        return df
