import math

import numpy as np
import pytest

from algo.factors.ema import EMAFactor, ema, ema_series
from algo.factors.rsi import RSIFactor, rsi, rsi_series
from algo.factors.snapshot import candles_to_frame, compute_indicators, indicator_frame
from shared.models.models import Candle


def _candles(closes, start=1_700_000_000_000, step=60_000):
    return [
        Candle(timestamp=start + i * step, open=c, high=c + 1, low=c - 1, close=c)
        for i, c in enumerate(closes)
    ]


def test_ema_insufficient_history_is_none():
    assert ema([1.0] * 19, 20) is None


def test_ema_sma_seed_then_recurrence():
    # seed = (1 + 2) / 2 = 1.5, k = 2/3 -> 1.5 + (3 - 1.5) * 2/3 = 2.5
    assert ema([1.0, 2.0, 3.0], 2) == pytest.approx(2.5)


def test_ema_constant_series():
    assert ema([5000.0] * 60, 50) == pytest.approx(5000.0)


def test_ema_rejects_bad_period():
    with pytest.raises(ValueError):
        ema([1.0, 2.0], 0)


def test_rsi_needs_period_plus_one():
    assert rsi([1.0] * 14, 14) is None
    assert rsi([1.0] * 15, 14) is not None


def test_rsi_all_gains_is_100():
    assert rsi([float(i) for i in range(30)], 14) == 100.0


def test_rsi_all_losses_is_0():
    assert rsi([float(30 - i) for i in range(30)], 14) == pytest.approx(0.0)


def test_rsi_bounded():
    closes = [5000 + 10 * math.sin(i / 3) for i in range(80)]
    value = rsi(closes, 14)
    assert value is not None
    assert 0.0 <= value <= 100.0


def test_series_last_value_matches_scalar():
    closes = [5000 + 10 * math.sin(i / 5) + i * 0.1 for i in range(120)]
    assert ema_series(closes, 20)[-1] == pytest.approx(ema(closes, 20))
    assert rsi_series(closes, 14)[-1] == pytest.approx(rsi(closes, 14))
    assert np.isnan(ema_series(closes, 20)[18])
    assert np.isnan(rsi_series(closes, 14)[13])


def test_compute_indicators_absent_when_short():
    snap = compute_indicators(_candles([5000.0] * 30))
    assert snap.ema20 is not None
    assert snap.ema50 is None
    assert snap.rsi14 is not None

    empty = compute_indicators([])
    assert empty.ema20 is None and empty.ema50 is None and empty.rsi14 is None


def test_pandas_factors_match_snapshot():
    closes = [5000 + 5 * math.cos(i / 4) for i in range(90)]
    candles = _candles(closes)
    df = indicator_frame(candles)
    snap = compute_indicators(candles)
    assert list(df.columns[:5]) == ["timestamp", "open", "high", "low", "close"]
    assert df["ema20"].iloc[-1] == pytest.approx(snap.ema20)
    assert df["ema50"].iloc[-1] == pytest.approx(snap.ema50)
    assert df["rsi14"].iloc[-1] == pytest.approx(snap.rsi14)


def test_factor_requires_price_column():
    df = candles_to_frame(_candles([1.0, 2.0])).drop(columns=["close"])
    with pytest.raises(ValueError):
        EMAFactor(period=2).compute(df)
    with pytest.raises(ValueError):
        RSIFactor(period=1).compute(df)


def test_factor_default_column_names():
    df = candles_to_frame(_candles([float(i) for i in range(1, 30)]))
    df = EMAFactor(period=5).compute(df)
    df = RSIFactor(period=5).compute(df)
    assert "ema_5" in df.columns
    assert "rsi_5" in df.columns
