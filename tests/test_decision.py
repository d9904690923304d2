import pytest

from algo.strategy.decision import DecisionContext, DecisionEngine, DecisionInputs, DecisionState, evaluate_rules
from shared.config.schema import DecisionConfig
from shared.models.models import Action, IndicatorSnapshot, PositionStatus
from shared.utils.seeding import SeededRandom, bucket_seed

TS = 1_700_000_001_000
NO_IND = IndicatorSnapshot()


def _ctx(
    *,
    price=5100.0,
    indicators=NO_IND,
    position=PositionStatus.NONE,
    pnl=0.0,
    ts=TS,
    entry=None,
    direction=0,
    streak=0,
    tick_count=0,
    last_trade_time=None,
):
    inputs = DecisionInputs(
        price=price,
        indicators=indicators,
        position=position,
        unrealized_pnl=pnl,
        timestamp=ts,
        entry_price=entry,
    )
    return DecisionContext(
        inputs=inputs,
        direction=direction,
        streak=streak,
        tick_count=tick_count,
        last_trade_time=last_trade_time,
    )


def _is_rounded(x: float) -> bool:
    return round(x * 100) / 100 == x


def test_holding_takes_profit_above_max_target():
    d = evaluate_rules(_ctx(position=PositionStatus.LONG, pnl=10.0, entry=5000.0))
    assert d.action == Action.SELL
    assert 0.88 <= d.confidence <= 0.98
    assert "Taking profit" in d.reason
    assert _is_rounded(d.confidence)


def test_holding_stop_loss():
    d = evaluate_rules(_ctx(position=PositionStatus.LONG, pnl=-20.0, entry=5100.0))
    assert d.action == Action.SELL
    assert d.confidence == 0.95
    assert "Stop loss" in d.reason


def test_holding_otherwise_holds():
    d = evaluate_rules(_ctx(position=PositionStatus.LONG, pnl=0.5, entry=5100.0))
    assert d.action == Action.HOLD
    assert d.confidence == 0.7
    assert "$5100.00" in d.reason


def test_holding_never_buys_even_with_bullish_signals():
    ind = IndicatorSnapshot(ema20=5050.0, ema50=5000.0, rsi14=10.0)
    d = evaluate_rules(
        _ctx(position=PositionStatus.LONG, pnl=0.0, indicators=ind, direction=1, streak=5, tick_count=100)
    )
    assert d.action != Action.BUY


def test_flat_cooldown_blocks_entry():
    d = evaluate_rules(_ctx(direction=1, streak=5, last_trade_time=TS - 1000))
    assert d.action == Action.HOLD
    assert d.confidence == 0.5
    assert "7s" in d.reason


def test_flat_cooldown_elapsed_allows_entry():
    d = evaluate_rules(_ctx(direction=1, streak=5, last_trade_time=TS - 8000))
    assert d.action == Action.BUY


def test_flat_momentum_buy():
    d = evaluate_rules(_ctx(direction=1, streak=2))
    assert d.action == Action.BUY
    assert 0.82 <= d.confidence <= 0.97
    assert "momentum" in d.reason


def test_flat_rsi_oversold_buy():
    d = evaluate_rules(_ctx(direction=-1, streak=3, indicators=IndicatorSnapshot(rsi14=20.0)))
    assert d.action == Action.BUY
    assert 0.78 <= d.confidence <= 0.90
    assert "RSI oversold" in d.reason


def test_flat_ema_trend_buy():
    ind = IndicatorSnapshot(ema20=5090.0, ema50=5080.0, rsi14=55.0)
    d = evaluate_rules(_ctx(price=5100.0, indicators=ind, direction=-1, streak=1))
    assert d.action == Action.BUY
    assert 0.75 <= d.confidence <= 0.90
    assert "EMA20" in d.reason


def test_flat_without_indicators_or_ticks_scans():
    d = evaluate_rules(_ctx(direction=-1, streak=1, tick_count=0))
    assert d.action == Action.HOLD
    assert d.confidence == 0.6
    assert "Scanning" in d.reason
    assert "down" in d.reason


def test_same_window_same_decision():
    window = DecisionConfig().window_ms
    base = (TS // window) * window
    a = evaluate_rules(_ctx(ts=base, tick_count=50))
    b = evaluate_rules(_ctx(ts=base + window - 1, tick_count=50))
    assert a == b


def test_confidence_always_in_range_and_rounded():
    for i in range(200):
        d = evaluate_rules(_ctx(ts=TS + i * 3000, tick_count=50, direction=-1, streak=1))
        assert 0.0 <= d.confidence <= 1.0
        assert _is_rounded(d.confidence)


def test_engine_tracks_momentum_and_sets_cooldown():
    engine = DecisionEngine()
    inputs = [
        DecisionInputs(price=p, indicators=NO_IND, position=PositionStatus.NONE, unrealized_pnl=0.0, timestamp=TS + i * 3000)
        for i, p in enumerate([5000.0, 5001.0, 5002.0])
    ]
    decisions = [engine.make_decision(x) for x in inputs]
    assert engine.state.direction == 1
    assert engine.state.streak == 2
    assert engine.state.tick_count == 3
    assert decisions[-1].action == Action.BUY
    assert engine.state.last_trade_time == TS + 6000

    after = engine.make_decision(
        DecisionInputs(price=5003.0, indicators=NO_IND, position=PositionStatus.NONE, unrealized_pnl=0.0, timestamp=TS + 9000)
    )
    assert after.action == Action.HOLD
    assert "Waiting" in after.reason


def test_engine_direction_reset_on_reversal():
    engine = DecisionEngine(state=DecisionState(last_price=100.0, direction=1, streak=4))
    engine.make_decision(
        DecisionInputs(price=99.0, indicators=NO_IND, position=PositionStatus.NONE, unrealized_pnl=0.0, timestamp=TS)
    )
    assert engine.state.direction == -1
    assert engine.state.streak == 1


def test_config_rejects_positive_stop_loss():
    with pytest.raises(ValueError):
        DecisionConfig(stop_loss=5.0)


def _opportunity_ts(params: DecisionConfig) -> int:
    """找一个首个随机数超过机会阈值的决策槽。"""
    for i in range(1000):
        ts = TS + i * params.window_ms
        if SeededRandom(bucket_seed(ts, params.window_ms)).next() > params.opportunity_threshold:
            return ts
    raise AssertionError("no opportunity window found")


def test_flat_opportunistic_buy_after_min_ticks():
    params = DecisionConfig()
    ts = _opportunity_ts(params)
    d = evaluate_rules(_ctx(ts=ts, direction=-1, streak=3, tick_count=params.min_ticks + 1), params)
    assert d.action == Action.BUY
    assert 0.68 <= d.confidence <= 0.88
    assert "Market opportunity" in d.reason


def test_opportunity_gated_by_tick_count():
    params = DecisionConfig()
    ts = _opportunity_ts(params)
    d = evaluate_rules(_ctx(ts=ts, direction=-1, tick_count=params.min_ticks), params)
    assert d.action == Action.HOLD
    assert d.confidence == 0.6
    assert "Scanning" in d.reason
    assert "down" in d.reason
