"""规则级联决策引擎（BUY / SELL / HOLD）。

结构：
- `DecisionState`：可变状态（动量方向、连续同向次数、tick 计数、上次交易时间），
  只由 `DecisionEngine.make_decision` 更新；
- `evaluate_rules`：纯函数，输入冻结的 `DecisionContext` 快照，输出 `Decision`，
  可以脱离定时器单独测试整条规则链。

确定性：随机数 seed 取决策时间戳所在的粗粒度窗口 `floor(ts / window_ms)`，
同一窗口内重复评估结果一致；冷却/上次交易时间一律使用决策的逻辑时间戳，
不会再读一次墙钟。
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.config.schema import DecisionConfig
from shared.models.models import Action, Decision, IndicatorSnapshot, PositionStatus
from shared.utils.logging import setup_logger
from shared.utils.seeding import SeededRandom, bucket_seed


@dataclass(frozen=True)
class DecisionInputs:
    """一次决策的外部输入。"""
    price: float
    indicators: IndicatorSnapshot
    position: PositionStatus
    unrealized_pnl: float
    timestamp: int
    entry_price: float | None = None


@dataclass
class DecisionState:
    """决策引擎内部状态。"""
    last_price: float | None = None
    direction: int = 0  # 1 = 上涨, -1 = 下跌, 0 = 持平
    streak: int = 0
    tick_count: int = 0
    last_trade_time: int | None = None


@dataclass(frozen=True)
class DecisionContext:
    """规则评估用的冻结快照。"""
    inputs: DecisionInputs
    direction: int
    streak: int
    tick_count: int
    last_trade_time: int | None


def _fmt_price(value: float | None) -> str:
    return f"${value:.2f}" if value else "?"


def _fmt_pnl(pnl: float) -> str:
    return f"+${pnl:.2f}" if pnl >= 0 else f"-${abs(pnl):.2f}"


def _decision(action: Action, confidence: float, reason: str) -> Decision:
    confidence = max(0.0, min(1.0, confidence))
    return Decision(action=action, confidence=round(confidence * 100) / 100, reason=reason)


def evaluate_rules(ctx: DecisionContext, params: DecisionConfig | None = None) -> Decision:
    """按顺序评估规则，首个命中者胜出。"""
    p = params or DecisionConfig()
    inp = ctx.inputs
    ind = inp.indicators
    price = inp.price
    pnl = inp.unrealized_pnl
    rng = SeededRandom(bucket_seed(inp.timestamp, p.window_ms))

    if inp.position == PositionStatus.LONG:
        profit_target = p.profit_target_min + rng.next() * p.profit_target_span
        if pnl >= profit_target:
            return _decision(
                Action.SELL,
                0.88 + rng.next() * 0.1,
                f"Taking profit: {_fmt_pnl(pnl)} gain, target was ${profit_target:.2f}. "
                f"Price moved from {_fmt_price(inp.entry_price)} to ${price:.2f}.",
            )
        if pnl < p.stop_loss:
            return _decision(
                Action.SELL,
                0.95,
                f"Stop loss triggered: position down ${abs(pnl):.2f}. Protecting capital.",
            )
        return _decision(
            Action.HOLD,
            0.7,
            f"Holding position. Current PnL: {_fmt_pnl(pnl)}. Entry: {_fmt_price(inp.entry_price)}. "
            "Waiting for profit target.",
        )

    if ctx.last_trade_time is not None:
        elapsed = inp.timestamp - ctx.last_trade_time
        if elapsed < p.cooldown_ms:
            remaining_s = (p.cooldown_ms - elapsed) / 1000
            return _decision(
                Action.HOLD,
                0.5,
                f"Waiting for next trade opportunity. {remaining_s:.0f}s until next possible entry.",
            )

    if ctx.direction == 1 and ctx.streak >= p.min_streak:
        rsi_txt = f"{ind.rsi14:.1f}" if ind.rsi14 is not None else "N/A"
        return _decision(
            Action.BUY,
            0.82 + rng.next() * 0.15,
            f"Bullish momentum: {ctx.streak} consecutive up-ticks. Entry at ${price:.2f}. RSI: {rsi_txt}.",
        )

    if ind.rsi14 is not None and ind.rsi14 < p.rsi_oversold:
        return _decision(
            Action.BUY,
            0.78 + rng.next() * 0.12,
            f"RSI oversold at {ind.rsi14:.1f}. Entry at ${price:.2f}, expecting a bounce.",
        )

    if ind.ema20 is not None and ind.ema50 is not None and price > ind.ema20 > ind.ema50:
        return _decision(
            Action.BUY,
            0.75 + rng.next() * 0.15,
            f"Bullish trend confirmed: price above EMA20 (${ind.ema20:.2f}), "
            f"EMA20 above EMA50 (${ind.ema50:.2f}).",
        )

    if rng.next() > p.opportunity_threshold and ctx.tick_count > p.min_ticks:
        return _decision(
            Action.BUY,
            0.68 + rng.next() * 0.2,
            f"Market opportunity: entering long at ${price:.2f} for a quick scalp.",
        )

    arrow = {1: "up", -1: "down"}.get(ctx.direction, "flat")
    return _decision(
        Action.HOLD,
        0.6,
        f"Scanning for entry. Current: ${price:.2f}. Momentum: {arrow}.",
    )


class DecisionEngine:
    """带状态的决策引擎；每个会话一个实例。"""

    def __init__(self, config: DecisionConfig | None = None, *, state: DecisionState | None = None, logger=None):
        self.config = config or DecisionConfig()
        self.state = state or DecisionState()
        self.logger = logger or setup_logger("decision")

    def _update_momentum(self, price: float) -> None:
        s = self.state
        if s.last_price is not None:
            direction = 1 if price > s.last_price else -1 if price < s.last_price else 0
            if direction == s.direction:
                s.streak += 1
            else:
                s.streak = 1
                s.direction = direction
        s.last_price = price
        s.tick_count += 1

    def snapshot(self, inputs: DecisionInputs) -> DecisionContext:
        s = self.state
        return DecisionContext(
            inputs=inputs,
            direction=s.direction,
            streak=s.streak,
            tick_count=s.tick_count,
            last_trade_time=s.last_trade_time,
        )

    def make_decision(self, inputs: DecisionInputs) -> Decision:
        self._update_momentum(inputs.price)
        decision = evaluate_rules(self.snapshot(inputs), self.config)
        if decision.action in (Action.BUY, Action.SELL):
            self.state.last_trade_time = int(inputs.timestamp)
        self.logger.debug(
            "ts=%s action=%s conf=%.2f reason=%s",
            inputs.timestamp,
            decision.action.value,
            decision.confidence,
            decision.reason,
        )
        return decision
