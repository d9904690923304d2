"""模拟会话编排器。

一个 `SimulationSession` 独占一套 价格模拟器 / 决策引擎 / 账本，生命周期：
created -> running -> stopped -> disposed。

两类步骤，均为同步执行、互不重叠：
- `on_tick(now_ms)`：推进价格（模拟或外部价格源），新 K 线完成时重算指标，发布 "tick" 状态；
- `process_slot(now_ms)`：按决策时间槽 `floor(now / interval) * interval` 幂等处理，
  每槽只调用一次决策引擎，成交时间戳使用时间槽而非墙钟，发布 "slot" 状态。

`start()` 只是在当前事件循环上挂两个定时任务；`stop()` 取消后续回调，
正在进行的步骤是同步的，一定会完整结束。
"""

from __future__ import annotations

import asyncio
import math
from enum import Enum
from typing import Callable

from algo.factors.snapshot import compute_indicators
from algo.strategy.decision import DecisionEngine, DecisionInputs
from broker.ledger import ExecutionLedger, LedgerFailure
from engine.clock import Clock, SystemClock
from market.simulator import PriceSimulator
from market.sources import PriceSource
from shared.config.schema import MainConfig
from shared.models.models import Action, Decision, IndicatorSnapshot, PositionStatus, SessionState, Trade
from shared.utils.logging import setup_logger
from shared.utils.trade_journal import TradeJournal

StateCallback = Callable[[SessionState], None]


class SessionStatus(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    STOPPED = "stopped"
    DISPOSED = "disposed"


class SimulationSession:
    """单个模拟会话（显式持有，不做全局单例）。

    Parameters
    ----------
    config:
        总配置；None 时使用默认值。
    clock:
        毫秒时钟；默认墙钟，回放/测试传 `FakeClock`。
    price_source:
        可选外部价格源；返回 None 或非法价格（非有限值、<= 0）时沿用上一次价格。
    start_ms:
        会话起始时间（决定历史 K 线种子）；默认取 `clock.now()`。
    """

    def __init__(
        self,
        config: MainConfig | None = None,
        *,
        clock: Clock | None = None,
        price_source: PriceSource | None = None,
        start_ms: int | None = None,
        logger=None,
    ):
        self.config = config or MainConfig()
        self.clock = clock or SystemClock()
        self.price_source = price_source
        self.logger = logger or setup_logger("session", self.config.log_level)
        self.interval_ms = int(self.config.session.decision_interval_ms)

        start = int(self.clock.now() if start_ms is None else start_ms)
        self.simulator = PriceSimulator(self.config.market, now_ms=start)
        self.decision_engine = DecisionEngine(self.config.decision)
        self.ledger = ExecutionLedger(self.config.ledger)

        self.status = SessionStatus.CREATED
        self.last_slot: int | None = None
        self.latest_decision: Decision | None = None
        self.indicators: IndicatorSnapshot = compute_indicators(self.simulator.get_price_history())
        self.tick_count = 0
        self.slot_count = 0

        self._subscribers: list[StateCallback] = []
        self._tasks: list[asyncio.Task] = []

        self.journal: TradeJournal | None = None
        if self.config.journal.enabled:
            self.journal = TradeJournal(self.config.journal.base_dir, symbol=self.config.symbol)
            self.subscribe(self.journal.on_state)

    # ------------------------------------------------------------------
    # 发布/订阅
    # ------------------------------------------------------------------
    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        """按注册顺序同步投递；返回取消订阅函数。"""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            self.unsubscribe(callback)

        return _unsubscribe

    def unsubscribe(self, callback: StateCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _publish(self, state: SessionState) -> None:
        for cb in list(self._subscribers):
            try:
                cb(state)
            except Exception:
                self.logger.warning("Subscriber %r failed on %s state", cb, state.kind, exc_info=True)

    # ------------------------------------------------------------------
    # 状态
    # ------------------------------------------------------------------
    def current_slot(self, now_ms: int) -> int:
        return (int(now_ms) // self.interval_ms) * self.interval_ms

    def snapshot(
        self,
        kind: str = "tick",
        *,
        timestamp: int | None = None,
        slot: int | None = None,
        executed: Trade | None = None,
    ) -> SessionState:
        """当前组合状态（全部为副本）。"""
        sim = self.simulator
        price = sim.get_current_price()
        account = self.ledger.get_account_state()
        ts = timestamp if timestamp is not None else (sim.last_tick_ts or sim.get_latest_candle().timestamp)
        return SessionState(
            kind=kind,
            timestamp=int(ts),
            price=price,
            candles=tuple(sim.get_price_history()),
            current_candle=sim.get_latest_candle(),
            indicators=self.indicators,
            position=account.position.copy(),
            unrealized_pnl=self.ledger.get_unrealized_pnl(price),
            account=account,
            latest_decision=self.latest_decision if kind == "slot" else None,
            trades=tuple(account.trades),
            slot=slot,
            executed=executed,
        )

    # ------------------------------------------------------------------
    # 步骤
    # ------------------------------------------------------------------
    def on_tick(self, now_ms: int) -> SessionState:
        """推进一个价格 tick。"""
        now_ms = int(now_ms)
        if self.price_source is not None:
            quote = self.price_source.price_at(now_ms)
            price = self.simulator.get_current_price()
            if quote is None:
                self.logger.debug("Price source returned nothing at %s, keeping %.2f", now_ms, price)
            elif not math.isfinite(quote) or quote <= 0:
                self.logger.warning("Invalid price %r from source at %s, keeping %.2f", quote, now_ms, price)
            else:
                price = float(quote)
            _, is_new_candle = self.simulator.apply_price(now_ms, price)
        else:
            _, is_new_candle = self.simulator.tick(now_ms)

        if is_new_candle:
            self.indicators = compute_indicators(self.simulator.get_price_history())
        self.tick_count += 1

        state = self.snapshot("tick", timestamp=now_ms)
        self._publish(state)
        return state

    def process_slot(self, now_ms: int) -> SessionState | None:
        """处理 now_ms 所在的决策槽；已处理过的槽直接返回 None。"""
        slot = self.current_slot(now_ms)
        if self.last_slot is not None and slot <= self.last_slot:
            return None
        self.last_slot = slot

        price = self.simulator.get_current_price()
        position = self.ledger.get_position()
        inputs = DecisionInputs(
            price=price,
            indicators=self.indicators,
            position=position.status,
            unrealized_pnl=self.ledger.get_unrealized_pnl(price),
            timestamp=slot,
            entry_price=position.entry_price if position.is_long else None,
        )
        decision = self.decision_engine.make_decision(inputs)
        self.latest_decision = decision

        executed: Trade | None = None
        result: Trade | LedgerFailure | None = None
        if decision.action == Action.BUY and position.status == PositionStatus.NONE:
            result = self.ledger.execute_buy(price, timestamp=slot)
        elif decision.action == Action.SELL and position.status == PositionStatus.LONG:
            result = self.ledger.execute_sell(price, timestamp=slot)

        if isinstance(result, LedgerFailure):
            self.logger.info("slot=%s %s not executed: %s", slot, decision.action.value, result.value)
        elif result is not None:
            executed = result

        self.slot_count += 1
        self.logger.info(
            "slot=%s price=%.2f action=%s conf=%.2f %s",
            slot,
            price,
            decision.action.value,
            decision.confidence,
            decision.reason,
        )

        state = self.snapshot("slot", timestamp=slot, slot=slot, executed=executed)
        self._publish(state)
        return state

    # ------------------------------------------------------------------
    # 生命周期
    # ------------------------------------------------------------------
    async def _price_loop(self) -> None:
        interval_s = self.config.market.update_interval_ms / 1000
        while True:
            try:
                self.on_tick(self.clock.now())
            except Exception:
                self.logger.exception("Price tick failed")
            await asyncio.sleep(interval_s)

    async def _slot_loop(self) -> None:
        while True:
            now = self.clock.now()
            next_slot = self.current_slot(now) + self.interval_ms
            await asyncio.sleep((next_slot - now) / 1000)
            try:
                self.process_slot(self.clock.now())
            except Exception:
                self.logger.exception("Slot processing failed")

    def start(self) -> None:
        """在当前运行中的事件循环上启动定时任务（立即返回）。"""
        if self.status == SessionStatus.DISPOSED:
            raise RuntimeError("Session already disposed")
        if self.status == SessionStatus.RUNNING:
            return
        loop = asyncio.get_running_loop()
        self._tasks = [
            loop.create_task(self._price_loop(), name="aurumsim-price"),
            loop.create_task(self._slot_loop(), name="aurumsim-slot"),
        ]
        self.status = SessionStatus.RUNNING
        self.logger.info("Session started: symbol=%s interval=%sms", self.config.symbol, self.interval_ms)

    def stop(self) -> None:
        """取消后续定时回调；已在执行的步骤照常完成。"""
        if self.status != SessionStatus.RUNNING:
            return
        for task in self._tasks:
            task.cancel()
        self._tasks = []
        self.status = SessionStatus.STOPPED
        self.logger.info("Session stopped: ticks=%s slots=%s", self.tick_count, self.slot_count)

    def dispose(self) -> None:
        """停止并释放订阅者/日志文件；之后不可再启动。"""
        if self.status == SessionStatus.DISPOSED:
            return
        self.stop()
        self._subscribers.clear()
        if self.journal is not None:
            self.journal.close()
        self.status = SessionStatus.DISPOSED
