"""模拟执行账本（单一持仓、纯本地记账）。

- 所有操作同步完成：要么修改状态并返回 `Trade`，要么状态不变并返回 `LedgerFailure`；
- 从不抛异常给调用方，拒单由 session 视为“本槽无成交”；
- 成交时间戳由调用方传入（决策时间槽），成交 ID 据此确定性生成。
"""

from __future__ import annotations

import math
import time
from enum import Enum
from typing import Callable

from shared.config.schema import LedgerConfig
from shared.models.models import AccountState, Position, PositionStatus, Side, Trade
from shared.utils.logging import setup_logger
from shared.utils.trade_id import make_trade_id

_QTY_EPS = 1e-12


class LedgerFailure(str, Enum):
    """拒单原因。"""
    INSUFFICIENT_FUNDS = "InsufficientFunds"
    POSITION_ALREADY_OPEN = "PositionAlreadyOpen"
    NO_OPEN_POSITION = "NoOpenPosition"
    OVER_SELL_QUANTITY = "OverSellQuantity"
    INVALID_ORDER = "InvalidOrder"


ExecutionResult = Trade | LedgerFailure


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


def _valid(value: float) -> bool:
    return math.isfinite(value) and value > 0


class ExecutionLedger:
    """账户/持仓/成交簿记。

    Parameters
    ----------
    config:
        初始余额、手续费率、默认下单量（会话内固定）。
    clock:
        未传 timestamp 时使用的时钟（毫秒）；session 总是显式传时间槽。
    """

    def __init__(
        self,
        config: LedgerConfig | None = None,
        *,
        clock: Callable[[], int] | None = None,
        logger=None,
    ):
        self.config = config or LedgerConfig()
        self.fee_rate = float(self.config.fee_rate)
        self.position_size = float(self.config.position_size)
        self._clock = clock or _wall_clock_ms
        self.logger = logger or setup_logger("ledger")
        self._state = AccountState(balance=float(self.config.initial_balance))
        self._trade_seq = 0

    @classmethod
    def from_snapshot(
        cls,
        state: AccountState,
        config: LedgerConfig | None = None,
        *,
        clock: Callable[[], int] | None = None,
        logger=None,
    ) -> "ExecutionLedger":
        """从账户快照恢复；成交序号从已有成交数继续。"""
        ledger = cls(config, clock=clock, logger=logger)
        ledger._state = state.copy()
        ledger._trade_seq = len(state.trades)
        return ledger

    def _next_trade_id(self, timestamp: int, side: Side) -> str:
        self._trade_seq += 1
        return make_trade_id(timestamp=timestamp, side=side.value, seq=self._trade_seq)

    def _reject(self, op: str, failure: LedgerFailure, **ctx) -> LedgerFailure:
        detail = " ".join(f"{k}={v}" for k, v in ctx.items())
        self.logger.warning("%s rejected: %s %s", op, failure.value, detail)
        return failure

    # ------------------------------------------------------------------
    # 交易
    # ------------------------------------------------------------------
    def execute_buy(self, price: float, quantity: float | None = None, timestamp: int | None = None) -> ExecutionResult:
        qty = self.position_size if quantity is None else float(quantity)
        if not (_valid(price) and _valid(qty)):
            return self._reject("BUY", LedgerFailure.INVALID_ORDER, price=price, qty=qty)

        cost = price * qty
        fee = cost * self.fee_rate
        total_cost = cost + fee

        if self._state.balance < total_cost:
            return self._reject(
                "BUY",
                LedgerFailure.INSUFFICIENT_FUNDS,
                balance=f"{self._state.balance:.4f}",
                required=f"{total_cost:.4f}",
            )
        if self._state.position.status == PositionStatus.LONG:
            return self._reject("BUY", LedgerFailure.POSITION_ALREADY_OPEN)

        ts = int(timestamp) if timestamp is not None else self._clock()
        trade = Trade(
            id=self._next_trade_id(ts, Side.BUY),
            side=Side.BUY,
            price=float(price),
            quantity=qty,
            timestamp=ts,
            fee=fee,
        )

        self._state.balance -= total_cost
        self._state.position = Position(
            status=PositionStatus.LONG,
            quantity=qty,
            entry_price=float(price),
            entry_time=ts,
        )
        self._state.trades.append(trade)
        self.logger.info(
            "BUY %s @ %.2f fee=%.4f balance=%.4f id=%s",
            qty,
            price,
            fee,
            self._state.balance,
            trade.id,
        )
        return trade

    def execute_sell(self, price: float, quantity: float | None = None, timestamp: int | None = None) -> ExecutionResult:
        pos = self._state.position
        if pos.status == PositionStatus.NONE:
            return self._reject("SELL", LedgerFailure.NO_OPEN_POSITION)

        qty = pos.quantity if quantity is None else float(quantity)
        if not (_valid(price) and _valid(qty)):
            return self._reject("SELL", LedgerFailure.INVALID_ORDER, price=price, qty=qty)
        if qty - pos.quantity > _QTY_EPS:
            return self._reject("SELL", LedgerFailure.OVER_SELL_QUANTITY, requested=qty, held=pos.quantity)

        proceeds = price * qty
        fee = proceeds * self.fee_rate
        net_proceeds = proceeds - fee
        realized = net_proceeds - pos.entry_price * qty

        ts = int(timestamp) if timestamp is not None else self._clock()
        trade = Trade(
            id=self._next_trade_id(ts, Side.SELL),
            side=Side.SELL,
            price=float(price),
            quantity=qty,
            timestamp=ts,
            fee=fee,
        )

        self._state.balance += net_proceeds
        self._state.realized_pnl += realized
        if qty >= pos.quantity - _QTY_EPS:
            self._state.position = Position()
        else:
            pos.quantity -= qty
        self._state.trades.append(trade)
        self.logger.info(
            "SELL %s @ %.2f fee=%.4f pnl=%.4f balance=%.4f id=%s",
            qty,
            price,
            fee,
            realized,
            self._state.balance,
            trade.id,
        )
        return trade

    # ------------------------------------------------------------------
    # 只读查询（均返回副本）
    # ------------------------------------------------------------------
    def get_unrealized_pnl(self, current_price: float) -> float:
        pos = self._state.position
        if pos.status == PositionStatus.NONE:
            return 0.0
        return (current_price - pos.entry_price) * pos.quantity

    def get_total_pnl(self, current_price: float) -> float:
        return self._state.realized_pnl + self.get_unrealized_pnl(current_price)

    def get_account_state(self) -> AccountState:
        return self._state.copy()

    def get_position(self) -> Position:
        return self._state.position.copy()

    def get_trade_history(self) -> list[Trade]:
        return list(self._state.trades)
