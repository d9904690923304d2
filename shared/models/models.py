"""核心数据结构：Candle/Trade/Position/AccountState/Decision/SessionState。

时间统一使用 epoch 毫秒（int），与时间桶 seed 口径一致。
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class Side(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class Action(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class PositionStatus(str, Enum):
    NONE = "NONE"
    LONG = "LONG"


@dataclass(frozen=True)
class Candle:
    """K 线（timestamp 为时间槽起点）。"""
    timestamp: int
    open: float
    high: float
    low: float
    close: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
        }


@dataclass(frozen=True)
class PriceUpdate:
    """单次价格 tick：当前价 + 进行中的 K 线。"""
    price: float
    timestamp: int
    candle: Candle


@dataclass(frozen=True)
class IndicatorSnapshot:
    """指标快照；历史不足时为 None。"""
    ema20: float | None = None
    ema50: float | None = None
    rsi14: float | None = None


@dataclass
class Position:
    """持仓（单一持仓策略）。"""
    status: PositionStatus = PositionStatus.NONE
    quantity: float = 0.0
    entry_price: float = 0.0
    entry_time: int = 0

    @property
    def is_long(self) -> bool:
        return self.status == PositionStatus.LONG

    def copy(self) -> "Position":
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "quantity": self.quantity,
            "entry_price": self.entry_price,
            "entry_time": self.entry_time,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Position":
        return cls(
            status=PositionStatus(data.get("status", "NONE")),
            quantity=float(data.get("quantity", 0.0)),
            entry_price=float(data.get("entry_price", 0.0)),
            entry_time=int(data.get("entry_time", 0)),
        )


@dataclass(frozen=True)
class Trade:
    """成交记录（创建后不可变）。"""
    id: str
    side: Side
    price: float
    quantity: float
    timestamp: int
    fee: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "side": self.side.value,
            "price": self.price,
            "quantity": self.quantity,
            "timestamp": self.timestamp,
            "fee": self.fee,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Trade":
        return cls(
            id=str(data["id"]),
            side=Side(data["side"]),
            price=float(data["price"]),
            quantity=float(data["quantity"]),
            timestamp=int(data["timestamp"]),
            fee=float(data["fee"]),
        )


@dataclass
class AccountState:
    """账户快照：余额、持仓、已实现盈亏、成交序列。"""
    balance: float
    position: Position = field(default_factory=Position)
    realized_pnl: float = 0.0
    trades: list[Trade] = field(default_factory=list)

    def copy(self) -> "AccountState":
        return AccountState(
            balance=self.balance,
            position=self.position.copy(),
            realized_pnl=self.realized_pnl,
            trades=list(self.trades),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "balance": self.balance,
            "position": self.position.to_dict(),
            "realized_pnl": self.realized_pnl,
            "trades": [t.to_dict() for t in self.trades],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AccountState":
        return cls(
            balance=float(data["balance"]),
            position=Position.from_dict(data.get("position") or {}),
            realized_pnl=float(data.get("realized_pnl", 0.0)),
            trades=[Trade.from_dict(t) for t in data.get("trades") or []],
        )


@dataclass(frozen=True)
class Decision:
    """决策输出：动作 + 置信度 + 可读理由。"""
    action: Action
    confidence: float
    reason: str


@dataclass(frozen=True)
class SessionState:
    """对外发布的组合状态（只读）。

    kind:
        "tick"：仅价格更新，不携带新决策；
        "slot"：决策槽处理完毕，`latest_decision` 为本槽决策。
    """
    kind: str
    timestamp: int
    price: float
    candles: tuple[Candle, ...]
    current_candle: Candle | None
    indicators: IndicatorSnapshot
    position: Position
    unrealized_pnl: float
    account: AccountState
    latest_decision: Decision | None
    trades: tuple[Trade, ...]
    slot: int | None = None
    executed: Trade | None = None
