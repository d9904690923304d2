"""配置架构定义（Pydantic Schema）。

目标：
- 让配置成为“强类型 + 可演进”的边界协议；
- 启动阶段尽早失败，避免 typo/类型错误在长时间运行的模拟里“隐蔽爆炸”；
- 默认值即原始常量：空配置也能直接跑出与所有观察者一致的序列。

注意：所有实例必须使用相同的 market/decision/session 参数，
否则时间桶 seed 一致也无法得到一致的价格/决策序列。
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MarketConfig(BaseModel):
    """价格模拟器参数（XAU/USD 风格）。"""
    initial_price: float = Field(default=5094.0, gt=0)
    update_interval_ms: int = Field(default=1000, gt=0)
    candle_duration_ms: int = Field(default=60_000, gt=0)
    history_candles: int = Field(default=120, ge=0)
    max_history: int = Field(default=500, gt=0)

    volatility: float = Field(default=0.0003, ge=0)
    trend_step: float = Field(default=0.0001, ge=0)
    trend_decay: float = Field(default=0.99, ge=0, le=1)
    trend_limit: float = Field(default=0.001, ge=0)
    momentum_decay: float = Field(default=0.8, ge=0, le=1)
    momentum_weight: float = Field(default=0.2, ge=0)
    spike_probability: float = Field(default=0.02, ge=0, le=1)
    spike_multiplier: float = Field(default=2.5, ge=1)
    mean_reversion: float = Field(default=0.0001, ge=0)

    price_floor: float = Field(default=4800.0, gt=0)
    price_ceiling: float = Field(default=5400.0, gt=0)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _check_bounds(self) -> "MarketConfig":
        if self.price_floor >= self.price_ceiling:
            raise ValueError("market.price_floor must be < market.price_ceiling")
        if not (self.price_floor <= self.initial_price <= self.price_ceiling):
            raise ValueError("market.initial_price must lie within [price_floor, price_ceiling]")
        if self.candle_duration_ms % self.update_interval_ms != 0:
            raise ValueError("market.candle_duration_ms must be a multiple of market.update_interval_ms")
        if self.history_candles > self.max_history:
            raise ValueError("market.history_candles must be <= market.max_history")
        return self


class DecisionConfig(BaseModel):
    """决策引擎规则参数。"""
    window_ms: int = Field(default=3000, gt=0)
    cooldown_ms: int = Field(default=8000, ge=0)

    profit_target_min: float = 2.0
    profit_target_span: float = Field(default=6.0, ge=0)
    stop_loss: float = Field(default=-15.0, lt=0)

    min_streak: int = Field(default=2, ge=1)
    rsi_oversold: float = Field(default=35.0, ge=0, le=100)
    opportunity_threshold: float = Field(default=0.7, ge=0, le=1)
    min_ticks: int = Field(default=10, ge=0)

    model_config = ConfigDict(extra="forbid")


class LedgerConfig(BaseModel):
    """模拟账户参数（整个会话期间固定）。"""
    initial_balance: float = Field(default=200.0, ge=0)
    fee_rate: float = Field(default=0.0005, ge=0, lt=1)
    position_size: float = Field(default=0.02, gt=0)
    model_config = ConfigDict(extra="forbid")


class SessionConfig(BaseModel):
    """编排器参数。"""
    decision_interval_ms: int = Field(default=3000, gt=0)
    model_config = ConfigDict(extra="forbid")


class JournalConfig(BaseModel):
    """成交 CSV 日志（可选）。"""
    enabled: bool = False
    base_dir: str = "data/trades"
    model_config = ConfigDict(extra="forbid")


class MainConfig(BaseModel):
    """应用总配置。"""
    symbol: str = "XAU/USD"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    market: MarketConfig = Field(default_factory=MarketConfig)
    decision: DecisionConfig = Field(default_factory=DecisionConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    journal: JournalConfig = Field(default_factory=JournalConfig)

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

