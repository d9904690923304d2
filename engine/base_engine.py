"""执行引擎基类（模板模式）。

目标：
- 把“时间推进方式”（快进回放 / 实时事件循环）与会话内的价格/决策/记账逻辑解耦；
- 回放与实时运行共用同一个 `SimulationSession` 和同一份汇总口径，避免逻辑漂移。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from typing import Any

from engine.clock import Clock
from engine.session import SimulationSession
from market.sources import PriceSource
from shared.config.schema import MainConfig
from shared.models.models import SessionState
from shared.utils.logging import setup_logger


@dataclass(frozen=True)
class EngineResult:
    """引擎运行结果（统一出口）。"""

    summary: dict[str, Any]
    artifacts: dict[str, Any] | None = None


class BaseEngine(ABC):
    """引擎抽象基类：持有配置/时钟/会话，并统计每个决策槽的动作。

    子类只负责推进时间，最后调用 `build_result()` 产出统一格式的结果。
    """

    logger_name = "aurumsim"

    def __init__(
        self,
        config: MainConfig | None = None,
        *,
        clock: Clock,
        price_source: PriceSource | None = None,
    ):
        self.config = config or MainConfig()
        self.clock = clock
        self.start_ms = int(clock.now())
        self.session = SimulationSession(
            self.config,
            clock=clock,
            price_source=price_source,
            start_ms=self.start_ms,
        )
        self.logger = setup_logger(self.logger_name, self.config.log_level)
        self.actions: Counter[str] = Counter()
        self.session.subscribe(self._count_decision)

    def _count_decision(self, state: SessionState) -> None:
        if state.kind == "slot" and state.latest_decision is not None:
            self.actions[state.latest_decision.action.value] += 1

    def build_result(self) -> EngineResult:
        session = self.session
        final = session.snapshot()
        account = final.account
        summary = {
            "symbol": self.config.symbol,
            "start_ms": self.start_ms,
            "end_ms": int(self.clock.now()),
            "ticks": session.tick_count,
            "slots": session.slot_count,
            "decisions": dict(self.actions),
            "trades": len(account.trades),
            "final_price": final.price,
            "balance": account.balance,
            "realized_pnl": account.realized_pnl,
            "unrealized_pnl": final.unrealized_pnl,
            "position": account.position.status.value,
        }
        self.logger.info(
            "Run done: ticks=%s slots=%s trades=%s balance=%.4f realized=%.4f",
            summary["ticks"],
            summary["slots"],
            summary["trades"],
            account.balance,
            account.realized_pnl,
        )
        return EngineResult(
            summary=summary,
            artifacts={
                "account": account.to_dict(),
                "candles": [c.to_dict() for c in final.candles],
                "indicators": {
                    "ema20": final.indicators.ema20,
                    "ema50": final.indicators.ema50,
                    "rsi14": final.indicators.rsi14,
                },
            },
        )

    @abstractmethod
    def run(self) -> EngineResult:
        raise NotImplementedError
