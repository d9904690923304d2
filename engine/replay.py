"""快进回放引擎：用 `FakeClock` 驱动会话，不 sleep。

相同配置 + 相同起始时间 → 完全相同的价格/决策/成交序列，
可用来和实时运行的实例逐笔对账。
"""

from __future__ import annotations

from engine.base_engine import BaseEngine, EngineResult
from engine.clock import FakeClock
from market.sources import PriceSource
from shared.config.schema import MainConfig


class ReplayEngine(BaseEngine):
    """按 tick 间隔推进 N 步，每步先 tick 再尝试处理决策槽。"""

    logger_name = "replay"

    def __init__(
        self,
        config: MainConfig | None = None,
        *,
        ticks: int = 600,
        start_ms: int | None = None,
        price_source: PriceSource | None = None,
    ):
        if ticks < 0:
            raise ValueError("ticks must be >= 0")
        super().__init__(config, clock=FakeClock(start_ms), price_source=price_source)
        self.ticks = int(ticks)

    def run(self) -> EngineResult:
        step_ms = self.config.market.update_interval_ms
        try:
            for _ in range(self.ticks):
                now = self.clock.advance(step_ms)
                self.session.on_tick(now)
                self.session.process_slot(now)
            return self.build_result()
        finally:
            self.session.dispose()
