"""实时引擎：墙钟驱动的会话，运行固定时长后停止。"""

from __future__ import annotations

import asyncio

from engine.base_engine import BaseEngine, EngineResult
from engine.clock import Clock, SystemClock
from market.sources import PriceSource
from shared.config.schema import MainConfig


class LiveEngine(BaseEngine):
    logger_name = "session"

    def __init__(
        self,
        config: MainConfig | None = None,
        *,
        seconds: float = 30.0,
        clock: Clock | None = None,
        price_source: PriceSource | None = None,
    ):
        if seconds < 0:
            raise ValueError("seconds must be >= 0")
        super().__init__(config, clock=clock or SystemClock(), price_source=price_source)
        self.seconds = float(seconds)

    async def run_async(self) -> EngineResult:
        self.session.start()
        try:
            await asyncio.sleep(self.seconds)
        finally:
            self.session.dispose()
        return self.build_result()

    def run(self) -> EngineResult:
        return asyncio.run(self.run_async())
