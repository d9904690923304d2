"""时钟抽象：所有时间均为 epoch 毫秒。

核心逻辑只通过注入的时钟取时间，测试/回放用 `FakeClock` 手动推进。
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> int:
        ...


class SystemClock:
    """墙钟（毫秒）。"""

    def now(self) -> int:
        return int(time.time() * 1000)


class FakeClock:
    def __init__(self, start_ms: int | None = None):
        self._ts = int(SystemClock().now() if start_ms is None else start_ms)

    def now(self) -> int:
        return self._ts

    def advance(self, ms: int) -> int:
        self._ts += int(ms)
        return self._ts
