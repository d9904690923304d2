"""成交 ID 生成。

要求：
- 同一时间槽、同一方向、同一账本序号 → 相同 ID（deterministic），
  所有观察者对同一笔模拟成交看到同一个 ID。
- 可读：直接体现时间槽与方向，便于日志/CSV 对账。
"""

from __future__ import annotations


def make_trade_id(*, timestamp: int, side: str, seq: int) -> str:
    if seq <= 0:
        raise ValueError("seq must be > 0")
    return f"trade-{int(timestamp)}-{str(side).upper()}-{int(seq)}"
