"""成交流水持久化（CSV 日切）。

日期取成交时间槽（UTC），不读墙钟：同一回放无论何时运行，落盘文件一致。
"""

import csv
import _csv
from dataclasses import dataclass
from datetime import datetime, timezone, date
from pathlib import Path
from typing import Optional, TextIO

from shared.models.models import AccountState, SessionState, Trade
from shared.utils.logging import setup_logger

JOURNAL_COLUMNS = [
    "ts",
    "trade_id",
    "symbol",
    "side",
    "qty",
    "price",
    "fee",
    "balance_after_trade",
    "realized_pnl_after_trade",
    "position_qty_after_trade",
]


@dataclass
class JournalRecord:
    """单笔成交记录（含成交后的账户快照）。"""
    trade: Trade
    symbol: str
    balance_after_trade: float
    realized_pnl_after_trade: float
    position_qty_after_trade: float

    @classmethod
    def from_account(cls, trade: Trade, account: AccountState, symbol: str) -> "JournalRecord":
        return cls(
            trade=trade,
            symbol=symbol,
            balance_after_trade=account.balance,
            realized_pnl_after_trade=account.realized_pnl,
            position_qty_after_trade=account.position.quantity,
        )


def _slot_date(ts_ms: int) -> date:
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).date()


class TradeJournal:
    """按日切 CSV 记录成交。

    Parameters
    ----------
    base_dir:
        输出目录。
    symbol:
        写入每行的品种名。
    """

    def __init__(self, base_dir: str | Path = "data/trades", symbol: str = "XAU/USD"):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.symbol = symbol
        self.current_date: date | None = None
        self.file: Optional[TextIO] = None
        self.writer: Optional[_csv._writer] = None
        self.logger = setup_logger("journal")

    def path_for(self, day: date) -> Path:
        return self.base_dir / f"trades_{day}.csv"

    def _ensure_file(self, day: date):
        if self.current_date == day and self.file:
            return

        if self.file:
            self.file.close()

        self.current_date = day
        file_path = self.path_for(day)
        new_file = not file_path.exists()
        self.file = file_path.open("a", newline="", encoding="utf-8")
        self.writer = csv.writer(self.file)
        if new_file:
            self.writer.writerow(JOURNAL_COLUMNS)
            self.logger.info("Journal file opened: %s", file_path)

    def log(self, record: JournalRecord):
        """写入一条成交记录。"""
        trade = record.trade
        self._ensure_file(_slot_date(trade.timestamp))

        if self.writer is None or self.file is None:
            raise RuntimeError("TradeJournal not initialized")

        self.writer.writerow(
            [
                trade.timestamp,
                trade.id,
                record.symbol,
                trade.side.value,
                f"{trade.quantity:.4f}",
                f"{trade.price:.2f}",
                f"{trade.fee:.6f}",
                f"{record.balance_after_trade:.6f}",
                f"{record.realized_pnl_after_trade:.6f}",
                f"{record.position_qty_after_trade:.4f}",
            ]
        )
        self.file.flush()

    def on_state(self, state: SessionState):
        """session 订阅回调：只记录本槽实际成交。"""
        if state.executed is None:
            return
        self.log(JournalRecord.from_account(state.executed, state.account, self.symbol))

    def close(self):
        """关闭当前文件句柄。"""
        if self.file:
            self.file.close()
            self.file = None
            self.writer = None
