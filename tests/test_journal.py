import csv

from engine.clock import FakeClock
from engine.session import SimulationSession
from market.sources import ScriptedPriceSource
from shared.config.schema import JournalConfig, MainConfig
from shared.models.models import AccountState, Position, PositionStatus, Side, Trade
from shared.utils.trade_journal import JOURNAL_COLUMNS, JournalRecord, TradeJournal

T0 = 1_700_000_001_000  # 2023-11-14 UTC


def _trade(ts: int, side: Side = Side.BUY, seq: int = 1) -> Trade:
    return Trade(id=f"trade-{ts}-{side.value}-{seq}", side=side, price=5000.0, quantity=0.02, timestamp=ts, fee=0.05)


def _read(path):
    with path.open(newline="", encoding="utf-8") as f:
        return list(csv.reader(f))


def test_journal_writes_header_and_row(tmp_path):
    journal = TradeJournal(tmp_path, symbol="XAU/USD")
    account = AccountState(
        balance=99.95,
        position=Position(status=PositionStatus.LONG, quantity=0.02, entry_price=5000.0, entry_time=T0),
    )
    journal.log(JournalRecord.from_account(_trade(T0), account, "XAU/USD"))
    journal.close()

    rows = _read(tmp_path / "trades_2023-11-14.csv")
    assert rows[0] == JOURNAL_COLUMNS
    assert rows[1][:4] == [str(T0), f"trade-{T0}-BUY-1", "XAU/USD", "BUY"]
    assert rows[1][7] == "99.950000"
    assert rows[1][9] == "0.0200"


def test_journal_rolls_by_slot_day(tmp_path):
    journal = TradeJournal(tmp_path)
    account = AccountState(balance=100.0)
    next_day = T0 + 24 * 3600 * 1000
    journal.log(JournalRecord.from_account(_trade(T0), account, "XAU/USD"))
    journal.log(JournalRecord.from_account(_trade(next_day, Side.SELL, 2), account, "XAU/USD"))
    journal.close()

    assert len(_read(tmp_path / "trades_2023-11-14.csv")) == 2
    assert len(_read(tmp_path / "trades_2023-11-15.csv")) == 2


def test_journal_appends_without_duplicate_header(tmp_path):
    account = AccountState(balance=100.0)
    for seq in (1, 2):
        journal = TradeJournal(tmp_path)
        journal.log(JournalRecord.from_account(_trade(T0, seq=seq), account, "XAU/USD"))
        journal.close()
    rows = _read(tmp_path / "trades_2023-11-14.csv")
    assert len(rows) == 3
    assert rows.count(JOURNAL_COLUMNS) == 1


def test_session_journal_records_executed_trades(tmp_path):
    cfg = MainConfig(journal=JournalConfig(enabled=True, base_dir=str(tmp_path)))
    clock = FakeClock(T0)
    prices = {T0 + i * 1000: 5000.0 + 5 * i for i in range(1, 61)}
    session = SimulationSession(cfg, clock=clock, price_source=ScriptedPriceSource(prices))
    for _ in range(60):
        clock.advance(1000)
        session.on_tick(clock.now())
        session.process_slot(clock.now())
    trades = session.ledger.get_trade_history()
    session.dispose()

    rows = _read(tmp_path / "trades_2023-11-14.csv")
    assert [r[1] for r in rows[1:]] == [t.id for t in trades]
