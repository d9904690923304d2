from pathlib import Path

import pytest

from shared.config.config_loader import expand_env, load_config, parse_config
from shared.config.schema import MainConfig


def test_load_config_expands_env_and_returns_main_config(monkeypatch: pytest.MonkeyPatch):
    cfg_path = Path("config/config.yml")
    assert cfg_path.exists(), "示例配置缺失"

    monkeypatch.setenv("AURUM_LOG_LEVEL", "WARNING")

    cfg = load_config(str(cfg_path), load_env=False)
    assert isinstance(cfg, MainConfig)
    assert cfg.symbol == "XAU/USD"
    assert cfg.log_level == "WARNING"
    assert cfg.market.initial_price == 5094.0
    assert cfg.session.decision_interval_ms == 3000
    assert cfg.ledger.fee_rate == 0.0005
    assert cfg.journal.enabled is False


def test_load_config_missing_env_raises(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("AURUM_LOG_LEVEL", raising=False)
    with pytest.raises(ValueError) as exc:
        load_config("config/config.yml", load_env=False)
    assert "Missing environment variable" in str(exc.value)


def test_load_config_reads_dotenv_next_to_file(tmp_path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("AURUM_TEST_SYMBOL", "placeholder")
    monkeypatch.delenv("AURUM_TEST_SYMBOL")
    (tmp_path / ".env").write_text('AURUM_TEST_SYMBOL="XAU/EUR"\n', encoding="utf-8")
    cfg_file = tmp_path / "cfg.yml"
    cfg_file.write_text("symbol: ${AURUM_TEST_SYMBOL}\n", encoding="utf-8")
    cfg = load_config(cfg_file)
    assert cfg.symbol == "XAU/EUR"


def test_empty_config_uses_defaults(tmp_path):
    cfg_file = tmp_path / "empty.yml"
    cfg_file.write_text("", encoding="utf-8")
    cfg = load_config(cfg_file, load_env=False)
    assert cfg == MainConfig()
    assert cfg.decision.window_ms == 3000
    assert cfg.market.max_history == 500


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yml")


def test_non_mapping_root_rejected(tmp_path):
    cfg_file = tmp_path / "list.yml"
    cfg_file.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(cfg_file, load_env=False)


def test_unknown_keys_rejected():
    with pytest.raises(ValueError) as exc:
        parse_config({"market": {"volatilty": 0.1}})
    assert "Invalid config" in str(exc.value)


@pytest.mark.parametrize(
    "market",
    [
        {"price_floor": 5500.0, "price_ceiling": 5400.0},
        {"initial_price": 6000.0},
        {"update_interval_ms": 7000, "candle_duration_ms": 60000},
        {"history_candles": 600},
    ],
)
def test_market_cross_field_validation(market):
    with pytest.raises(ValueError):
        parse_config({"market": market})


def test_expand_env_recurses(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("AURUM_X", "1")
    assert expand_env({"a": ["${AURUM_X}", 2], "b": "v${AURUM_X}"}) == {"a": ["1", 2], "b": "v1"}
