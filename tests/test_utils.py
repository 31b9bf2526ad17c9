"""
Tests for configuration and formatting helpers.
"""

from pathlib import Path

from utils.config import Config
from utils.formatting import format_currency, format_percent


class TestFormatting:

    def test_whole_amounts_have_no_decimals(self):
        assert format_currency(100_000) == "PKR 100,000"
        assert format_currency(100_000.0) == "PKR 100,000"

    def test_fractional_and_negative_amounts(self):
        assert format_currency(1234.5) == "PKR 1,234.50"
        assert format_currency(-50_000) == "-PKR 50,000"

    def test_known_symbols(self):
        assert format_currency(10, "USD") == "$10"

    def test_percent(self):
        assert format_percent(62.5) == "62.5%"
        assert format_percent(100 / 3, decimals=0) == "33%"


class TestConfig:

    def test_paths_derive_from_data_dir(self, monkeypatch, tmp_path):
        monkeypatch.delenv("DEAL_STORE_PATH", raising=False)
        monkeypatch.delenv("RECEIPTS_DIR", raising=False)
        monkeypatch.setenv("DATA_DIR", str(tmp_path))

        config = Config.load()

        assert Path(config.store_path) == tmp_path / "deal_store.json"
        assert Path(config.receipts_dir) == tmp_path / "receipts"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("REQUIRE_FULL_SPLIT", "false")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("CURRENCY", "USD")

        config = Config.load()

        assert config.require_full_split_allocation is False
        assert config.log_level == "DEBUG"
        assert config.to_dict()["currency"] == "USD"
