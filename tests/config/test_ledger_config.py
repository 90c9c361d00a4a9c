"""
LedgerConfig and load_config tests.

Covers defaults, validation in __post_init__, YAML loading (flat and under
a ``ledger:`` key), environment overrides and ``override``.
"""

import pytest
import yaml

from ledger_kernel.config import LedgerConfig, load_config, override


class TestLedgerConfigDefaults:
    """Defaults describe a single-entity AED ledger."""

    def test_defaults(self):
        config = LedgerConfig.with_defaults()
        assert config.base_currency == "AED"
        assert "USD" in config.supported_currencies
        assert config.max_account_depth == 6
        assert config.hierarchy_depth == 4
        assert config.journal_prefix == "JE"
        assert config.reversal_prefix == "REV"
        assert config.extra == {}

    def test_frozen(self):
        config = LedgerConfig()
        with pytest.raises(AttributeError):
            config.base_currency = "USD"


class TestLedgerConfigValidation:

    def test_base_currency_must_be_three_letters(self):
        with pytest.raises(ValueError, match="3-letter"):
            LedgerConfig(base_currency="US")

    def test_base_currency_must_be_supported(self):
        with pytest.raises(ValueError, match="supported_currencies"):
            LedgerConfig(base_currency="JPY")

    def test_depth_lower_bound(self):
        with pytest.raises(ValueError):
            LedgerConfig(max_account_depth=3)

    def test_negative_retries_rejected(self):
        with pytest.raises(ValueError):
            LedgerConfig(max_retries=-1)

    def test_empty_prefix_rejected(self):
        with pytest.raises(ValueError, match="journal_prefix"):
            LedgerConfig(journal_prefix="")


class TestFromDict:

    def test_unknown_keys_go_to_extra(self):
        config = LedgerConfig.from_dict({"base_currency": "usd", "rate_feed_url": "x"})
        assert config.base_currency == "USD"
        assert config.extra == {"rate_feed_url": "x"}

    def test_supported_currencies_normalized(self):
        config = LedgerConfig.from_dict(
            {"base_currency": "KWD", "supported_currencies": ["kwd", "usd"]}
        )
        assert config.supported_currencies == ("KWD", "USD")


class TestLoadConfig:

    def test_no_file_no_env_gives_defaults(self):
        config = load_config(None, environ={})
        assert config == LedgerConfig()

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text(
            yaml.safe_dump({"base_currency": "USD", "max_retries": 5}), encoding="utf-8"
        )
        config = load_config(path, environ={})
        assert config.base_currency == "USD"
        assert config.max_retries == 5

    def test_yaml_nested_under_ledger_key(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text("ledger:\n  journal_prefix: GJ\n", encoding="utf-8")
        assert load_config(path, environ={}).journal_prefix == "GJ"

    def test_environment_overrides_file(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text("database_url: sqlite:///file.db\n", encoding="utf-8")
        config = load_config(
            path,
            environ={"LEDGER_DATABASE_URL": "sqlite://", "LEDGER_LOG_LEVEL": "DEBUG"},
        )
        assert config.database_url == "sqlite://"
        assert config.log_level == "DEBUG"

    def test_non_mapping_file_rejected(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path, environ={})

    def test_missing_file_propagates(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml", environ={})


class TestOverride:

    def test_override_returns_copy(self):
        config = LedgerConfig()
        changed = override(config, database_url="sqlite://")
        assert changed.database_url == "sqlite://"
        assert config.database_url != "sqlite://"

    def test_override_revalidates(self):
        with pytest.raises(ValueError):
            override(LedgerConfig(), base_currency="XYZ")
