# =============================================================================
# TELETRADE - Settings Unit Tests
# =============================================================================
#
# Tests cover:
# - Defaults, YAML overlay, environment precedence
# - Poll interval floor
# - Secrets ignored in YAML
# - ConfigurationError for missing / malformed values
#
# =============================================================================

from pathlib import Path

import pytest

from shared.config import DEFAULT_FEED_KEY, DEFAULT_MODULE_ADDR, load_settings
from shared.enums import AptosNetwork
from shared.errors import ConfigurationError

KEY = "0x" + "11" * 32


@pytest.fixture
def missing_yaml(tmp_path):
    return tmp_path / "absent.yaml"


def _load(env, config_path):
    return load_settings(env=env, config_path=config_path, load_env_file=False)


class TestDefaults:

    def test_minimal_environment(self, missing_yaml):
        settings = _load({"OPERATOR_PRIVATE_KEY": KEY}, missing_yaml)

        assert settings.module_addr == DEFAULT_MODULE_ADDR
        assert settings.feed_key == DEFAULT_FEED_KEY
        assert settings.poll_interval_s == 60.0
        assert settings.backoff_base_s == 20.0
        assert settings.backoff_max_s == 600.0
        assert settings.paper_start_balance == 10_000.0
        assert settings.default_leverage == 5
        assert settings.signal_key_hex is None
        assert settings.network is AptosNetwork.TESTNET
        assert settings.feed_timeout_s == 8.0
        assert settings.ledger_max_attempts == 3
        assert settings.subscribers_path == Path("data") / "users.json"
        assert settings.state_path == Path("data") / "state.json"

    def test_poll_interval_floor(self, missing_yaml):
        settings = _load({"OPERATOR_PRIVATE_KEY": KEY, "SIGNAL_POLL_MS": "500"}, missing_yaml)

        assert settings.poll_interval_s == 10.0

    def test_leverage_clamped(self, missing_yaml):
        settings = _load({"OPERATOR_PRIVATE_KEY": KEY, "DEFAULT_LEVERAGE": "500"}, missing_yaml)

        assert settings.default_leverage == 100


class TestYamlOverlay:

    def test_yaml_then_env(self, tmp_path):
        config = tmp_path / "teletrade.yaml"
        config.write_text(
            "signal_poll_ms: 30000\n"
            "paper_start_usdc: 500\n"
            "aptos_network: devnet\n"
            "operator_private_key: should-be-ignored\n",
            encoding="utf-8",
        )

        settings = _load({"OPERATOR_PRIVATE_KEY": KEY, "PAPER_START_USDC": "750"}, config)

        assert settings.poll_interval_s == 30.0
        assert settings.paper_start_balance == 750.0
        assert settings.network is AptosNetwork.DEVNET
        assert settings.operator_private_key == KEY

    def test_invalid_yaml(self, tmp_path):
        config = tmp_path / "bad.yaml"
        config.write_text("a: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            _load({"OPERATOR_PRIVATE_KEY": KEY}, config)


class TestValidation:

    def test_missing_operator_key(self, missing_yaml):
        with pytest.raises(ConfigurationError, match="OPERATOR_PRIVATE_KEY"):
            _load({}, missing_yaml)

    def test_unknown_network(self, missing_yaml):
        with pytest.raises(ConfigurationError):
            _load({"OPERATOR_PRIVATE_KEY": KEY, "APTOS_NETWORK": "moon"}, missing_yaml)

    def test_custom_network_needs_url(self, missing_yaml):
        with pytest.raises(ConfigurationError):
            _load({"OPERATOR_PRIVATE_KEY": KEY, "APTOS_NETWORK": "custom"}, missing_yaml)

        settings = _load(
            {"OPERATOR_PRIVATE_KEY": KEY, "APTOS_NETWORK": "custom", "APTOS_NODE_URL": "http://localhost:8080"},
            missing_yaml,
        )
        assert settings.node_url == "http://localhost:8080"

    def test_non_numeric_interval(self, missing_yaml):
        with pytest.raises(ConfigurationError, match="SIGNAL_POLL_MS"):
            _load({"OPERATOR_PRIVATE_KEY": KEY, "SIGNAL_POLL_MS": "soon"}, missing_yaml)

    def test_bad_signal_key(self, missing_yaml):
        with pytest.raises(ConfigurationError):
            _load({"OPERATOR_PRIVATE_KEY": KEY, "SIGNAL_KEY_HEX": "abcd"}, missing_yaml)

        settings = _load({"OPERATOR_PRIVATE_KEY": KEY, "SIGNAL_KEY_HEX": "0x" + "AB" * 32}, missing_yaml)
        assert settings.signal_key_hex == "ab" * 32

    def test_zero_ledger_attempts(self, missing_yaml):
        with pytest.raises(ConfigurationError):
            _load({"OPERATOR_PRIVATE_KEY": KEY, "LEDGER_MAX_ATTEMPTS": "0"}, missing_yaml)
