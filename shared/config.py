# =============================================================================
# TELETRADE - SETTINGS
# =============================================================================
#
# PRECEDENCE (highest first):
#   1. Process environment (after .env is loaded, without overriding)
#   2. YAML config file (config/teletrade.yaml or $TELETRADE_CONFIG)
#   3. Built-in defaults below
#
# Secrets (operator key, bot token, envelope key) are read from the
# environment only. The YAML file holds non-secret tuning values.
#
# =============================================================================

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

from shared.enums import AptosNetwork
from shared.errors import ConfigurationError

logger = logging.getLogger(__name__)


# =============================================================================
# DEFAULTS
# =============================================================================

DEFAULT_MODULE_ADDR = "0xc15ccf35138f0f6ca4c498d3c17f80e3497bd9b150b0c126f02b326eb05b7255"
DEFAULT_FEED_URL = "http://34.67.134.209:5000/today"
DEFAULT_FEED_KEY = "forecast_today_hourly"

MIN_POLL_INTERVAL_MS = 10_000

DEFAULTS: Dict[str, Any] = {
    "MODULE_ADDR": DEFAULT_MODULE_ADDR,
    "SIGNAL_FEED_URL": DEFAULT_FEED_URL,
    "SIGNAL_FEED_KEY": DEFAULT_FEED_KEY,
    "SIGNAL_POLL_MS": 60_000,
    "POLL_BACKOFF_BASE_MS": 20_000,
    "POLL_BACKOFF_MAX_MS": 600_000,
    "PAPER_START_USDC": 10_000.0,
    "DEFAULT_LEVERAGE": 5,
    "SIGNAL_AAD": "teletrade",
    "APTOS_NETWORK": "testnet",
    "APTOS_NODE_URL": "",
    "FEED_TIMEOUT_S": 8.0,
    "LEDGER_TIMEOUT_S": 30.0,
    "LEDGER_MAX_ATTEMPTS": 3,
    "LEDGER_BACKOFF_BASE_S": 1.0,
    "AGENT_MAX_LEVERAGE": 10,
    "DATA_DIR": "data",
    "LOG_LEVEL": "INFO",
}

SECRET_KEYS = ("OPERATOR_PRIVATE_KEY", "SIGNAL_KEY_HEX", "TELEGRAM_BOT_TOKEN")

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


def _project_root() -> Path:
    """Project root (this file is at shared/config.py)."""
    return Path(__file__).parent.parent


# =============================================================================
# SETTINGS
# =============================================================================


@dataclass(frozen=True)
class Settings:
    """Validated runtime configuration."""
    operator_private_key: str
    module_addr: str
    feed_url: str
    feed_key: str
    poll_interval_s: float
    backoff_base_s: float
    backoff_max_s: float
    paper_start_balance: float
    default_leverage: int
    signal_key_hex: Optional[str]
    signal_aad: str
    network: AptosNetwork
    node_url: Optional[str]
    feed_timeout_s: float
    ledger_timeout_s: float
    ledger_max_attempts: int
    ledger_backoff_base_s: float
    agent_max_leverage: int
    data_dir: Path
    telegram_bot_token: Optional[str]
    log_level: str

    @property
    def subscribers_path(self) -> Path:
        return self.data_dir / "users.json"

    @property
    def state_path(self) -> Path:
        return self.data_dir / "state.json"


# =============================================================================
# LOADING
# =============================================================================


def _load_yaml(path: Optional[Path]) -> Dict[str, Any]:
    """Read the YAML config file, if any. Keys are upper-cased."""
    if path is None or not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    values = {}
    for key, value in data.items():
        name = str(key).upper()
        if name in SECRET_KEYS:
            logger.warning(f"Ignoring secret '{name}' in {path}; set it in the environment")
            continue
        values[name] = value
    return values


def _as_float(values: Mapping[str, Any], name: str) -> float:
    raw = values.get(name)
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def _as_int(values: Mapping[str, Any], name: str) -> int:
    return int(_as_float(values, name))


def _optional_str(values: Mapping[str, Any], name: str) -> Optional[str]:
    raw = values.get(name)
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def _validate_signal_key(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    text = raw[2:] if raw.lower().startswith("0x") else raw
    if len(text) != 64 or not _HEX_RE.match(text):
        raise ConfigurationError("SIGNAL_KEY_HEX must be 32 bytes of hex (64 characters)")
    return text.lower()


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    config_path: Optional[Path] = None,
    load_env_file: bool = True,
) -> Settings:
    """
    Build Settings from defaults, YAML and environment.

    Args:
        env: Environment mapping (defaults to os.environ)
        config_path: YAML file (defaults to $TELETRADE_CONFIG or config/teletrade.yaml)
        load_env_file: Load <project>/.env into os.environ first

    Returns:
        Validated Settings

    Raises:
        ConfigurationError: Missing credential or malformed value
    """
    if load_env_file and env is None:
        env_file = _project_root() / ".env"
        if env_file.exists():
            load_dotenv(env_file, override=False)

    environ: Mapping[str, str] = os.environ if env is None else env

    if config_path is None:
        override = environ.get("TELETRADE_CONFIG")
        config_path = Path(override) if override else _project_root() / "config" / "teletrade.yaml"

    values: Dict[str, Any] = dict(DEFAULTS)
    values.update(_load_yaml(config_path))
    for key in list(DEFAULTS) + list(SECRET_KEYS):
        if environ.get(key) not in (None, ""):
            values[key] = environ[key]

    operator_key = _optional_str(values, "OPERATOR_PRIVATE_KEY")
    if not operator_key:
        raise ConfigurationError("Missing OPERATOR_PRIVATE_KEY")

    module_addr = _optional_str(values, "MODULE_ADDR")
    if not module_addr:
        raise ConfigurationError("Missing MODULE_ADDR")
    if not module_addr.startswith("0x"):
        module_addr = f"0x{module_addr}"

    try:
        network = AptosNetwork(str(values["APTOS_NETWORK"]).strip().lower())
    except ValueError:
        raise ConfigurationError(f"Unknown APTOS_NETWORK: {values['APTOS_NETWORK']!r}")

    node_url = _optional_str(values, "APTOS_NODE_URL")
    if network is AptosNetwork.CUSTOM and not node_url:
        raise ConfigurationError("APTOS_NETWORK=custom requires APTOS_NODE_URL")

    poll_ms = max(MIN_POLL_INTERVAL_MS, _as_float(values, "SIGNAL_POLL_MS"))
    backoff_base_ms = _as_float(values, "POLL_BACKOFF_BASE_MS")
    backoff_max_ms = max(backoff_base_ms, _as_float(values, "POLL_BACKOFF_MAX_MS"))

    max_attempts = _as_int(values, "LEDGER_MAX_ATTEMPTS")
    if max_attempts < 1:
        raise ConfigurationError("LEDGER_MAX_ATTEMPTS must be at least 1")

    settings = Settings(
        operator_private_key=operator_key,
        module_addr=module_addr.lower(),
        feed_url=str(values["SIGNAL_FEED_URL"]),
        feed_key=str(values["SIGNAL_FEED_KEY"]),
        poll_interval_s=poll_ms / 1000.0,
        backoff_base_s=backoff_base_ms / 1000.0,
        backoff_max_s=backoff_max_ms / 1000.0,
        paper_start_balance=max(0.0, _as_float(values, "PAPER_START_USDC")),
        default_leverage=max(1, min(100, _as_int(values, "DEFAULT_LEVERAGE"))),
        signal_key_hex=_validate_signal_key(_optional_str(values, "SIGNAL_KEY_HEX")),
        signal_aad=str(values["SIGNAL_AAD"]),
        network=network,
        node_url=node_url,
        feed_timeout_s=_as_float(values, "FEED_TIMEOUT_S"),
        ledger_timeout_s=_as_float(values, "LEDGER_TIMEOUT_S"),
        ledger_max_attempts=max_attempts,
        ledger_backoff_base_s=_as_float(values, "LEDGER_BACKOFF_BASE_S"),
        agent_max_leverage=_as_int(values, "AGENT_MAX_LEVERAGE"),
        data_dir=Path(str(values["DATA_DIR"])),
        telegram_bot_token=_optional_str(values, "TELEGRAM_BOT_TOKEN"),
        log_level=str(values["LOG_LEVEL"]).upper(),
    )

    logger.debug(
        f"Settings loaded: network={settings.network.value} "
        f"poll={settings.poll_interval_s:.0f}s feed={settings.feed_url}"
    )
    return settings
