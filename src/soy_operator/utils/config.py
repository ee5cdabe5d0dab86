"""
Configuration Management
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from soy_operator.lottery.errors import ConfigError
from soy_operator.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = Path("config") / "operator.conf"

# Callisto testnet deployment
DEFAULT_CONFIG: Dict[str, Any] = {
    "blockchain": {
        "rpc_url": "https://testnet-rpc.callisto.network",
        "rpc_timeout": 10.0,
        "chain_id": 20729,
        "lottery_address": "0xefBf55Af146093738982Fe25e69fE966F26670de",
        "rng_address": "0x09D8B4A17edd82CA0681409329A31DC04B74bae2",
        "gas_multiplier": 1.0,
        "gas_padding": 20000,
        "tx_timeout": 180,
    },
    "lottery": {
        "price_ticket_in_soy": "25000000000000000000",  # 25 SOY
        "discount_divisor": 2000,
        # 11.11% to 1 number, 27.77% to 2 numbers, 61.12% to 3 numbers
        "rewards_breakdown": [1111, 2777, 6112, 0, 0, 0],
        "treasury_fee": 1000,
        "align": 7200,
        "auto_injection": True,
        "min_lead_seconds": 3600,
    },
    "operator": {
        "reveal_poll_interval": 10,
        "reveal_timeout": 600,
        "low_balance_threshold": 5,
        "state_file": "pending_reveal.json",
    },
    "telegram": {
        "api_url": "https://api.telegram.org",
        "timeout": 10,
    },
}

_ENV_SECTIONS = {
    "BLOCKCHAIN_": "blockchain",
    "LOTTERY_": "lottery",
    "OPERATOR_": "operator",
    "TELEGRAM_": "telegram",
}

# Variable names used by the earlier Node.js operator script
_ENV_ALIASES = {
    "SYSTEM_PK": ("blockchain", "operator_private_key"),
    "CHAT_ID": ("telegram", "chat_id"),
    "BOT_TOKEN": ("telegram", "bot_token"),
}


def load_config(config_file: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from defaults, a JSON file and environment variables"""
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_file is None:
        config_file = os.getenv("OPERATOR_CONFIG") or DEFAULT_CONFIG_FILE
    config_path = Path(config_file)

    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                file_config = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in configuration file {config_path}: {e}") from e
        _deep_merge(config, file_config)
        logger.info(f"Loaded configuration from {config_path}")
    else:
        logger.warning(f"Config file {config_path} not found. Will only use defaults and environment variables.")

    config = _apply_env_overrides(config)
    logger.debug("Configuration sections: %s", sorted(config))
    return config


def _deep_merge(config: Dict[str, Any], overrides: Dict[str, Any]) -> None:
    for section, values in overrides.items():
        if isinstance(values, dict) and isinstance(config.get(section), dict):
            config[section].update(values)
        else:
            config[section] = values


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides to configuration"""
    for env_key, (section, key) in _ENV_ALIASES.items():
        if env_key in os.environ:
            config.setdefault(section, {})[key] = os.environ[env_key]

    # prefixed variables are applied last so they win over aliases
    for env_key, value in os.environ.items():
        # Convert key from SECTION_VAR_NAME to section.var_name format
        for prefix, section in _ENV_SECTIONS.items():
            if env_key.startswith(prefix):
                key = env_key[len(prefix):].lower()
                if key == "config":
                    # OPERATOR_CONFIG names the config file itself
                    break
                config.setdefault(section, {})[key] = value
                break

    return config


def get_config_value(config: Dict[str, Any], key_path: str, default=None):
    """Get configuration value by dot-separated key path"""
    keys = key_path.split('.')
    value = config

    try:
        for key in keys:
            value = value[key]
        return value
    except (KeyError, TypeError):
        return default


def require_config_value(config: Dict[str, Any], key_path: str) -> Any:
    """Like get_config_value, but missing or empty values raise ConfigError"""
    value = get_config_value(config, key_path)
    if value is None or value == "":
        raise ConfigError(f"Missing required configuration value '{key_path}'")
    return value
