# flipswap/config.py
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import base58
import yaml
from dotenv import load_dotenv
from solders.keypair import Keypair

from .models import Action, Token, TradeConfig

DEFAULT_PRICE_API = "https://api.jup.ag/price/v2"
DEFAULT_SWAP_API = "https://quote-api.jup.ag/v6"

class ConfigError(Exception):
    """Raised once at startup when the configuration cannot be used."""

@dataclass(frozen=True)
class AppConfig:
    """
    Fully resolved configuration. Built once at boot, read-only afterwards.
    """
    trade: TradeConfig
    rpc_endpoint: str
    public_key: str
    private_key: str = field(repr=False)
    price_api: str = DEFAULT_PRICE_API
    swap_api: str = DEFAULT_SWAP_API
    http_timeout_seconds: float = 10.0
    log_level: str = "INFO"
    log_dir: str = "logs"
    audit_log: str = "logs/trades.csv"

def _section(raw: Dict[str, Any], name: str, required: bool = True) -> Dict[str, Any]:
    value = raw.get(name)
    if value is None:
        if required:
            raise ConfigError(f"missing section '{name}' in config file")
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"section '{name}' must be a mapping")
    return value

def _required(section: Dict[str, Any], section_name: str, key: str) -> Any:
    if section.get(key) in (None, ""):
        raise ConfigError(f"missing '{section_name}.{key}' in config file")
    return section[key]

def _number(value: Any, name: str, minimum: float = 0.0, allow_equal: bool = False) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"'{name}' must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{name}' must be a number, got {value!r}") from None
    if number < minimum or (number == minimum and not allow_equal):
        bound = ">=" if allow_equal else ">"
        raise ConfigError(f"'{name}' must be {bound} {minimum:g}, got {value!r}")
    return number

def _integer(value: Any, name: str, minimum: float = 0.0, allow_equal: bool = False) -> int:
    number = _number(value, name, minimum, allow_equal)
    if not number.is_integer():
        raise ConfigError(f"'{name}' must be a whole number, got {value!r}")
    return int(number)

def _env(name: str, *fallbacks: str) -> str:
    for key in (name,) + fallbacks:
        value = os.getenv(key, "").strip()
        if value:
            return value
    raise ConfigError(f"environment variable {name} is not set (check your .env file)")

def parse_trade_config(raw: Dict[str, Any]) -> TradeConfig:
    """Builds the TradeConfig from the parsed YAML document."""
    target = _section(raw, 'target')
    trade = _section(raw, 'trade')
    schedule = _section(raw, 'schedule', required=False)
    system = _section(raw, 'system', required=False)

    action_name = str(trade.get('initial_action', 'buy')).lower()
    try:
        initial_action = Action(action_name)
    except ValueError:
        raise ConfigError(f"'trade.initial_action' must be 'buy' or 'sell', got {action_name!r}") from None

    return TradeConfig(
        target=Token(
            name=str(_required(target, 'target', 'name')),
            address=str(_required(target, 'target', 'address')),
        ),
        buy_threshold=_number(_required(trade, 'trade', 'buy_threshold'), 'trade.buy_threshold'),
        sell_threshold=_number(_required(trade, 'trade', 'sell_threshold'), 'trade.sell_threshold'),
        trade_amount=_number(_required(trade, 'trade', 'trade_amount'), 'trade.trade_amount'),
        slippage_bps=_integer(trade.get('slippage_bps', 50), 'trade.slippage_bps', allow_equal=True),
        initial_action=initial_action,
        poll_interval_ms=_integer(schedule.get('poll_interval_ms', 1000), 'schedule.poll_interval_ms'),
        observation_log_every=_integer(schedule.get('observation_log_every', 1800), 'schedule.observation_log_every', minimum=1, allow_equal=True),
        debounce_seconds=_number(schedule.get('debounce_seconds', 1.5), 'schedule.debounce_seconds', allow_equal=True),
        dry_run=bool(system.get('dry_run', False)),
    )

def load_config(path: str = "config.yaml", env_file: Optional[str] = None) -> AppConfig:
    """
    The only place that reads the config file and the environment.
    Raises ConfigError naming the first problem found.
    """
    load_dotenv(env_file)

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError(f"config file not found: {path}") from None
    except yaml.YAMLError as e:
        raise ConfigError(f"config file {path} is not valid YAML: {e}") from None
    if not isinstance(raw, dict):
        raise ConfigError(f"config file {path} must contain a mapping")

    trade = parse_trade_config(raw)
    endpoints = _section(raw, 'endpoints', required=False)
    system = _section(raw, 'system', required=False)
    log_dir = str(system.get('log_dir', 'logs'))

    return AppConfig(
        trade=trade,
        rpc_endpoint=_env("RPC_ENDPOINT", "RCP_ENDPOINT"),
        public_key=_env("PUBLIC_KEY"),
        private_key=_env("PRIVATE_KEY"),
        price_api=str(endpoints.get('price_api', DEFAULT_PRICE_API)),
        swap_api=str(endpoints.get('swap_api', DEFAULT_SWAP_API)).rstrip('/'),
        http_timeout_seconds=_number(endpoints.get('http_timeout_seconds', 10), 'endpoints.http_timeout_seconds'),
        log_level=str(system.get('log_level', 'INFO')).upper(),
        log_dir=log_dir,
        audit_log=str(system.get('audit_log', os.path.join(log_dir, 'trades.csv'))),
    )

def load_keypair(private_key_b58: str, public_key: str) -> Keypair:
    """
    Decodes a base58 64-byte secret key. Never logs or echoes the key material.
    """
    try:
        key_bytes = base58.b58decode(private_key_b58.strip())
    except ValueError:
        raise ConfigError("PRIVATE_KEY is not valid base58") from None

    if len(key_bytes) != 64:
        raise ConfigError(f"PRIVATE_KEY decoded to {len(key_bytes)} bytes, expected 64")

    try:
        keypair = Keypair.from_bytes(key_bytes)
    except ValueError:
        raise ConfigError("PRIVATE_KEY is not a valid ed25519 keypair") from None

    if str(keypair.pubkey()) != public_key.strip():
        raise ConfigError("PUBLIC_KEY does not match the public key of PRIVATE_KEY")
    return keypair
