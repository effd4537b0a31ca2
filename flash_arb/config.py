"""
Configuration loading from .env and config.json.

Environment variables take precedence over config.json, which takes
precedence over the defaults below.
"""
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import base58
import dotenv
from solders.keypair import Keypair
from solders.pubkey import Pubkey

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent


@dataclass
class Settings:
    """Runtime settings for the engine and the demo world."""
    flash_fee_bps: int = 9  # lender fee
    venue_fee_bps: int = 30  # per-swap pool fee
    deadline_seconds: int = 60  # how far past "now" swap deadlines are set
    slippage_bps: int = 50  # floor below the quoted amount for each hop
    amount_required: int = 0  # surplus retained by the engine
    enforce_consistent_params: bool = True
    log_level: str = 'INFO'
    profit_receiver: Optional[Pubkey] = None

    def validate(self) -> List[str]:
        """Return a list of problems; empty when the settings are usable."""
        problems = []
        for name in ('flash_fee_bps', 'venue_fee_bps', 'slippage_bps'):
            value = getattr(self, name)
            if not 0 <= value < 10_000:
                problems.append(f"{name} must be in [0, 10000), got {value}")
        if self.deadline_seconds <= 0:
            problems.append(f"deadline_seconds must be positive, got {self.deadline_seconds}")
        if self.amount_required < 0:
            problems.append(f"amount_required must be non-negative, got {self.amount_required}")
        if self.log_level.upper() not in ('DEBUG', 'INFO', 'WARNING', 'ERROR'):
            problems.append(f"Unknown log_level {self.log_level}")
        return problems


def load_config_file(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load config.json; missing file yields an empty dict."""
    config_path = config_path or PROJECT_ROOT / 'config.json'
    if not config_path.exists():
        logger.debug(f"config.json not found at {config_path}")
        return {}
    with open(config_path, 'r') as f:
        return json.load(f)


def load_wallet(private_key_str: Optional[str] = None) -> Optional[Keypair]:
    """Load a keypair from a base58 private key (argument or WALLET_PRIVATE_KEY)."""
    if not private_key_str:
        private_key_str = os.getenv('WALLET_PRIVATE_KEY')
    if not private_key_str:
        return None

    try:
        key_bytes = base58.b58decode(private_key_str)
        return Keypair.from_bytes(key_bytes)
    except Exception as e:
        logger.error(f"Error loading wallet: {e}")
        return None


TRUE_VALUES = ('1', 'true', 'yes', 'on')
FALSE_VALUES = ('0', 'false', 'no', 'off')


def _parse_int(source: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{source} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{source} must be an integer, got {value!r}") from None


def _parse_bool(source: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValueError(f"{source} must be one of {TRUE_VALUES + FALSE_VALUES}, got {value!r}")


def load_settings(env_path: Optional[Path] = None, config_path: Optional[Path] = None) -> Settings:
    """
    Build Settings from .env, config.json and defaults.

    The profit receiver is PROFIT_RECEIVER if set, otherwise the public key
    of WALLET_PRIVATE_KEY, otherwise None.

    Raises:
        ValueError: a numeric or boolean setting that does not parse, naming
            the variable it came from
    """
    env_path = env_path or PROJECT_ROOT / '.env'
    if env_path.exists():
        dotenv.load_dotenv(env_path)

    engine_config = load_config_file(config_path).get('engine', {})
    settings = Settings()

    int_fields = {
        'flash_fee_bps': 'FLASH_FEE_BPS',
        'venue_fee_bps': 'VENUE_FEE_BPS',
        'deadline_seconds': 'DEADLINE_SECONDS',
        'slippage_bps': 'SLIPPAGE_BPS',
        'amount_required': 'AMOUNT_REQUIRED',
    }
    for field_name, env_name in int_fields.items():
        env_value = os.getenv(env_name)
        if env_value is not None and env_value.strip():
            setattr(settings, field_name, _parse_int(env_name, env_value))
        elif field_name in engine_config:
            setattr(settings, field_name, _parse_int(f"config.json engine.{field_name}", engine_config[field_name]))

    enforce_env = os.getenv('ENFORCE_CONSISTENT_PARAMS')
    if enforce_env is not None and enforce_env.strip():
        settings.enforce_consistent_params = _parse_bool('ENFORCE_CONSISTENT_PARAMS', enforce_env)
    elif 'enforce_consistent_params' in engine_config:
        settings.enforce_consistent_params = _parse_bool(
            'config.json engine.enforce_consistent_params', engine_config['enforce_consistent_params']
        )

    settings.log_level = os.getenv('LOG_LEVEL') or engine_config.get('log_level', settings.log_level)

    receiver = os.getenv('PROFIT_RECEIVER') or engine_config.get('profit_receiver')
    if receiver:
        settings.profit_receiver = Pubkey.from_string(receiver)
    else:
        wallet = load_wallet()
        if wallet is not None:
            settings.profit_receiver = wallet.pubkey()

    return settings
