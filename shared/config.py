# =============================================================================
# POLYMARKET APPROVALS - TOOL CONFIGURATION
# =============================================================================
#
# GOVERNANCE INTENT:
# Configuration is an IMMUTABLE value threaded into every propose/resume
# call. Nothing in the core reads process-wide state on its own.
#
# SOURCES (in order):
#   1. config/polymarket.yaml (optional, yaml.safe_load)
#   2. .env via python-dotenv (credentials only, never overrides)
#   3. Defaults below
#
# Loosely typed input is normalized. A bad value falls back to its
# default instead of failing, EXCEPT unreadable YAML which is an error.
#
# SAFE DEFAULTS:
# - trade_enabled is False
# - max_notional_usd is 25
#
# =============================================================================

import logging
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


# =============================================================================
# DEFAULTS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "polymarket.yaml"
DEFAULT_ENV_PATH = PROJECT_ROOT / ".env"

DEFAULT_CLOB_HOST = "https://clob.polymarket.com"
DEFAULT_GAMMA_HOST = "https://gamma-api.polymarket.com"
POLYGON_CHAIN_ID = 137

PRIVATE_KEY_ENV_VAR = "POLYMARKET_PRIVATE_KEY"
FALLBACK_PRIVATE_KEY_ENV_VARS = ("POLYMARKET_PRIVATE_KEY", "PRIVATE_KEY")

# Signature types
SIGNATURE_TYPE_EOA = 0
SIGNATURE_TYPE_POLY_PROXY = 1
SIGNATURE_TYPE_GNOSIS_SAFE = 2
SIGNATURE_TYPES = (SIGNATURE_TYPE_EOA, SIGNATURE_TYPE_POLY_PROXY, SIGNATURE_TYPE_GNOSIS_SAFE)

DEFAULT_MAX_NOTIONAL_USD = 25.0
DEFAULT_APPROVAL_TTL_SECONDS = 300
DEFAULT_REQUEST_TIMEOUT_SECONDS = 15.0

# The status action lists at most this many allowlisted slugs
STATUS_ALLOWLIST_PREVIEW_LIMIT = 25


# =============================================================================
# NORMALIZERS
# =============================================================================


def _normalize_url(value: Any, fallback: str) -> str:
    raw = value.strip() if isinstance(value, str) else ""
    if not raw:
        return fallback
    return raw.rstrip("/")


def _normalize_str(value: Any, fallback: Optional[str]) -> Optional[str]:
    raw = value.strip() if isinstance(value, str) else ""
    return raw or fallback


def _normalize_number(value: Any, fallback: float) -> float:
    if isinstance(value, bool):
        return fallback
    if isinstance(value, (int, float)):
        num = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            num = float(value.strip())
        except ValueError:
            return fallback
    else:
        return fallback
    return num if math.isfinite(num) else fallback


def _normalize_signature_type(value: Any, fallback: int) -> int:
    num = _normalize_number(value, math.nan)
    if not math.isfinite(num):
        return fallback
    num = int(num)
    return num if num in SIGNATURE_TYPES else fallback


def _normalize_bool(value: Any, fallback: bool) -> bool:
    if isinstance(value, bool):
        return value
    return fallback


def _normalize_string_list(value: Any) -> Tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(
            entry.strip() for entry in value
            if isinstance(entry, str) and entry.strip()
        )
    if isinstance(value, str) and value.strip():
        return (value.strip(),)
    return ()


# =============================================================================
# CONFIG DATACLASS
# =============================================================================


@dataclass(frozen=True)
class ToolConfig:
    """
    Immutable tool configuration.

    FIELDS:
    - clob_host / gamma_host: API base URLs (no trailing slash)
    - chain_id: Polygon chain id
    - private_key_env_var: env var holding the trading key
    - signature_type: 0=EOA, 1=POLY_PROXY, 2=GNOSIS_SAFE
    - funder_address: required for signature types 1 and 2
    - trade_enabled: master switch for place_order / resume
    - max_notional_usd: per-order cap, 0 disables the cap
    - allowed_market_slugs: empty means every market is allowed
    - approval_ttl_seconds: lifetime of an approval token
    - request_timeout_seconds: HTTP timeout for market data
    - replay_guard_dir: enables single-use token markers when set
    """

    clob_host: str = DEFAULT_CLOB_HOST
    gamma_host: str = DEFAULT_GAMMA_HOST
    chain_id: int = POLYGON_CHAIN_ID
    private_key_env_var: str = PRIVATE_KEY_ENV_VAR
    signature_type: int = SIGNATURE_TYPE_EOA
    funder_address: Optional[str] = None
    trade_enabled: bool = False
    max_notional_usd: float = DEFAULT_MAX_NOTIONAL_USD
    allowed_market_slugs: Tuple[str, ...] = field(default_factory=tuple)
    approval_ttl_seconds: int = DEFAULT_APPROVAL_TTL_SECONDS
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    replay_guard_dir: Optional[str] = None

    def __post_init__(self):
        if self.max_notional_usd < 0:
            raise ValueError(
                f"Invalid max_notional_usd: {self.max_notional_usd}. Must be >= 0."
            )
        if self.approval_ttl_seconds <= 0:
            raise ValueError(
                f"Invalid approval_ttl_seconds: {self.approval_ttl_seconds}. Must be positive."
            )
        if self.signature_type not in SIGNATURE_TYPES:
            raise ValueError(f"Invalid signature_type: {self.signature_type}")

    @property
    def has_allowlist(self) -> bool:
        return len(self.allowed_market_slugs) > 0

    @property
    def approval_ttl_ms(self) -> int:
        return int(self.approval_ttl_seconds * 1000)

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> "ToolConfig":
        """
        Build a config from loosely typed input (YAML, plugin config).

        Accepts snake_case keys and the camelCase keys of the plugin
        config format (tradeEnabled, maxNotionalUsd, ...).
        """
        raw = dict(raw) if isinstance(raw, Mapping) else {}

        def pick(snake: str, camel: str) -> Any:
            return raw.get(snake, raw.get(camel))

        ttl = _normalize_number(
            pick("approval_ttl_seconds", "approvalTtlSeconds"),
            DEFAULT_APPROVAL_TTL_SECONDS,
        )
        timeout = _normalize_number(
            pick("request_timeout_seconds", "requestTimeoutSeconds"),
            DEFAULT_REQUEST_TIMEOUT_SECONDS,
        )

        return cls(
            clob_host=_normalize_url(pick("clob_host", "clobHost"), DEFAULT_CLOB_HOST),
            gamma_host=_normalize_url(pick("gamma_host", "gammaHost"), DEFAULT_GAMMA_HOST),
            chain_id=int(_normalize_number(pick("chain_id", "chainId"), POLYGON_CHAIN_ID)),
            private_key_env_var=_normalize_str(
                pick("private_key_env_var", "privateKeyEnvVar"), PRIVATE_KEY_ENV_VAR
            ),
            signature_type=_normalize_signature_type(
                pick("signature_type", "signatureType"), SIGNATURE_TYPE_EOA
            ),
            funder_address=_normalize_str(pick("funder_address", "funderAddress"), None),
            trade_enabled=_normalize_bool(pick("trade_enabled", "tradeEnabled"), False),
            max_notional_usd=max(
                0.0,
                _normalize_number(
                    pick("max_notional_usd", "maxNotionalUsd"), DEFAULT_MAX_NOTIONAL_USD
                ),
            ),
            allowed_market_slugs=_normalize_string_list(
                pick("allowed_market_slugs", "allowedMarketSlugs")
            ),
            approval_ttl_seconds=int(ttl) if ttl > 0 else DEFAULT_APPROVAL_TTL_SECONDS,
            request_timeout_seconds=timeout if timeout > 0 else DEFAULT_REQUEST_TIMEOUT_SECONDS,
            replay_guard_dir=_normalize_str(pick("replay_guard_dir", "replayGuardDir"), None),
        )

    def to_public_dict(self, private_key_present: bool) -> Dict[str, Any]:
        """
        Convert to a dictionary safe to show to the caller.

        The funder address is masked. Long allowlists are summarized.
        """
        allow = list(self.allowed_market_slugs)
        if len(allow) > STATUS_ALLOWLIST_PREVIEW_LIMIT:
            allow = allow[:3] + [f"...{len(allow)} total slugs..."]
        return {
            "clobHost": self.clob_host,
            "gammaHost": self.gamma_host,
            "chainId": self.chain_id,
            "signatureType": self.signature_type,
            "funderAddress": "(configured)" if self.funder_address else "(unset)",
            "tradeEnabled": self.trade_enabled,
            "maxNotionalUsd": self.max_notional_usd,
            "allowedMarketSlugs": allow,
            "approvalTtlSeconds": self.approval_ttl_seconds,
            "replayGuard": "(enabled)" if self.replay_guard_dir else "(disabled)",
            "privateKeyEnvVar": self.private_key_env_var,
            "privateKeyPresent": private_key_present,
        }


# =============================================================================
# LOADERS
# =============================================================================


def load_config(path: Optional[Union[str, Path]] = None) -> ToolConfig:
    """
    Load the tool configuration from YAML.

    Args:
        path: YAML file. Defaults to config/polymarket.yaml

    Returns:
        ToolConfig (defaults if the file does not exist)

    Raises:
        ValueError: If the file exists but cannot be parsed
    """
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    if not config_path.exists():
        logger.info(f"No config file at {config_path}; using defaults")
        return ToolConfig()

    with open(config_path, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Cannot parse {config_path}: {e}")
            raise ValueError(f"Invalid config file {config_path}: {e}") from e

    # Allow the settings to be nested under a "polymarket:" section
    if isinstance(raw, dict) and isinstance(raw.get("polymarket"), dict):
        raw = raw["polymarket"]

    config = ToolConfig.from_mapping(raw)
    logger.info(
        f"Config loaded | trade_enabled={config.trade_enabled} | "
        f"max_notional_usd={config.max_notional_usd} | "
        f"allowlist={len(config.allowed_market_slugs)}"
    )
    return config


def load_env(path: Optional[Union[str, Path]] = None) -> bool:
    """
    Load a .env file so credential lookups see it.

    Existing environment variables always win.

    Returns:
        True if a file was loaded
    """
    env_path = Path(path) if path else DEFAULT_ENV_PATH
    return load_dotenv(env_path, override=False)


# =============================================================================
# CREDENTIAL SOURCE
# =============================================================================


class EnvCredentialSource:
    """
    Resolves the trading private key from the process environment.

    The same key signs CLOB orders AND derives the approval-token MAC key,
    so propose and resume must see the same value for a token to verify.
    """

    def __init__(self, config: ToolConfig, environ: Optional[Mapping[str, str]] = None):
        self._config = config
        self._environ = environ

    def resolve(self) -> Optional[str]:
        """
        Returns:
            The key with a 0x prefix, or None when absent
        """
        environ = os.environ if self._environ is None else self._environ
        names = (self._config.private_key_env_var,) + FALLBACK_PRIVATE_KEY_ENV_VARS
        for name in names:
            raw = (environ.get(name) or "").strip()
            if raw:
                return raw if raw.startswith("0x") else f"0x{raw}"
        return None
