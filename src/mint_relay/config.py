"""Configuration system for mint-relay.

Settings come from three layers, later ones winning: the defaults baked into
the models below, an optional YAML file (with ``${VAR}`` expansion), and the
environment variables listed in :data:`ENV_OVERRIDES`.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Mapping, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from mint_relay.wallet.validation import parse_gas_price, validate_gas_settings

logger = logging.getLogger("mint_relay.config")

DEFAULT_MASTER_PASSWORD = "change-this-in-production"
DEFAULT_CONTRACT_ADDRESS = "0x1aa689f843077dca043df7d0dc0b3f62dbc6180d"


# ---------------------------------------------------------------------------
# Environment-variable expansion helper
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def _expand_env_vars(value: str, environ: Mapping[str, str]) -> str:
    """Replace ``${VAR_NAME}`` placeholders with their environment values.

    Unset variables are left as-is so validation can catch them later.
    """

    def _replace(match: re.Match) -> str:
        return environ.get(match.group(1), match.group(0))

    return _ENV_VAR_RE.sub(_replace, value)


def _expand_env_recursive(obj: object, environ: Mapping[str, str]) -> object:
    """Walk an arbitrary nested structure and expand env vars in strings."""
    if isinstance(obj, str):
        return _expand_env_vars(obj, environ)
    if isinstance(obj, dict):
        return {k: _expand_env_recursive(v, environ) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_recursive(item, environ) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# Pydantic v2 models
# ---------------------------------------------------------------------------


class ChainConfig(BaseModel):
    """Network and transaction settings for the single supported chain."""

    rpc_url: str = "https://testnet-rpc.monad.xyz"
    explorer_url: str = "https://testnet.monadexplorer.com/tx/"
    chain_id: int = 10143
    gas_price: int = 1_000_000_000  # wei (1 gwei)
    gas_limit: int = 500_000
    contract_address: str = DEFAULT_CONTRACT_ADDRESS
    contract_file: Optional[str] = None  # JSON {address, abi} override

    @field_validator("gas_price", mode="before")
    @classmethod
    def _parse_gas_price(cls, value: object) -> int:
        return parse_gas_price(value)  # type: ignore[arg-type]

    @model_validator(mode="after")
    def _check_gas_bounds(self) -> "ChainConfig":
        validate_gas_settings(self.gas_price, self.gas_limit)
        return self

    def explorer_link(self, tx_hash: str) -> str:
        return f"{self.explorer_url}{tx_hash}"


class TelegramConfig(BaseModel):
    """Bot credentials for the notification sink."""

    token: str = ""
    admin_id: int = 0
    max_polling_retries: int = 5


class SecurityConfig(BaseModel):
    master_password: str = DEFAULT_MASTER_PASSWORD

    @property
    def uses_default_password(self) -> bool:
        return self.master_password == DEFAULT_MASTER_PASSWORD


class DispatchConfig(BaseModel):
    """Timeout and retry policy for each mint dispatch."""

    tx_timeout_ms: int = Field(default=120_000, gt=0)
    max_retry_count: int = Field(default=2, ge=0)
    retry_delay_seconds: float = Field(default=3.0, ge=0)

    @property
    def tx_timeout_seconds(self) -> float:
        return self.tx_timeout_ms / 1000


class StorageConfig(BaseModel):
    wallet_file: str = "./secure_wallets.json"
    history_file: str = "./tx_history.json"
    history_capacity: int = Field(default=100, gt=0)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    fmt: str = "human"  # "human" or "json"
    file: Optional[str] = None


class DashboardConfig(BaseModel):
    """Health/status HTTP endpoint settings."""

    host: str = "127.0.0.1"
    port: int = 3000


class RelayConfig(BaseModel):
    """Root configuration object."""

    chain: ChainConfig = Field(default_factory=ChainConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    dashboard: DashboardConfig = Field(default_factory=DashboardConfig)


# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------

# env var -> (section, field)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "RPC_URL": ("chain", "rpc_url"),
    "EXPLORER_URL": ("chain", "explorer_url"),
    "CHAIN_ID": ("chain", "chain_id"),
    "GAS_PRICE": ("chain", "gas_price"),
    "GAS_LIMIT": ("chain", "gas_limit"),
    "CONTRACT_ADDRESS": ("chain", "contract_address"),
    "CONTRACT_CONFIG_FILE": ("chain", "contract_file"),
    "TELEGRAM_TOKEN": ("telegram", "token"),
    "ADMIN_ID": ("telegram", "admin_id"),
    "MAX_POLLING_RETRIES": ("telegram", "max_polling_retries"),
    "MASTER_PASSWORD": ("security", "master_password"),
    "TX_TIMEOUT": ("dispatch", "tx_timeout_ms"),
    "MAX_RETRY_COUNT": ("dispatch", "max_retry_count"),
    "RETRY_DELAY": ("dispatch", "retry_delay_seconds"),
    "WALLET_FILE": ("storage", "wallet_file"),
    "HISTORY_FILE": ("storage", "history_file"),
    "HISTORY_CAPACITY": ("storage", "history_capacity"),
    "LOG_LEVEL": ("logging", "level"),
    "LOG_FORMAT": ("logging", "fmt"),
    "LOG_FILE": ("logging", "file"),
    "DASHBOARD_HOST": ("dashboard", "host"),
    "DASHBOARD_PORT": ("dashboard", "port"),
}


def _apply_env_overrides(data: dict, environ: Mapping[str, str]) -> dict:
    for var, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value is None or value == "":
            continue
        data.setdefault(section, {})[key] = value
    return data


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def load_config(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> RelayConfig:
    """Build a :class:`RelayConfig` from defaults, YAML and the environment.

    Parameters
    ----------
    path:
        Optional YAML file. A missing file is not an error; the defaults and
        environment are used alone.
    environ:
        Mapping to read variables from. Defaults to ``os.environ``.
    """
    env = os.environ if environ is None else environ
    raw_data: dict = {}
    if path is not None and Path(path).exists():
        raw_data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        raw_data = _expand_env_recursive(raw_data, env)  # type: ignore[assignment]
    elif path is not None:
        logger.info(f"No config file at {path}; using defaults and environment")

    config = RelayConfig.model_validate(_apply_env_overrides(raw_data, env))
    if config.security.uses_default_password:
        logger.warning(
            "MASTER_PASSWORD is the built-in default; set it before storing real keys."
        )
    return config


def save_config(config: RelayConfig, path: Path) -> None:
    """Serialize a :class:`RelayConfig` to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="python", exclude_none=True)
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(data, fh, default_flow_style=False, sort_keys=False)
