"""
ROWA Vesting Configuration

Values come from environment variables, optionally layered over a YAML file
named by ``ROWA_CONFIG_FILE``. Environment variables win over the file.

Category caps and unlock parameters are not configurable; they live in
``rowa.vesting.categories``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

import yaml

from rowa.core.vesting_exceptions import ConfigurationError
from rowa.vesting.categories import VestingCategory

logger = logging.getLogger(__name__)


class NetworkType(Enum):
    TESTNET = "testnet"
    MAINNET = "mainnet"


# Environment variable -> config key
ENV_KEYS = {
    "ROWA_NETWORK": "network",
    "ROWA_DATA_DIR": "data_dir",
    "ROWA_LOG_DIR": "log_dir",
    "ROWA_LOG_LEVEL": "log_level",
    "ROWA_OWNER": "owner",
    "ROWA_TOKEN_ADDRESS": "token_address",
    "ROWA_VESTING_POOL": "vesting_pool",
    "ROWA_VGP_FUND": "vgp_fund",
    "ROWA_LP_FUND": "lp_fund",
    "ROWA_LIQ_FUND": "liq_fund",
    "ROWA_RESERVE_FUND": "reserve_fund",
    "ROWA_API_HOST": "api_host",
    "ROWA_API_PORT": "api_port",
}

FUND_KEYS = {
    VestingCategory.VGP: ("vgp_fund", "VGP_FUND"),
    VestingCategory.LP: ("lp_fund", "LP_FUND"),
    VestingCategory.LIQUIDITY: ("liq_fund", "LIQ_FUND"),
    VestingCategory.RESERVE: ("reserve_fund", "RESERVE_FUND"),
}


def _load_yaml(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigurationError(f"Cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


@dataclass
class VestingConfig:
    network: NetworkType = NetworkType.TESTNET
    data_dir: str = field(default_factory=lambda: os.path.join(os.getcwd(), "data", "vesting"))
    log_dir: str | None = None
    log_level: str = "INFO"
    owner: str = ""
    token_address: str = ""
    vesting_pool: str = ""
    fund_recipients: dict[VestingCategory, str] = field(default_factory=dict)
    api_host: str = "127.0.0.1"
    api_port: int = 8545

    def validate(self) -> None:
        """Raise ``ConfigurationError`` for any missing address."""
        if not self.token_address:
            raise ConfigurationError("Token address cannot be 0")
        if not self.owner:
            raise ConfigurationError("Owner address cannot be 0")
        if not self.vesting_pool:
            raise ConfigurationError("Vesting pool address cannot be 0")
        for category, (_, name) in FUND_KEYS.items():
            if not self.fund_recipients.get(category):
                raise ConfigurationError(f"{name} address cannot be 0")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "VestingConfig":
        try:
            network = NetworkType(str(values.get("network", "testnet")).lower())
        except ValueError as exc:
            raise ConfigurationError(f"Unknown network: {values.get('network')}") from exc
        try:
            api_port = int(values.get("api_port", 8545))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError("api_port must be an integer") from exc

        config = cls(
            network=network,
            log_dir=values.get("log_dir") or None,
            log_level=str(values.get("log_level", "INFO")).upper(),
            owner=str(values.get("owner", "")).strip(),
            token_address=str(values.get("token_address", "")).strip(),
            vesting_pool=str(values.get("vesting_pool", "")).strip(),
            fund_recipients={
                category: str(values.get(key, "")).strip()
                for category, (key, _) in FUND_KEYS.items()
            },
            api_host=str(values.get("api_host", "127.0.0.1")),
            api_port=api_port,
        )
        if values.get("data_dir"):
            config.data_dir = str(values["data_dir"])
        return config

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "VestingConfig":
        """Build config from ``ROWA_CONFIG_FILE`` (if set) overlaid with env vars."""
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        config_file = environ.get("ROWA_CONFIG_FILE", "").strip()
        if config_file:
            values.update(_load_yaml(config_file))
            logger.info(
                "Loaded vesting config file %s",
                config_file,
                extra={"event": "config.file_loaded"},
            )
        for env_var, key in ENV_KEYS.items():
            value = environ.get(env_var, "").strip()
            if value:
                values[key] = value
        return cls.from_mapping(values)
