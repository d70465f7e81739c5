"""Configuration for the cold staking wallet."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from coldstake.shared.network import RetryConfig, TimeoutConfig

logger = logging.getLogger(__name__)

DEFAULT_NODE_URL = "http://localhost:42220"


def resolve_config_dir(config_dir: str | Path | None = None) -> Path:
    if config_dir:
        return Path(config_dir).expanduser()

    env_dir = os.getenv("COLDSTAKE_DIR")
    if env_dir:
        return Path(env_dir).expanduser()

    return Path.home() / ".config" / "coldstake"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number", name, raw)
        return default
    if value <= 0:
        logger.warning("Ignoring %s=%r: must be positive", name, raw)
        return default
    return value


@dataclass
class ColdStakingConfig:
    node_url: str = DEFAULT_NODE_URL
    wallet_name: str = ""
    coin_unit: str = "x42"
    balance_poll_interval: float = 5.0
    fee_debounce_delay: float = 0.3
    timeout_config: TimeoutConfig = field(default_factory=TimeoutConfig)
    retry_config: RetryConfig = field(default_factory=RetryConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ColdStakingConfig":
        config = cls(
            node_url=data.get("node_url", DEFAULT_NODE_URL),
            wallet_name=data.get("wallet_name", ""),
            coin_unit=data.get("coin_unit", "x42"),
            balance_poll_interval=float(data.get("balance_poll_interval", 5.0)),
            fee_debounce_delay=float(data.get("fee_debounce_delay", 0.3)),
        )
        timeout_cfg = data.get("timeout", {})
        if timeout_cfg:
            config.timeout_config = TimeoutConfig(
                connect_timeout=timeout_cfg.get("connect_timeout", 5.0),
                read_timeout=timeout_cfg.get("read_timeout", 15.0),
                operation_timeout=timeout_cfg.get("operation_timeout", 30.0),
            )
        retry_cfg = data.get("retry", {})
        if retry_cfg:
            config.retry_config = RetryConfig(
                max_retries=retry_cfg.get("max_retries", 3),
                base_delay=retry_cfg.get("base_delay", 1.0),
                max_delay=retry_cfg.get("max_delay", 30.0),
            )
        return config

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_url": self.node_url,
            "wallet_name": self.wallet_name,
            "coin_unit": self.coin_unit,
            "balance_poll_interval": self.balance_poll_interval,
            "fee_debounce_delay": self.fee_debounce_delay,
            "timeout": {
                "connect_timeout": self.timeout_config.connect_timeout,
                "read_timeout": self.timeout_config.read_timeout,
                "operation_timeout": self.timeout_config.operation_timeout,
            },
            "retry": {
                "max_retries": self.retry_config.max_retries,
                "base_delay": self.retry_config.base_delay,
                "max_delay": self.retry_config.max_delay,
            },
        }

    def apply_environment(self) -> "ColdStakingConfig":
        """Override fields with ``COLDSTAKE_*`` environment variables."""
        self.node_url = os.getenv("COLDSTAKE_NODE_URL", self.node_url)
        self.wallet_name = os.getenv("COLDSTAKE_WALLET_NAME", self.wallet_name)
        self.coin_unit = os.getenv("COLDSTAKE_COIN_UNIT", self.coin_unit)
        self.balance_poll_interval = _env_float(
            "COLDSTAKE_POLL_INTERVAL", self.balance_poll_interval
        )
        self.fee_debounce_delay = _env_float(
            "COLDSTAKE_FEE_DEBOUNCE", self.fee_debounce_delay
        )
        return self

    @classmethod
    def load(cls, path: str | Path | None = None) -> "ColdStakingConfig":
        config_file = (
            Path(path).expanduser()
            if path
            else resolve_config_dir() / "config.json"
        )
        if config_file.exists():
            with open(config_file, "r") as f:
                config = cls.from_dict(json.load(f))
            logger.info("Loaded configuration from %s", config_file)
        else:
            config = cls()
            config.save(config_file)
            logger.info("Wrote default configuration to %s", config_file)
        return config.apply_environment()

    def save(self, path: str | Path | None = None) -> Path:
        config_file = (
            Path(path).expanduser()
            if path
            else resolve_config_dir() / "config.json"
        )
        config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(config_file, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        return config_file
