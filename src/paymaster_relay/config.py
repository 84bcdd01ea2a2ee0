"""Configuration surface for the paymaster relay.

Every process (HTTP relay or administrative CLI) loads one RelaySettings
through load_settings(). Anything downstream consumes already-validated data.
"""
from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings
from web3 import Web3

from .exceptions import ConfigurationError

REQUIRED_PAYMASTER_KEYS = (
    "paymaster_proxy_address",
    "paymaster_proxy_address_radius_testnet",
)


class RelaySettings(BaseSettings):
    """Main relay configuration, read from the environment and `.env`."""

    # Environment
    environment: Literal["dev", "staging", "prod"] = "dev"
    port: int = 3000
    log_level: str = "INFO"

    # Error reporting
    sentry_dsn: Optional[str] = None
    sentry_environment: Optional[str] = None

    # Signing keys
    deployer_private_key: Optional[SecretStr] = None
    trusted_signer_private_key: Optional[SecretStr] = None

    # Paymaster proxies (base and baseSepolia share one deployment address)
    paymaster_proxy_address: str
    paymaster_proxy_address_radius_testnet: str
    paymaster_proxy_address_localhost: Optional[str] = None

    # Node RPC endpoints
    base_rpc_url: Optional[str] = None
    base_sepolia_rpc_url: Optional[str] = None
    radius_testnet_rpc_url: Optional[str] = None
    localhost_rpc_url: Optional[str] = None

    # Bundler endpoints
    base_bundler_url: Optional[str] = None
    base_sepolia_bundler_url: Optional[str] = None
    radius_testnet_bundler_url: Optional[str] = None
    localhost_bundler_url: Optional[str] = None

    # Handler lifecycle
    relay_retry_failed_handlers: bool = False

    # Administrative workflows
    tx_confirmation_timeout_seconds: float = 60.0

    class Config:
        env_file = ".env"
        extra = "ignore"

    @field_validator(*REQUIRED_PAYMASTER_KEYS, mode="before")
    @classmethod
    def validate_required_address(cls, v):
        if v is None or not str(v).strip():
            raise ValueError("is not set")
        v = str(v).strip()
        if not Web3.is_address(v):
            raise ValueError(f"invalid address {v!r}")
        return v

    @field_validator("paymaster_proxy_address_localhost", mode="before")
    @classmethod
    def validate_optional_address(cls, v):
        if v is None or not str(v).strip():
            return None
        v = str(v).strip()
        if not Web3.is_address(v):
            raise ValueError(f"invalid address {v!r}")
        return v

    @field_validator(
        "base_rpc_url",
        "base_sepolia_rpc_url",
        "radius_testnet_rpc_url",
        "localhost_rpc_url",
        "base_bundler_url",
        "base_sepolia_bundler_url",
        "radius_testnet_bundler_url",
        "localhost_bundler_url",
        "sentry_dsn",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v):
        """Treat empty env values as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("deployer_private_key", "trusted_signer_private_key", mode="before")
    @classmethod
    def blank_key_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def is_production(self) -> bool:
        return self.environment != "dev"


def load_settings(env_file: str | None = None, **overrides) -> RelaySettings:
    """Load and validate settings, failing closed on any missing or malformed value.

    Raises:
        ConfigurationError: listing every offending key.
    """
    env_path = Path(env_file) if env_file else ".env"
    try:
        return RelaySettings(_env_file=env_path, **overrides)
    except ValidationError as e:
        keys = []
        problems = []
        for error in e.errors():
            key = ".".join(str(loc) for loc in error["loc"]).upper()
            keys.append(key)
            problems.append(f"{key}: {error['msg']}")
        raise ConfigurationError(
            f"Invalid environment configuration: {'; '.join(problems)}",
            keys=keys,
        ) from e
