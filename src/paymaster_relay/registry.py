"""
Chain registry for the paymaster relay.

Maps the closed set of chain identifiers to immutable descriptors built once
from validated settings. A chain is registered only when a paymaster address
is configured for it, so `is_supported(c)` and `resolve(c)` always agree.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, Optional

from .config import RelaySettings
from .erc4337.entrypoint import ENTRYPOINT_V07, ENTRYPOINT_V07_RADIUS_TESTNET
from .exceptions import UnsupportedChainError

logger = logging.getLogger(__name__)


class ChainName(str, Enum):
    """Chains the relay knows how to serve."""
    # Mainnets
    BASE = "base"

    # Testnets
    BASE_SEPOLIA = "baseSepolia"
    RADIUS_TESTNET = "radiusTestnet"

    # Local development
    LOCALHOST = "localhost"
    HARDHAT = "hardhat"


@dataclass(frozen=True)
class ChainDescriptor:
    """Everything the relay needs to talk to one chain."""
    name: ChainName
    chain_id: int
    display_name: str
    entry_point: str
    paymaster_address: str
    rpc_url: Optional[str] = None
    bundler_url: Optional[str] = None
    native_token: str = "ETH"
    explorer_url: str = ""

    @property
    def identifier(self) -> str:
        return self.name.value

    def tx_url(self, tx_hash: str) -> str:
        """Explorer link for a transaction hash."""
        return f"{self.explorer_url}/tx/{tx_hash}"


@dataclass(frozen=True)
class _ChainTemplate:
    chain_id: int
    display_name: str
    entry_point: str
    native_token: str
    explorer_url: str
    paymaster_key: str
    rpc_key: str
    bundler_key: str


# Static chain table. Keys name RelaySettings fields.
CHAIN_TEMPLATES: Dict[ChainName, _ChainTemplate] = {
    ChainName.BASE: _ChainTemplate(
        chain_id=8453,
        display_name="Base",
        entry_point=ENTRYPOINT_V07,
        native_token="ETH",
        explorer_url="https://basescan.org",
        paymaster_key="paymaster_proxy_address",
        rpc_key="base_rpc_url",
        bundler_key="base_bundler_url",
    ),
    ChainName.BASE_SEPOLIA: _ChainTemplate(
        chain_id=84532,
        display_name="Base Sepolia",
        entry_point=ENTRYPOINT_V07,
        native_token="ETH",
        explorer_url="https://sepolia.basescan.org",
        paymaster_key="paymaster_proxy_address",
        rpc_key="base_sepolia_rpc_url",
        bundler_key="base_sepolia_bundler_url",
    ),
    ChainName.RADIUS_TESTNET: _ChainTemplate(
        chain_id=1223953,
        display_name="Radius Testnet",
        entry_point=ENTRYPOINT_V07_RADIUS_TESTNET,
        native_token="USD",
        explorer_url="https://testnet.radius.xyz",
        paymaster_key="paymaster_proxy_address_radius_testnet",
        rpc_key="radius_testnet_rpc_url",
        bundler_key="radius_testnet_bundler_url",
    ),
    ChainName.LOCALHOST: _ChainTemplate(
        chain_id=1337,
        display_name="Localhost",
        entry_point=ENTRYPOINT_V07,
        native_token="ETH",
        explorer_url="http://localhost:8545",
        paymaster_key="paymaster_proxy_address_localhost",
        rpc_key="localhost_rpc_url",
        bundler_key="localhost_bundler_url",
    ),
    ChainName.HARDHAT: _ChainTemplate(
        chain_id=31337,
        display_name="Hardhat",
        entry_point=ENTRYPOINT_V07,
        native_token="ETH",
        explorer_url="http://localhost:8545",
        paymaster_key="paymaster_proxy_address_localhost",
        rpc_key="localhost_rpc_url",
        bundler_key="localhost_bundler_url",
    ),
}


class ChainRegistry:
    """Read-only mapping from chain identifier to ChainDescriptor."""

    def __init__(self, descriptors: Dict[str, ChainDescriptor]):
        self._descriptors = dict(descriptors)

    @classmethod
    def from_settings(cls, settings: RelaySettings) -> "ChainRegistry":
        """Build the registry from validated settings.

        Chains without a configured paymaster address are left out entirely.
        """
        descriptors: Dict[str, ChainDescriptor] = {}
        for name, template in CHAIN_TEMPLATES.items():
            paymaster = getattr(settings, template.paymaster_key)
            if not paymaster:
                logger.debug(f"Skipping chain {name.value}: no paymaster address configured")
                continue
            descriptors[name.value] = ChainDescriptor(
                name=name,
                chain_id=template.chain_id,
                display_name=template.display_name,
                entry_point=template.entry_point,
                paymaster_address=paymaster,
                rpc_url=getattr(settings, template.rpc_key),
                bundler_url=getattr(settings, template.bundler_key),
                native_token=template.native_token,
                explorer_url=template.explorer_url,
            )
        logger.info(f"Chain registry loaded: {', '.join(descriptors)}")
        return cls(descriptors)

    def resolve(self, chain: str) -> ChainDescriptor:
        """Get the descriptor for a chain.

        Raises:
            UnsupportedChainError: if the chain is not registered
        """
        try:
            return self._descriptors[chain]
        except KeyError:
            raise UnsupportedChainError(chain) from None

    def is_supported(self, chain: str) -> bool:
        return chain in self._descriptors

    def chains(self) -> list[str]:
        return list(self._descriptors)

    def __iter__(self) -> Iterator[ChainDescriptor]:
        return iter(self._descriptors.values())

    def __len__(self) -> int:
        return len(self._descriptors)
