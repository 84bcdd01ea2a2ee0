"""ERC-4337 bindings used by the relay."""

from .entrypoint import (
    ENTRYPOINT_V07,
    ENTRYPOINT_V07_RADIUS_TESTNET,
    DepositInfo,
    EntryPointContract,
)
from .paymaster import PaymasterContract
from .bundler_client import BundlerClient, BundlerConfig, BundlerRPCError

__all__ = [
    "ENTRYPOINT_V07",
    "ENTRYPOINT_V07_RADIUS_TESTNET",
    "DepositInfo",
    "EntryPointContract",
    "PaymasterContract",
    "BundlerClient",
    "BundlerConfig",
    "BundlerRPCError",
]
